"""
Банк вопросов вступительного теста (по шесть на уровень)
"""

import random
from typing import Iterable, Optional

from academy.services.placement import CEFR_LEVELS, Question, clamp_rank, level_rank


def _q(id_: str, text: str, options: list, level: str, skill: str = "grammar") -> Question:
    # В исходных данных верный вариант всегда первый; перемешиваем при выдаче
    return Question(id=id_, text=text, options=tuple(options), correct_answer=0, difficulty=level, skill=skill)


QUESTION_BANK = (
    # A1
    _q("a1_1", "She _____ from Mexico.", ["is", "are", "am", "be"], "A1"),
    _q("a1_2", "I _____ coffee every morning.", ["drink", "drinks", "drinking", "drank"], "A1"),
    _q("a1_3", "_____ are you from?", ["Where", "What", "Who", "When"], "A1"),
    _q("a1_4", "My brother _____ 25 years old.", ["is", "have", "has", "are"], "A1"),
    _q("a1_5", "They _____ students at the university.", ["are", "is", "am", "be"], "A1"),
    _q("a1_6", "I _____ a teacher. I work at a school.", ["am", "is", "are", "be"], "A1"),

    # A2
    _q("a2_1", "I _____ to the cinema last night.", ["went", "go", "going", "gone"], "A2"),
    _q("a2_2", "She _____ dinner when the phone rang.", ["was cooking", "cooked", "cooks", "is cooking"], "A2"),
    _q("a2_3", "I have _____ been to Paris. It's beautiful!", ["already", "yet", "still", "never"], "A2"),
    _q("a2_4", "There isn't _____ milk in the fridge.", ["any", "some", "a", "the"], "A2"),
    _q("a2_5", "My car is _____ than yours.", ["faster", "more fast", "most fast", "fastest"], "A2"),
    _q("a2_6", "You _____ study harder if you want to pass the exam.", ["should", "can", "may", "might"], "A2"),

    # B1
    _q("b1_1", "If I _____ more money, I would buy a new car.", ["had", "have", "has", "having"], "B1"),
    _q("b1_2", "She asked me where I _____.", ["lived", "live", "am living", "living"], "B1"),
    _q("b1_3", "The book _____ by millions of people around the world.",
       ["has been read", "has read", "is reading", "reads"], "B1"),
    _q("b1_4", "I wish I _____ speak French fluently.", ["could", "can", "would", "should"], "B1"),
    _q("b1_5", "By the time we arrived, the movie _____.",
       ["had already started", "already started", "has already started", "is starting"], "B1"),
    _q("b1_6", "She _____ working here for five years next month.",
       ["will have been", "has been", "is", "was"], "B1"),

    # B2
    _q("b2_1", "If I had known about the problem, I _____ something about it.",
       ["would have done", "would do", "will do", "had done"], "B2"),
    _q("b2_2", "The manager insisted _____ the report by Friday.",
       ["on having", "to have", "having", "for having"], "B2"),
    _q("b2_3", "Not only _____ late, but he also forgot to bring the documents.",
       ["was he", "he was", "did he be", "he is"], "B2"),
    _q("b2_4", "She would rather you _____ tell anyone about the surprise party.",
       ["didn't", "don't", "won't", "wouldn't"], "B2"),
    _q("b2_5", "_____ the rain, we decided to go ahead with the picnic.",
       ["Despite", "Although", "Even", "However"], "B2"),
    _q("b2_6", "The more you practice, _____ you will become.",
       ["the better", "better", "the best", "more better"], "B2"),

    # C1
    _q("c1_1", "Had it not been for her quick thinking, the situation _____ much worse.",
       ["could have been", "would be", "could be", "had been"], "C1"),
    _q("c1_2", "The proposal was turned down _____ grounds that it was too expensive.",
       ["on the", "in the", "at the", "by the"], "C1"),
    _q("c1_3", "She gave _____ impression of being completely unaware of the situation.",
       ["every", "all", "any", "some"], "C1", "vocabulary"),
    _q("c1_4", "Under no circumstances _____ leave the building without permission.",
       ["should you", "you should", "could you", "you could"], "C1"),
    _q("c1_5", "The research findings _____ be published by the end of the year.",
       ["are due to", "are bound to", "are likely", "are about"], "C1", "vocabulary"),
    _q("c1_6", "Were it not for the scholarship, she _____ afford to attend university.",
       ["would not be able to", "will not be able to", "is not able to", "was not able to"], "C1"),

    # C2
    _q("c2_1", "The politician's speech was so full of _____ that nobody could understand his actual position.",
       ["circumlocution", "brevity", "clarity", "concision"], "C2", "vocabulary"),
    _q("c2_2", "His argument, _____ sound on the surface, failed to address the underlying issues.",
       ["albeit", "despite", "although", "whereas"], "C2"),
    _q("c2_3", "The new regulations have _____ far-reaching implications for the industry.",
       ["ostensibly", "manifestly", "purportedly", "seemingly"], "C2", "vocabulary"),
    _q("c2_4", "Little _____ that his decision would lead to such controversy.",
       ["did he realize", "he realized", "he did realize", "realized he"], "C2"),
    _q("c2_5", "The _____ nature of the negotiations made it difficult to predict the outcome.",
       ["protracted", "abbreviated", "curtailed", "truncated"], "C2", "vocabulary"),
    _q("c2_6", "The scientist's hypothesis, _____ initially met with skepticism, has since been validated.",
       ["which was", "that was", "being", "having been"], "C2"),
)


def questions_for(level: str) -> list[Question]:
    """Все вопросы банка заданного уровня"""
    return [q for q in QUESTION_BANK if q.difficulty == level]


def _search_order(level: str) -> list[str]:
    """Уровень, затем ближайшие соседи: сначала ниже, потом выше"""
    rank = level_rank(level)
    order = [level]
    for distance in range(1, len(CEFR_LEVELS)):
        for candidate in (rank - distance, rank + distance):
            if clamp_rank(candidate) == candidate:
                order.append(CEFR_LEVELS[candidate])
    return order


def pick_question(
    level: str,
    exclude_ids: Iterable[str] = (),
    rng: Optional[random.Random] = None
) -> Question:
    """
    Случайный неиспользованный вопрос уровня level с перемешанными вариантами.
    Если вопросы уровня закончились — берём с ближайшего уровня.
    """
    rng = rng or random.Random()
    used = set(exclude_ids)

    for candidate_level in _search_order(level):
        pool = [q for q in questions_for(candidate_level) if q.id not in used]
        if pool:
            return rng.choice(pool).shuffled(rng)

    raise LookupError("Банк вопросов исчерпан")

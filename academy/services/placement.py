"""
Оценка уровня CEFR по вступительному тесту.

Чистые функции без обращения к БД: адаптивный выбор сложности следующего
вопроса и итоговый расчёт уровня с уверенностью.

Сложность — ограниченное случайное блуждание по шести уровням: серия из
STREAK_TO_LEVEL_UP верных ответов поднимает на уровень, неверный ответ
опускает. Итог — самый высокий уровень, на котором взвешенная доля верных
ответов (по вопросам этого уровня и выше) достигает PASS_THRESHOLD.
Поздние и более сложные вопросы весят больше.
"""

import random
from dataclasses import dataclass, field
from typing import Optional, Sequence

from academy.errors import InvalidAnswer

CEFR_LEVELS = ("A1", "A2", "B1", "B2", "C1", "C2")

TOTAL_QUESTIONS = 8
START_LEVEL = "B1"
STREAK_TO_LEVEL_UP = 2

PASS_THRESHOLD = 0.6
HIGH_CONFIDENCE_MARGIN = 0.25
MEDIUM_CONFIDENCE_MARGIN = 0.10


def level_rank(level: str) -> int:
    """Порядковый номер уровня (A1 = 0 ... C2 = 5)"""
    try:
        return CEFR_LEVELS.index(level)
    except ValueError:
        raise ValueError(f"Неизвестный уровень CEFR: {level!r}") from None


def clamp_rank(rank: int) -> int:
    return max(0, min(rank, len(CEFR_LEVELS) - 1))


@dataclass(frozen=True)
class Question:
    """Вопрос вступительного теста"""
    id: str
    text: str
    options: tuple
    correct_answer: int
    difficulty: str
    skill: str = "grammar"

    def shuffled(self, rng: Optional[random.Random] = None) -> "Question":
        """Копия с перемешанными вариантами; индекс верного пересчитан"""
        rng = rng or random
        order = list(range(len(self.options)))
        rng.shuffle(order)
        return Question(
            id=self.id,
            text=self.text,
            options=tuple(self.options[i] for i in order),
            correct_answer=order.index(self.correct_answer),
            difficulty=self.difficulty,
            skill=self.skill,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "options": list(self.options),
            "correct_answer": self.correct_answer,
            "difficulty": self.difficulty,
            "skill": self.skill,
        }

    def public_dict(self) -> dict:
        """Представление для клиента — без верного ответа"""
        data = self.to_dict()
        del data["correct_answer"]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        return cls(
            id=str(data["id"]),
            text=data["text"],
            options=tuple(data["options"]),
            correct_answer=int(data["correct_answer"]),
            difficulty=data["difficulty"],
            skill=data.get("skill", "grammar"),
        )


@dataclass(frozen=True)
class Answer:
    """Ответ на один вопрос"""
    question_id: str
    difficulty: str
    selected_answer: int
    is_correct: bool

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "difficulty": self.difficulty,
            "selected_answer": self.selected_answer,
            "is_correct": self.is_correct,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Answer":
        return cls(
            question_id=str(data["question_id"]),
            difficulty=data["difficulty"],
            selected_answer=int(data["selected_answer"]),
            is_correct=bool(data["is_correct"]),
        )


@dataclass(frozen=True)
class PlacementResult:
    """Итог теста"""
    level: str
    confidence: str  # high, medium, low
    correct_answers: int
    total_questions: int
    band_scores: dict = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "confidence": self.confidence,
            "correct_answers": self.correct_answers,
            "total_questions": self.total_questions,
        }


def grade_answer(question: Question, option_index) -> Answer:
    """Проверить ответ. Индекс должен быть целым в [0, len(options))"""
    if isinstance(option_index, bool) or not isinstance(option_index, int):
        raise InvalidAnswer(f"Индекс варианта должен быть целым числом: {option_index!r}")
    if not 0 <= option_index < len(question.options):
        raise InvalidAnswer(
            f"Индекс {option_index} вне диапазона [0, {len(question.options)})",
            question_id=question.id,
        )
    return Answer(
        question_id=question.id,
        difficulty=question.difficulty,
        selected_answer=option_index,
        is_correct=option_index == question.correct_answer,
    )


def next_difficulty(answers: Sequence[Answer], start_level: str = START_LEVEL) -> str:
    """Уровень сложности следующего вопроса по истории ответов"""
    rank = level_rank(start_level)
    streak = 0

    for answer in answers:
        if answer.is_correct:
            streak += 1
            if streak >= STREAK_TO_LEVEL_UP:
                rank = clamp_rank(rank + 1)
                streak = 0
        else:
            rank = clamp_rank(rank - 1)
            streak = 0

    return CEFR_LEVELS[rank]


def answer_weight(position: int, total: int, difficulty: str) -> float:
    """Вес ответа: сложнее и позже — тяжелее"""
    return (level_rank(difficulty) + 1) * (1 + position / total)


def band_scores(answers: Sequence[Answer]) -> dict:
    """
    Взвешенная доля верных ответов для каждого уровня по вопросам этого
    уровня и выше. Уровни без таких вопросов в результат не попадают.
    """
    total = len(answers)
    scores = {}

    for band_rank, band in enumerate(CEFR_LEVELS):
        weighted_total = 0.0
        weighted_correct = 0.0
        for position, answer in enumerate(answers):
            if level_rank(answer.difficulty) < band_rank:
                continue
            weight = answer_weight(position, total, answer.difficulty)
            weighted_total += weight
            if answer.is_correct:
                weighted_correct += weight
        if weighted_total > 0:
            scores[band] = weighted_correct / weighted_total

    return scores


def confidence_for(score: float) -> str:
    """Насколько уверенно пройден (или не пройден) порог"""
    margin = abs(score - PASS_THRESHOLD)
    if margin >= HIGH_CONFIDENCE_MARGIN:
        return "high"
    if margin >= MEDIUM_CONFIDENCE_MARGIN:
        return "medium"
    return "low"


def estimate_level(answers: Sequence[Answer]) -> PlacementResult:
    """Итоговый уровень CEFR и уверенность по всем ответам попытки"""
    if not answers:
        raise ValueError("Нельзя оценить уровень без ответов")

    scores = band_scores(answers)
    passed = [band for band, score in scores.items() if score >= PASS_THRESHOLD]

    if passed:
        level = max(passed, key=level_rank)
        deciding_score = scores[level]
    else:
        # Порог не пройден даже на A1: ставим A1, уверенность по отрыву вниз
        level = CEFR_LEVELS[0]
        deciding_score = scores.get(level, 0.0)

    return PlacementResult(
        level=level,
        confidence=confidence_for(deciding_score),
        correct_answers=sum(1 for a in answers if a.is_correct),
        total_questions=len(answers),
        band_scores=scores,
    )

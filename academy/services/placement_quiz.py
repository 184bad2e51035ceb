"""
Прохождение вступительного теста: старт, ответы, завершение.

Хранилище передаётся параметром store (по умолчанию — модуль queries),
отправка результата — параметром notify. Каждая запись в попытку — это
compare-and-set по номеру шага, поэтому повторная отправка того же ответа
(дубль запроса) отклоняется, а не сдвигает тест дважды.
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from academy.config import config
from academy.database import queries as db
from academy.errors import (
    AcademyError, AttemptExpired, AttemptLimitReached, InvalidState, NotFound, StaleStep
)
from academy.services import llm, notifications
from academy.services.placement import (
    TOTAL_QUESTIONS, START_LEVEL, Answer, PlacementResult, Question,
    estimate_level, grade_answer, next_difficulty
)
from academy.services.question_bank import pick_question

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacementStep:
    """Текущий вопрос попытки"""
    attempt_id: str
    step: int  # номер вопроса, с 1
    total_questions: int
    question: Question
    expires_at: datetime

    def to_dict(self) -> dict:
        return {
            "attempt_id": self.attempt_id,
            "current_step": self.step,
            "total_questions": self.total_questions,
            "question": self.question.public_dict(),
            "expires_at": self.expires_at.isoformat(),
        }


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def day_start(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _step_for(attempt) -> PlacementStep:
    return PlacementStep(
        attempt_id=attempt.id,
        step=attempt.current_step + 1,
        total_questions=TOTAL_QUESTIONS,
        question=Question.from_dict(attempt.questions[attempt.current_step]),
        expires_at=attempt.expires_at,
    )


async def choose_question(level: str, served: list, rng: Optional[random.Random] = None) -> Question:
    """Вопрос уровня level: от модели, если включено, иначе из банка"""
    if llm.ai_enabled():
        question = await llm.generate_placement_question(level, [q.text for q in served])
        if question is not None:
            return question
    return pick_question(level, [q.id for q in served], rng)


async def get_active_attempt(learner_id: int, *, store=db, now: Optional[datetime] = None) -> Optional[PlacementStep]:
    """Незавершённая попытка ученика с текущим вопросом (для продолжения)"""
    now = now or utcnow()
    attempt = await store.get_active_placement_attempt(learner_id, now)
    if attempt is None or attempt.current_step >= len(attempt.questions):
        return None
    return _step_for(attempt)


async def start_attempt(
    learner_id: int,
    *,
    store=db,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None
) -> PlacementStep:
    """
    Начать тест. Если есть незавершённая попытка — продолжаем её.
    Новые попытки ограничены PLACEMENT_DAILY_LIMIT в сутки (UTC).
    """
    now = now or utcnow()

    active = await get_active_attempt(learner_id, store=store, now=now)
    if active is not None:
        logger.info(f"Продолжение теста: user={learner_id}, attempt={active.attempt_id}")
        return active

    if config.PLACEMENT_DAILY_LIMIT > 0:
        started_today = await store.count_placement_attempts_since(learner_id, day_start(now))
        if started_today >= config.PLACEMENT_DAILY_LIMIT:
            raise AttemptLimitReached(
                f"Лимит попыток на сегодня исчерпан: {started_today}",
                learner_id=learner_id,
            )

    question = await choose_question(START_LEVEL, [], rng)
    expires_at = now + timedelta(minutes=config.PLACEMENT_TTL_MINUTES)

    attempt = await store.create_placement_attempt(
        learner_id,
        [question.to_dict()],
        started_at=now,
        expires_at=expires_at
    )
    logger.info(f"Тест начат: user={learner_id}, attempt={attempt.id}")

    return _step_for(attempt)


async def _rejection(attempt_id: str, store, now: datetime) -> AcademyError:
    """Почему compare-and-set не прошёл: перечитываем попытку"""
    attempt = await store.get_placement_attempt(attempt_id)
    if attempt is None:
        return NotFound(f"Попытка {attempt_id} не найдена")
    if attempt.is_completed:
        return InvalidState(f"Попытка {attempt_id} уже завершена")
    if attempt.is_expired(now):
        return AttemptExpired(f"Попытка {attempt_id} истекла")
    return StaleStep(f"Ответ на шаг попытки {attempt_id} уже принят")


async def submit_answer(
    attempt_id: str,
    option_index: int,
    *,
    learner_id: Optional[int] = None,
    expected_step: Optional[int] = None,
    store=db,
    notify: Optional[Callable[[int, PlacementResult], object]] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None
) -> Union[PlacementStep, PlacementResult]:
    """
    Принять ответ на текущий вопрос.
    expected_step — номер вопроса (с 1), на который отвечает клиент;
    ответ на устаревший вопрос отклоняется как StaleStep.
    Возвращает следующий шаг или, после восьмого ответа, итоговый результат.
    """
    now = now or utcnow()

    attempt = await store.get_placement_attempt(attempt_id)
    if attempt is None or (learner_id is not None and attempt.user_id != learner_id):
        raise NotFound(f"Попытка {attempt_id} не найдена")
    if attempt.is_completed or attempt.current_step >= TOTAL_QUESTIONS:
        raise InvalidState(f"Попытка {attempt_id} уже завершена")
    if attempt.is_expired(now):
        raise AttemptExpired(f"Попытка {attempt_id} истекла")

    step = attempt.current_step
    if expected_step is not None and expected_step != step + 1:
        raise StaleStep(f"Вопрос {expected_step} попытки {attempt_id} уже не актуален")
    if step >= len(attempt.questions):
        raise InvalidState(f"В попытке {attempt_id} нет вопроса для шага {step + 1}")

    question = Question.from_dict(attempt.questions[step])
    answer = grade_answer(question, option_index)
    answers = [Answer.from_dict(a) for a in attempt.answers] + [answer]
    answer_rows = [a.to_dict() for a in answers]

    if len(answers) >= TOTAL_QUESTIONS:
        result = estimate_level(answers)
        completed = await store.complete_placement_attempt(
            attempt_id, step, answer_rows, result.level, result.confidence, now
        )
        if completed is None:
            raise await _rejection(attempt_id, store, now)

        logger.info(
            f"Тест завершён: user={attempt.user_id}, attempt={attempt_id}, "
            f"level={result.level}, confidence={result.confidence}"
        )

        notify = notify or notifications.schedule_placement_result
        try:
            notify(attempt.user_id, result)
        except Exception as e:
            logger.warning(f"Не удалось запланировать письмо с результатом: {e}")

        return result

    served = [Question.from_dict(q) for q in attempt.questions]
    next_question = await choose_question(next_difficulty(answers), served, rng)

    updated = await store.record_placement_answer(
        attempt_id,
        step,
        answer_rows,
        [q.to_dict() for q in served] + [next_question.to_dict()],
        now
    )
    if updated is None:
        raise await _rejection(attempt_id, store, now)

    return _step_for(updated)

"""
Курсы: загрузка прогресса с доступом к урокам, завершение урока, тесты уроков
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from academy.config import config
from academy.database import queries as db
from academy.database.connection import DATABASE_ERRORS
from academy.errors import LessonLocked, NotFound, ProgressUnavailable
from academy.services.progress_gate import (
    CourseProgress, compute_course_progress, locked_course_progress, progress_percent
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuizOutcome:
    """Результат теста к уроку"""
    quiz_id: int
    lesson_id: int
    score: int
    is_passed: bool
    passing_score: int
    results: tuple  # (question_id, user_answer, correct_answer, is_correct)


async def get_course_progress(learner_id: int, course_id: int, *, store=db) -> CourseProgress:
    """
    Прогресс ученика по курсу.
    Нет списка уроков — ProgressUnavailable; нет прогресса, тестов или
    тарифа — все уроки закрыты (available=False).
    """
    try:
        course = await store.get_course(course_id)
        lessons = await store.get_course_lessons(course_id) if course else []
    except DATABASE_ERRORS as e:
        logger.error(f"Не удалось загрузить курс {course_id}: {e}")
        raise ProgressUnavailable(f"Курс {course_id} недоступен") from e

    if course is None:
        raise NotFound(f"Курс {course_id} не найден")

    try:
        progress_rows = await store.get_lesson_progress_for_course(learner_id, course_id)
        quiz_lesson_ids = await store.get_quiz_lesson_ids(course_id)
        tier = await store.get_subscription_tier(learner_id)
    except DATABASE_ERRORS as e:
        logger.warning(f"Прогресс {learner_id} по курсу {course_id} недоступен, все уроки закрыты: {e}")
        return locked_course_progress(course_id, lessons)

    return compute_course_progress(course_id, lessons, progress_rows, quiz_lesson_ids, tier)


async def ensure_lesson_unlocked(learner_id: int, lesson_id: int, *, store=db):
    """Урок и прогресс курса; LessonLocked, если урок закрыт"""
    lesson = await store.get_lesson(lesson_id)
    if lesson is None:
        raise NotFound(f"Урок {lesson_id} не найден")

    progress = await get_course_progress(learner_id, lesson.course_id, store=store)
    if not progress.is_unlocked(lesson_id):
        status = progress.lesson(lesson_id)
        raise LessonLocked(
            f"Урок {lesson_id} закрыт для {learner_id}",
            by_subscription=bool(status and status.is_locked_by_subscription),
        )

    return lesson, progress


async def mark_lesson_complete(learner_id: int, lesson_id: int, *, store=db):
    """Отметить урок завершённым (только открытый урок)"""
    await ensure_lesson_unlocked(learner_id, lesson_id, store=store)
    row = await store.complete_lesson(learner_id, lesson_id)
    logger.info(f"Урок завершён: user={learner_id}, lesson={lesson_id}")
    return row


def score_quiz(questions: Sequence, answers: Sequence[Optional[int]]) -> tuple[int, tuple]:
    """Процент верных (округление половины вверх) и разбор по вопросам"""
    results = []
    correct = 0

    for index, question in enumerate(questions):
        user_answer = answers[index] if index < len(answers) else None
        is_correct = user_answer is not None and user_answer == question.correct_option_index
        if is_correct:
            correct += 1
        results.append((question.id, user_answer, question.correct_option_index, is_correct))

    score = progress_percent(correct, len(questions))
    return score, tuple(results)


async def submit_lesson_quiz(
    learner_id: int,
    quiz_id: int,
    answers: Sequence[Optional[int]],
    *,
    store=db
) -> QuizOutcome:
    """
    Сдать тест урока. Проходной балл — passing_score теста или QUIZ_PASSING_SCORE.
    При успехе урок отмечается как сданный и завершённый.
    """
    quiz = await store.get_quiz(quiz_id)
    if quiz is None:
        raise NotFound(f"Тест {quiz_id} не найден")

    await ensure_lesson_unlocked(learner_id, quiz.lesson_id, store=store)

    questions = await store.get_quiz_questions(quiz_id)
    if not questions:
        raise NotFound(f"В тесте {quiz_id} нет вопросов")

    score, results = score_quiz(questions, answers)
    passing_score = quiz.passing_score or config.QUIZ_PASSING_SCORE
    is_passed = score >= passing_score

    await store.create_quiz_attempt(
        learner_id,
        quiz_id,
        score,
        [a if a is not None else -1 for a in answers],
        is_passed
    )

    if is_passed:
        await store.mark_quiz_passed(learner_id, quiz.lesson_id)
        await store.complete_lesson(learner_id, quiz.lesson_id)

    logger.info(
        f"Тест урока: user={learner_id}, quiz={quiz_id}, score={score}, passed={is_passed}"
    )

    return QuizOutcome(
        quiz_id=quiz_id,
        lesson_id=quiz.lesson_id,
        score=score,
        is_passed=is_passed,
        passing_score=passing_score,
        results=results,
    )

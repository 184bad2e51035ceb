"""
Тесты курсов: загрузка прогресса, закрытие при ошибках, завершение уроков, тесты уроков

Курс из фикстуры course_store: урок 1 открытый, у урока 3 тест (quiz 30),
бесплатный потолок — 3 урока.

Запуск: pytest tests/test_courses.py -v
"""

import pytest

pytestmark = [pytest.mark.asyncio, pytest.mark.unit]

from academy.errors import LessonLocked, NotFound, ProgressUnavailable
from academy.services import courses


LEARNER = 111111111
ALL_CORRECT = [0, 1, 2, 3]


def unlocked(progress):
    return [s.is_unlocked for s in progress.lessons]


async def pass_first_two(store):
    await courses.mark_lesson_complete(LEARNER, 1, store=store)
    await courses.mark_lesson_complete(LEARNER, 2, store=store)


# ============================================
# Прогресс курса
# ============================================

async def test_new_learner(course_store):
    progress = await courses.get_course_progress(LEARNER, 1, store=course_store)

    assert unlocked(progress) == [True, False, False, False, False]
    assert progress.overall_progress_pct == 0
    assert progress.locked_by_subscription_count == 2


async def test_completing_lessons_opens_chain(course_store):
    await pass_first_two(course_store)

    progress = await courses.get_course_progress(LEARNER, 1, store=course_store)

    assert unlocked(progress) == [True, True, True, False, False]
    assert progress.overall_progress_pct == 40


async def test_unknown_course(course_store):
    with pytest.raises(NotFound):
        await courses.get_course_progress(LEARNER, 99, store=course_store)


async def test_lessons_unavailable(course_store):
    course_store.fail.add("get_course_lessons")

    with pytest.raises(ProgressUnavailable):
        await courses.get_course_progress(LEARNER, 1, store=course_store)


@pytest.mark.parametrize("failing", [
    "get_lesson_progress_for_course",
    "get_quiz_lesson_ids",
    "get_subscription_tier",
])
async def test_fail_closed(course_store, failing):
    await pass_first_two(course_store)
    course_store.tiers[LEARNER] = "premium"
    course_store.fail.add(failing)

    progress = await courses.get_course_progress(LEARNER, 1, store=course_store)

    assert len(progress.lessons) == 5
    assert unlocked(progress) == [False] * 5
    assert progress.available is False
    assert progress.overall_progress_pct == 0


async def test_fail_closed_blocks_lessons(course_store):
    course_store.fail.add("get_lesson_progress_for_course")

    with pytest.raises(LessonLocked):
        await courses.ensure_lesson_unlocked(LEARNER, 1, store=course_store)


async def test_repeatable(course_store):
    await pass_first_two(course_store)

    first = await courses.get_course_progress(LEARNER, 1, store=course_store)
    second = await courses.get_course_progress(LEARNER, 1, store=course_store)

    assert first == second


# ============================================
# Завершение урока
# ============================================

async def test_locked_lesson(course_store):
    with pytest.raises(LessonLocked) as exc:
        await courses.mark_lesson_complete(LEARNER, 2, store=course_store)

    assert exc.value.context["by_subscription"] is False
    assert (LEARNER, 2) not in course_store.progress


async def test_subscription_locked_lesson(course_store):
    await pass_first_two(course_store)
    await courses.submit_lesson_quiz(LEARNER, 30, ALL_CORRECT, store=course_store)

    with pytest.raises(LessonLocked) as exc:
        await courses.mark_lesson_complete(LEARNER, 4, store=course_store)

    assert exc.value.context["by_subscription"] is True


async def test_paid_tier_continues(course_store):
    course_store.tiers[LEARNER] = "standard"
    await pass_first_two(course_store)
    await courses.submit_lesson_quiz(LEARNER, 30, ALL_CORRECT, store=course_store)

    await courses.mark_lesson_complete(LEARNER, 4, store=course_store)

    progress = await courses.get_course_progress(LEARNER, 1, store=course_store)
    assert unlocked(progress) == [True] * 5
    assert progress.overall_progress_pct == 80


async def test_unknown_lesson(course_store):
    with pytest.raises(NotFound):
        await courses.mark_lesson_complete(LEARNER, 99, store=course_store)


async def test_completion_without_quiz_keeps_next_locked(course_store):
    await pass_first_two(course_store)
    await courses.mark_lesson_complete(LEARNER, 3, store=course_store)

    progress = await courses.get_course_progress(LEARNER, 1, store=course_store)

    assert progress.lesson(3).is_completed is True
    assert progress.lesson(3).quiz_passed is False
    # Урок 4 за потолком, но и по цепочке он закрыт
    course_store.tiers[LEARNER] = "premium"
    progress = await courses.get_course_progress(LEARNER, 1, store=course_store)
    assert progress.is_unlocked(4) is False


# ============================================
# Тест к уроку
# ============================================

async def test_passed(course_store):
    await pass_first_two(course_store)

    outcome = await courses.submit_lesson_quiz(LEARNER, 30, ALL_CORRECT, store=course_store)

    assert outcome.score == 100
    assert outcome.is_passed is True
    assert outcome.lesson_id == 3
    row = course_store.progress[(LEARNER, 3)]
    assert row.is_completed and row.quiz_passed
    assert course_store.quiz_attempts == [(LEARNER, 30, 100, ALL_CORRECT, True)]


async def test_failed(course_store):
    await pass_first_two(course_store)

    outcome = await courses.submit_lesson_quiz(LEARNER, 30, [0, 1, 0, 0], store=course_store)

    assert outcome.score == 50
    assert outcome.passing_score == 70
    assert outcome.is_passed is False
    assert (LEARNER, 3) not in course_store.progress


async def test_missing_answers_count_as_wrong(course_store):
    await pass_first_two(course_store)

    outcome = await courses.submit_lesson_quiz(LEARNER, 30, [0, None], store=course_store)

    assert outcome.score == 25
    assert course_store.quiz_attempts[-1][3] == [0, -1]
    assert [r[3] for r in outcome.results] == [True, False, False, False]


async def test_quiz_passing_score(course_store):
    course_store.add_lesson(6, 6, is_open=True)
    course_store.tiers[LEARNER] = "premium"
    course_store.add_quiz(60, 6, correct=(0, 0, 0, 0), passing_score=50)

    outcome = await courses.submit_lesson_quiz(LEARNER, 60, [0, 0, 1, 1], store=course_store)

    assert outcome.score == 50
    assert outcome.is_passed is True


async def test_locked_lesson_quiz(course_store):
    with pytest.raises(LessonLocked):
        await courses.submit_lesson_quiz(LEARNER, 30, ALL_CORRECT, store=course_store)

    assert course_store.quiz_attempts == []


async def test_unknown_quiz(course_store):
    with pytest.raises(NotFound):
        await courses.submit_lesson_quiz(LEARNER, 99, ALL_CORRECT, store=course_store)

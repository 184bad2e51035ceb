"""
Unit-тесты доступа к урокам: цепочка, потолок тарифа, процент прохождения

Запуск: pytest tests/test_progress_gate.py -v
"""

import random

import pytest

pytestmark = [pytest.mark.unit]

from academy.database.models import Lesson, LessonProgress
from academy.services.progress_gate import (
    Tier, compute_course_progress, lesson_limit, locked_course_progress,
    normalize_tier, progress_percent
)


USER = 111111111


def lesson(id_, order_index, is_open=False, is_preview=False):
    return Lesson(
        id=id_, course_id=1, title=f"Lección {id_}", description=None,
        video_url=None, order_index=order_index, is_open=is_open, is_preview=is_preview
    )


def done(lesson_id, quiz_passed=False, is_completed=True):
    return LessonProgress(
        id=lesson_id, user_id=USER, lesson_id=lesson_id, is_completed=is_completed,
        quiz_passed=quiz_passed, watched_seconds=0, last_watched_at=None
    )


def flags(progress, attr):
    return [getattr(s, attr) for s in progress.lessons]


# ============================================
# Сквозной пример: 5 уроков, пройдены 0 и 1 (у 1 сдан тест),
# урок 2 не открытый, бесплатный тариф с потолком 3
# ============================================

@pytest.fixture
def progress():
    lessons = [lesson(10 + i, i) for i in range(5)]
    rows = [done(10), done(11, quiz_passed=True)]
    return compute_course_progress(1, lessons, rows, {11}, "free", free_limit=3)


def test_unlocked(progress):
    assert flags(progress, "is_unlocked") == [True, True, True, False, False]


def test_completed(progress):
    assert flags(progress, "is_completed") == [True, True, False, False, False]


def test_locked_by_subscription(progress):
    assert flags(progress, "is_locked_by_subscription") == [False, False, False, True, True]
    assert progress.locked_by_subscription_count == 2


def test_percent_and_tier(progress):
    assert progress.overall_progress_pct == 40
    assert progress.tier is Tier.FREE
    assert progress.available is True


def test_to_dict(progress):
    data = progress.to_dict()
    assert data["tier"] == "free"
    assert [l["id"] for l in data["lessons"]] == [10, 11, 12, 13, 14]
    assert data["lessons"][2]["is_unlocked"] is True


# ============================================
# Цепочка уроков
# ============================================

def test_first_lesson_always_unlocked():
    progress = compute_course_progress(1, [lesson(1, 0), lesson(2, 1)], [], set(), "premium")
    assert flags(progress, "is_unlocked") == [True, False]


def test_unpassed_quiz_closes_chain():
    lessons = [lesson(1, 0), lesson(2, 1)]
    progress = compute_course_progress(1, lessons, [done(1)], {1}, "premium")
    assert flags(progress, "is_unlocked") == [True, False]

    progress = compute_course_progress(1, lessons, [done(1, quiz_passed=True)], {1}, "premium")
    assert flags(progress, "is_unlocked") == [True, True]


def test_passed_quiz_without_completion_is_not_enough():
    lessons = [lesson(1, 0), lesson(2, 1)]
    rows = [done(1, quiz_passed=True, is_completed=False)]
    progress = compute_course_progress(1, lessons, rows, {1}, "premium")
    assert flags(progress, "is_unlocked") == [True, False]


def test_open_lesson_unlocked_without_prerequisite():
    lessons = [lesson(1, 0), lesson(2, 1, is_open=True), lesson(3, 2)]
    progress = compute_course_progress(1, lessons, [], set(), "premium")
    assert flags(progress, "is_unlocked") == [True, True, False]


def test_open_lesson_must_be_passed_to_continue():
    lessons = [lesson(1, 0), lesson(2, 1, is_open=True), lesson(3, 2)]

    progress = compute_course_progress(1, lessons, [done(1)], set(), "premium")
    assert flags(progress, "is_unlocked") == [True, True, False]

    progress = compute_course_progress(1, lessons, [done(1), done(2)], set(), "premium")
    assert flags(progress, "is_unlocked") == [True, True, True]


def test_open_lesson_does_not_bypass_earlier_gap():
    lessons = [lesson(1, 0), lesson(2, 1), lesson(3, 2, is_open=True), lesson(4, 3)]
    progress = compute_course_progress(1, lessons, [done(3)], set(), "premium")
    assert flags(progress, "is_unlocked") == [True, False, True, False]


def test_preview_lesson_is_exempt():
    lessons = [lesson(1, 0), lesson(2, 1, is_preview=True)]
    progress = compute_course_progress(1, lessons, [], set(), "premium")
    assert flags(progress, "is_unlocked") == [True, True]


def test_ordered_by_order_index_then_id():
    lessons = [lesson(3, 1), lesson(2, 1), lesson(1, 0)]
    progress = compute_course_progress(1, lessons, [done(1)], set(), "premium")
    assert [s.id for s in progress.lessons] == [1, 2, 3]
    assert flags(progress, "is_unlocked") == [True, True, False]


def test_unknown_lesson_is_locked():
    progress = compute_course_progress(1, [lesson(1, 0)], [], set(), "premium")
    assert progress.is_unlocked(1) is True
    assert progress.is_unlocked(99) is False


def test_empty_course():
    progress = compute_course_progress(1, [], [], set(), "free")
    assert progress.lessons == ()
    assert progress.overall_progress_pct == 0


def test_preceding_incomplete_lesson_locks_next():
    rng = random.Random(2024)
    for _ in range(500):
        count = rng.randint(1, 8)
        order = rng.sample(range(count * 3), count)
        lessons = [lesson(i + 1, order[i], is_open=rng.random() < 0.25) for i in range(count)]
        with_quiz = {l.id for l in lessons if rng.random() < 0.3}
        rows = [
            done(l.id, quiz_passed=rng.random() < 0.5)
            for l in lessons if rng.random() < 0.6
        ]

        progress = compute_course_progress(1, lessons, rows, with_quiz, "premium")
        by_id = {l.id: l for l in lessons}
        passed = {
            r.lesson_id for r in rows
            if r.lesson_id not in with_quiz or r.quiz_passed
        }

        previous = None
        for status in progress.lessons:
            exempt = by_id[status.id].is_open
            if previous is not None and not exempt:
                prev_exempt = by_id[previous.id].is_open
                if not prev_exempt and previous.id not in passed:
                    assert status.is_unlocked is False
            if exempt:
                assert status.is_unlocked is True
            previous = status


# ============================================
# Тариф
# ============================================

def test_free_tier_ceiling_with_everything_completed():
    lessons = [lesson(i, i) for i in range(6)]
    rows = [done(i) for i in range(6)]
    progress = compute_course_progress(1, lessons, rows, set(), "free", free_limit=3)

    assert flags(progress, "is_unlocked") == [True, True, True, False, False, False]
    assert progress.overall_progress_pct == 100


def test_open_lesson_beyond_ceiling_stays_locked():
    lessons = [lesson(i, i, is_open=(i == 4)) for i in range(5)]
    progress = compute_course_progress(1, lessons, [], set(), "free", free_limit=3)
    assert progress.lesson(4).is_unlocked is False
    assert progress.lesson(4).is_locked_by_subscription is True


@pytest.mark.parametrize("tier", ["flex", "standard", "premium", "PREMIUM"])
def test_paid_tiers_have_no_ceiling(tier):
    lessons = [lesson(i, i) for i in range(6)]
    rows = [done(i) for i in range(6)]
    progress = compute_course_progress(1, lessons, rows, set(), tier)

    assert all(flags(progress, "is_unlocked"))
    assert progress.locked_by_subscription_count == 0


@pytest.mark.parametrize("value", [None, "", "gold", "trial"])
def test_unknown_tier_is_free(value):
    assert normalize_tier(value) is Tier.FREE


def test_limit_from_config(monkeypatch):
    from academy.config import config

    monkeypatch.setattr(config, "FREE_TIER_LESSON_LIMIT", 2)

    assert lesson_limit(Tier.FREE) == 2
    assert lesson_limit(Tier.PREMIUM) is None


# ============================================
# Процент и отказоустойчивость
# ============================================

@pytest.mark.parametrize("completed, total, expected", [
    (0, 0, 0),
    (0, 5, 0),
    (1, 3, 33),
    (2, 3, 67),
    (1, 8, 13),
    (5, 5, 100),
])
def test_progress_percent(completed, total, expected):
    assert progress_percent(completed, total) == expected


def test_locked_progress_hides_everything():
    lessons = [lesson(i, i, is_open=(i == 0)) for i in range(7)]
    progress = locked_course_progress(1, lessons, Tier.PREMIUM)

    assert len(progress.lessons) == 7
    assert not any(flags(progress, "is_unlocked"))
    assert not any(flags(progress, "is_completed"))
    assert progress.overall_progress_pct == 0
    assert progress.available is False


def test_idempotent():
    lessons = [lesson(i, i) for i in range(5)]
    rows = [done(0), done(1, quiz_passed=True)]

    first = compute_course_progress(1, lessons, rows, {1}, "free")
    second = compute_course_progress(1, lessons, rows, {1}, "free")

    assert first == second

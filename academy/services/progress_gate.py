"""
Доступ к урокам курса.

Урок открыт, если выполнены оба условия:
- цепочка: предыдущий урок пройден (завершён и, если есть тест, тест сдан).
  Открытые (is_open) и превью-уроки не требуют предыдущего урока, но сами
  должны быть пройдены, чтобы цепочка шла дальше;
- тариф: позиция урока меньше потолка тарифа (у бесплатного — лимит из
  конфигурации, у платных потолка нет).

Прогресс курса — доля завершённых уроков независимо от блокировок.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional

from academy.config import config


class Tier(str, Enum):
    """Тариф подписки"""

    FREE = "free"
    FLEX = "flex"
    STANDARD = "standard"
    PREMIUM = "premium"


def normalize_tier(value) -> Tier:
    """Неизвестный или пустой тариф считаем бесплатным"""
    if isinstance(value, Tier):
        return value
    try:
        return Tier(str(value).strip().lower())
    except ValueError:
        return Tier.FREE


def lesson_limit(tier: Tier, free_limit: Optional[int] = None) -> Optional[int]:
    """Потолок по позиции урока; None — без ограничения"""
    if normalize_tier(tier) is Tier.FREE:
        return config.FREE_TIER_LESSON_LIMIT if free_limit is None else free_limit
    return None


@dataclass(frozen=True)
class LessonStatus:
    """Состояние урока для ученика"""
    id: int
    title: str
    order_index: int
    is_open: bool
    has_quiz: bool
    quiz_passed: bool
    is_completed: bool
    is_unlocked: bool
    is_locked_by_subscription: bool

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "order_index": self.order_index,
            "is_open": self.is_open,
            "has_quiz": self.has_quiz,
            "quiz_passed": self.quiz_passed,
            "is_completed": self.is_completed,
            "is_unlocked": self.is_unlocked,
            "is_locked_by_subscription": self.is_locked_by_subscription,
        }


@dataclass(frozen=True)
class CourseProgress:
    """Прогресс по курсу с доступом к каждому уроку"""
    course_id: int
    lessons: tuple
    overall_progress_pct: int
    tier: Tier
    available: bool = True

    def lesson(self, lesson_id: int) -> Optional[LessonStatus]:
        for status in self.lessons:
            if status.id == lesson_id:
                return status
        return None

    def is_unlocked(self, lesson_id: int) -> bool:
        """Неизвестный урок — закрыт"""
        status = self.lesson(lesson_id)
        return bool(status and status.is_unlocked)

    @property
    def locked_by_subscription_count(self) -> int:
        return sum(1 for s in self.lessons if s.is_locked_by_subscription)

    def to_dict(self) -> dict:
        return {
            "course_id": self.course_id,
            "lessons": [s.to_dict() for s in self.lessons],
            "overall_progress_pct": self.overall_progress_pct,
            "tier": self.tier.value,
            "available": self.available,
        }


def progress_percent(completed: int, total: int) -> int:
    """Процент с округлением половины вверх; пустой курс — 0"""
    if total <= 0:
        return 0
    return (completed * 200 + total) // (total * 2)


def _ordered(lessons: Iterable) -> list:
    return sorted(lessons, key=lambda lesson: (lesson.order_index, lesson.id))


def compute_course_progress(
    course_id: int,
    lessons: Iterable,
    progress_rows: Iterable,
    quiz_lesson_ids: Iterable[int],
    tier,
    *,
    free_limit: Optional[int] = None
) -> CourseProgress:
    """
    Доступ к урокам курса по уже загруженным строкам.
    lessons — Lesson, progress_rows — LessonProgress ученика,
    quiz_lesson_ids — уроки с тестом.
    """
    tier = normalize_tier(tier)
    limit = lesson_limit(tier, free_limit)
    progress = {row.lesson_id: row for row in progress_rows}
    with_quiz = set(quiz_lesson_ids)

    statuses = []
    chain_open = True

    for position, lesson in enumerate(_ordered(lessons)):
        row = progress.get(lesson.id)
        is_completed = bool(row and row.is_completed)
        quiz_passed = bool(row and row.quiz_passed)
        has_quiz = lesson.id in with_quiz
        exempt = lesson.is_open or getattr(lesson, "is_preview", False)

        locked_by_subscription = limit is not None and position >= limit

        statuses.append(LessonStatus(
            id=lesson.id,
            title=lesson.title,
            order_index=lesson.order_index,
            is_open=lesson.is_open,
            has_quiz=has_quiz,
            quiz_passed=quiz_passed,
            is_completed=is_completed,
            is_unlocked=(chain_open or exempt) and not locked_by_subscription,
            is_locked_by_subscription=locked_by_subscription,
        ))

        passed = is_completed and (not has_quiz or quiz_passed)
        chain_open = (chain_open and passed) if exempt else passed

    completed = sum(1 for s in statuses if s.is_completed)

    return CourseProgress(
        course_id=course_id,
        lessons=tuple(statuses),
        overall_progress_pct=progress_percent(completed, len(statuses)),
        tier=tier,
    )


def locked_course_progress(
    course_id: int,
    lessons: Iterable,
    tier=Tier.FREE,
    *,
    free_limit: Optional[int] = None
) -> CourseProgress:
    """
    Закрытое представление курса, когда прогресс не удалось загрузить:
    все уроки закрыты, ничего не считается пройденным.
    """
    base = compute_course_progress(course_id, lessons, (), (), tier, free_limit=free_limit)
    return CourseProgress(
        course_id=course_id,
        lessons=tuple(replace(s, is_unlocked=False) for s in base.lessons),
        overall_progress_pct=0,
        tier=base.tier,
        available=False,
    )

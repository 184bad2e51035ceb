"""
SQL-запросы к базе данных
"""

import uuid
from datetime import datetime
from typing import Optional, List, Set

from academy.database.connection import get_pool
from academy.database.models import (
    User, PlacementAttempt, Course, Lesson, LessonProgress,
    Quiz, QuizQuestion, QuizAttempt
)


def _user(row) -> User:
    data = dict(row)
    if data.get("placement_attempt_id") is not None:
        data["placement_attempt_id"] = str(data["placement_attempt_id"])
    return User(**data)


def _attempt(row) -> PlacementAttempt:
    data = dict(row)
    data["id"] = str(data["id"])
    return PlacementAttempt(**data)


# ============================================
# Users
# ============================================

async def get_user(tg_id: int) -> Optional[User]:
    """Получить пользователя по Telegram ID"""
    pool = await get_pool()
    row = await pool.fetchrow(
        "SELECT * FROM users WHERE tg_id = $1",
        tg_id
    )
    if row:
        return _user(row)
    return None


async def create_user(tg_id: int, username: str, full_name: str) -> User:
    """Создать нового пользователя"""
    pool = await get_pool()
    row = await pool.fetchrow(
        """
        INSERT INTO users (tg_id, username, full_name)
        VALUES ($1, $2, $3)
        ON CONFLICT (tg_id) DO UPDATE SET username = EXCLUDED.username
        RETURNING *
        """,
        tg_id, username, full_name
    )
    return _user(row)


async def update_user_state(tg_id: int, state: str):
    """Обновить состояние пользователя"""
    pool = await get_pool()
    await pool.execute(
        "UPDATE users SET state = $1, last_activity = NOW() WHERE tg_id = $2",
        state, tg_id
    )


async def set_user_email(tg_id: int, email: str):
    """Сохранить email для писем с результатами"""
    pool = await get_pool()
    await pool.execute(
        "UPDATE users SET email = $2, last_activity = NOW() WHERE tg_id = $1",
        tg_id, email
    )


async def get_all_users() -> List[User]:
    """Все пользователи (для broadcast и /users)"""
    pool = await get_pool()
    rows = await pool.fetch("SELECT * FROM users ORDER BY created_at")
    return [_user(row) for row in rows]


# ============================================
# Subscriptions
# ============================================

async def get_subscription_tier(user_id: int) -> str:
    """Тариф ученика; без подписки — free"""
    pool = await get_pool()
    tier = await pool.fetchval(
        "SELECT tier FROM subscriptions WHERE user_id = $1",
        user_id
    )
    return tier or "free"


async def set_subscription_tier(user_id: int, tier: str):
    """Установить тариф (биллинг / админ)"""
    pool = await get_pool()
    await pool.execute(
        """
        INSERT INTO subscriptions (user_id, tier)
        VALUES ($1, $2)
        ON CONFLICT (user_id)
        DO UPDATE SET tier = $2, updated_at = NOW()
        """,
        user_id, tier
    )


# ============================================
# Placement attempts
# ============================================

async def create_placement_attempt(
    user_id: int,
    questions: list,
    started_at: datetime,
    expires_at: datetime
) -> PlacementAttempt:
    """Создать попытку теста с первым вопросом"""
    pool = await get_pool()
    row = await pool.fetchrow(
        """
        INSERT INTO placement_attempts (user_id, questions, started_at, expires_at)
        VALUES ($1, $2, $3, $4)
        RETURNING *
        """,
        user_id, questions, started_at, expires_at
    )
    return _attempt(row)


async def get_placement_attempt(attempt_id: str) -> Optional[PlacementAttempt]:
    """Получить попытку по ID (невалидный UUID — как отсутствующая)"""
    try:
        attempt_uuid = uuid.UUID(str(attempt_id))
    except ValueError:
        return None

    pool = await get_pool()
    row = await pool.fetchrow(
        "SELECT * FROM placement_attempts WHERE id = $1",
        attempt_uuid
    )
    if row:
        return _attempt(row)
    return None


async def get_active_placement_attempt(user_id: int, now: datetime) -> Optional[PlacementAttempt]:
    """Незавершённая и не истёкшая попытка ученика"""
    pool = await get_pool()
    row = await pool.fetchrow(
        """
        SELECT * FROM placement_attempts
        WHERE user_id = $1 AND status = 'in_progress' AND expires_at > $2
        ORDER BY started_at DESC
        LIMIT 1
        """,
        user_id, now
    )
    if row:
        return _attempt(row)
    return None


async def count_placement_attempts_since(user_id: int, since: datetime) -> int:
    """Количество начатых попыток с момента since (дневной лимит)"""
    pool = await get_pool()
    count = await pool.fetchval(
        "SELECT COUNT(*) FROM placement_attempts WHERE user_id = $1 AND started_at >= $2",
        user_id, since
    )
    return count or 0


async def record_placement_answer(
    attempt_id: str,
    expected_step: int,
    answers: list,
    questions: list,
    now: datetime
) -> Optional[PlacementAttempt]:
    """
    Сохранить ответ и следующий вопрос.
    Compare-and-set по current_step: вторая параллельная запись не пройдёт
    и вернёт None.
    """
    pool = await get_pool()
    row = await pool.fetchrow(
        """
        UPDATE placement_attempts
        SET answers = $3, questions = $4, current_step = $2 + 1
        WHERE id = $1
          AND status = 'in_progress'
          AND current_step = $2
          AND expires_at > $5
        RETURNING *
        """,
        uuid.UUID(str(attempt_id)), expected_step, answers, questions, now
    )
    if row:
        return _attempt(row)
    return None


async def complete_placement_attempt(
    attempt_id: str,
    expected_step: int,
    answers: list,
    level: str,
    confidence: str,
    now: datetime
) -> Optional[PlacementAttempt]:
    """
    Закрыть попытку с итоговым уровнем (тот же compare-and-set).
    В той же транзакции уровень пишется в профиль ученика, но только если
    его там ещё нет: первый результат остаётся.
    """
    pool = await get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            row = await conn.fetchrow(
                """
                UPDATE placement_attempts
                SET answers = $3,
                    current_step = $2 + 1,
                    status = 'completed',
                    computed_level = $4,
                    confidence = $5,
                    completed_at = $6
                WHERE id = $1
                  AND status = 'in_progress'
                  AND current_step = $2
                  AND expires_at > $6
                RETURNING *
                """,
                uuid.UUID(str(attempt_id)), expected_step, answers, level, confidence, now
            )
            if not row:
                return None

            await conn.execute(
                """
                UPDATE users
                SET placement_level = $2, placement_confidence = $3, placement_attempt_id = $4
                WHERE tg_id = $1 AND placement_level IS NULL
                """,
                row["user_id"], level, confidence, row["id"]
            )

    return _attempt(row)


async def expire_placement_attempts(now: datetime) -> int:
    """Пометить просроченные попытки как expired. Возвращает количество"""
    pool = await get_pool()
    rows = await pool.fetch(
        """
        UPDATE placement_attempts
        SET status = 'expired'
        WHERE status = 'in_progress' AND expires_at <= $1
        RETURNING id
        """,
        now
    )
    return len(rows)


# ============================================
# Courses & Lessons
# ============================================

async def get_courses(published_only: bool = True) -> List[Course]:
    """Каталог курсов"""
    pool = await get_pool()
    rows = await pool.fetch(
        """
        SELECT * FROM courses
        WHERE is_published OR NOT $1
        ORDER BY id
        """,
        published_only
    )
    return [Course(**dict(row)) for row in rows]


async def get_course(course_id: int) -> Optional[Course]:
    """Получить курс по ID"""
    pool = await get_pool()
    row = await pool.fetchrow(
        "SELECT * FROM courses WHERE id = $1",
        course_id
    )
    if row:
        return Course(**dict(row))
    return None


async def get_course_lessons(course_id: int) -> List[Lesson]:
    """Уроки курса в порядке order_index"""
    pool = await get_pool()
    rows = await pool.fetch(
        "SELECT * FROM lessons WHERE course_id = $1 ORDER BY order_index, id",
        course_id
    )
    return [Lesson(**dict(row)) for row in rows]


async def get_lesson(lesson_id: int) -> Optional[Lesson]:
    """Получить урок по ID"""
    pool = await get_pool()
    row = await pool.fetchrow(
        "SELECT * FROM lessons WHERE id = $1",
        lesson_id
    )
    if row:
        return Lesson(**dict(row))
    return None


# ============================================
# Lesson progress
# ============================================

async def get_lesson_progress_for_course(user_id: int, course_id: int) -> List[LessonProgress]:
    """Прогресс ученика по всем урокам курса"""
    pool = await get_pool()
    rows = await pool.fetch(
        """
        SELECT lp.* FROM lesson_progress lp
        INNER JOIN lessons l ON l.id = lp.lesson_id
        WHERE lp.user_id = $1 AND l.course_id = $2
        """,
        user_id, course_id
    )
    return [LessonProgress(**dict(row)) for row in rows]


async def complete_lesson(user_id: int, lesson_id: int) -> LessonProgress:
    """Завершить урок (запись создаётся при первом обращении)"""
    pool = await get_pool()
    row = await pool.fetchrow(
        """
        INSERT INTO lesson_progress (user_id, lesson_id, is_completed)
        VALUES ($1, $2, TRUE)
        ON CONFLICT (user_id, lesson_id)
        DO UPDATE SET is_completed = TRUE, last_watched_at = NOW()
        RETURNING *
        """,
        user_id, lesson_id
    )
    return LessonProgress(**dict(row))


async def mark_quiz_passed(user_id: int, lesson_id: int) -> LessonProgress:
    """Отметить тест урока как сданный"""
    pool = await get_pool()
    row = await pool.fetchrow(
        """
        INSERT INTO lesson_progress (user_id, lesson_id, quiz_passed)
        VALUES ($1, $2, TRUE)
        ON CONFLICT (user_id, lesson_id)
        DO UPDATE SET quiz_passed = TRUE, last_watched_at = NOW()
        RETURNING *
        """,
        user_id, lesson_id
    )
    return LessonProgress(**dict(row))


# ============================================
# Lesson quizzes
# ============================================

async def get_quiz_lesson_ids(course_id: int) -> Set[int]:
    """ID уроков курса, к которым привязан тест"""
    pool = await get_pool()
    rows = await pool.fetch(
        "SELECT DISTINCT lesson_id FROM quizzes WHERE course_id = $1",
        course_id
    )
    return {row["lesson_id"] for row in rows}


async def get_quiz(quiz_id: int) -> Optional[Quiz]:
    """Получить тест по ID"""
    pool = await get_pool()
    row = await pool.fetchrow(
        "SELECT * FROM quizzes WHERE id = $1",
        quiz_id
    )
    if row:
        return Quiz(**dict(row))
    return None


async def get_quiz_for_lesson(lesson_id: int) -> Optional[Quiz]:
    """Тест урока (если есть)"""
    pool = await get_pool()
    row = await pool.fetchrow(
        "SELECT * FROM quizzes WHERE lesson_id = $1 ORDER BY id LIMIT 1",
        lesson_id
    )
    if row:
        return Quiz(**dict(row))
    return None


async def get_quiz_questions(quiz_id: int) -> List[QuizQuestion]:
    """Вопросы теста по порядку"""
    pool = await get_pool()
    rows = await pool.fetch(
        "SELECT * FROM quiz_questions WHERE quiz_id = $1 ORDER BY order_index, id",
        quiz_id
    )
    return [QuizQuestion(**dict(row)) for row in rows]


async def create_quiz_attempt(
    user_id: int,
    quiz_id: int,
    score: int,
    answers: list,
    is_passed: bool
) -> QuizAttempt:
    """Сохранить попытку теста к уроку"""
    pool = await get_pool()
    row = await pool.fetchrow(
        """
        INSERT INTO quiz_attempts (user_id, quiz_id, score, answers, is_passed)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING *
        """,
        user_id, quiz_id, score, answers, is_passed
    )
    return QuizAttempt(**dict(row))


# ============================================
# Admin / Stats
# ============================================

async def get_stats() -> dict:
    """Счётчики для /stat"""
    pool = await get_pool()
    row = await pool.fetchrow(
        """
        SELECT
            (SELECT COUNT(*) FROM users) AS users,
            (SELECT COUNT(*) FROM placement_attempts WHERE status = 'completed') AS placements,
            (SELECT COUNT(*) FROM lesson_progress WHERE is_completed) AS lessons_completed,
            (SELECT COUNT(*) FROM subscriptions WHERE tier <> 'free') AS paid
        """
    )
    return dict(row)


async def get_placement_level_distribution() -> List[dict]:
    """Распределение учеников по уровням"""
    pool = await get_pool()
    rows = await pool.fetch(
        """
        SELECT placement_level AS level, COUNT(*) AS count
        FROM users
        WHERE placement_level IS NOT NULL
        GROUP BY placement_level
        ORDER BY placement_level
        """
    )
    return [dict(row) for row in rows]

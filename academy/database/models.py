"""
Модели данных (dataclasses)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class User:
    """Ученик (идентифицируется Telegram ID)"""
    tg_id: int
    username: Optional[str]
    full_name: Optional[str]
    email: Optional[str]
    state: str
    placement_level: Optional[str]
    placement_confidence: Optional[str]
    placement_attempt_id: Optional[str]
    created_at: datetime
    last_activity: datetime


@dataclass
class PlacementAttempt:
    """Попытка вступительного теста"""
    id: str
    user_id: int
    questions: list  # выданные вопросы (dict), растёт на один за шаг
    answers: list  # {question_id, difficulty, selected_answer, is_correct}
    current_step: int
    status: str  # in_progress, completed, expired
    computed_level: Optional[str]
    confidence: Optional[str]
    started_at: datetime
    expires_at: datetime
    completed_at: Optional[datetime]

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    def is_expired(self, now: datetime) -> bool:
        return self.status == "expired" or now >= self.expires_at


@dataclass
class Course:
    """Курс"""
    id: int
    title: str
    description: Optional[str]
    level: str
    is_published: bool
    created_at: datetime


@dataclass
class Lesson:
    """Урок курса"""
    id: int
    course_id: int
    title: str
    description: Optional[str]
    video_url: Optional[str]
    order_index: int
    is_open: bool = False
    is_preview: bool = False


@dataclass
class LessonProgress:
    """Прогресс ученика по уроку"""
    id: int
    user_id: int
    lesson_id: int
    is_completed: bool
    quiz_passed: bool
    watched_seconds: int
    last_watched_at: datetime


@dataclass
class Quiz:
    """Тест к уроку"""
    id: int
    course_id: int
    lesson_id: int
    title: str
    passing_score: Optional[int]


@dataclass
class QuizQuestion:
    """Вопрос теста к уроку"""
    id: int
    quiz_id: int
    question: str
    options: list = field(default_factory=list)
    correct_option_index: int = 0
    explanation: Optional[str] = None
    order_index: int = 0


@dataclass
class QuizAttempt:
    """Сданный тест к уроку"""
    id: int
    user_id: int
    quiz_id: int
    score: int
    answers: list
    is_passed: bool
    created_at: datetime

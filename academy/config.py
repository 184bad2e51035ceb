"""
Конфигурация бота — загрузка переменных окружения
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Загружаем .env из корня проекта
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Конфигурация приложения"""

    # --- Telegram ---
    BOT_TOKEN: str = os.getenv("BOT_TOKEN", "")
    ADMIN_IDS: list[int] = [
        int(id_.strip())
        for id_ in os.getenv("ADMIN_IDS", "").split(",")
        if id_.strip()
    ]

    # --- Database ---
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # --- OpenAI (генерация вопросов теста) ---
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    LLM_TIMEOUT: int = int(os.getenv("LLM_TIMEOUT", "15"))
    PLACEMENT_USE_AI: bool = _flag("PLACEMENT_USE_AI")

    # --- Email (Resend) ---
    RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "info@inscripciones.cogniboost.co")
    EMAIL_TIMEOUT: int = int(os.getenv("EMAIL_TIMEOUT", "10"))

    # --- Placement quiz ---
    PLACEMENT_TTL_MINUTES: int = int(os.getenv("PLACEMENT_TTL_MINUTES", "30"))
    PLACEMENT_DAILY_LIMIT: int = int(os.getenv("PLACEMENT_DAILY_LIMIT", "3"))
    PLACEMENT_EXPIRY_SWEEP_MINUTES: int = int(os.getenv("PLACEMENT_EXPIRY_SWEEP_MINUTES", "5"))

    # --- Courses ---
    # Потолок бесплатного тарифа: уроки с позицией >= лимита закрыты
    FREE_TIER_LESSON_LIMIT: int = int(os.getenv("FREE_TIER_LESSON_LIMIT", "3"))
    QUIZ_PASSING_SCORE: int = int(os.getenv("QUIZ_PASSING_SCORE", "70"))

    # --- Settings ---
    TIMEZONE: str = os.getenv("TIMEZONE", "America/Bogota")

    @classmethod
    def validate(cls) -> list[str]:
        """Проверка обязательных переменных"""
        errors = []

        if not cls.BOT_TOKEN:
            errors.append("BOT_TOKEN не задан")
        if not cls.DATABASE_URL:
            errors.append("DATABASE_URL не задан")
        if cls.PLACEMENT_USE_AI and not cls.OPENAI_API_KEY:
            errors.append("PLACEMENT_USE_AI включён, но OPENAI_API_KEY не задан")
        if cls.PLACEMENT_TTL_MINUTES <= 0:
            errors.append("PLACEMENT_TTL_MINUTES должен быть больше нуля")

        return errors


# Синглтон конфигурации
config = Config()

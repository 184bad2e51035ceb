"""
FSM состояния пользователей
"""

from enum import Enum


class UserState(str, Enum):
    """Состояния пользователя в боте"""

    IDLE = "IDLE"                      # Главное меню, ждёт действий

    # Вступительный тест
    PLACEMENT = "PLACEMENT"            # Проходит тест уровня

    # Курсы
    VIEWING_LESSON = "VIEWING_LESSON"  # Смотрит урок
    LESSON_QUIZ = "LESSON_QUIZ"        # Отвечает на тест урока

    # Профиль
    WAITING_EMAIL = "WAITING_EMAIL"    # Ожидание ввода email

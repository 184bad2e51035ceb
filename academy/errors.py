"""
Исключения предметной области.

Сервисы поднимают их, хендлеры перехватывают на границе и отвечают
пользователю через to_user_message().
"""


class AcademyError(Exception):
    """Базовое исключение академии"""

    user_message = "Algo salió mal. Inténtalo de nuevo."

    def __init__(self, message: str = "", **context):
        self.message = message or self.__class__.__name__
        self.context = context
        super().__init__(self.message)

    def to_user_message(self) -> str:
        return f"❌ {self.user_message}"


class NotFound(AcademyError):
    """Неизвестная попытка, курс, урок или тест"""

    user_message = "No encontramos lo que buscas."


class InvalidState(AcademyError):
    """Операция недопустима в текущем состоянии (например, ответ в закрытую попытку)"""

    user_message = "Este examen ya fue finalizado."


class StaleStep(InvalidState):
    """Ответ на вопрос, который уже пройден; попытка продолжается"""

    user_message = "Esa pregunta ya fue respondida. Sigue con la pregunta actual."


class AttemptExpired(AcademyError):
    """Истёк TTL попытки теста"""

    user_message = "El tiempo del examen terminó. Empieza uno nuevo cuando quieras."


class ProgressUnavailable(AcademyError):
    """Не удалось загрузить данные о прогрессе"""

    user_message = "No pudimos cargar tu progreso. Inténtalo más tarde."


class InvalidAnswer(AcademyError, ValueError):
    """Индекс варианта вне диапазона"""

    user_message = "Respuesta no válida."


class AttemptLimitReached(AcademyError):
    """Превышен дневной лимит попыток теста"""

    user_message = "Alcanzaste el límite de intentos por hoy. Vuelve mañana."


class LessonLocked(AcademyError):
    """Урок закрыт: не пройден предыдущий урок или ограничение тарифа"""

    user_message = "Esta lección todavía está bloqueada."

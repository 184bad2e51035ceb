"""
Клавиатуры бота
"""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup


# ============================================
# Главное меню
# ============================================

def main_menu_keyboard() -> InlineKeyboardMarkup:
    """Главное меню"""
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("🎯 Examen de nivel", callback_data="placement_start")],
        [InlineKeyboardButton("📚 Cursos", callback_data="courses")],
        [InlineKeyboardButton("📊 Mi nivel", callback_data="my_level")],
        [InlineKeyboardButton("✉️ Mi email", callback_data="set_email")]
    ])


def back_to_menu_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("🏠 Menú principal", callback_data="main_menu")]
    ])


def cancel_keyboard() -> InlineKeyboardMarkup:
    """Кнопка отмены"""
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("❌ Cancelar", callback_data="cancel")]
    ])


# ============================================
# Вступительный тест
# ============================================

def placement_question_keyboard(attempt_id: str, step: int, options) -> InlineKeyboardMarkup:
    """Варианты ответа; шаг в callback_data отсекает нажатия по старым сообщениям"""
    buttons = [
        [InlineKeyboardButton(option, callback_data=f"placement:{attempt_id}:{step}:{index}")]
        for index, option in enumerate(options)
    ]
    buttons.append([InlineKeyboardButton("🏠 Menú principal", callback_data="main_menu")])
    return InlineKeyboardMarkup(buttons)


def placement_result_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("📚 Ver cursos", callback_data="courses")],
        [InlineKeyboardButton("🏠 Menú principal", callback_data="main_menu")]
    ])


# ============================================
# Курсы и уроки
# ============================================

def courses_keyboard(courses) -> InlineKeyboardMarkup:
    """Каталог курсов"""
    buttons = [
        [InlineKeyboardButton(f"{course.level} · {course.title}", callback_data=f"course:{course.id}")]
        for course in courses
    ]
    buttons.append([InlineKeyboardButton("🏠 Menú principal", callback_data="main_menu")])
    return InlineKeyboardMarkup(buttons)


def lesson_icon(status) -> str:
    if status.is_locked_by_subscription:
        return "💎"
    if not status.is_unlocked:
        return "🔒"
    if status.is_completed:
        return "✅"
    return "▶️"


def course_keyboard(progress) -> InlineKeyboardMarkup:
    """Уроки курса со значками доступа"""
    buttons = [
        [InlineKeyboardButton(
            f"{lesson_icon(status)} {position + 1}. {status.title}",
            callback_data=f"view_lesson:{status.id}"
        )]
        for position, status in enumerate(progress.lessons)
    ]
    buttons.append([InlineKeyboardButton("⬅️ Cursos", callback_data="courses")])
    return InlineKeyboardMarkup(buttons)


def lesson_keyboard(lesson_id: int, course_id: int, has_quiz: bool) -> InlineKeyboardMarkup:
    """Клавиатура урока"""
    buttons = []

    if has_quiz:
        buttons.append([InlineKeyboardButton("📝 Hacer el quiz", callback_data=f"quiz_start:{lesson_id}")])
    else:
        buttons.append([InlineKeyboardButton("✅ Lección completada", callback_data=f"mark_done:{lesson_id}")])

    buttons.append([InlineKeyboardButton("⬅️ Volver al curso", callback_data=f"course:{course_id}")])
    buttons.append([InlineKeyboardButton("🏠 Menú principal", callback_data="main_menu")])

    return InlineKeyboardMarkup(buttons)


def quiz_question_keyboard(quiz_id: int, index: int, options) -> InlineKeyboardMarkup:
    """Варианты ответа теста урока"""
    buttons = [
        [InlineKeyboardButton(option, callback_data=f"quiz_answer:{quiz_id}:{index}:{option_index}")]
        for option_index, option in enumerate(options)
    ]
    buttons.append([InlineKeyboardButton("❌ Cancelar", callback_data="cancel")])
    return InlineKeyboardMarkup(buttons)

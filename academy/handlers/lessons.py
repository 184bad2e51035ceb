"""
Обработчики курсов, уроков и тестов к урокам
"""

import logging
from telegram import Update
from telegram.ext import ContextTypes

from academy.states import UserState
from academy.keyboards import (
    back_to_menu_keyboard, course_keyboard, courses_keyboard,
    lesson_keyboard, main_menu_keyboard, quiz_question_keyboard
)
from academy.database import queries as db
from academy.errors import AcademyError, LessonLocked, NotFound
from academy.services import courses

logger = logging.getLogger(__name__)


def _id_from(data: str) -> int:
    """course:5 -> 5"""
    return int(data.split(":")[1])


async def courses_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Callback: каталог курсов"""
    query = update.callback_query
    await query.answer()

    catalog = await db.get_courses()
    if not catalog:
        await query.edit_message_text(
            "Todavía no hay cursos publicados.",
            reply_markup=back_to_menu_keyboard()
        )
        return

    await query.edit_message_text(
        "📚 Cursos disponibles:",
        reply_markup=courses_keyboard(catalog)
    )


async def course_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Callback: уроки курса и прогресс"""
    query = update.callback_query
    await query.answer()

    tg_id = query.from_user.id
    course_id = _id_from(query.data)

    try:
        progress = await courses.get_course_progress(tg_id, course_id)
    except AcademyError as e:
        logger.warning(f"Курс {course_id} не показан {tg_id}: {e.message}")
        await query.edit_message_text(e.to_user_message(), reply_markup=main_menu_keyboard())
        return

    course = await db.get_course(course_id)
    title = course.title if course else f"Curso {course_id}"

    text = f"📚 {title}\n\nProgreso: {progress.overall_progress_pct}%"

    if not progress.available:
        text += "\n\n⚠️ No pudimos cargar tu progreso. Las lecciones están bloqueadas por ahora."
    elif progress.locked_by_subscription_count:
        text += (
            f"\n\n💎 {progress.locked_by_subscription_count} lecciones requieren un plan de pago."
        )

    await query.edit_message_text(text, reply_markup=course_keyboard(progress))


async def view_lesson_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Callback: показать урок (только открытый)"""
    query = update.callback_query

    tg_id = query.from_user.id
    lesson_id = _id_from(query.data)  # view_lesson:5

    try:
        lesson, progress = await courses.ensure_lesson_unlocked(tg_id, lesson_id)
    except LessonLocked as e:
        if e.context.get("by_subscription"):
            await query.answer("💎 Esta lección requiere un plan de pago", show_alert=True)
        else:
            await query.answer("🔒 Completa la lección anterior primero", show_alert=True)
        return
    except AcademyError as e:
        await query.answer()
        await query.edit_message_text(e.to_user_message(), reply_markup=main_menu_keyboard())
        return

    await query.answer()
    await db.update_user_state(tg_id, UserState.VIEWING_LESSON.value)

    status = progress.lesson(lesson_id)
    has_quiz = bool(status and status.has_quiz and not status.quiz_passed)

    text = f"{lesson.title}\n\n"
    if lesson.video_url:
        text += f"Video: {lesson.video_url}\n\n"
    if lesson.description:
        text += f"{lesson.description}\n\n"
    if status and status.is_completed:
        text += "✅ Lección completada."
    elif has_quiz:
        text += "Aprueba el quiz para completar la lección."

    await query.edit_message_text(
        text,
        reply_markup=lesson_keyboard(lesson.id, lesson.course_id, has_quiz),
        disable_web_page_preview=True
    )


async def mark_done_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Callback: отметить урок изученным"""
    query = update.callback_query

    tg_id = query.from_user.id
    lesson_id = _id_from(query.data)  # mark_done:8

    try:
        await courses.mark_lesson_complete(tg_id, lesson_id)
    except LessonLocked:
        await query.answer("🔒 Esta lección todavía está bloqueada", show_alert=True)
        return
    except AcademyError as e:
        await query.answer()
        await query.edit_message_text(e.to_user_message(), reply_markup=main_menu_keyboard())
        return

    await query.answer()
    await db.update_user_state(tg_id, UserState.IDLE.value)

    lesson = await db.get_lesson(lesson_id)
    await query.edit_message_text(
        f"✅ ¡Lección «{lesson.title}» completada!",
        reply_markup=lesson_keyboard(lesson.id, lesson.course_id, has_quiz=False)
    )


# ============================================
# Тест к уроку
# ============================================

async def _send_quiz_question(query, quiz, questions, index: int):
    question = questions[index]
    await query.edit_message_text(
        f"📝 {quiz.title}\n\nPregunta {index + 1} de {len(questions)}\n\n{question.question}",
        reply_markup=quiz_question_keyboard(quiz.id, index, question.options)
    )


async def quiz_start_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Callback: начать тест урока"""
    query = update.callback_query
    await query.answer()

    tg_id = query.from_user.id
    lesson_id = _id_from(query.data)  # quiz_start:5

    try:
        await courses.ensure_lesson_unlocked(tg_id, lesson_id)
        quiz = await db.get_quiz_for_lesson(lesson_id)
        if quiz is None:
            raise NotFound(f"У урока {lesson_id} нет теста")
        questions = await db.get_quiz_questions(quiz.id)
        if not questions:
            raise NotFound(f"В тесте {quiz.id} нет вопросов")
    except AcademyError as e:
        await query.edit_message_text(e.to_user_message(), reply_markup=main_menu_keyboard())
        return

    context.user_data["lesson_quiz"] = {"quiz_id": quiz.id, "answers": []}
    await db.update_user_state(tg_id, UserState.LESSON_QUIZ.value)

    await _send_quiz_question(query, quiz, questions, 0)


async def quiz_answer_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Callback: ответ на вопрос теста урока"""
    query = update.callback_query
    await query.answer()

    tg_id = query.from_user.id
    _, quiz_id, index, option = query.data.split(":")  # quiz_answer:3:0:2
    quiz_id, index, option = int(quiz_id), int(index), int(option)

    session = context.user_data.get("lesson_quiz")
    if not session or session["quiz_id"] != quiz_id or len(session["answers"]) != index:
        # Нажатие по старому сообщению
        return

    quiz = await db.get_quiz(quiz_id)
    questions = await db.get_quiz_questions(quiz_id)
    if quiz is None or not questions:
        context.user_data.pop("lesson_quiz", None)
        await query.edit_message_text(NotFound().to_user_message(), reply_markup=main_menu_keyboard())
        return

    session["answers"].append(option)

    if len(session["answers"]) < len(questions):
        await _send_quiz_question(query, quiz, questions, len(session["answers"]))
        return

    context.user_data.pop("lesson_quiz", None)
    await db.update_user_state(tg_id, UserState.IDLE.value)

    try:
        outcome = await courses.submit_lesson_quiz(tg_id, quiz_id, session["answers"])
    except AcademyError as e:
        await query.edit_message_text(e.to_user_message(), reply_markup=main_menu_keyboard())
        return

    lesson = await db.get_lesson(outcome.lesson_id)

    if outcome.is_passed:
        text = f"🎉 ¡Aprobado! Puntuación: {outcome.score}%\n\n✅ Lección completada."
        has_quiz = False
    else:
        text = (
            f"Puntuación: {outcome.score}% (mínimo {outcome.passing_score}%)\n\n"
            "Repasa la lección e inténtalo de nuevo."
        )
        has_quiz = True

    await query.edit_message_text(
        text,
        reply_markup=lesson_keyboard(outcome.lesson_id, lesson.course_id, has_quiz)
    )

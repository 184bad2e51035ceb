"""
Обработчики вступительного теста
"""

import logging
from telegram import Update
from telegram.ext import ContextTypes

from academy.states import UserState
from academy.keyboards import (
    main_menu_keyboard, placement_question_keyboard, placement_result_keyboard
)
from academy.database import queries as db
from academy.errors import AcademyError, StaleStep
from academy.services import placement_quiz
from academy.services.notifications import CONFIDENCE_LABELS, LEVEL_DESCRIPTIONS
from academy.services.placement import PlacementResult

logger = logging.getLogger(__name__)


def parse_answer_data(data: str) -> tuple[str, int, int]:
    """placement:<attempt_id>:<step>:<option> -> (attempt_id, step, option)"""
    _, attempt_id, step, option = data.split(":")
    return attempt_id, int(step), int(option)


def render_step(step: placement_quiz.PlacementStep) -> str:
    """Текст вопроса с номером и оставшимся временем"""
    remaining = step.expires_at - placement_quiz.utcnow()
    minutes = max(0, int(remaining.total_seconds() // 60))
    return (
        f"Pregunta {step.step} de {step.total_questions} · Nivel {step.question.difficulty}\n"
        f"⏱ Quedan {minutes} min\n\n"
        f"{step.question.text}"
    )


def render_result(result: PlacementResult) -> str:
    confidence = CONFIDENCE_LABELS.get(result.confidence, result.confidence)
    return (
        f"🎯 ¡Examen completado!\n\n"
        f"Tu nivel: {result.level}\n"
        f"{LEVEL_DESCRIPTIONS.get(result.level, '')}\n\n"
        f"Respuestas correctas: {result.correct_answers}/{result.total_questions}\n"
        f"Confianza: {confidence}"
    )


async def placement_start_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Callback: начать (или продолжить) тест"""
    query = update.callback_query
    await query.answer()

    tg_id = query.from_user.id

    try:
        step = await placement_quiz.start_attempt(tg_id)
    except AcademyError as e:
        logger.info(f"Тест не начат: user={tg_id}: {e.message}")
        await query.edit_message_text(e.to_user_message(), reply_markup=main_menu_keyboard())
        return

    await db.update_user_state(tg_id, UserState.PLACEMENT.value)

    await query.edit_message_text(
        render_step(step),
        reply_markup=placement_question_keyboard(step.attempt_id, step.step, step.question.options)
    )


async def placement_answer_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Callback: ответ на вопрос теста"""
    query = update.callback_query
    await query.answer()

    tg_id = query.from_user.id

    try:
        attempt_id, step_number, option = parse_answer_data(query.data)
    except ValueError:
        return

    try:
        outcome = await placement_quiz.submit_answer(
            attempt_id,
            option,
            learner_id=tg_id,
            expected_step=step_number
        )
    except StaleStep as e:
        logger.info(f"Повторный ответ: user={tg_id}, attempt={attempt_id}: {e.message}")
        current = await placement_quiz.get_active_attempt(tg_id)
        if current is None or current.attempt_id != attempt_id:
            await db.update_user_state(tg_id, UserState.IDLE.value)
            await query.edit_message_text(e.to_user_message(), reply_markup=main_menu_keyboard())
            return
        await query.edit_message_text(
            f"{e.to_user_message()}\n\n{render_step(current)}",
            reply_markup=placement_question_keyboard(current.attempt_id, current.step, current.question.options)
        )
        return
    except AcademyError as e:
        logger.info(f"Ответ отклонён: user={tg_id}, attempt={attempt_id}: {e.message}")
        await db.update_user_state(tg_id, UserState.IDLE.value)
        await query.edit_message_text(e.to_user_message(), reply_markup=main_menu_keyboard())
        return

    if isinstance(outcome, PlacementResult):
        await db.update_user_state(tg_id, UserState.IDLE.value)
        await query.edit_message_text(render_result(outcome), reply_markup=placement_result_keyboard())
        return

    await query.edit_message_text(
        render_step(outcome),
        reply_markup=placement_question_keyboard(outcome.attempt_id, outcome.step, outcome.question.options)
    )

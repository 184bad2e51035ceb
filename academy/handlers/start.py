"""
Обработчик /start, главное меню и email
"""

import logging
import re
from telegram import Update
from telegram.ext import ContextTypes

from academy.states import UserState
from academy.keyboards import main_menu_keyboard, back_to_menu_keyboard, cancel_keyboard
from academy.database import queries as db
from academy.services.notifications import CONFIDENCE_LABELS, LEVEL_DESCRIPTIONS

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_email(text: str) -> bool:
    """Простая проверка адреса"""
    return bool(EMAIL_RE.match(text.strip())) and len(text.strip()) <= 254


async def start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Обработка команды /start"""
    user = update.effective_user
    tg_id = user.id
    username = user.username or ""
    full_name = user.full_name or ""

    # Проверяем/создаём пользователя
    existing_user = await db.get_user(tg_id)
    if not existing_user:
        await db.create_user(tg_id, username, full_name)
        logger.info(f"Новый пользователь: {tg_id} (@{username})")
        greeting = (
            f"¡Bienvenido a CogniBoost, {full_name}!\n\n"
            "Empieza con el examen de nivel: 8 preguntas adaptativas, 30 minutos."
        )
    else:
        greeting = f"¡Hola de nuevo, {full_name}!\n\nElige una opción:"

    await db.update_user_state(tg_id, UserState.IDLE.value)
    await update.message.reply_text(greeting, reply_markup=main_menu_keyboard())


async def main_menu_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Callback: главное меню"""
    query = update.callback_query
    await query.answer()

    tg_id = query.from_user.id
    await db.update_user_state(tg_id, UserState.IDLE.value)

    await query.edit_message_text(
        "Menú principal\n\nElige una opción:",
        reply_markup=main_menu_keyboard()
    )


async def cancel_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Callback: отмена действия"""
    query = update.callback_query
    await query.answer()

    tg_id = query.from_user.id
    context.user_data.pop("lesson_quiz", None)
    await db.update_user_state(tg_id, UserState.IDLE.value)

    await query.edit_message_text(
        "Acción cancelada.\n\nElige una opción:",
        reply_markup=main_menu_keyboard()
    )


async def my_level_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Callback: уровень из профиля"""
    query = update.callback_query
    await query.answer()

    user = await db.get_user(query.from_user.id)
    if not user or not user.placement_level:
        text = "Todavía no tienes nivel. Haz el examen de nivel para conocerlo."
    else:
        confidence = CONFIDENCE_LABELS.get(user.placement_confidence, user.placement_confidence)
        text = (
            f"Tu nivel: {user.placement_level}\n"
            f"{LEVEL_DESCRIPTIONS.get(user.placement_level, '')}\n\n"
            f"Confianza: {confidence}"
        )

    await query.edit_message_text(text, reply_markup=back_to_menu_keyboard())


async def set_email_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Callback: ввод email"""
    query = update.callback_query
    await query.answer()

    await db.update_user_state(query.from_user.id, UserState.WAITING_EMAIL.value)
    await query.edit_message_text(
        "Envía tu email en el siguiente mensaje. Te mandaremos ahí el resultado del examen.",
        reply_markup=cancel_keyboard()
    )


async def email_input_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Обработка ввода email"""
    tg_id = update.effective_user.id
    text = update.message.text.strip()

    # Проверяем состояние
    user = await db.get_user(tg_id)
    if not user or user.state != UserState.WAITING_EMAIL.value:
        return

    if not is_valid_email(text):
        await update.message.reply_text(
            "Ese email no parece válido. Inténtalo de nuevo:",
            reply_markup=cancel_keyboard()
        )
        return

    await db.set_user_email(tg_id, text)
    await db.update_user_state(tg_id, UserState.IDLE.value)
    logger.info(f"Email сохранён: {tg_id}")

    await update.message.reply_text(
        "¡Listo! Email guardado.",
        reply_markup=main_menu_keyboard()
    )

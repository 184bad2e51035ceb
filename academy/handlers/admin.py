"""
Админ-команды
"""

import logging
from functools import wraps
from telegram import Update
from telegram.ext import ContextTypes

from academy.config import config
from academy.database import queries as db
from academy.services.notifications import send_broadcast
from academy.services.progress_gate import Tier

logger = logging.getLogger(__name__)


def admin_only(func):
    """Декоратор: только для админов"""
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE):
        user_id = update.effective_user.id
        if user_id not in config.ADMIN_IDS:
            await update.message.reply_text("Нет доступа")
            return
        return await func(update, context)
    return wrapper


@admin_only
async def stat_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Статистика академии"""
    stats = await db.get_stats()
    levels = await db.get_placement_level_distribution()

    text = (
        "Статистика\n\n"
        f"Пользователей: {stats['users']}\n"
        f"Пройдено тестов уровня: {stats['placements']}\n"
        f"Завершено уроков: {stats['lessons_completed']}\n"
        f"Платных подписок: {stats['paid']}"
    )

    if levels:
        text += "\n\nУровни:\n" + "\n".join(f"{row['level']}: {row['count']}" for row in levels)

    await update.message.reply_text(text)


@admin_only
async def users_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Список пользователей"""
    users = await db.get_all_users()

    if not users:
        await update.message.reply_text("Пользователей пока нет")
        return

    lines = []
    for u in users[:20]:  # Ограничиваем до 20
        lines.append(f"- @{u.username or u.tg_id} · {u.placement_level or '—'}")

    text = f"Пользователи ({len(users)}):\n" + "\n".join(lines)
    if len(users) > 20:
        text += f"\n... и ещё {len(users) - 20}"

    await update.message.reply_text(text)


@admin_only
async def set_tier_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Сменить тариф пользователя"""
    if len(context.args) < 2:
        tiers = ", ".join(t.value for t in Tier)
        await update.message.reply_text(f"Использование: /set_tier <tg_id> <{tiers}>")
        return

    try:
        target_id = int(context.args[0])
        tier = Tier(context.args[1].lower())
    except ValueError:
        await update.message.reply_text("Неверные параметры")
        return

    await db.set_subscription_tier(target_id, tier.value)
    logger.info(f"Тариф {target_id} изменён на {tier.value}")

    await update.message.reply_text(f"Тариф {target_id}: {tier.value}")


@admin_only
async def broadcast_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Рассылка всем пользователям"""
    if not context.args:
        await update.message.reply_text("Использование: /broadcast <текст>")
        return

    message_text = " ".join(context.args)
    users = await db.get_all_users()

    sent, failed = await send_broadcast(context.bot, [u.tg_id for u in users], message_text)
    logger.info(f"Рассылка: отправлено {sent}, ошибок {failed}")

    await update.message.reply_text(
        f"Рассылка завершена\nОтправлено: {sent}\nОшибок: {failed}"
    )


@admin_only
async def force_accept_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Засчитать урок вручную (вместе с тестом)"""
    if len(context.args) < 2:
        await update.message.reply_text("Использование: /force_accept <tg_id> <lesson_id>")
        return

    try:
        target_id = int(context.args[0])
        lesson_id = int(context.args[1])
    except ValueError:
        await update.message.reply_text("Неверные параметры")
        return

    lesson = await db.get_lesson(lesson_id)
    if not lesson:
        await update.message.reply_text("Урок не найден")
        return

    await db.mark_quiz_passed(target_id, lesson.id)
    await db.complete_lesson(target_id, lesson.id)
    logger.info(f"Урок {lesson.id} засчитан вручную для {target_id}")

    await update.message.reply_text(f"Урок «{lesson.title}» засчитан для {target_id}")

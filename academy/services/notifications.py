"""
Уведомления: письма через Resend и сообщения в Telegram
"""

import asyncio
import html
import logging
from typing import Optional

import httpx
from telegram import Bot
from telegram.error import TelegramError

from academy.config import config
from academy.database import queries as db
from academy.services.placement import PlacementResult

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"

LEVEL_DESCRIPTIONS = {
    "A1": "Principiante: entiendes frases básicas y cotidianas.",
    "A2": "Elemental: te comunicas en situaciones simples y habituales.",
    "B1": "Intermedio: te defiendes en viajes y temas conocidos.",
    "B2": "Intermedio alto: conversas con fluidez sobre temas variados.",
    "C1": "Avanzado: usas el idioma con flexibilidad en lo social y lo profesional.",
    "C2": "Maestría: comprendes prácticamente todo lo que lees y escuchas.",
}

CONFIDENCE_LABELS = {
    "high": "Alta",
    "medium": "Media",
    "low": "Baja",
}

TEMPLATES = {
    "placement_quiz_result": {
        "subject": "🎯 Resultado de tu Examen de Nivel de Inglés",
        "html": (
            "<h1>¡Felicidades, {first_name}!</h1>"
            "<p>Has completado tu Examen de Nivel de Inglés. Aquí están tus resultados:</p>"
            "<h2>{level}</h2>"
            "<p>{level_description}</p>"
            "<p>Respuestas correctas: {correct_answers}/{total_questions}<br>"
            "Confianza: {confidence}</p>"
        ),
    },
}

# Ссылки на фоновые задачи, чтобы их не собрал GC до завершения
_background_tasks: set = set()


def render_email(template: str, params: dict) -> tuple[str, str]:
    """Тема и HTML письма по имени шаблона"""
    if template not in TEMPLATES:
        raise KeyError(f"Неизвестный шаблон письма: {template}")

    safe = {key: html.escape(str(value)) for key, value in params.items()}
    template_def = TEMPLATES[template]
    return template_def["subject"], template_def["html"].format(**safe)


def placement_email_params(result: PlacementResult, first_name: Optional[str]) -> dict:
    return {
        "first_name": first_name or "estudiante",
        "level": result.level,
        "level_description": LEVEL_DESCRIPTIONS.get(result.level, ""),
        "correct_answers": result.correct_answers,
        "total_questions": result.total_questions,
        "confidence": CONFIDENCE_LABELS.get(result.confidence, result.confidence),
    }


async def send_email(
    to: str,
    template: str,
    params: dict,
    client: Optional[httpx.AsyncClient] = None
) -> bool:
    """Отправить письмо по шаблону. Ошибка — False и запись в лог"""
    if not config.RESEND_API_KEY:
        logger.info(f"RESEND_API_KEY не задан, письмо {template} не отправлено")
        return False

    subject, body = render_email(template, params)
    payload = {
        "from": config.EMAIL_FROM,
        "to": [to],
        "subject": subject,
        "html": body,
    }
    headers = {"Authorization": f"Bearer {config.RESEND_API_KEY}"}

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=config.EMAIL_TIMEOUT) as own_client:
                response = await own_client.post(RESEND_URL, json=payload, headers=headers)
        else:
            response = await client.post(RESEND_URL, json=payload, headers=headers)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Не удалось отправить письмо {template} на {to}: {e}")
        return False

    logger.info(f"Письмо отправлено: {template} -> {to}")
    return True


async def deliver_placement_result(learner_id: int, result: PlacementResult) -> bool:
    """Письмо с результатом теста (если у ученика есть email)"""
    try:
        user = await db.get_user(learner_id)
        if not user or not user.email:
            logger.info(f"У ученика {learner_id} нет email, письмо с уровнем пропущено")
            return False

        first_name = (user.full_name or "").split(" ")[0] or None
        return await send_email(
            user.email,
            "placement_quiz_result",
            placement_email_params(result, first_name)
        )
    except Exception as e:
        # Письмо не должно влиять на результат теста
        logger.warning(f"Ошибка отправки результата теста {learner_id}: {e}")
        return False


def schedule_placement_result(learner_id: int, result: PlacementResult) -> asyncio.Task:
    """Отправить письмо с результатом в фоне (fire-and-forget)"""
    task = asyncio.create_task(deliver_placement_result(learner_id, result))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def send_broadcast(bot: Bot, user_ids: list[int], text: str) -> tuple[int, int]:
    """Рассылка: (отправлено, ошибок)"""
    sent = 0
    failed = 0

    for user_id in user_ids:
        try:
            await bot.send_message(chat_id=user_id, text=text)
            sent += 1
        except TelegramError:
            failed += 1

    return sent, failed

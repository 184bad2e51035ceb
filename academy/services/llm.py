"""
Генерация вопросов вступительного теста через OpenAI
"""

import asyncio
import json
import logging
import uuid
from typing import Iterable, Optional

from openai import AsyncOpenAI, OpenAIError

from academy.config import config
from academy.services.placement import CEFR_LEVELS, Question

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You write multiple-choice English placement test items for Spanish-speaking adults. "
    "Reply with a JSON object only: "
    '{"text": "...", "options": ["...", "...", "...", "..."], "correct_answer": 0, '
    '"skill": "grammar" | "vocabulary" | "reading"}. '
    "Use exactly four options, one gap marked with _____, and exactly one correct option."
)

_client: Optional[AsyncOpenAI] = None


def get_client() -> AsyncOpenAI:
    """Клиент OpenAI (создаётся при первом вызове)"""
    global _client

    if _client is None:
        _client = AsyncOpenAI(api_key=config.OPENAI_API_KEY, timeout=config.LLM_TIMEOUT)

    return _client


def ai_enabled() -> bool:
    return config.PLACEMENT_USE_AI and bool(config.OPENAI_API_KEY)


def parse_question(payload: str, level: str) -> Optional[Question]:
    """Разобрать ответ модели; None, если формат не подходит"""
    try:
        data = json.loads(payload)
    except (TypeError, json.JSONDecodeError):
        return None

    if not isinstance(data, dict):
        return None

    text = data.get("text")
    options = data.get("options")
    correct = data.get("correct_answer")

    if not isinstance(text, str) or not text.strip():
        return None
    if not isinstance(options, list) or len(options) != 4:
        return None
    if not all(isinstance(o, str) and o.strip() for o in options):
        return None
    if len(set(options)) != len(options):
        return None
    if isinstance(correct, bool) or not isinstance(correct, int) or not 0 <= correct < 4:
        return None

    skill = data.get("skill")
    if skill not in ("grammar", "vocabulary", "reading"):
        skill = "grammar"

    return Question(
        id=f"ai_{level.lower()}_{uuid.uuid4().hex[:10]}",
        text=text.strip(),
        options=tuple(o.strip() for o in options),
        correct_answer=correct,
        difficulty=level,
        skill=skill,
    )


async def generate_placement_question(level: str, avoid_texts: Iterable[str] = ()) -> Optional[Question]:
    """
    Сгенерировать вопрос уровня level.
    Любая ошибка API или невалидный ответ — None, вызывающий берёт вопрос из банка.
    """
    if level not in CEFR_LEVELS:
        raise ValueError(f"Неизвестный уровень CEFR: {level!r}")

    avoid = "\n".join(f"- {t}" for t in avoid_texts)
    user_prompt = f"CEFR level: {level}."
    if avoid:
        user_prompt += f"\nDo not repeat these items:\n{avoid}"

    try:
        response = await asyncio.wait_for(
            get_client().chat.completions.create(
                model=config.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={"type": "json_object"},
                temperature=0.7,
            ),
            timeout=config.LLM_TIMEOUT
        )
    except (OpenAIError, asyncio.TimeoutError) as e:
        logger.warning(f"OpenAI недоступен, берём вопрос из банка: {e}")
        return None

    content = response.choices[0].message.content if response.choices else None
    question = parse_question(content, level)
    if question is None:
        logger.warning(f"Модель вернула невалидный вопрос уровня {level}")
    return question

"""
Главная точка входа бота
"""

import logging

from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    CallbackQueryHandler,
    MessageHandler,
    ContextTypes,
    filters
)

from academy.config import config
from academy.database.connection import get_pool, close_pool
from academy.database.migrations import run_migrations
from academy.services.scheduler import setup_scheduler, shutdown_scheduler

# Хендлеры
from academy.handlers.start import (
    start_handler,
    main_menu_callback,
    cancel_callback,
    my_level_callback,
    set_email_callback,
    email_input_handler
)
from academy.handlers.placement import (
    placement_start_callback,
    placement_answer_callback
)
from academy.handlers.lessons import (
    courses_callback,
    course_callback,
    view_lesson_callback,
    mark_done_callback,
    quiz_start_callback,
    quiz_answer_callback
)
from academy.handlers.admin import (
    stat_handler,
    users_handler,
    set_tier_handler,
    broadcast_handler,
    force_accept_handler
)


# Настройка логирования
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


async def receive_text_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Универсальный обработчик текстовых сообщений"""
    await email_input_handler(update, context)


def register_handlers(app: Application):
    """Регистрация всех хендлеров"""

    # Команды пользователей
    app.add_handler(CommandHandler("start", start_handler))

    # Админ-команды
    app.add_handler(CommandHandler("stat", stat_handler))
    app.add_handler(CommandHandler("users", users_handler))
    app.add_handler(CommandHandler("set_tier", set_tier_handler))
    app.add_handler(CommandHandler("broadcast", broadcast_handler))
    app.add_handler(CommandHandler("force_accept", force_accept_handler))

    # Callbacks — start
    app.add_handler(CallbackQueryHandler(main_menu_callback, pattern="^main_menu$"))
    app.add_handler(CallbackQueryHandler(cancel_callback, pattern="^cancel$"))
    app.add_handler(CallbackQueryHandler(my_level_callback, pattern="^my_level$"))
    app.add_handler(CallbackQueryHandler(set_email_callback, pattern="^set_email$"))

    # Callbacks — placement
    app.add_handler(CallbackQueryHandler(placement_start_callback, pattern="^placement_start$"))
    app.add_handler(CallbackQueryHandler(placement_answer_callback, pattern="^placement:"))

    # Callbacks — courses
    app.add_handler(CallbackQueryHandler(courses_callback, pattern="^courses$"))
    app.add_handler(CallbackQueryHandler(course_callback, pattern="^course:"))
    app.add_handler(CallbackQueryHandler(view_lesson_callback, pattern="^view_lesson:"))
    app.add_handler(CallbackQueryHandler(mark_done_callback, pattern="^mark_done:"))
    app.add_handler(CallbackQueryHandler(quiz_start_callback, pattern="^quiz_start:"))
    app.add_handler(CallbackQueryHandler(quiz_answer_callback, pattern="^quiz_answer:"))

    # Message handlers
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, receive_text_handler))


async def post_init(app: Application):
    """Инициализация после запуска"""
    await get_pool()
    await run_migrations()
    logger.info("База данных подключена, миграции выполнены")

    # Запускаем планировщик
    setup_scheduler()
    logger.info("Планировщик запущен")


async def post_shutdown(app: Application):
    """Очистка при завершении"""
    shutdown_scheduler()
    await close_pool()
    logger.info("Соединение с БД закрыто")


def main():
    """Запуск бота"""

    # Проверка конфигурации
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Ошибка конфигурации: {error}")
        return

    # Создание приложения
    app = (
        Application.builder()
        .token(config.BOT_TOKEN)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    # Регистрация хендлеров
    register_handlers(app)

    logger.info("Бот запущен!")

    # Запуск
    app.run_polling(allowed_updates=["message", "callback_query"])


if __name__ == "__main__":
    main()

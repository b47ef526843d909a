"""
📸 Photo Post Bot — собирает посты (подпись + фото) из сообщений в Telegram.
Точка входа. Запуск: python bot.py
"""
import asyncio
import sys
from aiogram import Bot, Dispatcher

from config import (
    BOT_TOKEN, LOG_CHAT_ID, PHOTOS_DIR, MEDIA_GROUP_DELAY, DROP_SINGLE_PHOTO_GROUPS,
    FETCH_CONCURRENCY, HTTP_HOST, HTTP_PORT, CORS_ORIGIN,
)
from database import init_db, close_db
from handlers.photo_handler import router as photo_router, make_notifier
from services.media_fetcher import TelegramMediaFetcher, close_client
from services.photo_acquirer import PhotoAcquirer
from services.post_assembler import PostAssembler
from services.web_server import start_web_server, stop_web_server
from utils.logger import set_bot, log_info
from utils.media_group import MediaGroupAggregator


async def main():
    # === Проверка конфигурации ===
    if not BOT_TOKEN:
        print("❌ BOT_TOKEN не задан! Скопируйте .env.example → .env и заполните.")
        sys.exit(1)

    # === Инициализация ===
    print("[STARTUP] Запуск Photo Post Bot...")

    # База данных
    print("[STARTUP] Инициализация базы данных...")
    await init_db()
    print("[STARTUP] База данных готова")

    # Бот
    bot = Bot(token=BOT_TOKEN)
    print("[STARTUP] Бот создан")

    # Логгер
    set_bot(bot)
    print(f"[STARTUP] Логгер инициализирован (чат логов: {LOG_CHAT_ID or 'консоль'})")

    # Сборка постов
    acquirer = PhotoAcquirer(TelegramMediaFetcher(bot), PHOTOS_DIR, FETCH_CONCURRENCY)
    assembler = PostAssembler(notifier=make_notifier(bot))
    aggregator = MediaGroupAggregator(
        acquirer, assembler,
        delay=MEDIA_GROUP_DELAY,
        drop_single_photo_groups=DROP_SINGLE_PHOTO_GROUPS,
    )
    print(f"[STARTUP] Фото: {PHOTOS_DIR}, ожидание альбома: {MEDIA_GROUP_DELAY}с")

    # HTTP API
    await start_web_server(acquirer, assembler, HTTP_HOST, HTTP_PORT, CORS_ORIGIN)

    # Диспетчер
    dp = Dispatcher()
    dp["aggregator"] = aggregator
    dp.include_router(photo_router)
    print("[STARTUP] Роутеры подключены")

    bot_info = await bot.get_me()
    print(f"[STARTUP] Бот: @{bot_info.username} (ID: {bot_info.id})")
    await log_info(f"Бот @{bot_info.username} запущен")

    # Запускаем polling
    print("[STARTUP] Запуск polling...")
    try:
        await dp.start_polling(bot)
    finally:
        print("[SHUTDOWN] Остановка бота...")
        await aggregator.shutdown()
        await stop_web_server()
        await close_client()
        await close_db()
        print("[SHUTDOWN] Бот остановлен")


if __name__ == "__main__":
    asyncio.run(main())

"""
Журнал событий постов: сохранённые посты, пустые альбомы, ошибки базы.

Если задан LOG_CHAT_ID, записи уходят в служебный чат Telegram,
иначе (или если отправка не удалась) — в консоль.
"""
from datetime import datetime
from aiogram import Bot
from config import LOG_CHAT_ID

# Лимит длины текста сообщения в Telegram
MAX_MESSAGE_LENGTH = 4096

LEVEL_ICONS = {
    "INFO": "🔵",
    "WARN": "🟡",
    "ERROR": "🔴",
}

# Бот для отправки в служебный чат, задаётся при старте
_bot: Bot | None = None


def set_bot(bot: Bot | None):
    global _bot
    _bot = bot


def format_entry(level: str, text: str) -> str:
    icon = LEVEL_ICONS.get(level, "⚪")
    entry = f"{icon} [{level}] {datetime.now():%H:%M} — {text}"
    if len(entry) > MAX_MESSAGE_LENGTH:
        entry = entry[:MAX_MESSAGE_LENGTH - 1] + "…"
    return entry


async def log(level: str, text: str):
    if not _bot or not LOG_CHAT_ID:
        print(f"[{level}] {text}")
        return

    entry = format_entry(level, text)
    try:
        await _bot.send_message(chat_id=LOG_CHAT_ID, text=entry)
    except Exception as e:
        print(f"[LOG ERROR] {e}: {entry}")


async def log_info(text: str):
    await log("INFO", text)

async def log_warn(text: str):
    await log("WARN", text)

async def log_error(text: str):
    await log("ERROR", text)

"""
Конфигурация Photo Post Bot.
Все секреты и настройки берутся из .env файла.
"""
import os
import sys
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _int_env(name: str, default: int = 0) -> int:
    """Читает int из .env с понятной ошибкой при невалидном значении."""
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        print(f"❌ {name}={raw!r} — должно быть целым числом")
        sys.exit(1)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        return float(raw)
    except ValueError:
        print(f"❌ {name}={raw!r} — должно быть числом")
        sys.exit(1)


# === Telegram ===
BOT_TOKEN = os.getenv("BOT_TOKEN", "")

# Чат для служебных логов (0 — только консоль)
LOG_CHAT_ID = _int_env("LOG_CHAT_ID")

# === Хранилище ===
DB_PATH = os.getenv("DB_PATH", os.path.join(BASE_DIR, "posts.db"))
PHOTOS_DIR = os.getenv("PHOTOS_DIR", os.path.join(BASE_DIR, "photos"))

# === Медиагруппы ===
# Сколько ждём остальные фото альбома после первого (таймер не сбрасывается)
MEDIA_GROUP_DELAY = _float_env("MEDIA_GROUP_DELAY_MS", 2000) / 1000
# Альбом, в который успело прийти только одно фото, не публикуется
DROP_SINGLE_PHOTO_GROUPS = os.getenv("DROP_SINGLE_PHOTO_GROUPS", "1") == "1"

# === Загрузка фото ===
FETCH_CONCURRENCY = _int_env("FETCH_CONCURRENCY", 8)
FETCH_TIMEOUT = _float_env("FETCH_TIMEOUT", 30.0)

# === HTTP API ===
HTTP_HOST = os.getenv("HTTP_HOST", "0.0.0.0")
HTTP_PORT = _int_env("PORT", 3001)
CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:3000")

# === Тексты ответов ===
WELCOME_TEXT = "Добро пожаловать! Присылайте мне фотографии с подписями для ваших постов."
NEED_PHOTO_TEXT = "Пожалуйста, отправьте фотографию вместе с текстовой подписью."
POST_SAVED_TEXT = "Пост #{post_id} сохранён: фото — {count}."
EMPTY_BATCH_TEXT = "Не удалось загрузить ни одной фотографии, пост не создан."
STORE_ERROR_TEXT = "Ошибка при сохранении поста в базе данных."

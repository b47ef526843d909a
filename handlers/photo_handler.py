"""
Приём фото от пользователей бота.

Каждое фото превращается в InboundPhotoEvent и уходит в сборщик медиагрупп.
Ответ пользователю (пост сохранён / ошибка) отправляет notifier — и для
одиночных фото, и для альбомов, которые закрываются позже по таймеру.
"""
from aiogram import Router, F, Bot
from aiogram.filters import CommandStart
from aiogram.types import Message

from config import (
    WELCOME_TEXT, NEED_PHOTO_TEXT, POST_SAVED_TEXT,
    EMPTY_BATCH_TEXT, STORE_ERROR_TEXT,
)
from errors import EmptyBatchError, PostError, StoreWriteError
from models.post import Post
from utils.media_group import InboundPhotoEvent, MediaGroupAggregator

router = Router()


def event_from_message(message: Message) -> InboundPhotoEvent:
    """Фото из сообщения: берём самый большой размер."""
    photo = message.photo[-1]
    return InboundPhotoEvent(
        photo_ref=photo.file_id,
        caption=message.caption or "",
        group_key=message.media_group_id,
        arrival_time=message.date,
        unique_id=photo.file_unique_id,
        origin=message.chat.id,
    )


def format_result(post: Post | None, error: PostError | None) -> str:
    if post is not None:
        return POST_SAVED_TEXT.format(post_id=post.id, count=len(post.photo_paths))
    if isinstance(error, EmptyBatchError):
        return EMPTY_BATCH_TEXT
    if isinstance(error, StoreWriteError):
        return STORE_ERROR_TEXT
    return "Ошибка при обработке фотографии."


def make_notifier(bot: Bot):
    """Notifier для PostAssembler: отвечает в чат, откуда пришло фото."""

    async def notify(chat_id: int, post: Post | None, error: PostError | None):
        await bot.send_message(chat_id=chat_id, text=format_result(post, error))

    return notify


@router.message(CommandStart())
async def handle_start(message: Message):
    await message.answer(WELCOME_TEXT)


@router.message(F.photo)
async def handle_photo(message: Message, aggregator: MediaGroupAggregator):
    event = event_from_message(message)
    try:
        await aggregator.submit(event)
    except PostError as e:
        # Пользователь уже получил ответ через notifier
        print(f"[PHOTO] chat={event.origin} ref={event.photo_ref}: {e}")
    except Exception as e:
        print(f"❌ Ошибка обработки фотографии: {e}")
        await message.reply("Ошибка при обработке фотографии.")


@router.message(F.text)
async def handle_text(message: Message):
    await message.reply(NEED_PHOTO_TEXT)

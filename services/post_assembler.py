"""
Сборка поста из готовых фото: одна запись в базу + уведомление отправителю.
"""
from typing import Awaitable, Callable

from errors import EmptyBatchError, PostError, StoreWriteError
from models.post import Post, insert_post
from utils.logger import log_error, log_info

# notifier(origin, post, error) — ответ отправителю (например, чату в Telegram)
Notifier = Callable[[object, Post | None, PostError | None], Awaitable[None]]


class PostAssembler:
    def __init__(self, insert: Callable[[list[str], str], Awaitable[Post]] = insert_post,
                 notifier: Notifier | None = None):
        self._insert = insert
        self._notifier = notifier

    async def assemble(self, photo_ids: list[str], caption: str | None,
                       origin: object = None) -> Post:
        """Сохраняет пост. Пустой список фото → EmptyBatchError."""
        if not photo_ids:
            raise EmptyBatchError()

        try:
            post = await self._insert(list(photo_ids), caption or "")
        except StoreWriteError as e:
            await log_error(f"Пост не сохранён: {e}")
            await self._notify(origin, None, e)
            raise

        await log_info(f"Пост #{post.id} сохранён: фото — {len(post.photo_paths)}")
        await self._notify(origin, post, None)
        return post

    async def report_failure(self, origin: object, error: PostError):
        """Сообщает отправителю об ошибке, обнаруженной до сборки."""
        await self._notify(origin, None, error)

    async def submit_batch(self, acquirer, photo_refs: list[str], caption: str | None,
                           origin: object = None) -> Post:
        """Пачка ссылок → загрузка → пост из успешно загруженных фото.

        Если не загрузилось ни одно — EmptyBatchError, пост не создаётся.
        """
        storage_ids, failures = await acquirer.acquire_many(photo_refs)
        if not storage_ids:
            error = EmptyBatchError(failures)
            await self.report_failure(origin, error)
            raise error
        if failures:
            print(f"[POST] Пачка: загружено {len(storage_ids)} из {len(photo_refs)}")
        return await self.assemble(storage_ids, caption, origin=origin)

    async def _notify(self, origin: object, post: Post | None, error: PostError | None):
        if origin is None or self._notifier is None:
            return
        try:
            await self._notifier(origin, post, error)
        except Exception as e:
            print(f"[POST] Не удалось уведомить {origin}: {e}")

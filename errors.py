"""
Ошибки сборки постов.

AcquisitionError ловится по одному фото и никогда не прерывает соседние загрузки.
EmptyBatchError и StoreWriteError доходят до того, кто отправил пост.
"""


class PostError(Exception):
    """Базовая ошибка создания поста."""


class AcquisitionError(PostError):
    """Не удалось скачать или записать одно фото."""

    def __init__(self, photo_ref: str, reason: str):
        self.photo_ref = photo_ref
        self.reason = reason
        super().__init__(f"{photo_ref}: {reason}")


class EmptyBatchError(PostError):
    """Ни одно фото из отправки не загрузилось — пост не создаётся."""

    def __init__(self, failures: list[AcquisitionError] | None = None):
        self.failures = list(failures or [])
        super().__init__(f"нет ни одного загруженного фото (ошибок: {len(self.failures)})")


class StoreWriteError(PostError):
    """Пост не записан в базу. Частичных записей не бывает."""

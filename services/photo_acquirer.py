"""
Загрузка фото на диск.

Каждое фото получает имя из уникального id контента (file_unique_id в Telegram),
существующий файл никогда не перезаписывается: повтор считается дублем и
возвращается уже сохранённый идентификатор без повторного скачивания.
Ошибки — по одному фото (AcquisitionError), соседние загрузки не прерываются.
"""
import asyncio
import hashlib
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

from errors import AcquisitionError

PHOTO_SUFFIX = ".jpg"
_SAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_-]")


class MediaFetcher(Protocol):
    async def fetch(self, photo_ref: str) -> bytes: ...


def storage_name(photo_ref: str, unique_id: str | None = None) -> str:
    """Имя файла для фото: <unique_id>.jpg, иначе sha1 от ссылки."""
    stem = _SAFE_CHARS_RE.sub("", unique_id or "")
    if not stem:
        stem = hashlib.sha1(photo_ref.encode("utf-8")).hexdigest()
    return stem + PHOTO_SUFFIX


def _write_exclusive(path: str, data: bytes) -> bool:
    """Атомарная запись без перезаписи: temp-файл + hard link на итоговое имя.

    Возвращает False если файл с таким именем уже есть.
    """
    fd, tmp_path = tempfile.mkstemp(dir=os.path.dirname(path), suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        try:
            os.link(tmp_path, path)
        except FileExistsError:
            return False
        return True
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


class PhotoAcquirer:
    def __init__(self, fetcher: MediaFetcher, photos_dir: str | os.PathLike,
                 max_concurrency: int = 8):
        self.fetcher = fetcher
        self.photos_dir = Path(photos_dir)
        self.photos_dir.mkdir(parents=True, exist_ok=True)
        # Общий лимит параллельных скачиваний на весь процесс
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def acquire(self, photo_ref: str, unique_id: str | None = None) -> str:
        """Скачивает фото и сохраняет на диск. Возвращает storage id (имя файла)."""
        name = storage_name(photo_ref, unique_id)
        path = self.photos_dir / name

        if path.exists():
            print(f"[ACQUIRE] Файл уже существует: {name}")
            return name

        async with self._semaphore:
            try:
                data = await self.fetcher.fetch(photo_ref)
            except AcquisitionError:
                raise
            except Exception as e:
                raise AcquisitionError(photo_ref, f"{type(e).__name__}: {e}") from e

        try:
            written = await asyncio.to_thread(_write_exclusive, str(path), data)
        except OSError as e:
            raise AcquisitionError(photo_ref, f"ошибка записи: {e}") from e

        if not written:
            print(f"[ACQUIRE] Дубль, файл уже записан: {name}")
        return name

    async def _acquire_safe(self, photo_ref: str) -> tuple[str | None, AcquisitionError | None]:
        try:
            return await self.acquire(photo_ref), None
        except AcquisitionError as e:
            print(f"[ACQUIRE] Ошибка: {e}")
            return None, e

    async def acquire_many(self, photo_refs: list[str]) -> tuple[list[str], list[AcquisitionError]]:
        """Параллельно загружает пачку фото.

        Возвращает (storage ids успешных в порядке photo_refs, ошибки).
        """
        results = await asyncio.gather(*(self._acquire_safe(ref) for ref in photo_refs))
        storage_ids = [sid for sid, _ in results if sid is not None]
        failures = [err for _, err in results if err is not None]
        return storage_ids, failures

    def photo_path(self, storage_id: str) -> Path | None:
        """Путь к сохранённому фото или None если его нет."""
        if not storage_id.endswith(PHOTO_SUFFIX):
            storage_id += PHOTO_SUFFIX
        if os.path.basename(storage_id) != storage_id or storage_id.startswith("."):
            return None
        path = self.photos_dir / storage_id
        return path if path.is_file() else None

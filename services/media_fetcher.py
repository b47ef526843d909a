"""
Получение байтов фото: Telegram file_id или прямая http(s)-ссылка.

Без повторных попыток — неудача окончательна для конкретного фото.
"""
import httpx
from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from config import FETCH_TIMEOUT
from errors import AcquisitionError

# Shared HTTP-клиент — переиспользует TCP-соединения
_http_client: httpx.AsyncClient | None = None


def _get_client() -> httpx.AsyncClient:
    """Возвращает shared httpx-клиент."""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(timeout=FETCH_TIMEOUT, follow_redirects=True)
    return _http_client


async def close_client():
    """Закрывает shared-клиент. Вызывать при остановке бота."""
    global _http_client
    if _http_client and not _http_client.is_closed:
        await _http_client.aclose()
    _http_client = None


def is_url(photo_ref: str) -> bool:
    return photo_ref.startswith(("http://", "https://"))


async def download(photo_ref: str, url: str, client: httpx.AsyncClient | None = None) -> bytes:
    """GET по ссылке, любая ошибка транспорта или не-2xx → AcquisitionError."""
    client = client or _get_client()
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise AcquisitionError(photo_ref, f"HTTP {e.response.status_code}") from e
    except httpx.TimeoutException as e:
        raise AcquisitionError(photo_ref, "timeout") from e
    except httpx.HTTPError as e:
        raise AcquisitionError(photo_ref, f"{type(e).__name__}: {e}") from e
    if not response.content:
        raise AcquisitionError(photo_ref, "пустой ответ")
    return response.content


class TelegramMediaFetcher:
    """Media Fetcher поверх Bot API: get_file → ссылка на файл → download."""

    def __init__(self, bot: Bot, client: httpx.AsyncClient | None = None):
        self.bot = bot
        self._client = client

    async def fetch(self, photo_ref: str) -> bytes:
        if is_url(photo_ref):
            return await download(photo_ref, photo_ref, self._client)

        try:
            tg_file = await self.bot.get_file(photo_ref)
        except TelegramAPIError as e:
            raise AcquisitionError(photo_ref, f"get_file: {e}") from e
        if not tg_file.file_path:
            raise AcquisitionError(photo_ref, "Telegram не вернул file_path")

        url = self.bot.session.api.file_url(self.bot.token, tg_file.file_path)
        return await download(photo_ref, url, self._client)

"""
Сборщик медиагрупп Telegram.

Telegram присылает альбом как несколько отдельных Message с одним
media_group_id и без признака «последнее фото». Модуль копит фото по ключу
группы и закрывает группу по таймеру. Таймер взводится один раз, после
обработки первого фото, и следующие фото его не сбрасывают.

Жизненный цикл группы:
    accumulating → closing → flushed
    accumulating → discarded (только при остановке бота)

Порядок фото в посте — порядок прихода событий, а не порядок окончания
загрузок: слот под фото резервируется сразу при приходе события.
"""
import asyncio
import enum
from dataclasses import dataclass, field
from datetime import datetime

from errors import AcquisitionError, EmptyBatchError, StoreWriteError
from models.post import Post
from utils.clock import MonotonicClock
from utils.logger import log_warn

DEFAULT_DELAY = 2.0  # секунд — ждём пока Telegram пришлёт все части


@dataclass(frozen=True)
class InboundPhotoEvent:
    photo_ref: str
    caption: str = ""
    group_key: str | None = None
    arrival_time: datetime | None = None
    unique_id: str | None = None
    origin: object = None  # кому отвечать (chat_id)


class GroupState(enum.Enum):
    ACCUMULATING = "accumulating"
    CLOSING = "closing"
    FLUSHED = "flushed"
    DISCARDED = "discarded"


@dataclass
class GroupBuffer:
    key: str
    origin: object = None
    caption: str = ""
    event_count: int = 0
    slots: list[asyncio.Future] = field(default_factory=list)
    failures: list[AcquisitionError] = field(default_factory=list)
    state: GroupState = GroupState.ACCUMULATING
    timer_armed: bool = False
    deadline: float | None = None
    timer: asyncio.Task | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def photo_identifiers(self) -> list[str]:
        """Загруженные фото в порядке прихода (неудачные пропускаются)."""
        return [s.result() for s in self.slots
                if s.done() and not s.cancelled() and s.result()]


class MediaGroupAggregator:
    """Буфер медиагрупп по ключу + таймер закрытия группы.

    Разные группы друг друга не блокируют; операции над одной группой
    (добавление фото, подпись, таймер, сброс) идут под её собственным локом.
    """

    def __init__(self, acquirer, assembler, delay: float = DEFAULT_DELAY,
                 clock=None, drop_single_photo_groups: bool = True):
        self.acquirer = acquirer
        self.assembler = assembler
        self.delay = delay
        self.clock = clock or MonotonicClock()
        # Альбом, в котором к срабатыванию таймера одно фото, не публикуется
        self.drop_single_photo_groups = drop_single_photo_groups

        self._buffers: dict[str, GroupBuffer] = {}
        self._timers: set[asyncio.Task] = set()

    def pending_groups(self) -> dict[str, GroupBuffer]:
        return dict(self._buffers)

    async def submit(self, event: InboundPhotoEvent) -> Post | None:
        """Принимает одно фото.

        Без group_key пост создаётся сразу и возвращается. Фото из альбома
        попадает в буфер, пост по нему создаст таймер — здесь вернётся None.
        """
        if event.group_key is None:
            return await self._submit_single(event)
        await self._submit_grouped(event)
        return None

    async def _submit_single(self, event: InboundPhotoEvent) -> Post:
        try:
            storage_id = await self.acquirer.acquire(event.photo_ref, event.unique_id)
        except AcquisitionError as e:
            error = EmptyBatchError([e])
            await self.assembler.report_failure(event.origin, error)
            raise error from e
        return await self.assembler.assemble([storage_id], event.caption, origin=event.origin)

    async def _reserve(self, event: InboundPhotoEvent) -> tuple[GroupBuffer, asyncio.Future, bool]:
        """Резервирует слот под фото в буфере группы. Возвращает (буфер, слот, первое ли фото)."""
        key = event.group_key
        while True:
            buffer = self._buffers.get(key)
            if buffer is None:
                buffer = GroupBuffer(key=key, origin=event.origin)
                self._buffers[key] = buffer
            async with buffer.lock:
                if buffer.state is not GroupState.ACCUMULATING:
                    # Группа уже закрывается — это фото начнёт новую
                    continue
                slot = asyncio.get_running_loop().create_future()
                buffer.slots.append(slot)
                buffer.event_count += 1
                if not buffer.caption and event.caption:
                    buffer.caption = event.caption
                return buffer, slot, buffer.event_count == 1

    async def _submit_grouped(self, event: InboundPhotoEvent):
        buffer, slot, is_first = await self._reserve(event)

        storage_id = None
        try:
            storage_id = await self.acquirer.acquire(event.photo_ref, event.unique_id)
        except AcquisitionError as e:
            print(f"[GROUP] {buffer.key}: фото не загружено — {e}")
            async with buffer.lock:
                buffer.failures.append(e)
        finally:
            async with buffer.lock:
                if not slot.done():
                    slot.set_result(storage_id)
                if is_first and buffer.state is GroupState.ACCUMULATING:
                    self._arm_timer(buffer)

    def _arm_timer(self, buffer: GroupBuffer):
        if buffer.timer_armed:
            return
        buffer.timer_armed = True
        buffer.deadline = self.clock.now() + self.delay
        task = asyncio.create_task(self._close_on_deadline(buffer))
        buffer.timer = task
        self._timers.add(task)
        task.add_done_callback(self._timers.discard)

    async def _close_on_deadline(self, buffer: GroupBuffer) -> Post | None:
        await self.clock.sleep_until(buffer.deadline)

        async with buffer.lock:
            if buffer.state is not GroupState.ACCUMULATING:
                return None
            buffer.state = GroupState.CLOSING
            if self._buffers.get(buffer.key) is buffer:
                del self._buffers[buffer.key]

        try:
            return await self._flush(buffer)
        except Exception as e:
            print(f"[GROUP] {buffer.key}: ошибка при сборке альбома — {e}")
            return None

    async def _flush(self, buffer: GroupBuffer) -> Post | None:
        # Фото, пришедшие до закрытия, могут ещё качаться
        await asyncio.gather(*buffer.slots, return_exceptions=True)
        photo_ids = buffer.photo_identifiers()
        buffer.state = GroupState.FLUSHED

        if buffer.event_count == 1 and self.drop_single_photo_groups:
            print(f"[GROUP] {buffer.key}: в альбоме одно фото — пост не создаётся")
            return None

        if not photo_ids:
            await log_warn(f"Альбом {buffer.key}: ни одно из {buffer.event_count} фото не загружено")
            await self.assembler.report_failure(buffer.origin, EmptyBatchError(buffer.failures))
            return None

        print(f"[GROUP] {buffer.key}: альбом закрыт, фото {len(photo_ids)} из {buffer.event_count}")
        try:
            return await self.assembler.assemble(photo_ids, buffer.caption, origin=buffer.origin)
        except StoreWriteError:
            return None

    async def join(self) -> list[Post | None]:
        """Дожидается всех взведённых таймеров. Возвращает результаты сборки."""
        results = []
        while self._timers:
            batch = list(self._timers)
            results.extend(await asyncio.gather(*batch))
            self._timers.difference_update(batch)
        return results

    async def shutdown(self):
        """Отменяет таймеры и отбрасывает незакрытые группы."""
        buffers = list(self._buffers.values())
        self._buffers.clear()

        for buffer in buffers:
            buffer.state = GroupState.DISCARDED
            if buffer.timer:
                buffer.timer.cancel()

        timers = list(self._timers)
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)
        self._timers.clear()

        if buffers:
            print(f"[SHUTDOWN] Отброшено незакрытых альбомов: {len(buffers)}")

"""
Источник времени для таймеров медиагрупп.

MonotonicClock — боевой, по часам event loop.
ManualClock — для тестов: время двигается только через advance().
"""
import asyncio


class MonotonicClock:
    def now(self) -> float:
        return asyncio.get_running_loop().time()

    async def sleep_until(self, deadline: float):
        delay = deadline - self.now()
        if delay > 0:
            await asyncio.sleep(delay)


class ManualClock:
    def __init__(self, start: float = 0.0):
        self._now = start
        # (deadline, future) — кто ждёт наступления времени
        self._waiters: list[tuple[float, asyncio.Future]] = []

    def now(self) -> float:
        return self._now

    async def sleep_until(self, deadline: float):
        if deadline <= self._now:
            return
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append((deadline, fut))
        await fut

    async def advance(self, seconds: float):
        """Сдвигает время и будит всех, чей дедлайн наступил."""
        self._now += seconds
        due = [w for w in self._waiters if w[0] <= self._now]
        self._waiters = [w for w in self._waiters if w[0] > self._now]
        for _, fut in due:
            if not fut.done():
                fut.set_result(None)
        # Даём проснувшимся задачам отработать
        for _ in range(5):
            await asyncio.sleep(0)

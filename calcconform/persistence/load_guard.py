import asyncio
from typing import Awaitable, Callable, Optional


class LoadGuard:
    """
    Runs a loader coroutine at most once until reset().

    Callers that arrive while the first load is still in flight await the
    same task, so durable storage is read once no matter how many call
    sites ask for the data. The loader must not raise.
    """

    def __init__(self, loader: Callable[[], Awaitable[None]]):
        self._loader = loader
        self._task: Optional[asyncio.Future] = None
        self.loaded = False

    async def ensure(self) -> None:
        while not self.loaded:
            if self._task is None:
                self._task = asyncio.ensure_future(self._run())
            task = self._task
            try:
                await task
            except asyncio.CancelledError:
                if self._task is task:
                    self._task = None
                    raise
                # Dropped by reset(): load again from the new state

    async def _run(self) -> None:
        await self._loader()
        self.loaded = True

    def reset(self) -> None:
        """Forget the loaded state. A load still in flight is cancelled and never commits."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.loaded = False

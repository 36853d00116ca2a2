"""Best-effort, non-blocking persistence.

``WriteBehind.submit`` never blocks and never raises. Only the latest value
per key is kept: a snapshot superseded before the drain task reaches it is
dropped, so each snapshot is written at most once. Anything still pending
when the process stops is lost; call ``flush()`` at teardown to narrow that
window. Backend failures are logged and discarded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from puzzlecoach.state.storage import KeyValueStore

logger = logging.getLogger(__name__)


class WriteBehind:
    def __init__(self, backend: KeyValueStore):
        self.backend = backend
        self._pending: dict[str, Optional[str]] = {}  # None removes the key
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, key: str, value: Optional[str]) -> None:
        self._pending[key] = value
        if self._task is not None and not self._task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._drain_inline()
            return
        self._task = loop.create_task(self._drain())

    async def flush(self) -> None:
        """Wait until everything submitted so far has been attempted."""
        while self._task is not None and not self._task.done():
            await self._task
        if self._pending:
            await self._drain()

    async def _drain(self) -> None:
        while self._pending:
            key = next(iter(self._pending))
            value = self._pending.pop(key)
            try:
                await asyncio.to_thread(self._write, key, value)
            except Exception as e:
                logger.warning("Failed to persist %r: %s", key, e)

    def _drain_inline(self) -> None:
        while self._pending:
            key = next(iter(self._pending))
            value = self._pending.pop(key)
            try:
                self._write(key, value)
            except Exception as e:
                logger.warning("Failed to persist %r: %s", key, e)

    def _write(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self.backend.remove(key)
        else:
            self.backend.set(key, value)

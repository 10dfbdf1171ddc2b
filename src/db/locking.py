"""Process-wide reader/writer lock over the shared store.

Readers run concurrently; a writer excludes everyone else. Waiting writers
block new readers so a steady read load cannot starve a mutation.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional


class ReadWriteLock:
    def __init__(self) -> None:
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._cond: Optional[asyncio.Condition] = None
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def _condition(self) -> asyncio.Condition:
        # asyncio primitives are loop-bound; rebuild when a new loop shows up
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            self._loop = loop
            self._cond = asyncio.Condition()
            self._readers = 0
            self._writer = False
            self._waiting_writers = 0
        return self._cond

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def writing(self) -> bool:
        return self._writer

    @asynccontextmanager
    async def reader(self) -> AsyncIterator[None]:
        cond = self._condition()
        async with cond:
            await cond.wait_for(lambda: not self._writer and not self._waiting_writers)
            self._readers += 1
        try:
            yield
        finally:
            async with cond:
                self._readers -= 1
                if self._readers == 0:
                    cond.notify_all()

    @asynccontextmanager
    async def writer(self) -> AsyncIterator[None]:
        cond = self._condition()
        async with cond:
            self._waiting_writers += 1
            try:
                await cond.wait_for(lambda: not self._writer and self._readers == 0)
            except BaseException:
                # Cancelled while queued: let blocked readers re-check
                self._waiting_writers -= 1
                cond.notify_all()
                raise
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            async with cond:
                self._writer = False
                cond.notify_all()


store_lock = ReadWriteLock()

"""
Completion signalling between synthesizers and their orchestrator.

A synthesizer is handed a completion channel at construction: any
callable that accepts a SavedEvent. One event is emitted per
successful synthesize() call, after the file is written and probed.

Usage:
    channel = QueueCompletionChannel()
    synth = create_synthesizer(cfg, "en-US", channel=channel)
    result = await synth.synthesize("Hello")
    event = await channel.get()   # event.duration == result.duration
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

SAVED = "saved"


@dataclass(frozen=True)
class SavedEvent:
    synthesizer: str
    duration: float
    audio_file_path: Path
    name: str = SAVED


CompletionChannel = Callable[[SavedEvent], None]


class QueueCompletionChannel:
    """asyncio.Queue-backed channel for orchestrators that consume events as a stream."""

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[SavedEvent] = asyncio.Queue(maxsize=maxsize)

    def __call__(self, event: SavedEvent) -> None:
        # put_nowait raises QueueFull on a bounded, full queue; the pipeline logs it.
        self._queue.put_nowait(event)

    async def get(self, timeout: Optional[float] = None) -> SavedEvent:
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout=timeout)

    def get_nowait(self) -> SavedEvent:
        return self._queue.get_nowait()

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()

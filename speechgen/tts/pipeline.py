"""
Synthesis pipeline — request → stream capture → duration probe → result.

One SynthesisPipeline serves every call of one synthesizer. Calls are
independent coroutines; nothing here is shared between them except the
(read-only) speech client, so concurrent calls need no locking.

Per-call states:

  IDLE → DISPATCHING → STREAM_ACQUIRED → CAPTURING → PROBING → COMPLETED
           └──────────────┴──────────────┴───────────┴──→ FAILED

Failures never raise: each one is logged with the synthesizer name and
returned as a tagged SynthesisOutcome.
"""
from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from pathlib import Path
from typing import AsyncIterator, Optional

from ..audio import DurationProbe, get_probe
from .base import (
    FailureReason,
    SpeechClient,
    SynthesisOutcome,
    SynthesisRequest,
    SynthesisResult,
    SynthesisState,
)
from .events import CompletionChannel, SavedEvent

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_SUFFIX_LEN = 4
_MAX_NAME_ATTEMPTS = 16


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _random_suffix() -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LEN))


def make_audio_filename(ext: str, now_ms: Optional[int] = None) -> str:
    """Build `<epoch-millis>-<4-char-random>.<ext>`."""
    if now_ms is None:
        now_ms = _now_ms()
    return f"{now_ms}-{_random_suffix()}.{ext.lstrip('.')}"


async def _next_chunk(chunks: AsyncIterator[bytes]) -> Optional[bytes]:
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None


class SynthesisPipeline:
    """Runs one synthesis request end to end.

    Args:
        name: Owning synthesizer name, used as log context.
        client: Speech client shared by every call (never mutated here).
        tmp_dir: Directory for captured audio files (created on demand).
        channel: Completion channel receiving one SavedEvent per success.
        timeout_s: Upper bound for dispatch and for each wait between
            audio chunks during capture (0 = unbounded).
        cleanup_partial: Delete files left by failed captures/probes.
        probe: Duration probe override (default: chosen by output format).
    """

    def __init__(
        self,
        *,
        name: str,
        client: SpeechClient,
        tmp_dir: Path,
        channel: Optional[CompletionChannel] = None,
        timeout_s: float = 30.0,
        cleanup_partial: bool = True,
        probe: Optional[DurationProbe] = None,
    ) -> None:
        self._name = name
        self._client = client
        self._tmp_dir = Path(tmp_dir)
        self._channel = channel
        self._timeout = timeout_s if timeout_s and timeout_s > 0 else None
        self._cleanup_partial = cleanup_partial
        self._probe = probe

    @property
    def tmp_dir(self) -> Path:
        return self._tmp_dir

    async def run(self, request: SynthesisRequest) -> SynthesisOutcome:
        state = SynthesisState.DISPATCHING
        self._trace(state, request)
        try:
            response = await asyncio.wait_for(self._client.send(request), timeout=self._timeout)
        except asyncio.TimeoutError:
            return self._fail(FailureReason.DISPATCH, state, f"no response within {self._timeout}s")
        except Exception as e:
            return self._fail(FailureReason.DISPATCH, state, f"Failed to synthesize speech: {e}")

        try:
            if response.audio_stream is None:
                return self._fail(FailureReason.MISSING_STREAM, state, "audio stream is undefined")

            state = SynthesisState.STREAM_ACQUIRED
            self._trace(state, request)

            try:
                audio_path = self._create_target(request.output_format)
            except OSError as e:
                return self._fail(FailureReason.CAPTURE, state, f"cannot create audio file: {e}")

            state = SynthesisState.CAPTURING
            self._trace(state, request)
            try:
                written = await self._capture(response.audio_stream, audio_path)
            except asyncio.TimeoutError:
                self._discard(audio_path)
                return self._fail(FailureReason.CAPTURE, state, f"stream stalled: no audio for more than {self._timeout}s")
            except Exception as e:
                self._discard(audio_path)
                return self._fail(FailureReason.CAPTURE, state, f"failed to write {audio_path.name}: {e}")
        finally:
            response.release()

        if written == 0:
            self._discard(audio_path)
            return self._fail(FailureReason.CAPTURE, state, "audio stream was empty")

        state = SynthesisState.PROBING
        self._trace(state, request)
        try:
            probe = self._probe or get_probe(request.output_format)
            duration = probe(audio_path)
            if not duration > 0:
                raise ValueError(f"non-positive duration {duration!r}")
        except Exception as e:
            self._discard(audio_path)
            return self._fail(FailureReason.PROBE, state, f"cannot probe {audio_path.name}: {e}")

        result = SynthesisResult(audio_file_path=audio_path, duration=duration)
        self._emit_saved(result)
        self._trace(SynthesisState.COMPLETED, request)
        logger.info(
            "%s - Saved %s (%d bytes, %.2fs)",
            self._name, audio_path, written, duration,
        )
        return SynthesisOutcome.success(result)

    def _create_target(self, output_format: str) -> Path:
        """Create an empty, uniquely named file and return its path.

        Exclusive-create turns a same-millisecond name clash into a retry
        with a fresh suffix instead of two calls sharing one file.
        """
        self._tmp_dir.mkdir(parents=True, exist_ok=True)
        for _ in range(_MAX_NAME_ATTEMPTS):
            path = self._tmp_dir / make_audio_filename(output_format)
            try:
                path.open("xb").close()
            except FileExistsError:
                continue
            return path
        raise FileExistsError(f"no free audio file name in {self._tmp_dir}")

    async def _capture(self, stream: AsyncIterator[bytes], path: Path) -> int:
        """Write *stream* to *path* and return the byte count.

        The timeout bounds the wait for each chunk, not the whole transfer:
        a long reply that keeps delivering audio is never cut off.
        """
        written = 0
        chunks = stream.__aiter__()
        with path.open("wb") as f:
            while True:
                chunk = await asyncio.wait_for(_next_chunk(chunks), timeout=self._timeout)
                if chunk is None:
                    break
                if chunk:
                    f.write(chunk)
                    written += len(chunk)
        return written

    def _emit_saved(self, result: SynthesisResult) -> None:
        if self._channel is None:
            return
        event = SavedEvent(
            synthesizer=self._name,
            duration=result.duration,
            audio_file_path=result.audio_file_path,
        )
        try:
            self._channel(event)
        except Exception:
            logger.exception("%s - Completion channel rejected saved event", self._name)

    def _discard(self, path: Path) -> None:
        if not self._cleanup_partial:
            logger.warning("%s - Leaving partial audio file %s", self._name, path)
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("%s - Could not remove partial file %s: %s", self._name, path, e)

    def _fail(self, reason: FailureReason, state: SynthesisState, detail: str) -> SynthesisOutcome:
        logger.error("%s - %s", self._name, detail)
        logger.debug("%s: %s → %s (%s)", self._name, state.value, SynthesisState.FAILED.value, reason.value)
        return SynthesisOutcome.failed(reason, detail, state)

    def _trace(self, state: SynthesisState, request: SynthesisRequest) -> None:
        logger.debug("%s: %s voice=%s text=%.40s", self._name, state.value, request.voice.voice_id, request.text)

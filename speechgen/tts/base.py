"""
Abstract synthesizer interface and the value types it trades in.

Every backend (Azure, OpenAI, ...) implements Synthesizer. The
orchestrator only ever sees this interface.

Key design principles:
  1. Never raises: synthesize() returns None on failure, and
     synthesize_outcome() says *why* with a tagged FailureReason.
  2. Async: network and file capture run on the event loop.
  3. Files, not buffers: a result always points at a fully written
     audio file on disk.
"""
from __future__ import annotations

import abc
import enum
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Protocol

from .voices import Voice


class SynthesisState(str, enum.Enum):
    """Per-call pipeline state. FAILED and COMPLETED are terminal."""
    IDLE = "idle"
    DISPATCHING = "dispatching"
    STREAM_ACQUIRED = "stream_acquired"
    CAPTURING = "capturing"
    PROBING = "probing"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureReason(str, enum.Enum):
    INITIALIZATION = "initialization"
    CLIENT_ABSENT = "client_absent"
    INVALID_REQUEST = "invalid_request"
    UNSUPPORTED_LANGUAGE = "unsupported_language"
    DISPATCH = "dispatch"
    MISSING_STREAM = "missing_stream"
    CAPTURE = "capture"
    PROBE = "probe"


class SpeechServiceError(Exception):
    """Raised by speech clients when the provider rejects a request."""

    def __init__(self, status: int, body: str = "") -> None:
        super().__init__(f"speech service returned HTTP {status}: {body[:200]}")
        self.status = status
        self.body = body


@dataclass(frozen=True)
class SynthesisRequest:
    """One text-to-speech request.

    Attributes:
        text: Text to speak; must not be blank.
        voice: Resolved provider voice.
        output_format: File extension / container of the audio (e.g., "wav").
    """
    text: str
    voice: Voice
    output_format: str = "wav"

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValueError("synthesis text must be a non-empty string")


@dataclass(frozen=True)
class SynthesisResult:
    audio_file_path: Path
    duration: float  # seconds, > 0


@dataclass(frozen=True)
class SynthesisFailure:
    reason: FailureReason
    detail: str = ""
    state: SynthesisState = SynthesisState.IDLE


@dataclass(frozen=True)
class SynthesisOutcome:
    """Either a result or a failure, never both."""
    result: Optional[SynthesisResult] = None
    failure: Optional[SynthesisFailure] = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    @classmethod
    def success(cls, result: SynthesisResult) -> SynthesisOutcome:
        return cls(result=result)

    @classmethod
    def failed(
        cls,
        reason: FailureReason,
        detail: str = "",
        state: SynthesisState = SynthesisState.IDLE,
    ) -> SynthesisOutcome:
        return cls(failure=SynthesisFailure(reason=reason, detail=detail, state=state))


@dataclass
class SpeechResponse:
    """What a speech client hands back after dispatch.

    audio_stream is None when the provider answered without audio.
    release() must be called once the stream is drained or abandoned.
    """
    audio_stream: Optional[AsyncIterator[bytes]]
    content_type: str = ""
    on_release: Optional[Callable[[], None]] = None

    def release(self) -> None:
        if self.on_release is not None:
            callback, self.on_release = self.on_release, None
            callback()


class SpeechClient(Protocol):
    """Connection to a remote speech-synthesis service."""

    async def send(self, request: SynthesisRequest) -> SpeechResponse:
        ...

    async def close(self) -> None:
        ...


class Synthesizer(abc.ABC):
    """Language-bound text → audio file converter.

    Subclasses must implement:
      - properties: name, lang
      - synthesize_outcome(): full pipeline, tagged outcome

    synthesize() is the plain contract the orchestrator uses: the
    result on success, None on any failure.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Human-readable synthesizer name (for logging)."""
        ...

    @property
    @abc.abstractmethod
    def lang(self) -> str:
        """Configured language code."""
        ...

    @abc.abstractmethod
    async def synthesize_outcome(self, text: str) -> SynthesisOutcome:
        """Run the synthesis pipeline for *text*. Never raises."""
        ...

    async def synthesize(self, text: str) -> Optional[SynthesisResult]:
        outcome = await self.synthesize_outcome(text)
        return outcome.result

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""

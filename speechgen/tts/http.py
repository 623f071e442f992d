"""
Shared aiohttp plumbing for HTTP speech clients.

Subclasses provide the endpoint, headers and body; this class owns the
session lifecycle and turns a streaming HTTP response into a
SpeechResponse whose audio_stream yields body chunks as they arrive.
"""
from __future__ import annotations

import abc
import asyncio
import logging
import ssl
from typing import Any, Optional

import aiohttp
import certifi

from .base import SpeechResponse, SpeechServiceError, SynthesisRequest

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 8192


def make_ssl_context() -> ssl.SSLContext:
    """Create SSL context that works on macOS (uses certifi CA bundle)."""
    ctx = ssl.create_default_context()
    ctx.load_verify_locations(cafile=certifi.where())
    return ctx


class HttpSpeechClient(abc.ABC):
    """Base for providers that answer a POST with an audio body."""

    provider = "http"

    def __init__(self, *, headers: dict[str, str], timeout_s: float = 30.0) -> None:
        self._headers = dict(headers)
        self._timeout = timeout_s
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_lock = asyncio.Lock()

    @property
    @abc.abstractmethod
    def endpoint(self) -> str:
        """Full URL the synthesis request is POSTed to."""
        ...

    @abc.abstractmethod
    def build_payload(self, request: SynthesisRequest) -> dict[str, Any]:
        """Return keyword arguments for ClientSession.post (json=/data=/headers=)."""
        ...

    async def _ensure_session(self) -> aiohttp.ClientSession:
        async with self._session_lock:
            if self._session is None or self._session.closed:
                conn = aiohttp.TCPConnector(ssl=make_ssl_context())
                self._session = aiohttp.ClientSession(
                    connector=conn,
                    headers=self._headers,
                    timeout=aiohttp.ClientTimeout(total=None, connect=5, sock_read=self._timeout),
                )
                logger.debug("%s session opened: %s", self.provider, self.endpoint)
            return self._session

    async def send(self, request: SynthesisRequest) -> SpeechResponse:
        session = await self._ensure_session()
        resp = await session.post(self.endpoint, **self.build_payload(request))
        if resp.status != 200:
            try:
                body = await resp.text()
            finally:
                resp.release()
            logger.error(
                "%s TTS error %d: %s (text=%.50s)",
                self.provider, resp.status, body[:200], request.text,
            )
            raise SpeechServiceError(resp.status, body)

        content_type = resp.headers.get("Content-Type", "")
        if resp.content_length == 0 or not content_type.startswith("audio/"):
            logger.warning(
                "%s TTS answered without audio (content-type=%r length=%r)",
                self.provider, content_type, resp.content_length,
            )
            return SpeechResponse(audio_stream=None, content_type=content_type, on_release=resp.release)

        return SpeechResponse(
            audio_stream=resp.content.iter_chunked(_CHUNK_SIZE),
            content_type=content_type,
            on_release=resp.release,
        )

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

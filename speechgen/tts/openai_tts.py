"""
OpenAI TTS backend.

Uses OpenAI's standard speech API (/v1/audio/speech) with
response_format=wav and streams the response body to disk as it
arrives.

Provider config (config/voice/openai.json):
  {"api_key": "sk-...", "model": "tts-1"}
  Optional "base_url" for proxies / compatible servers.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from .base import SynthesisRequest
from .http import HttpSpeechClient

logger = logging.getLogger(__name__)


class OpenAISpeechClient(HttpSpeechClient):
    """Streaming WAV synthesis via OpenAI TTS-1."""

    provider = "openai"

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "tts-1",
        base_url: str = "https://api.openai.com",
        timeout_s: float = 30.0,
    ) -> None:
        if not api_key:
            raise ValueError("OpenAI speech config requires 'api_key'")
        super().__init__(
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout_s=timeout_s,
        )
        self._model = model
        self._endpoint = f"{base_url.rstrip('/')}/v1/audio/speech"

    @classmethod
    def from_config(cls, config: Mapping[str, Any], *, timeout_s: float = 30.0) -> OpenAISpeechClient:
        logger.debug("OpenAI speech client: model=%s", config.get("model") or "tts-1")
        return cls(
            api_key=str(config.get("api_key", "")).strip(),
            model=str(config.get("model") or "tts-1"),
            base_url=str(config.get("base_url") or "https://api.openai.com"),
            timeout_s=timeout_s,
        )

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def build_payload(self, request: SynthesisRequest) -> dict[str, Any]:
        return {
            "json": {
                "model": self._model,
                "input": request.text,
                "voice": request.voice.voice_id,
                "response_format": request.output_format,
            },
        }

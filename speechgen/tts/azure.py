"""
Azure Speech (Cognitive Services) TTS backend.

Posts a minimal SSML envelope to the regional REST endpoint and streams
the RIFF/WAV body back:

  POST https://<region>.tts.speech.microsoft.com/cognitiveservices/v1
  Headers: Ocp-Apim-Subscription-Key, X-Microsoft-OutputFormat
  Body:    <speak><voice name="...">text</voice></speak>

Provider config (config/voice/azure.json):
  {"key": "<subscription key>", "region": "westeurope"}
  Optional "endpoint" overrides the regional URL (sovereign clouds, tests).
"""
from __future__ import annotations

import logging
from typing import Any, Mapping
from xml.sax.saxutils import escape, quoteattr

from .base import SynthesisRequest
from .http import HttpSpeechClient

logger = logging.getLogger(__name__)

_OUTPUT_FORMAT = "riff-24khz-16bit-mono-pcm"
_USER_AGENT = "speechgen"


def build_ssml(text: str, voice_id: str, lang: str) -> str:
    """Wrap plain text in the SSML envelope the endpoint requires."""
    return (
        f"<speak version='1.0' xml:lang={quoteattr(lang)}>"
        f"<voice name={quoteattr(voice_id)}>{escape(text)}</voice>"
        "</speak>"
    )


class AzureSpeechClient(HttpSpeechClient):
    """Streaming WAV synthesis via the Azure Speech REST API."""

    provider = "azure"

    def __init__(
        self,
        *,
        key: str,
        region: str,
        endpoint: str = "",
        timeout_s: float = 30.0,
    ) -> None:
        if not key:
            raise ValueError("Azure speech config requires 'key'")
        if not region and not endpoint:
            raise ValueError("Azure speech config requires 'region' (or 'endpoint')")
        super().__init__(
            headers={
                "Ocp-Apim-Subscription-Key": key,
                "Content-Type": "application/ssml+xml",
                "X-Microsoft-OutputFormat": _OUTPUT_FORMAT,
                "User-Agent": _USER_AGENT,
            },
            timeout_s=timeout_s,
        )
        self._endpoint = endpoint or f"https://{region}.tts.speech.microsoft.com/cognitiveservices/v1"

    @classmethod
    def from_config(cls, config: Mapping[str, Any], *, timeout_s: float = 30.0) -> AzureSpeechClient:
        logger.debug("Azure speech client: region=%s endpoint=%s", config.get("region"), config.get("endpoint") or "(regional)")
        if config.get("output_format"):
            # Files are named .wav and probed as RIFF; other formats would never probe.
            logger.warning(
                "Azure speech config: ignoring output_format=%r, output is always %s",
                config.get("output_format"), _OUTPUT_FORMAT,
            )
        return cls(
            key=str(config.get("key", "")).strip(),
            region=str(config.get("region", "")).strip(),
            endpoint=str(config.get("endpoint", "")).strip(),
            timeout_s=timeout_s,
        )

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def build_payload(self, request: SynthesisRequest) -> dict[str, Any]:
        ssml = build_ssml(request.text, request.voice.voice_id, request.voice.lang)
        return {"data": ssml.encode("utf-8")}

"""
Cloud-backed synthesizer: one language, one provider, one client.

Construction reads the provider's JSON config and builds the speech
client exactly once. If that fails the instance stays usable but
degraded: every synthesize() call fails fast with CLIENT_ABSENT and
never touches the network or the file system. It is never retried.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from ..audio import DurationProbe
from ..config import load_voice_config
from .base import (
    FailureReason,
    SpeechClient,
    Synthesizer,
    SynthesisFailure,
    SynthesisOutcome,
    SynthesisRequest,
    SynthesisState,
)
from .events import CompletionChannel
from .pipeline import SynthesisPipeline
from .voices import VoiceCatalog

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Mapping[str, Any]], SpeechClient]


class CloudSynthesizer(Synthesizer):
    """Synthesizer backed by a remote speech service.

    Args:
        name: Human-readable name used as log context.
        provider: Provider key; also names the JSON config file.
        lang: Language code this instance speaks.
        catalog: Provider voice catalog.
        client_factory: Builds the speech client from the provider config.
        voice_config_dir: Directory holding `<provider>.json`.
        tmp_dir: Where captured audio files are written.
        channel: Completion channel for SavedEvents.
        output_format: Audio container requested from the provider.
        timeout_s: Dispatch / capture timeout (0 = unbounded).
        cleanup_partial: Remove files left by failed captures.
        probe: Duration probe override (tests, non-WAV formats).
    """

    def __init__(
        self,
        *,
        name: str,
        provider: str,
        lang: str,
        catalog: VoiceCatalog,
        client_factory: ClientFactory,
        voice_config_dir: Path,
        tmp_dir: Path,
        channel: Optional[CompletionChannel] = None,
        output_format: str = "wav",
        timeout_s: float = 30.0,
        cleanup_partial: bool = True,
        probe: Optional[DurationProbe] = None,
    ) -> None:
        self._name = name
        self._provider = provider
        self._lang = lang
        self._catalog = catalog
        self._output_format = output_format
        self._client: Optional[SpeechClient] = None
        self._pipeline: Optional[SynthesisPipeline] = None
        self.init_failure: Optional[SynthesisFailure] = None

        logger.info("%s: new instance (lang=%s)", self._name, self._lang)

        if lang not in catalog:
            logger.error("%s - No voice configured for language '%s'", self._name, lang)

        try:
            config = load_voice_config(voice_config_dir, provider)
            client = client_factory(config)
        except Exception as e:
            self.init_failure = SynthesisFailure(FailureReason.INITIALIZATION, str(e))
            logger.error("%s - Failed to initialize: %s", self._name, e)
            return

        self._client = client
        self._pipeline = SynthesisPipeline(
            name=name,
            client=client,
            tmp_dir=tmp_dir,
            channel=channel,
            timeout_s=timeout_s,
            cleanup_partial=cleanup_partial,
            probe=probe,
        )
        logger.info("%s: synthesizer initialized", self._name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def lang(self) -> str:
        return self._lang

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def client(self) -> Optional[SpeechClient]:
        return self._client

    @property
    def ready(self) -> bool:
        return self._pipeline is not None

    @property
    def init_error(self) -> str:
        return self.init_failure.detail if self.init_failure else ""

    async def synthesize_outcome(self, text: str) -> SynthesisOutcome:
        if self._pipeline is None:
            logger.error("%s - Client is not defined yet", self._name)
            return SynthesisOutcome.failed(FailureReason.CLIENT_ABSENT, self.init_error)

        found = self._catalog.lookup(self._lang)
        if found.voice is None:
            logger.error("%s - %s", self._name, found.error)
            return SynthesisOutcome.failed(FailureReason.UNSUPPORTED_LANGUAGE, found.error)

        try:
            request = SynthesisRequest(text=text, voice=found.voice, output_format=self._output_format)
        except ValueError as e:
            logger.error("%s - %s", self._name, e)
            return SynthesisOutcome.failed(FailureReason.INVALID_REQUEST, str(e))

        try:
            return await self._pipeline.run(request)
        except Exception as e:
            # run() maps known failures; anything else collapses to DISPATCH.
            logger.exception("%s - Failed to synthesize speech", self._name)
            return SynthesisOutcome.failed(FailureReason.DISPATCH, str(e), SynthesisState.IDLE)

    async def close(self) -> None:
        if self._client is not None:
            try:
                await self._client.close()
            except Exception:
                logger.warning("%s - Failed to close client", self._name, exc_info=True)

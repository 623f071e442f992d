"""
Synthesizer factory — picks a backend by provider name.

One synthesizer per (provider, language). There is no failover chain:
a synthesizer that fails to initialize stays degraded and reports
CLIENT_ABSENT on every call.

Usage:
    cfg = load_config()
    synth = create_synthesizer(cfg, "en-US", channel=on_saved)
    result = await synth.synthesize("Hello")
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Optional

from .azure import AzureSpeechClient
from .events import CompletionChannel
from .openai_tts import OpenAISpeechClient
from .synthesizer import ClientFactory, CloudSynthesizer
from .voices import AZURE_VOICES, OPENAI_VOICES, VoiceCatalog

if TYPE_CHECKING:
    from ..config import SpeechgenConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Backend:
    name: str
    catalog: VoiceCatalog
    client_factory: type[AzureSpeechClient] | type[OpenAISpeechClient]


BACKENDS: dict[str, Backend] = {
    "azure": Backend("Azure Speech TTS Synthesizer", AZURE_VOICES, AzureSpeechClient),
    "openai": Backend("OpenAI TTS Synthesizer", OPENAI_VOICES, OpenAISpeechClient),
}


def create_synthesizer(
    cfg: SpeechgenConfig,
    lang: Optional[str] = None,
    *,
    channel: Optional[CompletionChannel] = None,
) -> CloudSynthesizer:
    """Create the configured provider's synthesizer for *lang* (default: cfg.lang).

    Raises ValueError for an unknown provider; that is a configuration
    error, unlike a provider whose client fails to initialize.
    """
    provider = cfg.tts_provider.lower().strip()
    backend = BACKENDS.get(provider)
    if backend is None:
        raise ValueError(f"Unknown TTS provider: '{provider}' (known: {', '.join(sorted(BACKENDS))})")

    factory: ClientFactory = partial(backend.client_factory.from_config, timeout_s=cfg.request_timeout_s)
    synth = CloudSynthesizer(
        name=backend.name,
        provider=provider,
        lang=lang or cfg.lang,
        catalog=backend.catalog,
        client_factory=factory,
        voice_config_dir=cfg.voice_config_dir,
        tmp_dir=cfg.tmp_dir,
        channel=channel,
        timeout_s=cfg.request_timeout_s,
        cleanup_partial=cfg.cleanup_partial,
    )
    logger.info("TTS synthesizer: %s lang=%s ready=%s", synth.name, synth.lang, synth.ready)
    return synth


def create_synthesizers(
    cfg: SpeechgenConfig,
    *,
    channel: Optional[CompletionChannel] = None,
) -> dict[str, CloudSynthesizer]:
    """One synthesizer per supported language, keyed by language code."""
    return {lang: create_synthesizer(cfg, lang, channel=channel) for lang in cfg.supported_langs}

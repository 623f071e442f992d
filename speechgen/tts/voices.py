"""
Voice catalogs — language code → provider voice identifier.

Each provider ships one static catalog. Lookups never hand back an
unresolved identifier: lookup() returns an explicit VoiceLookup and
resolve() raises UnsupportedLanguageError, so callers must deal with
an unsupported language on purpose.

Usage:
    found = AZURE_VOICES.lookup("fr-FR")
    if found.ok:
        request = SynthesisRequest(text=text, voice=found.voice)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Optional


class UnsupportedLanguageError(LookupError):
    """Raised when a language code has no voice in a catalog."""

    def __init__(self, provider: str, lang: str) -> None:
        super().__init__(f"{provider}: no voice configured for language '{lang}'")
        self.provider = provider
        self.lang = lang


@dataclass(frozen=True)
class Voice:
    """A provider voice bound to one language.

    Attributes:
        lang: BCP-47 language code (e.g., "en-US").
        voice_id: Provider-native voice identifier (e.g., "en-US-GuyNeural").
    """
    lang: str
    voice_id: str


@dataclass(frozen=True)
class VoiceLookup:
    """Result of a catalog lookup: either a voice or an error message."""
    lang: str
    voice: Optional[Voice] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.voice is not None


class VoiceCatalog:
    """Immutable language → voice mapping for one provider."""

    def __init__(self, provider: str, voices: Mapping[str, str]) -> None:
        if not voices:
            raise ValueError(f"{provider}: voice catalog must not be empty")
        self._provider = provider
        self._voices = {lang: Voice(lang=lang, voice_id=vid) for lang, vid in voices.items()}

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def languages(self) -> tuple[str, ...]:
        return tuple(self._voices)

    def __contains__(self, lang: object) -> bool:
        return lang in self._voices

    def __iter__(self) -> Iterator[Voice]:
        return iter(self._voices.values())

    def __len__(self) -> int:
        return len(self._voices)

    def lookup(self, lang: str) -> VoiceLookup:
        voice = self._voices.get(lang)
        if voice is None:
            return VoiceLookup(lang=lang, error=str(UnsupportedLanguageError(self._provider, lang)))
        return VoiceLookup(lang=lang, voice=voice)

    def resolve(self, lang: str) -> Voice:
        """Return the voice for *lang* or raise UnsupportedLanguageError."""
        found = self.lookup(lang)
        if found.voice is None:
            raise UnsupportedLanguageError(self._provider, lang)
        return found.voice

    def missing(self, langs: Iterable[str]) -> list[str]:
        """Return the codes from *langs* this catalog cannot resolve."""
        return [lang for lang in langs if lang not in self._voices]


AZURE_VOICES = VoiceCatalog("azure", {
    "en-US": "en-US-GuyNeural",
    "fr-FR": "fr-FR-HenriNeural",
})

# OpenAI voices are multilingual; the language picks a fixed speaker.
OPENAI_VOICES = VoiceCatalog("openai", {
    "en-US": "onyx",
    "fr-FR": "echo",
})

PROVIDER_CATALOGS: Mapping[str, VoiceCatalog] = {
    AZURE_VOICES.provider: AZURE_VOICES,
    OPENAI_VOICES.provider: OPENAI_VOICES,
}

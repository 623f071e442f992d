"""
Text-to-speech synthesizers for speechgen.

Turns text into a playable audio file through a cloud speech backend:
request → stream capture → duration probe → saved event → result.

Usage:
    from speechgen.tts import create_synthesizer
    synth = create_synthesizer(cfg, "en-US", channel=on_saved)
    result = await synth.synthesize("Hello world")
    if result:
        print(result.audio_file_path, result.duration)
"""
from .base import (
    FailureReason,
    SpeechClient,
    SpeechResponse,
    SpeechServiceError,
    SynthesisFailure,
    SynthesisOutcome,
    SynthesisRequest,
    SynthesisResult,
    SynthesisState,
    Synthesizer,
)
from .events import SavedEvent, QueueCompletionChannel
from .factory import create_synthesizer, create_synthesizers
from .pipeline import SynthesisPipeline
from .synthesizer import CloudSynthesizer
from .voices import Voice, VoiceCatalog, VoiceLookup, UnsupportedLanguageError

__all__ = [
    "FailureReason",
    "SpeechClient",
    "SpeechResponse",
    "SpeechServiceError",
    "SynthesisFailure",
    "SynthesisOutcome",
    "SynthesisRequest",
    "SynthesisResult",
    "SynthesisState",
    "Synthesizer",
    "SavedEvent",
    "QueueCompletionChannel",
    "create_synthesizer",
    "create_synthesizers",
    "SynthesisPipeline",
    "CloudSynthesizer",
    "Voice",
    "VoiceCatalog",
    "VoiceLookup",
    "UnsupportedLanguageError",
]

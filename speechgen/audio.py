"""
Audio file inspection — duration probes for captured synthesis output.

Probes read only the container header, so they are cheap enough to run
on the event loop right after capture. Each probe raises AudioProbeError
when the file cannot be decoded.
"""
from __future__ import annotations

import struct
import wave
from pathlib import Path
from typing import Callable, Dict

DurationProbe = Callable[[Path], float]


class AudioProbeError(Exception):
    """Raised when a file's duration cannot be determined."""


def probe_wav_duration(path: Path) -> float:
    """Return the playback length of a RIFF/WAV file in seconds."""
    try:
        with wave.open(str(path), "rb") as wav_file:
            frame_count = wav_file.getnframes()
            sample_rate = wav_file.getframerate()
    except (wave.Error, EOFError, struct.error, OSError) as exc:
        raise AudioProbeError(f"{path.name} is not a readable WAV file: {exc}") from exc
    if sample_rate <= 0:
        raise AudioProbeError(f"{path.name} has invalid WAV sample rate {sample_rate}")
    return frame_count / float(sample_rate)


_PROBES: Dict[str, DurationProbe] = {
    "wav": probe_wav_duration,
}


def get_probe(output_format: str) -> DurationProbe:
    """Return the duration probe for an output format (file extension)."""
    fmt = output_format.lower().lstrip(".")
    try:
        return _PROBES[fmt]
    except KeyError:
        raise ValueError(f"no duration probe for audio format '{output_format}'") from None

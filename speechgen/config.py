from __future__ import annotations
from dataclasses import dataclass, field
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_LANG = "en-US"
DEFAULT_PROVIDER = "azure"
DEFAULT_VOICE_CONFIG_PATH = "config/voice"


def _env_str(key: str, default: str) -> str:
    v = os.getenv(key)
    if v is None or str(v).strip() == "":
        return default
    return str(v).strip().strip('"').strip("'")


def _env_float(key: str, default: float) -> float:
    v = os.getenv(key)
    if v is None or str(v).strip() == "":
        return default
    try:
        return float(v)
    except Exception as e:
        raise ValueError(f"{key} must be a float, got {v!r}") from e


def _env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    return str(v).strip().lower() in ("1", "true", "yes", "y", "on")


def _env_list(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    v = os.getenv(key)
    if v is None or str(v).strip() == "":
        return default
    return tuple(item.strip() for item in v.split(",") if item.strip())


def _resolve_path(raw: str) -> Path:
    p = Path(raw).expanduser()
    return p if p.is_absolute() else p.resolve()


@dataclass(frozen=True)
class SpeechgenConfig:
    lang: str = DEFAULT_LANG
    supported_langs: tuple[str, ...] = (DEFAULT_LANG,)
    tts_provider: str = DEFAULT_PROVIDER
    tmp_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()) / "speechgen")
    voice_config_dir: Path = Path(DEFAULT_VOICE_CONFIG_PATH)
    request_timeout_s: float = 30.0
    cleanup_partial: bool = True


def load_config(env_file: str | None = None) -> SpeechgenConfig:
    """Load config from .env + environment.

    Precedence: real environment wins over .env values.
    """
    if env_file:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)

    lang = _env_str("SPEECHGEN_LANG", DEFAULT_LANG)
    supported_langs = _env_list("SPEECHGEN_LANGS", (lang,))
    if lang not in supported_langs:
        raise ValueError(f"SPEECHGEN_LANG={lang!r} is not listed in SPEECHGEN_LANGS={','.join(supported_langs)!r}")

    tts_provider = _env_str("TTS_PROVIDER", DEFAULT_PROVIDER).lower()
    tmp_dir = _resolve_path(_env_str("TMP_PATH", str(Path(tempfile.gettempdir()) / "speechgen")))
    voice_config_dir = _resolve_path(_env_str("VOICE_CONFIG_PATH", DEFAULT_VOICE_CONFIG_PATH))

    request_timeout_s = _env_float("TTS_REQUEST_TIMEOUT_S", 30.0)
    if request_timeout_s < 0:
        raise ValueError(f"TTS_REQUEST_TIMEOUT_S must be >= 0, got {request_timeout_s}")
    cleanup_partial = _env_bool("TTS_CLEANUP_PARTIAL", True)

    from .tts.voices import PROVIDER_CATALOGS

    catalog = PROVIDER_CATALOGS.get(tts_provider)
    if catalog is None:
        logger.warning("Unknown TTS provider: '%s'", tts_provider)
    else:
        missing = catalog.missing(supported_langs)
        if missing:
            logger.error(
                "TTS_PROVIDER=%s has no voice for %s; synthesis in these languages will fail",
                tts_provider, ", ".join(missing),
            )

    if not request_timeout_s:
        logger.warning("TTS_REQUEST_TIMEOUT_S=0: a stalled provider stream will hang synthesis forever")

    return SpeechgenConfig(
        lang=lang,
        supported_langs=supported_langs,
        tts_provider=tts_provider,
        tmp_dir=tmp_dir,
        voice_config_dir=voice_config_dir,
        request_timeout_s=request_timeout_s,
        cleanup_partial=cleanup_partial,
    )


def load_voice_config(voice_config_dir: Path, provider: str) -> dict[str, Any]:
    """Read `<voice_config_dir>/<provider>.json`; the schema is provider specific."""
    path = Path(voice_config_dir) / f"{provider}.json"
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object, got {type(data).__name__}")
    return data

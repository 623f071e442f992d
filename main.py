from __future__ import annotations

import argparse
import asyncio
import hashlib
import logging
import sys
from dataclasses import replace

from speechgen.config import load_config, load_voice_config
from speechgen.logging_utils import setup_logging
from speechgen.tts import QueueCompletionChannel, create_synthesizer


logger = logging.getLogger(__name__)

_SECRET_FIELDS = ("key", "api_key")


def _mask_secret(s: str, prefix: int = 4, suffix: int = 4) -> str:
    s = (s or "").strip()
    if not s:
        return ""
    if len(s) <= prefix + suffix:
        return "*" * len(s)
    return f"{s[:prefix]}...{s[-suffix:]}"


def _sha256_prefix(s: str, n: int = 12) -> str:
    if not s:
        return ""
    return hashlib.sha256(s.encode("utf-8")).hexdigest()[:n]


def _log_config(cfg) -> None:
    logging.getLogger("speechgen").info(
        "Config: provider=%s lang=%s supported_langs=%s tmp_dir=%s voice_config_dir=%s "
        "request_timeout_s=%s cleanup_partial=%s",
        cfg.tts_provider,
        cfg.lang,
        ",".join(cfg.supported_langs),
        cfg.tmp_dir,
        cfg.voice_config_dir,
        cfg.request_timeout_s,
        cfg.cleanup_partial,
    )
    try:
        provider_cfg = load_voice_config(cfg.voice_config_dir, cfg.tts_provider)
    except Exception as e:
        logging.getLogger("speechgen").warning("Provider config unreadable: %s", e)
        return
    for field_name in _SECRET_FIELDS:
        secret = str(provider_cfg.get(field_name, ""))
        if secret:
            logging.getLogger("speechgen").info(
                "Provider %s: %s_MASKED=%s %s_SHA256_12=%s",
                cfg.tts_provider, field_name.upper(), _mask_secret(secret),
                field_name.upper(), _sha256_prefix(secret),
            )


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synthesize text into a speech audio file")
    parser.add_argument("text", help="Text to speak.")
    parser.add_argument("--lang", default=None, help="Language code (default: SPEECHGEN_LANG).")
    parser.add_argument("--provider", default=None, help="TTS provider override (azure, openai).")
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to .env file (default: .env in the working directory).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG (overrides LOG_LEVEL).")
    return parser.parse_args(argv)


async def _async_main(args: argparse.Namespace) -> int:
    """Async entry point: loads config, builds one synthesizer, synthesizes once."""
    setup_logging("DEBUG" if args.verbose else None)
    cfg = load_config(args.env_file)
    if args.provider:
        cfg = replace(cfg, tts_provider=args.provider.strip().lower())
    logging.getLogger("speechgen").info("=== speechgen starting (config dump below, secrets masked) ===")
    _log_config(cfg)

    channel = QueueCompletionChannel()
    synth = create_synthesizer(cfg, args.lang, channel=channel)
    try:
        result = await synth.synthesize(args.text)
    finally:
        await synth.close()

    if result is None:
        logger.error("No audio produced")
        return 1

    event = channel.get_nowait()
    logger.info("%s event: %.2fs from %s", event.name, event.duration, event.synthesizer)
    print(f"{result.audio_file_path}\t{result.duration:.3f}")
    return 0


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        code = asyncio.run(_async_main(args))
    except KeyboardInterrupt:
        code = 130
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()

import asyncio
import json

import aiohttp
import pytest
from aiohttp import web
from aiohttp import test_utils

from speechgen.config import SpeechgenConfig
from speechgen.tts import FailureReason, QueueCompletionChannel, create_synthesizer
from speechgen.tts.azure import AzureSpeechClient, build_ssml
from speechgen.tts.base import SpeechServiceError, SynthesisRequest
from speechgen.tts.http import HttpSpeechClient
from speechgen.tts.openai_tts import OpenAISpeechClient
from speechgen.tts.voices import Voice
from tests.fakes import make_wav

AZURE_PATH = "/cognitiveservices/v1"


def _azure_app(seen: list, *, status: int = 200, body: bytes = b"", content_type: str = "audio/x-wav"):
    async def handler(request: web.Request) -> web.Response:
        seen.append({
            "headers": request.headers.copy(),
            "body": (await request.read()).decode("utf-8"),
        })
        if status != 200:
            return web.Response(status=status, text="Unauthorized")
        return web.Response(body=body, content_type=content_type)

    app = web.Application()
    app.router.add_post(AZURE_PATH, handler)
    return app


def _openai_app(seen: list, wav: bytes):
    async def handler(request: web.Request) -> web.StreamResponse:
        seen.append({"headers": request.headers.copy(), "json": await request.json()})
        resp = web.StreamResponse(headers={"Content-Type": "audio/wav"})
        await resp.prepare(request)
        for i in range(0, len(wav), 1000):
            await resp.write(wav[i:i + 1000])
        await resp.write_eof()
        return resp

    app = web.Application()
    app.router.add_post("/v1/audio/speech", handler)
    return app


def _write_config(tmp_path, provider, config):
    d = tmp_path / "voice"
    d.mkdir(exist_ok=True)
    (d / f"{provider}.json").write_text(json.dumps(config))
    return d


def test_build_ssml_escapes_text():
    ssml = build_ssml("Tom & Jerry <3", "en-US-GuyNeural", "en-US")
    assert ssml == (
        "<speak version='1.0' xml:lang=\"en-US\">"
        "<voice name=\"en-US-GuyNeural\">Tom &amp; Jerry &lt;3</voice>"
        "</speak>"
    )


def test_azure_client_requires_credentials():
    for config in ({}, {"key": "k"}, {"region": "westeurope"}):
        try:
            AzureSpeechClient.from_config(config)
        except ValueError:
            continue
        raise AssertionError(f"config {config} should be rejected")


def test_azure_regional_endpoint():
    client = AzureSpeechClient.from_config({"key": "k", "region": "westeurope"})
    assert client.endpoint == "https://westeurope.tts.speech.microsoft.com/cognitiveservices/v1"


def test_openai_client_requires_api_key():
    try:
        OpenAISpeechClient.from_config({"model": "tts-1"})
    except ValueError as e:
        assert "api_key" in str(e)
    else:
        raise AssertionError("missing api_key should be rejected")


def test_azure_end_to_end_through_factory(tmp_path):
    wav = make_wav(ms=750)
    seen: list = []

    async def _run():
        async with test_utils.TestServer(_azure_app(seen, body=wav)) as server:
            voice_dir = _write_config(tmp_path, "azure", {
                "key": "azure-secret",
                "region": "westeurope",
                "endpoint": str(server.make_url(AZURE_PATH)),
            })
            cfg = SpeechgenConfig(
                lang="fr-FR",
                supported_langs=("fr-FR",),
                tts_provider="azure",
                tmp_dir=tmp_path / "tmp",
                voice_config_dir=voice_dir,
                request_timeout_s=5.0,
            )
            channel = QueueCompletionChannel()
            synth = create_synthesizer(cfg, channel=channel)
            try:
                result = await synth.synthesize("Bonjour & bienvenue")
            finally:
                await synth.close()
            return result, channel

    result, channel = asyncio.run(_run())

    assert result is not None
    assert result.audio_file_path.read_bytes() == wav
    assert abs(result.duration - 0.75) < 0.001
    assert channel.qsize() == 1
    assert channel.get_nowait().duration == result.duration

    headers = seen[0]["headers"]
    assert headers["Ocp-Apim-Subscription-Key"] == "azure-secret"
    assert headers["Content-Type"] == "application/ssml+xml"
    assert headers["X-Microsoft-OutputFormat"] == "riff-24khz-16bit-mono-pcm"
    assert "fr-FR-HenriNeural" in seen[0]["body"]
    assert "Bonjour &amp; bienvenue" in seen[0]["body"]


def test_azure_http_error_is_dispatch_failure(tmp_path):
    seen: list = []

    async def _run():
        async with test_utils.TestServer(_azure_app(seen, status=401)) as server:
            voice_dir = _write_config(tmp_path, "azure", {
                "key": "bad",
                "region": "westeurope",
                "endpoint": str(server.make_url(AZURE_PATH)),
            })
            cfg = SpeechgenConfig(tmp_dir=tmp_path / "tmp", voice_config_dir=voice_dir, request_timeout_s=5.0)
            synth = create_synthesizer(cfg)
            try:
                return await synth.synthesize_outcome("Hello")
            finally:
                await synth.close()

    outcome = asyncio.run(_run())

    assert outcome.failure.reason is FailureReason.DISPATCH
    assert "401" in outcome.failure.detail
    assert not (tmp_path / "tmp").exists() or list((tmp_path / "tmp").iterdir()) == []


def test_azure_response_without_audio_is_missing_stream(tmp_path):
    seen: list = []

    async def _run():
        async with test_utils.TestServer(_azure_app(seen, body=b"", content_type="audio/x-wav")) as server:
            voice_dir = _write_config(tmp_path, "azure", {
                "key": "k",
                "region": "westeurope",
                "endpoint": str(server.make_url(AZURE_PATH)),
            })
            cfg = SpeechgenConfig(tmp_dir=tmp_path / "tmp", voice_config_dir=voice_dir, request_timeout_s=5.0)
            synth = create_synthesizer(cfg)
            try:
                return await synth.synthesize_outcome("Hello")
            finally:
                await synth.close()

    outcome = asyncio.run(_run())

    assert outcome.failure.reason is FailureReason.MISSING_STREAM
    assert not (tmp_path / "tmp").exists()


def test_openai_client_streams_chunked_wav(tmp_path):
    wav = make_wav(ms=400)
    seen: list = []

    async def _run():
        async with test_utils.TestServer(_openai_app(seen, wav)) as server:
            base_url = str(server.make_url("/")).rstrip("/")
            voice_dir = _write_config(tmp_path, "openai", {"api_key": "sk-test", "base_url": base_url})
            cfg = SpeechgenConfig(
                tts_provider="openai",
                tmp_dir=tmp_path / "tmp",
                voice_config_dir=voice_dir,
                request_timeout_s=5.0,
            )
            synth = create_synthesizer(cfg, "en-US")
            try:
                return await synth.synthesize("Hello world")
            finally:
                await synth.close()

    result = asyncio.run(_run())

    assert result is not None
    assert result.audio_file_path.read_bytes() == wav
    assert abs(result.duration - 0.4) < 0.001
    assert seen[0]["headers"]["Authorization"] == "Bearer sk-test"
    assert seen[0]["json"] == {
        "model": "tts-1",
        "input": "Hello world",
        "voice": "onyx",
        "response_format": "wav",
    }


def test_send_raises_service_error_directly():
    seen: list = []

    async def _run():
        async with test_utils.TestServer(_azure_app(seen, status=401)) as server:
            client = AzureSpeechClient(key="k", region="", endpoint=str(server.make_url(AZURE_PATH)))
            try:
                await client.send(SynthesisRequest(text="Hi", voice=Voice("en-US", "en-US-GuyNeural")))
            except SpeechServiceError as e:
                return e
            finally:
                await client.close()

    err = asyncio.run(_run())
    assert isinstance(err, SpeechServiceError)
    assert err.status == 401
    assert "Unauthorized" in err.body


def test_http_client_hooks_are_abstract():
    class NoEndpoint(HttpSpeechClient):
        def build_payload(self, request):
            return {}

    with pytest.raises(TypeError):
        HttpSpeechClient(headers={})
    with pytest.raises(TypeError):
        NoEndpoint(headers={})


def test_azure_output_format_is_always_riff_wav(tmp_path):
    wav = make_wav(ms=300)
    seen: list = []

    async def _run():
        async with test_utils.TestServer(_azure_app(seen, body=wav)) as server:
            voice_dir = _write_config(tmp_path, "azure", {
                "key": "k",
                "region": "westeurope",
                "endpoint": str(server.make_url(AZURE_PATH)),
                "output_format": "audio-24khz-48kbitrate-mono-mp3",
            })
            cfg = SpeechgenConfig(tmp_dir=tmp_path / "tmp", voice_config_dir=voice_dir, request_timeout_s=5.0)
            synth = create_synthesizer(cfg)
            try:
                return await synth.synthesize_outcome("Hello")
            finally:
                await synth.close()

    outcome = asyncio.run(_run())

    assert outcome.ok
    assert outcome.result.audio_file_path.suffix == ".wav"
    assert seen[0]["headers"]["X-Microsoft-OutputFormat"] == "riff-24khz-16bit-mono-pcm"


def test_error_response_is_released_when_body_cannot_be_decoded(monkeypatch):
    released = []
    original_release = aiohttp.ClientResponse.release

    def counting_release(self):
        released.append(self.status)
        return original_release(self)

    monkeypatch.setattr(aiohttp.ClientResponse, "release", counting_release)

    async def handler(request: web.Request) -> web.Response:
        return web.Response(status=500, body=b"\xff\xfe\xfa", headers={"Content-Type": "text/plain; charset=utf-8"})

    app = web.Application()
    app.router.add_post(AZURE_PATH, handler)

    async def _run():
        async with test_utils.TestServer(app) as server:
            client = AzureSpeechClient(key="k", region="", endpoint=str(server.make_url(AZURE_PATH)))
            try:
                await client.send(SynthesisRequest(text="Hi", voice=Voice("en-US", "en-US-GuyNeural")))
            finally:
                await client.close()

    with pytest.raises(UnicodeDecodeError):
        asyncio.run(_run())
    assert 500 in released

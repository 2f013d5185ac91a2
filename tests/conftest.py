import json

import httpx
import pytest
from fastapi.testclient import TestClient

from voiceforge.config import Settings, get_settings
from voiceforge.controller import FormController, ProxyClient
from voiceforge.elevenlabs_client import ElevenLabsClient
from voiceforge.keystore import ApiKeyStore
from voiceforge.main import app, get_upstream

UPSTREAM_BASE = "https://upstream.test/v1"

MODELS = [
    {
        "model_id": "eleven_multilingual_v2",
        "name": "Eleven Multilingual v2",
        "description": "Our most life-like model",
        "can_use_style": True,
        "can_use_speaker_boost": True,
        "languages": [{"language_id": "en", "name": "English"}],
    },
    {
        "model_id": "eleven_turbo_v2_5",
        "name": "Eleven Turbo v2.5",
        "description": "Low latency",
        "can_use_style": False,
        "can_use_speaker_boost": True,
        "languages": [{"language_id": "en", "name": "English"}, {"language_id": "es", "name": "Spanish"}],
    },
]

VOICES = {
    "voices": [
        {"voice_id": "voice-rachel", "name": "Rachel", "category": "premade"},
        {"voice_id": "voice-adam", "name": "Adam", "category": "premade"},
    ]
}


class FakeElevenLabs:
    """In-memory stand-in for the ElevenLabs REST API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.failures: dict[str, tuple[int, object]] = {}
        self.responses: dict[str, httpx.Response] = {}
        self.broken = False
        self.models: object = MODELS
        self.voices: object = VOICES
        self.voice_settings: object = {"stability": 0.3, "similarity_boost": 0.8, "style": 0.1, "use_speaker_boost": False}
        self.synth_count = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.broken:
            raise httpx.ConnectError("connection refused", request=request)
        path = request.url.path.removeprefix("/v1")
        if path in self.responses:
            return self.responses[path]
        for prefix, (status, body) in self.failures.items():
            if path.startswith(prefix):
                return httpx.Response(status, json=body)
        if path == "/models":
            return httpx.Response(200, json=self.models)
        if path == "/voices":
            return httpx.Response(200, json=self.voices)
        if path.startswith("/voices/") and path.endswith("/settings"):
            return httpx.Response(200, json=self.voice_settings)
        if path.startswith("/text-to-speech/"):
            self.synth_count += 1
            payload = json.loads(request.content)
            audio = f"audio:{payload['text']}:{self.synth_count}".encode()
            return httpx.Response(200, content=audio, headers={"request-id": f"req-{self.synth_count}"})
        return httpx.Response(404, json={"detail": "Not found"})

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def fake():
    return FakeElevenLabs()


@pytest.fixture
def install_app(fake):
    """Point the app at the fake upstream with the given server-side key."""

    def _install(api_key="server-key"):
        overrides = {
            get_settings: lambda: Settings(
                _env_file=None,
                elevenlabs_api_key=api_key,
                elevenlabs_base_url=UPSTREAM_BASE,
            ),
            get_upstream: lambda: ElevenLabsClient(
                api_key="",
                base_url=UPSTREAM_BASE,
                transport=httpx.MockTransport(fake),
            ),
        }
        app.dependency_overrides.update(overrides)

        # Each client re-applies its own overrides per request, so a test that
        # uses several clients does not see whichever fixture was set up last.
        async def _asgi(scope, receive, send):
            app.dependency_overrides.update(overrides)
            await app(scope, receive, send)

        return _asgi

    yield _install
    app.dependency_overrides.clear()


@pytest.fixture
def client(install_app):
    return TestClient(install_app())


@pytest.fixture
def keyless_client(install_app):
    return TestClient(install_app(api_key=None))


@pytest.fixture
def make_controller(install_app, tmp_path):
    def _make(api_key="server-key", **kwargs):
        proxy = ProxyClient("http://proxy.test", transport=httpx.ASGITransport(app=install_app(api_key)))
        store = ApiKeyStore(tmp_path / "keys.json")
        return FormController(proxy, key_store=store, **kwargs)

    return _make

"""Form controller.

Holds the form state, talks to the proxy, and keeps the generated audio
list. Errors from the proxy never escape the public operations; they end up
in ``FormController.error`` (the form's error banner).

Coarse state machine::

    checking-key -> awaiting-key | ready
    ready -> submitting -> ready
    per result row: idle -> regenerating -> idle
"""

import asyncio
import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from .assembly import FormState, build_synthesis_request
from .bundle import ARCHIVE_NAME, build_zip
from .capabilities import ModelCapability, capability_for
from .errors import TransportError, UpstreamError, ValidationError, VoiceforgeError
from .keystore import ApiKeyStore
from .schemas import Model, Voice
from .utils import mask_key, render_template, split_variables, to_data_uri

log = logging.getLogger(__name__)

DEFAULT_STABILITY = 0.5
DEFAULT_SIMILARITY_BOOST = 0.5
# Label used when no variable list is given
SINGLE_LABEL = "audio"


class Phase(str, enum.Enum):
    CHECKING_KEY = "checking-key"
    AWAITING_KEY = "awaiting-key"
    READY = "ready"
    SUBMITTING = "submitting"


class RowState(str, enum.Enum):
    IDLE = "idle"
    REGENERATING = "regenerating"


@dataclass
class GeneratedAudio:
    label: str
    audio: str
    output_format: str
    variable: Optional[str] = None
    request_id: Optional[str] = None

    @property
    def data_uri(self) -> str:
        return to_data_uri(self.audio, self.output_format)


class ProxyClient:
    """Thin async client for the proxy endpoints."""

    def __init__(self, base_url: str, *, api_key: Optional[str] = None, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = {"x-api-key": self.api_key} if self.api_key else {}
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"Could not reach the server: {e}") from e

        if response.is_error:
            try:
                data = response.json()
            except ValueError:
                data = None
            message = data.get("error") if isinstance(data, dict) else None
            raise UpstreamError(message or f"Request failed with status {response.status_code}", status_code=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise TransportError("Malformed response from the server") from e

    async def check_api_key(self) -> bool:
        data = await self._call("GET", "/api/check-api-key")
        return bool(data.get("isSet")) if isinstance(data, dict) else False

    async def get_models(self) -> Any:
        return await self._call("GET", "/api/get-models")

    async def get_voices(self) -> Any:
        return await self._call("GET", "/api/get-voices")

    async def get_voice_settings(self, voice_id: str) -> Any:
        return await self._call("GET", "/api/get-voice-settings", params={"voiceId": voice_id})

    async def text_to_speech(self, body: dict[str, Any]) -> Any:
        return await self._call("POST", "/api/text-to-speech", json=body)


def _parse_all(model_cls, items: Any) -> list:
    parsed = []
    for item in items if isinstance(items, list) else []:
        try:
            parsed.append(model_cls.model_validate(item))
        except PydanticValidationError:
            log.debug("Skipping malformed %s entry: %r", model_cls.__name__, item)
    return parsed


def _unit_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if 0.0 <= value <= 1.0 else None


class FormController:

    def __init__(self, proxy: ProxyClient, *, key_store: Optional[ApiKeyStore] = None, batch_concurrency: int = 4, default_model_id: str = "") -> None:
        self.proxy = proxy
        self.key_store = key_store
        self.batch_concurrency = max(1, batch_concurrency)
        self.form = FormState(model_id=default_model_id)
        self.phase = Phase.CHECKING_KEY
        self.voices: list[Voice] = []
        self.models: list[Model] = []
        self.results: list[GeneratedAudio] = []
        self.regenerating: set[int] = set()
        self.error: Optional[str] = None

    # -- API key -------------------------------------------------------------

    async def start(self) -> Phase:
        self.phase = Phase.CHECKING_KEY
        try:
            is_set = await self.proxy.check_api_key()
        except VoiceforgeError as e:
            self.error = e.message
            is_set = False
        if is_set:
            self.phase = Phase.READY
            await self.load_reference_data()
        else:
            self.phase = Phase.AWAITING_KEY
        return self.phase

    async def submit_api_key(self, key: str, save: bool = False) -> None:
        key = key.strip()
        if not key:
            self.error = "API key is required"
            return
        if save and self.key_store is not None:
            self.key_store.add(key)
        log.info("Using API key %s", mask_key(key))
        self.proxy.api_key = key
        self.error = None
        self.phase = Phase.READY
        await self.load_reference_data()

    @property
    def saved_keys(self) -> list[str]:
        return self.key_store.keys() if self.key_store is not None else []

    async def use_saved_key(self, key: str) -> None:
        if key not in self.saved_keys:
            self.error = "Unknown saved API key"
            return
        await self.submit_api_key(key)

    def forget_key(self, key: str) -> None:
        if self.key_store is not None:
            self.key_store.remove(key)

    # -- reference data ------------------------------------------------------

    async def _load_voices(self) -> list[Voice]:
        try:
            data = await self.proxy.get_voices()
        except VoiceforgeError as e:
            self.error = e.message
            return []
        return _parse_all(Voice, data.get("voices") if isinstance(data, dict) else data)

    async def _load_models(self) -> list[Model]:
        try:
            data = await self.proxy.get_models()
        except VoiceforgeError as e:
            self.error = e.message
            return []
        return _parse_all(Model, data)

    async def load_reference_data(self) -> None:
        self.voices, self.models = await asyncio.gather(self._load_voices(), self._load_models())

    async def select_voice(self, voice_id: str) -> None:
        self.form.voice_id = voice_id
        try:
            data = await self.proxy.get_voice_settings(voice_id)
        except VoiceforgeError as e:
            log.warning("Voice settings unavailable for %s: %s", voice_id, e.message)
            data = None
        if not isinstance(data, dict):
            data = {}
        stability = _unit_float(data.get("stability"))
        similarity = _unit_float(data.get("similarity_boost"))
        if stability is None or similarity is None:
            stability, similarity = DEFAULT_STABILITY, DEFAULT_SIMILARITY_BOOST
        self.form.stability = stability
        self.form.similarity_boost = similarity
        style = _unit_float(data.get("style"))
        if style is not None:
            self.form.style = style
        if isinstance(data.get("use_speaker_boost"), bool):
            self.form.use_speaker_boost = data["use_speaker_boost"]

    def select_model(self, model_id: str) -> None:
        self.form.model_id = model_id
        if not self.capability.supports_language:
            self.form.language_code = ""

    @property
    def capability(self) -> ModelCapability:
        return capability_for(self.form.model_id, self.models)

    # -- synthesis -----------------------------------------------------------

    def validate(self) -> None:
        missing = [name for name in ("text", "model_id", "voice_id") if not getattr(self.form, name).strip()]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    async def _synthesize(self, variable: Optional[str]) -> GeneratedAudio:
        text = self.form.text if variable is None else render_template(self.form.text, variable)
        body = build_synthesis_request(self.form, self.capability, text=text)
        data = await self.proxy.text_to_speech(body)
        audio = data.get("audio") if isinstance(data, dict) else None
        if not isinstance(audio, str):
            raise TransportError("Malformed response from the server")
        return GeneratedAudio(
            label=SINGLE_LABEL if variable is None else variable,
            audio=audio,
            output_format=self.form.output_format,
            variable=variable,
            request_id=data.get("request_id"),
        )

    async def submit(self) -> bool:
        """Generate one result per variable (or one for the plain text)."""
        try:
            self.validate()
        except ValidationError as e:
            self.error = e.message
            return False

        variables: list[Optional[str]] = list(split_variables(self.form.variables)) or [None]
        sem = asyncio.Semaphore(self.batch_concurrency)

        async def bounded(variable: Optional[str]) -> GeneratedAudio:
            async with sem:
                return await self._synthesize(variable)

        self.phase = Phase.SUBMITTING
        self.error = None
        try:
            self.results = list(await asyncio.gather(*(bounded(v) for v in variables)))
            self.regenerating.clear()
            return True
        except VoiceforgeError as e:
            self.error = e.message
            return False
        finally:
            self.phase = Phase.READY

    def row_state(self, index: int) -> RowState:
        return RowState.REGENERATING if index in self.regenerating else RowState.IDLE

    async def regenerate(self, index: int) -> bool:
        if not 0 <= index < len(self.results):
            self.error = f"No generated audio at position {index}"
            return False
        results = self.results
        self.regenerating.add(index)
        self.error = None
        try:
            regenerated = await self._synthesize(results[index].variable)
            if self.results is not results:
                # A new batch replaced the list while this call was in flight
                self.error = "Results changed while regenerating. Please try again."
                return False
            results[index] = regenerated
            return True
        except VoiceforgeError as e:
            log.warning("Regenerating %d failed: %s", index, e.message)
            self.error = "An error occurred while regenerating speech. Please try again."
            return False
        finally:
            self.regenerating.discard(index)

    # -- bundling ------------------------------------------------------------

    def bundle(self) -> Optional[bytes]:
        try:
            return build_zip(self.results)
        except ValidationError as e:
            self.error = e.message
            return None

    def save_bundle(self, path: Union[str, Path]) -> Optional[Path]:
        """Write the archive. ``path`` may be a directory."""
        data = self.bundle()
        if data is None:
            return None
        target = Path(path)
        if target.is_dir():
            target = target / ARCHIVE_NAME
        target.write_bytes(data)
        return target

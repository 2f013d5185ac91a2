
import base64
import logging
import re
from typing import Any, Optional

import httpx

from .assembly import UpstreamCall
from .errors import TransportError, UpstreamError, ValidationError

log = logging.getLogger("elevenlabs_client")

# Interpolated into upstream paths
VOICE_ID_RE = re.compile(r"[A-Za-z0-9_-]+")


def voice_segment(voice_id: str) -> str:
    if not VOICE_ID_RE.fullmatch(voice_id):
        raise ValidationError("Invalid voice ID")
    return voice_id


def upstream_error_message(response: httpx.Response, fallback: str) -> str:
    """Pull the human readable part out of an ElevenLabs error body.

    ``detail`` is either a string or ``{"status": ..., "message": ...}``.
    """
    try:
        data = response.json()
    except ValueError:
        return fallback
    detail = data.get("detail") if isinstance(data, dict) else None
    if isinstance(detail, dict):
        detail = detail.get("message") or detail.get("status")
    if isinstance(detail, str) and detail:
        return detail
    return fallback


class ElevenLabsClient:
    """One call per upstream resource. Every call carries ``xi-api-key``."""

    def __init__(self, *, api_key: str, base_url: str, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def with_api_key(self, api_key: str) -> "ElevenLabsClient":
        return ElevenLabsClient(api_key=api_key, base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def _request(self, method: str, path: str, *, failure: str, accept: str = "application/json", **kwargs: Any) -> httpx.Response:
        headers = {"Accept": accept, "xi-api-key": self.api_key}
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            log.exception("Error calling upstream %s %s: %s", method, path, e)
            raise TransportError() from e

        if not response.is_success:
            message = upstream_error_message(response, failure)
            log.warning("Upstream %s %s failed with %s: %s", method, path, response.status_code, message)
            # 3xx from upstream is reported as a bad gateway
            raise UpstreamError(message, status_code=response.status_code if response.is_error else 502)
        return response

    async def _get_json(self, path: str, *, failure: str) -> Any:
        response = await self._request("GET", path, failure=failure)
        try:
            return response.json()
        except ValueError as e:
            log.exception("Non-JSON payload from upstream %s", path)
            raise TransportError() from e

    async def list_models(self) -> Any:
        return await self._get_json("/models", failure="Failed to fetch models")

    async def list_voices(self) -> Any:
        return await self._get_json("/voices", failure="Failed to fetch voices")

    async def get_voice_settings(self, voice_id: str) -> Any:
        return await self._get_json(f"/voices/{voice_segment(voice_id)}/settings", failure="Failed to fetch voice settings")

    async def synthesize(self, call: UpstreamCall) -> tuple[str, Optional[str]]:
        """Run one synthesis. Returns (base64 audio, upstream request id)."""
        response = await self._request(
            "POST",
            f"/text-to-speech/{voice_segment(call.voice_id)}",
            failure="Failed to generate speech",
            accept="audio/mpeg",
            params=call.params,
            json=call.body,
        )
        audio = response.content
        log.info("Synthesized %d bytes of audio for voice %s", len(audio), call.voice_id)
        return base64.b64encode(audio).decode("ascii"), response.headers.get("request-id")

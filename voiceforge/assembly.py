"""Synthesis request assembly.

Two pure steps:

* ``build_synthesis_request`` turns the form's field values plus the active
  model's capability into the JSON body the form posts to the proxy.
* ``build_upstream_call`` turns a validated proxy request into the pieces of
  the upstream call (path voice id, query parameters, JSON body).

Optional fields are omitted by absence, never sent as ``null``.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .capabilities import DEFAULT_OUTPUT_FORMAT, LANGUAGE_MODEL_ID, ModelCapability
from .schemas import TTSRequest


@dataclass
class FormState:
    text: str = ""
    model_id: str = ""
    voice_id: str = ""
    stability: float = 0.5
    similarity_boost: float = 0.5
    style: float = 0.0
    use_speaker_boost: bool = True
    voice_latency: int = 1
    output_format: str = DEFAULT_OUTPUT_FORMAT
    language_code: str = ""
    seed: Optional[int] = None
    previous_text: str = ""
    next_text: str = ""
    previous_request_ids: list[str] = field(default_factory=list)
    next_request_ids: list[str] = field(default_factory=list)
    # Comma separated; each entry is substituted into ``text`` at ``{}``.
    variables: str = ""


def build_synthesis_request(form: FormState, capability: ModelCapability, text: Optional[str] = None) -> dict[str, Any]:
    """Assemble the proxy request body for one synthesis call.

    ``text`` overrides ``form.text``, for rendered batch templates.
    """
    voice_settings: dict[str, Any] = {
        "stability": form.stability,
        "similarity_boost": form.similarity_boost,
    }
    if capability.supports_style:
        voice_settings["style"] = form.style
    if capability.supports_speaker_boost:
        voice_settings["use_speaker_boost"] = form.use_speaker_boost

    body: dict[str, Any] = {
        "text": form.text if text is None else text,
        "model_id": form.model_id,
        "voice_id": form.voice_id,
        "voice_settings": voice_settings,
        "voice_latency": form.voice_latency,
        "output_format": form.output_format,
    }
    if capability.supports_language and form.language_code:
        body["language_code"] = form.language_code
    if form.seed is not None:
        body["seed"] = form.seed
    if form.previous_text:
        body["previous_text"] = form.previous_text
    if form.next_text:
        body["next_text"] = form.next_text
    if form.previous_request_ids:
        body["previous_request_ids"] = list(form.previous_request_ids)
    if form.next_request_ids:
        body["next_request_ids"] = list(form.next_request_ids)
    return body


@dataclass(frozen=True)
class UpstreamCall:
    voice_id: str
    params: dict[str, Any]
    body: dict[str, Any]


def build_upstream_call(req: TTSRequest) -> UpstreamCall:
    body: dict[str, Any] = {
        "text": req.text,
        "model_id": req.model_id,
        "voice_settings": req.voice_settings.model_dump(exclude_none=True),
    }
    if req.model_id == LANGUAGE_MODEL_ID and req.language_code:
        body["language_code"] = req.language_code
    if req.seed is not None:
        body["seed"] = req.seed
    for name in ("previous_text", "next_text", "previous_request_ids", "next_request_ids"):
        value = getattr(req, name)
        if value:
            body[name] = value
    params = {
        "output_format": req.output_format,
        "optimize_streaming_latency": req.voice_latency,
    }
    return UpstreamCall(voice_id=req.voice_id, params=params, body=body)

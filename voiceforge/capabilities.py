
from dataclasses import dataclass
from typing import Iterable, Optional, get_args

from .schemas import Model, OutputFormat

# Only this model accepts an explicit language_code.
LANGUAGE_MODEL_ID = "eleven_turbo_v2_5"

OUTPUT_FORMATS: tuple[str, ...] = get_args(OutputFormat)
DEFAULT_OUTPUT_FORMAT = "mp3_44100_128"

LATENCY_MIN = 1
LATENCY_MAX = 4


@dataclass(frozen=True)
class ModelCapability:
    supports_style: bool = False
    supports_speaker_boost: bool = False
    supports_language: bool = False


NO_CAPABILITY = ModelCapability()

KNOWN_MODELS: dict[str, ModelCapability] = {
    "eleven_monolingual_v1": ModelCapability(supports_speaker_boost=True),
    "eleven_multilingual_v1": ModelCapability(supports_speaker_boost=True),
    "eleven_multilingual_v2": ModelCapability(supports_style=True, supports_speaker_boost=True),
    "eleven_turbo_v2": ModelCapability(supports_speaker_boost=True),
    LANGUAGE_MODEL_ID: ModelCapability(supports_speaker_boost=True, supports_language=True),
}


def capability_for(model_id: Optional[str], models: Iterable[Model] = ()) -> ModelCapability:
    """Resolve what optional fields a model accepts.

    Flags reported by the live model list win over the built-in table; the
    language gate is always keyed on the model id.
    """
    if not model_id:
        return NO_CAPABILITY
    supports_language = model_id == LANGUAGE_MODEL_ID
    for model in models:
        if model.model_id == model_id:
            return ModelCapability(
                supports_style=model.can_use_style,
                supports_speaker_boost=model.can_use_speaker_boost,
                supports_language=supports_language,
            )
    return KNOWN_MODELS.get(model_id, NO_CAPABILITY)


def file_extension(output_format: str) -> str:
    codec = output_format.split("_", 1)[0]
    if codec in ("pcm", "ulaw"):
        return codec
    return "mp3"


def mime_type(output_format: str) -> str:
    return {
        "pcm": "audio/pcm",
        "ulaw": "audio/basic",
    }.get(file_extension(output_format), "audio/mpeg")

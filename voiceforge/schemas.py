
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

OutputFormat = Literal[
    "mp3_22050_32",
    "mp3_44100_32",
    "mp3_44100_64",
    "mp3_44100_96",
    "mp3_44100_128",
    "mp3_44100_192",
    "pcm_16000",
    "pcm_22050",
    "pcm_24000",
    "pcm_44100",
    "ulaw_8000",
]

class VoiceSettings(BaseModel):
    stability: float = Field(ge=0.0, le=1.0)
    similarity_boost: float = Field(ge=0.0, le=1.0)
    style: float | None = Field(default=None, ge=0.0, le=1.0)
    use_speaker_boost: bool | None = None

class TTSRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    text: str = Field(min_length=1, description="Text to synthesize")
    model_id: str = Field(min_length=1, description="ElevenLabs model id")
    voice_id: str = Field(min_length=1, description="ElevenLabs voice id")
    voice_settings: VoiceSettings
    voice_latency: int = Field(default=1, ge=1, le=4, description="Streaming latency optimisation level")
    output_format: OutputFormat = "mp3_44100_128"
    language_code: str | None = None
    seed: int | None = None
    previous_text: str | None = None
    next_text: str | None = None
    previous_request_ids: list[str] | None = Field(default=None, max_length=3)
    next_request_ids: list[str] | None = Field(default=None, max_length=3)

class ApiKeyStatus(BaseModel):
    isSet: bool

class AudioEnvelope(BaseModel):
    audio: str = Field(description="Base64-encoded audio")
    request_id: str | None = None

class ErrorEnvelope(BaseModel):
    error: str

# Reference data. Upstream objects carry many more fields; keep them.

class Voice(BaseModel):
    model_config = ConfigDict(extra="allow")

    voice_id: str
    name: str = ""

class Language(BaseModel):
    model_config = ConfigDict(extra="allow")

    language_id: str
    name: str = ""

class Model(BaseModel):
    model_config = ConfigDict(extra="allow", protected_namespaces=())

    model_id: str
    name: str = ""
    description: str = ""
    can_use_style: bool = False
    can_use_speaker_boost: bool = False
    languages: list[Language] = Field(default_factory=list)

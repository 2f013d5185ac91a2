
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    app_name: str = "voiceforge"
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    # ElevenLabs
    elevenlabs_api_key: str | None = Field(default=None)
    elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io/v1")
    elevenlabs_model_id: str = Field(default="eleven_multilingual_v2")
    upstream_timeout_s: float = Field(default=30.0)
    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    allowed_origins: list[str] = Field(default=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ])
    # Client side
    key_store_path: str = Field(default="~/.voiceforge/api_keys.json")
    batch_concurrency: int = Field(default=4, ge=1)

    # Pydantic v2+ settings config
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


from .capabilities import mime_type

PLACEHOLDER = "{}"

def split_variables(raw: str) -> list[str]:
    """Comma separated list -> trimmed, non-empty entries, order kept."""
    return [v.strip() for v in (raw or "").split(",") if v.strip()]

def render_template(template: str, variable: str) -> str:
    return template.replace(PLACEHOLDER, variable)

def to_data_uri(audio_b64: str, output_format: str) -> str:
    return f"data:{mime_type(output_format)};base64,{audio_b64}"

def mask_key(key: str) -> str:
    # Never show a stored key in full
    return f"{key[:8]}..."

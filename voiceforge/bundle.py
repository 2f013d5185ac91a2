
import base64
import io
import zipfile
from typing import Iterable, Protocol

from .capabilities import file_extension
from .errors import ValidationError

ARCHIVE_NAME = "generated_audios.zip"


class BundleItem(Protocol):
    label: str
    audio: str
    output_format: str


def _safe_name(label: str) -> str:
    name = label.replace("/", "_").replace("\\", "_").strip()
    return name or "audio"


def build_zip(results: Iterable[BundleItem]) -> bytes:
    """Pack each result as ``<label>.<ext>``. Repeated names get ``_2``, ``_3``..."""
    items = list(results)
    if not items:
        raise ValidationError("No audios generated yet. Please generate audios first.")

    buf = io.BytesIO()
    used: set[str] = set()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for item in items:
            stem = name = _safe_name(item.label)
            n = 1
            while name in used:
                n += 1
                name = f"{stem}_{n}"
            used.add(name)
            zf.writestr(f"{name}.{file_extension(item.output_format)}", base64.b64decode(item.audio))
    return buf.getvalue()

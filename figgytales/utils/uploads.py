"""Turn picked, dropped or pasted uploads into design files."""

from __future__ import annotations

import mimetypes
from typing import Any, Iterable, List, Optional, Tuple

from figgytales.config import UploadSettings, settings
from figgytales.core.models import DesignFile
from figgytales.utils.logger import logger


def _read_upload(item: Any) -> Tuple[str, str, bytes]:
    """Accept a Streamlit ``UploadedFile`` (or anything shaped like it) or a ``(name, mime, data)`` tuple."""
    if isinstance(item, tuple):
        name, mime_type, data = item
    else:
        name = getattr(item, "name", "upload")
        mime_type = getattr(item, "type", "") or ""
        data = item.getvalue() if hasattr(item, "getvalue") else item.read()
    if not mime_type:
        mime_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
    return str(name), str(mime_type), bytes(data)


def ingest_uploads(
    items: Iterable[Any],
    existing_count: int = 0,
    limits: Optional[UploadSettings] = None,
) -> Tuple[List[DesignFile], List[str]]:
    """Validate uploads against the uploader limits.

    Returns the accepted files and one human readable reason per rejected upload.
    """
    limits = limits or settings.uploads
    accepted: List[DesignFile] = []
    rejected: List[str] = []

    for item in items:
        name, mime_type, data = _read_upload(item)
        if existing_count + len(accepted) >= limits.max_files:
            rejected.append(f"{name}: at most {limits.max_files} design files can be uploaded")
            continue
        if mime_type not in limits.accepted_mime_types:
            rejected.append(f"{name}: unsupported file type {mime_type}")
            continue
        if len(data) > limits.max_file_size:
            rejected.append(f"{name}: larger than {limits.max_file_size // (1024 * 1024)} MB")
            continue
        if not data:
            rejected.append(f"{name}: file is empty")
            continue
        accepted.append(DesignFile(name=name, mime_type=mime_type, data=data))

    if rejected:
        logger.warning("Rejected {} upload(s): {}", len(rejected), "; ".join(rejected))
    return accepted, rejected


__all__ = ["ingest_uploads"]

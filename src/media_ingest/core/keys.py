"""Storage key layout for raw uploads and published derivatives."""

import re
import unicodedata
from typing import Optional

from .models import UploadDescriptor

UPLOAD_PREFIX = "uploads"
PUBLIC_PREFIX = "public"
ORIGINAL_LABEL = "original"

_UNSAFE_BASE_CHARS = re.compile(r"[^a-zA-Z0-9._-]+")
_REPEATED_DASHES = re.compile(r"-+")
_UNSAFE_EXT_CHARS = re.compile(r"[^a-zA-Z0-9]")


def upload_key(tenant_id: str, album_id: str, image_id: str, filename: str) -> str:
    """Key the client uploads the raw file to."""
    return f"{UPLOAD_PREFIX}/{tenant_id}/{album_id}/{image_id}/{ORIGINAL_LABEL}/{filename}"


def public_key(descriptor: UploadDescriptor, label: str = ORIGINAL_LABEL) -> str:
    """Key a derivative (or the republished original) is written to."""
    return (
        f"{PUBLIC_PREFIX}/{descriptor.tenant_id}/{descriptor.album_id}/"
        f"{descriptor.image_id}/{label}/{descriptor.filename}"
    )


def parse_upload_key(key: str) -> Optional[UploadDescriptor]:
    """
    Parse ``uploads/{tenant}/{album}/{image}/original/{filename...}``.

    Returns None for any key outside that layout. Everything after the
    ``original/`` segment is the filename, slashes included.
    """
    parts = key.split("/")
    if len(parts) < 6:
        return None
    prefix, tenant_id, album_id, image_id, original_dir = parts[:5]
    filename = "/".join(parts[5:])
    if (
        prefix != UPLOAD_PREFIX
        or not tenant_id
        or not album_id
        or not image_id
        or original_dir != ORIGINAL_LABEL
        or not filename
    ):
        return None
    return UploadDescriptor(
        tenant_id=tenant_id, album_id=album_id, image_id=image_id, filename=filename
    )


def sanitize_filename(filename: str) -> str:
    """
    Reduce a client-supplied filename to a safe basename.

    >>> sanitize_filename("C:\\\\photos\\\\My Holiday (1).JPG")
    'My-Holiday-1.jpg'
    """
    stripped = filename.replace("\\", "/").split("/")[-1].strip()
    dot = stripped.rfind(".")
    if dot > 0:
        base, ext = stripped[:dot], stripped[dot + 1:]
    else:
        base, ext = stripped, ""

    safe_base = unicodedata.normalize("NFKD", base)
    safe_base = _UNSAFE_BASE_CHARS.sub("-", safe_base)
    safe_base = _REPEATED_DASHES.sub("-", safe_base).strip("-") or "file"

    clean_ext = _UNSAFE_EXT_CHARS.sub("", ext).lower()
    return f"{safe_base}.{clean_ext or 'bin'}"

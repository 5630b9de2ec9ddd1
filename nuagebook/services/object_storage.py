"""Filesystem-backed object storage.

Objects live under `config.storage_root()` and are addressed by a relative
key whose first segment is the visibility area (``public/...`` or
``private/...``). The HTTP layer serves them as ``/objects/<key>``.

Writes are atomic (temp file + os.replace). The content type is kept in a
``<name>.meta.json`` sidecar next to the payload.

Presigned uploads: `create_upload_url` hands out a short-lived URL signed
with HMAC-SHA256 over ``PUT\\n<key>\\n<expires>\\n<content_type>``; the
upload endpoint checks it with `verify_upload_signature`.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import mimetypes
import os
import re
import shutil
import tempfile
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlencode

from werkzeug.utils import secure_filename

from nuagebook import config as app_config
from nuagebook.utils.errors import ExternalServiceError, NotFoundError, ValidationError, validate_path
from nuagebook.utils.logging import get_logger

LOG = get_logger("object_storage")

OBJECTS_URL_PREFIX = "/objects/"
META_SUFFIX = ".meta.json"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
MAX_UPLOAD_BYTES = 50 * 1024 * 1024
_DATA_URL_RE = re.compile(r"^data:(?P<ctype>[\w.+-]+/[\w.+-]+)?(?:;[\w=.-]+)*;base64,(?P<data>.*)$", re.DOTALL)
_EXTENSIONS: Dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "application/pdf": "pdf",
    "application/epub+zip": "epub",
    "application/zip": "zip",
    "text/css": "css",
    "text/html": "html",
}


@dataclass
class StoredObject:
    key: str
    data: bytes
    content_type: str

    @property
    def object_path(self) -> str:
        return object_path(self.key)


def _root() -> Path:
    return Path(os.path.realpath(app_config.storage_root()))


def public_key(relative: str) -> str:
    return f"{app_config.public_prefix()}/{relative.lstrip('/')}"


def private_key(relative: str) -> str:
    return f"{app_config.private_prefix()}/{relative.lstrip('/')}"


def is_private_key(key: str) -> bool:
    return normalize_key(key).split("/", 1)[0] == app_config.private_prefix()


def object_path(key: str) -> str:
    return OBJECTS_URL_PREFIX + normalize_key(key)


def normalize_key(key: str) -> str:
    """Canonical relative key; accepts ``/objects/...`` paths as input."""
    if not isinstance(key, str):
        raise ValidationError("invalid_object_key", "Object key must be a string")
    candidate = key.strip().replace("\\", "/")
    if candidate.startswith(OBJECTS_URL_PREFIX):
        candidate = candidate[len(OBJECTS_URL_PREFIX):]
    candidate = candidate.lstrip("/")
    parts = [p for p in candidate.split("/") if p not in ("", ".")]
    if not parts or any(p == ".." for p in parts) or "\x00" in candidate:
        raise ValidationError("invalid_object_key", "Invalid object key")
    if parts[-1].endswith(META_SUFFIX):
        raise ValidationError("invalid_object_key", "Reserved object name")
    return "/".join(parts)


def _resolve(key: str) -> Path:
    root = _root()
    root.mkdir(parents=True, exist_ok=True)
    return Path(validate_path(str(root), normalize_key(key)))


def _meta_path(path: Path) -> Path:
    return path.with_name(path.name + META_SUFFIX)


def _atomic_write(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=".upload-", suffix=".tmp")
    try:
        with os.fdopen(tmp_fd, "wb") as fh:
            fh.write(payload)
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def guess_content_type(name: str) -> str:
    guessed, _enc = mimetypes.guess_type(name)
    return guessed or DEFAULT_CONTENT_TYPE


def extension_for(content_type: Optional[str]) -> str:
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype in _EXTENSIONS:
        return _EXTENSIONS[ctype]
    guessed = mimetypes.guess_extension(ctype) if ctype else None
    return guessed.lstrip(".") if guessed else "bin"


def save_object(key: str, data: bytes, content_type: Optional[str] = None) -> str:
    """Store `data` under `key`; returns its ``/objects/...`` path."""
    path = _resolve(key)
    ctype = content_type or guess_content_type(path.name)
    _atomic_write(path, data)
    _atomic_write(_meta_path(path), json.dumps({"contentType": ctype, "size": len(data)}).encode("utf-8"))
    LOG.debug("stored object key=%s bytes=%s type=%s", key, len(data), ctype)
    return object_path(key)


def read_object(key: str) -> StoredObject:
    path = _resolve(key)
    if not path.is_file():
        raise NotFoundError("object_not_found", f"Object '{normalize_key(key)}' not found")
    ctype = guess_content_type(path.name)
    meta = _meta_path(path)
    if meta.is_file():
        try:
            ctype = json.loads(meta.read_text(encoding="utf-8")).get("contentType") or ctype
        except (OSError, ValueError):
            LOG.warning("unreadable metadata for object key=%s", key)
    return StoredObject(key=normalize_key(key), data=path.read_bytes(), content_type=ctype)


def object_exists(key: str) -> bool:
    return _resolve(key).is_file()


def list_objects(prefix: str = "") -> List[str]:
    """Keys under `prefix`, sorted; sidecar metadata files are skipped."""
    root = _root()
    base = _resolve(prefix) if prefix.strip("/") else root
    if not base.is_dir():
        return []
    keys = []
    for path in base.rglob("*"):
        if not path.is_file() or path.name.endswith(META_SUFFIX) or path.name.startswith(".upload-"):
            continue
        keys.append(path.relative_to(root).as_posix())
    return sorted(keys)


def delete_object(key: str) -> bool:
    path = _resolve(key)
    if not path.is_file():
        return False
    path.unlink()
    meta = _meta_path(path)
    if meta.is_file():
        meta.unlink()
    return True


def delete_prefix(prefix: str) -> int:
    """Remove every object below `prefix`; returns the number removed."""
    base = _resolve(prefix)
    if not base.is_dir():
        return 0
    removed = len(list_objects(prefix))
    shutil.rmtree(base)
    LOG.info("deleted %s objects under prefix=%s", removed, prefix)
    return removed


def decode_base64_payload(data: str) -> Tuple[bytes, Optional[str]]:
    """Decode raw base64 or a ``data:`` URL; returns (bytes, content type hint)."""
    if not isinstance(data, str) or not data.strip():
        raise ValidationError("data_required", "Base64 data is required")
    ctype = None
    raw = data.strip()
    match = _DATA_URL_RE.match(raw)
    if match:
        ctype = match.group("ctype")
        raw = match.group("data")
    try:
        decoded = base64.b64decode(raw, validate=False)
    except (binascii.Error, ValueError):
        raise ValidationError("invalid_base64", "Data is not valid base64")
    if not decoded:
        raise ValidationError("invalid_base64", "Data is not valid base64")
    if len(decoded) > MAX_UPLOAD_BYTES:
        raise ValidationError("file_too_large", "Upload exceeds size limit")
    return decoded, ctype


def upload_base64(data: str, content_type: Optional[str] = None, filename: Optional[str] = None) -> Dict[str, str]:
    payload, hinted_type = decode_base64_payload(data)
    ctype = content_type or hinted_type or DEFAULT_CONTENT_TYPE
    ext = extension_for(ctype)
    safe_name = secure_filename(filename or "")
    if safe_name:
        stem, dot, suffix = safe_name.rpartition(".")
        name = safe_name if dot and stem and suffix.lower() == ext else f"{safe_name}.{ext}"
    else:
        name = f"image_{uuid.uuid4()}.{ext}"
    key = public_key(f"uploads/{name}")
    path = save_object(key, payload, ctype)
    LOG.info("base64 upload stored key=%s bytes=%s", key, len(payload))
    return {"objectPath": path, "filename": name}


def _signature(key: str, expires: int, content_type: str, secret: str) -> str:
    message = f"PUT\n{key}\n{expires}\n{content_type}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _require_secret() -> str:
    secret = app_config.signing_secret()
    if not secret:
        raise ExternalServiceError("upload_signing_unavailable", "Upload signing secret is not configured")
    return secret


def create_upload_url(
    name: str,
    size: int,
    content_type: str,
    *,
    base_url: Optional[str] = None,
    now: Optional[float] = None,
) -> Dict[str, object]:
    if not name or not isinstance(name, str):
        raise ValidationError("name_required", "File name is required")
    if not content_type or not isinstance(content_type, str):
        raise ValidationError("content_type_required", "Content type is required")
    try:
        size_value = int(size)
    except (TypeError, ValueError):
        raise ValidationError("invalid_size", "File size must be an integer")
    if size_value <= 0 or size_value > MAX_UPLOAD_BYTES:
        raise ValidationError("invalid_size", "File size is out of range")
    secret = _require_secret()
    ttl = app_config.upload_url_ttl()
    expires = int((now if now is not None else time.time()) + ttl)
    key = private_key(f"uploads/{uuid.uuid4()}")
    query = urlencode({
        "expires": expires,
        "contentType": content_type,
        "signature": _signature(key, expires, content_type, secret),
    })
    base = (base_url or app_config.public_base_url()).rstrip("/")
    return {
        "uploadURL": f"{base}{OBJECTS_URL_PREFIX}upload/{key}?{query}",
        "objectPath": object_path(key),
        "key": key,
        "expiresIn": ttl,
        "metadata": {"name": name, "size": size_value, "contentType": content_type},
    }


def verify_upload_signature(
    key: str,
    expires: object,
    content_type: str,
    signature: str,
    *,
    now: Optional[float] = None,
) -> bool:
    secret = _require_secret()
    try:
        expires_at = int(expires)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return False
    if expires_at < int(now if now is not None else time.time()):
        return False
    expected = _signature(normalize_key(key), expires_at, content_type or "", secret)
    return hmac.compare_digest(expected, signature or "")


__all__ = [
    "StoredObject",
    "public_key",
    "private_key",
    "is_private_key",
    "object_path",
    "normalize_key",
    "guess_content_type",
    "extension_for",
    "save_object",
    "read_object",
    "object_exists",
    "list_objects",
    "delete_object",
    "delete_prefix",
    "decode_base64_payload",
    "upload_base64",
    "create_upload_url",
    "verify_upload_signature",
]

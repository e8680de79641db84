"""
Attachment reference validation.

Files themselves are uploaded elsewhere; tickets only keep ``{name, url, file_type}``
references. This validator checks and normalizes those references.
"""
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from ..errors import BadRequest


MAX_ATTACHMENTS_PER_TICKET = 10
MAX_NAME_LENGTH = 255
MAX_URL_LENGTH = 2048
ALLOWED_FILE_TYPES = {"pdf", "doc", "docx", "txt", "jpg", "jpeg", "png", "gif", "zip", "rar"}


def _get(item, key: str):
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


def is_valid_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def file_type_from_url(url: str) -> Optional[str]:
    path = urlparse(url).path
    if "." not in path.rsplit("/", 1)[-1]:
        return None
    ext = path.rsplit(".", 1)[-1].lower()
    return ext if ext in ALLOWED_FILE_TYPES else None


def sanitize_attachments(items: Optional[Iterable]) -> List[dict]:
    """Validate attachment references and return plain dicts ready for insert."""
    items = list(items or [])
    if len(items) > MAX_ATTACHMENTS_PER_TICKET:
        raise BadRequest(f"Maximum {MAX_ATTACHMENTS_PER_TICKET} attachments allowed per ticket")

    out: List[dict] = []
    for item in items:
        name = (_get(item, "name") or "").strip()
        url = (_get(item, "url") or "").strip()
        file_type = _get(item, "file_type") or _get(item, "fileType")
        if not name or not url:
            raise BadRequest("Each attachment must have a name and URL")
        if len(name) > MAX_NAME_LENGTH:
            raise BadRequest(f"Attachment name must be less than {MAX_NAME_LENGTH} characters")
        if len(url) > MAX_URL_LENGTH:
            raise BadRequest(f"Attachment URL must be less than {MAX_URL_LENGTH} characters")
        if not is_valid_url(url):
            raise BadRequest("Invalid attachment URL")
        if file_type:
            file_type = file_type.strip().lower()
            if file_type not in ALLOWED_FILE_TYPES:
                raise BadRequest("Invalid attachment type")
        else:
            file_type = file_type_from_url(url)
        out.append({"name": name, "url": url, "file_type": file_type})
    return out

import hashlib
from typing import Union


def fingerprint(content: Union[bytes, str]) -> str:
    """Calculate the SHA256 hex digest of fetched content for change detection."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()

from __future__ import annotations
from pathlib import Path

from .errors import CredentialError


def read_password(path: str) -> str:
    """Read a password stored in a local file.

    The whole file is the secret, minus a single trailing line ending.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CredentialError(path, str(e)) from e
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text

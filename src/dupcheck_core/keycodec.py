"""Escaping of keys for the line-oriented chunk file format.

Only the characters that would break a line record are escaped::

    %   -> %25
    \\n  -> %0A
    \\r  -> %0D

Decoding accepts any ``%XX`` hex sequence, so it is the exact inverse of
:func:`encode_key` for internally produced lines.
"""

from __future__ import annotations

import re

from dupcheck_core.exceptions import KeyDecodeError
from dupcheck_core.stability import stable_api

ESCAPES: dict[str, str] = {
    "%": "%25",
    "\n": "%0A",
    "\r": "%0D",
}

_ENCODE_TABLE = str.maketrans(ESCAPES)
_ESCAPE_RE = re.compile(r"%([0-9A-Fa-f]{2})")
_MALFORMED_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _unescape(match: re.Match[str]) -> str:
    return chr(int(match.group(1), 16))


@stable_api
def encode_key(key: str) -> str:
    """Escape ``key`` so it occupies exactly one line."""
    return key.translate(_ENCODE_TABLE)


@stable_api
def decode_key(text: str) -> str:
    """Reverse :func:`encode_key`.

    Raises:
        KeyDecodeError: ``text`` has a ``%`` not followed by two hex digits.
    """
    if "%" not in text:
        return text
    bad = _MALFORMED_RE.search(text)
    if bad is not None:
        raise KeyDecodeError(
            f"Malformed escape sequence at offset {bad.start()}",
            context={"offset": bad.start(), "text": text[bad.start() : bad.start() + 3]},
        )
    return _ESCAPE_RE.sub(_unescape, text)

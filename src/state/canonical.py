"""
Byte-exact encodings behind snapshot commitments and permit messages.

Two parties hashing the same ledger state must produce the same bytes, so the
JSON form admits only str keys, ints, strs, bools, None, lists and dicts.
Anything else is reported with the path where it was found.
"""

from __future__ import annotations

import hashlib
import json
import string
from typing import Any


DOMAIN_NAMESPACE = b"dexledger"

_HEXDIGITS = frozenset(string.hexdigits)
_SCALARS = (str, int, bool, type(None))


def _check_encodable(value: Any, path: str) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"{path}: key {key!r} is not a str")
            _check_encodable(item, f"{path}.{key}")
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check_encodable(item, f"{path}[{i}]")
    elif isinstance(value, float) or not isinstance(value, _SCALARS):
        raise TypeError(f"{path}: {type(value).__name__} has no canonical encoding")


def canonical_json_bytes(value: Any) -> bytes:
    """UTF-8 JSON with sorted keys and no whitespace; floats are rejected."""
    _check_encodable(value, "$")
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def domain_sep_bytes(label: str, version: int = 1) -> bytes:
    """
    `dexledger:<label>:v<version>` followed by a NUL byte.

    The label must be non-empty ASCII without NUL, so one prefix can never be a
    prefix of another.
    """
    if not isinstance(label, str) or not label:
        raise TypeError("label must be a non-empty str")
    if not label.isascii() or "\x00" in label:
        raise ValueError(f"label must be ASCII without NUL: {label!r}")
    if type(version) is not int or version < 1:
        raise ValueError(f"version must be a positive int: {version!r}")
    return b":".join((DOMAIN_NAMESPACE, label.encode("ascii"), b"v%d" % version)) + b"\x00"


def hex_to_bytes_fixed(hex_str: str, *, nbytes: int, name: str) -> bytes:
    """Decode `0x` + exactly `2 * nbytes` hex digits."""
    if not isinstance(hex_str, str):
        raise TypeError(f"{name} must be a str")
    prefix, digits = hex_str[:2], hex_str[2:]
    if prefix != "0x" or len(digits) != 2 * nbytes:
        raise ValueError(f"{name} must be a 0x-prefixed {nbytes}-byte hex string")
    if not _HEXDIGITS.issuperset(digits):
        raise ValueError(f"{name} must be valid hex")
    return bytes.fromhex(digits)

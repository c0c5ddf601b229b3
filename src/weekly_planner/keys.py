from __future__ import annotations

"""Gemini API key storage & retrieval.

The OS keyring is preferred. When no keyring backend is usable the key is
written to an XOR-obfuscated file in the data directory (not encryption,
just not plain text). Use :func:`redact` whenever a key reaches a log.
"""

import base64
import binascii
import logging
from pathlib import Path
from typing import Optional

import keyring
from keyring.errors import KeyringError

SERVICE_NAME = "weekly_planner_gemini"
ACCOUNT_NAME = "default"
FALLBACK_FILENAME = "gemini.key"
_XOR_KEY = b"weekly-planner-xor"
_log = logging.getLogger(__name__)


def save_api_key(base_dir: Path, api_key: str) -> None:
    try:
        keyring.set_password(SERVICE_NAME, ACCOUNT_NAME, api_key)
        _log.info("api key stored in keyring")
        return
    except KeyringError:
        _log.warning("keyring storage failed; falling back to file")
    path = base_dir / FALLBACK_FILENAME
    path.write_bytes(_xor_obfuscate(api_key.encode("utf-8")))
    _log.info("api key stored in fallback file", extra={"_json_location": "fallback"})


def load_api_key(base_dir: Path) -> Optional[str]:
    try:
        stored = keyring.get_password(SERVICE_NAME, ACCOUNT_NAME)
        if stored:
            return stored
    except KeyringError:
        _log.debug("keyring unavailable; trying fallback file")
    path = base_dir / FALLBACK_FILENAME
    if not path.exists():
        return None
    try:
        return _xor_deobfuscate(path.read_bytes()).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        _log.warning("fallback key file is unreadable")
        return None


def redact(value: str | None) -> str:
    if not value:
        return "<none>"
    if len(value) <= 6:
        return "***"
    return value[:3] + "***" + value[-3:]


def _xor(data: bytes) -> bytes:
    return bytes(b ^ _XOR_KEY[i % len(_XOR_KEY)] for i, b in enumerate(data))


def _xor_obfuscate(data: bytes) -> bytes:
    return base64.b64encode(_xor(data))


def _xor_deobfuscate(data: bytes) -> bytes:
    return _xor(base64.b64decode(data, validate=True))


__all__ = ["save_api_key", "load_api_key", "redact"]

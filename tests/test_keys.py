import keyring
from keyring.errors import KeyringError

from weekly_planner import keys


def _broken_keyring(monkeypatch):
    def fail(*args, **kwargs):
        raise KeyringError("no backend")

    monkeypatch.setattr(keyring, "set_password", fail)
    monkeypatch.setattr(keyring, "get_password", fail)


def test_redact():
    assert keys.redact(None) == "<none>"
    assert keys.redact("") == "<none>"
    assert keys.redact("abc") == "***"
    assert keys.redact("AIzaSyExample123") == "AIz***123"


def test_keyring_preferred(monkeypatch, tmp_path):
    stored = {}
    monkeypatch.setattr(keyring, "set_password", lambda s, a, v: stored.__setitem__((s, a), v))
    monkeypatch.setattr(keyring, "get_password", lambda s, a: stored.get((s, a)))
    keys.save_api_key(tmp_path, "secret-value")
    assert stored[(keys.SERVICE_NAME, keys.ACCOUNT_NAME)] == "secret-value"
    assert not (tmp_path / keys.FALLBACK_FILENAME).exists()
    assert keys.load_api_key(tmp_path) == "secret-value"


def test_fallback_file_when_keyring_fails(monkeypatch, tmp_path):
    _broken_keyring(monkeypatch)
    assert keys.load_api_key(tmp_path) is None
    keys.save_api_key(tmp_path, "secret-value")
    raw = (tmp_path / keys.FALLBACK_FILENAME).read_bytes()
    assert b"secret-value" not in raw
    assert keys.load_api_key(tmp_path) == "secret-value"


def test_unreadable_fallback_file(monkeypatch, tmp_path):
    _broken_keyring(monkeypatch)
    (tmp_path / keys.FALLBACK_FILENAME).write_bytes(b"not base64 at all!")
    assert keys.load_api_key(tmp_path) is None

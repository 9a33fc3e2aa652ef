import importlib
import sys

import pytest


@pytest.fixture(autouse=True)
def fresh_main_module():
    """Re-run ladder.main's module-level configuration checks in each test."""
    original = sys.modules.pop("ladder.main", None)
    try:
        yield
    finally:
        sys.modules.pop("ladder.main", None)
        if original is not None:
            sys.modules["ladder.main"] = original


def test_rejects_wildcard_origin(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "*")
    monkeypatch.setenv("ALLOW_CREDENTIALS", "true")
    with pytest.raises(ValueError):
        importlib.import_module("ladder.main")


def test_requires_allowed_origins(monkeypatch):
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)
    with pytest.raises(ValueError):
        importlib.import_module("ladder.main")


def test_requires_strong_jwt_secret(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://localhost:3000")
    monkeypatch.setenv("JWT_SECRET", "secret")
    with pytest.raises(RuntimeError):
        importlib.import_module("ladder.main")


def test_configured_origins_are_allowed(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://localhost:3000, https://ladder.example")
    main = importlib.import_module("ladder.main")

    assert main.ALLOWED_ORIGINS == ["http://localhost:3000", "https://ladder.example"]

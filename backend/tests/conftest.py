from __future__ import annotations

import importlib
import sys
from pathlib import Path
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# Small PNG-shaped payload; only its bytes matter to the endpoints.
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000001e221bc330000000049454e44ae426082"
)


@pytest.fixture
def backend_module(tmp_path, monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "*")
    monkeypatch.setenv("MEDASSIST_REWRITE_TITLES", "false")
    monkeypatch.setenv("MEDASSIST_SESSION_DB_PATH", str(tmp_path / "medassist-test.sqlite"))

    if "main" in sys.modules:
        module = importlib.reload(sys.modules["main"])
    else:
        module = importlib.import_module("main")
    # Credentials are read per call; drop any a local .env bootstrapped.
    for key in ("OPENAI_API_KEY", "PPLX_API_KEY", "GOOGLE_API_KEY", "ELEVENLABS_API_KEY", "FDA_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    return module


@pytest.fixture
def client(backend_module):
    with TestClient(backend_module.app) as test_client:
        yield test_client


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def stub_classifier(backend_module, monkeypatch) -> Callable[[str], list[dict[str, Any]]]:
    """Make the classification call answer ``label`` and record every call."""

    def _install(label: str) -> list[dict[str, Any]]:
        calls: list[dict[str, Any]] = []

        def fake_complete(**kwargs):
            calls.append(kwargs)
            return label

        monkeypatch.setattr(backend_module, "_complete_openai", fake_complete)
        return calls

    return _install

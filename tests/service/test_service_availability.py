"""Service mode without the optional FastAPI dependency."""

from __future__ import annotations

import pytest

from reposense.service import app as service_app


def test_create_app_requires_fastapi(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(service_app, "_FASTAPI_AVAILABLE", False)

    with pytest.raises(RuntimeError) as excinfo:
        service_app.create_app()

    assert "FastAPI is required" in str(excinfo.value)


def test_run_service_requires_fastapi(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(service_app, "_FASTAPI_AVAILABLE", False)

    with pytest.raises(RuntimeError, match="pip install"):
        service_app.run_service()

"""FastAPI application entrypoint for reposense service mode."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterator, Optional

try:  # pragma: no cover - optional dependency
    from fastapi import Depends, FastAPI
    from fastapi.responses import JSONResponse, StreamingResponse

    _FASTAPI_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - service mode optional
    FastAPI = None  # type: ignore[assignment]
    Depends = None  # type: ignore[assignment]
    JSONResponse = None  # type: ignore[assignment]
    StreamingResponse = None  # type: ignore[assignment]
    _FASTAPI_AVAILABLE = False

from pydantic import BaseModel

from ..errors import ErrorKind
from ..models import AnalysisMode
from ..orchestrator import AnalysisState, Orchestrator

_STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_REFERENCE: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAVAILABLE: 503,
    ErrorKind.BACKEND_FAILURE: 502,
    ErrorKind.PARSE_FAILURE: 502,
    ErrorKind.CANCELLED: 409,
}


class AnalyzeRequest(BaseModel):
    url: str
    mode: AnalysisMode = AnalysisMode.FULL
    deep_reasoning: bool = False
    github_token: Optional[str] = None
    api_key: Optional[str] = None


class AnalyzeResponse(BaseModel):
    state: str
    message: str
    report: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: str


def _require_fastapi() -> None:
    if not _FASTAPI_AVAILABLE:
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install reposense[service]`."
        )


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing repository analysis."""
    _require_fastapi()

    app = FastAPI(title="RepoSense Service", version="1.0.0")

    async def get_orchestrator() -> Orchestrator:
        # One orchestrator per request.
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/analyze", response_model=AnalyzeResponse)
    def analyze(
        payload: AnalyzeRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Any:
        # Sync handler; FastAPI runs it in the threadpool.
        outcome = orchestrator.run(
            payload.url,
            mode=payload.mode,
            deep_reasoning=payload.deep_reasoning,
            github_token=payload.github_token,
            api_key=payload.api_key,
        )
        body = AnalyzeResponse(
            state=outcome.state.value,
            message=outcome.message,
            report=outcome.report.to_dict() if outcome.report else None,
            error=outcome.error.to_dict() if outcome.error else None,
        )
        if outcome.state is AnalysisState.COMPLETE or outcome.error is None:
            return body
        status = _STATUS_BY_KIND.get(outcome.error.kind, 500)
        return JSONResponse(status_code=status, content=body.model_dump())

    @app.post("/analyze/stream")
    def analyze_stream(
        payload: AnalyzeRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> StreamingResponse:
        def _lines() -> Iterator[str]:
            for update in orchestrator.iter_updates(
                payload.url,
                mode=payload.mode,
                deep_reasoning=payload.deep_reasoning,
                github_token=payload.github_token,
                api_key=payload.api_key,
            ):
                yield json.dumps(update.to_dict()) + "\n"

        return StreamingResponse(
            _lines(),
            media_type="application/x-ndjson",
            headers={"Cache-Control": "no-cache"},
        )

    return app


def run_service(
    host: str = "0.0.0.0", port: int = 8000
) -> None:  # pragma: no cover - integration path
    _require_fastapi()

    try:
        import uvicorn
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install uvicorn`."
        ) from exc

    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["AnalyzeRequest", "AnalyzeResponse", "create_app", "run_service"]

"""FastAPI application entrypoint for docdrift service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..errors import ConfigError, DecisionNotRecordableError, DocDriftError, StateLockedError
from ..models import Outcome, PolicyDecision, TriggerKind
from ..orchestrator import Orchestrator


class DetectRequest(BaseModel):
    path: str = "."
    base_sha: Optional[str] = None
    head_sha: Optional[str] = None
    trigger: TriggerKind = TriggerKind.MANUAL
    pr_number: Optional[int] = None


class DetectResponse(BaseModel):
    has_drift: bool
    report_path: str
    report: Dict[str, Any]


class DecideResponse(BaseModel):
    status: str
    decision: Optional[Dict[str, Any]] = None


class DecisionPayload(BaseModel):
    action: str
    confidence: float
    reason: str
    idempotencyKey: str


class OutcomeRequest(BaseModel):
    path: str = "."
    doc_area: str
    decision: DecisionPayload
    outcome: Outcome
    link: Optional[str] = None
    summary: str = ""
    agent_confidence: Optional[float] = None


class OutcomeResponse(BaseModel):
    result: Dict[str, Any]


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


async def _in_thread(func: Callable[[], Any]) -> Any:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing docdrift operations."""

    app = FastAPI(title="DocDrift Service", version="1.0.0")

    async def get_orchestrator() -> Orchestrator:
        # Lazy-instantiate per request to keep state predictable.
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/detect", response_model=DetectResponse)
    async def detect(
        payload: DetectRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> DetectResponse:
        outcome = await _in_thread(
            lambda: orchestrator.run_detect(
                payload.path,
                payload.base_sha,
                payload.head_sha,
                trigger=payload.trigger,
                pr_number=payload.pr_number,
            )
        )
        return DetectResponse(
            has_drift=outcome.report.has_drift,
            report_path=str(outcome.report_path),
            report=outcome.report.to_dict(),
        )

    @app.post("/decide", response_model=DecideResponse)
    async def decide(
        payload: DetectRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> DecideResponse:
        decided = await _in_thread(
            lambda: orchestrator.run_decide(
                payload.path,
                payload.base_sha,
                payload.head_sha,
                trigger=payload.trigger,
                pr_number=payload.pr_number,
            )
        )
        if decided is None:
            return DecideResponse(status="no_drift")
        return DecideResponse(status="ok", decision=decided.to_dict())

    @app.post("/outcome", response_model=OutcomeResponse)
    async def record_outcome(
        payload: OutcomeRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> OutcomeResponse:
        decision = PolicyDecision.from_dict(payload.decision.model_dump())
        result = await _in_thread(
            lambda: orchestrator.record_outcome(
                payload.path,
                decision,
                payload.doc_area,
                payload.outcome,
                link=payload.link,
                summary=payload.summary,
                agent_confidence=payload.agent_confidence,
            )
        )
        return OutcomeResponse(result=result.to_dict())

    @app.exception_handler(StateLockedError)
    async def state_locked_handler(_: Any, exc: StateLockedError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(DecisionNotRecordableError)
    async def not_recordable_handler(_: Any, exc: DecisionNotRecordableError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(DocDriftError)
    async def docdrift_error_handler(_: Any, exc: DocDriftError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__: List[str] = ["create_app", "run_service"]

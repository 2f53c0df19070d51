# wt/server.py
"""
FastAPI server for the wt CLI: feed a live session and read its state.
"""

import uuid

from fastapi import FastAPI, HTTPException, Request
from starlette.responses import JSONResponse

from wt.analysis.config import PipelineConfig
from wt.analysis.pipeline import TrackingPipeline
from wt.utils.log import get_logger
from wt.utils.validate import FixRecord, OutcomeOut, PathPoint, SessionOut, StepRecord

logger = get_logger(__name__)


def _pipeline(request: Request) -> TrackingPipeline:
    pipeline = request.app.state.pipeline
    if pipeline is None:
        raise HTTPException(status_code=409, detail="no active session; POST /api/session first")
    return pipeline


def create_app(cfg: PipelineConfig | None = None) -> FastAPI:
    """
    Build a FastAPI instance that owns at most one tracking session at a time.
    """
    app = FastAPI()
    app.state.cfg = cfg or PipelineConfig()
    app.state.pipeline = None
    app.state.session_id = None

    @app.get("/api/status", response_class=JSONResponse)
    async def status() -> JSONResponse:
        return JSONResponse(status_code=200, content={"status": "ok"})

    @app.post("/api/session", response_class=JSONResponse)
    async def start_session(request: Request) -> JSONResponse:
        """
        Start a new session with fresh filters; the previous one is discarded.
        """
        session_id = str(uuid.uuid4())
        request.app.state.pipeline = TrackingPipeline(request.app.state.cfg)
        request.app.state.session_id = session_id
        logger.info("Session %s started", session_id)
        return JSONResponse(
            status_code=201,
            content={"session_id": session_id, "config": request.app.state.cfg.as_dict()},
        )

    @app.get("/api/session", response_model=SessionOut)
    async def get_session(request: Request):
        pipeline = _pipeline(request)
        return SessionOut.from_snapshot(pipeline.snapshot(), request.app.state.session_id)

    @app.post("/api/fix", response_model=OutcomeOut)
    async def post_fix(request: Request, fix: FixRecord):
        pipeline = _pipeline(request)
        return OutcomeOut.from_outcome(pipeline.process(fix.to_raw_fix()))

    @app.post("/api/steps", response_class=JSONResponse)
    async def post_steps(request: Request, reading: StepRecord) -> JSONResponse:
        pipeline = _pipeline(request)
        total = pipeline.on_sensor_step_count(reading.steps, reading.ts, reading.acceleration)
        return JSONResponse(status_code=200, content={"total_steps": total})

    @app.get("/api/path", response_model=list[PathPoint])
    async def get_path(request: Request):
        """
        Return the simplified path of the current session.
        """
        pipeline = _pipeline(request)
        return [PathPoint.from_point(p) for p in pipeline.simplified_path()]

    @app.get("/api/stats", response_class=JSONResponse)
    async def get_stats(request: Request) -> JSONResponse:
        pipeline = _pipeline(request)
        return JSONResponse(status_code=200, content=pipeline.stats())

    return app

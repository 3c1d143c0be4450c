"""
Codrel Risk FastAPI Application.

Per-file risk scoring and context tiering for AI coding agents:
  POST /api/risk-analysis      → score files (mode=score) or build context (mode=full)
  POST /mcp/assessFileRisk     → allow / warn / block for a change
  POST /events, /incidents     → ingest risk events
  GET  /health                 → {"status": "ok"}
"""

from __future__ import annotations

import logging

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.dependencies import close_clients
from app.api.routes.events import router as events_router
from app.api.routes.health import router as health_router
from app.api.routes.mcp import router as mcp_router
from app.api.routes.risk_analysis import router as risk_router
from app.config import settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("codrel")

app = FastAPI(
    title="Codrel Risk",
    description="File risk scoring and tiered historical context for coding agents",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(risk_router)
app.include_router(mcp_router)
app.include_router(events_router)


@app.on_event("shutdown")
async def shutdown():
    await close_clients()
    logger.info("HTTP clients closed")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    body = await request.body()
    logger.error(f"Validation Error. Raw body: {body.decode('utf-8')[:500]} | Errors: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port)

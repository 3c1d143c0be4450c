"""
AWS Lambda handler — Mangum wrapper for the Codrel Risk FastAPI app.

Scheduled keep-warm pings (EventBridge, {"source": "aws.events"}) are answered
directly so they never reach the ASGI app or touch the stores.
"""

import logging

from mangum import Mangum

from app.main import app

logger = logging.getLogger("codrel.lambda")

WARMUP_SOURCES = {"aws.events", "serverless-plugin-warmup"}

_asgi_handler = Mangum(app, lifespan="off")


def is_warmup(event) -> bool:
    return isinstance(event, dict) and event.get("source") in WARMUP_SOURCES


def handler(event, context):
    if is_warmup(event):
        logger.info("warmup ping")
        return {"status": "warm"}
    return _asgi_handler(event, context)

"""
Tests for the Lambda entrypoint.
"""

import asyncio
import json

import pytest

from handler import handler, is_warmup


@pytest.fixture(autouse=True)
def _event_loop():
    # Mangum uses asyncio.get_event_loop(); other tests' asyncio.run() leaves
    # the main thread without a current loop, so provide one per test.
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    asyncio.set_event_loop(None)
    loop.close()


def test_warmup_short_circuits():
    assert is_warmup({"source": "aws.events"})
    assert not is_warmup({"version": "2.0"})
    assert handler({"source": "aws.events"}, None) == {"status": "warm"}


def test_http_api_event_reaches_app():
    event = {
        "version": "2.0",
        "routeKey": "$default",
        "rawPath": "/health",
        "rawQueryString": "",
        "headers": {"host": "risk.example.com"},
        "requestContext": {
            "http": {"method": "GET", "path": "/health", "sourceIp": "10.0.0.1"},
            "stage": "$default",
        },
        "isBase64Encoded": False,
    }
    response = handler(event, None)
    assert response["statusCode"] == 200
    assert json.loads(response["body"])["status"] == "ok"

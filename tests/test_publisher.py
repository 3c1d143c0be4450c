"""
Tests for decision publishers.
"""

import asyncio
import json

import httpx

from app.models.risk_models import Decision
from app.notify.publisher import (
    RISK_EVENTS_TOPIC,
    HttpPublisher,
    LoggingPublisher,
    alert_priority,
)


def test_logging_publisher_keeps_messages():
    publisher = LoggingPublisher()
    asyncio.run(publisher.publish(RISK_EVENTS_TOPIC, {"eventId": "e-1", "decision": "warn"}))
    assert publisher.messages == [(RISK_EVENTS_TOPIC, {"eventId": "e-1", "decision": "warn"})]


def test_http_publisher_posts_envelope():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(202)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    publisher = HttpPublisher("http://bridge.local/publish", client=client)
    asyncio.run(publisher.publish(RISK_EVENTS_TOPIC, {"decision": "block"}))

    assert seen == [{"topic": RISK_EVENTS_TOPIC, "payload": {"decision": "block"}}]


def test_http_publisher_swallows_bridge_errors():
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda r: httpx.Response(500, text="down"))
    )
    publisher = HttpPublisher("http://bridge.local/publish", client=client)
    # Logged, not raised
    asyncio.run(publisher.publish(RISK_EVENTS_TOPIC, {"decision": "block"}))


def test_alert_priority():
    assert alert_priority(Decision.BLOCK) == "high"
    assert alert_priority(Decision.WARN) == "medium"

"""Tests for rate limiting, event envelopes and the disabled publisher."""

import json
from datetime import date

import httpx
from fastapi import FastAPI

from clinic_booking.events import booking_payload, build_event, to_json
from clinic_booking.middleware import RateLimitMiddleware
from clinic_booking.models import Booking
from clinic_booking.rabbitmq import RabbitPublisher


class FakeRedis:
    """In-memory stand-in for the two counter commands the limiter uses."""

    def __init__(self):
        self.counts = {}
        self.ttls = {}

    async def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        self.ttls[key] = seconds


def limited_app(redis_client, max_per_minute):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, redis_client=redis_client, max_per_minute=max_per_minute)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


def client_for(app):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


class TestRateLimitMiddleware:
    """Tests for RateLimitMiddleware."""

    async def test_blocks_after_limit(self) -> None:
        """Requests over the per-minute limit get 429."""
        redis_client = FakeRedis()
        async with client_for(limited_app(redis_client, 2)) as c:
            codes = [(await c.get("/ping")).status_code for _ in range(3)]

        assert codes == [200, 200, 429]
        assert list(redis_client.ttls.values()) == [70]

    async def test_tokens_counted_separately(self) -> None:
        """Each bearer token has its own limit."""
        redis_client = FakeRedis()
        async with client_for(limited_app(redis_client, 1)) as c:
            first = await c.get("/ping", headers={"Authorization": "Bearer a"})
            second = await c.get("/ping", headers={"Authorization": "Bearer b"})

        assert (first.status_code, second.status_code) == (200, 200)
        assert len(redis_client.counts) == 2

    async def test_health_is_exempt(self) -> None:
        """Health checks never count against the limit."""
        redis_client = FakeRedis()
        async with client_for(limited_app(redis_client, 1)) as c:
            codes = [(await c.get("/health")).status_code for _ in range(3)]

        assert codes == [200, 200, 200]
        assert redis_client.counts == {}


class TestEvents:
    """Tests for event envelopes."""

    def test_envelope_fields(self) -> None:
        """Envelopes carry id, type, timestamp and data."""
        event = build_event("booking.created", {"booking_id": 1})

        assert event["event_type"] == "booking.created"
        assert event["data"] == {"booking_id": 1}
        assert event["event_id"]
        assert event["occurred_at"]

    def test_booking_payload_serializes(self) -> None:
        """Booking payloads survive JSON encoding."""
        booking = Booking(
            id=7,
            slot_id=3,
            patient_email="asha@example.com",
            status="PENDING",
            payment_status="PENDING",
            queue_number=2,
            appointment_date=date(2030, 1, 15),
        )

        decoded = json.loads(to_json(build_event("booking.created", booking_payload(booking))))

        assert decoded["data"]["booking_id"] == 7
        assert decoded["data"]["appointment_date"] == "2030-01-15"


class TestRabbitPublisher:
    """Tests for the publisher without a broker."""

    async def test_disabled_without_url(self) -> None:
        """No URL means publishing is a no-op."""
        publisher = RabbitPublisher(url=None)

        await publisher.connect()
        await publisher.publish_event("booking.created", {"booking_id": 1})
        await publisher.close()

        assert publisher.enabled is False

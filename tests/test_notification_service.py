"""In-app notifications and SendGrid delivery."""

import json
import uuid

import httpx
import pytest
import pytest_asyncio

from growshare.config import settings
from growshare.services.notification_service import NotificationService


@pytest_asyncio.fixture
async def sendgrid(monkeypatch):
    """Route SendGrid calls to an in-memory handler and record the payloads."""
    sent = []
    state = {"status": 202}

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(state["status"])

    monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test")
    service = NotificationService()
    service._http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    yield service, sent, state
    await service.close()


@pytest.mark.asyncio
async def test_send_email_without_api_key_is_skipped():
    service = NotificationService()
    assert await service.send_email("renter@example.com", "Hi", "<p>Hi</p>") is False


@pytest.mark.asyncio
async def test_send_email_posts_plain_and_html_parts(sendgrid):
    service, sent, _ = sendgrid

    delivered = await service.send_email("renter@example.com", "Booking Approved", "<p>Yes</p>", "Yes")

    assert delivered is True
    assert sent[0]["personalizations"] == [{"to": [{"email": "renter@example.com"}]}]
    assert [part["type"] for part in sent[0]["content"]] == ["text/plain", "text/html"]


@pytest.mark.asyncio
async def test_send_email_rejected_by_provider(sendgrid):
    service, _, state = sendgrid
    state["status"] = 400

    assert await service.send_email("renter@example.com", "Hi", "<p>Hi</p>") is False


@pytest.mark.asyncio
async def test_notify_user_records_email_outcome(sendgrid, session_maker, renter):
    service, sent, _ = sendgrid

    async with session_maker() as session:
        notification = await service.notify_booking_approved(
            session, renter_id=renter.id, plot_title="Sunny Corner Plot", booking_id=uuid.uuid4()
        )
        await session.commit()

    assert notification.email_sent is True
    assert notification.link == "/my-bookings"
    assert sent[0]["subject"] == "Booking Approved"


@pytest.mark.asyncio
async def test_notify_missing_user_is_skipped(session_maker):
    service = NotificationService()

    async with session_maker() as session:
        result = await service.notify_user(
            session, uuid.uuid4(), "Hello", "Nobody home", "BOOKING_APPROVED"
        )

    assert result is None


def test_email_html_escapes_user_content():
    html = NotificationService()._generate_email_html(
        "Booking <b>Approved</b>", 'Plot "<script>"', "/my-bookings"
    )

    assert "<script>" not in html
    assert "&lt;script&gt;" in html

"""Approve / reject / cancel through PATCH /api/bookings/{id}."""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from growshare.gateways.base import RefundResult
from growshare.models import Booking, Notification, User, UserActivity
from growshare.services import activity_service, booking_service
from growshare.services.gateway_service import gateway_service
from growshare.services.notification_service import notification_service
from tests.conftest import add, auth_headers, make_user


async def fetch_booking(session_maker, booking_id) -> Booking:
    async with session_maker() as session:
        result = await session.execute(
            select(Booking)
            .options(selectinload(Booking.payment_intent))
            .where(Booking.id == booking_id)
        )
        return result.scalar_one()


async def fetch_user(session_maker, user_id) -> User:
    async with session_maker() as session:
        return await session.get(User, user_id)


async def fetch_activities(session_maker, user_id) -> list[UserActivity]:
    async with session_maker() as session:
        result = await session.execute(
            select(UserActivity).where(UserActivity.user_id == user_id)
        )
        return list(result.scalars().all())


async def fetch_notifications(session_maker, user_id) -> list[Notification]:
    async with session_maker() as session:
        result = await session.execute(
            select(Notification).where(Notification.user_id == user_id)
        )
        return list(result.scalars().all())


def stub_refund(monkeypatch, result=None, error=None):
    calls = []

    async def _process_refund(transaction_id, amount, reason, gateway_type=None):
        calls.append({"transaction_id": transaction_id, "amount": amount})
        if error:
            raise error
        return result or RefundResult(success=True, refund_id="re_test_1")

    monkeypatch.setattr(gateway_service, "process_refund", _process_refund)
    return calls


# ==================== APPROVE ====================


@pytest.mark.asyncio
async def test_owner_approves_pending_booking(client, session_maker, owner, renter, make_booking):
    booking = await make_booking()

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "APPROVED"}, headers=auth_headers(owner)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "APPROVED"
    assert body["plot"]["title"] == "Sunny Corner Plot"
    assert body["renter"]["id"] == str(renter.id)
    assert body["payment_intent"] is None

    assert (await fetch_booking(session_maker, booking.id)).status == "APPROVED"
    assert (await fetch_user(session_maker, owner.id)).total_points == 15

    owner_activities = await fetch_activities(session_maker, owner.id)
    assert [(a.title, a.points) for a in owner_activities] == [("Booking approved", 15)]
    renter_activities = await fetch_activities(session_maker, renter.id)
    assert [(a.type, a.title, a.points) for a in renter_activities] == [
        ("BOOKING_APPROVED", "Booking confirmed", 0)
    ]

    notifications = await fetch_notifications(session_maker, renter.id)
    assert len(notifications) == 1
    assert notifications[0].type == "BOOKING_APPROVED"
    assert '"Sunny Corner Plot"' in notifications[0].content


@pytest.mark.asyncio
async def test_approval_requires_payout_setup(client, session_maker, make_booking, owner):
    async with session_maker() as session:
        stored = await session.get(User, owner.id)
        stored.stripe_onboarding_complete = False
        await session.commit()
    booking = await make_booking()

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "APPROVED"}, headers=auth_headers(owner)
    )

    assert response.status_code == 400
    assert response.json()["requiresConnectSetup"] is True
    assert (await fetch_booking(session_maker, booking.id)).status == "PENDING"
    assert (await fetch_user(session_maker, owner.id)).total_points == 0


@pytest.mark.asyncio
async def test_renter_cannot_approve(client, session_maker, make_booking, renter):
    booking = await make_booking()

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "APPROVED"}, headers=auth_headers(renter)
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Only the plot owner can approve or reject bookings"
    assert (await fetch_booking(session_maker, booking.id)).status == "PENDING"


@pytest.mark.asyncio
@pytest.mark.parametrize("current", ["APPROVED", "REJECTED", "CANCELLED", "ACTIVE", "COMPLETED"])
@pytest.mark.parametrize("target", ["APPROVED", "REJECTED"])
async def test_owner_cannot_approve_or_reject_non_pending(
    client, session_maker, make_booking, owner, current, target
):
    booking = await make_booking(status=current)

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": target}, headers=auth_headers(owner)
    )

    assert response.status_code == 400
    assert current.lower() in response.json()["detail"]
    assert (await fetch_booking(session_maker, booking.id)).status == current


@pytest.mark.asyncio
async def test_approval_succeeds_when_notification_fails(
    client, session_maker, make_booking, owner, renter, monkeypatch
):
    async def _fail(*args, **kwargs):
        raise RuntimeError("mail server down")

    monkeypatch.setattr(notification_service, "notify_booking_approved", _fail)
    booking = await make_booking()

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "APPROVED"}, headers=auth_headers(owner)
    )

    assert response.status_code == 200
    assert response.json()["status"] == "APPROVED"
    assert len(await fetch_activities(session_maker, renter.id)) == 1
    assert await fetch_notifications(session_maker, renter.id) == []


# ==================== REJECT ====================


@pytest.mark.asyncio
async def test_owner_rejects_pending_booking(client, session_maker, make_booking, owner, renter):
    booking = await make_booking()

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "REJECTED"}, headers=auth_headers(owner)
    )

    assert response.status_code == 200
    assert response.json()["status"] == "REJECTED"

    renter_activities = await fetch_activities(session_maker, renter.id)
    assert [(a.title, a.points) for a in renter_activities] == [("Booking declined", 0)]
    assert await fetch_activities(session_maker, owner.id) == []
    assert (await fetch_user(session_maker, owner.id)).total_points == 0

    notifications = await fetch_notifications(session_maker, renter.id)
    assert [n.type for n in notifications] == ["BOOKING_REJECTED"]


# ==================== CANCEL ====================


@pytest.mark.asyncio
@pytest.mark.parametrize("current", ["PENDING", "APPROVED"])
async def test_renter_cancels_unpaid_booking(
    client, session_maker, make_booking, owner, renter, current, monkeypatch
):
    calls = stub_refund(monkeypatch)
    booking = await make_booking(status=current)

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=auth_headers(renter)
    )

    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"
    assert calls == []

    renter_activities = await fetch_activities(session_maker, renter.id)
    assert [a.description for a in renter_activities] == ["Cancelled booking for Sunny Corner Plot"]
    owner_activities = await fetch_activities(session_maker, owner.id)
    assert [a.description for a in owner_activities] == ["Booking for Sunny Corner Plot was cancelled"]

    owner_notifications = await fetch_notifications(session_maker, owner.id)
    assert len(owner_notifications) == 1
    assert owner_notifications[0].content == (
        'The booking for "Sunny Corner Plot" has been cancelled by Ravi Renter.'
    )
    assert owner_notifications[0].link == "/manage-bookings"


@pytest.mark.asyncio
async def test_owner_cancellation_notifies_renter(
    client, session_maker, make_booking, owner, renter
):
    booking = await make_booking(status="APPROVED")

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=auth_headers(owner)
    )

    assert response.status_code == 200
    renter_notifications = await fetch_notifications(session_maker, renter.id)
    assert [n.content for n in renter_notifications] == [
        'The booking for "Sunny Corner Plot" has been cancelled by Olivia Owner.'
    ]
    assert await fetch_notifications(session_maker, owner.id) == []


@pytest.mark.asyncio
async def test_outsider_cannot_cancel(client, session_maker, make_booking, outsider):
    booking = await make_booking()

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=auth_headers(outsider)
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "You do not have permission to cancel this booking"
    assert (await fetch_booking(session_maker, booking.id)).status == "PENDING"


@pytest.mark.asyncio
@pytest.mark.parametrize("current", ["ACTIVE", "COMPLETED", "REJECTED", "CANCELLED"])
async def test_cancel_from_later_states_fails(client, session_maker, make_booking, renter, current):
    booking = await make_booking(status=current)

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=auth_headers(renter)
    )

    assert response.status_code == 400
    assert (await fetch_booking(session_maker, booking.id)).status == current


@pytest.mark.asyncio
async def test_repeated_cancellation_is_rejected(client, make_booking, renter):
    booking = await make_booking()
    headers = auth_headers(renter)

    first = await client.patch(f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=headers)
    second = await client.patch(f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=headers)

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["detail"] == "Cannot cancel a cancelled booking"


# ==================== REFUNDS ON CANCELLATION ====================


@pytest.mark.asyncio
async def test_cancellation_ten_days_out_refunds_in_full(
    client, session_maker, make_booking, owner, renter, monkeypatch
):
    calls = stub_refund(monkeypatch)
    booking = await make_booking(
        status="APPROVED", paid=True, amount=10000, intent_metadata={"platformFee": 1000}
    )

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=auth_headers(renter)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "CANCELLED"
    assert body["payment_intent"]["status"] == "REFUNDED"
    assert calls[0]["amount"] == 10000

    stored = await fetch_booking(session_maker, booking.id)
    metadata = stored.payment_intent.metadata_
    assert stored.payment_intent.status == "REFUNDED"
    assert metadata["refundId"] == "re_test_1"
    assert metadata["refundAmount"] == 10000
    assert metadata["refundPercentage"] == 100
    assert "refundedAt" in metadata
    assert metadata["platformFee"] == 1000

    renter_activities = await fetch_activities(session_maker, renter.id)
    assert renter_activities[0].description == (
        "Cancelled booking for Sunny Corner Plot (100% refund of $100.00)"
    )
    owner_activities = await fetch_activities(session_maker, owner.id)
    assert "refund of $100.00 processed" in owner_activities[0].description

    renter_notifications = await fetch_notifications(session_maker, renter.id)
    assert [n.type for n in renter_notifications] == ["REFUND_PROCESSED"]


@pytest.mark.asyncio
async def test_cancellation_four_days_out_refunds_half(
    client, session_maker, make_booking, renter, monkeypatch
):
    calls = stub_refund(monkeypatch)
    booking = await make_booking(
        status="APPROVED", paid=True, amount=10000, starts_in=timedelta(days=4, hours=12)
    )

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=auth_headers(renter)
    )

    assert response.status_code == 200
    assert calls[0]["amount"] == 5000
    stored = await fetch_booking(session_maker, booking.id)
    assert stored.payment_intent.metadata_["refundPercentage"] == 50


@pytest.mark.asyncio
async def test_late_cancellation_issues_no_refund(
    client, session_maker, make_booking, renter, monkeypatch
):
    calls = stub_refund(monkeypatch)
    booking = await make_booking(status="APPROVED", paid=True, starts_in=timedelta(days=1))

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=auth_headers(renter)
    )

    assert response.status_code == 200
    assert calls == []
    stored = await fetch_booking(session_maker, booking.id)
    assert stored.status == "CANCELLED"
    assert stored.payment_intent.status == "SUCCEEDED"


@pytest.mark.asyncio
async def test_refund_failure_does_not_block_cancellation(
    client, session_maker, make_booking, owner, renter, monkeypatch
):
    stub_refund(monkeypatch, error=RuntimeError("card network unavailable"))
    booking = await make_booking(status="APPROVED", paid=True)

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=auth_headers(renter)
    )

    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"

    stored = await fetch_booking(session_maker, booking.id)
    assert stored.status == "CANCELLED"
    assert stored.payment_intent.status == "SUCCEEDED"
    assert "refundId" not in (stored.payment_intent.metadata_ or {})

    assert [n.type for n in await fetch_notifications(session_maker, renter.id)] == []
    renter_activities = await fetch_activities(session_maker, renter.id)
    assert renter_activities[0].description == "Cancelled booking for Sunny Corner Plot"


@pytest.mark.asyncio
async def test_declined_refund_does_not_block_cancellation(
    client, session_maker, make_booking, renter, monkeypatch
):
    stub_refund(monkeypatch, result=RefundResult(success=False, error_message="charge disputed"))
    booking = await make_booking(status="APPROVED", paid=True)

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=auth_headers(renter)
    )

    assert response.status_code == 200
    stored = await fetch_booking(session_maker, booking.id)
    assert stored.payment_intent.status == "SUCCEEDED"


@pytest.mark.asyncio
async def test_refund_notification_failure_is_swallowed(
    client, session_maker, make_booking, renter, monkeypatch
):
    stub_refund(monkeypatch)

    async def _fail(*args, **kwargs):
        raise RuntimeError("mail server down")

    monkeypatch.setattr(notification_service, "notify_refund_processed", _fail)
    booking = await make_booking(status="APPROVED", paid=True)

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=auth_headers(renter)
    )

    assert response.status_code == 200
    stored = await fetch_booking(session_maker, booking.id)
    assert stored.payment_intent.status == "REFUNDED"


@pytest.mark.asyncio
async def test_refund_survives_failing_activity_write(
    client, session_maker, make_booking, owner, renter, monkeypatch
):
    calls = stub_refund(monkeypatch)
    record_activity = activity_service.record_activity

    async def _record(db, user_id, **kwargs):
        if user_id == renter.id:
            raise RuntimeError("activity table locked")
        return await record_activity(db, user_id=user_id, **kwargs)

    monkeypatch.setattr(activity_service, "record_activity", _record)
    booking = await make_booking(status="APPROVED", paid=True)

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "CANCELLED"}, headers=auth_headers(renter)
    )

    assert response.status_code == 200
    assert response.json()["payment_intent"]["status"] == "REFUNDED"

    stored = await fetch_booking(session_maker, booking.id)
    assert stored.status == "CANCELLED"
    assert stored.payment_intent.status == "REFUNDED"
    assert stored.payment_intent.metadata_["refundId"] == "re_test_1"
    assert await fetch_activities(session_maker, renter.id) == []
    assert len(await fetch_activities(session_maker, owner.id)) == 1

    retry = await client.post(
        "/api/payments/refund", json={"booking_id": str(booking.id)}, headers=auth_headers(renter)
    )

    assert retry.status_code == 400
    assert retry.json()["detail"] == "This booking has already been refunded"
    assert [call["amount"] for call in calls] == [10000]


@pytest.mark.asyncio
async def test_approval_survives_failing_points_write(
    client, session_maker, make_booking, owner, renter, monkeypatch
):
    async def _fail(*args, **kwargs):
        raise RuntimeError("points ledger unavailable")

    monkeypatch.setattr(activity_service, "award_points", _fail)
    booking = await make_booking()

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "APPROVED"}, headers=auth_headers(owner)
    )

    assert response.status_code == 200
    assert (await fetch_booking(session_maker, booking.id)).status == "APPROVED"
    assert (await fetch_user(session_maker, owner.id)).total_points == 0
    assert await fetch_activities(session_maker, owner.id) == []
    assert len(await fetch_notifications(session_maker, renter.id)) == 1


# ==================== INPUT, IDENTITY, ERRORS ====================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"json": {}},
        {"json": {"status": None}},
        {"json": {"status": "ACTIVE"}},
        {"json": {"status": "approved"}},
        {"json": []},
        {},
    ],
    ids=["empty-object", "null", "unknown", "lowercase", "array", "no-body"],
)
async def test_invalid_status_value(client, make_booking, owner, body):
    booking = await make_booking()

    response = await client.patch(f"/api/bookings/{booking.id}", headers=auth_headers(owner), **body)

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid status. Must be APPROVED, REJECTED, or CANCELLED"


@pytest.mark.asyncio
async def test_unknown_booking(client, owner):
    response = await client.patch(
        f"/api/bookings/{uuid.uuid4()}", json={"status": "APPROVED"}, headers=auth_headers(owner)
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_missing_token(client, make_booking):
    booking = await make_booking()
    response = await client.patch(f"/api/bookings/{booking.id}", json={"status": "APPROVED"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token(client, make_booking):
    booking = await make_booking()
    response = await client.patch(
        f"/api/bookings/{booking.id}",
        json={"status": "APPROVED"},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_without_user_record(client, make_booking):
    booking = await make_booking()
    stranger = make_user("Ghost")  # never persisted

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "APPROVED"}, headers=auth_headers(stranger)
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


@pytest.mark.asyncio
async def test_unexpected_error_is_not_leaked(client, make_booking, owner, monkeypatch):
    async def _explode(*args, **kwargs):
        raise RuntimeError("database password is hunter2")

    monkeypatch.setattr(booking_service, "update_booking_status", _explode)
    booking = await make_booking()

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "APPROVED"}, headers=auth_headers(owner)
    )

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


@pytest.mark.asyncio
async def test_second_owner_of_other_plot_cannot_approve(client, session_maker, make_booking):
    other_owner = await add(session_maker, make_user("Petra", "Planter", stripe_onboarding_complete=True))
    booking = await make_booking()

    response = await client.patch(
        f"/api/bookings/{booking.id}", json={"status": "APPROVED"}, headers=auth_headers(other_owner)
    )

    assert response.status_code == 403

"""Notification Service for in-app notifications and email.

Handles the notification channels:
- In-app notifications (database)
- Email (SendGrid)
"""

import html
import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from growshare.config import settings
from growshare.models.notification import Notification
from growshare.models.user import User

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for sending notifications across all channels."""

    # Notification types
    BOOKING_REQUEST = "BOOKING_REQUEST"
    BOOKING_APPROVED = "BOOKING_APPROVED"
    BOOKING_REJECTED = "BOOKING_REJECTED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    REFUND_PROCESSED = "REFUND_PROCESSED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"

    RENTER_BOOKINGS_LINK = "/my-bookings"
    OWNER_BOOKINGS_LINK = "/manage-bookings"

    def __init__(self) -> None:
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    # ==================== IN-APP NOTIFICATIONS ====================

    async def create_notification(
        self,
        db: AsyncSession,
        user_id: UUID,
        title: str,
        content: str,
        notification_type: str,
        link: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Notification:
        """Create an in-app notification.

        Args:
            db: Database session
            user_id: User to notify
            title: Notification title
            content: Notification body text
            notification_type: Type of notification
            link: Optional in-app link
            metadata: Related record ids

        Returns:
            Notification: Created notification
        """
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            content=content,
            link=link,
            metadata_=metadata,
        )
        db.add(notification)
        await db.flush()
        return notification

    # ==================== EMAIL (SENDGRID) ====================

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> bool:
        """Send an email via SendGrid.

        Returns:
            bool: True if sent successfully
        """
        if not settings.sendgrid_api_key:
            return False

        headers = {
            "Authorization": f"Bearer {settings.sendgrid_api_key}",
            "Content-Type": "application/json",
        }
        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {
                "email": settings.email_from_address,
                "name": settings.email_from_name,
            },
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
        }
        if text_content:
            payload["content"].insert(0, {"type": "text/plain", "value": text_content})

        try:
            response = await self.http_client.post(
                "https://api.sendgrid.com/v3/mail/send",
                headers=headers,
                json=payload,
            )
        except httpx.HTTPError as e:
            logger.warning(f"SendGrid request failed for {to_email}: {e}")
            return False

        if response.status_code not in (200, 202):
            logger.warning(f"SendGrid rejected email to {to_email}: {response.status_code}")
            return False
        return True

    def _generate_email_html(self, title: str, body: str, link: str | None) -> str:
        """Generate simple HTML email content."""
        button_html = ""
        if link:
            url = f"{settings.app_base_url.rstrip('/')}{link}"
            button_html = f"""
            <p style="margin-top: 24px;">
                <a href="{html.escape(url)}"
                   style="background-color: #15803d; color: white; padding: 12px 24px;
                          text-decoration: none; border-radius: 6px; display: inline-block;">
                    View Details
                </a>
            </p>
            """

        return f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="utf-8"></head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
                     max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">
            <div style="background-color: #f7fee7; border-radius: 8px; padding: 24px;">
                <h1 style="color: #14532d; font-size: 24px; margin-bottom: 16px;">{html.escape(title)}</h1>
                <p style="color: #4b5563; font-size: 16px; line-height: 1.6;">{html.escape(body)}</p>
                {button_html}
            </div>
            <p style="color: #9ca3af; font-size: 12px; margin-top: 24px; text-align: center;">
                &copy; {datetime.now(UTC).year} {html.escape(settings.app_name)}
            </p>
        </body>
        </html>
        """

    # ==================== HIGH-LEVEL NOTIFICATION METHODS ====================

    async def notify_user(
        self,
        db: AsyncSession,
        user_id: UUID,
        title: str,
        content: str,
        notification_type: str,
        link: str | None = None,
        metadata: dict[str, Any] | None = None,
        send_email: bool = True,
    ) -> Notification | None:
        """Record an in-app notification and email it when possible.

        Returns None when the user no longer exists.
        """
        user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
        if not user:
            logger.warning(f"Notification '{notification_type}' skipped: user {user_id} not found")
            return None

        notification = await self.create_notification(
            db=db,
            user_id=user_id,
            title=title,
            content=content,
            notification_type=notification_type,
            link=link,
            metadata=metadata,
        )

        if send_email and user.email:
            notification.email_sent = await self.send_email(
                to_email=user.email,
                subject=title,
                html_content=self._generate_email_html(title, content, link),
                text_content=content,
            )

        return notification

    # ==================== BOOKING NOTIFICATION HELPERS ====================

    async def notify_booking_request(
        self,
        db: AsyncSession,
        owner_id: UUID,
        plot_title: str,
        renter_name: str,
        booking_id: UUID,
    ) -> Notification | None:
        return await self.notify_user(
            db,
            user_id=owner_id,
            title="New Booking Request",
            content=f'{renter_name} has requested to book your plot "{plot_title}"',
            notification_type=self.BOOKING_REQUEST,
            link=self.OWNER_BOOKINGS_LINK,
            metadata={"bookingId": str(booking_id)},
        )

    async def notify_booking_approved(
        self,
        db: AsyncSession,
        renter_id: UUID,
        plot_title: str,
        booking_id: UUID,
    ) -> Notification | None:
        return await self.notify_user(
            db,
            user_id=renter_id,
            title="Booking Approved",
            content=f'Your booking request for "{plot_title}" has been approved!',
            notification_type=self.BOOKING_APPROVED,
            link=self.RENTER_BOOKINGS_LINK,
            metadata={"bookingId": str(booking_id)},
        )

    async def notify_booking_rejected(
        self,
        db: AsyncSession,
        renter_id: UUID,
        plot_title: str,
        booking_id: UUID,
    ) -> Notification | None:
        return await self.notify_user(
            db,
            user_id=renter_id,
            title="Booking Declined",
            content=f'Your booking request for "{plot_title}" has been declined.',
            notification_type=self.BOOKING_REJECTED,
            link=self.RENTER_BOOKINGS_LINK,
            metadata={"bookingId": str(booking_id)},
        )

    async def notify_booking_cancelled(
        self,
        db: AsyncSession,
        user_id: UUID,
        plot_title: str,
        booking_id: UUID,
        cancelled_by: str,
        link: str = RENTER_BOOKINGS_LINK,
    ) -> Notification | None:
        return await self.notify_user(
            db,
            user_id=user_id,
            title="Booking Cancelled",
            content=f'The booking for "{plot_title}" has been cancelled by {cancelled_by}.',
            notification_type=self.BOOKING_CANCELLED,
            link=link,
            metadata={"bookingId": str(booking_id)},
        )

    async def notify_refund_processed(
        self,
        db: AsyncSession,
        renter_id: UUID,
        plot_title: str,
        booking_id: UUID,
        refund_amount: int,
        refund_percentage: int,
    ) -> Notification | None:
        """Tell the renter about a cancellation refund. ``refund_amount`` is in cents."""
        return await self.notify_user(
            db,
            user_id=renter_id,
            title="Refund Processed",
            content=(
                f'A {refund_percentage}% refund of ${refund_amount / 100:.2f} for "{plot_title}" '
                "has been issued to your original payment method."
            ),
            notification_type=self.REFUND_PROCESSED,
            link=self.RENTER_BOOKINGS_LINK,
            metadata={
                "bookingId": str(booking_id),
                "refundAmount": refund_amount,
                "refundPercentage": refund_percentage,
            },
        )

    async def notify_payment_received(
        self,
        db: AsyncSession,
        owner_id: UUID,
        plot_title: str,
        booking_id: UUID,
        amount: int,
    ) -> Notification | None:
        """Tell the owner a renter has paid. ``amount`` is in cents."""
        return await self.notify_user(
            db,
            user_id=owner_id,
            title="Payment Received",
            content=f'Payment of ${amount / 100:.2f} received for your plot "{plot_title}".',
            notification_type=self.PAYMENT_RECEIVED,
            link=self.OWNER_BOOKINGS_LINK,
            metadata={"bookingId": str(booking_id), "amount": amount},
        )


# Singleton instance
notification_service = NotificationService()

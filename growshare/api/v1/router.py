"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from growshare.api.v1 import activity, bookings, notifications, payments, webhooks

api_router = APIRouter()

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Payments
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])

# Notifications
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])

# Activity
api_router.include_router(activity.router, prefix="/activity", tags=["Activity"])

# Webhooks
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])

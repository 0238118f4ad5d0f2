"""Notification vocabulary shared by channels and templates."""

from enum import Enum


class NotificationChannel(Enum):
    EMAIL = "Email"


class NotificationType(Enum):
    OWNER_ORDER_ALERT = "OwnerOrderAlert"
    ORDER_CONFIRMATION = "OrderConfirmation"

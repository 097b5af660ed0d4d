"""
Job alerts, notifications and outbound delivery channels.
"""

from .channels import (
    CHANNEL_TYPES,
    DeliveryError,
    DiscordChannel,
    NotificationChannel,
    SlackChannel,
    WebhookChannel,
    build_channel,
)
from .notification_store import NotificationStore
from .alert_engine import AlertEngine

__all__ = [
    "CHANNEL_TYPES",
    "DeliveryError",
    "DiscordChannel",
    "NotificationChannel",
    "SlackChannel",
    "WebhookChannel",
    "build_channel",
    "NotificationStore",
    "AlertEngine",
]

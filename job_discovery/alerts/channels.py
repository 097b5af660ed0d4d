"""
Outbound delivery of job-alert notifications to webhooks, Discord and Slack.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Awaitable, Callable, Optional
import asyncio
import logging

import requests

from job_discovery.core.models import Notification


class DeliveryError(Exception):
    """A channel gave up delivering a notification."""


class NotificationChannel(ABC):
    """Posts notifications as JSON to an HTTP endpoint."""

    def __init__(
        self,
        url: str,
        headers: Optional[dict] = None,
        max_retries: int = 3,
        timeout: float = 10,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Args:
            url: Endpoint receiving the JSON payload
            headers: Extra request headers
            max_retries: Attempts per notification
            timeout: Per-request timeout in seconds
            base_delay: Wait before the second attempt; doubles after each failure
            max_delay: Upper bound on a single wait
            sleep: Async sleep used between attempts
        """
        self.url = url
        self.headers = headers or {}
        self.max_retries = max_retries
        self.timeout = timeout
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep or asyncio.sleep
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def build_payload(self, notification: Notification) -> dict:
        pass

    async def send(self, notification: Notification) -> None:
        """
        Deliver one notification, retrying failed attempts.

        Raises:
            DeliveryError: if every attempt failed
        """
        payload = self.build_payload(notification)
        last_error = None

        for attempt in range(1, self.max_retries + 1):
            try:
                await asyncio.to_thread(self._post, payload)
                return
            except requests.RequestException as e:
                last_error = e
                if attempt < self.max_retries:
                    delay = min(self.base_delay * 2 ** (attempt - 1), self.max_delay)
                    self.logger.warning(f"{self.name} attempt {attempt} failed, retrying in {delay:.1f}s: {e}")
                    await self._sleep(delay)

        raise DeliveryError(f"{self.name} delivery failed after {self.max_retries} attempts: {last_error}")

    def _post(self, payload: dict) -> None:
        response = requests.post(
            self.url,
            json=payload,
            headers={"Content-Type": "application/json", **self.headers},
            timeout=self.timeout,
        )
        response.raise_for_status()


class WebhookChannel(NotificationChannel):
    """Generic webhook receiving the full notification."""

    @property
    def name(self) -> str:
        return "webhook"

    def build_payload(self, notification: Notification) -> dict:
        return {
            "type": notification.type.value,
            "notification": notification.to_dict(),
            "timestamp": datetime.now().isoformat(),
        }


class DiscordChannel(NotificationChannel):
    """Discord incoming webhook; one embed per job (max 5)."""

    @property
    def name(self) -> str:
        return "discord"

    def build_payload(self, notification: Notification) -> dict:
        embeds = []
        for job in notification.jobs[:5]:
            embed = {
                "title": f"New Gaming Job: {job.title}",
                "description": job.description[:200],
                "fields": [
                    {"name": "Company", "value": job.company or "Unknown", "inline": True},
                    {"name": "Location", "value": job.location or "N/A", "inline": True},
                    {"name": "Salary", "value": job.salary or "N/A", "inline": True},
                ],
            }
            if job.apply_url and job.apply_url.startswith("http"):
                embed["url"] = job.apply_url
            embeds.append(embed)
        return {"content": notification.title, "embeds": embeds}


class SlackChannel(NotificationChannel):
    """Slack incoming webhook with one attachment per job (max 5)."""

    @property
    def name(self) -> str:
        return "slack"

    def build_payload(self, notification: Notification) -> dict:
        return {
            "text": f"{notification.title}: {notification.message}",
            "attachments": [
                {
                    "color": "good",
                    "title": job.title,
                    "title_link": job.apply_url,
                    "fields": [
                        {"title": "Company", "value": job.company, "short": True},
                        {"title": "Location", "value": job.location, "short": True},
                    ],
                    "footer": "Gaming Jobs Alert",
                }
                for job in notification.jobs[:5]
            ],
        }


CHANNEL_TYPES = {
    "webhook": WebhookChannel,
    "discord": DiscordChannel,
    "slack": SlackChannel,
}


def build_channel(config: dict) -> NotificationChannel:
    """
    Create a channel from a config entry.

    Args:
        config: e.g. {"type": "discord", "url": "https://discord.com/api/webhooks/..."}

    Returns:
        Configured channel
    """
    channel_type = config.get("type", "webhook").lower()
    if channel_type not in CHANNEL_TYPES:
        raise ValueError(f"Unknown channel type: {channel_type}")

    url = config.get("url") or config.get("webhook_url")
    if not url:
        raise ValueError(f"Channel '{channel_type}' requires a url")

    return CHANNEL_TYPES[channel_type](
        url=url,
        headers=config.get("headers"),
        max_retries=int(config.get("max_retries", 3)),
        base_delay=float(config.get("retry_delay", 1.0)),
    )

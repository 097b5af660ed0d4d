"""
Notification Store - Capped, newest-first log of alert notifications.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Optional, Union
import logging

from job_discovery.core.models import (
    Job,
    Notification,
    NotificationPriority,
    NotificationType,
)
from job_discovery.utils.config import deep_merge
from job_discovery.utils.ids import UuidGenerator
from job_discovery.utils.storage import KeyValueStore


class NotificationStore:
    """Holds notifications with read flags, filters, stats and a daily digest."""

    STORAGE_KEY = "notifications"
    PREFERENCES_KEY = "notification_preferences"

    DEFAULT_PREFERENCES = {
        "email_notifications": True,
        "push_notifications": True,
        "daily_digest": True,
        "instant_alerts": False,
        "max_notifications_per_day": 10,
    }

    def __init__(
        self,
        store: KeyValueStore,
        id_generator: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        max_stored: int = 100,
    ):
        """
        Initialize the notification store.

        Args:
            store: Key-value store used for persistence
            id_generator: Callable producing notification ids
            clock: Callable returning the current time
            max_stored: Retention cap; the oldest notifications are evicted
        """
        self.store = store
        self._new_id = id_generator if id_generator is not None else UuidGenerator("notif_")
        self._now = clock or datetime.now
        self.max_stored = max_stored
        self.notifications: list[Notification] = []
        self.preferences = dict(self.DEFAULT_PREFERENCES)
        self.logger = logging.getLogger(self.__class__.__name__)

    async def load(self) -> None:
        raw = await self.store.get(self.STORAGE_KEY, []) or []
        self.notifications = [Notification.from_dict(n) for n in raw][:self.max_stored]
        self.preferences = deep_merge(self.DEFAULT_PREFERENCES, await self.store.get(self.PREFERENCES_KEY, {}) or {})

    async def _persist(self) -> None:
        await self.store.set(self.STORAGE_KEY, [n.to_dict() for n in self.notifications])

    async def add(self, notification: Notification) -> Notification:
        """
        Insert at the front and evict beyond the retention cap.

        If the write fails the in-memory list is restored and the error
        is re-raised.
        """
        previous = list(self.notifications)
        self.notifications.insert(0, notification)
        del self.notifications[self.max_stored:]
        try:
            await self._persist()
        except Exception:
            self.notifications = previous
            raise
        return notification

    async def create(
        self,
        type: NotificationType,
        title: str,
        message: str,
        alert_id: Optional[str] = None,
        jobs: Optional[list[Job]] = None,
        total_jobs_found: int = 0,
        priority: NotificationPriority = NotificationPriority.LOW,
        actions: Optional[list[dict]] = None,
    ) -> Notification:
        notification = Notification(
            id=self._new_id(),
            type=type,
            title=title,
            message=message,
            alert_id=alert_id,
            jobs=list(jobs or []),
            total_jobs_found=total_jobs_found,
            priority=priority,
            created=self._now(),
            read=False,
            actions=list(actions or []),
        )
        return await self.add(notification)

    def get_notifications(
        self,
        unread_only: bool = False,
        type: Union[str, NotificationType, None] = None,
        priority: Union[str, NotificationPriority, None] = None,
        limit: Optional[int] = None,
    ) -> list[Notification]:
        """
        Notifications, newest first.

        Args:
            unread_only: Only unread notifications
            type: Filter by notification type
            priority: Filter by priority
            limit: Maximum number returned
        """
        results = self.notifications

        if unread_only:
            results = [n for n in results if not n.read]
        if type is not None:
            wanted_type = NotificationType(type) if isinstance(type, str) else type
            results = [n for n in results if n.type == wanted_type]
        if priority is not None:
            wanted_priority = NotificationPriority(priority) if isinstance(priority, str) else priority
            results = [n for n in results if n.priority == wanted_priority]

        results = list(results)
        return results[:limit] if limit else results

    def get(self, notification_id: str) -> Optional[Notification]:
        for notification in self.notifications:
            if notification.id == notification_id:
                return notification
        return None

    async def mark_as_read(self, notification_id: str) -> bool:
        notification = self.get(notification_id)
        if notification is None:
            return False
        notification.read = True
        await self._persist()
        return True

    async def mark_all_as_read(self) -> int:
        unread = [n for n in self.notifications if not n.read]
        for notification in unread:
            notification.read = True
        if unread:
            await self._persist()
        return len(unread)

    async def delete(self, notification_id: str) -> bool:
        notification = self.get(notification_id)
        if notification is None:
            return False
        self.notifications.remove(notification)
        await self._persist()
        return True

    async def clear_all(self) -> int:
        """Remove every notification; returns how many were removed."""
        removed = len(self.notifications)
        self.notifications = []
        await self._persist()
        self.logger.info(f"Cleared {removed} notifications")
        return removed

    def get_unread_count(self) -> int:
        return len([n for n in self.notifications if not n.read])

    def get_stats(self) -> dict:
        today = self._now().date()
        return {
            "total": len(self.notifications),
            "unread": self.get_unread_count(),
            "today": len([n for n in self.notifications if n.created.date() == today]),
            "high_priority": len([n for n in self.notifications if n.priority == NotificationPriority.HIGH]),
            "by_type": dict(Counter(n.type.value for n in self.notifications)),
        }

    async def update_preferences(self, changes: dict) -> dict:
        self.preferences = deep_merge(self.preferences, changes)
        await self.store.set(self.PREFERENCES_KEY, self.preferences)
        return self.preferences

    def generate_daily_digest(self) -> dict:
        """
        Summarize the last 24 hours of job-alert notifications.

        Works only from stored notifications; no sources are queried.

        Returns:
            Digest dict; ``has_content`` is False when nothing was found
        """
        now = self._now()
        cutoff = now - timedelta(hours=24)
        recent = [
            n for n in self.notifications
            if n.type == NotificationType.JOB_ALERT and n.created >= cutoff
        ]

        if not recent:
            return {
                "has_content": False,
                "message": "No new job alerts in the last 24 hours.",
            }

        jobs: list[Job] = []
        seen = set()
        for notification in recent:
            for job in notification.jobs:
                if job.id not in seen:
                    seen.add(job.id)
                    jobs.append(job)

        top_alerts = sorted(recent, key=lambda n: n.total_jobs_found, reverse=True)[:3]
        companies = Counter(job.company for job in jobs if job.company)
        locations = Counter(job.location for job in jobs if job.location)
        highlights = sorted(
            [job for job in jobs if job.relevance_score > 70],
            key=lambda j: j.relevance_score,
            reverse=True,
        )[:5]

        return {
            "has_content": True,
            "generated": now.isoformat(),
            "summary": {
                "total_jobs": sum(n.total_jobs_found for n in recent),
                "alerts_triggered": len(recent),
                "period": "24 hours",
            },
            "top_alerts": [
                {"alert_id": n.alert_id, "title": n.title, "jobs_found": n.total_jobs_found}
                for n in top_alerts
            ],
            "top_companies": [{"company": c, "count": n} for c, n in companies.most_common(5)],
            "top_locations": [{"location": loc, "count": n} for loc, n in locations.most_common(5)],
            "job_highlights": [
                {
                    "id": job.id,
                    "title": job.title,
                    "company": job.company,
                    "location": job.location,
                    "relevance_score": job.relevance_score,
                    "apply_url": job.apply_url,
                }
                for job in highlights
            ],
        }

"""
Alert Engine - Saved searches re-run on a schedule with duplicate suppression.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional
import asyncio
import logging

from job_discovery.core.errors import AlertCheckError, AlertNotFoundError, ValidationError
from job_discovery.core.models import (
    Alert,
    AlertFilters,
    AlertFrequency,
    Job,
    Notification,
    NotificationPriority,
    NotificationType,
)
from job_discovery.core.normalizer import salary_value
from job_discovery.integrations.aggregator import JobAggregator
from job_discovery.utils.ids import UuidGenerator
from job_discovery.utils.storage import KeyValueStore

from .channels import DeliveryError, NotificationChannel
from .notification_store import NotificationStore


class AlertEngine:
    """Owns alert definitions and turns new matching jobs into notifications."""

    STORAGE_KEY = "job_alerts"
    PENDING_KEY = "pending_deliveries"

    # Instant alerts still wait 5 minutes between checks
    MIN_INTERVALS = {
        AlertFrequency.INSTANT: timedelta(minutes=5),
        AlertFrequency.HOURLY: timedelta(hours=1),
        AlertFrequency.DAILY: timedelta(hours=24),
        AlertFrequency.WEEKLY: timedelta(days=7),
    }

    MAX_JOBS_PER_NOTIFICATION = 5

    def __init__(
        self,
        aggregator: JobAggregator,
        store: KeyValueStore,
        notifications: NotificationStore,
        id_generator: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        channels: tuple = (),
        notified_cap: int = 1000,
    ):
        """
        Initialize the alert engine.

        Args:
            aggregator: Shared search aggregator (and its cache)
            store: Key-value store for alerts and notified-id sets
            notifications: Where produced notifications are stored
            id_generator: Callable producing alert ids
            clock: Callable returning the current time
            channels: Outbound delivery channels for job-alert notifications
            notified_cap: Per-alert number of remembered job ids
        """
        self.aggregator = aggregator
        self.store = store
        self.notifications = notifications
        self._new_id = id_generator if id_generator is not None else UuidGenerator("alert_")
        self._now = clock or datetime.now
        self.channels: list[NotificationChannel] = list(channels)
        self.notified_cap = notified_cap

        self.alerts: dict[str, Alert] = {}
        self._notified: dict[str, list[str]] = {}
        self._task: Optional[asyncio.Task] = None
        self.logger = logging.getLogger(self.__class__.__name__)

    async def load(self) -> None:
        raw = await self.store.get(self.STORAGE_KEY, []) or []
        self.alerts = {}
        for data in raw:
            alert = Alert.from_dict(data)
            self.alerts[alert.id] = alert
        self.logger.debug(f"Loaded {len(self.alerts)} alerts")

    async def _persist_alerts(self) -> None:
        await self.store.set(self.STORAGE_KEY, [a.to_dict() for a in self.alerts.values()])

    def _require(self, alert_id: str) -> Alert:
        alert = self.alerts.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    # ------------------------------------------------------------------
    # Alert management
    # ------------------------------------------------------------------

    async def create_alert(self, config: dict) -> Alert:
        """
        Create and persist a new alert.

        Args:
            config: name, query, location, filters, frequency, is_active

        Returns:
            The stored alert
        """
        frequency = config.get("frequency", AlertFrequency.DAILY)
        try:
            frequency = AlertFrequency(frequency)
        except ValueError:
            raise ValidationError(f"Invalid alert frequency: {frequency}")

        filters = config.get("filters") or {}
        if isinstance(filters, dict):
            filters = AlertFilters.from_dict(filters)

        now = self._now()
        alert = Alert(
            id=self._new_id(),
            name=config.get("name") or "New Job Alert",
            query=config.get("query", ""),
            location=config.get("location", ""),
            filters=filters,
            frequency=frequency,
            is_active=config.get("is_active", True),
            created=now,
            last_modified=now,
        )

        self.alerts[alert.id] = alert
        await self._persist_alerts()
        self.logger.info(f"Created alert '{alert.name}' ({alert.id})")
        return alert

    async def update_alert(self, alert_id: str, changes: dict) -> Alert:
        alert = self._require(alert_id)

        for key, value in changes.items():
            if key in ("id", "created"):
                continue
            if key == "filters":
                merged = {**alert.filters.to_dict(), **(value or {})}
                alert.filters = AlertFilters.from_dict(merged)
            elif key == "frequency":
                try:
                    alert.frequency = AlertFrequency(value)
                except ValueError:
                    raise ValidationError(f"Invalid alert frequency: {value}")
            elif hasattr(alert, key):
                setattr(alert, key, value)

        alert.last_modified = self._now()
        await self._persist_alerts()
        return alert

    async def delete_alert(self, alert_id: str) -> None:
        self._require(alert_id)
        del self.alerts[alert_id]
        self._notified.pop(alert_id, None)
        await self._persist_alerts()
        await self.store.remove(self._notified_key(alert_id))
        self.logger.info(f"Deleted alert {alert_id}")

    async def toggle_alert(self, alert_id: str) -> Alert:
        alert = self._require(alert_id)
        alert.is_active = not alert.is_active
        alert.last_modified = self._now()
        await self._persist_alerts()
        return alert

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        return self.alerts.get(alert_id)

    def get_alerts(self) -> list[Alert]:
        return list(self.alerts.values())

    def get_active_alerts(self) -> list[Alert]:
        return [a for a in self.alerts.values() if a.is_active]

    # ------------------------------------------------------------------
    # Checking
    # ------------------------------------------------------------------

    def should_check(self, alert: Alert) -> bool:
        """True once the alert's minimum interval has elapsed."""
        if alert.last_triggered is None:
            return True
        return self._now() - alert.last_triggered >= self.MIN_INTERVALS[alert.frequency]

    async def check_alerts(self) -> list[Notification]:
        """
        Run every due active alert once.

        A failing alert is reported as an error notification and does not
        stop the remaining alerts from being checked.

        Returns:
            Notifications produced by this pass (job alerts and errors)
        """
        produced = []

        for alert in self.get_active_alerts():
            if not self.should_check(alert):
                continue

            try:
                notification = await self._check_alert(alert)
            except Exception as e:
                error = e if isinstance(e, AlertCheckError) else AlertCheckError(alert.id, str(e))
                self.logger.error(f"Error checking alert {alert.id}: {error}")
                notification = await self._report_error(alert, error)

            if notification is not None:
                produced.append(notification)

        return produced

    async def _report_error(self, alert: Alert, error: AlertCheckError) -> Optional[Notification]:
        try:
            return await self.notifications.create(
                type=NotificationType.ERROR,
                title=f"Alert Error: {alert.name}",
                message=f"Failed to check alert: {error}",
                alert_id=alert.id,
                priority=NotificationPriority.LOW,
            )
        except Exception as e:
            self.logger.error(f"Could not record error for alert {alert.id}: {e}")
            return None

    async def _check_alert(self, alert: Alert) -> Optional[Notification]:
        jobs = await self.aggregator.search(alert.query, alert.to_criteria())
        jobs = self._apply_alert_filters(jobs, alert.filters)

        notified = await self._load_notified(alert.id)
        known = set(notified)
        new_jobs = [job for job in jobs if job.id not in known]

        alert.last_triggered = self._now()

        if not new_jobs:
            await self._persist_alerts()
            self.logger.debug(f"No new jobs for alert {alert.id}")
            return None

        notification = await self.notifications.create(
            type=NotificationType.JOB_ALERT,
            title=f"New Jobs Found: {alert.name}",
            message=f"Found {len(new_jobs)} new job(s) matching your alert criteria",
            alert_id=alert.id,
            jobs=[replace(job) for job in new_jobs[:self.MAX_JOBS_PER_NOTIFICATION]],
            total_jobs_found=len(new_jobs),
            priority=self._calculate_priority(new_jobs),
            actions=[
                {"type": "view_jobs", "label": "View Jobs", "alert_id": alert.id},
                {"type": "edit_alert", "label": "Edit Alert", "alert_id": alert.id},
            ],
        )
        await self._remember(alert.id, [job.id for job in new_jobs])

        alert.total_matches += len(new_jobs)
        alert.successful_notifications += 1
        await self._persist_alerts()

        self.logger.info(f"Alert '{alert.name}' found {len(new_jobs)} new jobs")
        await self._deliver(notification)
        return notification

    async def test_alert(self, alert_id: str) -> Notification:
        """
        Run one alert now and send the result through every channel.

        The alert's schedule, counters and notified ids are left untouched,
        so the matches shown here are still notified by the next real check.

        Returns:
            The stored test notification
        """
        alert = self._require(alert_id)

        jobs = await self.aggregator.search(alert.query, alert.to_criteria())
        jobs = self._apply_alert_filters(jobs, alert.filters)

        notification = await self.notifications.create(
            type=NotificationType.JOB_ALERT,
            title=f"Test Alert: {alert.name}",
            message=f"{len(jobs)} job(s) currently match this alert",
            alert_id=alert.id,
            jobs=[replace(job) for job in jobs[:self.MAX_JOBS_PER_NOTIFICATION]],
            total_jobs_found=len(jobs),
            priority=self._calculate_priority(jobs) if jobs else NotificationPriority.LOW,
        )

        self.logger.info(f"Test run of alert '{alert.name}' matched {len(jobs)} jobs")
        await self._deliver(notification)
        return notification

    def _apply_alert_filters(self, jobs: list[Job], filters: AlertFilters) -> list[Job]:
        filtered = jobs

        if filters.companies:
            allowed = [c.lower() for c in filters.companies]
            filtered = [j for j in filtered if any(c in j.company.lower() for c in allowed)]

        if filters.excluded_companies:
            excluded = [c.lower() for c in filters.excluded_companies]
            filtered = [j for j in filtered if not any(c in j.company.lower() for c in excluded)]

        if filters.keywords:
            keywords = [k.lower() for k in filters.keywords]
            filtered = [
                j for j in filtered
                if any(k in f"{j.title} {j.description}".lower() for k in keywords)
            ]

        if filters.excluded_keywords:
            excluded_words = [k.lower() for k in filters.excluded_keywords]
            filtered = [
                j for j in filtered
                if not any(k in f"{j.title} {j.description}".lower() for k in excluded_words)
            ]

        if filters.gaming_relevance:
            filtered = [j for j in filtered if j.relevance_score >= filters.gaming_relevance]

        return filtered

    def _calculate_priority(self, jobs: list[Job]) -> NotificationPriority:
        def is_remote(job: Job) -> bool:
            return job.remote or job.parsed_location.remote

        high_value = any(
            job.relevance_score > 80
            or job.quality_score > 80
            or (is_remote(job) and salary_value(job.parsed_salary) > 100000)
            for job in jobs
        )
        if high_value:
            return NotificationPriority.HIGH

        if (
            len(jobs) > 10
            or any(is_remote(job) for job in jobs)
            or any(salary_value(job.parsed_salary) > 100000 for job in jobs)
        ):
            return NotificationPriority.MEDIUM

        return NotificationPriority.LOW

    async def _deliver(self, notification: Notification) -> None:
        failed = []
        for channel in self.channels:
            try:
                await channel.send(notification)
            except DeliveryError as e:
                self.logger.warning(f"Notification {notification.id} not delivered, queued for retry: {e}")
                failed.append(channel)

        if failed:
            pending = await self.store.get(self.PENDING_KEY, []) or []
            pending.extend(
                {"channel": channel.name, "url": channel.url, "notification": notification.to_dict()}
                for channel in failed
            )
            await self.store.set(self.PENDING_KEY, pending)

    def _find_channel(self, name: str, url: str) -> Optional[NotificationChannel]:
        for channel in self.channels:
            if channel.name == name and channel.url == url:
                return channel
        return None

    async def get_pending_deliveries(self) -> list[dict]:
        return await self.store.get(self.PENDING_KEY, []) or []

    async def flush_pending(self) -> int:
        """
        Retry queued deliveries once each.

        Entries that fail again stay queued. Entries whose channel is no
        longer configured are dropped.

        Returns:
            Number of deliveries that succeeded
        """
        pending = await self.get_pending_deliveries()
        if not pending:
            return 0

        remaining = []
        delivered = 0
        for entry in pending:
            channel = self._find_channel(entry.get("channel", ""), entry.get("url", ""))
            if channel is None:
                self.logger.warning(f"Dropping queued delivery for unknown channel {entry.get('channel')}")
                continue
            try:
                await channel.send(Notification.from_dict(entry["notification"]))
                delivered += 1
            except DeliveryError as e:
                self.logger.warning(f"Retry failed, re-queueing: {e}")
                remaining.append(entry)

        await self.store.set(self.PENDING_KEY, remaining)
        if delivered:
            self.logger.info(f"Delivered {delivered} queued notifications ({len(remaining)} still pending)")
        return delivered

    # ------------------------------------------------------------------
    # Notified-id sets
    # ------------------------------------------------------------------

    @staticmethod
    def _notified_key(alert_id: str) -> str:
        return f"notified_{alert_id}"

    async def _load_notified(self, alert_id: str) -> list[str]:
        if alert_id not in self._notified:
            stored = await self.store.get(self._notified_key(alert_id), []) or []
            self._notified[alert_id] = list(stored)
        return self._notified[alert_id]

    async def _remember(self, alert_id: str, job_ids: list[str]) -> None:
        """Append ids and evict the oldest beyond the cap."""
        notified = await self._load_notified(alert_id)
        notified.extend(job_ids)
        overflow = len(notified) - self.notified_cap
        if overflow > 0:
            del notified[:overflow]
        await self.store.set(self._notified_key(alert_id), list(notified))

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def start(self, interval_minutes: float = 15) -> asyncio.Task:
        """Start polling in the running event loop."""
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.create_task(self._run(interval_minutes * 60))
        self.logger.info(f"Alert polling started (every {interval_minutes} min)")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self.logger.info("Alert polling stopped")

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self, interval_seconds: float) -> None:
        while True:
            try:
                notifications = await self.check_alerts()
                if notifications:
                    self.logger.info(f"Alert check produced {len(notifications)} notifications")
                await self.flush_pending()
            except Exception as e:
                self.logger.error(f"Alert check pass failed: {e}")
            await asyncio.sleep(interval_seconds)

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def export_config(self) -> dict:
        return {
            "version": "1.0",
            "exported": self._now().isoformat(),
            "alerts": [
                {
                    "name": a.name,
                    "query": a.query,
                    "location": a.location,
                    "filters": a.filters.to_dict(),
                    "frequency": a.frequency.value,
                    "is_active": a.is_active,
                }
                for a in self.alerts.values()
            ],
        }

    async def import_config(self, data: dict) -> list[Alert]:
        """Create alerts from an export; every imported alert gets a new id."""
        if not isinstance(data, dict) or not isinstance(data.get("alerts"), list):
            raise ValidationError("Invalid alert configuration format")

        imported = []
        for entry in data["alerts"]:
            imported.append(await self.create_alert(entry))
        return imported

    def get_stats(self) -> dict:
        alerts = list(self.alerts.values())
        return {
            "total_alerts": len(alerts),
            "active_alerts": len([a for a in alerts if a.is_active]),
            "total_matches": sum(a.total_matches for a in alerts),
            "successful_notifications": sum(a.successful_notifications for a in alerts),
            "polling": self.is_running,
        }

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeAdapter, FakeClock, make_aggregator, make_job

from job_discovery.alerts import AlertEngine, DeliveryError, NotificationChannel, NotificationStore
from job_discovery.core.errors import AlertNotFoundError, ValidationError
from job_discovery.core.models import AlertFrequency, NotificationPriority, NotificationType
from job_discovery.utils.cache import SearchCache
from job_discovery.utils.ids import SequentialIdGenerator
from job_discovery.utils.storage import MemoryStore


class RecordingChannel(NotificationChannel):
    def __init__(self, fail: bool = False, url: str = "https://hooks.example.com/test") -> None:
        super().__init__(url)
        self.fail = fail
        self.sent = []

    @property
    def name(self) -> str:
        return "recording"

    def build_payload(self, notification) -> dict:
        return {}

    async def send(self, notification) -> None:
        if self.fail:
            raise DeliveryError("endpoint unreachable")
        self.sent.append(notification)


class BrokenAggregator:
    """Aggregator whose search raises for one query."""

    def __init__(self, inner) -> None:
        self.inner = inner

    async def search(self, query, criteria=None):
        if query == "broken":
            raise RuntimeError("index unavailable")
        return await self.inner.search(query, criteria)


def make_engine(clock: FakeClock, adapter: FakeAdapter, **kwargs):
    store = kwargs.pop("store", MemoryStore())
    aggregator = kwargs.pop("aggregator", None) or make_aggregator(
        [adapter], cache=SearchCache(ttl_seconds=0), clock=clock
    )
    notifications = NotificationStore(store, id_generator=SequentialIdGenerator("notif_"), clock=clock)
    engine = AlertEngine(
        aggregator,
        store,
        notifications,
        id_generator=SequentialIdGenerator("alert_"),
        clock=clock,
        **kwargs,
    )
    return engine, notifications, store


def test_second_check_with_no_new_jobs_notifies_nothing(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job("j1", title="Unity Dev"), make_job("j2", title="Level Designer")])
    engine, notifications, _ = make_engine(clock, adapter)

    async def scenario():
        await engine.create_alert({"name": "Unity", "query": "unity", "frequency": "hourly"})
        first = await engine.check_alerts()
        clock.advance(hours=1)
        second = await engine.check_alerts()
        return first, second

    first, second = asyncio.run(scenario())

    assert len(first) == 1
    assert first[0].type == NotificationType.JOB_ALERT
    assert first[0].title == "New Jobs Found: Unity"
    assert first[0].message == "Found 2 new job(s) matching your alert criteria"
    assert first[0].total_jobs_found == 2
    assert second == []
    assert adapter.calls == 2
    assert len(notifications.get_notifications()) == 1

    alert = engine.get_alert("alert_1")
    assert alert.total_matches == 2
    assert alert.successful_notifications == 1
    assert alert.last_triggered == clock.now


def test_only_new_jobs_are_notified(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job("j1", title="Unity Dev")])
    engine, _, _ = make_engine(clock, adapter)

    async def scenario():
        await engine.create_alert({"query": "unity", "frequency": "instant"})
        await engine.check_alerts()
        adapter.jobs.append(make_job("j2", title="Unreal Dev"))
        clock.advance(minutes=5)
        return await engine.check_alerts()

    produced = asyncio.run(scenario())

    assert len(produced) == 1
    assert [j.id for j in produced[0].jobs] == ["j2"]


def test_frequency_gates_checks(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job("j1")])
    engine, _, _ = make_engine(clock, adapter)

    async def scenario():
        await engine.create_alert({"query": "game", "frequency": "instant"})
        await engine.check_alerts()
        clock.advance(minutes=4)
        await engine.check_alerts()
        calls_before = adapter.calls
        clock.advance(minutes=1)
        await engine.check_alerts()
        return calls_before

    calls_before = asyncio.run(scenario())

    assert calls_before == 1
    assert adapter.calls == 2


@pytest.mark.parametrize("frequency,interval_hours", [
    ("hourly", 1),
    ("daily", 24),
    ("weekly", 24 * 7),
])
def test_should_check_respects_minimum_interval(clock: FakeClock, frequency, interval_hours) -> None:
    engine, _, _ = make_engine(clock, FakeAdapter("alpha"))
    alert = asyncio.run(engine.create_alert({"query": "x", "frequency": frequency}))

    assert engine.should_check(alert) is True

    alert.last_triggered = clock.now
    clock.advance(hours=interval_hours, seconds=-1)
    assert engine.should_check(alert) is False

    clock.advance(seconds=1)
    assert engine.should_check(alert) is True


def test_evicted_job_id_is_notified_again(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job(f"j{i}", title=f"Job {i}") for i in range(1, 4)])
    engine, _, store = make_engine(clock, adapter, notified_cap=3)

    async def scenario():
        await engine.create_alert({"query": "job", "frequency": "instant"})
        await engine.check_alerts()

        adapter.jobs = [make_job("j4", title="Job 4")]
        clock.advance(minutes=5)
        await engine.check_alerts()
        remembered = await store.get("notified_alert_1")

        adapter.jobs = [make_job("j1", title="Job 1")]
        clock.advance(minutes=5)
        renotified = await engine.check_alerts()
        return remembered, renotified

    remembered, renotified = asyncio.run(scenario())

    assert remembered == ["j2", "j3", "j4"]
    assert len(renotified) == 1
    assert [j.id for j in renotified[0].jobs] == ["j1"]


def test_notified_ids_persist_across_engines(clock: FakeClock) -> None:
    store = MemoryStore()
    adapter = FakeAdapter("alpha", [make_job("j1")])
    engine, _, _ = make_engine(clock, adapter, store=store)

    async def scenario():
        await engine.create_alert({"query": "game", "frequency": "hourly"})
        await engine.check_alerts()

        clock.advance(hours=1)
        restarted, _, _ = make_engine(clock, adapter, store=store)
        await restarted.load()
        return await restarted.check_alerts()

    assert asyncio.run(scenario()) == []


def test_failing_alert_becomes_error_notification(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job("j1")])
    aggregator = BrokenAggregator(make_aggregator([adapter], cache=SearchCache(ttl_seconds=0), clock=clock))
    engine, notifications, _ = make_engine(clock, adapter, aggregator=aggregator)

    async def scenario():
        await engine.create_alert({"name": "Broken", "query": "broken"})
        await engine.create_alert({"name": "Healthy", "query": "game"})
        return await engine.check_alerts()

    produced = asyncio.run(scenario())

    assert [n.type for n in produced] == [NotificationType.ERROR, NotificationType.JOB_ALERT]
    error = produced[0]
    assert error.priority == NotificationPriority.LOW
    assert error.message.startswith("Failed to check alert:")
    assert "index unavailable" in error.message
    assert error.alert_id == "alert_1"
    assert notifications.get_notifications(type="error") == [error]


def test_alert_post_filters(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [
        make_job("riot", title="Unity Dev", company="Riot Games", relevance=80),
        make_job("spam", title="Unity Dev MLM", company="Crypto Games", relevance=80),
        make_job("low", title="Unity Artist", company="Riot Games", relevance=20),
        make_job("other", title="Unity Dev", company="Bank Corp", relevance=80),
    ])
    engine, _, _ = make_engine(clock, adapter)

    async def scenario():
        await engine.create_alert({
            "query": "unity",
            "filters": {
                "companies": ["games"],
                "excluded_keywords": ["mlm"],
                "gaming_relevance": 50,
            },
        })
        return await engine.check_alerts()

    produced = asyncio.run(scenario())

    assert [j.id for j in produced[0].jobs] == ["riot"]


def test_excluded_companies_and_keywords(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [
        make_job("a", title="Gameplay Engineer", company="Good Studio", description="Unity C#"),
        make_job("b", title="Gameplay Engineer", company="Bad Studio", description="Unity C#"),
        make_job("c", title="Producer", company="Good Studio", description="Scheduling"),
    ])
    engine, _, _ = make_engine(clock, adapter)

    async def scenario():
        await engine.create_alert({
            "query": "engineer",
            "filters": {"excluded_companies": ["bad"], "keywords": ["unity"]},
        })
        return await engine.check_alerts()

    produced = asyncio.run(scenario())

    assert [j.id for j in produced[0].jobs] == ["a"]


def test_notification_priority(clock: FakeClock) -> None:
    engine, _, _ = make_engine(clock, FakeAdapter("alpha"))

    high = [make_job("a", relevance=85, quality=40, location="Austin, TX")]
    remote_rich = [make_job("b", relevance=40, quality=40, location="Remote", salary="$120,000")]
    medium = [make_job("c", relevance=40, quality=40, location="Remote")]
    many = [make_job(f"d{i}", relevance=40, quality=40, location="Austin, TX") for i in range(11)]
    low = [make_job("e", relevance=40, quality=40, location="Austin, TX")]

    assert engine._calculate_priority(high) == NotificationPriority.HIGH
    assert engine._calculate_priority(remote_rich) == NotificationPriority.HIGH
    assert engine._calculate_priority(medium) == NotificationPriority.MEDIUM
    assert engine._calculate_priority(many) == NotificationPriority.MEDIUM
    assert engine._calculate_priority(low) == NotificationPriority.LOW


def test_notification_caps_jobs_at_five(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job(f"j{i}", title=f"Job {i}") for i in range(8)])
    engine, _, _ = make_engine(clock, adapter)

    async def scenario():
        await engine.create_alert({"query": "job"})
        return await engine.check_alerts()

    produced = asyncio.run(scenario())

    assert len(produced[0].jobs) == 5
    assert produced[0].total_jobs_found == 8


def test_update_alert_merges_filters(clock: FakeClock) -> None:
    engine, _, _ = make_engine(clock, FakeAdapter("alpha"))

    async def scenario():
        alert = await engine.create_alert({"query": "unity", "filters": {"companies": ["Riot"]}})
        clock.advance(minutes=10)
        return alert, await engine.update_alert(alert.id, {
            "id": "hijack",
            "created": None,
            "name": "Renamed",
            "filters": {"remote": True},
            "frequency": "weekly",
        })

    original, updated = asyncio.run(scenario())

    assert updated.id == original.id == "alert_1"
    assert updated.name == "Renamed"
    assert updated.filters.companies == ["Riot"]
    assert updated.filters.remote is True
    assert updated.frequency == AlertFrequency.WEEKLY
    assert updated.last_modified == clock.now
    assert updated.created != clock.now


def test_unknown_alert_ids_raise(clock: FakeClock) -> None:
    engine, _, _ = make_engine(clock, FakeAdapter("alpha"))

    with pytest.raises(AlertNotFoundError):
        asyncio.run(engine.update_alert("missing", {"name": "x"}))
    with pytest.raises(AlertNotFoundError):
        asyncio.run(engine.delete_alert("missing"))
    with pytest.raises(AlertNotFoundError):
        asyncio.run(engine.toggle_alert("missing"))


def test_invalid_frequency_is_rejected(clock: FakeClock) -> None:
    engine, _, _ = make_engine(clock, FakeAdapter("alpha"))

    with pytest.raises(ValidationError):
        asyncio.run(engine.create_alert({"query": "x", "frequency": "every-second"}))


def test_paused_alerts_are_skipped(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job("j1")])
    engine, _, _ = make_engine(clock, adapter)

    async def scenario():
        alert = await engine.create_alert({"query": "game"})
        await engine.toggle_alert(alert.id)
        return await engine.check_alerts()

    assert asyncio.run(scenario()) == []
    assert adapter.calls == 0
    assert engine.get_active_alerts() == []


def test_delete_alert_forgets_notified_ids(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job("j1")])
    engine, _, store = make_engine(clock, adapter)

    async def scenario():
        alert = await engine.create_alert({"query": "game"})
        await engine.check_alerts()
        await engine.delete_alert(alert.id)
        return await store.get("notified_alert_1")

    assert asyncio.run(scenario()) is None
    assert engine.get_alerts() == []


def test_delivery_failures_do_not_abort_check(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job("j1")])
    failing = RecordingChannel(fail=True)
    recording = RecordingChannel()
    engine, _, _ = make_engine(clock, adapter, channels=(failing, recording))

    async def scenario():
        await engine.create_alert({"query": "game"})
        return await engine.check_alerts()

    produced = asyncio.run(scenario())

    assert len(produced) == 1
    assert recording.sent == produced


def test_export_and_import_regenerate_ids(clock: FakeClock) -> None:
    engine, _, _ = make_engine(clock, FakeAdapter("alpha"))

    async def scenario():
        await engine.create_alert({"name": "Unity", "query": "unity", "filters": {"remote": True}})
        exported = engine.export_config()
        imported = await engine.import_config(exported)
        return exported, imported

    exported, imported = asyncio.run(scenario())

    assert exported["version"] == "1.0"
    assert [a.id for a in imported] == ["alert_2"]
    assert imported[0].filters.remote is True
    assert len(engine.get_alerts()) == 2


def test_import_rejects_bad_format(clock: FakeClock) -> None:
    engine, _, _ = make_engine(clock, FakeAdapter("alpha"))

    with pytest.raises(ValidationError):
        asyncio.run(engine.import_config({"alerts": "nope"}))


def test_polling_task_runs_checks_until_stopped(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job("j1")])
    engine, _, _ = make_engine(clock, adapter)

    async def scenario():
        await engine.create_alert({"query": "game"})
        engine.start(interval_minutes=60)
        for _ in range(20):
            if adapter.calls:
                break
            await asyncio.sleep(0.01)
        running = engine.is_running
        await engine.stop()
        return running

    assert asyncio.run(scenario()) is True
    assert adapter.calls == 1
    assert engine.is_running is False


class NotificationWriteFailure(MemoryStore):
    """Store that cannot write the notification list."""

    def __init__(self) -> None:
        super().__init__()
        self.broken = True

    async def set(self, key: str, value) -> None:
        if self.broken and key == NotificationStore.STORAGE_KEY:
            raise OSError("disk full")
        await super().set(key, value)


def test_notification_write_failure_does_not_lose_jobs(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job("j1", title="Unity Dev"), make_job("j2", title="Level Designer")])
    store = NotificationWriteFailure()
    engine, notifications, _ = make_engine(clock, adapter, store=store)

    async def scenario():
        await engine.create_alert({"name": "First", "query": "game"})
        await engine.create_alert({"name": "Second", "query": "game"})
        failed_pass = await engine.check_alerts()
        remembered = await store.get("notified_alert_1", [])
        second_checked = engine.get_alert("alert_2").last_triggered

        store.broken = False
        clock.advance(days=1)
        return failed_pass, remembered, second_checked, await engine.check_alerts()

    failed_pass, remembered, second_checked, recovered = asyncio.run(scenario())

    assert failed_pass == []
    assert remembered == []
    assert second_checked is not None
    assert [n.alert_id for n in recovered] == ["alert_1", "alert_2"]
    assert all(n.total_jobs_found == 2 for n in recovered)


def test_polling_survives_a_failing_pass(clock: FakeClock) -> None:
    engine, _, _ = make_engine(clock, FakeAdapter("alpha"))
    passes = []

    async def flaky_check():
        passes.append(len(passes))
        if len(passes) == 1:
            raise RuntimeError("store offline")
        return []

    engine.check_alerts = flaky_check

    async def scenario():
        engine.start(interval_minutes=0)
        for _ in range(50):
            if len(passes) >= 3:
                break
            await asyncio.sleep(0)
        running = engine.is_running
        await engine.stop()
        return running

    assert asyncio.run(scenario()) is True
    assert len(passes) >= 3


def test_failed_deliveries_are_queued_and_flushed(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job("j1")])
    flaky = RecordingChannel(fail=True, url="https://hooks.example.com/flaky")
    steady = RecordingChannel()
    engine, _, store = make_engine(clock, adapter, channels=(flaky, steady))

    async def scenario():
        await engine.create_alert({"query": "game"})
        produced = await engine.check_alerts()
        queued = await engine.get_pending_deliveries()
        still_failing = await engine.flush_pending()

        flaky.fail = False
        delivered = await engine.flush_pending()
        return produced, queued, still_failing, delivered, await engine.get_pending_deliveries()

    produced, queued, still_failing, delivered, remaining = asyncio.run(scenario())

    assert steady.sent == produced
    assert [(e["channel"], e["url"]) for e in queued] == [("recording", "https://hooks.example.com/flaky")]
    assert still_failing == 0
    assert delivered == 1
    assert [n.id for n in flaky.sent] == [produced[0].id]
    assert flaky.sent[0].jobs[0].id == "j1"
    assert remaining == []


def test_queued_delivery_for_removed_channel_is_dropped(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job("j1")])
    store = MemoryStore()
    engine, _, _ = make_engine(clock, adapter, store=store, channels=(RecordingChannel(fail=True),))

    async def scenario():
        await engine.create_alert({"query": "game"})
        await engine.check_alerts()
        reconfigured, _, _ = make_engine(clock, adapter, store=store)
        delivered = await reconfigured.flush_pending()
        return delivered, await reconfigured.get_pending_deliveries()

    assert asyncio.run(scenario()) == (0, [])


def test_test_alert_sends_current_matches_without_marking_them(clock: FakeClock) -> None:
    adapter = FakeAdapter("alpha", [make_job("j1", title="Unity Dev"), make_job("j2", title="Level Designer")])
    channel = RecordingChannel()
    engine, notifications, _ = make_engine(clock, adapter, channels=(channel,))

    async def scenario():
        alert = await engine.create_alert({"name": "Unity", "query": "game", "frequency": "weekly"})
        preview = await engine.test_alert(alert.id)
        state = (alert.last_triggered, alert.total_matches)
        produced = await engine.check_alerts()
        return preview, state, produced

    preview, state, produced = asyncio.run(scenario())

    assert preview.title == "Test Alert: Unity"
    assert preview.total_jobs_found == 2
    assert channel.sent == [preview, produced[0]]
    assert state == (None, 0)
    assert {j.id for j in produced[0].jobs} == {"j1", "j2"}
    assert notifications.get(preview.id) is preview


def test_test_alert_unknown_id_raises(clock: FakeClock) -> None:
    engine, _, _ = make_engine(clock, FakeAdapter("alpha"))

    with pytest.raises(AlertNotFoundError):
        asyncio.run(engine.test_alert("missing"))

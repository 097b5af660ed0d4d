"""
Job Discovery CLI - Command line interface for the gaming job discovery engine.

Usage:
    python -m job_discovery [command] [options]

Commands:
    search          Search all job sources
    match           Score jobs against your profile
    recommend       Recommended gaming jobs (personalized with --profile)
    track           Save jobs and track application status
    alerts          Manage and check job alerts
    notifications   View notifications and the daily digest
    config          Manage configuration

Examples:
    python -m job_discovery search "unity developer" --remote --sort salary
    python -m job_discovery match --profile profile.json --search "game designer"
    python -m job_discovery track --update greenhouse-riotgames-123 --new-status interview_scheduled
    python -m job_discovery alerts --create "Unity roles" --query unity --frequency daily
    python -m job_discovery notifications --digest
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Optional

from job_discovery.alerts import AlertEngine, NotificationStore, build_channel
from job_discovery.core import ApplicationStatus, Job, Scorer, SearchCriteria, SortMode, UserProfile
from job_discovery.integrations import (
    ArbeitnowAdapter,
    GreenhouseAdapter,
    JobAggregator,
    LeverAdapter,
    RemoteOKAdapter,
)
from job_discovery.tracker import ApplicationTracker
from job_discovery.utils import Config, HostThrottle, JsonFileStore, SearchCache


LOG_LEVEL_ENV = "JOB_DISCOVERY_LOG_LEVEL"


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Job Discovery - Gaming industry job search, matching and alerts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", "-c", help="Path to config file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Search command
    search_parser = subparsers.add_parser("search", help="Search for jobs")
    search_parser.add_argument("query", nargs="?", default="", help="Search query")
    search_parser.add_argument("--location", "-l", default="", help="Location filter")
    search_parser.add_argument("--remote", action="store_true", help="Remote jobs only")
    search_parser.add_argument("--limit", "-n", type=int, help="Max results")
    search_parser.add_argument("--sources", help="Comma-separated list of sources")
    search_parser.add_argument("--sort", choices=[m.value for m in SortMode], default="relevance")
    search_parser.add_argument("--min-salary", type=int, default=0, help="Minimum salary")
    search_parser.add_argument("--max-salary", type=int, default=200000, help="Maximum salary")
    search_parser.add_argument("--level", choices=["entry", "mid", "senior", "executive"], help="Experience level")
    search_parser.add_argument("--type", dest="job_type", help="Job type (full-time, contract, ...)")
    search_parser.add_argument("--industry", default="", help="Industry filter")
    search_parser.add_argument("--output", "-o", help="Output file (JSON)")

    # Match command
    match_parser = subparsers.add_parser("match", help="Match profile against jobs")
    match_parser.add_argument("--profile", "-p", required=True, help="Path to profile file (JSON)")
    match_parser.add_argument("--jobs", "-j", help="Path to jobs file (JSON)")
    match_parser.add_argument("--search", "-s", help="Search query for jobs")
    match_parser.add_argument("--top", "-t", type=int, default=10, help="Show top N matches")

    # Recommend command
    recommend_parser = subparsers.add_parser("recommend", help="Recommended jobs")
    recommend_parser.add_argument("--profile", "-p", help="Path to profile file (JSON)")
    recommend_parser.add_argument("--limit", "-n", type=int, default=10, help="Max recommendations")

    # Track command
    track_parser = subparsers.add_parser("track", help="Track applications")
    track_parser.add_argument("--list", "-l", action="store_true", help="List all applications")
    track_parser.add_argument("--status", "-s", help="Filter by status")
    track_parser.add_argument("--save", help="Job ID to save")
    track_parser.add_argument("--apply", help="Job ID to mark as applied")
    track_parser.add_argument("--platform", default="unknown", help="Platform applied through")
    track_parser.add_argument("--update", "-u", help="Job ID to update")
    track_parser.add_argument("--new-status", help="New status for update")
    track_parser.add_argument("--notes", default="", help="Notes for the update")
    track_parser.add_argument("--saved", action="store_true", help="List saved jobs")
    track_parser.add_argument("--stats", action="store_true", help="Show statistics")

    # Alerts command
    alerts_parser = subparsers.add_parser("alerts", help="Manage job alerts")
    alerts_parser.add_argument("--list", "-l", action="store_true", help="List alerts")
    alerts_parser.add_argument("--create", metavar="NAME", help="Create an alert")
    alerts_parser.add_argument("--query", "-q", default="", help="Query for a new alert")
    alerts_parser.add_argument("--location", default="", help="Location for a new alert")
    alerts_parser.add_argument("--remote", action="store_true", help="Remote-only alert")
    alerts_parser.add_argument("--frequency", "-f", choices=["instant", "hourly", "daily", "weekly"], default="daily")
    alerts_parser.add_argument("--delete", metavar="ALERT_ID", help="Delete an alert")
    alerts_parser.add_argument("--toggle", metavar="ALERT_ID", help="Activate/deactivate an alert")
    alerts_parser.add_argument("--check", action="store_true", help="Check due alerts now")
    alerts_parser.add_argument("--test", metavar="ALERT_ID", help="Run one alert now and send it to the channels")
    alerts_parser.add_argument("--flush", action="store_true", help="Retry queued channel deliveries")
    alerts_parser.add_argument("--watch", action="store_true", help="Poll alerts until interrupted")
    alerts_parser.add_argument("--export", metavar="FILE", help="Export alerts to a JSON file")
    alerts_parser.add_argument("--import", dest="import_file", metavar="FILE", help="Import alerts from a JSON file")

    # Notifications command
    notif_parser = subparsers.add_parser("notifications", help="View notifications")
    notif_parser.add_argument("--unread", action="store_true", help="Only unread notifications")
    notif_parser.add_argument("--priority", choices=["high", "medium", "low"], help="Filter by priority")
    notif_parser.add_argument("--limit", "-n", type=int, default=20, help="Max notifications shown")
    notif_parser.add_argument("--read", metavar="ID", help="Mark a notification as read")
    notif_parser.add_argument("--read-all", action="store_true", help="Mark all notifications as read")
    notif_parser.add_argument("--digest", action="store_true", help="Show the daily digest")
    notif_parser.add_argument("--stats", action="store_true", help="Show notification statistics")
    notif_parser.add_argument("--clear", action="store_true", help="Delete all notifications")

    # Config command
    config_parser = subparsers.add_parser("config", help="Manage configuration")
    config_parser.add_argument("--show", action="store_true", help="Show current config")
    config_parser.add_argument("--set", nargs=2, metavar=("KEY", "VALUE"), help="Set a config value")
    config_parser.add_argument("--set-api-key", nargs=2, metavar=("PROVIDER", "KEY"), help="Set API key")
    config_parser.add_argument("--init", action="store_true", help="Initialize default config")

    # Parse arguments
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose)

    # Load configuration
    config = Config(args.config)

    # Execute command
    try:
        if args.command == "search":
            asyncio.run(cmd_search(args, config))
        elif args.command == "match":
            asyncio.run(cmd_match(args, config))
        elif args.command == "recommend":
            asyncio.run(cmd_recommend(args, config))
        elif args.command == "track":
            asyncio.run(cmd_track(args, config))
        elif args.command == "alerts":
            asyncio.run(cmd_alerts(args, config))
        elif args.command == "notifications":
            asyncio.run(cmd_notifications(args, config))
        elif args.command == "config":
            cmd_config(args, config)
        else:
            parser.print_help()

    except KeyboardInterrupt:
        print("\n\nOperation cancelled.")
        sys.exit(1)
    except Exception as e:
        print(f"\nError: {e}")
        sys.exit(1)


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging from --verbose or the environment."""
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, os.environ.get(LOG_LEVEL_ENV, "WARNING").upper(), logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ----------------------------------------------------------------------
# Service wiring
# ----------------------------------------------------------------------

def build_aggregator(config: Config, scorer: Optional[Scorer] = None) -> JobAggregator:
    """Aggregator over the enabled sources, sharing one host throttle."""
    settings = config.get_search_settings()
    scorer = scorer if scorer is not None else Scorer()
    throttle = HostThrottle(min_interval=float(config.get("sources.min_request_interval", 1.0)))
    common = {
        "throttle": throttle,
        "scorer": scorer,
        "timeout": settings["request_timeout"],
    }

    factories = {
        "arbeitnow": lambda: ArbeitnowAdapter(api_key=config.get_api_key("arbeitnow") or None, **common),
        "remoteok": lambda: RemoteOKAdapter(api_key=config.get_api_key("remoteok") or None, **common),
        "greenhouse": lambda: GreenhouseAdapter(boards=config.get("sources.greenhouse_boards"), **common),
        "lever": lambda: LeverAdapter(companies=config.get("sources.lever_companies"), **common),
    }

    adapters = []
    for key in config.get_enabled_sources():
        factory = factories.get(key.lower())
        if factory is None:
            logging.getLogger(__name__).warning(f"Unknown source in config: {key}")
            continue
        adapters.append(factory())

    return JobAggregator(
        adapters=adapters,
        scorer=scorer,
        cache=SearchCache(ttl_seconds=settings["cache_ttl_seconds"]),
        max_concurrency=settings["max_concurrency"],
        request_timeout=settings["request_timeout"],
        history_limit=settings["history_limit"],
    )


async def build_tracker(config: Config) -> ApplicationTracker:
    tracker = ApplicationTracker(JsonFileStore(config.get_data_dir()))
    await tracker.load()
    return tracker


async def build_notifications(config: Config) -> NotificationStore:
    notifications = NotificationStore(
        JsonFileStore(config.get_data_dir()),
        max_stored=int(config.get("notifications.max_stored", 100)),
    )
    await notifications.load()
    return notifications


async def build_alert_engine(config: Config) -> AlertEngine:
    store = JsonFileStore(config.get_data_dir())
    channels = [build_channel(c) for c in config.get("notifications.channels", [])]
    engine = AlertEngine(
        aggregator=build_aggregator(config),
        store=store,
        notifications=await build_notifications(config),
        channels=channels,
        notified_cap=int(config.get("alerts.notified_cap", 1000)),
    )
    await engine.load()
    return engine


def load_profile(path: str) -> UserProfile:
    with open(path, 'r') as f:
        return UserProfile.from_dict(json.load(f))


def load_jobs(path: str) -> list[Job]:
    with open(path, 'r') as f:
        data = json.load(f)
    return [Job.from_dict(j) for j in data]


def print_job(index: int, job: Job) -> None:
    print(f"{index:2}. {job.title}")
    print(f"    {job.company} | {job.location} | {job.salary or 'Salary not listed'}")
    print(f"    Relevance: {job.relevance_score:.0f} | Quality: {job.quality_score:.0f} | Competition: {job.competition_level}")
    print(f"    Source: {job.source} | Posted: {job.posted_at} | ID: {job.id}")
    print()


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------

async def cmd_search(args, config: Config):
    """Execute search command."""
    print(f"🔍 Searching for '{args.query or 'gaming jobs'}'...")

    aggregator = build_aggregator(config)

    sources = None
    if args.sources:
        sources = tuple(s.strip().lower() for s in args.sources.split(",") if s.strip())

    criteria = SearchCriteria(
        location=args.location,
        remote=args.remote,
        salary_min=args.min_salary,
        salary_max=args.max_salary,
        experience_level=args.level,
        job_type=args.job_type,
        industry=args.industry,
        sources=sources,
        max_results=args.limit or int(config.get("search.default_max_results", 50)),
        sort_by=SortMode(args.sort),
    )

    jobs = await aggregator.search(args.query, criteria)

    print(f"\n✅ Found {len(jobs)} jobs\n")

    for i, job in enumerate(jobs[:20], 1):
        print_job(i, job)

    if args.output:
        with open(args.output, 'w') as f:
            json.dump([job.to_dict() for job in jobs], f, indent=2, default=str)
        print(f"💾 Saved {len(jobs)} jobs to {args.output}")


async def cmd_match(args, config: Config):
    """Execute match command."""
    print("🎯 Matching profile against jobs...")

    profile = load_profile(args.profile)
    print(f"   Skills: {len(profile.skills)} | Experience: {profile.experience.years} years ({profile.experience.level})")

    aggregator = build_aggregator(config)

    if args.jobs:
        jobs = load_jobs(args.jobs)
    elif args.search:
        jobs = await aggregator.search(args.search)
    else:
        print("Error: Provide --jobs file or --search query")
        return

    print(f"   Jobs to match: {len(jobs)}")

    scored = [(job, aggregator.calculate_job_match_score(job, profile)) for job in jobs]
    scored.sort(key=lambda pair: pair[1].total_score, reverse=True)

    print(f"\n📊 Top {args.top} Matches:\n")
    print("-" * 80)

    for i, (job, match) in enumerate(scored[:args.top], 1):
        print(f"\n{i}. {job.title} @ {job.company}")
        print(f"   Location: {job.location}")
        print(f"   📈 Match: {match.total_score:.0f}% ({match.confidence_level} confidence)")
        print(f"   💡 {match.recommendation}")
        print(f"   🚦 Priority: {aggregator.scorer.application_priority(job, match)} | Competition: {job.competition_level}")
        for factor in match.factors:
            print(f"      {factor.category}: {factor.score:.0f} - {factor.details}")


async def cmd_recommend(args, config: Config):
    """Execute recommend command."""
    aggregator = build_aggregator(config)

    if args.profile:
        profile = load_profile(args.profile)
        print("🎮 Finding personalized recommendations...")
        jobs = await aggregator.get_personalized_recommendations(profile, limit=args.limit)
    else:
        print("🎮 Finding recommended gaming jobs...")
        jobs = (await aggregator.get_recommendations())[:args.limit]

    print(f"\n✅ {len(jobs)} recommendations\n")
    for i, job in enumerate(jobs, 1):
        print_job(i, job)
        if job.match:
            print(f"    Match: {job.match.total_score:.0f}% - {job.match.recommendation}\n")


async def cmd_track(args, config: Config):
    """Execute track command."""
    tracker = await build_tracker(config)

    if args.save:
        if await tracker.save_job(args.save):
            print(f"✅ Saved {args.save}")
        else:
            print(f"Already applied to {args.save}")

    elif args.apply:
        application = await tracker.track_application(args.apply, platform=args.platform, notes=args.notes)
        print(f"✅ Tracking application to {application.job_id} ({application.status.value})")

    elif args.update:
        if not args.new_status:
            print("Error: --new-status is required with --update")
            return
        application = await tracker.update_application_status(args.update, args.new_status, notes=args.notes)
        print(f"✅ Updated {application.job_id} to {application.status.value}")

    elif args.saved:
        saved = tracker.get_saved_jobs()
        print(f"\n📌 Saved Jobs ({len(saved)})\n")
        for entry in saved:
            job = entry.get("job") or {}
            print(f"  {entry['job_id']}: {job.get('title', '?')} @ {job.get('company', '?')}")

    elif args.stats:
        stats = tracker.get_statistics()
        print("\n📊 Application Statistics\n")
        print(f"Total applications: {stats['total']}")
        print(f"Saved jobs: {stats['saved_jobs']}")
        print(f"Interviews: {stats['total_interviews']} | Offers: {stats['total_offers']} | Rejections: {stats['total_rejections']}")
        print(f"Response rate: {stats['response_rate']}%")
        print(f"Interview rate: {stats['interview_rate']}%")
        print(f"Success rate: {stats['success_rate']}%")
        print(f"Average response time: {stats['average_response_time']} days")
        if stats["by_status"]:
            print("\nBy status:")
            for status, count in sorted(stats["by_status"].items()):
                print(f"  {status}: {count}")

    else:
        applications = tracker.get_applied_jobs(args.status)
        print(f"\n📋 Applications ({len(applications)})\n")
        for app in applications:
            title = app.job.title if app.job else app.job_id
            print(f"  [{app.status.value}] {title} | applied {app.applied_at:%Y-%m-%d} via {app.platform}")
        if not applications:
            print("No applications found.")
            print(f"   Valid statuses: {', '.join(s.value for s in ApplicationStatus)}")


async def cmd_alerts(args, config: Config):
    """Execute alerts command."""
    engine = await build_alert_engine(config)

    if args.create:
        alert = await engine.create_alert({
            "name": args.create,
            "query": args.query,
            "location": args.location,
            "frequency": args.frequency,
            "filters": {"remote": True} if args.remote else {},
        })
        print(f"✅ Created alert {alert.id}: {alert.name} ({alert.frequency.value})")

    elif args.delete:
        await engine.delete_alert(args.delete)
        print(f"🗑  Deleted alert {args.delete}")

    elif args.toggle:
        alert = await engine.toggle_alert(args.toggle)
        print(f"✅ Alert {alert.id} is now {'active' if alert.is_active else 'paused'}")

    elif args.check:
        print("🔔 Checking alerts...")
        notifications = await engine.check_alerts()
        print(f"\n✅ {len(notifications)} new notifications")
        for notification in notifications:
            print(f"  [{notification.priority.value}] {notification.title}: {notification.message}")

    elif args.test:
        notification = await engine.test_alert(args.test)
        print(f"🧪 {notification.title}: {notification.message}")
        for job in notification.jobs:
            print(f"  • {job.title} @ {job.company}")

    elif args.flush:
        delivered = await engine.flush_pending()
        remaining = len(await engine.get_pending_deliveries())
        print(f"📤 Delivered {delivered} queued notifications ({remaining} still pending)")

    elif args.watch:
        interval = float(config.get("alerts.poll_interval_minutes", 15))
        print(f"🔔 Watching alerts every {interval:g} minutes (Ctrl+C to stop)")
        task = engine.start(interval_minutes=interval)
        try:
            await task
        finally:
            await engine.stop()

    elif args.export:
        with open(args.export, 'w') as f:
            json.dump(engine.export_config(), f, indent=2)
        print(f"💾 Exported {len(engine.get_alerts())} alerts to {args.export}")

    elif args.import_file:
        with open(args.import_file, 'r') as f:
            imported = await engine.import_config(json.load(f))
        print(f"✅ Imported {len(imported)} alerts")

    else:
        alerts = engine.get_alerts()
        print(f"\n🔔 Job Alerts ({len(alerts)})\n")
        for alert in alerts:
            state = "active" if alert.is_active else "paused"
            last = f"{alert.last_triggered:%Y-%m-%d %H:%M}" if alert.last_triggered else "never"
            print(f"  {alert.id}: {alert.name} [{state}, {alert.frequency.value}]")
            print(f"    Query: '{alert.query}' | Matches: {alert.total_matches} | Last checked: {last}")


async def cmd_notifications(args, config: Config):
    """Execute notifications command."""
    notifications = await build_notifications(config)

    if args.read:
        if await notifications.mark_as_read(args.read):
            print(f"✅ Marked {args.read} as read")
        else:
            print(f"Notification not found: {args.read}")

    elif args.read_all:
        count = await notifications.mark_all_as_read()
        print(f"✅ Marked {count} notifications as read")

    elif args.digest:
        digest = notifications.generate_daily_digest()
        if not digest["has_content"]:
            print(digest["message"])
            return

        summary = digest["summary"]
        print("\n📰 Daily Digest\n")
        print(f"{summary['total_jobs']} jobs from {summary['alerts_triggered']} alerts in the last {summary['period']}")
        print("\nTop companies:")
        for entry in digest["top_companies"]:
            print(f"  {entry['company']}: {entry['count']}")
        print("\nTop locations:")
        for entry in digest["top_locations"]:
            print(f"  {entry['location']}: {entry['count']}")
        if digest["job_highlights"]:
            print("\nHighlights:")
            for job in digest["job_highlights"]:
                print(f"  ⭐ {job['title']} @ {job['company']} ({job['relevance_score']:.0f})")

    elif args.stats:
        print(json.dumps(notifications.get_stats(), indent=2))

    elif args.clear:
        count = await notifications.clear_all()
        print(f"🗑  Cleared {count} notifications")

    else:
        items = notifications.get_notifications(
            unread_only=args.unread,
            priority=args.priority,
            limit=args.limit,
        )
        print(f"\n📬 Notifications ({notifications.get_unread_count()} unread)\n")
        for n in items:
            marker = " " if n.read else "•"
            print(f" {marker} {n.id} [{n.priority.value}] {n.title}")
            print(f"     {n.message} ({n.created:%Y-%m-%d %H:%M})")


def cmd_config(args, config: Config):
    """Execute config command."""
    if args.init:
        config.save()
        print(f"✅ Created config at: {config.config_path}")

    elif args.show:
        print("\n📋 Current Configuration\n")
        config.print_config()

    elif args.set:
        key, value = args.set
        # Try to parse as JSON for complex values
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            pass

        config.set(key, value)
        config.save()
        print(f"✅ Set {key} = {value}")

    elif args.set_api_key:
        provider, key = args.set_api_key
        config.set_api_key(provider, key)
        print(f"✅ Set API key for {provider}")

    else:
        print("Use --show, --set, --set-api-key, or --init")


if __name__ == "__main__":
    main()

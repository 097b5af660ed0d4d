from __future__ import annotations

import asyncio

from conftest import FakeAdapter, FakeMonotonic, make_aggregator, make_job

from job_discovery.core.errors import SourceFetchError
from job_discovery.core.models import SearchCriteria, SortMode, UserProfile
from job_discovery.integrations.aggregator import JobAggregator
from job_discovery.utils.cache import SearchCache


def test_repeat_search_within_ttl_is_served_from_cache() -> None:
    ticker = FakeMonotonic()
    adapter = FakeAdapter("alpha", [make_job("a1")])
    aggregator = make_aggregator([adapter], cache=SearchCache(ttl_seconds=300, clock=ticker))

    first = asyncio.run(aggregator.search("unity"))
    ticker.advance(299)
    second = asyncio.run(aggregator.search("unity"))

    assert adapter.calls == 1
    assert [j.id for j in first] == [j.id for j in second]
    assert aggregator.get_analytics()["cache_hits"] == 1


def test_cache_entry_expires_after_ttl() -> None:
    ticker = FakeMonotonic()
    adapter = FakeAdapter("alpha", [make_job("a1")])
    aggregator = make_aggregator([adapter], cache=SearchCache(ttl_seconds=300, clock=ticker))

    asyncio.run(aggregator.search("unity"))
    ticker.advance(300)
    asyncio.run(aggregator.search("unity"))

    assert adapter.calls == 2


def test_cache_key_ignores_case_and_whitespace() -> None:
    adapter = FakeAdapter("alpha", [make_job("a1")])
    aggregator = make_aggregator([adapter])

    asyncio.run(aggregator.search("Unity"))
    asyncio.run(aggregator.search("  unity "))

    assert adapter.calls == 1


def test_filters_are_reapplied_to_cached_pool() -> None:
    jobs = [
        make_job("a1", title="Remote Dev", location="Remote"),
        make_job("a2", title="Office Dev", location="Austin, TX"),
    ]
    adapter = FakeAdapter("alpha", jobs)
    aggregator = make_aggregator([adapter])

    everything = asyncio.run(aggregator.search("dev"))
    remote_only = asyncio.run(aggregator.search("dev", SearchCriteria(remote=True)))

    assert adapter.calls == 1
    assert {j.id for j in everything} == {"a1", "a2"}
    assert [j.id for j in remote_only] == ["a1"]


def test_duplicates_across_sources_keep_first_occurrence() -> None:
    first = FakeAdapter("alpha", [make_job("alpha-1", title="Unity Developer", company="Riot Games", relevance=60)])
    second = FakeAdapter("beta", [
        make_job("beta-9", title="unity developer", company="RIOT GAMES", relevance=90),
        make_job("beta-2", title="Level Designer", company="Riot Games", relevance=40),
    ])
    aggregator = make_aggregator([first, second])

    results = asyncio.run(aggregator.search("unity"))

    assert [j.id for j in results] == ["alpha-1", "beta-2"]


def test_hyphenated_titles_and_companies_are_not_merged() -> None:
    adapter = FakeAdapter("alpha", [
        make_job("a", title="Dev-Lead", company="X"),
        make_job("b", title="Dev", company="Lead-X"),
    ])
    aggregator = make_aggregator([adapter])

    results = asyncio.run(aggregator.search("x"))

    assert {j.id for j in results} == {"a", "b"}


def test_colliding_ids_are_made_unique() -> None:
    first = FakeAdapter("alpha", [make_job("job-1", title="Unity Developer")])
    second = FakeAdapter("beta", [make_job("job-1", title="Tools Programmer")])
    aggregator = make_aggregator([first, second])

    results = asyncio.run(aggregator.search("dev"))

    assert sorted(j.id for j in results) == ["job-1", "job-1-2"]


def test_one_failing_source_does_not_block_the_others() -> None:
    healthy = FakeAdapter("alpha", [make_job("a1"), make_job("a2", title="Tools Programmer")])
    broken = FakeAdapter("beta", error=SourceFetchError("Beta", "HTTP 503"))
    aggregator = make_aggregator([broken, healthy])

    results = asyncio.run(aggregator.search("dev"))

    assert {j.id for j in results} == {"a1", "a2"}
    performance = aggregator.get_analytics()["source_performance"]
    assert performance["beta"]["failures"] == 1
    assert performance["alpha"]["successes"] == 1
    assert performance["alpha"]["success_rate"] == 100.0


def test_slow_source_times_out_without_blocking_the_others() -> None:
    fast = FakeAdapter("alpha", [make_job("a1")])
    slow = FakeAdapter("beta", [make_job("b1", title="Slow Job")], delay=5)
    aggregator = make_aggregator([slow, fast], request_timeout=0.05)

    results = asyncio.run(aggregator.search("dev"))

    assert [j.id for j in results] == ["a1"]
    assert aggregator.get_analytics()["source_performance"]["beta"]["failures"] == 1


def test_all_sources_down_serves_fallback_jobs_uncached() -> None:
    down_a = FakeAdapter("alpha", error=SourceFetchError("Alpha", "connection refused"))
    down_b = FakeAdapter("beta", error=SourceFetchError("Beta", "connection refused"))
    aggregator = make_aggregator([down_a, down_b])

    results = asyncio.run(aggregator.search("unity"))
    asyncio.run(aggregator.search("unity"))

    assert results
    assert all(j.id.startswith("fallback-") for j in results)
    assert [j.id for j in results] == ["fallback-2", "fallback-4", "fallback-1", "fallback-5", "fallback-3"]
    assert down_a.calls == 2
    assert aggregator.get_analytics()["fallbacks_served"] == 2


def test_source_returning_nothing_counts_as_all_failed() -> None:
    empty = FakeAdapter("alpha", [])
    aggregator = make_aggregator([empty])

    results = asyncio.run(aggregator.search("unity"))

    assert len(results) == 5
    assert "unity Developer" in [j.title for j in results]


def test_sort_is_stable_for_equal_keys() -> None:
    jobs = [
        make_job("j1", title="A", relevance=70),
        make_job("j2", title="B", relevance=90),
        make_job("j3", title="C", relevance=70),
        make_job("j4", title="D", relevance=70),
    ]
    aggregator = make_aggregator([FakeAdapter("alpha", jobs)])

    results = asyncio.run(aggregator.search("x"))

    assert [j.id for j in results] == ["j2", "j1", "j3", "j4"]


def test_sort_by_salary_and_company() -> None:
    jobs = [
        make_job("j1", title="A", company="Zeta", salary="$60,000 - $80,000"),
        make_job("j2", title="B", company="alpha", salary="$100,000 - $140,000"),
        make_job("j3", title="C", company="Mid", salary=None),
    ]
    aggregator = make_aggregator([FakeAdapter("alpha", jobs)])

    by_salary = asyncio.run(aggregator.search("x", SearchCriteria(sort_by=SortMode.SALARY)))
    by_company = asyncio.run(aggregator.search("x", SearchCriteria(sort_by=SortMode.COMPANY)))

    assert [j.id for j in by_salary] == ["j2", "j1", "j3"]
    assert [j.id for j in by_company] == ["j2", "j3", "j1"]


def test_sort_by_date_newest_first() -> None:
    jobs = [
        make_job("old", title="A", posted_at="3 weeks ago"),
        make_job("new", title="B", posted_at="1 day ago"),
        make_job("mid", title="C", posted_at="5 days ago"),
    ]
    aggregator = make_aggregator([FakeAdapter("alpha", jobs)])

    results = asyncio.run(aggregator.search("x", SearchCriteria(sort_by=SortMode.DATE)))

    assert [j.id for j in results] == ["new", "mid", "old"]


def test_results_are_truncated_to_max_results() -> None:
    jobs = [make_job(f"j{i}", title=f"Job {i}") for i in range(10)]
    aggregator = make_aggregator([FakeAdapter("alpha", jobs)])

    results = asyncio.run(aggregator.search("x", SearchCriteria(max_results=3)))

    assert len(results) == 3


def test_salary_filter_keeps_unsalaried_jobs() -> None:
    jobs = [
        make_job("low", title="A", salary="$30,000 - $40,000"),
        make_job("ok", title="B", salary="$90,000 - $110,000"),
        make_job("none", title="C", salary=None),
    ]
    aggregator = make_aggregator([FakeAdapter("alpha", jobs)])

    results = asyncio.run(aggregator.search("x", SearchCriteria(salary_min=80000)))

    assert {j.id for j in results} == {"ok", "none"}


def test_salary_filter_annualizes_hourly_and_monthly_pay() -> None:
    jobs = [
        make_job("hourly", title="A", salary="$60/hour"),
        make_job("monthly", title="B", salary="$5,000 a month"),
        make_job("cheap", title="C", salary="$20/hr"),
    ]
    aggregator = make_aggregator([FakeAdapter("alpha", jobs)])

    results = asyncio.run(aggregator.search("x", SearchCriteria(salary_min=80000)))

    assert [j.id for j in results] == ["hourly"]


def test_injected_cache_is_kept_even_when_empty() -> None:
    cache = SearchCache(ttl_seconds=60, clock=FakeMonotonic())

    aggregator = JobAggregator(adapters=[], cache=cache)

    assert aggregator.cache is cache
    assert aggregator.cache.ttl_seconds == 60


def test_query_argument_overrides_criteria_query() -> None:
    adapter = FakeAdapter("alpha", [make_job("a1")])
    aggregator = make_aggregator([adapter])

    asyncio.run(aggregator.search("unreal", SearchCriteria(query="ignored")))

    assert adapter.queries == ["unreal"]


def test_source_allow_list_selects_adapters() -> None:
    alpha = FakeAdapter("alpha", [make_job("a1")])
    beta = FakeAdapter("beta", [make_job("b1", title="Other")])
    aggregator = make_aggregator([alpha, beta])

    results = asyncio.run(aggregator.search("x", SearchCriteria(sources=("beta",))))

    assert [j.id for j in results] == ["b1"]
    assert alpha.calls == 0


def test_search_history_and_popular_terms() -> None:
    aggregator = make_aggregator([FakeAdapter("alpha", [make_job("a1")])], history_limit=2)

    for query in ("unity developer", "unity artist", "qa tester"):
        asyncio.run(aggregator.search(query))

    history = aggregator.get_search_history()
    assert [h["id"] for h in history] == ["search_2", "search_3"]
    assert aggregator.get_analytics()["popular_search_terms"][0] == ("unity", 2)


def test_adapter_management() -> None:
    aggregator = make_aggregator([FakeAdapter("alpha"), FakeAdapter("beta")])

    assert aggregator.remove_adapter("Beta") is True
    assert aggregator.remove_adapter("missing") is False
    aggregator.add_adapter(FakeAdapter("gamma"))

    assert aggregator.get_enabled_sources() == ["alpha", "gamma"]


def test_personalized_recommendations_rank_by_match() -> None:
    jobs = [
        make_job("weak", title="Accountant", company="Bank", relevance=10, location="Denver, CO"),
        make_job(
            "strong",
            title="Unity Developer",
            company="Riot Games",
            relevance=90,
            description="Unity and C# gameplay programming",
        ),
    ]
    aggregator = make_aggregator([FakeAdapter("alpha", jobs)])
    profile = UserProfile(skills={"Unity", "C#"})
    profile.career_goals.target_roles = ["unity developer"]

    results = asyncio.run(aggregator.get_personalized_recommendations(profile, limit=5))

    assert [j.id for j in results] == ["strong", "weak"]
    assert results[0].match is not None
    assert results[0].match.total_score > results[1].match.total_score


def test_recommendations_attach_match_only_with_profile() -> None:
    aggregator = make_aggregator([FakeAdapter("alpha", [make_job("a1", relevance=80)])])

    plain = asyncio.run(aggregator.get_recommendations())
    matched = asyncio.run(aggregator.get_recommendations(UserProfile(skills={"unity"})))

    assert len(plain) == 1
    assert plain[0].match is None
    assert matched[0].match is not None


def test_salary_insights_location_multiplier() -> None:
    aggregator = make_aggregator([])

    insights = aggregator.get_salary_insights("Game Developer", "San Francisco, CA")

    assert insights["median"] == int(85000 * 1.4)
    assert insights["location"] == "San Francisco, CA"

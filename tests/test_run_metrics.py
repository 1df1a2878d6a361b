"""
Run metrics: company outcome counters and the metrics JSON file.
"""
import json

from models import CompanyScrapingResult, Confidence, JobListing, ScrapingStatus
from run_metrics import RunMetrics


def test_record_company_counts_outcomes():
    metrics = RunMetrics(pipeline="full")

    metrics.record_company(CompanyScrapingResult(
        company="Acme GmbH",
        website="https://acme.example",
        status=ScrapingStatus.SUCCESS,
        careers_url="https://acme.example/karriere",
        confidence=Confidence.MEDIUM,
        strategy="nl_navigation",
        discovered=True,
        job_listings=[JobListing(id="1", company="Acme GmbH", title="Koch")],
    ))
    metrics.record_company(CompanyScrapingResult(
        company="Beta AG",
        website="https://beta.example",
        status=ScrapingStatus.FAILED,
        error="Could not find careers page",
    ))

    assert metrics.counters == {
        "companies_processed": 2,
        "companies_successful": 1,
        "companies_failed": 1,
        "careers_urls_discovered": 1,
        "discovery_strategy.nl_navigation": 1,
        "confidence.medium": 1,
        "jobs_extracted": 1,
    }
    [event] = metrics.events
    assert event["kind"] == "company_failed"
    assert event["company"] == "Beta AG"
    assert event["error"] == "Could not find careers page"


def test_write_json_fills_timestamp_and_merges_extra(tmp_path):
    metrics = RunMetrics(pipeline="discover")
    metrics.record_selection(3, 1)
    metrics.inc("companies_processed", 3)
    metrics.finish()

    path = metrics.write_json(template=str(tmp_path / "metrics" / "run_{timestamp}.json"), extra={"interrupted": False})

    assert path.parent == tmp_path / "metrics"
    assert "{timestamp}" not in path.name
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["pipeline"] == "discover"
    assert data["run_id"] == metrics.run_id
    assert data["ended_at"] == metrics.ended_at
    assert data["companies"] == {"selected": 3, "skipped": 1}
    assert data["counters"] == {"companies_processed": 3}
    assert data["interrupted"] is False


def test_finish_freezes_end_time():
    metrics = RunMetrics(pipeline="extract")
    metrics.finish()
    ended_at, duration = metrics.ended_at, metrics.duration_seconds

    metrics.finish()

    assert metrics.ended_at == ended_at
    assert metrics.duration_seconds == duration

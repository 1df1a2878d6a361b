"""
Tests for the jobs JSON and the Markdown run report.
"""
import json

from models import (
    BatchScrapingResult,
    BatchSummary,
    CompanyScrapingResult,
    Confidence,
    JobListing,
    JobType,
    LanguageOfListing,
    ScrapingStatus,
)
from output_writer import OutputWriter


def make_batch(interrupted=False):
    job = JobListing(
        id="job-1",
        company="Acme GmbH",
        title="Backend Developer | Python",
        description="Playwright und Datenpipelines",
        location="Berlin",
        type=JobType.FULL_TIME,
        url="https://acme.example/jobs/1",
        language_of_listing=LanguageOfListing.GERMAN,
        scrape_run_id="run-42",
    )
    odd_type = JobListing(id="job-2", company="Acme GmbH", title="Koch", type="Saisonkraft", scrape_run_id="run-42")
    results = [
        CompanyScrapingResult(
            company="Acme GmbH",
            website="acme.example",
            status=ScrapingStatus.SUCCESS,
            careers_url="https://acme.example/stellenangebote",
            confidence=Confidence.HIGH,
            discovered=True,
            job_listings=[job, odd_type],
        ),
        CompanyScrapingResult(
            company="Beta AG",
            website="beta.example",
            status=ScrapingStatus.FAILED,
            error="Could not find careers page",
        ),
    ]
    return BatchScrapingResult(
        run_id="run-42",
        start_time="2026-10-17T08:00:00+00:00",
        end_time="2026-10-17T08:05:00+00:00",
        total_companies=3 if interrupted else 2,
        successful_companies=1,
        failed_companies=1,
        interrupted=interrupted,
        results=results,
        summary=BatchSummary(total_jobs_found=2, problematic_websites=["beta.example"]),
    )


def test_json_uses_camel_case_and_metadata(config, tmp_path):
    path = OutputWriter(config).write_json(make_batch(), tmp_path / "jobs.json")

    data = json.loads(path.read_text(encoding="utf-8"))

    assert data["metadata"] == {
        "runId": "run-42",
        "runTimestamp": "2026-10-17T08:00:00+00:00",
        "totalJobs": 2,
        "companiesProcessed": 2,
        "companiesSuccessful": 1,
        "companiesFailed": 1,
    }
    first = data["jobs"][0]
    assert first["languageOfListing"] == "de"
    assert first["type"] == "full-time"
    assert first["scrapeRunId"] == "run-42"
    assert "scrapeTimestamp" in first
    assert data["jobs"][1]["type"] == "Saisonkraft"


def test_json_defaults_to_configured_path(config, tmp_path):
    path = OutputWriter(config).write_json(make_batch())

    assert path == tmp_path / "output" / "jobs.json"
    assert path.exists()


def test_markdown_report_contents(config, tmp_path):
    path = OutputWriter(config).write_markdown(make_batch(), tmp_path / "report.md")

    text = path.read_text(encoding="utf-8")

    assert "**Run ID:** run-42" in text
    assert "1 successful, 1 failed of 2" in text
    assert "### Acme GmbH" in text
    assert "[link](https://acme.example/stellenangebote) (new)" in text
    assert "Could not find careers page" in text
    assert "## Problematic Websites" in text
    assert "- beta.example" in text
    assert "Backend Developer \\| Python" in text
    assert "Saisonkraft" in text
    assert "Interrupted" not in text


def test_markdown_marks_interrupted_run(config, tmp_path):
    path = OutputWriter(config).write_markdown(make_batch(interrupted=True), tmp_path / "report.md")

    assert "**Interrupted:** yes" in path.read_text(encoding="utf-8")


def test_write_all_puts_report_next_to_json(config, tmp_path):
    files = OutputWriter(config).write_all(make_batch(), tmp_path / "run" / "jobs.json")

    assert files["json"] == tmp_path / "run" / "jobs.json"
    assert files["markdown"] == tmp_path / "run" / "jobs.md"
    assert files["markdown"].exists()


def test_write_all_without_markdown(config, tmp_path):
    config.config["output"]["write_markdown"] = False

    files = OutputWriter(config).write_all(make_batch(), tmp_path / "jobs.json")

    assert list(files) == ["json"]

"""
Unit tests for job cleaning, job type normalization and de-duplication.
"""
import pytest

from data_cleaner import DataCleaner, clean_text, normalize_job_type, normalize_language
from models import ExtractedJob, JobListing, JobType, LanguageOfListing

RUN_ID = "3f1c6c0e-8d0b-4a57-9d4f-1a2b3c4d5e6f"


@pytest.fixture
def cleaner():
    return DataCleaner()


@pytest.mark.parametrize("raw, expected", [
    ("Full-time", JobType.FULL_TIME),
    ("Vollzeit", JobType.FULL_TIME),
    ("Festanstellung", JobType.FULL_TIME),
    ("unbefristet", JobType.FULL_TIME),
    ("Permanent", JobType.FULL_TIME),
    ("Part-time", JobType.PART_TIME),
    ("Teilzeit", JobType.PART_TIME),
    ("Minijob", JobType.PART_TIME),
    ("geringfügig beschäftigt", JobType.PART_TIME),
    ("Contract", JobType.CONTRACT),
    ("Freelance", JobType.CONTRACT),
    ("befristet", JobType.CONTRACT),
    ("Zeitarbeit", JobType.CONTRACT),
    ("Projektarbeit", JobType.CONTRACT),
    ("freiberuflich", JobType.CONTRACT),
    ("Selbstständig", JobType.CONTRACT),
    ("Internship", JobType.INTERNSHIP),
    ("Praktikum", JobType.INTERNSHIP),
    ("Praktikant (m/w/d)", JobType.INTERNSHIP),
    ("Trainee", JobType.INTERNSHIP),
    ("Volontariat", JobType.INTERNSHIP),
    ("Ausbildung", JobType.INTERNSHIP),
    ("Remote", JobType.REMOTE),
    ("Work from home", JobType.REMOTE),
    ("Homeoffice", JobType.REMOTE),
    ("Fernarbeit", JobType.REMOTE),
    ("mobiles Arbeiten", JobType.REMOTE),
    ("Hybrid", JobType.HYBRID),
    ("flexibel", JobType.HYBRID),
    ("mixed", JobType.HYBRID),
])
def test_job_type_synonyms_map_to_canonical_value(raw, expected):
    assert normalize_job_type(raw) is expected


def test_unmatched_job_type_passes_through():
    assert normalize_job_type("  Werkstudent ") == "Werkstudent"
    assert normalize_job_type("") is None
    assert normalize_job_type(None) is None


@pytest.mark.parametrize("raw, expected", [
    ("de", LanguageOfListing.GERMAN),
    ("Deutsch", LanguageOfListing.GERMAN),
    ("de-DE", LanguageOfListing.GERMAN),
    ("EN", LanguageOfListing.ENGLISH),
    ("englisch", LanguageOfListing.ENGLISH),
    ("Français", LanguageOfListing.FRENCH),
    ("es", None),
    (None, None),
])
def test_normalize_language(raw, expected):
    assert normalize_language(raw) == expected


def test_clean_text_collapses_whitespace():
    assert clean_text("  Senior\n\tEngineer   (m/w/d) ") == "Senior Engineer (m/w/d)"
    assert clean_text(None) == ""


def test_clean_builds_job_listing(cleaner):
    raw = ExtractedJob(
        title=" Softwareentwickler\n(m/w/d) ",
        description="Wir suchen\n\nVerstärkung.",
        location=" Berlin ",
        type="Vollzeit",
        url="https://acme.example/jobs/1",
        language_of_listing="de",
    )

    job = cleaner.clean(raw, "Acme GmbH", RUN_ID)

    assert job.title == "Softwareentwickler (m/w/d)"
    assert job.description == "Wir suchen Verstärkung."
    assert job.location == "Berlin"
    assert job.type is JobType.FULL_TIME
    assert job.language_of_listing is LanguageOfListing.GERMAN
    assert job.company == "Acme GmbH"
    assert job.scrape_run_id == RUN_ID
    assert len(job.id) == 36
    assert job.scrape_timestamp


@pytest.mark.parametrize("title, company", [("", "Acme"), ("   ", "Acme"), (None, "Acme"), ("Engineer", "  ")])
def test_clean_rejects_missing_title_or_company(cleaner, title, company):
    assert cleaner.clean(ExtractedJob(title=title), company, RUN_ID) is None


def test_description_is_truncated():
    job = DataCleaner(max_description_length=10).clean(
        ExtractedJob(title="Engineer", description="x" * 50), "Acme", RUN_ID
    )
    assert job.description == "x" * 10


def test_deduplicate_keeps_longest_description(cleaner):
    short = cleaner.clean(ExtractedJob(title="Engineer", description="short"), "Acme", RUN_ID)
    long = cleaner.clean(ExtractedJob(title="ENGINEER", description="a much longer description"), "acme", RUN_ID)
    other = cleaner.clean(ExtractedJob(title="Designer"), "Acme", RUN_ID)

    kept, removed = cleaner.deduplicate([short, other, long])

    assert removed == 1
    assert [job.id for job in kept] == [long.id, other.id]


def test_process_reports_counts(cleaner):
    raws = [
        ExtractedJob(title="Engineer", description="short"),
        ExtractedJob(title="Engineer", description="longer description"),
        ExtractedJob(title=""),
        ExtractedJob(title="Designer"),
    ]

    result = cleaner.process(raws, "Acme", RUN_ID)

    assert result.original_count == 4
    assert result.invalid_jobs_removed == 1
    assert result.duplicates_removed == 1
    assert result.final_count == 2
    assert {job.description for job in result.processed_jobs} == {"longer description", None}


def test_validate_job_flags_quality_issues():
    job = JobListing(id="1", company="Acme", title="QA", description="too short", url="jobs/1")

    is_valid, issues = DataCleaner.validate_job(job)

    assert is_valid is False
    assert issues == ["Job title too short", "Job description too short", "Invalid job URL"]


def test_validate_job_accepts_complete_record():
    job = JobListing(
        id="1",
        company="Acme",
        title="Backend Engineer",
        description="Build and run our Python services.",
        url="https://acme.example/jobs/1",
    )
    assert DataCleaner.validate_job(job) == (True, [])


def test_quality_report(cleaner):
    result = cleaner.process(
        [ExtractedJob(title="Engineer", location="Berlin", type="Vollzeit"), ExtractedJob(title="")],
        "Acme",
        RUN_ID,
    )

    report = DataCleaner.generate_quality_report(result)

    assert "Original jobs: 2" in report
    assert "Success rate: 50.0%" in report
    assert "Jobs with location: 1" in report
    assert "Jobs with type: 1" in report


def test_quality_report_handles_empty_result(cleaner):
    report = DataCleaner.generate_quality_report(cleaner.process([], "Acme", RUN_ID))
    assert "Success rate: 0.0%" in report

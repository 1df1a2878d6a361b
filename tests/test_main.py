"""
CLI tests: argument parsing, exit codes and file outputs, with a scripted page provider.
"""
import json

import pytest

import main as cli
from batch_scraper import BatchMode, BatchScraper
from conftest import write_settings
from fakes import FakePage, FakePageProvider, jobs

HOME = "https://acme.example"
CAREERS = f"{HOME}/stellenangebote"


def acme_pages():
    return {
        HOME: FakePage(hrefs=[CAREERS]),
        CAREERS: FakePage(job_passes=[jobs("Backend Developer", "Koch", url=f"{HOME}/jobs/1")]),
    }


@pytest.fixture
def settings(tmp_path, monkeypatch):
    monkeypatch.delenv("CAREER_SCOUT_HEADLESS", raising=False)
    monkeypatch.delenv("OLLAMA_HOST", raising=False)
    return write_settings(tmp_path)


@pytest.fixture
def companies_csv(tmp_path):
    path = tmp_path / "companies.csv"
    path.write_text("Name,Website\nAcme GmbH,acme.example\n", encoding="utf-8")
    return path


def use_fake_browser(monkeypatch, pages, on_goto=None):
    scrapers = []

    def factory(config):
        scraper = BatchScraper(config, provider=FakePageProvider(pages, on_goto), sleep=lambda seconds: None)
        scrapers.append(scraper)
        return scraper

    monkeypatch.setattr(cli, "BatchScraper", factory)
    return scrapers


def test_parser_maps_subcommands():
    parser = cli.build_parser()

    args = parser.parse_args(["run", "--force", "--csv", "firms.csv"])
    assert cli.COMMAND_MODES[args.command] is BatchMode.FULL
    assert args.force is True
    assert str(args.csv) == "firms.csv"

    args = parser.parse_args(["--config", "other.yaml", "extract"])
    assert args.config == "other.yaml"
    assert cli.COMMAND_MODES[args.command] is BatchMode.EXTRACT

    with pytest.raises(SystemExit):
        parser.parse_args([])


def test_missing_config_exits_with_error(tmp_path):
    assert cli.main(["--config", str(tmp_path / "missing.yaml"), "run"]) == cli.EXIT_ERROR


def test_missing_csv_exits_with_error(settings, tmp_path):
    assert cli.main(["--config", str(settings), "run", "--csv", str(tmp_path / "nope.csv")]) == cli.EXIT_ERROR


def test_csv_without_valid_rows_is_a_no_op(settings, tmp_path, monkeypatch):
    path = tmp_path / "companies.csv"
    path.write_text("Name,Website\nX,-\n", encoding="utf-8")
    scrapers = use_fake_browser(monkeypatch, {})

    assert cli.main(["--config", str(settings), "run", "--csv", str(path)]) == cli.EXIT_OK
    assert scrapers == []


def test_run_writes_jobs_report_csv_and_metrics(settings, companies_csv, tmp_path, monkeypatch):
    use_fake_browser(monkeypatch, acme_pages())
    output = tmp_path / "out" / "jobs.json"

    code = cli.main(["--config", str(settings), "run", "--csv", str(companies_csv), "--output", str(output)])

    assert code == cli.EXIT_OK
    data = json.loads(output.read_text(encoding="utf-8"))
    assert [job["title"] for job in data["jobs"]] == ["Backend Developer", "Koch"]
    assert data["metadata"]["companiesSuccessful"] == 1
    assert (tmp_path / "out" / "jobs.md").exists()
    assert CAREERS in companies_csv.read_text(encoding="utf-8")
    metrics = json.loads((tmp_path / "output" / "run_metrics.json").read_text(encoding="utf-8"))
    assert metrics["pipeline"] == "full"
    assert metrics["counters"]["jobs_extracted"] == 2


def test_discover_updates_csv_without_writing_jobs(settings, companies_csv, tmp_path, monkeypatch):
    use_fake_browser(monkeypatch, acme_pages())

    code = cli.main(["--config", str(settings), "discover", "--csv", str(companies_csv)])

    assert code == cli.EXIT_OK
    lines = companies_csv.read_text(encoding="utf-8-sig").splitlines()
    assert lines[0] == "Name,Website,CareersPage"
    assert lines[1] == f"Acme GmbH,{HOME},{CAREERS}"
    assert not (tmp_path / "output" / "jobs.json").exists()


def test_interrupted_run_exits_130(settings, companies_csv, monkeypatch):
    def interrupt():
        scrapers[0].interrupted = True

    scrapers = use_fake_browser(monkeypatch, acme_pages(), on_goto={HOME: interrupt})

    code = cli.main(["--config", str(settings), "run", "--csv", str(companies_csv)])

    assert code == cli.EXIT_INTERRUPTED


def test_write_back_keeps_csv_encoding_and_delimiter(tmp_path, monkeypatch):
    monkeypatch.delenv("CAREER_SCOUT_HEADLESS", raising=False)
    monkeypatch.delenv("OLLAMA_HOST", raising=False)
    settings = write_settings(tmp_path, "\ninput:\n  encoding: latin-1\n")
    path = tmp_path / "firmen.csv"
    path.write_text("Firma;Webseite\nMüller GmbH;acme.example\n", encoding="latin-1")
    use_fake_browser(monkeypatch, acme_pages())

    assert cli.main(["--config", str(settings), "discover", "--csv", str(path)]) == cli.EXIT_OK

    lines = path.read_text(encoding="latin-1").splitlines()
    assert lines == ["Name;Website;CareersPage", f"Müller GmbH;{HOME};{CAREERS}"]

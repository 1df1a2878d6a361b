import sys
import textwrap
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from config_loader import ConfigLoader  # noqa: E402

TEST_SETTINGS = """
input:
  csv_path: {tmp}/companies.csv
  delimiter: ""
  encoding: utf-8-sig

browser:
  headless: true
  page_timeout: 5
  navigation_timeout: 5
  action_timeout: 2
  launch_timeout: 10

llm:
  model: test-model
  request_timeout: 5
  temperature: 0.0
  max_page_chars: 2000
  max_elements: 50

discovery:
  navigation_wait_ms: 0
  drill_down_wait_ms: 0
  ats_render_wait_ms: 0
  cookie_wait_ms: 0
  extra_ats_domains: []

extraction:
  pagination_wait_ms: 0
  max_description_length: 5000

scraper:
  use_random_delay: true
  min_delay: 2
  max_delay: 5
  fixed_delay: 3

output:
  use_timestamp: false
  json_file: {tmp}/output/jobs.json
  markdown_file: {tmp}/output/jobs.md
  metrics_file: {tmp}/output/run_metrics.json
  write_markdown: true

logging:
  level: DEBUG
  log_file: {tmp}/logs/test.log
"""


def write_settings(tmp_path: Path, extra: str = "") -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(TEST_SETTINGS.format(tmp=tmp_path) + textwrap.dedent(extra), encoding="utf-8")
    return path


@pytest.fixture
def config(tmp_path, monkeypatch):
    monkeypatch.delenv("CAREER_SCOUT_HEADLESS", raising=False)
    monkeypatch.delenv("OLLAMA_HOST", raising=False)
    return ConfigLoader(str(write_settings(tmp_path)))

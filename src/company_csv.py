"""
Company CSV source/sink
Reads Name/Website/CareersPage rows (English or German headers) and writes them back
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Dict, List, Optional

from models import CompanyInput

logger = logging.getLogger(__name__)

OUTPUT_HEADERS = ("Name", "Website", "CareersPage")
SNIFF_DELIMITERS = ",;\t|"

NAME_HEADERS = {
    "name", "company", "company name", "company_name", "companyname",
    "unternehmen", "firma", "firmenname", "gesellschaft",
}
WEBSITE_HEADERS = {
    "website", "url", "site", "website url", "website_url", "web", "homepage",
    "webseite", "internetseite", "homepage_url", "webadresse",
}
CAREERS_HEADERS = {
    "careerspage", "careers page", "careers_page", "careers-url", "careers_url", "careers url",
    "careers", "career", "karriereseite", "karriere", "stellenangebote", "jobs",
}

MIN_NAME_LENGTH = 2
MIN_WEBSITE_LENGTH = 4


class CompanyCsvError(ValueError):
    """Raised when the company CSV has no usable name/website columns."""


def ensure_url_protocol(url: str) -> str:
    """Prepend https:// to URLs without a scheme."""
    url = (url or "").strip()
    if not url or "://" in url:
        return url
    return f"https://{url}"


def map_header(header: Optional[str]) -> Optional[str]:
    """Map a raw column header to 'name', 'website', 'careers_url' or None."""
    normalized = (header or "").strip().lower()
    if not normalized:
        return None
    if normalized in CAREERS_HEADERS:
        return "careers_url"
    if normalized in NAME_HEADERS:
        return "name"
    if normalized in WEBSITE_HEADERS:
        return "website"

    # Substring fallbacks, careers first so "careers url" never maps to website
    if "career" in normalized or "karriere" in normalized:
        return "careers_url"
    if "web" in normalized or "url" in normalized or "site" in normalized:
        return "website"
    if "name" in normalized or "company" in normalized or "firma" in normalized:
        return "name"
    return None


def _detect_delimiter(sample: str) -> str:
    try:
        return csv.Sniffer().sniff(sample, delimiters=SNIFF_DELIMITERS).delimiter
    except csv.Error:
        logger.debug("Delimiter sniffing failed, falling back to ','")
        return ","


def detect_delimiter(path: Path, encoding: str = "utf-8-sig") -> str:
    """Delimiter of an existing company CSV, so write-back keeps the file's dialect."""
    with open(path, "r", encoding=encoding, newline="") as f:
        return _detect_delimiter(f.read(4096))


def read_companies(
    path: Path,
    delimiter: Optional[str] = None,
    encoding: str = "utf-8-sig",
) -> List[CompanyInput]:
    """Read companies from CSV. Invalid rows are skipped with a warning."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    with open(path, "r", encoding=encoding, newline="") as f:
        sample = f.read(4096)
        f.seek(0)
        reader = csv.reader(f, delimiter=delimiter or _detect_delimiter(sample))
        rows = [row for row in reader if any(cell.strip() for cell in row)]

    if not rows:
        logger.warning("CSV file is empty: %s", path)
        return []

    columns: Dict[str, int] = {}
    for index, header in enumerate(rows[0]):
        field = map_header(header)
        if field and field not in columns:
            columns[field] = index

    if "name" not in columns or "website" not in columns:
        raise CompanyCsvError(
            f"CSV {path} needs a name and a website column, got headers: {rows[0]}"
        )

    companies: List[CompanyInput] = []
    for line_number, row in enumerate(rows[1:], start=2):
        values = {
            field: (row[index].strip() if index < len(row) else "")
            for field, index in columns.items()
        }
        name = values.get("name", "")
        website = values.get("website", "")

        if len(name) < MIN_NAME_LENGTH:
            logger.warning("Skipping line %s: invalid company name %r", line_number, name)
            continue
        if len(website) < MIN_WEBSITE_LENGTH:
            logger.warning("Skipping line %s: invalid website for %s: %r", line_number, name, website)
            continue

        companies.append(CompanyInput(
            name=name,
            website=ensure_url_protocol(website),
            careers_url=ensure_url_protocol(values.get("careers_url", "")) or None,
        ))

    logger.info("Read %s companies from %s", len(companies), path)
    return companies


def write_companies(
    companies: List[CompanyInput],
    path: Path,
    encoding: str = "utf-8",
    delimiter: str = ",",
) -> Path:
    """Write companies back as Name, Website, CareersPage in the given encoding and delimiter."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding=encoding, newline="") as f:
        writer = csv.writer(f, delimiter=delimiter)
        writer.writerow(OUTPUT_HEADERS)
        for company in companies:
            writer.writerow([company.name, company.website, company.careers_url or ""])

    logger.info("Wrote %s companies to %s", len(companies), path)
    return path

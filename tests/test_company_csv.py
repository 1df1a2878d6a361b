"""
Unit tests for reading and writing the company CSV.
"""
import pytest

from company_csv import (
    CompanyCsvError,
    detect_delimiter,
    ensure_url_protocol,
    map_header,
    read_companies,
    write_companies,
)
from models import CompanyInput


def write(tmp_path, text, encoding="utf-8"):
    path = tmp_path / "companies.csv"
    path.write_text(text, encoding=encoding)
    return path


@pytest.mark.parametrize("header, expected", [
    ("Name", "name"),
    ("  Company Name ", "name"),
    ("Unternehmen", "name"),
    ("Firma", "name"),
    ("Website", "website"),
    ("Webseite", "website"),
    ("Internetseite", "website"),
    ("Company Website", "website"),
    ("CareersPage", "careers_url"),
    ("Karriereseite", "careers_url"),
    ("Careers URL", "careers_url"),
    ("Notes", None),
    ("", None),
])
def test_map_header(header, expected):
    assert map_header(header) == expected


@pytest.mark.parametrize("raw, expected", [
    ("acme.example", "https://acme.example"),
    ("  www.acme.example/de ", "https://www.acme.example/de"),
    ("http://acme.example", "http://acme.example"),
    ("", ""),
])
def test_ensure_url_protocol(raw, expected):
    assert ensure_url_protocol(raw) == expected


def test_reads_english_comma_csv(tmp_path):
    path = write(tmp_path, "Name,Website,CareersPage\nAcme GmbH,acme.example,https://acme.example/jobs\nBeta AG,https://beta.example,\n")

    companies = read_companies(path)

    assert companies == [
        CompanyInput(name="Acme GmbH", website="https://acme.example", careers_url="https://acme.example/jobs"),
        CompanyInput(name="Beta AG", website="https://beta.example", careers_url=None),
    ]


def test_reads_german_semicolon_csv_with_bom(tmp_path):
    path = write(tmp_path, "\ufeffUnternehmen;Webseite\nMüller & Söhne GmbH;mueller.example\n")

    companies = read_companies(path)

    assert len(companies) == 1
    assert companies[0].name == "Müller & Söhne GmbH"
    assert companies[0].website == "https://mueller.example"


def test_reads_latin1_with_explicit_delimiter(tmp_path):
    path = write(tmp_path, "Firma|Homepage\nBäckerei Schmidt|schmidt.example\n", encoding="latin-1")

    companies = read_companies(path, delimiter="|", encoding="latin-1")

    assert companies[0].name == "Bäckerei Schmidt"


def test_skips_invalid_rows(tmp_path):
    path = write(tmp_path, "Name,Website\nA,acme.example\nBeta AG,b.c\n\nGamma KG,gamma.example\n")

    companies = read_companies(path)

    assert [c.name for c in companies] == ["Gamma KG"]


def test_missing_columns_raise(tmp_path):
    path = write(tmp_path, "Name,Notes\nAcme,foo\n")
    with pytest.raises(CompanyCsvError):
        read_companies(path)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_companies(tmp_path / "nope.csv")


def test_write_back_round_trips_careers_url(tmp_path):
    path = tmp_path / "out" / "companies.csv"
    companies = [
        CompanyInput(name="Acme GmbH", website="https://acme.example", careers_url="https://acme.example/stellenangebote"),
        CompanyInput(name="Beta AG", website="https://beta.example"),
    ]

    write_companies(companies, path)

    assert path.read_text(encoding="utf-8").splitlines()[0] == "Name,Website,CareersPage"
    assert read_companies(path) == companies


def test_write_back_keeps_latin1_semicolon_dialect(tmp_path):
    path = write(tmp_path, "Firma;Webseite;Karriereseite\nMüller GmbH;mueller.example;\n", encoding="latin-1")
    delimiter = detect_delimiter(path, "latin-1")
    companies = read_companies(path, encoding="latin-1")
    updated = [companies[0].model_copy(update={"careers_url": "https://mueller.example/karriere"})]

    write_companies(updated, path, "latin-1", delimiter)

    assert delimiter == ";"
    assert path.read_text(encoding="latin-1").splitlines()[0] == "Name;Website;CareersPage"
    assert read_companies(path, encoding="latin-1") == updated
    assert read_companies(path, delimiter=";", encoding="latin-1")[0].name == "Müller GmbH"


def test_careers_url_without_scheme_gets_https(tmp_path):
    path = write(tmp_path, "Name,Website,CareersPage\nAcme GmbH,acme.example,acme.example/karriere\n")

    assert read_companies(path)[0].careers_url == "https://acme.example/karriere"

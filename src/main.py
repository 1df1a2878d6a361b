#!/usr/bin/env python3

"""
Career Scout - Main Entry Point
Finds company careers pages and collects their job listings
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from batch_scraper import BatchMode, BatchScraper
from company_csv import CompanyCsvError, detect_delimiter, read_companies, write_companies
from config_loader import ConfigValidationError, load_config
from output_writer import OutputWriter

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

COMMAND_MODES = {
    "discover": BatchMode.DISCOVER,
    "extract": BatchMode.EXTRACT,
    "run": BatchMode.FULL,
}


def setup_logging(config) -> None:
    """Configure logging for the application"""
    log_file = config.get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    log_level = getattr(logging, str(config.get_log_level()).upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler()
        ]
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized: {log_file}")


def display_config(config, mode: BatchMode, csv_path: Path) -> None:
    """Display loaded configuration"""
    print("\n" + "="*60)
    print("🔎 CAREER SCOUT")
    print("="*60)

    print(f"\n📋 Mode: {mode.value}")
    print(f"📄 Companies CSV: {csv_path}")

    print(f"\n⚙️  BROWSER SETTINGS:")
    print(f"  Headless mode: {config.is_headless()}")
    print(f"  Page timeout: {config.get_page_timeout()/1000}s")
    if config.use_random_delay():
        print(f"  Delay range: {config.get_min_delay()}s - {config.get_max_delay()}s")
    else:
        print(f"  Fixed delay: {config.get_fixed_delay()}s")

    print(f"\n🤖 LLM:")
    print(f"  Model: {config.get_llm_model()}")
    print(f"  Host: {config.get_llm_host() or 'default'}")

    print("\n" + "="*60 + "\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Career Scout - careers page discovery and job extraction")
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to config YAML",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    discover = subparsers.add_parser("discover", help="Find careers pages and write them back to the CSV")
    discover.add_argument("--csv", type=Path, help="Company CSV (default: input.csv_path)")
    discover.add_argument("--force", action="store_true", help="Re-discover companies that already have a careers URL")

    extract = subparsers.add_parser("extract", help="Extract jobs for companies with a known careers URL")
    extract.add_argument("--csv", type=Path, help="Company CSV (default: input.csv_path)")
    extract.add_argument("--output", type=Path, help="Jobs JSON path (default: output.json_file)")

    run = subparsers.add_parser("run", help="Discover careers pages and extract jobs in one pass")
    run.add_argument("--csv", type=Path, help="Company CSV (default: input.csv_path)")
    run.add_argument("--force", action="store_true", help="Ignore cached careers URLs")
    run.add_argument("--output", type=Path, help="Jobs JSON path (default: output.json_file)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function"""
    args = build_parser().parse_args(argv)
    mode = COMMAND_MODES[args.command]
    force = getattr(args, "force", False)
    output_path = getattr(args, "output", None)

    print("\n🚀 Starting Career Scout...")

    # Load configuration
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"❌ Error: {e}")
        print("Make sure config/settings.yaml exists!")
        return EXIT_ERROR
    except ConfigValidationError as e:
        print(f"❌ Invalid config: {e}")
        return EXIT_ERROR
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        return EXIT_ERROR

    setup_logging(config)
    logger = logging.getLogger(__name__)

    csv_path = args.csv or config.get_csv_path()
    display_config(config, mode, csv_path)

    try:
        csv_encoding = config.get_csv_encoding()
        companies = read_companies(csv_path, config.get_csv_delimiter(), csv_encoding)
        csv_delimiter = config.get_csv_delimiter() or detect_delimiter(csv_path, csv_encoding)
    except (FileNotFoundError, CompanyCsvError, UnicodeDecodeError) as e:
        print(f"❌ Error reading companies: {e}")
        logger.error("Company CSV unusable: %s", e)
        return EXIT_ERROR

    if not companies:
        print("⚠️  No valid companies in CSV - nothing to do")
        return EXIT_OK

    scraper = BatchScraper(config)
    try:
        scraper.start()
    except Exception as e:
        print(f"❌ Browser failed to start: {e}")
        logger.exception("Browser start failed")
        scraper.stop()
        return EXIT_ERROR

    try:
        batch = scraper.process_companies(companies, mode, force_reprocess=force)
    except KeyboardInterrupt:
        print("🛑 Aborted by second interrupt - nothing written")
        logger.warning("Run aborted before results could be written")
        return EXIT_INTERRUPTED
    finally:
        scraper.stop()

    if mode is not BatchMode.EXTRACT:
        write_companies(batch.companies, csv_path, csv_encoding, csv_delimiter)
        discovered = sum(1 for r in batch.results if r.discovered)
        print(f"💾 CSV updated: {csv_path} ({discovered} new careers URLs)")

    if mode is not BatchMode.DISCOVER:
        OutputWriter(config).write_all(batch, output_path)

    metrics_path = scraper.metrics.write_json(
        template=config.get_metrics_template(),
        extra={"csv": str(csv_path), "interrupted": batch.interrupted},
    )
    logger.info("Run metrics written: %s", metrics_path)

    if batch.interrupted:
        print("⚠️  Run interrupted - completed companies were saved")
        return EXIT_INTERRUPTED

    print("✅ Done\n")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

"""
Output Writer - Exports scraped jobs to JSON and a Markdown run report
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from models import BatchScrapingResult, CompanyScrapingResult, JobListing, JobsOutput

logger = logging.getLogger(__name__)


class OutputWriter:
    """Handles exporting batch results to the jobs JSON and the Markdown report"""

    def __init__(self, config):
        self.config = config

    def _escape_md_cell(self, value: str) -> str:
        return (value or "").replace("|", "\\|").replace("\n", " ").strip()

    def _truncate(self, text: str, max_len: int) -> str:
        value = (text or "").strip()
        if len(value) <= max_len:
            return value
        return value[: max_len - 3].rstrip() + "..."

    def _ensure_output_dir(self, path: Path) -> None:
        """Create output directory if it doesn't exist"""
        path.parent.mkdir(parents=True, exist_ok=True)

    def _job_type_label(self, job: JobListing) -> str:
        if job.type is None:
            return "-"
        return getattr(job.type, "value", job.type)

    def _company_table(self, results: List[CompanyScrapingResult]) -> List[str]:
        lines = [
            "| Company | Status | Careers URL | Confidence | Jobs | Error |",
            "| --- | --- | --- | --- | --- | --- |",
        ]
        for result in results:
            careers = f"[link]({result.careers_url})" if result.careers_url else "-"
            if result.careers_url and result.discovered:
                careers += " (new)"
            row = [
                self._escape_md_cell(result.company),
                result.status.value,
                careers,
                result.confidence.value if result.confidence else "-",
                str(len(result.job_listings)),
                self._escape_md_cell(self._truncate(result.error or "-", 80)),
            ]
            lines.append("| " + " | ".join(row) + " |")
        lines.append("")
        return lines

    def _job_details_grid_table(self, jobs: List[JobListing]) -> List[str]:
        cols = ["#", "Title", "Company", "Location", "Job Type", "Language"]
        lines = [
            "| " + " | ".join(cols) + " |",
            "| " + " | ".join(["---"] * len(cols)) + " |",
        ]

        for i, job in enumerate(jobs, 1):
            title = self._escape_md_cell(self._truncate(job.title or "-", 80))
            title_link = f"[{title}]({job.url})" if job.url else title
            language = job.language_of_listing.value if job.language_of_listing else "-"
            row = [
                str(i),
                title_link,
                self._escape_md_cell(job.company),
                self._escape_md_cell(job.location or "-"),
                self._escape_md_cell(self._job_type_label(job)),
                language,
            ]
            lines.append("| " + " | ".join(row) + " |")

        lines.append("")
        return lines

    def write_json(self, batch: BatchScrapingResult, output_path: Optional[Path] = None) -> Path:
        """Export {metadata, jobs} with camelCase keys"""
        output_path = Path(output_path) if output_path else self.config.get_output_path('json')
        self._ensure_output_dir(output_path)

        payload = JobsOutput(metadata=batch.to_metadata(), jobs=batch.jobs)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(payload.model_dump(mode='json', by_alias=True), f, indent=2, ensure_ascii=False)

        logger.info(f"JSON written: {output_path}")
        print(f"💾 JSON saved: {output_path}")
        return output_path

    def write_markdown(self, batch: BatchScrapingResult, output_path: Optional[Path] = None) -> Path:
        """Export the run report to a Markdown file"""
        output_path = Path(output_path) if output_path else self.config.get_output_path('markdown')
        self._ensure_output_dir(output_path)

        jobs = batch.jobs
        lines = []

        # Header
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M')
        lines.append(f"# Career Scout Run {timestamp}\n")
        lines.append(f"**Run ID:** {batch.run_id}  ")
        lines.append(f"**Companies:** {batch.successful_companies} successful, "
                     f"{batch.failed_companies} failed of {batch.total_companies}  ")
        lines.append(f"**Total Jobs:** {len(jobs)}  ")
        if batch.interrupted:
            lines.append("**Interrupted:** yes, remaining companies were not processed  ")
        lines.append("")

        lines.append("## Companies\n")
        lines.extend(self._company_table(batch.results))
        lines.append("---\n")

        # Jobs by company
        lines.append("## Job Listings\n")

        if not jobs:
            lines.append("*No jobs found.*\n")
        else:
            for result in batch.results:
                if not result.job_listings:
                    continue
                lines.append(f"### {result.company}\n")
                for i, job in enumerate(result.job_listings, 1):
                    lines.append(f"#### {i}. {job.title}\n")
                    lines.append(f"**Location:** {job.location or '-'}  ")
                    lines.append(f"**Job Type:** {self._job_type_label(job)}  ")
                    if job.language_of_listing:
                        lines.append(f"**Language:** {job.language_of_listing.value}  ")
                    if job.url:
                        lines.append(f"**Link:** [{job.title}]({job.url})\n")
                    if job.description:
                        lines.append(f"> {self._truncate(job.description, 300)}\n")
                    lines.append("")

        if batch.summary.problematic_websites:
            lines.append("---\n")
            lines.append("## Problematic Websites\n")
            for website in batch.summary.problematic_websites:
                lines.append(f"- {website}")
            lines.append("")

        # Bottom grid
        lines.append("---\n")
        lines.append("## Job Details Grid\n")
        lines.extend(self._job_details_grid_table(jobs))

        lines.append("\n---\n")
        lines.append("*Generated by Career Scout*")

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write('\n'.join(lines))

        logger.info(f"Markdown written: {output_path}")
        print(f"📝 Markdown saved: {output_path}")
        return output_path

    def write_all(self, batch: BatchScrapingResult, json_path: Optional[Path] = None) -> Dict[str, Path]:
        """Write the jobs JSON and, if enabled, the Markdown report next to it"""
        files = {'json': self.write_json(batch, json_path)}

        if self.config.is_markdown_enabled():
            markdown_path = Path(json_path).with_suffix('.md') if json_path else None
            files['markdown'] = self.write_markdown(batch, markdown_path)

        return files

"""
Configuration loader for Career Scout
Reads and validates settings.yaml
"""

import yaml
import os
from pathlib import Path
from typing import Dict, Any, List, Optional
from datetime import datetime
from dotenv import load_dotenv
import logging

logger = logging.getLogger(__name__)

load_dotenv(override=False)

# Anti-bot pacing between companies is never allowed outside this window
MIN_COMPANY_DELAY_SECONDS = 2.0
MAX_COMPANY_DELAY_SECONDS = 5.0


class ConfigValidationError(ValueError):
    """Raised when configuration fails invariant validation."""
    pass


def _validate_non_negative(value: Any, field: str) -> None:
    """Validate that a numeric value is non-negative."""
    if value is not None and float(value) < 0:
        raise ConfigValidationError(
            f"Invalid config: '{field}' must be non-negative, got {value}"
        )


def _validate_positive(value: Any, field: str) -> None:
    """Validate that a numeric value is positive (> 0)."""
    if value is not None and float(value) <= 0:
        raise ConfigValidationError(
            f"Invalid config: '{field}' must be positive (> 0), got {value}"
        )


def _validate_min_max_pair(min_val: Any, max_val: Any, min_field: str, max_field: str) -> None:
    """Validate that min_val <= max_val for a delay/range pair."""
    if min_val is not None and max_val is not None:
        if float(min_val) > float(max_val):
            raise ConfigValidationError(
                f"Invalid config: '{min_field}' ({min_val}) must be <= '{max_field}' ({max_val})"
            )


def _env_flag(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


class ConfigLoader:
    """Loads and validates configuration from YAML file"""

    def __init__(self, config_path: str = "config/settings.yaml"):
        self.config_path = Path(config_path)
        self.config: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load config from YAML file"""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self.config = yaml.safe_load(f) or {}
            logger.info(f"✓ Config loaded from {self.config_path}")
        except yaml.YAMLError as e:
            logger.error(f"Error parsing config file: {e}")
            raise

        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate configuration invariants. Raises ConfigValidationError on failure."""
        # Delay between companies
        min_delay = self.get('scraper.min_delay')
        max_delay = self.get('scraper.max_delay')
        _validate_non_negative(min_delay, 'scraper.min_delay')
        _validate_non_negative(max_delay, 'scraper.max_delay')
        _validate_min_max_pair(min_delay, max_delay, 'scraper.min_delay', 'scraper.max_delay')
        _validate_non_negative(self.get('scraper.fixed_delay'), 'scraper.fixed_delay')

        # Browser timeouts (must be positive)
        _validate_positive(self.get('browser.page_timeout'), 'browser.page_timeout')
        _validate_positive(self.get('browser.navigation_timeout'), 'browser.navigation_timeout')
        _validate_positive(self.get('browser.action_timeout'), 'browser.action_timeout')
        _validate_positive(self.get('browser.launch_timeout'), 'browser.launch_timeout')

        # LLM settings
        _validate_positive(self.get('llm.request_timeout'), 'llm.request_timeout')
        _validate_non_negative(self.get('llm.temperature'), 'llm.temperature')
        _validate_positive(self.get('llm.max_page_chars'), 'llm.max_page_chars')
        _validate_positive(self.get('llm.max_elements'), 'llm.max_elements')

        # Waits
        for key in (
            'discovery.navigation_wait_ms',
            'discovery.drill_down_wait_ms',
            'discovery.ats_render_wait_ms',
            'discovery.cookie_wait_ms',
            'extraction.pagination_wait_ms',
        ):
            _validate_non_negative(self.get(key), key)
        _validate_positive(self.get('extraction.max_description_length'), 'extraction.max_description_length')

        delimiter = self.get('input.delimiter')
        if delimiter and len(str(delimiter)) != 1:
            raise ConfigValidationError(
                f"Invalid config: 'input.delimiter' must be a single character, got {delimiter!r}"
            )

        logger.debug("✓ Config invariants validated")

    def get(self, key: str, default: Any = None) -> Any:
        """Get config value by dot notation (e.g., 'browser.headless')"""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k, default)
            else:
                return default

        return value

    # === Input Config ===

    def get_csv_path(self) -> Path:
        """Get the company CSV path"""
        return Path(self.get('input.csv_path', 'data/companies.csv'))

    def get_csv_delimiter(self) -> Optional[str]:
        """Get CSV delimiter override (None = auto-detect)"""
        return self.get('input.delimiter') or None

    def get_csv_encoding(self) -> str:
        """Get CSV file encoding"""
        return self.get('input.encoding', 'utf-8-sig')

    # === Output Config ===

    def get_output_path(self, file_type: str = 'json') -> Path:
        """Get output file path with timestamp if enabled"""
        use_timestamp = self.get('output.use_timestamp', True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S') if use_timestamp else ''

        template = self.get(f'output.{file_type}_file', f'output/jobs.{file_type}')
        filename = template.replace('{timestamp}', timestamp)

        return Path(filename)

    def is_markdown_enabled(self) -> bool:
        """Check if the markdown run report should be written"""
        return bool(self.get('output.write_markdown', True))

    def get_metrics_template(self) -> str:
        """Get run metrics file template"""
        return self.get('output.metrics_file', 'output/run_metrics_{timestamp}.json')

    # === Browser Config ===

    def is_headless(self) -> bool:
        """Check if browser should run in headless mode"""
        override = _env_flag('CAREER_SCOUT_HEADLESS')
        if override is not None:
            return override
        return bool(self.get('browser.headless', True))

    def get_page_timeout(self) -> int:
        """Get default page operation timeout in milliseconds"""
        return int(self.get('browser.page_timeout', 30) * 1000)

    def get_navigation_timeout(self) -> int:
        """Get navigation timeout in milliseconds"""
        return int(self.get('browser.navigation_timeout', 30) * 1000)

    def get_action_timeout(self) -> int:
        """Get click/act timeout in milliseconds"""
        return int(self.get('browser.action_timeout', 10) * 1000)

    def get_launch_timeout(self) -> int:
        """Get browser launch timeout in milliseconds"""
        return int(self.get('browser.launch_timeout', 60) * 1000)

    def get_browser_channel(self) -> str:
        """Get Playwright browser channel override"""
        return self.get('browser.channel', '')

    def get_browser_executable_path(self) -> str:
        """Get browser executable path override"""
        return self.get('browser.executable_path', '')

    def use_stealth(self) -> bool:
        """Check if Playwright stealth should be enabled"""
        return bool(self.get('browser.use_stealth', False))

    def get_user_agent(self) -> Optional[str]:
        return self.get('browser.user_agent') or None

    def get_viewport(self) -> Dict[str, int]:
        viewport = self.get('browser.viewport') or {}
        return {
            "width": int(viewport.get('width', 1280)),
            "height": int(viewport.get('height', 720)),
        }

    # === LLM Config ===

    def get_llm_model(self) -> str:
        """Get Ollama model name used for observe/act/extract"""
        return self.get('llm.model', 'llama3.1:8b')

    def get_llm_host(self) -> Optional[str]:
        """Get Ollama host (OLLAMA_HOST env wins)"""
        return os.getenv('OLLAMA_HOST') or self.get('llm.host') or None

    def get_llm_request_timeout(self) -> float:
        """Get LLM request timeout in seconds"""
        return float(self.get('llm.request_timeout', 60))

    def get_llm_temperature(self) -> float:
        return float(self.get('llm.temperature', 0.0))

    def get_llm_max_page_chars(self) -> int:
        """Get max characters of page text sent to the LLM"""
        return int(self.get('llm.max_page_chars', 12000))

    def get_llm_max_elements(self) -> int:
        """Get max interactive elements listed for observe"""
        return int(self.get('llm.max_elements', 200))

    # === Discovery / Extraction Config ===

    def get_navigation_wait_ms(self) -> int:
        return int(self.get('discovery.navigation_wait_ms', 1000))

    def get_drill_down_wait_ms(self) -> int:
        return int(self.get('discovery.drill_down_wait_ms', 2000))

    def get_ats_render_wait_ms(self) -> int:
        return int(self.get('discovery.ats_render_wait_ms', 2000))

    def get_cookie_wait_ms(self) -> int:
        return int(self.get('discovery.cookie_wait_ms', 1000))

    def get_extra_ats_domains(self) -> List[str]:
        """Get ATS domains added on top of the built-in allowlist"""
        return list(self.get('discovery.extra_ats_domains', []) or [])

    def get_pagination_wait_ms(self) -> int:
        return int(self.get('extraction.pagination_wait_ms', 2000))

    def get_max_description_length(self) -> int:
        return int(self.get('extraction.max_description_length', 5000))

    # === Scraper Pacing ===

    def get_min_delay(self) -> float:
        """Get minimum delay between companies, clamped to the 2-5s window"""
        return self._clamp_delay(float(self.get('scraper.min_delay', MIN_COMPANY_DELAY_SECONDS)))

    def get_max_delay(self) -> float:
        """Get maximum delay between companies, clamped to the 2-5s window"""
        return self._clamp_delay(float(self.get('scraper.max_delay', MAX_COMPANY_DELAY_SECONDS)))

    def use_random_delay(self) -> bool:
        return bool(self.get('scraper.use_random_delay', True))

    def get_fixed_delay(self) -> float:
        return self._clamp_delay(float(self.get('scraper.fixed_delay', 3.0)))

    @staticmethod
    def _clamp_delay(value: float) -> float:
        return max(MIN_COMPANY_DELAY_SECONDS, min(MAX_COMPANY_DELAY_SECONDS, value))

    # === Logging Config ===

    def get_log_level(self) -> str:
        """Get logging level"""
        return self.get('logging.level', 'INFO')

    def get_log_file(self) -> Path:
        """Get log file path with timestamp"""
        template = self.get('logging.log_file', 'logs/career_scout.log')
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = template.replace('{timestamp}', timestamp)
        return Path(filename)

    def __repr__(self) -> str:
        return f"<Config: model={self.get_llm_model()}, csv={self.get_csv_path()}>"


# Convenience function
def load_config(config_path: str = "config/settings.yaml") -> ConfigLoader:
    """Load configuration from file"""
    return ConfigLoader(config_path)

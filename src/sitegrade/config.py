from dotenv import load_dotenv
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, TYPE_CHECKING
from pathlib import Path
import json
import os

from sitegrade.constants import (
    DEFAULT_MAX_PAGES,
    DEFAULT_MAX_DEPTH,
    DEFAULT_DELAY_MS,
    DEFAULT_CONCURRENCY,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_USER_AGENT,
)

if TYPE_CHECKING:
    from sitegrade.models import CrawledPage

load_dotenv()  # Loads variables from .env file


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> List[str]:
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    USER_AGENT = os.getenv("SITEGRADE_USER_AGENT", DEFAULT_USER_AGENT)
    LOG_LEVEL = os.getenv("SITEGRADE_LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("SITEGRADE_LOG_FILE") or None


settings = Settings()


@dataclass
class CrawlOptions:
    """Configuration for a site crawl.

    Durations are in milliseconds, matching what CI configuration files
    and dashboards pass through.
    """
    max_pages: int = DEFAULT_MAX_PAGES
    max_depth: int = DEFAULT_MAX_DEPTH
    delay: int = DEFAULT_DELAY_MS
    concurrency: int = DEFAULT_CONCURRENCY
    retries: int = DEFAULT_RETRIES
    timeout: int = DEFAULT_TIMEOUT_MS
    user_agent: str = settings.USER_AGENT
    strict: bool = False
    ignore_patterns: List[str] = field(default_factory=list)
    disabled_rules: List[str] = field(default_factory=list)
    use_sitemap: bool = True
    check_robots: bool = True
    check_external_links: bool = True
    check_images: bool = True
    on_page_crawled: Optional[Callable[["CrawledPage"], None]] = None

    @property
    def delay_seconds(self) -> float:
        return max(0, self.delay) / 1000.0

    @property
    def timeout_seconds(self) -> float:
        return max(1, self.timeout) / 1000.0

    @classmethod
    def from_env(cls) -> "CrawlOptions":
        """Load crawl options from environment variables.

        Variables are prefixed with SITEGRADE_, e.g. SITEGRADE_MAX_PAGES=100
        or SITEGRADE_IGNORE_PATTERNS=/app/*,/admin/**

        Returns:
            CrawlOptions: Options with values from environment
        """
        return cls(
            max_pages=int(os.getenv("SITEGRADE_MAX_PAGES", str(DEFAULT_MAX_PAGES))),
            max_depth=int(os.getenv("SITEGRADE_MAX_DEPTH", str(DEFAULT_MAX_DEPTH))),
            delay=int(os.getenv("SITEGRADE_DELAY", str(DEFAULT_DELAY_MS))),
            concurrency=int(os.getenv("SITEGRADE_CONCURRENCY", str(DEFAULT_CONCURRENCY))),
            retries=int(os.getenv("SITEGRADE_RETRIES", str(DEFAULT_RETRIES))),
            timeout=int(os.getenv("SITEGRADE_TIMEOUT", str(DEFAULT_TIMEOUT_MS))),
            user_agent=os.getenv("SITEGRADE_USER_AGENT", settings.USER_AGENT),
            strict=_env_bool("SITEGRADE_STRICT", False),
            ignore_patterns=_env_list("SITEGRADE_IGNORE_PATTERNS"),
            disabled_rules=_env_list("SITEGRADE_DISABLED_RULES"),
            use_sitemap=_env_bool("SITEGRADE_USE_SITEMAP", True),
            check_robots=_env_bool("SITEGRADE_CHECK_ROBOTS", True),
            check_external_links=_env_bool("SITEGRADE_CHECK_EXTERNAL_LINKS", True),
            check_images=_env_bool("SITEGRADE_CHECK_IMAGES", True),
        )


@dataclass
class AnalysisThresholds:
    """Configurable thresholds for cross-page analysis."""

    # Content
    thin_content_words: int = 200

    # Reporting
    slowest_pages_count: int = 10

    # App page heuristic (client-rendered shells with little server HTML)
    app_path_prefixes: Tuple[str, ...] = ("/app/",)
    app_path_segments: Tuple[str, ...] = (
        "/new", "/create", "/wizard", "/onboarding", "/setup", "/nouveau",
    )
    app_query_params: Tuple[str, ...] = ("type", "step")
    app_low_word_count: int = 100
    app_min_script_tags: int = 5

    @classmethod
    def from_env(cls) -> "AnalysisThresholds":
        """Load thresholds from environment variables.

        Environment variables should be prefixed with SITEGRADE_THRESHOLD_
        e.g., SITEGRADE_THRESHOLD_THIN_CONTENT_WORDS=300

        Returns:
            AnalysisThresholds with values from environment
        """
        thresholds = cls()
        prefix = "SITEGRADE_THRESHOLD_"

        for field_name in thresholds.__dataclass_fields__:
            env_key = f"{prefix}{field_name.upper()}"
            env_value = os.getenv(env_key)

            if env_value is not None:
                current = getattr(thresholds, field_name)
                try:
                    if isinstance(current, tuple):
                        setattr(thresholds, field_name, tuple(
                            item.strip() for item in env_value.split(",") if item.strip()
                        ))
                    elif isinstance(current, int):
                        setattr(thresholds, field_name, int(env_value))
                except ValueError:
                    pass  # Keep default if conversion fails

        return thresholds

    @classmethod
    def from_file(cls, path: str) -> "AnalysisThresholds":
        """Load thresholds from a JSON configuration file.

        Args:
            path: Path to JSON configuration file

        Returns:
            AnalysisThresholds with values from file
        """
        thresholds = cls()
        file_path = Path(path)

        if not file_path.exists():
            return thresholds

        with open(file_path, 'r') as f:
            config = json.load(f)

        threshold_config = config.get('thresholds', config)

        for field_name in thresholds.__dataclass_fields__:
            if field_name in threshold_config:
                value = threshold_config[field_name]
                if isinstance(value, list):
                    value = tuple(value)
                setattr(thresholds, field_name, value)

        return thresholds

    def to_dict(self) -> dict:
        """Convert thresholds to dictionary.

        Returns:
            Dictionary of all threshold values
        """
        return {
            field_name: (
                list(getattr(self, field_name))
                if isinstance(getattr(self, field_name), tuple)
                else getattr(self, field_name)
            )
            for field_name in self.__dataclass_fields__
        }

    def save_to_file(self, path: str) -> None:
        """Save current thresholds to a JSON file.

        Args:
            path: Path to save configuration
        """
        with open(path, 'w') as f:
            json.dump({'thresholds': self.to_dict()}, f, indent=2)


# Global default thresholds instance
default_thresholds = AnalysisThresholds()

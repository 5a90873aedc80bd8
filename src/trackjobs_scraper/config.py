import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load environment variables from .env file
load_dotenv()


def get_config() -> dict[str, str]:
    """
    Read raw configuration values from environment variables.
    Nothing is required, so this never raises; values are validated on access.
    """
    return {
        "LINKEDIN_MAX_PAGES": os.getenv("LINKEDIN_MAX_PAGES", "10"),
        "LINKEDIN_REQUEST_DELAY": os.getenv("LINKEDIN_REQUEST_DELAY", "2.0"),
        "LINKEDIN_HTTP_TIMEOUT": os.getenv("LINKEDIN_HTTP_TIMEOUT", "30.0"),
        "DETAIL_FETCH_CEILING": os.getenv("DETAIL_FETCH_CEILING", "50"),
        "PROGRESS_CLEANUP_DELAY": os.getenv("PROGRESS_CLEANUP_DELAY", "300"),
        "DB_PATH": os.getenv("DB_PATH", "jobs.db"),
    }


def _positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be a positive integer, got '{raw}'") from None
    if value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value}")
    return value


def _seconds(name: str, raw: str, *, allow_zero: bool = True) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got '{raw}'") from None
    if value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"{name} must be a {'non-negative' if allow_zero else 'positive'} "
                         f"number of seconds, got {value}")
    return value


class _Config:
    """Lazy configuration that only validates when values are actually accessed."""

    def __init__(self) -> None:
        self._config: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._config is None:
            self._config = get_config()
        return self._config

    @property
    def LINKEDIN_MAX_PAGES(self) -> int:
        """Upper bound for the number of result pages requested per facet."""
        return _positive_int("LINKEDIN_MAX_PAGES", self._load()["LINKEDIN_MAX_PAGES"])

    @property
    def LINKEDIN_REQUEST_DELAY(self) -> float:
        """Fixed delay in seconds between consecutive requests."""
        return _seconds("LINKEDIN_REQUEST_DELAY", self._load()["LINKEDIN_REQUEST_DELAY"])

    @property
    def LINKEDIN_HTTP_TIMEOUT(self) -> float:
        return _seconds(
            "LINKEDIN_HTTP_TIMEOUT", self._load()["LINKEDIN_HTTP_TIMEOUT"], allow_zero=False
        )

    @property
    def DETAIL_FETCH_CEILING(self) -> int:
        """Detail pages are only fetched for result pages with fewer cards than this."""
        return _positive_int("DETAIL_FETCH_CEILING", self._load()["DETAIL_FETCH_CEILING"])

    @property
    def PROGRESS_CLEANUP_DELAY(self) -> float:
        """Seconds a finished run's progress stays queryable."""
        return _seconds("PROGRESS_CLEANUP_DELAY", self._load()["PROGRESS_CLEANUP_DELAY"])

    @property
    def DB_PATH(self) -> str:
        return self._load()["DB_PATH"]


class ScraperSettings(BaseModel):
    """Immutable bundle of the tunables a scrape run depends on."""

    model_config = ConfigDict(frozen=True)

    max_pages: int = 10
    request_delay: float = 2.0
    http_timeout: float = 30.0
    detail_fetch_ceiling: int = 50
    progress_cleanup_delay: float = 300.0


def load_settings(cfg: _Config | None = None) -> ScraperSettings:
    """Build ScraperSettings from the environment."""
    cfg = cfg or _cfg
    return ScraperSettings(
        max_pages=cfg.LINKEDIN_MAX_PAGES,
        request_delay=cfg.LINKEDIN_REQUEST_DELAY,
        http_timeout=cfg.LINKEDIN_HTTP_TIMEOUT,
        detail_fetch_ceiling=cfg.DETAIL_FETCH_CEILING,
        progress_cleanup_delay=cfg.PROGRESS_CLEANUP_DELAY,
    )


_cfg = _Config()

# Module-level type declarations for mypy.
# The actual values come from __getattr__ below.
LINKEDIN_MAX_PAGES: int
LINKEDIN_REQUEST_DELAY: float
LINKEDIN_HTTP_TIMEOUT: float
DETAIL_FETCH_CEILING: int
PROGRESS_CLEANUP_DELAY: float
DB_PATH: str

_LAZY_NAMES = frozenset(
    {
        "LINKEDIN_MAX_PAGES",
        "LINKEDIN_REQUEST_DELAY",
        "LINKEDIN_HTTP_TIMEOUT",
        "DETAIL_FETCH_CEILING",
        "PROGRESS_CLEANUP_DELAY",
        "DB_PATH",
    }
)


# Module-level lazy access using __getattr__ (PEP 562).
# `from trackjobs_scraper.config import DB_PATH` resolves the value on first access.
def __getattr__(name: str) -> str | int | float:
    if name in _LAZY_NAMES:
        return getattr(_cfg, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

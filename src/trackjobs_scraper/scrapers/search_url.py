"""LinkedIn search URL construction.

Pure functions: the same config, page and facet always give the same URL.
"""

import logging
from urllib.parse import quote, urlencode, urlparse, urlunparse

from trackjobs_scraper.facets import (
    days_old_to_recency_code,
    experience_level_code,
    job_type_code,
)
from trackjobs_scraper.models import ScrapeConfig

logger = logging.getLogger(__name__)

LINKEDIN_BASE = "https://www.linkedin.com"
SEARCH_URL = f"{LINKEDIN_BASE}/jobs/search"
RESULTS_PER_PAGE = 25
REMOTE_WORKPLACE_CODE = "2"


def build_search_url(config: ScrapeConfig, page: int, facet: str | None = None) -> str:
    """
    Build the search URL for a zero-based page.

    `facet` is the experience level searched in this pass; it takes the place
    of `config.experience_level` in the f_E parameter.
    """
    params: dict[str, str] = {
        "keywords": config.keywords,
        "location": config.location,
        "start": str(page * RESULTS_PER_PAGE),
    }

    if config.remote_only:
        params["f_WT"] = REMOTE_WORKPLACE_CODE

    level = facet if facet is not None else config.experience_level
    if level:
        code = experience_level_code(level)
        if code is None:
            logger.warning(f"Unknown experience level '{level}', not filtering by it")
        else:
            params["f_E"] = code

    if config.job_type:
        code = job_type_code(config.job_type)
        if code is None:
            logger.warning(f"Unknown job type '{config.job_type}', not filtering by it")
        else:
            params["f_JT"] = code

    recency = days_old_to_recency_code(config.days_old)
    if recency is not None:
        params["f_TPR"] = recency

    return f"{SEARCH_URL}?{urlencode(params, quote_via=quote)}"


def canonical_job_url(href: str | None) -> str:
    """Make a job link absolute and drop its tracking query string and fragment."""
    if not href or not href.strip():
        return ""
    href = href.strip()
    if href.startswith("/"):
        href = f"{LINKEDIN_BASE}{href}"
    try:
        parsed = urlparse(href)
    except ValueError:
        logger.debug(f"Ignoring malformed job link: {href}")
        return ""
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path, "", "", ""))

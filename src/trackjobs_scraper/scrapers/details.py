import logging
from typing import Protocol

from bs4 import BeautifulSoup

from trackjobs_scraper.models import Posting
from trackjobs_scraper.scrapers.extractor import extract_description, infer_experience_level

logger = logging.getLogger(__name__)


class PageFetcher(Protocol):
    async def fetch(self, url: str) -> BeautifulSoup | None: ...


async def attach_description(fetcher: PageFetcher, posting: Posting) -> Posting:
    """
    Fetch the posting's own page and set its description.
    Never raises: on failure the posting is kept with an empty description.
    Postings without a URL are returned untouched.
    """
    if not posting.url:
        return posting

    try:
        doc = await fetcher.fetch(posting.url)
    except Exception as e:
        logger.warning(f"Error getting details for job {posting.title}: {e}")
        posting.description = ""
        return posting

    if doc is None:
        logger.warning(f"Failed to fetch detail page: {posting.url}")
        posting.description = ""
        return posting

    posting.description = extract_description(doc)
    posting.apply_inferred_experience_level(
        infer_experience_level(posting.title, posting.description)
    )
    logger.debug(f"Successfully extracted description for job: {posting.title}")
    return posting

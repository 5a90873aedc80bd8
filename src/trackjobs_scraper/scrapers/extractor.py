"""Turns LinkedIn search-result and job-detail pages into Posting data.

Cards without a title or company are skipped silently: malformed cards are
normal noise on these pages. A card that fails to parse is skipped with a
warning and the rest of the page is still extracted. An empty result means
the search ran out of results.
"""

import logging
import re
from datetime import date

from bs4 import BeautifulSoup, Tag

from trackjobs_scraper.facets import canonical_experience_level
from trackjobs_scraper.models import Posting
from trackjobs_scraper.scrapers.search_url import canonical_job_url
from trackjobs_scraper.scrapers.selectors import (
    CARD_SELECTORS,
    COMPANY_SELECTORS,
    DATE_SELECTORS,
    DESCRIPTION_SELECTORS,
    LINK_SELECTORS,
    LOCATION_SELECTORS,
    SEE_MORE_SELECTORS,
    TITLE_SELECTORS,
)

logger = logging.getLogger(__name__)

DEFAULT_EXPERIENCE_LEVEL = "Mid-level"
DEFAULT_JOB_TYPE = "Full-time"

# Checked in order; the first matching tier wins.
EXPERIENCE_LEVEL_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Internship", re.compile(r"\bintern(ship)?s?\b")),
    ("Senior", re.compile(r"\bsenior\b|\bsr\.?(?=\s|$)|\blead\b")),
    ("Junior", re.compile(r"\bjunior\b|\bjr\.?(?=\s|$)|\bentry\b")),
    ("Director", re.compile(r"\bprincipal\b|\bdirector\b|\bhead of\b")),
    ("Executive", re.compile(r"\bvp\b|\bvice president\b|\bchief\b")),
)

# Internship is recognized from the title only.
DESCRIPTION_LEVEL_PATTERNS = tuple(p for p in EXPERIENCE_LEVEL_PATTERNS if p[0] != "Internship")

JOB_TYPE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Full-time", re.compile(r"\bfull[- ]time\b")),
    ("Part-time", re.compile(r"\bpart[- ]time\b")),
    ("Contract", re.compile(r"\bcontract(or)?\b")),
    ("Temporary", re.compile(r"\btemporary\b|\btemp\b")),
    ("Internship", re.compile(r"\bintern(ship)?s?\b")),
)


def _first_match(parent: Tag, selectors: tuple[str, ...]) -> Tag | None:
    for selector in selectors:
        el = parent.select_one(selector)
        if el is not None:
            return el
    return None


def _text(parent: Tag, selectors: tuple[str, ...]) -> str:
    el = _first_match(parent, selectors)
    return el.get_text(" ", strip=True) if el else ""


def _classify(text: str, patterns: tuple[tuple[str, re.Pattern[str]], ...]) -> str | None:
    lowered = text.lower()
    for label, pattern in patterns:
        if pattern.search(lowered):
            return label
    return None


def infer_experience_level(title: str, description: str | None = None) -> str:
    """
    Guess the seniority tier from the title, then from the description.
    Falls back to "Mid-level".
    """
    return (
        _classify(title, EXPERIENCE_LEVEL_PATTERNS)
        or _classify(description or "", DESCRIPTION_LEVEL_PATTERNS)
        or DEFAULT_EXPERIENCE_LEVEL
    )


def infer_job_type(text: str) -> str:
    return _classify(text, JOB_TYPE_PATTERNS) or DEFAULT_JOB_TYPE


def parse_posted_date(card: Tag, scrape_date: date) -> date:
    """Read the <time datetime="YYYY-MM-DD"> attribute, falling back to the scrape date."""
    el = _first_match(card, DATE_SELECTORS)
    raw = str(el.get("datetime", "")).strip() if el else ""
    if not raw:
        return scrape_date
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        logger.debug(f"Could not parse date: {raw}")
        return scrape_date


def parse_card(card: Tag, scrape_date: date, facet: str | None = None) -> Posting | None:
    """Parse one result card. Returns None for cards missing a title or company."""
    title = _text(card, TITLE_SELECTORS)
    company = _text(card, COMPANY_SELECTORS)
    if not title or not company:
        logger.debug("Skipping incomplete job card")
        return None

    link = _first_match(card, LINK_SELECTORS)
    url = canonical_job_url(str(link.get("href", ""))) if link else ""

    posting = Posting(
        title=title,
        company=company,
        location=_text(card, LOCATION_SELECTORS),
        url=url,
        date_posted=parse_posted_date(card, scrape_date),
        date_scraped=scrape_date,
        job_type=infer_job_type(card.get_text(" ", strip=True)),
    )

    facet_level = canonical_experience_level(facet) if facet else None
    if facet_level:
        posting.experience_level = facet_level
        posting.experience_level_source = "facet"
    else:
        posting.apply_inferred_experience_level(infer_experience_level(title))

    logger.debug(f"Extracted job: title={title}, company={company}, location={posting.location}")
    return posting


def find_cards(doc: BeautifulSoup) -> list[Tag]:
    """Result cards on a search page, from the first card selector that matches."""
    for selector in CARD_SELECTORS:
        cards = doc.select(selector)
        if cards:
            return cards
    return []


def parse_cards(cards: list[Tag], scrape_date: date, facet: str | None = None) -> list[Posting]:
    postings: list[Posting] = []
    for card in cards:
        try:
            posting = parse_card(card, scrape_date, facet)
        except Exception as e:
            logger.warning(f"Error extracting job data from card: {e}")
            continue
        if posting:
            postings.append(posting)
    return postings


def extract_postings(
    doc: BeautifulSoup, scrape_date: date, facet: str | None = None
) -> list[Posting]:
    """Extract every complete card on a search-results page."""
    cards = find_cards(doc)
    if not cards:
        logger.debug("No job cards found on page")
        return []

    logger.info(f"Found {len(cards)} job cards on page")
    return parse_cards(cards, scrape_date, facet)


def extract_description(doc: BeautifulSoup) -> str:
    """Description text of a job-detail page, without "see more" controls; "" if absent."""
    block = _first_match(doc, DESCRIPTION_SELECTORS)
    if block is None:
        logger.debug("Description element not found in job details page")
        return ""

    for selector in SEE_MORE_SELECTORS:
        for control in block.select(selector):
            control.decompose()

    return block.get_text(" ", strip=True)

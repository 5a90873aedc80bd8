import os
from datetime import date

import pytest
from bs4 import BeautifulSoup

# Set environment variables for tests before any imports happen
os.environ["DB_PATH"] = ":memory:"
os.environ["LINKEDIN_REQUEST_DELAY"] = "0"
os.environ["PROGRESS_CLEANUP_DELAY"] = "300"

from trackjobs_scraper.models import Posting, ScrapeConfig  # noqa: E402


def card_html(
    title: str = "Python Developer",
    company: str = "Tech Corp",
    location: str = "Berlin, Germany",
    href: str = "https://www.linkedin.com/jobs/view/python-developer-1?refId=abc&trk=xyz",
    posted: str | None = "2024-05-01",
) -> str:
    """Markup of one public search-result card."""
    time_tag = (
        f'<time class="job-search-card__listdate" datetime="{posted}">1 week ago</time>'
        if posted
        else ""
    )
    return f"""
    <li>
      <div class="base-card base-search-card job-search-card">
        <a class="base-card__full-link" href="{href}"><span>{title}</span></a>
        <div class="base-search-card__info">
          <h3 class="base-search-card__title">{title}</h3>
          <h4 class="base-search-card__subtitle"><a class="hidden-nested-link">{company}</a></h4>
          <div class="base-search-card__metadata">
            <span class="job-search-card__location">{location}</span>
            {time_tag}
          </div>
        </div>
      </div>
    </li>
    """


def results_page(*cards: str) -> str:
    return f"<html><head><title>Jobs</title></head><body><ul>{''.join(cards)}</ul></body></html>"


def detail_page(description: str) -> str:
    return f"""
    <html><head><title>Job</title></head><body>
      <div class="description__text">
        <div class="show-more-less-html__markup">{description}</div>
        <button class="show-more-less-html__button">Show more</button>
      </div>
    </body></html>
    """


CHALLENGE_PAGE = (
    "<html><head><title>Security Verification | LinkedIn</title></head>"
    "<body><p>Let's do a quick security check</p></body></html>"
)


def job_url(n: int) -> str:
    return f"https://www.linkedin.com/jobs/view/{n}"


def page_of(*jobs: tuple[int, str]) -> str:
    """Results page with one card per (job number, title)."""
    return results_page(*(card_html(title=title, href=job_url(n)) for n, title in jobs))


class FakeSession:
    """
    Stands in for LinkedInSession: search pages are served in request order
    (an exhausted list serves an empty results page), detail pages by URL.
    A search entry may be None (fetch gave up) or an exception to raise.
    """

    def __init__(self, search_pages=(), details=None, bootstrap_error=None):
        self.search_pages = list(search_pages)
        self.details = details or {}
        self.bootstrap_error = bootstrap_error
        self.search_urls: list[str] = []
        self.detail_urls: list[str] = []
        self.closed = False

    async def bootstrap(self):
        if self.bootstrap_error:
            raise self.bootstrap_error
        return {}

    async def fetch(self, url):
        if "/jobs/search" in url:
            self.search_urls.append(url)
            page = self.search_pages.pop(0) if self.search_pages else results_page()
        else:
            self.detail_urls.append(url)
            page = self.details.get(url)
        if isinstance(page, Exception):
            raise page
        return BeautifulSoup(page, "html.parser") if page is not None else None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True


class MemoryStore:
    def __init__(self, existing=(), fail_on=()):
        self.saved: list[Posting] = []
        self.existing = list(existing)
        self.fail_on = set(fail_on)

    def exists_similar(self, title, company, date_posted, user_id):
        return any(
            p.title.lower() == title.lower()
            and p.company.lower() == company.lower()
            and p.user_id == user_id
            and (p.date_posted is None or date_posted is None or p.date_posted == date_posted)
            for p in self.existing + self.saved
        )

    def save(self, posting):
        if posting.title in self.fail_on:
            raise RuntimeError("disk full")
        saved = posting.model_copy(update={"id": len(self.saved) + 1})
        self.saved.append(saved)
        return saved


@pytest.fixture
def sample_posting():
    """A reusable sample Posting for tests."""
    return Posting(
        title="Senior Python Developer",
        company="Tech Corp",
        location="Berlin, Germany",
        description="We are looking for a senior Python developer with 5+ years experience.",
        url="https://www.linkedin.com/jobs/view/123",
        date_posted=date(2024, 5, 1),
        date_scraped=date(2024, 5, 3),
        experience_level="Senior",
        job_type="Full-time",
    )


@pytest.fixture
def sample_posting_no_description():
    """A reusable sample Posting that has no description yet."""
    return Posting(
        title="QA Automation Engineer",
        company="Quality Co",
        url="https://www.linkedin.com/jobs/view/456",
        date_posted=date(2024, 5, 2),
    )


@pytest.fixture
def scrape_config():
    return ScrapeConfig(keywords="python developer", location="Berlin", pages_requested=2)

import logging
import random
from types import TracebackType

import httpx
from bs4 import BeautifulSoup

from trackjobs_scraper.retry import exponential_backoff, linear_backoff, retry_with_backoff
from trackjobs_scraper.scrapers.search_url import LINKEDIN_BASE
from trackjobs_scraper.scrapers.selectors import CHALLENGE_BODY_MARKERS, CHALLENGE_TITLE_MARKERS

logger = logging.getLogger(__name__)

BOOTSTRAP_ATTEMPTS = 3
FETCH_ATTEMPTS = 3
HTTP_TIMEOUT = 30.0  # seconds
REQUEST_DELAY = 2.0  # seconds, base of every backoff

# Rotated per request
USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.6 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
)


class SessionBootstrapError(RuntimeError):
    """Raised when no anonymous session could be established."""


class ChallengePageError(Exception):
    """The site answered with a bot-check page instead of content."""


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def is_challenge_page(doc: BeautifulSoup) -> bool:
    """Detect CAPTCHA / security-verification pages by title and body text."""
    title = doc.title.get_text(strip=True).lower() if doc.title else ""
    if any(marker in title for marker in CHALLENGE_TITLE_MARKERS):
        return True
    body = doc.body.get_text(" ", strip=True).lower() if doc.body else ""
    return any(marker in body for marker in CHALLENGE_BODY_MARKERS)


class LinkedInSession:
    """
    Anonymous browsing session against LinkedIn's public pages.

    Owns one httpx.AsyncClient whose cookie jar is shared by every request, so
    cookies set by the homepage and by later responses are sent back on the
    next request. One session per scrape run; never share it between runs.
    """

    def __init__(
        self,
        timeout: float = HTTP_TIMEOUT,
        request_delay: float = REQUEST_DELAY,
        bootstrap_attempts: int = BOOTSTRAP_ATTEMPTS,
        fetch_attempts: int = FETCH_ATTEMPTS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.request_delay = request_delay
        self.bootstrap_attempts = bootstrap_attempts
        self.fetch_attempts = fetch_attempts
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    async def bootstrap(self) -> httpx.Cookies:
        """
        GET the LinkedIn homepage to obtain session cookies.
        Retries with linear backoff (delay * attempt); raises SessionBootstrapError
        once attempts are exhausted.
        """
        logger.debug("Initializing LinkedIn session")
        try:
            await retry_with_backoff(
                lambda: self._get(f"{LINKEDIN_BASE}/"),
                attempts=self.bootstrap_attempts,
                delay_for=linear_backoff(self.request_delay),
                retry_on=(httpx.HTTPError,),
                description="Session bootstrap",
            )
        except httpx.HTTPError as e:
            raise SessionBootstrapError(f"Could not connect to LinkedIn: {e}") from e

        logger.debug(f"Session initialized with {len(self.cookies)} cookies")
        return self.cookies

    async def fetch(self, url: str) -> BeautifulSoup | None:
        """
        GET and parse a page, retrying transport failures with exponential
        backoff (delay * 2^attempt) and challenge pages with a flat delay * 2.
        Both kinds of failure share one attempt budget. Returns None when
        the budget is exhausted.
        """
        transport_backoff = exponential_backoff(self.request_delay)

        def delay_for(attempt: int, exc: BaseException) -> float:
            if isinstance(exc, ChallengePageError):
                return self.request_delay * 2
            return transport_backoff(attempt, exc)

        try:
            return await retry_with_backoff(
                lambda: self._fetch_document(url),
                attempts=self.fetch_attempts,
                delay_for=delay_for,
                retry_on=(httpx.HTTPError, ChallengePageError),
                description=f"Fetching {url}",
            )
        except (httpx.HTTPError, ChallengePageError):
            return None

    async def _fetch_document(self, url: str) -> BeautifulSoup:
        response = await self._get(url)
        doc = BeautifulSoup(response.text, "html.parser")
        if is_challenge_page(doc):
            logger.warning("LinkedIn is showing a CAPTCHA or security verification page")
            raise ChallengePageError(f"challenge page served for {url}")
        return doc

    async def _get(self, url: str) -> httpx.Response:
        response = await self._client.get(url, headers={"User-Agent": random_user_agent()})
        response.raise_for_status()
        return response

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "LinkedInSession":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

from unittest.mock import AsyncMock, call, patch

import httpx
import pytest
from bs4 import BeautifulSoup
from conftest import CHALLENGE_PAGE, card_html, results_page

from trackjobs_scraper.scrapers.http_session import (
    USER_AGENTS,
    LinkedInSession,
    SessionBootstrapError,
    is_challenge_page,
)

HOMEPAGE = "https://www.linkedin.com/"
SEARCH = "https://www.linkedin.com/jobs/search?keywords=python&location=Berlin&start=0"


# --- Challenge detection ---


def test_detects_challenge_by_title():
    assert is_challenge_page(BeautifulSoup(CHALLENGE_PAGE, "html.parser"))


def test_detects_challenge_by_captcha_title():
    doc = BeautifulSoup("<html><head><title>CAPTCHA</title></head><body></body></html>", "html.parser")
    assert is_challenge_page(doc)


def test_detects_challenge_by_body_text():
    html = (
        "<html><head><title>LinkedIn</title></head>"
        "<body><p>We've detected Unusual Activity from your network.</p></body></html>"
    )
    assert is_challenge_page(BeautifulSoup(html, "html.parser"))


def test_regular_results_page_is_not_a_challenge():
    assert not is_challenge_page(BeautifulSoup(results_page(card_html()), "html.parser"))


def test_page_without_title_or_body():
    assert not is_challenge_page(BeautifulSoup("<div>plain</div>", "html.parser"))


# --- Bootstrap ---


@pytest.mark.asyncio
async def test_bootstrap_collects_cookies(httpx_mock):
    httpx_mock.add_response(
        url=HOMEPAGE,
        text="<html><body>Welcome</body></html>",
        headers={"Set-Cookie": "bcookie=abc123; Path=/; Domain=.linkedin.com"},
    )

    async with LinkedInSession(request_delay=1.0) as session:
        cookies = await session.bootstrap()

    assert cookies.get("bcookie") == "abc123"


@pytest.mark.asyncio
async def test_bootstrap_retries_with_linear_backoff(httpx_mock):
    httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=HOMEPAGE)
    httpx_mock.add_response(url=HOMEPAGE, status_code=503)
    httpx_mock.add_response(url=HOMEPAGE, text="<html><body>ok</body></html>")

    with patch("trackjobs_scraper.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        async with LinkedInSession(request_delay=1.5) as session:
            await session.bootstrap()

    assert mock_sleep.await_args_list == [call(1.5), call(3.0)]
    assert len(httpx_mock.get_requests()) == 3


@pytest.mark.asyncio
async def test_bootstrap_gives_up_after_three_attempts(httpx_mock):
    for _ in range(3):
        httpx_mock.add_exception(httpx.ConnectTimeout("timed out"), url=HOMEPAGE)

    with patch("trackjobs_scraper.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        async with LinkedInSession(request_delay=1.0) as session:
            with pytest.raises(SessionBootstrapError, match="Could not connect"):
                await session.bootstrap()

    assert mock_sleep.await_count == 2


# --- Fetch ---


@pytest.mark.asyncio
async def test_fetch_returns_parsed_document(httpx_mock):
    httpx_mock.add_response(url=SEARCH, text=results_page(card_html(title="Backend Engineer")))

    async with LinkedInSession(request_delay=1.0) as session:
        doc = await session.fetch(SEARCH)

    assert doc is not None
    assert doc.select_one("h3.base-search-card__title").get_text(strip=True) == "Backend Engineer"


@pytest.mark.asyncio
async def test_fetch_sends_rotating_user_agent(httpx_mock):
    httpx_mock.add_response(url=SEARCH, text=results_page())

    async with LinkedInSession(request_delay=1.0) as session:
        await session.fetch(SEARCH)

    assert httpx_mock.get_requests()[0].headers["User-Agent"] in USER_AGENTS


@pytest.mark.asyncio
async def test_cookies_are_sent_on_later_requests(httpx_mock):
    httpx_mock.add_response(
        url=HOMEPAGE,
        text="<html><body>Welcome</body></html>",
        headers={"Set-Cookie": "JSESSIONID=xyz; Path=/; Domain=.linkedin.com"},
    )
    httpx_mock.add_response(url=SEARCH, text=results_page())

    async with LinkedInSession(request_delay=1.0) as session:
        await session.bootstrap()
        await session.fetch(SEARCH)

    search_request = httpx_mock.get_requests()[1]
    assert "JSESSIONID=xyz" in search_request.headers["Cookie"]


@pytest.mark.asyncio
async def test_fetch_waits_double_delay_after_challenge_page(httpx_mock):
    httpx_mock.add_response(url=SEARCH, text=CHALLENGE_PAGE)
    httpx_mock.add_response(url=SEARCH, text=results_page(card_html()))

    with patch("trackjobs_scraper.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        async with LinkedInSession(request_delay=2.0) as session:
            doc = await session.fetch(SEARCH)

    assert doc is not None
    assert not is_challenge_page(doc)
    mock_sleep.assert_awaited_once_with(4.0)


@pytest.mark.asyncio
async def test_fetch_uses_exponential_backoff_for_transport_errors(httpx_mock):
    httpx_mock.add_exception(httpx.ReadTimeout("slow"), url=SEARCH)
    httpx_mock.add_response(url=SEARCH, status_code=429)
    httpx_mock.add_response(url=SEARCH, text=results_page())

    with patch("trackjobs_scraper.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        async with LinkedInSession(request_delay=1.0) as session:
            doc = await session.fetch(SEARCH)

    assert doc is not None
    assert mock_sleep.await_args_list == [call(2.0), call(4.0)]


@pytest.mark.asyncio
async def test_fetch_returns_none_when_attempts_exhausted(httpx_mock):
    httpx_mock.add_response(url=SEARCH, text=CHALLENGE_PAGE)
    httpx_mock.add_exception(httpx.ConnectError("reset"), url=SEARCH)
    httpx_mock.add_response(url=SEARCH, text=CHALLENGE_PAGE)

    with patch("trackjobs_scraper.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        async with LinkedInSession(request_delay=1.0) as session:
            doc = await session.fetch(SEARCH)

    assert doc is None
    # challenge -> 2 * delay, transport failure on attempt 2 -> delay * 2^2
    assert mock_sleep.await_args_list == [call(2.0), call(4.0)]

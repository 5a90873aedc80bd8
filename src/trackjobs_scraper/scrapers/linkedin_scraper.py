import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from types import TracebackType
from typing import Protocol

from bs4 import BeautifulSoup

from trackjobs_scraper.config import ScraperSettings
from trackjobs_scraper.dedup import Deduplicator, JobStore
from trackjobs_scraper.facets import canonical_experience_level
from trackjobs_scraper.filters import FilterPipeline
from trackjobs_scraper.models import (
    Posting,
    ProgressState,
    ScrapeConfig,
    ScrapeResult,
    ScrapeState,
    ScrapeStats,
)
from trackjobs_scraper.progress import ProgressRegistry
from trackjobs_scraper.scrapers.base import BaseScraper
from trackjobs_scraper.scrapers.details import attach_description
from trackjobs_scraper.scrapers.extractor import find_cards, parse_cards
from trackjobs_scraper.scrapers.http_session import LinkedInSession, SessionBootstrapError
from trackjobs_scraper.scrapers.search_url import build_search_url

logger = logging.getLogger(__name__)

# Progress milestones (percent)
CONNECTING_PERCENT = 2
CONNECTED_PERCENT = 5
SEARCH_SPAN = 80  # searching covers CONNECTED_PERCENT .. CONNECTED_PERCENT + SEARCH_SPAN
FILTERING_PERCENT = 88
SAVING_PERCENT = 90
SAVING_SPAN = 9
COMPLETED_PERCENT = 100


class ScrapeSession(Protocol):
    async def bootstrap(self) -> object: ...

    async def fetch(self, url: str) -> BeautifulSoup | None: ...

    async def __aenter__(self) -> "ScrapeSession": ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...


def resolve_facets(config: ScrapeConfig) -> list[str | None]:
    """
    Experience levels to search one at a time, in order and without repeats.
    Unmapped levels are skipped; with none left a single unfaceted pass runs.
    """
    facets: list[str | None] = []
    for level in config.experience_levels_include:
        name = canonical_experience_level(level)
        if name is None:
            logger.warning(f"Skipping unknown experience level '{level}'")
        elif name not in facets:
            facets.append(name)
    return facets or [None]


@dataclass
class _Run:
    """Mutable bookkeeping of a single scrape run."""

    token: str
    config: ScrapeConfig
    dedup: Deduplicator
    facets: list[str | None]
    pages: int
    scrape_date: date
    state: ScrapeState = ScrapeState.INITIALIZING
    percent: int = 0
    collected: list[Posting] = field(default_factory=list)
    filtered: list[Posting] | None = None
    saved: list[Posting] = field(default_factory=list)

    @property
    def stats(self) -> ScrapeStats:
        return self.config.stats

    @property
    def faceted(self) -> bool:
        return self.facets != [None]


class LinkedInScraper(BaseScraper):
    """
    Scrapes LinkedIn's public job search for one ScrapeConfig.

    Connects once, then searches each experience-level facet page by page,
    dropping URLs already seen in the run and fetching descriptions for small
    pages. The combined postings go through the filter pipeline, and whatever
    the store does not already hold is saved. Progress is written to the
    registry under the run token throughout.
    """

    def __init__(
        self,
        store: JobStore,
        progress: ProgressRegistry,
        settings: ScraperSettings | None = None,
        session_factory: Callable[[], ScrapeSession] | None = None,
    ) -> None:
        self.store = store
        self.progress = progress
        self.settings = settings or ScraperSettings()
        self._session_factory = session_factory or self._default_session

    def _default_session(self) -> ScrapeSession:
        return LinkedInSession(
            timeout=self.settings.http_timeout,
            request_delay=self.settings.request_delay,
        )

    async def scrape(self, config: ScrapeConfig, token: str) -> ScrapeResult:
        logger.info(
            f"Starting LinkedIn job scraping with keywords: {config.keywords}, "
            f"location: {config.location}"
        )
        started = time.monotonic()
        config.stats = ScrapeStats()
        run = _Run(
            token=token,
            config=config,
            dedup=Deduplicator(self.store),
            facets=resolve_facets(config),
            pages=config.clamp_pages(self.settings.max_pages),
            scrape_date=date.today(),
        )
        self.progress.start(token, "Initializing scrape")

        try:
            await self._run(run)
        except SessionBootstrapError as e:
            logger.error(f"Error during LinkedIn scraping: {e}")
            self._fail(run, str(e))
        except Exception as e:
            logger.exception(f"Error during LinkedIn scraping: {e}")
            self._fail(run, f"Error scraping jobs: {e}")
        finally:
            run.stats.elapsed_ms = int((time.monotonic() - started) * 1000)
            self.progress.schedule_cleanup(token, self.settings.progress_cleanup_delay)

        stats = run.stats
        logger.info(f"LinkedIn scraping completed in {stats.elapsed_ms} ms")
        logger.info(
            f"Scraping summary: Pages: {stats.pages_scraped}, Total jobs: {stats.total_found}, "
            f"After filtering: {stats.after_filtering}, "
            f"Duplicates skipped: {stats.duplicates_skipped}"
        )
        return ScrapeResult(
            postings=run.filtered if run.filtered is not None else run.collected,
            saved=run.saved,
            stats=stats,
            state=run.state,
            error=None if run.state == ScrapeState.COMPLETED else self.progress.get(token).status,
        )

    async def _run(self, run: _Run) -> None:
        async with self._session_factory() as session:
            self._enter(run, ScrapeState.CONNECTING)
            self._report(run, CONNECTING_PERCENT, "Connecting to LinkedIn")
            await session.bootstrap()
            logger.info("LinkedIn session initialized successfully")
            self._report(run, CONNECTED_PERCENT, "Connected to LinkedIn")

            self._enter(run, ScrapeState.SEARCHING)
            for index, facet in enumerate(run.facets):
                if index > 0:
                    await asyncio.sleep(self.settings.request_delay * 2)
                await self._search_facet(session, run, index, facet)

        self._enter(run, ScrapeState.FILTERING)
        self._report(run, FILTERING_PERCENT, f"Filtering {len(run.collected)} jobs")
        run.filtered = FilterPipeline.from_config(run.config).apply(run.collected)
        run.stats.after_filtering = len(run.filtered)
        logger.info(
            f"Filtering complete: {len(run.filtered)} jobs after filtering "
            f"(from {len(run.collected)} total jobs)"
        )

        self._enter(run, ScrapeState.SAVING)
        self._save_all(run, run.filtered)

        self._enter(run, ScrapeState.COMPLETED)
        self.progress.update(
            run.token,
            COMPLETED_PERCENT,
            f"Scraping completed: {len(run.saved)} new jobs saved, "
            f"{run.stats.duplicates_skipped} duplicates skipped",
        )

    async def _search_facet(
        self, session: ScrapeSession, run: _Run, index: int, facet: str | None
    ) -> None:
        """
        Walk the result pages of one facet, appending new postings to the run
        as each page completes. An empty page ends the facet early.
        """
        label = f" ({facet} {index + 1}/{len(run.facets)})" if facet else ""

        for page in range(run.pages):
            logger.info(f"Scraping page {page + 1} of {run.pages}{label}")
            run.stats.pages_scraped += 1

            url = build_search_url(run.config, page, facet)
            logger.debug(f"Requesting URL: {url}")
            doc = await session.fetch(url)

            if doc is None:
                logger.warning(f"Failed to retrieve page {page + 1} after retries")
            else:
                cards = find_cards(doc)
                page_postings = parse_cards(cards, run.scrape_date, facet)
                run.stats.total_found += len(page_postings)
                if not page_postings:
                    logger.info(f"No jobs found on page {page + 1}, ending search{label}")
                    break

                new_postings = run.dedup.filter_new(page_postings)
                run.stats.record_duplicates(len(page_postings) - len(new_postings))
                logger.info(
                    f"Found {len(page_postings)} jobs in {len(cards)} cards on page {page + 1} "
                    f"({len(new_postings)} new in this run)"
                )

                if run.config.fetch_descriptions:
                    await self._fetch_details(session, run, page, len(cards), new_postings)
                run.collected.extend(new_postings)

            self._report_page(run, index, facet, page)

            if page < run.pages - 1:
                logger.debug(f"Waiting {self.settings.request_delay}s before next page")
                await asyncio.sleep(self.settings.request_delay)

    async def _fetch_details(
        self,
        session: ScrapeSession,
        run: _Run,
        page: int,
        card_count: int,
        new_postings: list[Posting],
    ) -> None:
        if card_count >= self.settings.detail_fetch_ceiling:
            logger.info(
                f"Skipping detailed job scraping for page {page + 1} "
                f"as there are too many jobs ({card_count})"
            )
            return

        for count, posting in enumerate(new_postings, start=1):
            logger.info(
                f"Getting details for job {count}/{len(new_postings)}: "
                f"{posting.title} at {posting.company}"
            )
            await asyncio.sleep(self.settings.request_delay)
            await attach_description(session, posting)

    def _save_all(self, run: _Run, postings: list[Posting]) -> None:
        """Save postings the store does not already hold; one failure never stops the batch."""
        user_id = run.config.user_id
        total = len(postings)
        saved_before = len(run.saved)
        store_dups_before = run.dedup.store_duplicates

        for count, posting in enumerate(postings, start=1):
            try:
                if run.dedup.is_stored_duplicate(posting, user_id):
                    run.stats.record_duplicates(1)
                else:
                    run.saved.append(self.store.save(posting.model_copy(update={"user_id": user_id})))
                    logger.debug(f"Saved job: {posting.title} at {posting.company}")
            except Exception as e:
                logger.warning(f"Error saving job {posting.title}: {e}")
            self._report(
                run,
                SAVING_PERCENT + (SAVING_SPAN * count) // total,
                f"Saving jobs ({count}/{total})",
            )

        logger.info(
            f"Saved {len(run.saved) - saved_before} new jobs to the database "
            f"(skipped {run.dedup.store_duplicates - store_dups_before} duplicates)"
        )

    def _enter(self, run: _Run, state: ScrapeState) -> None:
        logger.debug(f"Scrape {run.token}: {run.state} -> {state}")
        run.state = state

    def _report(self, run: _Run, percent: int, status: str) -> None:
        """Write progress, never letting the percentage go backwards."""
        run.percent = max(run.percent, percent)
        self.progress.update(run.token, run.percent, status)

    def _report_page(self, run: _Run, index: int, facet: str | None, page: int) -> None:
        fraction = (index + (page + 1) / run.pages) / len(run.facets)
        run.percent = max(run.percent, CONNECTED_PERCENT + int(SEARCH_SPAN * fraction))
        status = f"Scraped page {page + 1} of {run.pages}"
        if facet:
            status += f" for {facet} ({index + 1}/{len(run.facets)})"
        self.progress.update_full(
            run.token,
            ProgressState(
                percent_complete=run.percent,
                current_page=page + 1,
                total_pages=run.pages,
                status=status,
                experience_level_index=index,
                total_experience_levels=len(run.facets) if run.faceted else 0,
                current_experience_level=facet,
            ),
        )

    def _fail(self, run: _Run, message: str) -> None:
        self._enter(run, ScrapeState.FAILED)
        self.progress.fail(run.token, message)

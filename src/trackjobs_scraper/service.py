import asyncio
import logging
import uuid
from collections.abc import Callable
from typing import Any

from trackjobs_scraper.config import ScraperSettings
from trackjobs_scraper.dedup import JobStore
from trackjobs_scraper.models import ProgressState, ScrapeConfig, ScrapeResult
from trackjobs_scraper.progress import ProgressRegistry
from trackjobs_scraper.scrapers.linkedin_scraper import LinkedInScraper, ScrapeSession

logger = logging.getLogger(__name__)


class ScrapeService:
    """
    Trigger/Poll front of the scraper.

    trigger() returns a token right away and runs the scrape as an asyncio
    task; poll() reads the progress registry at any time. Every run gets its
    own LinkedInScraper (and with it its own HTTP session).
    """

    def __init__(
        self,
        store: JobStore,
        settings: ScraperSettings | None = None,
        progress: ProgressRegistry | None = None,
        session_factory: Callable[[], ScrapeSession] | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or ScraperSettings()
        self.progress = progress or ProgressRegistry()
        self._session_factory = session_factory
        self._tasks: dict[str, asyncio.Task[ScrapeResult]] = {}
        self._results: dict[str, ScrapeResult] = {}
        self._result_timers: dict[str, asyncio.TimerHandle] = {}

    def trigger(self, payload: ScrapeConfig | dict[str, Any]) -> str:
        """
        Validate `payload` and start a scrape in the background.
        Must be called with an event loop running. Raises pydantic.ValidationError
        for an invalid payload, before any token is issued.
        """
        config = (
            payload.model_copy(deep=True)
            if isinstance(payload, ScrapeConfig)
            else ScrapeConfig.model_validate(payload)
        )
        token = uuid.uuid4().hex
        self.progress.start(token)
        task = asyncio.create_task(self._run(config, token), name=f"scrape-{token}")
        self._tasks[token] = task
        task.add_done_callback(lambda _: self._tasks.pop(token, None))
        logger.info(f"Started scrape {token} for '{config.keywords}' in '{config.location}'")
        return token

    def poll(self, token: str) -> ProgressState:
        return self.progress.get(token)

    def is_running(self, token: str) -> bool:
        return token in self._tasks

    async def wait(self, token: str) -> ScrapeResult | None:
        """Wait for a running scrape and return its result (None for unknown tokens)."""
        task = self._tasks.get(token)
        if task is not None:
            return await task
        return self._results.get(token)

    def take_result(self, token: str) -> ScrapeResult | None:
        """Hand over a finished run's result; later calls for the same token get None."""
        timer = self._result_timers.pop(token, None)
        if timer is not None:
            timer.cancel()
        return self._results.pop(token, None)

    def _discard_result(self, token: str) -> None:
        self._result_timers.pop(token, None)
        if self._results.pop(token, None) is not None:
            logger.debug(f"Discarded unclaimed result for scrape {token}")

    async def _run(self, config: ScrapeConfig, token: str) -> ScrapeResult:
        scraper = LinkedInScraper(
            self.store,
            self.progress,
            settings=self.settings,
            session_factory=self._session_factory,
        )
        result = await scraper.scrape(config, token)
        self._results[token] = result
        # Unclaimed results expire together with the progress entry
        self._result_timers[token] = asyncio.get_running_loop().call_later(
            self.settings.progress_cleanup_delay, self._discard_result, token
        )
        return result

    async def close(self) -> None:
        """Let in-flight scrapes finish, then drop unclaimed results and tear down progress."""
        if self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} running scrape(s) to finish")
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        for timer in self._result_timers.values():
            timer.cancel()
        self._result_timers.clear()
        self._results.clear()
        self.progress.close()

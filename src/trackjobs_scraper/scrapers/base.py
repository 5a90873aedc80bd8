from abc import ABC, abstractmethod

from trackjobs_scraper.models import ScrapeConfig, ScrapeResult


class BaseScraper(ABC):
    """
    Abstract base class for job-board scrapers.
    """

    @abstractmethod
    async def scrape(self, config: ScrapeConfig, token: str) -> ScrapeResult:
        """
        Run one scrape described by `config`, reporting progress under `token`.
        Must not raise: failures are reported through the result and progress.
        """

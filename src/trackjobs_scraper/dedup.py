"""Duplicate suppression for scraped postings.

Two tiers:
  1. run-scoped: canonical URL already seen in this run (in memory)
  2. store-scoped: same title and company (case-insensitive) already saved
                   for the same user with an unknown or identical posted date
"""

import logging
from datetime import date
from typing import Protocol

from trackjobs_scraper.models import Posting

logger = logging.getLogger(__name__)


class JobStore(Protocol):
    """Persistence collaborator the scraper saves postings into."""

    def exists_similar(
        self, title: str, company: str, date_posted: date | None, user_id: str | None
    ) -> bool: ...

    def save(self, posting: Posting) -> Posting: ...


class Deduplicator:
    """
    One instance per scrape run. Counts what each tier dropped so the caller
    can fold the numbers into the run statistics.
    """

    def __init__(self, store: JobStore | None = None) -> None:
        self._store = store
        self._seen_urls: set[str] = set()
        self.run_duplicates = 0
        self.store_duplicates = 0

    @property
    def duplicates_skipped(self) -> int:
        return self.run_duplicates + self.store_duplicates

    def is_run_duplicate(self, posting: Posting) -> bool:
        """
        True if the posting's URL was already seen in this run; otherwise
        remembers the URL. Postings without a URL are never duplicates.
        """
        if not posting.url:
            return False
        if posting.url in self._seen_urls:
            self.run_duplicates += 1
            logger.debug(f"Duplicate job skipped in this run: {posting.url}")
            return True
        self._seen_urls.add(posting.url)
        return False

    def filter_new(self, postings: list[Posting]) -> list[Posting]:
        """Drop postings whose URL was already seen in this run, keeping order."""
        return [p for p in postings if not self.is_run_duplicate(p)]

    def is_stored_duplicate(self, posting: Posting, user_id: str | None) -> bool:
        """Ask the store whether an equivalent posting is already saved for this user."""
        if self._store is None:
            return False
        if self._store.exists_similar(posting.title, posting.company, posting.date_posted, user_id):
            self.store_duplicates += 1
            logger.debug(f"Duplicate job already stored: {posting.title} at {posting.company}")
            return True
        return False

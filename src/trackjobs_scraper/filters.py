"""Filter pipeline applied to the combined postings of a scrape run.

Stage order is fixed:
  1. title include        keep if any word is in the title
  2. title exclude        drop if any word is in the title
  3. company exclude      drop if any word is in the company
  4. description exclude  drop if any word is in the description
                          (postings without a description are kept)
  5. experience exclude   drop if the posting's level maps to an excluded code

A stage with an empty word list is skipped. The pipeline stops early once
nothing is left.
"""

import logging
import unicodedata
from collections.abc import Callable

from trackjobs_scraper.facets import experience_level_code
from trackjobs_scraper.models import Posting, ScrapeConfig

logger = logging.getLogger(__name__)


def normalize_text(text: str | None) -> str:
    """
    Normalize Unicode text to NFKD form and casefold it, so stylized
    characters (e.g. mathematical bold) match their plain equivalents.
    """
    if not text:
        return ""
    return unicodedata.normalize("NFKD", text).casefold()


def _normalize_words(words: list[str]) -> list[str]:
    return [normalize_text(w.strip()) for w in words if w.strip()]


class WordFilter:
    """
    Case-insensitive substring filter over one text field of a posting.
    With `keep_matches` it keeps postings matching any word; otherwise it drops them.
    """

    def __init__(
        self,
        name: str,
        words: list[str],
        field: Callable[[Posting], str | None],
        keep_matches: bool = False,
        keep_blank: bool = False,
    ) -> None:
        self.name = name
        self._words = _normalize_words(words)
        self._field = field
        self._keep_matches = keep_matches
        self._keep_blank = keep_blank

    @property
    def is_active(self) -> bool:
        return bool(self._words)

    def matches(self, posting: Posting) -> bool:
        text = normalize_text(self._field(posting))
        return any(word in text for word in self._words)

    def keep(self, posting: Posting) -> bool:
        if self._keep_blank and not (self._field(posting) or "").strip():
            return True
        return self.matches(posting) == self._keep_matches

    def __call__(self, postings: list[Posting]) -> list[Posting]:
        if not self.is_active:
            return postings
        result = [p for p in postings if self.keep(p)]
        logger.info(f"{self.name} filter: {len(postings)} -> {len(result)} jobs")
        return result


class ExperienceLevelExcludeFilter:
    """
    Drop postings whose experience level maps to an excluded site code.
    Exclusions and posting levels are both mapped into the site's code space;
    postings whose level cannot be mapped are kept.
    """

    name = "Experience level exclude"

    def __init__(self, levels: list[str]) -> None:
        self._codes: set[str] = set()
        for level in levels:
            code = experience_level_code(level)
            if code is None:
                logger.warning(f"Ignoring unknown experience level exclusion '{level}'")
            else:
                self._codes.add(code)

    @property
    def is_active(self) -> bool:
        return bool(self._codes)

    def keep(self, posting: Posting) -> bool:
        code = experience_level_code(posting.experience_level)
        return code is None or code not in self._codes

    def __call__(self, postings: list[Posting]) -> list[Posting]:
        if not self.is_active:
            return postings
        result = [p for p in postings if self.keep(p)]
        logger.info(f"{self.name} filter: {len(postings)} -> {len(result)} jobs")
        return result


class FilterPipeline:
    """Ordered stages built from a ScrapeConfig."""

    def __init__(self, stages: list[WordFilter | ExperienceLevelExcludeFilter]) -> None:
        self.stages = stages

    @classmethod
    def from_config(cls, config: ScrapeConfig) -> "FilterPipeline":
        return cls(
            [
                WordFilter(
                    "Title include words",
                    config.title_include_words,
                    lambda p: p.title,
                    keep_matches=True,
                ),
                WordFilter("Title exclude words", config.title_exclude_words, lambda p: p.title),
                WordFilter(
                    "Company exclude words", config.company_exclude_words, lambda p: p.company
                ),
                WordFilter(
                    "Description exclude words",
                    config.description_exclude_words,
                    lambda p: p.description,
                    keep_blank=True,
                ),
                ExperienceLevelExcludeFilter(config.experience_level_exclude),
            ]
        )

    def apply(self, postings: list[Posting]) -> list[Posting]:
        logger.info(f"Applying filters to {len(postings)} jobs")
        result = postings
        for stage in self.stages:
            if not result:
                break
            result = stage(result)
        return result


def filter_postings(postings: list[Posting], config: ScrapeConfig) -> list[Posting]:
    return FilterPipeline.from_config(config).apply(postings)

from datetime import date

import pytest
from pydantic import ValidationError

from trackjobs_scraper.models import (
    PROGRESS_FAILED,
    Posting,
    ProgressState,
    ScrapeConfig,
    ScrapeResult,
    ScrapeState,
    ScrapeStats,
)

# --- Posting ---


def test_valid_posting(sample_posting):
    assert sample_posting.title == "Senior Python Developer"
    assert sample_posting.id is None
    assert sample_posting.user_id is None
    assert sample_posting.experience_level_source == "inferred"


def test_posting_defaults():
    posting = Posting(title="Python Developer", company="Tech Corp")

    assert posting.location == ""
    assert posting.url == ""
    assert posting.description is None
    assert posting.date_posted is None
    assert posting.date_scraped == date.today()


def test_posting_missing_required_fields():
    with pytest.raises(ValidationError):
        Posting(title="Python Developer")


def test_inferred_level_does_not_override_facet_level():
    posting = Posting(
        title="Senior Engineer",
        company="Tech Corp",
        experience_level="ENTRY_LEVEL",
        experience_level_source="facet",
    )
    posting.apply_inferred_experience_level("Senior")
    assert posting.experience_level == "ENTRY_LEVEL"


def test_inferred_level_replaces_inferred_level(sample_posting):
    sample_posting.apply_inferred_experience_level("Junior")
    assert sample_posting.experience_level == "Junior"


def test_invalid_level_source_rejected():
    with pytest.raises(ValidationError):
        Posting(title="A", company="B", experience_level_source="guessed")


# --- ScrapeConfig ---


def test_config_defaults(scrape_config):
    assert scrape_config.pages_requested == 2
    assert scrape_config.days_old == 7
    assert scrape_config.remote_only is False
    assert scrape_config.fetch_descriptions is True
    assert scrape_config.experience_levels_include == []
    assert scrape_config.stats == ScrapeStats()


def test_config_strips_keywords_and_location():
    config = ScrapeConfig(keywords="  python ", location=" Berlin ")
    assert config.keywords == "python"
    assert config.location == "Berlin"


@pytest.mark.parametrize("field", ["keywords", "location"])
def test_config_rejects_blank_required_fields(field):
    payload = {"keywords": "python", "location": "Berlin", field: "   "}
    with pytest.raises(ValidationError):
        ScrapeConfig(**payload)


def test_config_rejects_zero_pages():
    with pytest.raises(ValidationError):
        ScrapeConfig(keywords="python", location="Berlin", pages_requested=0)


def test_config_word_lists_accept_comma_separated_strings():
    config = ScrapeConfig(
        keywords="python",
        location="Berlin",
        title_exclude_words="senior, lead,, ",
        experience_levels_include="ENTRY_LEVEL,DIRECTOR",
        company_exclude_words=None,
    )
    assert config.title_exclude_words == ["senior", "lead"]
    assert config.experience_levels_include == ["ENTRY_LEVEL", "DIRECTOR"]
    assert config.company_exclude_words == []


def test_config_word_lists_drop_blank_entries():
    config = ScrapeConfig(keywords="python", location="Berlin", title_include_words=[" go ", ""])
    assert config.title_include_words == ["go"]


def test_config_blank_facets_become_none():
    config = ScrapeConfig(keywords="python", location="Berlin", experience_level=" ", job_type="")
    assert config.experience_level is None
    assert config.job_type is None


@pytest.mark.parametrize("requested, expected", [(3, 3), (10, 10), (25, 10)])
def test_clamp_pages(requested, expected):
    config = ScrapeConfig(keywords="python", location="Berlin", pages_requested=requested)

    assert config.clamp_pages(10) == expected
    assert config.pages_requested == expected


# --- ScrapeStats ---


def test_record_duplicates_accumulates():
    stats = ScrapeStats()
    stats.record_duplicates(2)
    stats.record_duplicates(0)
    stats.record_duplicates(1)
    assert stats.duplicates_skipped == 3


def test_record_duplicates_rejects_negative():
    stats = ScrapeStats(duplicates_skipped=4)
    with pytest.raises(ValueError):
        stats.record_duplicates(-1)
    assert stats.duplicates_skipped == 4


# --- ProgressState ---


def test_progress_state_not_found():
    state = ProgressState.not_found()
    assert state.found is False
    assert state.percent_complete == 0
    assert state.status == "Not found"
    assert not state.is_finished


def test_progress_state_terminal_flags():
    assert ProgressState(percent_complete=100).is_finished
    assert not ProgressState(percent_complete=100).is_failed
    failed = ProgressState(percent_complete=PROGRESS_FAILED, status="boom")
    assert failed.is_failed
    assert failed.is_finished
    assert not ProgressState(percent_complete=50).is_finished


# --- ScrapeResult ---


def test_scrape_result_defaults():
    result = ScrapeResult()
    assert result.state == ScrapeState.COMPLETED
    assert result.postings == []
    assert result.error is None


def test_scrape_state_values():
    assert ScrapeState.FAILED == "failed"
    assert str(ScrapeState.SEARCHING) == "searching"

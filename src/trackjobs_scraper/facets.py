"""Lookup tables between human-readable search facets and LinkedIn query codes.

Every lookup normalizes its input first (case, hyphens, spaces) and returns
``None`` for anything it cannot map, so callers can treat translation as a
total function.
"""

from typing import Final

# Returned by every lookup that cannot translate its input.
UNMAPPED: Final = None

EXPERIENCE_LEVEL_CODES: dict[str, str] = {
    "INTERNSHIP": "1",
    "ENTRY_LEVEL": "2",
    "ASSOCIATE": "3",
    "MID_SENIOR": "4",
    "DIRECTOR": "5",
    "EXECUTIVE": "6",
}

# Alternative spellings, including the tags produced by title inference.
EXPERIENCE_LEVEL_ALIASES: dict[str, str] = {
    "INTERN": "INTERNSHIP",
    "ENTRY": "ENTRY_LEVEL",
    "JUNIOR": "ENTRY_LEVEL",
    "MID": "MID_SENIOR",
    "MID_LEVEL": "MID_SENIOR",
    "SENIOR": "MID_SENIOR",
    "MID_SENIOR_LEVEL": "MID_SENIOR",
}

JOB_TYPE_CODES: dict[str, str] = {
    "FULL_TIME": "F",
    "PART_TIME": "P",
    "CONTRACT": "C",
    "TEMPORARY": "T",
    "INTERNSHIP": "I",
    "VOLUNTEER": "V",
}

JOB_TYPE_ALIASES: dict[str, str] = {
    "FULLTIME": "FULL_TIME",
    "PARTTIME": "PART_TIME",
    "TEMP": "TEMPORARY",
}

RECENCY_CODES: dict[str, str] = {
    "PAST_24_HOURS": "r86400",
    "PAST_WEEK": "r604800",
    "PAST_MONTH": "r2592000",
}

# Upper bound in days for each recency window, smallest first.
RECENCY_WINDOW_DAYS: tuple[tuple[int, str], ...] = (
    (1, "PAST_24_HOURS"),
    (7, "PAST_WEEK"),
    (30, "PAST_MONTH"),
)


def normalize_facet(value: str | None) -> str:
    """Uppercase and collapse hyphens/spaces to underscores: 'Entry-level' -> 'ENTRY_LEVEL'."""
    if not value:
        return ""
    return "_".join(value.strip().upper().replace("-", " ").replace("_", " ").split())


def _reverse(table: dict[str, str]) -> dict[str, str]:
    return {code: name for name, code in table.items()}


_EXPERIENCE_LEVEL_NAMES = _reverse(EXPERIENCE_LEVEL_CODES)
_JOB_TYPE_NAMES = _reverse(JOB_TYPE_CODES)
_RECENCY_NAMES = _reverse(RECENCY_CODES)


def canonical_experience_level(value: str | None) -> str | None:
    """Return the canonical facet name for a name, alias or site code."""
    if value is not None and value.strip() in _EXPERIENCE_LEVEL_NAMES:
        return _EXPERIENCE_LEVEL_NAMES[value.strip()]
    key = normalize_facet(value)
    key = EXPERIENCE_LEVEL_ALIASES.get(key, key)
    return key if key in EXPERIENCE_LEVEL_CODES else UNMAPPED


def experience_level_code(value: str | None) -> str | None:
    """'ENTRY_LEVEL', 'entry level', 'Junior' or '2' -> '2'."""
    name = canonical_experience_level(value)
    return EXPERIENCE_LEVEL_CODES[name] if name else UNMAPPED


def experience_level_from_code(code: str | None) -> str | None:
    return _EXPERIENCE_LEVEL_NAMES.get((code or "").strip(), UNMAPPED)


def job_type_code(value: str | None) -> str | None:
    key = normalize_facet(value)
    key = JOB_TYPE_ALIASES.get(key, key)
    return JOB_TYPE_CODES.get(key, UNMAPPED)


def job_type_from_code(code: str | None) -> str | None:
    return _JOB_TYPE_NAMES.get((code or "").strip().upper(), UNMAPPED)


def recency_code(window: str | None) -> str | None:
    return RECENCY_CODES.get(normalize_facet(window), UNMAPPED)


def recency_from_code(code: str | None) -> str | None:
    return _RECENCY_NAMES.get((code or "").strip(), UNMAPPED)


def recency_window_for_days(days_old: int | None) -> str | None:
    """Smallest window covering ``days_old``; unmapped for 0, negatives and > 30."""
    if days_old is None or days_old <= 0:
        return UNMAPPED
    for max_days, window in RECENCY_WINDOW_DAYS:
        if days_old <= max_days:
            return window
    return UNMAPPED


def days_old_to_recency_code(days_old: int | None) -> str | None:
    return recency_code(recency_window_for_days(days_old))

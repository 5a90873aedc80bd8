"""CSS selectors for LinkedIn's public (logged-out) job pages.

Each constant is a tuple tried in order; the first selector that matches wins.
"""

CARD_SELECTORS: tuple[str, ...] = (
    "div.base-card",
    "div.job-search-card",
    "li div.base-search-card",
)

TITLE_SELECTORS: tuple[str, ...] = (
    "h3.base-search-card__title",
    "h3.job-search-card__title",
)

COMPANY_SELECTORS: tuple[str, ...] = (
    "h4.base-search-card__subtitle",
    "a.hidden-nested-link",
)

LOCATION_SELECTORS: tuple[str, ...] = (
    "span.job-search-card__location",
    "span.base-search-card__metadata",
)

DATE_SELECTORS: tuple[str, ...] = (
    "time.job-search-card__listdate",
    "time.job-search-card__listdate--new",
    "time",
)

LINK_SELECTORS: tuple[str, ...] = (
    "a.base-card__full-link",
    'a[href*="/jobs/view/"]',
)

DESCRIPTION_SELECTORS: tuple[str, ...] = (
    "div.description__text",
    "div.show-more-less-html__markup",
)

# Interactive "see more / see less" controls stripped from descriptions.
SEE_MORE_SELECTORS: tuple[str, ...] = (
    "button",
    ".show-more-less-html__button",
)

# Markers of a bot-check page served instead of real content (matched lowercase).
CHALLENGE_TITLE_MARKERS: tuple[str, ...] = (
    "captcha",
    "security verification",
    "just a moment",
)
CHALLENGE_BODY_MARKERS: tuple[str, ...] = (
    "unusual activity",
    "verify you are a human",
)

import argparse
import asyncio
import logging
import sys
from typing import Any

from pydantic import ValidationError

from trackjobs_scraper.config import DB_PATH, ScraperSettings, load_settings
from trackjobs_scraper.db import Database
from trackjobs_scraper.formatter import ResultFormatter
from trackjobs_scraper.models import ScrapeConfig, ScrapeResult, ScrapeState
from trackjobs_scraper.service import ScrapeService

logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.0

# argparse dest -> ScrapeConfig field, for flags that override a loaded configuration
_CONFIG_FLAGS = {
    "keywords": "keywords",
    "location": "location",
    "pages": "pages_requested",
    "experience_level": "experience_level",
    "include_levels": "experience_levels_include",
    "job_type": "job_type",
    "remote": "remote_only",
    "days_old": "days_old",
    "title_include": "title_include_words",
    "title_exclude": "title_exclude_words",
    "company_exclude": "company_exclude_words",
    "description_exclude": "description_exclude_words",
    "exclude_levels": "experience_level_exclude",
    "fetch_descriptions": "fetch_descriptions",
}


def build_payload(args: argparse.Namespace) -> dict[str, Any]:
    """Collect the scrape parameters given on the command line (unset flags are left out)."""
    payload = {
        field: getattr(args, dest)
        for dest, field in _CONFIG_FLAGS.items()
        if getattr(args, dest) is not None
    }
    payload["user_id"] = args.user
    return payload


def resolve_config(args: argparse.Namespace, db: Database) -> ScrapeConfig:
    """
    Build the ScrapeConfig for this invocation. With --load-config the saved
    configuration is the base and explicit flags override its fields.
    Raises LookupError for an unknown configuration and ValidationError for
    invalid parameters.
    """
    data: dict[str, Any] = {}
    if args.load_config:
        loaded = db.load_config(args.load_config, args.user)
        logger.info(f"Loaded scraper configuration '{args.load_config}'")
        data = loaded.model_dump(exclude={"stats"})
    data.update(build_payload(args))
    return ScrapeConfig.model_validate(data)


async def run_scrape(
    config: ScrapeConfig,
    db: Database,
    settings: ScraperSettings,
    poll_interval: float = POLL_INTERVAL,
) -> ScrapeResult | None:
    """Trigger a scrape and poll its progress until it finishes, logging each new status."""
    service = ScrapeService(db, settings)
    try:
        token = service.trigger(config)
        last_status = None
        while service.is_running(token):
            state = service.poll(token)
            if state.status != last_status:
                logger.info(f"[{state.percent_complete}%] {state.status}")
                last_status = state.status
            await asyncio.sleep(poll_interval)

        await service.wait(token)
        return service.take_result(token)
    finally:
        await service.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="trackjobs-scraper",
        description="Scrape LinkedIn's public job search, filter the results, and store new jobs.",
    )

    parser.add_argument("keywords", nargs="?", default=None, help="Search keywords.")
    parser.add_argument("location", nargs="?", default=None, help="Search location.")

    search = parser.add_argument_group("search")
    search.add_argument("--pages", type=int, default=None, help="Result pages per search.")
    search.add_argument(
        "--experience-level", default=None, help="Single experience level to search for."
    )
    search.add_argument(
        "--include-levels",
        default=None,
        metavar="LEVELS",
        help="Comma-separated experience levels, searched one after another.",
    )
    search.add_argument("--job-type", default=None, help="Job type (e.g. FULL_TIME, CONTRACT).")
    search.add_argument(
        "--remote",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Only remote positions (--no-remote turns it off for a loaded configuration).",
    )
    search.add_argument(
        "--days-old", type=int, default=None, help="Only jobs posted within this many days."
    )

    filters = parser.add_argument_group("filters (comma-separated words)")
    filters.add_argument("--title-include", default=None, metavar="WORDS")
    filters.add_argument("--title-exclude", default=None, metavar="WORDS")
    filters.add_argument("--company-exclude", default=None, metavar="WORDS")
    filters.add_argument("--description-exclude", default=None, metavar="WORDS")
    filters.add_argument("--exclude-levels", default=None, metavar="LEVELS")

    parser.add_argument("--user", default=None, help="Owner of saved jobs and configurations.")
    parser.add_argument(
        "--details",
        dest="fetch_descriptions",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Fetch job detail pages for descriptions (default: on).",
    )
    parser.add_argument(
        "--show-descriptions",
        action="store_true",
        help="Print a description snippet under each job.",
    )

    saved = parser.add_mutually_exclusive_group()
    saved.add_argument("--save-config", metavar="NAME", help="Save this configuration, then run.")
    saved.add_argument("--load-config", metavar="NAME", help="Run a saved configuration.")
    saved.add_argument(
        "--list-configs", action="store_true", help="List saved configurations and exit."
    )
    saved.add_argument("--delete-config", metavar="NAME", help="Delete a saved configuration.")

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    return parser.parse_args(argv)


def _manage_configs(args: argparse.Namespace, db: Database) -> bool:
    """Handle --list-configs and --delete-config; True if nothing else should run."""
    if args.list_configs:
        names = db.list_configs(args.user)
        if not names:
            print("No saved configurations.")
        for name in names:
            print(name)
        return True

    if args.delete_config:
        try:
            db.delete_config(args.delete_config, args.user)
        except LookupError as e:
            logger.error(str(e))
            sys.exit(1)
        print(f"Deleted configuration '{args.delete_config}'.")
        return True

    return False


def cli(argv: list[str] | None = None) -> None:
    """CLI entry point for the package."""
    args = parse_args(argv)

    # Set up logging once, in the application entry point only
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    try:
        settings = load_settings()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    with Database(db_path=DB_PATH) as db:
        if _manage_configs(args, db):
            return

        try:
            config = resolve_config(args, db)
        except (LookupError, ValidationError) as e:
            logger.error(f"Invalid scrape parameters: {e}")
            sys.exit(1)

        if args.save_config:
            try:
                db.save_config(args.save_config, config, args.user)
            except ValueError as e:
                logger.error(str(e))
                sys.exit(1)

        result = asyncio.run(run_scrape(config, db, settings))

    if result is None:
        logger.error("Scrape finished without a result")
        sys.exit(1)

    print(ResultFormatter.summary_message(result))
    for posting in result.postings:
        print(ResultFormatter.format_posting(posting, with_description=args.show_descriptions))

    if result.state == ScrapeState.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    cli()

from trackjobs_scraper.models import Posting, ScrapeResult, ScrapeState


class ResultFormatter:
    """
    Formats scrape results and postings as plain text for the console.
    """

    DESCRIPTION_SNIPPET = 200

    @staticmethod
    def format_duration(ms: int) -> str:
        """
        Render a duration in milliseconds as HH:MM:SS (hours are not wrapped at 24).
        """
        total_seconds = max(ms, 0) // 1000
        hours, remainder = divmod(total_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"

    @classmethod
    def summary_message(cls, result: ScrapeResult) -> str:
        duration = cls.format_duration(result.stats.elapsed_ms)
        if result.state == ScrapeState.FAILED:
            return f"Scraping failed after {duration}: {result.error or 'unknown error'}"
        return (
            f"Scraping completed in {duration}. "
            f"Found {result.stats.after_filtering} jobs after filtering "
            f"from {result.stats.total_found} total jobs scraped."
        )

    @classmethod
    def format_posting(cls, posting: Posting, with_description: bool = False) -> str:
        """
        One line per posting: title, company, location, level and posted date,
        followed by the URL. Optionally appends a truncated description snippet.
        """
        line = f"{posting.title} @ {posting.company}"
        if posting.location:
            line += f" ({posting.location})"

        tags = [t for t in (posting.experience_level, posting.job_type) if t]
        if tags:
            line += f" [{', '.join(tags)}]"
        if posting.date_posted:
            line += f" posted {posting.date_posted.isoformat()}"
        if posting.url:
            line += f"\n    {posting.url}"

        if with_description and posting.description:
            # Truncate at the last word boundary
            desc = " ".join(posting.description.split())
            if len(desc) > cls.DESCRIPTION_SNIPPET:
                desc = desc[: cls.DESCRIPTION_SNIPPET].rsplit(" ", 1)[0] + "..."
            line += f"\n    {desc}"

        return line

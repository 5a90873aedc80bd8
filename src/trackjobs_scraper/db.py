import json
import logging
import sqlite3
from datetime import UTC, date, datetime
from types import TracebackType

from trackjobs_scraper.models import Posting, ScrapeConfig

logger = logging.getLogger(__name__)


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


class Database:
    """
    SQLite store for scraped postings and saved scraper configurations.
    Uses a single persistent connection for both file-based and in-memory databases.
    Supports context manager protocol for proper resource cleanup.
    """

    def __init__(self, db_path: str = "jobs.db") -> None:
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self.init_db()

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the persistent database connection."""
        if self._conn is None:
            raise RuntimeError("Database connection is closed")
        return self._conn

    def init_db(self) -> None:
        """Create the tables if they don't exist."""
        cursor = self.connection.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS jobs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                company TEXT NOT NULL,
                location TEXT NOT NULL DEFAULT '',
                description TEXT,
                url TEXT NOT NULL DEFAULT '',
                date_posted TEXT,
                date_scraped TEXT NOT NULL,
                experience_level TEXT,
                job_type TEXT,
                user_id TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_jobs_title_company
            ON jobs (user_id, LOWER(title), LOWER(company))
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS scraper_configs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                user_id TEXT NOT NULL DEFAULT '',
                config_json TEXT NOT NULL,
                created_at TEXT NOT NULL,
                last_used TEXT NOT NULL,
                UNIQUE (name, user_id)
            )
        """)
        self.connection.commit()
        logger.info(f"Database initialized at {self.db_path}")

    # --- Jobs ---

    def exists_similar(
        self, title: str, company: str, date_posted: date | None, user_id: str | None
    ) -> bool:
        """
        True if the user already has a job with the same title and company
        (case-insensitive) whose posted date is unknown or equal to `date_posted`.
        """
        row = self.connection.execute(
            """
            SELECT 1 FROM jobs
            WHERE user_id IS ?
              AND LOWER(title) = LOWER(?)
              AND LOWER(company) = LOWER(?)
              AND (date_posted IS NULL OR ? IS NULL OR date_posted = ?)
            LIMIT 1
            """,
            (user_id, title, company, _iso(date_posted), _iso(date_posted)),
        ).fetchone()
        return row is not None

    def save(self, posting: Posting) -> Posting:
        """Insert a posting and return a copy carrying its new row id."""
        cursor = self.connection.execute(
            """
            INSERT INTO jobs (
                title, company, location, description, url,
                date_posted, date_scraped, experience_level, job_type, user_id
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                posting.title,
                posting.company,
                posting.location,
                posting.description,
                posting.url,
                _iso(posting.date_posted),
                _iso(posting.date_scraped),
                posting.experience_level,
                posting.job_type,
                posting.user_id,
            ),
        )
        self.connection.commit()
        return posting.model_copy(update={"id": cursor.lastrowid})

    def count_jobs(self, user_id: str | None = None) -> int:
        row = self.connection.execute(
            "SELECT COUNT(*) FROM jobs WHERE user_id IS ?", (user_id,)
        ).fetchone()
        return int(row[0])

    # --- Saved scraper configurations ---

    def save_config(self, name: str, config: ScrapeConfig, user_id: str | None = None) -> int:
        """
        Store a named scraper configuration for a user (run statistics excluded).
        Raises ValueError if the user already has a configuration with that name.
        """
        name = name.strip()
        if not name:
            raise ValueError("Configuration name must not be empty")
        now = datetime.now(tz=UTC).isoformat()
        payload = config.model_dump_json(exclude={"stats", "user_id"})
        try:
            cursor = self.connection.execute(
                """
                INSERT INTO scraper_configs (name, user_id, config_json, created_at, last_used)
                VALUES (?, ?, ?, ?, ?)
                """,
                (name, user_id or "", payload, now, now),
            )
        except sqlite3.IntegrityError:
            raise ValueError(f"Configuration with name '{name}' already exists") from None
        self.connection.commit()
        logger.info(f"Saved scraper configuration '{name}'")
        return int(cursor.lastrowid or 0)

    def list_configs(self, user_id: str | None = None) -> list[str]:
        """Names of the user's configurations, most recently used first."""
        rows = self.connection.execute(
            """
            SELECT name FROM scraper_configs
            WHERE user_id = ?
            ORDER BY last_used DESC, id DESC
            """,
            (user_id or "",),
        ).fetchall()
        return [row["name"] for row in rows]

    def load_config(self, name: str, user_id: str | None = None) -> ScrapeConfig:
        """Load a configuration by name and mark it as just used."""
        row = self.connection.execute(
            "SELECT id, config_json FROM scraper_configs WHERE name = ? AND user_id = ?",
            (name, user_id or ""),
        ).fetchone()
        if row is None:
            raise LookupError(f"Configuration '{name}' not found")

        self.connection.execute(
            "UPDATE scraper_configs SET last_used = ? WHERE id = ?",
            (datetime.now(tz=UTC).isoformat(), row["id"]),
        )
        self.connection.commit()

        data = json.loads(row["config_json"])
        data["user_id"] = user_id
        return ScrapeConfig.model_validate(data)

    def delete_config(self, name: str, user_id: str | None = None) -> None:
        cursor = self.connection.execute(
            "DELETE FROM scraper_configs WHERE name = ? AND user_id = ?",
            (name, user_id or ""),
        )
        self.connection.commit()
        if cursor.rowcount == 0:
            raise LookupError(f"Configuration '{name}' not found")

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

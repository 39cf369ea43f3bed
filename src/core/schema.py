"""SQLite schema management (code-first approach)."""

import logging

import aiosqlite

from src.core.config import constants
from src.core.db_client import get_db_path


logger = logging.getLogger(__name__)


# Central list of all collections in the schema, in dependency order
COLLECTIONS = [
    "sites",
    "assets",
    "task_templates",
    "task_instances",
]


TABLE_SCHEMAS: dict[str, str] = {
    "sites": """CREATE TABLE IF NOT EXISTS sites (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        name TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'active',
        created TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
    )""",
    "assets": """CREATE TABLE IF NOT EXISTS assets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        site_id INTEGER NOT NULL REFERENCES sites(id) ON DELETE CASCADE,
        name TEXT NOT NULL DEFAULT '',
        type TEXT NOT NULL,
        last_maintenance_date TEXT,
        maintenance_required INTEGER NOT NULL DEFAULT 0,
        created TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
    )""",
    "task_templates": """CREATE TABLE IF NOT EXISTS task_templates (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER,
        site_id INTEGER REFERENCES sites(id) ON DELETE SET NULL,
        name TEXT NOT NULL DEFAULT '',
        frequency TEXT NOT NULL CHECK (frequency IN ('daily', 'weekly', 'monthly', 'triggered')),
        is_active INTEGER NOT NULL DEFAULT 1,
        dayparts TEXT,
        daypart TEXT,
        daypart_times TEXT,
        time_of_day TEXT,
        recurrence_pattern TEXT,
        asset_type TEXT,
        evidence_types TEXT,
        is_critical INTEGER NOT NULL DEFAULT 0,
        assigned_to_role TEXT,
        assigned_to_user_id INTEGER,
        created TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
    )""",
    "task_instances": """CREATE TABLE IF NOT EXISTS task_instances (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        template_id INTEGER NOT NULL REFERENCES task_templates(id) ON DELETE CASCADE,
        company_id INTEGER,
        site_id INTEGER NOT NULL REFERENCES sites(id) ON DELETE CASCADE,
        asset_id INTEGER REFERENCES assets(id) ON DELETE SET NULL,
        due_date TEXT NOT NULL,
        due_time TEXT,
        daypart TEXT NOT NULL,
        dedup_key TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'in_progress', 'completed', 'failed')),
        priority TEXT NOT NULL DEFAULT 'medium' CHECK (priority IN ('critical', 'high', 'medium')),
        assigned_to_role TEXT,
        assigned_to_user_id INTEGER,
        generated_at TEXT NOT NULL,
        expires_at TEXT,
        metadata TEXT,
        task_data TEXT
    )""",
}


INDEXES: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_sites_company_status ON sites (company_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_templates_frequency ON task_templates (frequency, is_active)",
    "CREATE INDEX IF NOT EXISTS idx_assets_maintenance ON assets (maintenance_required, last_maintenance_date)",
    # Backstop for concurrent runs racing past the read-before-write dedup
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_instances_dedup "
        "ON task_instances (template_id, site_id, due_date, dedup_key)"
    ),
    "CREATE INDEX IF NOT EXISTS idx_instances_sweep ON task_instances (status, expires_at)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not already exist."""
    path = get_db_path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    async with aiosqlite.connect(str(path), timeout=constants.DB_BUSY_TIMEOUT_SECONDS) as conn:
        await conn.execute("PRAGMA journal_mode = WAL")
        for collection in COLLECTIONS:
            await conn.execute(TABLE_SCHEMAS[collection])
        for index in INDEXES:
            await conn.execute(index)
        await conn.commit()

    logger.info("Database schema initialized", extra={"db_path": str(path), "collections": COLLECTIONS})

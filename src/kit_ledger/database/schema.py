"""Database schema definition and initialization."""

import sqlite3

SCHEMA_VERSION = 1

# Each statement is a separate string to avoid executescript issues
_SCHEMA_STATEMENTS = [
    # Asset registry (Tools_Master)
    """CREATE TABLE IF NOT EXISTS assets (
        id TEXT PRIMARY KEY,
        serial_number TEXT DEFAULT '',
        name TEXT NOT NULL,
        category TEXT DEFAULT '',
        zone TEXT DEFAULT '',
        asset_class TEXT NOT NULL DEFAULT 'Piece'
            CHECK (asset_class IN ('Piece', 'Set', 'Toolbox')),
        quantity INTEGER NOT NULL DEFAULT 0 CHECK (quantity >= 0),
        available INTEGER NOT NULL DEFAULT 0
            CHECK (available >= 0 AND available <= quantity),
        condition TEXT NOT NULL DEFAULT 'Excellent',
        responsible_staff_id TEXT DEFAULT '',
        monetary_value REAL DEFAULT 0.0 CHECK (monetary_value >= 0),
        last_verified TEXT DEFAULT '',
        image_url TEXT DEFAULT '',
        composition TEXT NOT NULL DEFAULT '[]',
        submission_date TEXT DEFAULT '',
        added_by TEXT DEFAULT '',
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # Usage ledger: issuances and variance cases (Tools_Usage_Logs)
    """CREATE TABLE IF NOT EXISTS cases (
        id TEXT PRIMARY KEY,
        batch_id TEXT DEFAULT '',
        tool_id TEXT NOT NULL,
        tool_name TEXT DEFAULT '',
        quantity INTEGER NOT NULL DEFAULT 1 CHECK (quantity >= 0),
        staff_id TEXT DEFAULT '',
        staff_name TEXT DEFAULT '',
        shift_type TEXT DEFAULT '',
        date TEXT DEFAULT '',
        time_out TEXT DEFAULT '',
        time_in TEXT DEFAULT '',
        is_returned INTEGER NOT NULL DEFAULT 0,
        condition_on_return TEXT DEFAULT '',
        attendant_id TEXT DEFAULT '',
        attendant_name TEXT DEFAULT '',
        issuance_type TEXT NOT NULL DEFAULT 'Standard',
        notes TEXT DEFAULT '',
        defects TEXT NOT NULL DEFAULT '[]',
        recipient_signature TEXT DEFAULT '',
        escalation_status TEXT NOT NULL DEFAULT 'Pending'
            CHECK (escalation_status IN
                ('Pending', 'In-Grace-Period', 'Escalated-to-HR', 'Resolved')),
        discovery_date TEXT DEFAULT '',
        monetary_value REAL DEFAULT 0.0,
        evidence_image TEXT DEFAULT '',
        escalation_stage TEXT NOT NULL DEFAULT 'Store'
            CHECK (escalation_stage IN ('Store', 'Supervisor', 'Manager')),
        grace_expiry_date TEXT DEFAULT '',
        action_history TEXT NOT NULL DEFAULT '[]',
        audit_id TEXT DEFAULT '',
        resolution_pathway TEXT DEFAULT '',
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # Maintenance queue (Tools_Maintenance)
    """CREATE TABLE IF NOT EXISTS maintenance_records (
        id TEXT PRIMARY KEY,
        tool_id TEXT NOT NULL,
        tool_name TEXT DEFAULT '',
        reported_by TEXT DEFAULT '',
        reported_date TEXT DEFAULT '',
        breakdown_context TEXT DEFAULT '',
        is_repairable INTEGER,
        status TEXT NOT NULL DEFAULT 'Staged'
            CHECK (status IN
                ('Staged', 'In_Repair', 'Restored', 'Decommissioned')),
        resolution_date TEXT DEFAULT '',
        technician_notes TEXT DEFAULT '',
        estimated_cost REAL DEFAULT 0.0,
        assigned_staff_id TEXT DEFAULT '',
        assigned_staff_name TEXT DEFAULT '',
        is_escalated_to_supervisor INTEGER NOT NULL DEFAULT 0,
        escalation_notes TEXT DEFAULT '',
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # One row per signed-off physical audit (Tools_Audit_History)
    """CREATE TABLE IF NOT EXISTS audit_history (
        id TEXT PRIMARY KEY,
        date TEXT NOT NULL,
        section TEXT DEFAULT '',
        inspector TEXT DEFAULT '',
        shift_type TEXT DEFAULT '',
        issues TEXT NOT NULL DEFAULT '[]',
        signature TEXT DEFAULT ''
    )""",

    "CREATE INDEX IF NOT EXISTS idx_assets_zone ON assets(zone)",
    "CREATE INDEX IF NOT EXISTS idx_cases_tool ON cases(tool_id)",
    "CREATE INDEX IF NOT EXISTS idx_cases_status ON cases(escalation_status)",
    "CREATE INDEX IF NOT EXISTS idx_maintenance_tool "
    "ON maintenance_records(tool_id)",

    # Schema version tracking
    """CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
]


def _get_schema_version(conn) -> int:
    """Get the current schema version, or 0 if not tracked yet."""
    try:
        row = conn.execute(
            "SELECT MAX(version) as v FROM schema_version"
        ).fetchone()
        return row["v"] if row and row["v"] else 0
    except sqlite3.OperationalError:
        return 0


def initialize_database(db_connection):
    """Create all tables and indexes on a fresh ledger database.

    Safe to call on every start-up; an up-to-date database is left alone.
    """
    with db_connection.get_connection() as conn:
        version = _get_schema_version(conn)
        if version >= SCHEMA_VERSION:
            return

        for stmt in _SCHEMA_STATEMENTS:
            conn.execute(stmt)
        conn.execute(
            "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )

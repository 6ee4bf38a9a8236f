"""Database backup script: creates timestamped SQLite backup of the ledger."""

import shutil
import sys
from datetime import datetime
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from kit_ledger.config import Config

KEEP_BACKUPS = 10


def backup_database(db_path: Path = None, backup_dir: Path = None) -> Path | None:
    """Copy the ledger file to the backup directory with a timestamp."""
    db_path = Path(db_path or Config.DATABASE_PATH)
    backup_dir = Path(backup_dir or Config.BACKUP_PATH)

    if not db_path.exists():
        print(f"Database not found at {db_path}")
        return None

    backup_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_file = backup_dir / f"kit_ledger_{timestamp}.db"
    shutil.copy2(db_path, backup_file)
    print(f"Backup created: {backup_file}")

    backups = sorted(backup_dir.glob("kit_ledger_*.db"), reverse=True)
    for old in backups[KEEP_BACKUPS:]:
        old.unlink()
        print(f"Removed old backup: {old.name}")
    return backup_file


if __name__ == "__main__":
    backup_database()

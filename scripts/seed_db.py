"""Load reference data (departments, shifts, holidays) and the demo accounts."""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.workpulse.workpulse.database.bootstrap import DEMO_USERS, apply_seed_sql, ensure_demo_users
from src.workpulse.workpulse.database.connection import DBConfig


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    ensure_demo_users(db_config)

    print(f"OK: seeded {DBConfig.from_dict(db_config).describe()}")
    for full_name, username, password, role, *_ in DEMO_USERS:
        print(f"  {role:<8} {username} / {password}  ({full_name})")


if __name__ == "__main__":
    main()

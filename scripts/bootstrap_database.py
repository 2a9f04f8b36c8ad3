#!/usr/bin/env python3
"""Bootstrap the Clinic Alerts database with tables and demo patients."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from clinic_alerts import repository  # noqa: E402
from clinic_alerts.db import get_engine, initialise_schema  # noqa: E402
from clinic_alerts.db.config import get_database_settings  # noqa: E402
from clinic_alerts.seed import DEMO_PATIENTS  # noqa: E402


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy URL to bootstrap (defaults to CLINIC_ALERTS_DATABASE_URL or the local SQLite file)",
    )
    parser.add_argument(
        "--skip-patients",
        action="store_true",
        help="Only create tables; do not insert the demo patient directory",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.database_url:
        os.environ["CLINIC_ALERTS_DATABASE_URL"] = args.database_url
        get_database_settings.cache_clear()
        get_engine.cache_clear()

    engine = get_engine()
    initialise_schema(engine)
    print(f"Schema ready at {get_database_settings().url}")

    if not args.skip_patients:
        with engine.begin() as conn:
            for patient in DEMO_PATIENTS:
                repository.upsert_patient(conn, patient)
        print(f"Upserted {len(DEMO_PATIENTS)} demo patients")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

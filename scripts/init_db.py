"""Create the generation router tables for GEN_DATABASE_URL."""

from __future__ import annotations

import argparse
import sys

from genrouter.config import load_settings
from genrouter.db.db_init import create_db_engine, init_db


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create jobs, feature_flags and analytics_logs tables.")
    parser.add_argument("--database-url", help="Override GEN_DATABASE_URL.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    url = args.database_url or load_settings().database_url
    if not url:
        print("init_db failed: GEN_DATABASE_URL is not set", file=sys.stderr)
        return 2
    try:
        init_db(create_db_engine(url))
    except Exception as exc:
        print(f"init_db failed: {exc}", file=sys.stderr)
        return 2
    print("Database initialized.")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

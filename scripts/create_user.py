import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from carpool.config import default_fare_defaults, resolve_database_path
from carpool.database import Database
from carpool.errors import CarpoolError
from carpool.service import CarpoolService


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Add a rider or driver to the carpool roster")
    parser.add_argument("name", help="Unique display name")
    parser.add_argument("--pass", dest="has_pass", action="store_true", help="The person holds a pass")
    parser.add_argument("--driver", dest="is_driver", action="store_true", help="The person drives a car")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to CARPOOL_DB_PATH or data/carpool.sqlite3)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    db_env = args.db_path or os.getenv("CARPOOL_DB_PATH")
    database = Database(resolve_database_path(db_env))
    database.initialize(default_fare_defaults())

    try:
        user = CarpoolService(database).create_user(
            args.name,
            has_pass=args.has_pass,
            is_driver=args.is_driver,
        )
    except CarpoolError as exc:  # duplicates, empty names
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    role = "driver" if user.is_driver else "rider"
    suffix = " with pass" if user.has_pass else ""
    print(f"Created {role} #{user.id}: {user.name}{suffix}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

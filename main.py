"""Command-line interface for the carpool coordinator."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from typing import Sequence

import httpx
from dotenv import load_dotenv

from carpool.config import default_fare_defaults, resolve_database_path, resolve_port
from carpool.database import Database

logger = logging.getLogger("carpool.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Carpool coordinator utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Create the tables and seed the fare config")
    subparsers.add_parser("purge", help="Remove every rider, car and seat assignment")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the service")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP service (default: $PORT or 3000)",
    )

    state_parser = subparsers.add_parser("state", help="Print the state of a running service")
    state_parser.add_argument(
        "--service-url",
        default=None,
        help="Base URL of a running service (default: http://localhost:$PORT)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "purge", "state"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_database() -> Database:
    db_path = resolve_database_path(os.getenv("CARPOOL_DB_PATH"))
    database = Database(db_path)
    database.initialize(default_fare_defaults())
    logger.info("Database initialised at %s", db_path)
    return database


def _serve(*, database: Database, host: str, port: int) -> None:
    from carpool.application import create_application
    import uvicorn

    logger.info("Starting carpool service on http://%s:%s", host, port)
    app = create_application(database=database)
    uvicorn.run(app, host=host, port=port, log_level="info")


def _print_state(service_url: str) -> int:
    endpoint = service_url.rstrip("/") + "/api/state"

    try:
        response = httpx.get(endpoint, timeout=10.0)
    except httpx.HTTPError as exc:
        print(f"Failed to contact carpool service: {exc}")
        return 1

    if response.status_code != 200:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return 1

    try:
        payload = response.json()
    except ValueError:
        print("Service returned an unexpected response format.")
        return 1

    cars = payload.get("cars", [])
    if not cars:
        print("No cars are registered.")
    for car in cars:
        driver = car.get("driver", {})
        names = ", ".join(p.get("name", "?") for p in car.get("passengers", [])) or "<empty>"
        print(
            f"Car #{car.get('car_id')} ({driver.get('name', '?')}): {names} "
            f"- {car.get('seats_left')} seat(s) left at {car.get('passenger_price')}"
        )

    unassigned = payload.get("users_unassigned", [])
    if unassigned:
        print("Unassigned: " + ", ".join(user.get("name", "?") for user in unassigned))

    totals = payload.get("totals", {})
    print(f"{totals.get('passenger_count', 0)} passenger(s), fees {totals.get('total_fees', '$0.00')}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    port = resolve_port(os.getenv("PORT"))

    if args.command == "state":
        return _print_state(args.service_url or f"http://localhost:{port}")

    database = _initialise_database()

    if args.command == "serve":
        _serve(database=database, host=args.host, port=args.port or port)
    elif args.command == "init-db":
        print("Database initialisation complete.")
    elif args.command == "purge":
        database.purge()
        print("Removed all riders, cars and seat assignments. Fares were kept.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

# start_app.py
"""Launch the order API under uvicorn, creating missing tables first."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

import uvicorn
from dotenv import load_dotenv
from sqlalchemy.exc import OperationalError

import config

APP_PATH = "buzzer.api.main:app"
IN_MEMORY_DB = "sqlite+aiosqlite://"


async def _init_db() -> None:
    from buzzer.api.db import get_engine, init_models

    engine = get_engine()
    try:
        await init_models(engine)
    finally:
        # uvicorn runs its own event loop; drop connections bound to this one.
        await engine.dispose()


def _flag(name: str) -> bool:
    value = os.getenv(name, "")
    return value.lower() not in {"", "0", "false", "no"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--skip-db-init",
        action="store_true",
        help="serve from a throwaway in-memory database instead of DATABASE_URL",
    )
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    return parser


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    args = build_parser().parse_args(argv)

    in_memory = args.skip_db_init or _flag("SKIP_DB_INIT")
    if in_memory:
        # Tables are then created by the app's own startup hook.
        os.environ["DATABASE_URL"] = IN_MEMORY_DB
        config.get_settings.cache_clear()
    settings = config.get_settings()

    if not in_memory:
        try:
            asyncio.run(_init_db())
        except (OSError, OperationalError) as exc:
            print(f"database unavailable: {exc}", file=sys.stderr)
            raise SystemExit(1)

    uvicorn.run(
        APP_PATH,
        host="0.0.0.0",  # nosec B104: bind for local development
        port=args.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

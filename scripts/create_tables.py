#!/usr/bin/env python
"""
Create the database tables for the configured DATABASE_URL.

The API also does this on startup; run it ahead of time when the service
user should not hold DDL rights.
"""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("create_tables")


def main():
    repo_root = Path(__file__).resolve().parents[1]
    env_path = repo_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    migrations_url = os.getenv("MIGRATIONS_DATABASE_URL")
    if migrations_url:
        os.environ["DATABASE_URL"] = migrations_url

    from mealcraft.app.db import models  # noqa: F401
    from mealcraft.app.db.base import Base
    from mealcraft.app.db.session import engine

    Base.metadata.create_all(bind=engine)
    logger.info("Created tables: %s", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    main()

#!/usr/bin/env python
"""Check the database connection and, optionally, create the schema.

Connects with the configured DATABASE_URL, reports the dialect and database,
runs a trivial round-trip query and lists the mapped tables.

Constraints:
- --create-tables refuses to run in staging or prod (MEDINTAKE_ENV check);
  those environments are migrated with Alembic
- Never runs automatically (manual invocation only)

Usage:
    cd python && DATABASE_URL=... python ../scripts/init_db.py [--create-tables]
"""

import argparse
import sys

from sqlalchemy import func, select


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="create any missing tables from the ORM models (local/test only)",
    )
    args = parser.parse_args(argv)

    from medintake.config import Environment, get_settings
    from medintake.db.models import Base
    from medintake.db.session import Database, session_info

    settings = get_settings()
    database = Database.from_settings(settings)

    try:
        print("Initializing database connection...")
        with database.session_scope() as db:
            info = session_info(db)
            print("Database connection established")
            print(f"- Dialect: {info['dialect']}")
            print(f"- Database: {info['database']}")

            now = db.execute(select(func.current_timestamp())).scalar()
            print(f"Round-trip query succeeded - current time: {now}")

        print("\nMapped tables:")
        for mapper in Base.registry.mappers:
            print(f"- {mapper.class_.__name__} -> {mapper.local_table.name}")

        if args.create_tables:
            if settings.medintake_env not in (Environment.LOCAL, Environment.TEST):
                print(
                    f"ERROR: --create-tables refuses to run in "
                    f"MEDINTAKE_ENV={settings.medintake_env.value}; use alembic upgrade head"
                )
                return 1
            database.create_all()
            print("\nTables created (existing tables left untouched)")
    except Exception as e:
        print("Database initialization failed:")
        print(e)
        return 1
    finally:
        database.dispose()

    return 0


if __name__ == "__main__":
    sys.exit(main())

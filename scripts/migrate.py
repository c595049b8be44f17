#!/usr/bin/env python3
"""Apply run-trace migrations against POSTGRES_APP_URL."""
import asyncio
import os
import sys
from pathlib import Path

import asyncpg
from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parent.parent

for p in [ROOT / "config" / "env" / ".env", ROOT / ".env"]:
    if p.exists():
        load_dotenv(p)
        break


def split_statements(sql: str) -> list[str]:
    """Drop `--` comment lines and split on semicolons."""
    lines = [line for line in sql.split("\n") if not line.strip().startswith("--")]
    return [stmt.strip() + ";" for stmt in "\n".join(lines).split(";") if stmt.strip()]


async def run_migrations(url: str) -> None:
    conn = await asyncpg.connect(url.replace("postgresql+asyncpg://", "postgresql://"))
    try:
        for sql_path in sorted((ROOT / "migrations" / "versions").glob("*.sql")):
            for stmt in split_statements(sql_path.read_text(encoding="utf-8")):
                await conn.execute(stmt)
            print(f"Migration {sql_path.name} applied successfully.")
    finally:
        await conn.close()


def main():
    url = os.getenv("POSTGRES_APP_URL")
    if not url:
        print("POSTGRES_APP_URL not set. Set it in config/env/.env or .env")
        sys.exit(1)
    asyncio.run(run_migrations(url))


if __name__ == "__main__":
    main()

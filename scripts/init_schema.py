#!/usr/bin/env python3
"""
数据库初始化脚本
Applies scripts/schema.sql and optionally promotes a user to admin.

Usage:
    python scripts/init_schema.py
    python scripts/init_schema.py --promote-admin ops@perfectexpress.com
"""

import argparse
import asyncio
import sys
from pathlib import Path

import asyncpg

# 添加项目根目录到Python路径
sys.path.append(str(Path(__file__).parent.parent))

from core.config import InfraConfig

SCHEMA_FILE = Path(__file__).parent / "schema.sql"


async def apply_schema(dsn: str, schema_file: Path):
    """Run the schema file in one transaction"""
    sql = schema_file.read_text(encoding="utf-8")
    conn = await asyncpg.connect(dsn=dsn)
    try:
        async with conn.transaction():
            await conn.execute(sql)
    finally:
        await conn.close()
    print(f"Applied {schema_file}")


async def promote_admin(dsn: str, email: str) -> bool:
    """Give the profile with this email the admin role"""
    conn = await asyncpg.connect(dsn=dsn)
    try:
        status = await conn.execute(
            "UPDATE profiles SET role = 'admin', updated_at = now() WHERE email = $1",
            email.strip().lower(),
        )
    finally:
        await conn.close()
    updated = status.split()[-1] != "0"
    print(f"{'Promoted' if updated else 'No profile found for'} {email}")
    return updated


async def main():
    parser = argparse.ArgumentParser(description="PFX database setup")
    parser.add_argument("--dsn", help="PostgreSQL DSN (defaults to POSTGRES_* settings)")
    parser.add_argument("--schema-file", default=str(SCHEMA_FILE), help="Schema SQL file")
    parser.add_argument("--skip-schema", action="store_true", help="Do not apply the schema")
    parser.add_argument("--promote-admin", metavar="EMAIL", help="Grant the admin role to this user")

    args = parser.parse_args()
    dsn = args.dsn or InfraConfig.from_env().postgres_dsn

    if not args.skip_schema:
        await apply_schema(dsn, Path(args.schema_file))

    if args.promote_admin:
        if not await promote_admin(dsn, args.promote_admin):
            sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())

#!/usr/bin/env python3
"""
Database initialization script

Creates the categorization rules table.
"""
import sys
from pathlib import Path

import psycopg2

from autocategorizer.config import load_settings
from autocategorizer.utils.db_connection import get_db_connection

SCHEMA_FILE = Path(__file__).resolve().parent.parent / "db" / "schema.sql"


def run_sql_file(conn, sql_file: Path, description: str):
    """Execute a SQL file"""
    print(f"\n📄 {description}")
    print(f"   File: {sql_file}")

    with open(sql_file, 'r') as f:
        sql = f.read()

    cursor = conn.cursor()
    try:
        cursor.execute(sql)
        conn.commit()
        print(f"   ✅ Success")
    except psycopg2.Error as e:
        conn.rollback()
        print(f"   ❌ Error: {e}")
        raise
    finally:
        cursor.close()


def print_summary(conn):
    """Print rule counts"""
    cursor = conn.cursor()
    try:
        cursor.execute("SELECT COUNT(*), COUNT(*) FILTER (WHERE is_active) FROM categorization_rules")
        total, active = cursor.fetchone()
    finally:
        cursor.close()

    print("\n" + "=" * 80)
    print("📊 DATABASE SUMMARY")
    print("=" * 80)
    print(f"Rules: {total} ({active} active)")
    print("=" * 80)


def main():
    """Main initialization function"""
    print("=" * 80)
    print("🗄️  RULE DATABASE INITIALIZATION")
    print("=" * 80)

    settings = load_settings()

    try:
        conn = get_db_connection(settings.database)
        print(f"✅ Connected to {settings.database.database} on {settings.database.host}")
    except Exception as e:
        print(f"❌ Database connection failed: {e}")
        sys.exit(1)

    try:
        run_sql_file(conn, SCHEMA_FILE, "Creating schema")
        print_summary(conn)
    except psycopg2.Error:
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()

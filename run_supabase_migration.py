#!/usr/bin/env python3
"""Check the waitlist tables exist using the Supabase client."""
import sys
from pathlib import Path

sys.path.insert(0, '.')

from app.core.config import get_settings
from app.db.supabase_client import get_supabase

MIGRATION_FILE = Path(__file__).parent / "migrations" / "0001_waitlist.sql"


def run_migration():
    supabase = get_supabase()
    settings = get_settings()
    tables = [
        settings.REGISTRANTS_TABLE,
        settings.RATE_LIMITS_TABLE,
        settings.DELETION_REQUESTS_TABLE,
        settings.EXPORT_REQUESTS_TABLE,
    ]

    try:
        print("🚀 Checking waitlist schema")

        for table in tables:
            print(f"🔍 Checking table {table}...")
            supabase.table(table).select("id").limit(1).execute()

        if settings.WAITLIST_POSITION_STRATEGY == "sequence":
            print(f"🔍 Checking function {settings.WAITLIST_POSITION_RPC}()...")
            # Consumes one sequence value
            supabase.rpc(settings.WAITLIST_POSITION_RPC, {}).execute()

        print("✅ Schema is in place!")

    except Exception as e:
        print(f"❌ Schema check failed: {e}")
        print("💡 Run this SQL in your Supabase SQL editor:")
        print(MIGRATION_FILE.read_text())
        sys.exit(1)


if __name__ == "__main__":
    run_migration()

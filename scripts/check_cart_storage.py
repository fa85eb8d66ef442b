#!/usr/bin/env python3
"""Check Supabase connectivity and the user_carts table used for cart replication.

Usage:
    python scripts/check_cart_storage.py [--user USER_ID]
"""
import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env before storefront.config reads the environment
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

sys.path.insert(0, str(Path(__file__).parent.parent))

from storefront import config
from storefront.cart import SupabaseCartStore
from storefront.errors import RemoteCartError


async def main(user_id: str | None) -> int:
    print(f"SUPABASE_URL set: {bool(config.SUPABASE_URL)}")
    print(f"USE_API_STORAGE: {config.USE_API_STORAGE}")

    store = SupabaseCartStore()
    ok = await store.probe()

    print(f"Table {config.USER_CARTS_TABLE}: {'OK' if ok else 'NOT AVAILABLE'}")
    if not ok:
        return 1

    if user_id:
        try:
            record = await store.fetch_by_user(user_id)
        except RemoteCartError as e:
            print(f"Fetch failed ({type(e).__name__}): {e}")
            return 1
        if record is None:
            print(f"No cart stored for user {user_id}")
        else:
            print(f"Cart for {user_id}: {record.cart_data} (updated {record.updated_at})")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--user", help="user id to fetch the stored cart for")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.user)))

"""
Storefront Configuration

All settings are read from the environment once, at import time.
Scripts load a local .env file (python-dotenv) before importing this module.
"""

import os

# Supabase (service role for server-side clients, anon key as fallback)
SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "")
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")

# Upstash Redis - standard env var names per docs
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")

# Remote cart replica is opt-in
USE_API_STORAGE = os.environ.get("USE_API_STORAGE", "false").lower() == "true"

# last_writer_wins (remote replaces device copy) or additive_merge
CART_RECONCILIATION_POLICY = os.environ.get("CART_RECONCILIATION_POLICY", "last_writer_wins")

# Storage keys and tables
CART_STORAGE_KEY = "shopping_cart"
USER_CARTS_TABLE = "user_carts"
PRODUCTS_TABLE = "products"


def get_supabase_key() -> str:
    """Key used for server-side Supabase clients."""
    return SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY

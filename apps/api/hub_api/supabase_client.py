"""Supabase client configuration for identity-provider operations.

SECURITY NOTICE:
- SB_SECRET_KEY is server-only (NEVER exposed to clients)
- SB_PUBLISHABLE_KEY backs sign-up, sign-in and token introspection
- SB_SECRET_KEY backs admin operations: profile updates, admin user
  creation and credential deletion by the reconciliation job

KEY NAMING TRANSITION:
- Current Supabase UI: SB_PUBLISHABLE_KEY / SB_SECRET_KEY
- Legacy: SUPABASE_ANON_KEY / SUPABASE_SERVICE_ROLE_KEY
- Falls back to the legacy names when the new ones are not set
"""

import logging
import os
from functools import lru_cache

from supabase import Client, create_client

logger = logging.getLogger(__name__)


def _first_env(primary: str, legacy: str) -> str | None:
    value = os.getenv(primary)
    if value:
        return value
    value = os.getenv(legacy)
    if value:
        logger.info(f"Using legacy {legacy} (consider migrating to {primary})")
        return value
    return None


@lru_cache(maxsize=1)
def get_supabase_url() -> str:
    """Get Supabase project URL from environment.

    Raises:
        RuntimeError: If SUPABASE_URL not set
    """
    url = os.getenv("SUPABASE_URL")
    if not url:
        raise RuntimeError(
            "SUPABASE_URL environment variable not set. "
            "Required for sign-in, registration and session validation."
        )
    return url


@lru_cache(maxsize=1)
def get_supabase_api_key() -> str:
    """Get Supabase publishable key (SB_PUBLISHABLE_KEY, then SUPABASE_ANON_KEY).

    Raises:
        RuntimeError: If neither key is set
    """
    key = _first_env("SB_PUBLISHABLE_KEY", "SUPABASE_ANON_KEY")
    if not key:
        raise RuntimeError(
            "Neither SB_PUBLISHABLE_KEY nor SUPABASE_ANON_KEY environment variable is set. "
            "Set SB_PUBLISHABLE_KEY (recommended) or SUPABASE_ANON_KEY (legacy)."
        )
    return key


@lru_cache(maxsize=1)
def get_supabase_secret_key() -> str:
    """Get Supabase secret key (SB_SECRET_KEY, then SUPABASE_SERVICE_ROLE_KEY).

    SECRET_KEY bypasses RLS and is for admin operations only.

    Raises:
        RuntimeError: If neither key is set
    """
    key = _first_env("SB_SECRET_KEY", "SUPABASE_SERVICE_ROLE_KEY")
    if not key:
        raise RuntimeError(
            "Neither SB_SECRET_KEY nor SUPABASE_SERVICE_ROLE_KEY environment variable is set. "
            "Required for profile updates and credential deletion. "
            "Set SB_SECRET_KEY (recommended) or SUPABASE_SERVICE_ROLE_KEY (legacy)."
        )
    return key


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Get Supabase client for end-user auth operations (sign_up, sign_in, get_user)."""
    url = get_supabase_url()
    api_key = get_supabase_api_key()

    logger.info(
        "supabase.client.init",
        extra={"supabase_url": url, "key_type": "publishable"},
    )
    return create_client(url, api_key)


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """Get Supabase admin client (auth.admin.*). Server-side only."""
    url = get_supabase_url()
    secret_key = get_supabase_secret_key()

    logger.info(
        "supabase.client.init",
        extra={"supabase_url": url, "key_type": "secret"},
    )
    return create_client(url, secret_key)

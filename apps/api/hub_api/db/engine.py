"""Database engine builder (single source of truth).

- Default: NullPool (client-side pooling disabled; the Supabase pooler pools)
- ENV: HUB_DB_POOL=nullpool|queuepool
- SQLite URLs (tests, local tooling) get check_same_thread disabled
"""

import logging
import os
import re
from typing import Any

from sqlalchemy import Engine, NullPool, QueuePool, create_engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

_VALID_POOLS = {"nullpool", "queuepool"}


def _mask_password(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", url)


def _get_pool_mode() -> str:
    mode = os.getenv("HUB_DB_POOL", "nullpool").strip().lower()
    if mode not in _VALID_POOLS:
        raise ValueError(f"HUB_DB_POOL must be one of {sorted(_VALID_POOLS)}, got {mode!r}")
    return mode


def build_engine(url: str, **overrides: Any) -> Engine:
    """Build the SQLAlchemy engine.

    Args:
        url: Database URL
        **overrides: Extra create_engine kwargs (tests pass poolclass=StaticPool)

    Returns:
        Engine
    """
    kwargs: dict[str, Any] = {"pool_pre_ping": True}

    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs.pop("pool_pre_ping")
    elif _get_pool_mode() == "queuepool":
        kwargs["poolclass"] = QueuePool
        kwargs["pool_size"] = int(os.getenv("HUB_DB_POOL_SIZE", "5"))
        kwargs["max_overflow"] = int(os.getenv("HUB_DB_MAX_OVERFLOW", "5"))
    else:
        kwargs["poolclass"] = NullPool

    kwargs.update(overrides)

    logger.info(
        "db.engine.build",
        extra={
            "database_url": _mask_password(url),
            "poolclass": getattr(kwargs.get("poolclass"), "__name__", "default"),
        },
    )
    return create_engine(url, **kwargs)


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    """Build the session factory bound to an engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

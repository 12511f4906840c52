"""Seed the protected roles (Administrator, Editor, User).

Usage:
    python -m hub_api.scripts.seed_roles

Idempotent: safe to run on every deploy.
"""

import logging

from hub_api.config.env import get_database_url, get_log_level
from hub_api.db.engine import build_engine, build_sessionmaker
from hub_api.rbac.role_store import RoleStore
from hub_api.utils import configure_json_logging

logger = logging.getLogger(__name__)


def main() -> None:
    configure_json_logging(log_level=get_log_level())
    engine = build_engine(get_database_url())
    db = build_sessionmaker(engine)()
    try:
        roles = RoleStore(db).seed_defaults()
        logger.info("roles.seed.done", extra={"roles": [role.name for role in roles]})
    finally:
        db.close()


if __name__ == "__main__":
    main()

"""
Expired session cleanup

Deletes every session whose expiry has passed. Expired sessions are already
rejected on lookup, so this only reclaims space. Safe to run from cron.

Usage:
    python scripts/purge_expired_sessions.py
"""

import logging

from pitchey.auth.services.auth_service import AuthService
from pitchey.core.log_config import setup_logging
from pitchey.db.session import SessionLocal

logger = logging.getLogger(__name__)


def main() -> int:
    setup_logging()
    db = SessionLocal()
    try:
        purged = AuthService(db).purge_expired_sessions()
    finally:
        db.close()
    logger.info("Expired session purge finished: %d removed", purged)
    return purged


if __name__ == "__main__":
    main()

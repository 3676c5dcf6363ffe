"""
Promote an existing user to admin.

Recovery path when the bootstrap admin is gone. Idempotent: an existing admin
is left untouched. The user must have logged in at least once.

Run via: python -m candidate_organizer.cli.promote_admin <email>

Reads the database URL from CANDIDATE_ORGANIZER_DATABASE_URL (or the YAML config).
"""

import asyncio
import logging
import sys

from candidate_organizer.db.models import UserRole
from candidate_organizer.db.session import close_db, get_db_session, init_db
from candidate_organizer.services.user_store import SQLUserStore

# Use stdlib logging; structlog isn't configured outside the API server
logger = logging.getLogger("candidate_organizer.promote_admin")
logging.basicConfig(level=logging.INFO, format="%(message)s")


async def promote(email: str) -> bool:
    """Promote ``email`` to admin. Returns False if no such user exists."""
    email = email.strip().lower()
    await init_db()
    try:
        async with get_db_session() as session:
            store = SQLUserStore(session)
            user = await store.get_by_email(email)
            if user is None:
                logger.error("No user with email %s; they must log in once first", email)
                return False

            if user.role == UserRole.ADMIN:
                logger.info("User %s is already an admin, skipping", email)
                return True

            await store.promote_to_admin(user.id)
            logger.info("Promoted %s to admin", email)
            return True
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1 or not args[0].strip():
        logger.error("Usage: python -m candidate_organizer.cli.promote_admin <email>")
        return 2
    return 0 if asyncio.run(promote(args[0])) else 1


if __name__ == "__main__":
    sys.exit(main())

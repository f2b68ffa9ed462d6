"""
Create an admin account from the command line.

    python scripts/create_admin.py admin@example.com "Site Admin"
"""

import argparse
import logging
import os
import sys
from getpass import getpass

# Add parent directory to path to allow importing app modules
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'backend'))

from impatient_review.config import settings
from impatient_review.core.exceptions import AppError
from impatient_review.database import init_db, get_db_context
from impatient_review.services.auth_service import PasswordAuthenticator
from impatient_review.services.credential_store import CredentialStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_admin(email: str, username: str, password: str) -> int:
    init_db()
    with get_db_context() as db:
        authenticator = PasswordAuthenticator(CredentialStore(db), work_factor=settings.BCRYPT_WORK_FACTOR)
        admin = authenticator.register(email=email, password=password, username=username)
        return admin.id


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("email")
    parser.add_argument("username")
    args = parser.parse_args(argv)

    password = getpass("Password: ")
    if password != getpass("Repeat password: "):
        logger.error("Passwords do not match")
        return 1

    try:
        admin_id = create_admin(args.email, args.username, password)
    except AppError as e:
        logger.error(f"Could not create admin: {e.message}")
        return 1

    logger.info(f"Created admin {admin_id} ({args.email})")
    return 0


if __name__ == "__main__":
    sys.exit(main())

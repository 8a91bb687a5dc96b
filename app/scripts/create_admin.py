"""
Create the first admin account while the users table is empty. Run from project root:
  python -m app.scripts.create_admin
Prompts for anything not passed as an option:
  python -m app.scripts.create_admin --name "Site Admin" --email admin@example.com
"""
import argparse
import getpass
import logging
import sys

from pydantic import ValidationError

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.logging import configure_logging
from app.schemas.auth import RegisterRequest
from app.services.bootstrap import bootstrap_first_admin
from app.services.exceptions import ConflictError, ServiceError

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create the first admin user (only when no users exist).")
    parser.add_argument("--name", help="Admin display name")
    parser.add_argument("--email", help="Admin email address")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings)

    name = args.name or input("Admin name: ")
    email = args.email or input("Admin email: ")
    password = getpass.getpass("Admin password (min 8 characters): ")

    try:
        data = RegisterRequest(email=email.strip(), password=password, name=name)
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(p) for p in err["loc"])
            print(f"Invalid {field}: {err['msg']}", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        user = bootstrap_first_admin(db, settings, data)
    except ConflictError as e:
        print(f"{e.message}. Use the admin panel to manage users.", file=sys.stderr)
        return 1
    except ServiceError as e:
        logger.error("Bootstrap failed: %s", e.message)
        return 1
    finally:
        db.close()
    print(f"Created admin '{user.email}' (id {user.id}).")
    return 0


if __name__ == "__main__":
    sys.exit(main())

import argparse
import sys

from .config import get_settings
from .database import Database
from .models.profile import ProfileType
from .services.auth import AuthService


def seed_admin(database: Database, email: str, password: str, first_name: str, last_name: str) -> int:
    """Create an account with an active admin profile. Idempotent."""
    with database.session_scope() as db:
        existing = AuthService.get_account_by_email(db, email)
        if existing:
            print(f"Account already exists: {existing.email}")
            print("No changes made. This is expected if you've already run this command.")
            return 0

        account, profile = AuthService.register(
            db,
            email=email,
            password=password,
            profile_type=ProfileType.ADMIN,
            first_name=first_name,
            last_name=last_name,
        )
        print(f"Created admin account: {account.email} (profile id: {profile.id})")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="reachmai", description="ReachMAI maintenance commands")
    sub = parser.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed-admin", help="create the first administrator account")
    seed.add_argument("--email", required=True)
    seed.add_argument("--password", required=True)
    seed.add_argument("--first-name", default="Site")
    seed.add_argument("--last-name", default="Administrator")

    sub.add_parser("check-config", help="fail if production settings use fallback secrets")

    args = parser.parse_args(argv)
    settings = get_settings()

    if args.command == "check-config":
        insecure = settings.insecure_defaults()
        if insecure:
            print("Fallback values in use: " + ", ".join(insecure))
            return 1 if settings.is_production else 0
        print("Configuration OK")
        return 0

    if len(args.password) < 8:
        print("ERROR: password must be at least 8 characters.")
        return 1

    database = Database(settings.database_url)
    database.init()
    try:
        return seed_admin(database, args.email, args.password, args.first_name, args.last_name)
    finally:
        database.close()


if __name__ == "__main__":
    sys.exit(main())

import argparse
import getpass
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from assessment.models import AccountType
from assessment.storage import DocumentStore, resolve_database_path
from assessment.users import UserDirectory


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create an assessment platform user")
    parser.add_argument("user_name", help="Unique user name for login")
    parser.add_argument("full_name", help="Display name for the user")
    parser.add_argument(
        "--assessor",
        action="store_true",
        help="Create an assessor account (default: student)",
    )
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite document store (defaults to ASSESSMENT_DB_PATH or data/assessment.sqlite3)",
    )
    return parser.parse_args()


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if len(password) < 8:
            print("Password must be at least 8 characters long.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main() -> int:
    args = parse_args()
    password = prompt_for_password()

    db_env = args.db_path or os.getenv("ASSESSMENT_DB_PATH")
    store = DocumentStore(resolve_database_path(db_env))
    store.initialize()

    account_type = AccountType.ASSESSOR.value if args.assessor else AccountType.STUDENT.value
    result = UserDirectory(store).register(args.user_name.strip(), password, args.full_name.strip(), account_type)
    if not result.created:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    print(f"Created {account_type} account {result.user_id}: {args.user_name}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

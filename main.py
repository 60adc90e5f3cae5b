"""Command-line interface for the assessment identity service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from getpass import getpass
from pathlib import Path
from typing import Sequence


def _running_in_virtualenv() -> bool:
    """Return ``True`` when the current interpreter is executing inside a venv."""

    base_prefix = getattr(sys, "base_prefix", sys.prefix)
    return sys.prefix != base_prefix


def _bootstrap_virtualenv() -> None:
    """Re-exec the script using the bundled virtualenv interpreter when available."""

    if _running_in_virtualenv():
        return

    root = Path(__file__).resolve().parent
    venv_dir = root / ".venv"
    if not venv_dir.is_dir():
        return

    candidates = (
        venv_dir / "bin" / "python",
        venv_dir / "bin" / "python3",
        venv_dir / "Scripts" / "python.exe",
        venv_dir / "Scripts" / "python",
    )

    script = str(Path(__file__).resolve())
    for candidate in candidates:
        if candidate.exists():
            os.execv(str(candidate), [str(candidate), script, *sys.argv[1:]])


if __name__ == "__main__":
    _bootstrap_virtualenv()

from assessment.config import Settings, load_settings
from assessment.models import AccountType
from assessment.storage import DocumentStore
from assessment.users import UserDirectory

logger = logging.getLogger("assessment.main")

PASSWORD_MIN_LENGTH = 8


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Assessment identity service utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the YAML configuration file (defaults to ASSESSMENT_CONFIG or config/assessment.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the document store")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000)")

    create_parser = subparsers.add_parser("create-user", help="Register a new user")
    create_parser.add_argument("user_name", help="Unique user name used to log in")
    create_parser.add_argument("full_name", help="Display name for the user")
    create_parser.add_argument(
        "--assessor",
        action="store_true",
        help="Create an assessor account instead of a student account",
    )

    subparsers.add_parser("list-students", help="List registered student accounts")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "create-user", "list-students"}

    prefix: list[str] = []
    if args_list[:1] == ["--config"]:
        prefix, args_list = args_list[:2], args_list[2:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args([*prefix, *args_list])
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args([*prefix, *args_list])
            args_list = ["serve", *args_list]

    return parser.parse_args([*prefix, *args_list])


def _initialise_store(settings: Settings) -> DocumentStore:
    store = DocumentStore(settings.database_path)
    store.initialize()
    logger.info("Document store initialised at %s", settings.database_path)
    return store


def _serve(*, store: DocumentStore, settings: Settings, host: str, port: int) -> None:
    from assessment.web import create_app
    import uvicorn

    logger.info("Starting identity service on http://%s:%s", host, port)
    app = create_app(store=store, settings=settings)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass(f"Password (min {PASSWORD_MIN_LENGTH} characters): ")
        if len(password) < PASSWORD_MIN_LENGTH:
            print("Password is too short. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def _create_user(store: DocumentStore, *, user_name: str, full_name: str, assessor: bool) -> int:
    password = _prompt_for_password()
    if password is None:
        print("Aborted creating user.", file=sys.stderr)
        return 1

    account_type = AccountType.ASSESSOR.value if assessor else AccountType.STUDENT.value
    result = UserDirectory(store).register(user_name.strip(), password, full_name.strip(), account_type)
    if not result.created:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    print(f"Created {account_type} account {result.user_id}: {user_name} ({full_name})")
    return 0


def _list_students(store: DocumentStore) -> int:
    students = UserDirectory(store).list_students()
    if not students:
        print("No students are currently registered.")
        return 0

    print(f"{len(students)} student(s) found:")
    print(f"{'ID':<24}  {'User name':<24}  Full name")
    print("-" * 80)
    for user_id, summary in students.items():
        print(f"{user_id:<24}  {summary.username:<24}  {summary.full_name}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    settings = load_settings(Path(args.config) if args.config else None)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    store = _initialise_store(settings)

    if args.command == "serve":
        _serve(store=store, settings=settings, host=args.host, port=args.port)
    elif args.command == "create-user":
        return _create_user(
            store,
            user_name=args.user_name,
            full_name=args.full_name,
            assessor=args.assessor,
        )
    elif args.command == "list-students":
        return _list_students(store)
    elif args.command == "init-db":
        print("Document store initialisation complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

#!/usr/bin/env python3
"""Create an agent account or reset an agent's password.

Usage:
    PYTHONPATH=. python scripts/create_agent.py create agent1 agent1@smartify.com \
        --full-name "Agent One" --store-id 1
    PYTHONPATH=. python scripts/create_agent.py set-password agent1

The password is prompted for (or read from SMARTIFY_AGENT_PASSWORD).
"""

import argparse
import getpass
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from smartify.database import SessionLocal  # noqa: E402
from smartify.exceptions import WorkflowError  # noqa: E402
from smartify.logging_config import setup_logging  # noqa: E402
from smartify.services import agent_service  # noqa: E402


def _password() -> str:
    password = os.environ.get("SMARTIFY_AGENT_PASSWORD")
    if password:
        return password
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        raise SystemExit("Passwords do not match")
    if len(password) < 8:
        raise SystemExit("Password must be at least 8 characters")
    return password


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Manage agent accounts")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="create a new agent")
    create.add_argument("username")
    create.add_argument("email")
    create.add_argument("--full-name")
    create.add_argument("--store-id", type=int)
    create.add_argument("--role", choices=("agent", "admin"), default="agent")

    reset = sub.add_parser("set-password", help="reset an agent's password")
    reset.add_argument("username")

    args = parser.parse_args(argv)
    setup_logging()

    db = SessionLocal()
    try:
        if args.command == "create":
            agent = agent_service.create_agent(
                db,
                username=args.username,
                email=args.email,
                password=_password(),
                full_name=args.full_name,
                store_id=args.store_id,
                role=args.role,
            )
            print(f"Created agent {agent.username} (id={agent.id})")
        else:
            agent = agent_service.set_password(db, args.username, _password())
            print(f"Password updated for {agent.username}")
    except WorkflowError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import argparse

import uvicorn

from greythr.core.config import settings
from greythr.core.logging import configure_logging, is_configured
from greythr.db.session import init_db, session_scope
from greythr.seed.seed_data import DEMO_PASSWORD, seed


def cmd_init_db(args: argparse.Namespace) -> None:
    init_db()
    print(f"Initialised database at {settings.database_url}")


def cmd_seed(args: argparse.Namespace) -> None:
    init_db()
    with session_scope() as session:
        created = seed(session)
        emails = [user.email for user in created]
    if not emails:
        print("Demo users already present")
        return
    for email in emails:
        print(f"Created {email} (password: {DEMO_PASSWORD})")


def cmd_serve(args: argparse.Namespace) -> None:
    uvicorn.run("greythr.main:app", host=args.host, port=args.port or settings.port, reload=args.reload)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="greythr", description="GreytHR-lite management commands")
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-db", help="Create all tables")
    init.set_defaults(func=cmd_init_db)

    seed_cmd = sub.add_parser("seed", help="Create the admin, hr and employee demo accounts")
    seed_cmd.set_defaults(func=cmd_seed)

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not is_configured():
        configure_logging(settings.log_level, json=settings.log_json)
    args.func(args)


if __name__ == "__main__":
    main()

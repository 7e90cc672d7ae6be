#!/usr/bin/env python3
"""
SSO -- account identity service: logins, signed tokens, email verification codes.

Usage:
  python main.py serve [--host 0.0.0.0] [--port 8000] [--reload]
  python main.py init-db
  python main.py add-app --name my-frontend [--secret ...]
  python main.py grant-admin --email admin@example.com
  python main.py grant-admin --email admin@example.com --revoke

Environment variables:
  DATABASE_URL            SQLAlchemy URL. Defaults to sqlite:///sso.db next to this file.
  EMAIL_SENDER_ADDRESS    SMTP login / From address (required unless DEBUG=true).
  EMAIL_SENDER_PASSWORD   SMTP password or app password.
  See core/config.py for the full list.
"""

import argparse
import logging
import secrets
import sys

from auth.store import UserStore
from core.config import get_settings
from core.db import create_db_engine
from core.errors import DomainError

logger = logging.getLogger("sso.cli")


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _cmd_init_db(args: argparse.Namespace) -> int:
    engine = create_db_engine(get_settings().database_url)
    print(f"  Schema ready ({engine.dialect.name}).")
    engine.dispose()
    return 0


def _cmd_add_app(args: argparse.Namespace) -> int:
    # 32 bytes of urlsafe base64 = 256-bit HS256 key.
    secret = args.secret or secrets.token_urlsafe(32)
    if len(secret) < 32:
        print("  [!] App secret must be at least 32 characters.")
        return 2

    engine = create_db_engine(get_settings().database_url)
    try:
        app_id = UserStore(engine).create_app(args.name, secret)
    except ValueError as e:
        print(f"  [!] {e}")
        return 1
    finally:
        engine.dispose()

    print(f"  App created: id={app_id} name={args.name}")
    if not args.secret:
        # Shown once; downstream token verifiers need it.
        print(f"  Secret: {secret}")
    return 0


def _cmd_grant_admin(args: argparse.Namespace) -> int:
    engine = create_db_engine(get_settings().database_url)
    try:
        user_id = UserStore(engine).set_admin(args.email, is_admin=not args.revoke)
    except DomainError as e:
        print(f"  [!] {e}")
        return 1
    finally:
        engine.dispose()

    state = "revoked from" if args.revoke else "granted to"
    print(f"  Admin {state} user id={user_id} ({args.email})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sso",
        description="SSO identity service: logins, signed tokens, and email verification codes.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes (development)")
    serve.set_defaults(func=_cmd_serve)

    init_db = sub.add_parser("init-db", help="Create the database schema if missing")
    init_db.set_defaults(func=_cmd_init_db)

    add_app = sub.add_parser("add-app", help="Register a token-signing app")
    add_app.add_argument("--name", required=True)
    add_app.add_argument("--secret", help="HS256 signing secret (generated if omitted)")
    add_app.set_defaults(func=_cmd_add_app)

    grant = sub.add_parser("grant-admin", help="Set or clear a user's admin flag")
    grant.add_argument("--email", required=True)
    grant.add_argument("--revoke", action="store_true", help="Clear the admin flag instead of setting it")
    grant.set_defaults(func=_cmd_grant_admin)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)-5s %(name)s %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

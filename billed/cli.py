from __future__ import annotations

import argparse
import sys
from pathlib import Path

from billed.api.app import serve
from billed.api.dependencies import build_context
from billed.domain.enums import Role
from billed.domain.errors import DomainError


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="billed", description="Expense bill approval service")
    parser.add_argument("--root", type=Path, default=Path.cwd(), help="app root (db and uploads live here)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_p = sub.add_parser("serve", help="run the HTTP API")
    serve_p.add_argument("--host", default=None)
    serve_p.add_argument("--port", type=int, default=None)

    user_p = sub.add_parser("add-user", help="register a user")
    user_p.add_argument("--email", required=True)
    user_p.add_argument("--role", choices=[r.value for r in Role], default=Role.EMPLOYEE.value)

    token_p = sub.add_parser("issue-token", help="print a bearer token for a registered user")
    token_p.add_argument("--email", required=True)

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    root = args.root.resolve()

    if args.command == "serve":
        serve(root, host=args.host, port=args.port)
        return 0

    ctx = build_context(root)

    if args.command == "add-user":
        try:
            principal = ctx.users.add_user(args.email, Role(args.role))
        except (DomainError, ValueError) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        print(f"{principal.email} {principal.role.value}")
        return 0

    if ctx.users.lookup(args.email) is None:
        print(f"error: unknown user {args.email}", file=sys.stderr)
        return 1
    print(ctx.tokens.issue(args.email))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
Register a user row for an identity managed by the auth gateway.

The gateway owns credentials; this script only records the identity so
requests carrying its ``X-User-Id`` are accepted.
"""

from __future__ import annotations

import argparse
import json

from sqlalchemy.exc import IntegrityError

from db.repositories.project_repository import ProjectRepository
from db.session import session_scope


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a user record.")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--google-id", dest="google_id", default=None)
    parser.add_argument(
        "--password-hash",
        dest="password_hash",
        default=None,
        help="Hash produced by the auth gateway; one of --google-id or --password-hash is required.",
    )
    args = parser.parse_args()

    if not args.google_id and not args.password_hash:
        parser.error("one of --google-id or --password-hash is required")

    with session_scope() as db:
        repository = ProjectRepository(db)
        existing = repository.get_user_by_email(args.email)
        if existing is not None:
            print(json.dumps({"id": str(existing.id), "email": existing.email, "created": False}, indent=2))
            return 0
        try:
            user = repository.create_user(
                email=args.email,
                name=args.name,
                password_hash=args.password_hash,
                google_id=args.google_id,
            )
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            print(json.dumps({"error": str(exc.orig)}, indent=2))
            return 1

    print(json.dumps({"id": str(user.id), "email": user.email, "created": True}, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

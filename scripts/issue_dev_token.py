"""Print a `jwt-linkedin` token for a user, for poking the API or socket locally.

    python -m scripts.issue_dev_token --username alice
"""

from __future__ import annotations

import argparse
import logging
from datetime import timedelta

from scripts._bootstrap import bootstrap

logger = logging.getLogger("scripts.issue_dev_token")


def main() -> int:
    bootstrap()

    from unlinked.core.security import issue_token
    from unlinked.core.settings import settings
    from unlinked.services.users import UserDirectory

    parser = argparse.ArgumentParser(description="Issue a development JWT")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--user-id")
    target.add_argument("--username")
    parser.add_argument("--hours", type=float, default=24.0)
    args = parser.parse_args()

    if settings.app_env.lower() in {"prod", "production"}:
        logger.error("Refusing to mint tokens with APP_ENV=%s", settings.app_env)
        return 2

    user_id = args.user_id
    if args.username:
        user = UserDirectory().get_by_username(args.username)
        if user is None:
            logger.error("No user named %r", args.username)
            return 1
        user_id = str(user["_id"])

    print(issue_token(user_id, expires_in=timedelta(hours=args.hours)))
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    raise SystemExit(main())

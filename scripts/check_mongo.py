"""Quick connectivity check for MongoDB, optionally creating the service indexes."""

from __future__ import annotations

import argparse
import logging

from scripts._bootstrap import bootstrap

logger = logging.getLogger("scripts.check_mongo")


def main() -> int:
    bootstrap()

    from unlinked.connectors.mongo_connector import MongoConnector
    from unlinked.core.exceptions import ServiceUnavailableError
    from unlinked.core.settings import settings
    from unlinked.services.chat import ChatService
    from unlinked.services.notifications import NotificationService
    from unlinked.services.users import UserDirectory

    parser = argparse.ArgumentParser(description="Test MongoDB connectivity")
    parser.add_argument(
        "--ensure-indexes",
        action="store_true",
        help="Create the users/chats/messages/notifications indexes",
    )
    args = parser.parse_args()

    with MongoConnector() as mongo:
        try:
            mongo.ping()
        except ServiceUnavailableError as exc:  # pragma: no cover - network interaction
            logger.error("Mongo ping failed: %s", exc.__cause__ or exc)
            return 1
        logger.info(
            "OK: Connected to MongoDB at %s (database='%s')",
            settings.mongo_uri,
            settings.mongo_database,
        )

        if args.ensure_indexes:
            db = mongo.database
            users = UserDirectory(database=db)
            for svc in (
                users,
                ChatService(database=db, users=users),
                NotificationService(database=db, users=users),
            ):
                svc.ensure_indexes()
                logger.info("%s indexes ensured", type(svc).__name__)

    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    raise SystemExit(main())

"""Utility script to deliver pending digest notifications."""

from __future__ import annotations

import argparse
import logging

import anyio
from sqlalchemy.exc import SQLAlchemyError

from notification_engine.application.notifications.factory import (
    build_notification_manager,
)
from notification_engine.domain.entities import NotificationFrequency
from notification_engine.infrastructure.database import SessionLocal, initialize_database

DIGEST_FREQUENCIES = [
    frequency.value
    for frequency in NotificationFrequency
    if frequency is not NotificationFrequency.REAL_TIME
]


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the digest run."""

    parser = argparse.ArgumentParser(
        description="Send the pending digest notifications for one frequency.",
    )
    parser.add_argument(
        "--frequency",
        choices=DIGEST_FREQUENCIES,
        default=NotificationFrequency.DAILY.value,
        help="Digest frequency to flush (default: daily)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level for the run (default: INFO)",
    )
    return parser.parse_args()


def main() -> None:
    """Flush the digest queue for the requested frequency."""

    args = parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    initialize_database()

    session = SessionLocal()
    try:
        manager = build_notification_manager(session)
        summary = anyio.run(
            manager.send_digest_notifications, NotificationFrequency(args.frequency)
        )
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Database error while sending digests: {exc}") from exc
    finally:
        session.close()

    print(
        f"{args.frequency.capitalize()} digests sent:\n"
        f"  Groups processed: {summary.processed}\n"
        f"  Successful: {summary.successful}\n"
        f"  Failed: {summary.failed}\n"
        f"  Items sent: {summary.items_sent}"
    )


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
# backend/goreserve/commands/cleanup_expired.py
"""
Cancel unpaid reservations from the command line.

Lists the reservations that would expire, asks for confirmation and runs
the same sweep the scheduled task runs.
"""

import argparse
from datetime import datetime
import logging
import sys
from typing import Callable, List, Optional, Sequence, TextIO

from sqlalchemy.orm import Session

from goreserve.core.config import settings
from goreserve.core.time_utils import local_now
from goreserve.database import SessionLocal
from goreserve.domain.sweep import SweepReport
from goreserve.models.booking import Booking
from goreserve.services.expiration_sweeper import ExpirationSweeper

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


class CleanupExpiredCommand:
    """Command handler for the expiration sweep."""

    def __init__(self, db: Session, out: TextIO = sys.stdout, sweeper: Optional[ExpirationSweeper] = None):
        self.db = db
        self.out = out
        self.sweeper = sweeper or ExpirationSweeper(db)

    def _print(self, line: str = "") -> None:
        print(line, file=self.out)

    def print_candidates(self, bookings: Sequence[Booking]) -> None:
        header = f"{'Ref':<12} {'Customer':<20} {'Service':<24} {'Date/Time':<17} {'Created':<17} {'Amount':>9}"
        self._print(header)
        self._print("-" * len(header))
        for booking in bookings:
            service_name = booking.service.name if booking.service is not None else "-"
            self._print(
                f"{booking.booking_ref:<12} {booking.user_id[:20]:<20} {service_name[:24]:<24} "
                f"{booking.starts_at:%Y-%m-%d %H:%M} {booking.created_at:%Y-%m-%d %H:%M} "
                f"{booking.amount:>9.2f}"
            )
        self._print()

    def print_summary(self, report: SweepReport) -> None:
        self._print("Summary")
        self._print("=" * 40)
        self._print(f"  Cancelled: {report.cancelled_count}")
        self._print(f"  Failed: {report.failed_count}")
        self._print(f"  Amount released: {report.total_amount_released}")
        if report.release_failures:
            self._print(f"  Payment releases failed: {report.release_failures}")
        if report.notify_failures:
            self._print(f"  Notifications failed: {report.notify_failures}")
        for ref in report.failed_refs:
            self._print(f"  Failed booking: {ref}")

    def run(
        self,
        hours: int,
        dry_run: bool = False,
        notify: bool = False,
        assume_yes: bool = False,
        now: Optional[datetime] = None,
        confirm: Optional[Callable[[str], str]] = None,
    ) -> int:
        """
        Run the sweep.

        Returns:
            Process exit code: 1 when any reservation failed, otherwise 0
        """
        now = now or local_now()
        candidates = self.sweeper.find_eligible(hours, now)
        self._print(f"\nReservations unpaid for more than {hours} hours: {len(candidates)}")
        if not candidates:
            self._print("Nothing to do.")
            return 0

        self.print_candidates(candidates)

        if dry_run:
            self._print("Dry run, no reservations were changed.")
            return 0

        if not assume_yes:
            ask = confirm or input
            answer = ask(f"Cancel {len(candidates)} reservations? [y/N] ")
            if answer.strip().lower() not in ("y", "yes"):
                self._print("Aborted.")
                return 0

        report = self.sweeper.sweep(expiration_hours=hours, notify=notify, now=now)
        self.print_summary(report)
        return 1 if report.has_failures else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Cancel reservations that were not paid in time",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m goreserve.commands.cleanup_expired --dry-run          # List what would expire
  python -m goreserve.commands.cleanup_expired --hours 4 --yes    # Expire without asking
  python -m goreserve.commands.cleanup_expired --notify           # Notify customers
        """,
    )
    parser.add_argument(
        "--hours",
        type=int,
        default=settings.booking_expiration_hours,
        help=f"Minimum age of an unpaid reservation (default: {settings.booking_expiration_hours})",
    )
    parser.add_argument("--dry-run", action="store_true", help="Only list eligible reservations")
    parser.add_argument("--notify", action="store_true", help="Notify customers of the cancellation")
    parser.add_argument("--yes", action="store_true", dest="assume_yes", help="Do not ask for confirmation")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the cleanup command."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    args = build_parser().parse_args(argv)
    if args.hours < 0:
        print("--hours must not be negative", file=sys.stderr)
        return 2

    db = SessionLocal()
    try:
        command = CleanupExpiredCommand(db)
        return command.run(
            hours=args.hours,
            dry_run=args.dry_run,
            notify=args.notify,
            assume_yes=args.assume_yes,
        )
    except Exception as exc:
        logger.error(f"Expiration cleanup failed: {exc}", exc_info=True)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())

"""
Tests for the cleanup_expired command.
"""

from datetime import datetime, timedelta
import importlib
import io
import logging
from unittest.mock import MagicMock, patch

import pytest

from goreserve.commands import cleanup_expired
from goreserve.commands.cleanup_expired import CleanupExpiredCommand, build_parser, main
from goreserve.core.enums import BookingStatus, PaymentStatus
from goreserve.domain.sweep import SweepReport
from goreserve.services.expiration_sweeper import ExpirationSweeper

NOW = datetime(2026, 3, 2, 8, 0)


@pytest.fixture
def stale(make_business, make_service, make_booking):
    service = make_service(make_business())
    return make_booking(
        service,
        status=BookingStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        created_at=NOW - timedelta(hours=30),
    )


@pytest.fixture
def command(db, releaser, notifier, lock_manager):
    sweeper = ExpirationSweeper(db, releaser=releaser, notifier=notifier, lock_manager=lock_manager)
    return CleanupExpiredCommand(db, out=io.StringIO(), sweeper=sweeper)


def output(command):
    return command.out.getvalue()


def test_nothing_to_do(command):
    assert command.run(hours=24, now=NOW) == 0
    assert "Nothing to do." in output(command)


def test_dry_run_lists_candidates(db, command, stale):
    assert command.run(hours=24, dry_run=True, now=NOW) == 0

    text = output(command)
    assert stale.booking_ref in text
    assert "Haircut" in text
    assert "2026-03-03 10:00" in text
    assert "Dry run, no reservations were changed." in text
    db.refresh(stale)
    assert stale.status == "pending"


def test_declined_confirmation_aborts(db, command, stale):
    assert command.run(hours=24, now=NOW, confirm=lambda prompt: "n") == 0
    assert "Aborted." in output(command)
    db.refresh(stale)
    assert stale.status == "pending"


def test_confirmed_run_cancels(db, command, stale):
    prompts = []

    def confirm(prompt):
        prompts.append(prompt)
        return "y"

    assert command.run(hours=24, now=NOW, confirm=confirm) == 0

    assert prompts == ["Cancel 1 reservations? [y/N] "]
    assert "Cancelled: 1" in output(command)
    db.refresh(stale)
    assert stale.status == "cancelled"


def test_failures_give_exit_code_one(db):
    sweeper = MagicMock()
    command = CleanupExpiredCommand(db, out=io.StringIO(), sweeper=sweeper)
    booking = MagicMock(
        booking_ref="BKFAIL0001",
        user_id="customer-1",
        starts_at=datetime(2026, 3, 3, 10, 0),
        created_at=NOW - timedelta(hours=30),
        amount=50,
    )
    booking.service.name = "Haircut"
    sweeper.find_eligible.return_value = [booking]
    sweeper.sweep.return_value = SweepReport(
        expiration_hours=24, eligible_refs=("BKFAIL0001",), failed_refs=("BKFAIL0001",)
    )

    assert command.run(hours=24, assume_yes=True, now=NOW) == 1
    assert "Failed booking: BKFAIL0001" in command.out.getvalue()


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.dry_run is False
    assert args.notify is False
    assert args.assume_yes is False

    args = build_parser().parse_args(["--hours", "4", "--yes", "--notify"])
    assert (args.hours, args.assume_yes, args.notify) == (4, True, True)


def test_main_rejects_negative_hours():
    assert main(["--hours", "-1"]) == 2


@patch("goreserve.commands.cleanup_expired.CleanupExpiredCommand")
@patch("goreserve.commands.cleanup_expired.SessionLocal")
def test_main_closes_session_on_error(mock_session_local, mock_command):
    session = mock_session_local.return_value
    mock_command.return_value.run.side_effect = RuntimeError("boom")

    assert main(["--yes"]) == 1
    session.close.assert_called_once()


@patch("goreserve.commands.cleanup_expired.CleanupExpiredCommand")
@patch("goreserve.commands.cleanup_expired.SessionLocal")
def test_main_passes_arguments(mock_session_local, mock_command):
    mock_command.return_value.run.return_value = 0

    assert main(["--hours", "6", "--dry-run"]) == 0
    mock_command.return_value.run.assert_called_once_with(
        hours=6, dry_run=True, notify=False, assume_yes=False
    )


@patch("logging.basicConfig")
def test_import_leaves_logging_alone(mock_basic_config):
    importlib.reload(cleanup_expired)
    mock_basic_config.assert_not_called()


@patch("goreserve.commands.cleanup_expired.logging.basicConfig")
def test_main_configures_logging(mock_basic_config):
    assert main(["--hours", "-1"]) == 2
    mock_basic_config.assert_called_once_with(level=logging.INFO, format=cleanup_expired.LOG_FORMAT)

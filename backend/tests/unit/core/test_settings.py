from goreserve.core.config import Settings


def test_is_sqlite_drives_alembic_batch_mode():
    assert Settings(database_url="sqlite:///./goreserve.db").is_sqlite is True
    assert Settings(database_url="postgresql://localhost/goreserve").is_sqlite is False


def test_daily_limit_default():
    assert Settings().booking_daily_limit == 5


def test_currency_is_normalized():
    assert Settings(payment_currency=" usd ").payment_currency == "USD"

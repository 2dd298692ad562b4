from dataclasses import FrozenInstanceError
from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from transaction_dedup import DuplicatePair, InvalidTransactionRecord, Transaction
from transaction_dedup.models import as_transaction


def test_amounts_are_coerced_to_decimal_through_str():
    assert Transaction(amount=25.5, description="", date="2024-01-01").amount == Decimal("25.5")
    assert Transaction(amount=" -3 ", description="", date="2024-01-01").amount == Decimal("-3")
    assert Transaction(amount=Decimal("1.005"), description="", date="2024-01-01").amount == (
        Decimal("1.005")
    )


@pytest.mark.parametrize("bad", [None, "", "abc", "NaN", "Infinity", True])
def test_invalid_amount_is_rejected(bad):
    with pytest.raises(InvalidTransactionRecord) as excinfo:
        Transaction(amount=bad, description="x", date="2024-01-01")
    assert excinfo.value.field == "amount"


@pytest.mark.parametrize("bad", [None, "", "15/01/2024", 1705312200])
def test_invalid_date_is_rejected(bad):
    with pytest.raises(InvalidTransactionRecord) as excinfo:
        Transaction(amount="1", description="x", date=bad)
    assert excinfo.value.field == "date"


def test_dates_are_normalized_to_aware_datetimes():
    naive = Transaction(amount="1", description="", date=datetime(2024, 1, 15, 10, 30))
    assert naive.date == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)

    plain_date = Transaction(amount="1", description="", date=date(2024, 1, 15))
    assert plain_date.date == datetime(2024, 1, 15, tzinfo=UTC)

    offset = Transaction(amount="1", description="", date="2024-01-15T12:30:00+02:00")
    assert offset.date.utcoffset() == timedelta(hours=2)
    assert offset.date == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def test_blank_identifiers_become_none():
    txn = Transaction(
        amount="1",
        description=None,
        date="2024-01-15",
        account_id="  ",
        provider_transaction_id="",
        id=" 7 ",
    )
    assert txn.description == ""
    assert txn.account_id is None
    assert txn.provider_transaction_id is None
    assert txn.id == "7"


def test_transactions_are_immutable():
    txn = Transaction(amount="1", description="", date="2024-01-15")
    with pytest.raises(FrozenInstanceError):
        txn.amount = Decimal("2")  # type: ignore[misc]


def test_from_record_understands_snake_and_camel_case():
    snake = Transaction.from_record(
        {
            "amount": "1.00",
            "date": "2024-01-15",
            "account_id": "a",
            "provider_transaction_id": "p",
        }
    )
    camel = Transaction.from_record(
        {"amount": "1.00", "date": "2024-01-15", "accountId": "a", "providerTransactionId": "p"}
    )
    assert snake == camel
    assert as_transaction(snake) is snake


def test_from_record_rejects_non_mappings():
    with pytest.raises(InvalidTransactionRecord) as excinfo:
        as_transaction(["1.00", "2024-01-15"])  # type: ignore[arg-type]
    assert excinfo.value.field == "record"


def test_match_id_requires_ids():
    a = Transaction(amount="1", description="", date="2024-01-15", id="4")
    b = Transaction(amount="1", description="", date="2024-01-15", id="9")
    pair = DuplicatePair(original=a, duplicate=b, score=100, reasons=())
    assert pair.match_id == "4-9"

    anonymous = DuplicatePair(
        original=a,
        duplicate=Transaction(amount="1", description="", date="2024-01-15"),
        score=100,
        reasons=(),
    )
    with pytest.raises(ValueError):
        _ = anonymous.match_id

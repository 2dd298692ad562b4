from datetime import timedelta

import pytest
from db.client import session_scope

from tests.helpers.db import live_ids, seed_transactions
from tests.helpers.transactions import coffee_triplicate, existing_ledger, ts
from transaction_dedup import DeduplicationSettings, Transaction
from transaction_dedup.api import detect_for_transaction, detect_in_range, ingest_transactions
from transaction_dedup.review import reject_match

START = ts("2024-01-14T00:00:00Z")
END = START + timedelta(days=2)


def _coffee_reimport() -> Transaction:
    return Transaction(
        amount="25.50",
        description="Starbucks Coffee #1234",
        date=ts("2024-01-15T11:00:00Z"),
        account_id="account-1",
    )


def _seed_scan_fixture(db_url: str) -> list[int]:
    """Ledger plus a coffee re-import (scores 100) and a same-amount grocery row (80)."""

    other_grocery = Transaction(
        amount="45.75",
        description="WHOLE FOODS MARKET",
        date=ts("2024-01-14T19:00:00Z"),
        account_id="account-2",
    )
    return seed_transactions(
        database_url=db_url,
        transactions=[*existing_ledger(), _coffee_reimport(), other_grocery],
    )


def test_detect_for_transaction_returns_stored_duplicates(db_url: str):
    ids = _seed_scan_fixture(db_url)
    with session_scope(database_url=db_url) as session:
        matches = detect_for_transaction(session, ids[3])
    assert [(m.candidate.id, m.score) for m in matches] == [(str(ids[0]), 100)]
    assert matches[0].reasons == (
        "exact_amount",
        "date_proximity",
        "description_similarity",
        "same_account",
    )


def test_detect_for_transaction_unknown_id(db_url: str):
    seed_transactions(database_url=db_url, transactions=existing_ledger())
    with session_scope(database_url=db_url) as session:
        with pytest.raises(LookupError, match="not found"):
            detect_for_transaction(session, 999)


def test_detect_in_range_without_auto_merge_only_reports(db_url: str):
    ids = _seed_scan_fixture(db_url)
    with session_scope(database_url=db_url) as session:
        result = detect_in_range(session, START, END)

    assert [(p.match_id, p.score) for p in result.pairs] == [
        (f"{ids[3]}-{ids[0]}", 100),
        (f"{ids[4]}-{ids[2]}", 80),
    ]
    assert result.auto_merge == ()
    assert len(result.pending_review) == 2
    assert live_ids(db_url) == set(ids)


def test_detect_in_range_auto_merges_high_confidence_pairs(db_url: str):
    ids = _seed_scan_fixture(db_url)
    settings = DeduplicationSettings(auto_merge_threshold=100)
    with session_scope(database_url=db_url) as session:
        result = detect_in_range(session, START, END, settings)

    assert [p.match_id for p in result.auto_merge] == [f"{ids[3]}-{ids[0]}"]
    assert result.merged == result.auto_merge
    assert [p.match_id for p in result.pending_review] == [f"{ids[4]}-{ids[2]}"]
    # The first-ingested coffee row survives.
    assert live_ids(db_url) == set(ids) - {ids[3]}

    with session_scope(database_url=db_url) as session:
        with pytest.raises(LookupError):
            detect_for_transaction(session, ids[3])


def test_detect_in_range_can_skip_merging(db_url: str):
    ids = _seed_scan_fixture(db_url)
    settings = DeduplicationSettings(auto_merge_threshold=100)
    with session_scope(database_url=db_url) as session:
        result = detect_in_range(session, START, END, settings, apply_auto_merge=False)
    assert len(result.auto_merge) == 1
    assert live_ids(db_url) == set(ids)


def test_detect_in_range_skips_rejected_pairs(db_url: str):
    ids = _seed_scan_fixture(db_url)
    with session_scope(database_url=db_url) as session:
        reject_match(session, f"{ids[4]}-{ids[2]}")

    with session_scope(database_url=db_url) as session:
        result = detect_in_range(session, START, END)
    assert [p.match_id for p in result.pairs] == [f"{ids[3]}-{ids[0]}"]


def test_detect_in_range_filters_by_account(db_url: str):
    ids = _seed_scan_fixture(db_url)
    with session_scope(database_url=db_url) as session:
        result = detect_in_range(session, START, END, account_id="account-2")
    assert [p.match_id for p in result.pairs] == [f"{ids[4]}-{ids[2]}"]


def test_ingest_withholds_duplicates_of_stored_rows(db_url: str):
    ids = seed_transactions(database_url=db_url, transactions=existing_ledger())
    unrelated = {
        "amount": "9.99",
        "description": "NETFLIX.COM",
        "date": "2024-01-20T08:00:00Z",
        "accountId": "account-1",
    }
    with session_scope(database_url=db_url) as session:
        report = ingest_transactions(session, [_coffee_reimport(), unrelated])

    assert len(report.inserted) == 1
    [(withheld, matches)] = report.skipped
    assert withheld.description == "Starbucks Coffee #1234"
    assert [m.candidate.id for m in matches] == [str(ids[0])]
    assert live_ids(db_url) == {*ids, *report.inserted}


def test_ingest_catches_duplicates_within_one_batch(db_url: str):
    first = Transaction(
        amount="12.00", description="LUNCH PLACE", date=ts("2024-02-01T12:00:00Z"), account_id="a"
    )
    second = Transaction(
        amount="12.00", description="Lunch Place", date=ts("2024-02-01T12:05:00Z"), account_id="a"
    )
    with session_scope(database_url=db_url) as session:
        report = ingest_transactions(session, [first, second])
    assert len(report.inserted) == 1
    assert [t for t, _ in report.skipped] == [second]


def test_ingest_can_keep_duplicates(db_url: str):
    ids = seed_transactions(database_url=db_url, transactions=existing_ledger())
    with session_scope(database_url=db_url) as session:
        report = ingest_transactions(session, [_coffee_reimport()], skip_duplicates=False)
    assert len(report.inserted) == 1
    assert len(report.skipped) == 1
    assert live_ids(db_url) == {*ids, *report.inserted}


def test_detect_in_range_reports_only_merges_it_performed(db_url: str):
    a, b, c = seed_transactions(database_url=db_url, transactions=coffee_triplicate())
    settings = DeduplicationSettings(auto_merge_threshold=100)
    with session_scope(database_url=db_url) as session:
        result = detect_in_range(session, START, END, settings)

    # Newest first: (c, b), (c, a), (b, a). Merging (c, b) drops c, so (c, a)
    # has nothing left to merge; (b, a) then folds b into a.
    assert [p.match_id for p in result.auto_merge] == [f"{c}-{b}", f"{c}-{a}", f"{b}-{a}"]
    assert [p.match_id for p in result.merged] == [f"{c}-{b}", f"{b}-{a}"]
    assert live_ids(db_url) == {a}


def test_detect_in_range_merges_nothing_without_threshold(db_url: str):
    seed_transactions(database_url=db_url, transactions=coffee_triplicate())
    with session_scope(database_url=db_url) as session:
        result = detect_in_range(session, START, END)
    assert result.duplicates_found == 3
    assert result.merged == ()

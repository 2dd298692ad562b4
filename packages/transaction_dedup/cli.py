# ruff: noqa: I001
"""CLI for the ``transaction_dedup`` package.

This module exposes callable command handlers (``cmd_detect``, ``cmd_scan``,
...) and a Typer-based console interface. Environment variables (notably
``DATABASE_URL`` and the ``DEDUP_*`` settings) are loaded from a local
``.env`` using ``python-dotenv`` before any command runs. Business logic lives
in ``transaction_dedup.scoring``, ``transaction_dedup.api`` and related
modules; handlers only translate between files/flags and those calls.

Handlers print results to stdout, errors to stderr prefixed with ``Error:``,
and return a process exit code.
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from .logging_setup import configure_logging
from .models import DuplicatePair
from .settings import DeduplicationSettings


# ---- Small module-level helpers used by CLI commands -------------------------


def _resolve_settings(**overrides: Any) -> DeduplicationSettings:
    """Settings from ``DEDUP_*`` env vars with non-None CLI flags applied."""

    base = DeduplicationSettings.from_env()
    return base.merged({k: v for k, v in overrides.items() if v is not None})


_DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]


def _parse_range_end(value: str) -> datetime:
    """Parse ``--end``; a bare date (no time part) covers that whole day."""

    text = value.strip()
    try:
        day = datetime.strptime(text, _DATE_FORMATS[0])
    except ValueError:
        pass
    else:
        return day + timedelta(days=1) - timedelta(microseconds=1)
    for fmt in _DATE_FORMATS[1:]:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise typer.BadParameter(
        f"{value!r} does not match the formats: {', '.join(_DATE_FORMATS)}"
    )


def _format_pair(pair: DuplicatePair) -> str:
    return f"{pair.match_id}\t{pair.score}\t{','.join(pair.reasons)}"


# ---- Command handlers ---------------------------------------------------------


def cmd_detect(
    new_csv: str,
    existing_csv: str,
    *,
    settings: DeduplicationSettings | None = None,
) -> int:
    """Compare every row of ``new_csv`` against all rows of ``existing_csv``.

    Output: one line per flagged pair,
    ``"<new id>\\t<existing id>\\t<score>\\t<reason,reason,...>"``. Ids are
    empty when the CSV has none. No database access.
    """

    import csv

    from .ingest.csv_records import load_transactions_csv
    from .models import InvalidTransactionRecord
    from .scoring import detect_duplicates

    try:
        new_items = load_transactions_csv(new_csv)
        existing_items = load_transactions_csv(existing_csv)
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return 1
    except PermissionError as e:
        print(f"Error: Permission denied: {e.filename}", file=sys.stderr)
        return 1
    except (csv.Error, InvalidTransactionRecord) as e:
        print(f"Error: Failed to parse CSV: {e}", file=sys.stderr)
        return 1

    for txn in new_items:
        for match in detect_duplicates(txn, existing_items, settings):
            print(
                f"{txn.id or ''}\t{match.candidate.id or ''}\t{match.score}\t"
                f"{','.join(match.reasons)}"
            )
    return 0


def cmd_ingest(
    csv_path: str,
    *,
    database_url: str | None = None,
    keep_duplicates: bool = False,
    settings: DeduplicationSettings | None = None,
) -> int:
    """Import a CSV into the ledger, withholding likely duplicates.

    Prints a summary line plus one ``"skipped\\t<id>\\t<matched ids>"`` line per
    withheld transaction (or per duplicate written with ``keep_duplicates``).
    """

    import csv

    from db.client import session_scope

    from .api import ingest_transactions
    from .ingest.csv_records import load_transactions_csv
    from .models import InvalidTransactionRecord

    try:
        items = load_transactions_csv(csv_path)
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
        return 1
    except (csv.Error, InvalidTransactionRecord) as e:
        print(f"Error: Failed to parse CSV: {e}", file=sys.stderr)
        return 1

    try:
        with session_scope(database_url=database_url) as session:
            report = ingest_transactions(
                session, items, settings, skip_duplicates=not keep_duplicates
            )
    except Exception as e:
        print(f"Error: ingest failed: {e}", file=sys.stderr)
        return 1

    label = "flagged" if keep_duplicates else "skipped"
    for txn, matches in report.skipped:
        ids = ",".join(m.candidate.id or "" for m in matches)
        print(f"{label}\t{txn.id or ''}\t{ids}")
    print(f"inserted={len(report.inserted)} {label}={len(report.skipped)}")
    return 0


def cmd_scan(
    start: datetime,
    end: datetime,
    *,
    database_url: str | None = None,
    account_id: str | None = None,
    auto_merge: bool = True,
    settings: DeduplicationSettings | None = None,
) -> int:
    """Scan stored transactions in ``[start, end]`` and print duplicate pairs.

    Output: ``"<match id>\\t<score>\\t<reasons>\\t<status>"`` per pair, highest
    score first, followed by a summary line. Status is ``auto_merged``,
    ``superseded`` (an earlier merge of this scan already removed one of its
    rows) or ``pending``.
    """

    from db.client import session_scope

    from .api import detect_in_range

    try:
        with session_scope(database_url=database_url) as session:
            result = detect_in_range(
                session,
                start,
                end,
                settings,
                account_id=account_id,
                apply_auto_merge=auto_merge,
            )
    except Exception as e:
        print(f"Error: scan failed: {e}", file=sys.stderr)
        return 1

    merged = {p.match_id for p in result.merged}
    # Auto-merge pairs not merged lost a row to an earlier merge of this scan.
    superseded = {p.match_id for p in result.auto_merge} - merged if auto_merge else set()
    for pair in result.pairs:
        if pair.match_id in merged:
            status = "auto_merged"
        elif pair.match_id in superseded:
            status = "superseded"
        else:
            status = "pending"
        print(f"{_format_pair(pair)}\t{status}")
    pending = result.duplicates_found - len(merged) - len(superseded)
    print(
        f"found={result.duplicates_found} auto_merge={len(merged)} "
        f"superseded={len(superseded)} pending_review={pending}"
    )
    return 0


def cmd_review(
    start: datetime,
    end: datetime,
    *,
    database_url: str | None = None,
    account_id: str | None = None,
    settings: DeduplicationSettings | None = None,
) -> int:
    """Walk every live duplicate pair interactively and apply each decision.

    Nothing is merged automatically here, so pairs above the auto-merge
    threshold are offered for review like the rest.
    """

    from db.client import session_scope

    from .api import detect_in_range
    from .review import MatchNotFoundError, approve_merge, reject_match
    from .settings import DEFAULT_SETTINGS
    from .term_ui import prompt_match_decision

    review_settings = (settings or DEFAULT_SETTINGS).merged({"auto_merge_threshold": None})
    try:
        with session_scope(database_url=database_url) as session:
            result = detect_in_range(
                session,
                start,
                end,
                review_settings,
                account_id=account_id,
                apply_auto_merge=False,
            )
            if not result.pairs:
                print("No duplicate pairs to review.")
                return 0
            for pair in result.pairs:
                decision = prompt_match_decision(pair)
                try:
                    if decision == "original":
                        approve_merge(session, pair.match_id, int(pair.original.id or 0))
                    elif decision == "duplicate":
                        approve_merge(session, pair.match_id, int(pair.duplicate.id or 0))
                    elif decision == "reject":
                        reject_match(session, pair.match_id)
                except MatchNotFoundError as e:
                    # An earlier decision in this session already merged a row.
                    print(f"Skipped {pair.match_id}: {e}")
                    continue
                # Commit per decision so an interrupted review keeps progress.
                session.commit()
    except (KeyboardInterrupt, EOFError):
        print("Review interrupted.", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Error: review failed: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_approve(match_id: str, keep_id: int, *, database_url: str | None = None) -> int:
    """Approve a duplicate match, keeping ``keep_id``."""

    from db.client import session_scope

    from .review import approve_merge

    try:
        with session_scope(database_url=database_url) as session:
            deleted = approve_merge(session, match_id, keep_id)
    except (ValueError, LookupError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"kept={keep_id} deleted={deleted}")
    return 0


def cmd_reject(match_id: str, *, database_url: str | None = None) -> int:
    """Reject a duplicate match; both transactions are kept."""

    from db.client import session_scope

    from .review import reject_match

    try:
        with session_scope(database_url=database_url) as session:
            reject_match(session, match_id)
    except (ValueError, LookupError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"rejected={match_id}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Detect, review and merge likely duplicate transactions. "
        "Loads DATABASE_URL and DEDUP_* settings from a local .env before running."
    ),
)

DATABASE_URL_OPTION = typer.Option(None, help="Override DATABASE_URL (falls back to env var).")
ACCOUNT_OPTION = typer.Option(None, "--account-id", help="Restrict to a single account.")
THRESHOLD_OPTION = typer.Option(
    None, "--threshold", help="Duplicate score threshold (default 70 or DEDUP_DUPLICATE_THRESHOLD)."
)
WINDOW_OPTION = typer.Option(
    None, "--window-hours", help="Date proximity window in hours (default 24)."
)
ABSOLUTE_OPTION = typer.Option(
    None,
    "--absolute-amounts/--signed-amounts",
    help="Compare amount magnitudes instead of signed values.",
)


def _settings_or_exit(
    threshold: int | None,
    window_hours: float | None,
    absolute_amounts: bool | None,
    auto_merge_threshold: int | None = None,
) -> DeduplicationSettings:
    amount_sign: str | None = None
    if absolute_amounts is not None:
        amount_sign = "absolute" if absolute_amounts else "signed"
    try:
        return _resolve_settings(
            duplicate_threshold=threshold,
            date_window_hours=window_hours,
            amount_sign=amount_sign,
            auto_merge_threshold=auto_merge_threshold,
        )
    except ValidationError as e:
        print(f"Error: invalid settings: {e}", file=sys.stderr)
        raise typer.Exit(1) from e


@app.command("detect")
def detect_cmd(
    new_csv: Annotated[Path, typer.Option("--new-csv", help="CSV of incoming transactions.")],
    existing_csv: Annotated[
        Path, typer.Option("--existing-csv", help="CSV of existing transactions to compare against.")
    ],
    threshold: int | None = THRESHOLD_OPTION,
    window_hours: float | None = WINDOW_OPTION,
    absolute_amounts: bool | None = ABSOLUTE_OPTION,
) -> None:
    """Flag rows of --new-csv that duplicate rows of --existing-csv (offline)."""

    settings = _settings_or_exit(threshold, window_hours, absolute_amounts)
    raise typer.Exit(cmd_detect(str(new_csv), str(existing_csv), settings=settings))


@app.command("ingest")
def ingest_cmd(
    csv_path: Annotated[Path, typer.Option("--csv-path", help="CSV of transactions to import.")],
    keep_duplicates: bool = typer.Option(
        False, help="Write flagged duplicates too (they are still reported)."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
    threshold: int | None = THRESHOLD_OPTION,
    window_hours: float | None = WINDOW_OPTION,
    absolute_amounts: bool | None = ABSOLUTE_OPTION,
) -> None:
    """Import a CSV into the ledger, skipping likely duplicates."""

    settings = _settings_or_exit(threshold, window_hours, absolute_amounts)
    raise typer.Exit(
        cmd_ingest(
            str(csv_path),
            database_url=database_url,
            keep_duplicates=keep_duplicates,
            settings=settings,
        )
    )


@app.command("scan")
def scan_cmd(
    start: Annotated[datetime, typer.Option(formats=_DATE_FORMATS, help="Range start.")],
    end: Annotated[
        datetime,
        typer.Option(parser=_parse_range_end, help="Range end (a bare date covers the whole day)."),
    ],
    account_id: str | None = ACCOUNT_OPTION,
    auto_merge: bool = typer.Option(True, help="Merge pairs at/above the auto-merge threshold."),
    auto_merge_threshold: int | None = typer.Option(
        None, help="Score at/above which pairs merge automatically (default: disabled)."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
    threshold: int | None = THRESHOLD_OPTION,
    window_hours: float | None = WINDOW_OPTION,
    absolute_amounts: bool | None = ABSOLUTE_OPTION,
) -> None:
    """Scan stored transactions in a date range for duplicate pairs."""

    settings = _settings_or_exit(threshold, window_hours, absolute_amounts, auto_merge_threshold)
    raise typer.Exit(
        cmd_scan(
            start,
            end,
            database_url=database_url,
            account_id=account_id,
            auto_merge=auto_merge,
            settings=settings,
        )
    )


@app.command("review")
def review_cmd(
    start: Annotated[datetime, typer.Option(formats=_DATE_FORMATS, help="Range start.")],
    end: Annotated[
        datetime,
        typer.Option(parser=_parse_range_end, help="Range end (a bare date covers the whole day)."),
    ],
    account_id: str | None = ACCOUNT_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
    threshold: int | None = THRESHOLD_OPTION,
    window_hours: float | None = WINDOW_OPTION,
    absolute_amounts: bool | None = ABSOLUTE_OPTION,
) -> None:
    """Interactively approve or reject duplicate pairs in a date range."""

    settings = _settings_or_exit(threshold, window_hours, absolute_amounts)
    raise typer.Exit(
        cmd_review(
            start,
            end,
            database_url=database_url,
            account_id=account_id,
            settings=settings,
        )
    )


@app.command("approve")
def approve_cmd(
    match_id: Annotated[str, typer.Argument(help="Match id '<original id>-<duplicate id>'.")],
    keep: Annotated[int, typer.Option("--keep", help="Row id of the transaction to keep.")],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Merge a duplicate pair, keeping the given row."""

    raise typer.Exit(cmd_approve(match_id, keep, database_url=database_url))


@app.command("reject")
def reject_cmd(
    match_id: Annotated[str, typer.Argument(help="Match id '<original id>-<duplicate id>'.")],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Mark a pair as distinct transactions so it is not reported again."""

    raise typer.Exit(cmd_reject(match_id, database_url=database_url))


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    app()

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from dotenv import load_dotenv

from stocktake.app import build_engine
from stocktake.config import ConfigurationError, configure_logging, get_log_level
from stocktake.domain.errors import AlreadyFinalizedError, ValidationError
from stocktake.domain.model import ExpectedItem

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from stocktake.domain.model import DiscrepancyResult, HistoryEntry
    from stocktake.domain.reconciliation import (
        CountReconciliationEngine,
        CountReport,
        CountSummary,
        ProgressSummary,
    )

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile physical stock counts")
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the data dir)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    open_count = subparsers.add_parser("open", help="Open a count from an expectation set")
    open_count.add_argument("count_id", type=str)
    open_count.add_argument(
        "--items",
        type=str,
        required=True,
        help="JSON file with a list of {code, expected, description, brand}; '-' for stdin",
    )
    open_count.add_argument("--name", type=str, help="Human readable label for the count")

    scan = subparsers.add_parser("scan", help="Submit one scan")
    scan.add_argument("count_id", type=str)
    scan.add_argument("user_id", type=str)
    scan.add_argument("code", type=str)
    scan.add_argument("--quantity", type=int, default=1, help="Units scanned (default 1)")
    scan.add_argument("--timestamp", type=str, help="ISO-8601 timestamp of the scan")

    set_quantity = subparsers.add_parser("set", help="Overwrite a user's quantity for a code")
    set_quantity.add_argument("count_id", type=str)
    set_quantity.add_argument("user_id", type=str)
    set_quantity.add_argument("code", type=str)
    set_quantity.add_argument("quantity", type=int)

    remove = subparsers.add_parser("remove", help="Cancel a user's quantity for a code")
    remove.add_argument("count_id", type=str)
    remove.add_argument("user_id", type=str)
    remove.add_argument("code", type=str)

    progress = subparsers.add_parser("progress", help="Show completion per item and brand")
    progress.add_argument("count_id", type=str)

    report = subparsers.add_parser("report", help="Show the full count report")
    report.add_argument("count_id", type=str)
    report.add_argument(
        "--history",
        action="store_true",
        help="Include the audit history in the report",
    )

    finalize = subparsers.add_parser("finalize", help="Freeze the discrepancies of a count")
    finalize.add_argument("count_id", type=str)
    finalize.add_argument("--clarification", type=str, help="Free text stored with the count")
    finalize.add_argument("--actor", type=str, help="Who finalized the count")
    finalize.add_argument(
        "--strict",
        action="store_true",
        help="Fail if the count was already finalized",
    )

    history = subparsers.add_parser("history", help="Show the audit history of a count")
    history.add_argument("count_id", type=str)

    subparsers.add_parser("list", help="List all counts")

    return parser.parse_args(list(argv))


def _parse_iso_datetime(value: str) -> datetime:
    try:
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        dt = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO timestamp: {value}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _load_expected_items(source: str) -> list[ExpectedItem]:
    try:
        if source == "-":
            document = json.load(sys.stdin)
        else:
            with Path(source).open(encoding="utf-8") as handle:
                document = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid expectation file {source}: {exc}") from exc

    if not isinstance(document, list):
        raise ValidationError("Expectation file must contain a JSON list", field="items")
    items: list[ExpectedItem] = []
    for raw in document:
        if not isinstance(raw, dict) or "code" not in raw or "expected" not in raw:
            raise ValidationError(
                f"Expectation entries need 'code' and 'expected': {raw!r}", field="items"
            )
        items.append(
            ExpectedItem(
                code=str(raw["code"]).strip(),
                expected=raw["expected"],
                description=raw.get("description"),
                brand=raw.get("brand"),
            )
        )
    return items


def _json_default(value: object) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _progress_payload(progress: ProgressSummary) -> dict[str, Any]:
    return {
        "overall": progress.overall,
        "expected_units": progress.expected_units,
        "credited_units": progress.credited_units,
        "brands": {
            name: {
                "percent": brand.percent,
                "expected": brand.expected,
                "scanned": brand.scanned,
                "items": [
                    {
                        "code": item.code,
                        "description": item.description,
                        "expected": item.expected,
                        "scanned": item.scanned,
                        "percent": item.percent,
                    }
                    for item in brand.items
                ],
            }
            for name, brand in progress.per_brand.items()
        },
        "pending_by_brand": {
            name: [item.code for item in items]
            for name, items in progress.pending_by_brand.items()
        },
    }


def _result_payload(result: DiscrepancyResult) -> dict[str, Any]:
    return {
        "count_id": result.count_id,
        "computed_at": result.computed_at,
        "is_exact": result.is_exact,
        "lines": [{**asdict(line), "diff": line.diff} for line in result.lines],
        "discrepancies": [
            {**asdict(record), "diff": record.diff} for record in result.discrepancies
        ],
    }


def _history_payload(entries: Sequence[HistoryEntry]) -> list[dict[str, Any]]:
    return [asdict(entry) for entry in entries]


def _report_payload(report: CountReport) -> dict[str, Any]:
    return {
        "header": asdict(report.header),
        "users": [
            {
                "user_id": user.user_id,
                "total_items": user.total_items,
                "total_units": user.total_units,
                "brands": {
                    brand: [asdict(line) for line in lines]
                    for brand, lines in user.lines_by_brand.items()
                },
            }
            for user in report.users
        ],
        "progress": _progress_payload(report.progress),
        "discrepancies": (
            _result_payload(report.discrepancies) if report.discrepancies is not None else None
        ),
        "history": _history_payload(report.history) if report.history is not None else None,
    }


def _summary_payload(summaries: Sequence[CountSummary]) -> list[dict[str, Any]]:
    return [asdict(summary) for summary in summaries]


def _emit(payload: object) -> None:
    sys.stdout.write(json.dumps(payload, default=_json_default, indent=2))
    sys.stdout.write("\n")


def _run_command(engine: CountReconciliationEngine, args: argparse.Namespace) -> object:  # noqa: PLR0911
    if args.command == "open":
        count = engine.open_count(
            args.count_id, _load_expected_items(args.items), name=args.name
        )
        return {"count_id": count.id, "expected_items": len(count.expected_items)}
    if args.command == "scan":
        timestamp = _parse_iso_datetime(args.timestamp) if args.timestamp else None
        event_id = engine.submit_scan(
            args.count_id, args.user_id, args.code, args.quantity, timestamp
        )
        return {"event_id": event_id}
    if args.command == "set":
        event_id = engine.set_quantity(args.count_id, args.user_id, args.code, args.quantity)
        return {"event_id": event_id}
    if args.command == "remove":
        return {"event_id": engine.remove_scan(args.count_id, args.user_id, args.code)}
    if args.command == "progress":
        return _progress_payload(engine.get_progress(args.count_id))
    if args.command == "report":
        return _report_payload(engine.get_report(args.count_id, include_history=args.history))
    if args.command == "finalize":
        result = engine.finalize(
            args.count_id, args.clarification, actor=args.actor, strict=args.strict
        )
        return _result_payload(result)
    if args.command == "history":
        return _history_payload(engine.get_history(args.count_id))
    if args.command == "list":
        return _summary_payload(engine.list_counts())
    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        configure_logging(level=get_log_level())
        parsed_args = _parse_args(args_list)
        engine = build_engine(database_uri=parsed_args.database_uri)
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)
    except Exception:
        log.exception("Failed to start the reconciliation engine")
        sys.exit(1)

    try:
        _emit(_run_command(engine, parsed_args))
    except AlreadyFinalizedError as exc:
        log.error("%s", exc)  # noqa: TRY400
        _emit(_result_payload(exc.result))
        sys.exit(1)
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)
    finally:
        engine.close()


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

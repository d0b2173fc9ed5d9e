import argparse
import json
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from coupon_engine.core.logging_config import configure_logging
from coupon_engine.schemas.coupons import BestCouponRequest, BestCouponResponse, CouponRead
from coupon_engine.seeds import format_validation_errors, load_coupons
from coupon_engine.services.catalog import CouponCatalog
from coupon_engine.services.selection import select_best
from coupon_engine.services.usage import UsageTracker

SAFE_JSON_FILENAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*\.json$")


def _normalize_json_filename(raw_path: str) -> str:
    raw = (raw_path or "").strip()
    if not raw:
        raise SystemExit("Path is required")
    if Path(raw).name != raw:
        raise SystemExit("Only JSON file names are allowed (no directories)")
    if not SAFE_JSON_FILENAME_RE.fullmatch(raw):
        raise SystemExit("Invalid JSON file name")
    return raw


def _resolve_json_path(raw_path: str) -> Path:
    raw = _normalize_json_filename(raw_path)
    resolved = (Path.cwd().resolve() / raw).resolve(strict=False)
    if not resolved.is_file():
        raise SystemExit(f"Input file not found: {resolved}")
    return resolved


def _parse_now(raw: str | None) -> datetime:
    if not raw:
        return datetime.now(timezone.utc)
    try:
        value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        raise SystemExit(f"Invalid --now timestamp: {raw}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def validate_catalog(catalog_path: Path) -> int:
    report = load_coupons(catalog_path)
    for code, problems in report.errors.items():
        for problem in problems:
            print(f"{code}: {problem}")
    print(f"{len(report.coupons)} valid, {len(report.errors)} invalid")
    return 0 if report.ok else 1


def best_coupon(catalog_path: Path, request_path: Path, *, now: datetime) -> dict[str, Any]:
    report = load_coupons(catalog_path)
    if not report.ok:
        raise SystemExit(f"Catalog has {len(report.errors)} invalid coupon(s); run validate-catalog for details")

    catalog = CouponCatalog()
    for coupon in report.coupons:
        catalog.upsert(coupon)

    try:
        request = BestCouponRequest.model_validate_json(request_path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise SystemExit("Invalid request: " + "; ".join(format_validation_errors(exc)))

    result = select_best(
        catalog.snapshot(),
        request.user_context.to_domain(),
        request.cart.to_domain(),
        now=now,
        tracker=UsageTracker(),
    )
    response = BestCouponResponse(
        coupon=CouponRead.from_domain(result.coupon) if result.coupon is not None else None,
        discount=float(result.discount),
    )
    return response.model_dump(mode="json")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Coupon catalog utilities")
    parser.add_argument("--verbose", action="store_true", help="Log engine decisions to stderr")
    subparsers = parser.add_subparsers(dest="command")

    validate_cmd = subparsers.add_parser("validate-catalog", help="Check every coupon in a JSON catalog file")
    validate_cmd.add_argument("--catalog", required=True, help="Coupon catalog JSON file")

    best_cmd = subparsers.add_parser("best-coupon", help="Select the best coupon for a user and cart")
    best_cmd.add_argument("--catalog", required=True, help="Coupon catalog JSON file")
    best_cmd.add_argument("--request", required=True, help="JSON file with user_context and cart")
    best_cmd.add_argument("--now", help="Evaluation instant (ISO 8601, defaults to the current time)")
    return parser


def _run_cli_command(args: argparse.Namespace) -> int | None:
    if args.command == "validate-catalog":
        return validate_catalog(_resolve_json_path(args.catalog))

    if args.command == "best-coupon":
        _print_json(
            best_coupon(
                _resolve_json_path(args.catalog),
                _resolve_json_path(args.request),
                now=_parse_now(args.now),
            )
        )
        return 0

    return None


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(level="DEBUG" if args.verbose else "WARNING")
    exit_code = _run_cli_command(args)
    if exit_code is None:
        parser.print_help()
        return 2
    return exit_code


if __name__ == "__main__":
    sys.exit(main())

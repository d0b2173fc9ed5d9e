from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from coupon_engine.models.coupon import Coupon
from coupon_engine.schemas.coupons import CouponCreate
from coupon_engine.services.catalog import CouponCatalog

logger = logging.getLogger(__name__)


@dataclass
class CouponLoadReport:
    coupons: list[Coupon] = field(default_factory=list)
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def format_validation_errors(exc: ValidationError) -> list[str]:
    messages: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = str(error.get("msg", "invalid value"))
        messages.append(f"{location}: {message}" if location else message)
    return messages


def _coupon_entries(payload: Any) -> list[Any]:
    if isinstance(payload, dict) and "coupons" in payload:
        payload = payload["coupons"]
    if not isinstance(payload, list):
        raise ValueError("Coupon file must hold a JSON list or an object with a 'coupons' list")
    return payload


def parse_coupons(payload: Any) -> CouponLoadReport:
    report = CouponLoadReport()
    for idx, entry in enumerate(_coupon_entries(payload)):
        label = str(entry.get("code") or f"#{idx}") if isinstance(entry, dict) else f"#{idx}"
        try:
            report.coupons.append(CouponCreate.model_validate(entry).to_domain())
        except ValidationError as exc:
            report.errors[label] = format_validation_errors(exc)
    return report


def load_coupons(path: Path) -> CouponLoadReport:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_coupons(payload)


def seed_catalog(catalog: CouponCatalog, path: Path) -> int:
    """Upsert every valid coupon from ``path``; invalid entries are logged and skipped."""
    report = load_coupons(path)
    for code, problems in report.errors.items():
        logger.warning("seed_coupon_invalid", extra={"coupon_code": code, "errors": problems})
    for coupon in report.coupons:
        catalog.upsert(coupon)
    logger.info("coupon_catalog_seeded", extra={"path": str(path), "loaded": len(report.coupons)})
    return len(report.coupons)

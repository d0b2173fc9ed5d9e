from collections import Counter
from threading import Lock
from typing import Dict, Counter as CounterType

_metrics: CounterType[str] = Counter()
_lock = Lock()


def _inc(key: str) -> None:
    with _lock:
        _metrics[key] += 1


def record_coupon_upserted(*, overwritten: bool) -> None:
    _inc("coupons_upserted")
    if overwritten:
        _inc("coupons_overwritten")


def record_selection(*, won: bool) -> None:
    _inc("selections")
    _inc("selections_won" if won else "selections_empty")


def record_invalid_coupon() -> None:
    _inc("invalid_coupons_skipped")


def snapshot() -> Dict[str, int]:
    with _lock:
        return dict(_metrics)


def reset() -> None:
    with _lock:
        _metrics.clear()

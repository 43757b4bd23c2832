"""Delta calculation against the personal baseline."""

from __future__ import annotations

import logging
import math
from decimal import ROUND_HALF_UP, Context, Decimal

from sleepglow.types import DeltaResult

logger = logging.getLogger(__name__)

# Float noise below this is discarded before the one-decimal rounding,
# so 1.5499999999999936 rounds as 1.55.
_NOISE_QUANTUM = Decimal("1e-9")
_ONE_DECIMAL = Decimal("0.1")
# Wide enough to quantize any finite float (|x| < 1e309) to 1e-9 exactly.
_ROUNDING_CONTEXT = Context(prec=400, rounding=ROUND_HALF_UP)


def round1(value: float) -> float:
    """Round to one decimal place, halves away from zero.

    Raises:
        ValueError: If ``value`` is NaN or infinite.
    """
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Cannot round non-finite value {value!r}")
    d = Decimal(repr(value)).quantize(_NOISE_QUANTUM, context=_ROUNDING_CONTEXT)
    result = float(d.quantize(_ONE_DECIMAL, context=_ROUNDING_CONTEXT))
    # Normalize -0.0
    return result + 0.0


def compute_delta(baseline: float, current: float) -> DeltaResult:
    """Signed percentage change of ``current`` relative to ``baseline``.

    A baseline <= 0 is treated as no baseline and yields a zero,
    non-improved delta. So does a baseline small enough that the
    percentage overflows.

    Example:
        >>> compute_delta(100.0, 108.7)
        DeltaResult(delta_percent=8.7, improved=True)
    """
    if baseline <= 0:
        return DeltaResult(delta_percent=0.0, improved=False)

    raw = (current - baseline) / baseline * 100
    if not math.isfinite(raw):
        logger.warning("Delta against baseline %r is not finite, ignoring it", baseline)
        return DeltaResult(delta_percent=0.0, improved=False)
    return DeltaResult(delta_percent=round1(raw), improved=current > baseline)


__all__ = ["round1", "compute_delta"]

"""Per-type differencing of two aggregate tables."""

from __future__ import annotations

import logging
import math

from memwatch_diff.models import TypeAggregate, TypeDelta

logger = logging.getLogger(__name__)

INFINITE_GROWTH = math.inf


def growth_rate(size_before: int, size_after: int) -> float:
    """Growth as a multiple of the before size.

    Returns ``INFINITE_GROWTH`` for a type that appeared from nothing and
    ``0.0`` when both sides are empty.
    """
    if size_before > 0:
        return (size_after - size_before) / size_before
    if size_after > 0:
        return INFINITE_GROWTH
    return 0.0


def diff_type(
    type_name: str,
    before: TypeAggregate | None,
    after: TypeAggregate | None,
) -> TypeDelta:
    """Delta for one type; a missing side counts as zero."""
    count_before = before.count if before else 0
    count_after = after.count if after else 0
    size_before = before.size if before else 0
    size_after = after.size if after else 0

    return TypeDelta(
        type_name=type_name,
        count_before=count_before,
        count_after=count_after,
        size_before=size_before,
        size_after=size_after,
        delta_size=size_after - size_before,
        delta_count=count_after - count_before,
        growth_rate=growth_rate(size_before, size_after),
    )


def diff_aggregates(
    before: dict[str, TypeAggregate],
    after: dict[str, TypeAggregate],
) -> list[TypeDelta]:
    """Deltas for every type seen in either snapshot.

    Order is before's types followed by types first seen in after. Nothing
    is filtered here.
    """
    type_names = list(before)
    type_names.extend(name for name in after if name not in before)

    deltas = [diff_type(name, before.get(name), after.get(name)) for name in type_names]
    logger.debug(
        "Diffed %d types (%d only before, %d only after)",
        len(deltas),
        sum(1 for name in before if name not in after),
        sum(1 for name in after if name not in before),
    )
    return deltas

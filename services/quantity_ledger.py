"""
Quantity ledger rules for production tasks.

Pure functions, no I/O. Every counter mutation in the production
services goes through here so the invariants hold in one place:

    I1: quality + defect == produced, after every mutation
    I2: quality above requested is overproduction (credited externally)
    I3: corrections never push a counter below zero
"""

from dataclasses import dataclass, replace
from typing import Any

from exceptions import (
    QuantityMismatchError,
    NegativeQuantityError,
    ZeroDeltaError,
    CorrectionExceedsRecordedError,
)


@dataclass(frozen=True)
class QuantityTriple:
    """(produced, quality, defect) as supplied by a registration."""
    produced: int
    quality: int
    defect: int = 0

    @property
    def is_zero(self) -> bool:
        return self.produced == 0 and self.quality == 0 and self.defect == 0

    @property
    def is_correction(self) -> bool:
        """True when no component adds product."""
        return self.produced <= 0 and self.quality <= 0 and self.defect <= 0


@dataclass(frozen=True)
class LedgerState:
    """Running counters of one task."""
    requested: int
    produced: int = 0
    quality: int = 0
    defect: int = 0

    @classmethod
    def from_task(cls, task: Any) -> "LedgerState":
        """Build from a task row (dict) or response model."""
        if isinstance(task, dict):
            get = task.get
        else:
            def get(name, default=None):
                return getattr(task, name, default)
        return cls(
            requested=int(get("requested_quantity") or 0),
            produced=int(get("produced_quantity") or 0),
            quality=int(get("quality_quantity") or 0),
            defect=int(get("defect_quantity") or 0),
        )

    def as_row(self) -> dict:
        """Counter columns for a production_tasks update."""
        return {
            "produced_quantity": self.produced,
            "quality_quantity": self.quality,
            "defect_quantity": self.defect,
        }


def validate_triple(triple: QuantityTriple, allow_negative: bool = False) -> QuantityTriple:
    """
    Check I1 for a triple.

    Args:
        triple: Quantities to check
        allow_negative: Deltas may be negative, totals may not

    Raises:
        NegativeQuantityError: A component is negative and negatives are not allowed
        QuantityMismatchError: quality + defect != produced
    """
    if not allow_negative:
        for field, value in (
            ("produced_quantity", triple.produced),
            ("quality_quantity", triple.quality),
            ("defect_quantity", triple.defect),
        ):
            if value < 0:
                raise NegativeQuantityError(field, value)

    if triple.quality + triple.defect != triple.produced:
        raise QuantityMismatchError(triple.produced, triple.quality, triple.defect)

    return triple


def validate_delta(triple: QuantityTriple) -> QuantityTriple:
    """I1 for a delta, and reject the no-op delta."""
    if triple.is_zero:
        raise ZeroDeltaError()
    return validate_triple(triple, allow_negative=True)


def apply_delta(state: LedgerState, delta: QuantityTriple) -> LedgerState:
    """
    Apply a registration delta to the running counters.

    Negative components are corrections and may remove at most what is
    currently recorded for that counter.

    Raises:
        ZeroDeltaError, QuantityMismatchError: Invalid delta
        CorrectionExceedsRecordedError: Correction larger than the counter
    """
    validate_delta(delta)

    for field, current, change in (
        ("produced_quantity", state.produced, delta.produced),
        ("quality_quantity", state.quality, delta.quality),
        ("defect_quantity", state.defect, delta.defect),
    ):
        if change < 0 and -change > current:
            raise CorrectionExceedsRecordedError(field, -change, current)

    new_state = replace(
        state,
        produced=state.produced + delta.produced,
        quality=state.quality + delta.quality,
        defect=state.defect + delta.defect,
    )
    # Holds by construction, kept as a guard against a bad stored row
    validate_triple(QuantityTriple(new_state.produced, new_state.quality, new_state.defect))
    return new_state


def apply_absolute(state: LedgerState, totals: QuantityTriple) -> LedgerState:
    """Replace the counters with validated totals."""
    validate_triple(totals)
    return replace(state, produced=totals.produced, quality=totals.quality, defect=totals.defect)


def overproduction_quantity(requested: int, quality: int) -> int:
    """Quality output beyond the requested quantity."""
    return max(0, quality - requested)


def overproduction_increment(before: LedgerState, after: LedgerState) -> int:
    """Surplus created by a single registration."""
    return max(
        0,
        overproduction_quantity(after.requested, after.quality)
        - overproduction_quantity(before.requested, before.quality),
    )


def remaining_quantity(state: LedgerState) -> int:
    return max(0, state.requested - state.quality)


def meets_completion(state: LedgerState) -> bool:
    return state.quality >= state.requested


def allocate_output(
    candidates: list[tuple[str, LedgerState]],
    quality: int,
    defect: int = 0,
) -> tuple[list[tuple[str, QuantityTriple]], int]:
    """
    Greedy split of an aggregate output over ordered candidate tasks.

    Each candidate takes quality up to its remaining quantity. Defects
    go to the first candidate that takes part in the split. Quality
    nobody can absorb is returned as the remainder.

    Args:
        candidates: (task_id, state) pairs, most urgent first
        quality: Quality units to distribute
        defect: Defective units of the same output

    Returns:
        Tuple of (list of (task_id, delta), unallocated quality)
    """
    allocations: list[tuple[str, QuantityTriple]] = []
    left = quality
    defect_left = defect

    for task_id, state in candidates:
        if left <= 0 and defect_left <= 0:
            break
        share = min(left, remaining_quantity(state))
        if share <= 0 and not (defect_left > 0 and left <= 0):
            continue
        allocations.append((task_id, QuantityTriple(
            produced=share + defect_left,
            quality=share,
            defect=defect_left,
        )))
        left -= share
        defect_left = 0

    return allocations, left

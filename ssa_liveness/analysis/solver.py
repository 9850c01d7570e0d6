from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Hashable

LOG = logging.getLogger(__name__)

Facts = frozenset
StepFn = Callable[[int, list[Facts], list[Facts]], Facts]


@dataclass
class DataFlowResult:
    """Per-position in/out sets plus how the solver got there."""

    in_sets: list[frozenset[Hashable]]
    out_sets: list[frozenset[Hashable]]
    sweeps: int
    converged: bool


def _is_stable(
    size: int,
    compute_in: StepFn,
    compute_out: StepFn,
    in_sets: list[Facts],
    out_sets: list[Facts],
) -> bool:
    """True when one more sweep would leave every set unchanged."""
    return all(
        compute_in(idx, in_sets, out_sets) == in_sets[idx]
        and compute_out(idx, in_sets, out_sets) == out_sets[idx]
        for idx in range(size)
    )


def solve_backward_sweeps(
    size: int,
    compute_in: StepFn,
    compute_out: StepFn,
    max_sweeps: int | None = None,
) -> DataFlowResult:
    """
    Solve a backward problem over ``size`` linearly ordered positions.

    One sweep recomputes every in-set from the last position to the first, then
    every out-set in the same order. Each step function receives the position
    and the current in/out lists. With ``max_sweeps=None`` sweeps repeat until
    nothing changes; a positive bound stops after that many sweeps even if the
    sets are still growing.
    """
    if max_sweeps is not None and max_sweeps < 1:
        raise ValueError("max_sweeps must be a positive integer or None")

    in_sets: list[Facts] = [frozenset()] * size
    out_sets: list[Facts] = [frozenset()] * size
    sweeps = 0
    converged = False

    while max_sweeps is None or sweeps < max_sweeps:
        changed = False
        for idx in reversed(range(size)):
            updated = compute_in(idx, in_sets, out_sets)
            if updated != in_sets[idx]:
                in_sets[idx] = updated
                changed = True
        for idx in reversed(range(size)):
            updated = compute_out(idx, in_sets, out_sets)
            if updated != out_sets[idx]:
                out_sets[idx] = updated
                changed = True
        sweeps += 1
        if not changed:
            converged = True
            break

    # The bound may land exactly on the last growing sweep.
    if not converged:
        converged = _is_stable(size, compute_in, compute_out, in_sets, out_sets)

    LOG.debug("backward solve over %d positions: %d sweeps, converged=%s", size, sweeps, converged)
    return DataFlowResult(
        in_sets=in_sets, out_sets=out_sets, sweeps=sweeps, converged=converged
    )

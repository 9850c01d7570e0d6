from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from ..intermediate_representation.cfg import CFG, build_cfg
from ..intermediate_representation.ir import BasicBlock, Function, Instruction, Name
from .solver import solve_backward_sweeps

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiveSets:
    live_in: frozenset[Name]
    live_out: frozenset[Name]


@dataclass
class LivenessResult:
    """
    Live-in/live-out sets for every instruction position of a function.

    Rows follow ``function.instructions()``: blocks in declaration order,
    instructions in order, terminator last.
    """

    function: Function
    instructions: list[Instruction]
    rows: list[LiveSets]
    block_starts: dict[Name, int]
    sweeps: int
    converged: bool

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[LiveSets]:
        return iter(self.rows)

    @property
    def first_index(self) -> int:
        """Display number of position 0; unnamed values are numbered after params."""
        return len(self.function.params)

    def pairs(self) -> list[tuple[frozenset[Name], frozenset[Name]]]:
        return [(row.live_in, row.live_out) for row in self.rows]

    def position(self, block: Name, index: int) -> int:
        start = self.block_starts[block]
        size = len(self.function.block(block))
        if index < 0:
            index += size
        if not 0 <= index < size:
            raise IndexError(f"block {block} has no instruction {index}")
        return start + index

    def row_for(self, block: Name, index: int) -> LiveSets:
        return self.rows[self.position(block, index)]

    def block_live_in(self, block: Name) -> frozenset[Name]:
        return self.row_for(block, 0).live_in

    def block_live_out(self, block: Name) -> frozenset[Name]:
        return self.row_for(block, -1).live_out


def def_set(inst: Instruction) -> frozenset[Name]:
    if inst.dest is None:
        return frozenset()
    return frozenset((inst.dest,))


def use_set(inst: Instruction) -> frozenset[Name]:
    # Phi operands only flow along their predecessor edge.
    if inst.is_phi:
        return frozenset()
    return frozenset(
        name for name in (op.value_name for op in inst.uses) if name is not None
    )


def phi_contrib(pred: Name, succ: BasicBlock) -> frozenset[Name]:
    """Values the phis at the head of ``succ`` take when arriving from ``pred``."""
    names: set[Name] = set()
    for phi in succ.phis():
        for operand, block in phi.phi_incoming():
            if block != pred or operand.constant:
                continue
            if operand.name is not None:
                names.add(operand.name)
    return frozenset(names)


def compute_live_variables(
    function: Function,
    cfg: CFG | None = None,
    max_sweeps: int | None = None,
) -> LivenessResult:
    """
    Instruction-level backward liveness for ``function``.

    ``max_sweeps=None`` iterates to a fixed point. A positive bound runs at
    most that many sweeps, which can understate liveness around loops that
    need more propagation steps.
    """
    if cfg is None:
        cfg = build_cfg(function)

    instructions: list[Instruction] = []
    owner: list[int] = []
    starts: list[int] = []
    for handle, node in enumerate(cfg.nodes):
        starts.append(len(instructions))
        for inst in node.block.all_instructions():
            instructions.append(inst)
            owner.append(handle)

    size = len(instructions)
    defs = [def_set(inst) for inst in instructions]
    uses = [use_set(inst) for inst in instructions]
    is_terminator = [
        idx + 1 == size or owner[idx + 1] != owner[idx] for idx in range(size)
    ]
    edge_contrib = {
        (handle, succ): phi_contrib(node.name, cfg.nodes[succ].block)
        for handle, node in enumerate(cfg.nodes)
        for succ in node.successors
    }

    def compute_in(idx: int, in_sets, out_sets) -> frozenset[Name]:
        return uses[idx] | (out_sets[idx] - defs[idx])

    def compute_out(idx: int, in_sets, out_sets) -> frozenset[Name]:
        if not is_terminator[idx]:
            return in_sets[idx + 1]
        handle = owner[idx]
        live: set[Name] = set()
        for succ in cfg.nodes[handle].successors:
            live |= in_sets[starts[succ]]
            live |= edge_contrib[(handle, succ)]
        return frozenset(live)

    solved = solve_backward_sweeps(size, compute_in, compute_out, max_sweeps=max_sweeps)
    if not solved.converged:
        LOG.info(
            "%s: liveness stopped after %d sweeps before reaching a fixed point",
            function.name,
            solved.sweeps,
        )

    return LivenessResult(
        function=function,
        instructions=instructions,
        rows=[
            LiveSets(live_in=live_in, live_out=live_out)
            for live_in, live_out in zip(solved.in_sets, solved.out_sets)
        ],
        block_starts={node.name: starts[h] for h, node in enumerate(cfg.nodes)},
        sweeps=solved.sweeps,
        converged=solved.converged,
    )

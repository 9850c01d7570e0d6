from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from ..errors import MalformedInputError
from .ir import BasicBlock, Function, InstructionKind, Name

LOG = logging.getLogger(__name__)


class SuccessorState(Enum):
    DERIVED = "derived"
    NOT_DERIVED = "not-derived"


@dataclass
class CFGNode:
    """CFG node wrapping a basic block."""

    block: BasicBlock
    successors: list[int] = field(default_factory=list)
    predecessors: list[int] = field(default_factory=list)
    state: SuccessorState = SuccessorState.DERIVED

    @property
    def name(self) -> Name:
        return self.block.name


@dataclass
class CFG:
    """Control-flow graph over an arena of block nodes indexed by handle."""

    function: Function
    nodes: list[CFGNode]
    lookup: dict[Name, int]

    def __iter__(self) -> Iterable[CFGNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def entry(self) -> int | None:
        return 0 if self.nodes else None

    def handle(self, name: Name) -> int:
        try:
            return self.lookup[name]
        except KeyError:
            raise MalformedInputError(
                f"function {self.function.name} references unknown block {name}",
                subject=str(name),
            ) from None

    def node(self, name: Name) -> tuple[BasicBlock, int]:
        handle = self.handle(name)
        return self.nodes[handle].block, handle

    def add_edge(self, source: int, target: int, allow_parallel: bool = False) -> None:
        """Connect two handles; ``allow_parallel`` keeps one edge per control transfer."""
        if not (0 <= source < len(self.nodes) and 0 <= target < len(self.nodes)):
            raise KeyError("CFG edge endpoints must exist in nodes.")
        src_node = self.nodes[source]
        tgt_node = self.nodes[target]
        if allow_parallel or target not in src_node.successors:
            src_node.successors.append(target)
        if allow_parallel or source not in tgt_node.predecessors:
            tgt_node.predecessors.append(source)

    def successors(self, name: Name) -> list[Name]:
        return [self.nodes[h].name for h in self.nodes[self.handle(name)].successors]

    def predecessors(self, name: Name) -> list[Name]:
        return [self.nodes[h].name for h in self.nodes[self.handle(name)].predecessors]

    def block_names(self) -> list[Name]:
        return [node.name for node in self.nodes]

    def edges(self) -> list[tuple[Name, Name]]:
        return [
            (node.name, self.nodes[succ].name)
            for node in self.nodes
            for succ in node.successors
        ]

    def unresolved(self) -> list[Name]:
        """Blocks whose terminator shape yielded no successor information."""
        return [node.name for node in self.nodes if node.state is SuccessorState.NOT_DERIVED]


def build_cfg(function: Function) -> CFG:
    """Build the block-level CFG of ``function`` from its terminators."""
    nodes: list[CFGNode] = []
    lookup: dict[Name, int] = {}
    for block in function.blocks:
        if block.name in lookup:
            raise MalformedInputError(
                f"function {function.name} declares block {block.name} twice",
                subject=str(block.name),
            )
        lookup[block.name] = len(nodes)
        nodes.append(CFGNode(block=block))

    cfg = CFG(function=function, nodes=nodes, lookup=lookup)

    for handle, node in enumerate(nodes):
        term = node.block.terminator
        if term.is_branch:
            for target in term.branch_targets():
                cfg.add_edge(handle, cfg.handle(target), allow_parallel=True)
        elif term.kind is not InstructionKind.RETURN:
            node.state = SuccessorState.NOT_DERIVED
            LOG.warning(
                "%s: unsupported terminator (opcode %d, %d uses) in block %s; "
                "no successors derived",
                function.name,
                term.opcode,
                len(term.uses),
                node.name,
            )

    # Phi predecessor lists must name blocks of this function.
    for node in nodes:
        for phi in node.block.phis():
            for pred in phi.incoming:
                cfg.handle(pred)

    return cfg

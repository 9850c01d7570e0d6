from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

from ..errors import MalformedInputError

# Stable wire encodings emitted by the external parser.
OPCODE_RET = 1
OPCODE_BR = 2
OPCODE_PHI = 55
LABEL_TYPE_ID = 8


@dataclass(frozen=True)
class Name:
    """
    Identity of an SSA value or basic block.

    A Name is either symbolic (``%argc``) or a numeric slot (``%3``). The two
    variants never compare equal, even when their text coincides.
    """

    value: str | int
    numeric: bool = False

    @classmethod
    def symbol(cls, value: str) -> Name:
        return cls(value=value, numeric=False)

    @classmethod
    def number(cls, value: int) -> Name:
        return cls(value=value, numeric=True)

    def sort_key(self) -> tuple[int, int, str]:
        if self.numeric:
            return (0, int(self.value), "")
        return (1, 0, str(self.value))

    def __str__(self) -> str:
        return f"%{self.value}"


def sorted_names(names: Iterable[Name]) -> list[Name]:
    """Deterministic ordering: numeric slots first, then symbols."""
    return sorted(names, key=Name.sort_key)


@dataclass(frozen=True)
class Type:
    id: int
    name: str

    @property
    def is_label(self) -> bool:
        return self.id == LABEL_TYPE_ID

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Operand:
    constant: bool
    name: Name | None
    type: Type

    @property
    def value_name(self) -> Name | None:
        """The Name this operand reads as data, or None for constants and labels."""
        if self.constant or self.type.is_label:
            return None
        return self.name

    def render(self) -> str:
        if self.name is None:
            return f"{self.type} <const>"
        return f"{self.type} {self.name}"


class InstructionKind(Enum):
    RETURN = "ret"
    BRANCH = "br"
    COND_BRANCH = "condbr"
    PHI = "phi"
    DEFINING = "def"
    NON_DEFINING = "nodef"


def classify(opcode: int, dest: Name | None, arity: int) -> InstructionKind:
    """Map a raw opcode/arity pair onto the closed set of instruction shapes."""
    if opcode == OPCODE_RET:
        return InstructionKind.RETURN
    if opcode == OPCODE_BR and arity == 1:
        return InstructionKind.BRANCH
    if opcode == OPCODE_BR and arity == 3:
        return InstructionKind.COND_BRANCH
    if opcode == OPCODE_PHI:
        return InstructionKind.PHI
    if dest is not None:
        return InstructionKind.DEFINING
    return InstructionKind.NON_DEFINING


@dataclass(frozen=True)
class Instruction:
    """
    One instruction or terminator.

    ``incoming`` is only populated for phis and pairs each use with the
    predecessor block it arrives from. Build instances through ``decode`` so
    that ``kind`` is derived once from the opcode.
    """

    opcode: int
    dest: Name | None
    uses: tuple[Operand, ...]
    incoming: tuple[Name, ...]
    kind: InstructionKind

    @classmethod
    def decode(
        cls,
        opcode: int,
        dest: Name | None = None,
        uses: Iterable[Operand] = (),
        incoming: Iterable[Name] = (),
    ) -> Instruction:
        uses = tuple(uses)
        incoming = tuple(incoming)
        kind = classify(opcode, dest, len(uses))
        if kind is InstructionKind.PHI:
            if len(incoming) != len(uses):
                raise MalformedInputError(
                    f"phi {dest} has {len(uses)} incoming values but "
                    f"{len(incoming)} predecessor blocks",
                    subject=str(dest),
                )
        elif incoming:
            raise MalformedInputError(
                f"opcode {opcode} carries predecessor blocks but is not a phi",
                subject=str(dest),
            )
        return cls(opcode=opcode, dest=dest, uses=uses, incoming=incoming, kind=kind)

    @property
    def is_phi(self) -> bool:
        return self.kind is InstructionKind.PHI

    @property
    def is_branch(self) -> bool:
        return self.kind in (InstructionKind.BRANCH, InstructionKind.COND_BRANCH)

    def branch_targets(self) -> tuple[Name, ...]:
        """Successor block Names; true target first for conditional branches."""
        if self.kind is InstructionKind.BRANCH:
            labels = self.uses[:1]
        elif self.kind is InstructionKind.COND_BRANCH:
            labels = self.uses[1:3]
        else:
            return ()
        targets = []
        for operand in labels:
            if operand.name is None:
                raise MalformedInputError(
                    "branch target operand has no block Name", subject="Uses.Name"
                )
            targets.append(operand.name)
        return tuple(targets)

    def phi_incoming(self) -> Iterator[tuple[Operand, Name]]:
        return zip(self.uses, self.incoming)

    def render(self) -> str:
        """Short LLVM-flavoured text, used for side-by-side liveness display."""
        kind = self.kind
        if kind is InstructionKind.RETURN:
            if not self.uses:
                return "ret void"
            return "ret " + ", ".join(op.render() for op in self.uses)
        if kind in (InstructionKind.BRANCH, InstructionKind.COND_BRANCH):
            return "br " + ", ".join(op.render() for op in self.uses)
        if kind is InstructionKind.PHI:
            ty = self.uses[0].type if self.uses else ""
            pairs = ", ".join(
                f"[ {op.name if op.name is not None else '<const>'}, {block} ]"
                for op, block in self.phi_incoming()
            )
            return f"{self.dest} = phi {ty} {pairs}".rstrip()
        body = f"op{self.opcode}"
        if self.uses:
            body += " " + ", ".join(op.render() for op in self.uses)
        if self.dest is not None:
            return f"{self.dest} = {body}"
        return body


@dataclass(frozen=True)
class Param:
    name: Name
    type: Type


@dataclass(frozen=True)
class BasicBlock:
    name: Name
    instructions: tuple[Instruction, ...]
    terminator: Instruction

    def __post_init__(self) -> None:
        seen_body = False
        for inst in self.instructions:
            if inst.is_phi and seen_body:
                raise MalformedInputError(
                    f"phi {inst.dest} follows a non-phi instruction in block {self.name}",
                    subject=str(self.name),
                )
            if not inst.is_phi:
                seen_body = True

    def phis(self) -> Iterator[Instruction]:
        """The contiguous run of phis at the head of the block."""
        for inst in self.instructions:
            if not inst.is_phi:
                return
            yield inst

    def all_instructions(self) -> tuple[Instruction, ...]:
        return self.instructions + (self.terminator,)

    def __len__(self) -> int:
        return len(self.instructions) + 1


@dataclass(frozen=True)
class Function:
    """A function body; the first block is the entry block."""

    name: str
    params: tuple[Param, ...] = field(default_factory=tuple)
    blocks: tuple[BasicBlock, ...] = field(default_factory=tuple)

    @property
    def entry(self) -> BasicBlock | None:
        return self.blocks[0] if self.blocks else None

    def instructions(self) -> list[Instruction]:
        """All instructions, blocks in declaration order, terminator last in each."""
        flat: list[Instruction] = []
        for block in self.blocks:
            flat.extend(block.all_instructions())
        return flat

    def block(self, name: Name) -> BasicBlock:
        for block in self.blocks:
            if block.name == name:
                return block
        raise MalformedInputError(
            f"function {self.name} has no block {name}", subject=str(name)
        )


@dataclass(frozen=True)
class Module:
    functions: tuple[Function, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[Function]:
        return iter(self.functions)

    def function(self, name: str) -> Function:
        for function in self.functions:
            if function.name == name:
                return function
        raise KeyError(f"module has no function named {name!r}")

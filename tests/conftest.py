# tests/conftest.py
"""
Shared builders for hand-made IR functions plus fixtures for the JSON samples
under ``tests/data``.
"""

from pathlib import Path

import pytest

from ssa_liveness.intermediate_representation.ir import (
    BasicBlock,
    Function,
    Instruction,
    Module,
    Name,
    Operand,
    Param,
    Type,
    OPCODE_BR,
    OPCODE_PHI,
    OPCODE_RET,
)
from ssa_liveness.parsing.json_loader import load_module

DATA = Path(__file__).parent / "data"

I32 = Type(13, "i32")
I1 = Type(13, "i1")
LABEL = Type(8, "label")

ADD = 13
ICMP = 53
STORE = 62


def N(value):
    """Symbolic Name for strings, numeric Name for ints."""
    if isinstance(value, int):
        return Name.number(value)
    return Name.symbol(value)


def var(name, ty=I32):
    return Operand(constant=False, name=N(name), type=ty)


def const(ty=I32):
    return Operand(constant=True, name=None, type=ty)


def label(name):
    return Operand(constant=False, name=N(name), type=LABEL)


def op(opcode, dest, *uses):
    return Instruction.decode(opcode, dest=None if dest is None else N(dest), uses=uses)


def phi(dest, *pairs):
    """phi(dest, (operand, block_name), ...)"""
    return Instruction.decode(
        OPCODE_PHI,
        dest=N(dest),
        uses=[operand for operand, _ in pairs],
        incoming=[N(block) for _, block in pairs],
    )


def ret(*uses):
    return Instruction.decode(OPCODE_RET, uses=uses)


def br(target):
    return Instruction.decode(OPCODE_BR, uses=[label(target)])


def cbr(cond, if_true, if_false):
    return Instruction.decode(
        OPCODE_BR, uses=[var(cond, I1), label(if_true), label(if_false)]
    )


def block(name, *body):
    *instructions, terminator = body
    return BasicBlock(name=N(name), instructions=tuple(instructions), terminator=terminator)


def function(name, params, *blocks):
    return Function(
        name=name,
        params=tuple(Param(name=N(p), type=I32) for p in params),
        blocks=tuple(blocks),
    )


@pytest.fixture
def loop_module() -> Module:
    return load_module(DATA / "loop.json")


@pytest.fixture
def loop_function(loop_module) -> Function:
    return loop_module.function("count")


@pytest.fixture
def ret_function() -> Function:
    return load_module(DATA / "ret.json").function("main")


@pytest.fixture
def diamond_function() -> Function:
    """
    entry: %c = icmp %a, %b ; br %c, left, right
    left:  %x = add %a, 1   ; br join
    right: %y = add %b, 1   ; br join
    join:  %z = phi [%x, left], [%y, right] ; ret %z
    """
    return function(
        "diamond",
        ["a", "b"],
        block("entry", op(ICMP, "c", var("a"), var("b")), cbr("c", "left", "right")),
        block("left", op(ADD, "x", var("a"), const()), br("join")),
        block("right", op(ADD, "y", var("b"), const()), br("join")),
        block("join", phi("z", (var("x"), "left"), (var("y"), "right")), ret(var("z"))),
    )

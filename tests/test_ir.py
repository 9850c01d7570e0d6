# tests/test_ir.py
"""Tests for the immutable IR model."""

import dataclasses

import pytest

from ssa_liveness.errors import MalformedInputError
from ssa_liveness.intermediate_representation.ir import (
    BasicBlock,
    Instruction,
    InstructionKind,
    Name,
    OPCODE_BR,
    OPCODE_PHI,
    classify,
    sorted_names,
)
from tests.conftest import (
    ADD,
    I32,
    STORE,
    block,
    br,
    cbr,
    const,
    function,
    label,
    op,
    phi,
    ret,
    var,
)


class TestName:

    def test_variants_never_compare_equal(self):
        assert Name.symbol("1") != Name.number(1)
        assert len({Name.symbol("1"), Name.number(1)}) == 2

    def test_structural_equality_and_hash(self):
        assert Name.symbol("x") == Name.symbol("x")
        assert hash(Name.number(4)) == hash(Name.number(4))
        assert {Name.symbol("x"): 1}[Name.symbol("x")] == 1

    def test_display(self):
        assert str(Name.symbol("argc")) == "%argc"
        assert str(Name.number(3)) == "%3"

    def test_sorting_puts_numbers_first(self):
        names = [Name.symbol("b"), Name.number(10), Name.symbol("a"), Name.number(2)]
        assert sorted_names(names) == [
            Name.number(2),
            Name.number(10),
            Name.symbol("a"),
            Name.symbol("b"),
        ]

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            Name.symbol("x").value = "y"


class TestOperand:

    def test_constant_is_not_a_value(self):
        assert const().value_name is None

    def test_label_is_not_a_value(self):
        assert label("loop").value_name is None

    def test_plain_value(self):
        assert var("x").value_name == Name.symbol("x")


class TestInstructionKind:

    @pytest.mark.parametrize(
        "opcode, dest, arity, expected",
        [
            (1, None, 0, InstructionKind.RETURN),
            (1, None, 1, InstructionKind.RETURN),
            (2, None, 1, InstructionKind.BRANCH),
            (2, None, 3, InstructionKind.COND_BRANCH),
            (2, None, 2, InstructionKind.NON_DEFINING),
            (55, Name.symbol("p"), 2, InstructionKind.PHI),
            (13, Name.symbol("x"), 2, InstructionKind.DEFINING),
            (62, None, 2, InstructionKind.NON_DEFINING),
        ],
    )
    def test_classify(self, opcode, dest, arity, expected):
        assert classify(opcode, dest, arity) is expected

    def test_decode_sets_kind_once(self):
        inst = op(ADD, "x", var("a"), const())
        assert inst.kind is InstructionKind.DEFINING
        assert inst.dest == Name.symbol("x")
        assert not inst.is_phi

    def test_phi_arity_mismatch_is_fatal(self):
        with pytest.raises(MalformedInputError):
            Instruction.decode(
                OPCODE_PHI,
                dest=Name.symbol("p"),
                uses=[var("a"), var("b")],
                incoming=[Name.symbol("entry")],
            )

    def test_incoming_blocks_only_on_phi(self):
        with pytest.raises(MalformedInputError):
            Instruction.decode(ADD, dest=Name.symbol("x"), uses=[var("a")], incoming=[Name.symbol("b")])


class TestBranchTargets:

    def test_unconditional(self):
        assert br("loop").branch_targets() == (Name.symbol("loop"),)

    def test_conditional_true_then_false(self):
        inst = cbr("c", "then", "else")
        assert inst.branch_targets() == (Name.symbol("then"), Name.symbol("else"))

    def test_return_has_none(self):
        assert ret(var("x")).branch_targets() == ()

    def test_unsupported_arity_has_none(self):
        inst = Instruction.decode(OPCODE_BR, uses=[var("c"), label("a")])
        assert inst.branch_targets() == ()


class TestRender:

    def test_defining(self):
        assert op(ADD, "x", var("a"), const()).render() == "%x = op13 i32 %a, i32 <const>"

    def test_non_defining(self):
        assert op(STORE, None, var("a"), var("p")).render() == "op62 i32 %a, i32 %p"

    def test_phi(self):
        inst = phi("i", (var("start"), "entry"), (var("next"), "loop"))
        assert inst.render() == "%i = phi i32 [ %start, %entry ], [ %next, %loop ]"

    def test_terminators(self):
        assert ret().render() == "ret void"
        assert ret(var("x")).render() == "ret i32 %x"
        assert br("exit").render() == "br label %exit"
        assert cbr("c", "a", "b").render() == "br i1 %c, label %a, label %b"


class TestBlocksAndFunctions:

    def test_phi_must_lead_block(self):
        with pytest.raises(MalformedInputError):
            BasicBlock(
                name=Name.symbol("b"),
                instructions=(
                    op(ADD, "x", var("a"), const()),
                    phi("p", (var("a"), "entry")),
                ),
                terminator=ret(),
            )

    def test_phis_prefix(self):
        b = block(
            "loop",
            phi("p", (var("a"), "entry")),
            phi("q", (var("b"), "entry")),
            op(ADD, "x", var("p"), var("q")),
            ret(var("x")),
        )
        assert [inst.dest for inst in b.phis()] == [Name.symbol("p"), Name.symbol("q")]
        assert len(b) == 4

    def test_instructions_flatten_in_order(self):
        fn = function(
            "f",
            ["a"],
            block("entry", op(ADD, "x", var("a"), const()), br("exit")),
            block("exit", ret(var("x"))),
        )
        kinds = [inst.kind for inst in fn.instructions()]
        assert kinds == [
            InstructionKind.DEFINING,
            InstructionKind.BRANCH,
            InstructionKind.RETURN,
        ]
        assert fn.entry.name == Name.symbol("entry")

    def test_unknown_block_lookup(self):
        fn = function("f", [], block("entry", ret()))
        with pytest.raises(MalformedInputError) as excinfo:
            fn.block(Name.symbol("nowhere"))
        assert excinfo.value.subject == "%nowhere"

    def test_module_function_lookup(self, loop_module):
        assert loop_module.function("zero").name == "zero"
        with pytest.raises(KeyError):
            loop_module.function("missing")

    def test_operand_types(self):
        assert var("x").type == I32

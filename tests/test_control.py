"""
Tests for Control-Flow Lowering
===============================

if / else, while and switch on the memory machines, plus the layout
properties every back-end must keep.
"""

import re

import pytest

from isacc import compile_source
from isacc.backends import ISA
from isacc.config import CompilerOptions
from isacc.errors import PatternNotFoundError

NO_SUMMARY = CompilerOptions(emit_summary=False)


def listing(source: str, isa: str = "mm3", options: CompilerOptions = NO_SUMMARY) -> list[str]:
    return compile_source(source, isa=isa, options=options).splitlines()


def definitions(lines: list[str], label: str) -> int:
    """Number of lines defining label."""
    return sum(1 for line in lines if line.split("\t")[0] == f"{label}:")


def index_of_definition(lines: list[str], label: str) -> int:
    for index, line in enumerate(lines):
        if line.split("\t")[0] == f"{label}:":
            return index
    raise AssertionError(f"{label} is not defined")


# =============================================================================
# If / Else
# =============================================================================

class TestIfElse:
    """Tests for if and if / else."""

    def test_if_else_layout(self):
        """Branch to the true body, else body inline, jump over."""
        assert listing("if (A == B) C = 1; else C = 2;") == [
            "\tbeq A, B, True0",
            "\tadd C, 2, 0",
            "\tj Exit0",
            "True0:\tadd C, 1, 0",
            "Exit0:",
        ]

    def test_if_without_else(self):
        assert listing("if (A != B) C = 1; D = 2;") == [
            "\tbne A, B, True0",
            "\tj Exit0",
            "True0:\tadd C, 1, 0",
            "Exit0:\tadd D, 2, 0",
        ]

    def test_accumulator_if_else(self):
        assert listing("if (A == B) C = 1; else C = 2;", "accumulator") == [
            "\tload A",
            "\tbeq B, True0",
            "\tload 2",
            "\tstore C",
            "\tj Exit0",
            "True0:\tload 1",
            "\tstore C",
            "Exit0:",
        ]

    def test_stack_if_else(self):
        assert listing("if (A == B) C = 1; else C = 2;", "stack") == [
            "\tpush True0",
            "\tpush A",
            "\tpush B",
            "\tbeq",
            "\tpush 2",
            "\tpop C",
            "\tpush Exit0",
            "\tj",
            "True0:\tpush 1",
            "\tpop C",
            "Exit0:",
        ]

    @pytest.mark.parametrize("isa", [isa.value for isa in ISA])
    def test_else_body_emitted_once(self, isa):
        """The else body appears exactly once, before the true body."""
        lines = listing("if (A == B) C = 1; else C = 2;", isa)
        else_lines = [i for i, line in enumerate(lines) if re.search(r"\b2\b", line)]
        assert len(else_lines) == 1
        assert else_lines[0] < index_of_definition(lines, "True0")
        assert definitions(lines, "True0") == 1
        assert definitions(lines, "Exit0") == 1

    def test_dangling_else_binds_to_inner_if(self):
        """An else after two unbraced ifs belongs to the inner one."""
        assert listing("if (A == 1) if (B == 2) C = 1; else C = 2;") == [
            "\tbeq A, 1, True0",
            "\tj Exit0",
            "True0:\tbeq B, 2, True1",
            "\tadd C, 2, 0",
            "\tj Exit1",
            "True1:\tadd C, 1, 0",
            "Exit1:",
            "Exit0:",
        ]

    def test_second_else_binds_to_outer_if(self):
        """With two elses, the first goes to the inner if, the second to the outer."""
        assert listing("if (A == 1) if (B == 2) C = 1; else C = 2; else C = 3;") == [
            "\tbeq A, 1, True0",
            "\tadd C, 3, 0",
            "\tj Exit0",
            "True0:\tbeq B, 2, True1",
            "\tadd C, 2, 0",
            "\tj Exit1",
            "True1:\tadd C, 1, 0",
            "Exit1:",
            "Exit0:",
        ]

    def test_else_after_if_inside_while(self):
        """An if nested under an unbraced while still claims the else."""
        assert listing("if (A == 1) while (B < 2) if (C == 3) D = 1; else D = 2;") == [
            "\tbeq A, 1, True0",
            "\tj Exit0",
            "True0:",
            "Loop0:\tslt Temp0, B, 2",
            "\tbeq Temp0, 0, Exit1",
            "\tbeq C, 3, True1",
            "\tadd D, 2, 0",
            "\tj Exit2",
            "True1:\tadd D, 1, 0",
            "Exit2:\tj Loop0",
            "Exit1:",
            "Exit0:",
        ]

    def test_block_bodies(self):
        """Both bodies may be blocks."""
        assert listing("if (A != B) { C = 1; D = 2; } else { C = 3; }") == [
            "\tbne A, B, True0",
            "\tadd C, 3, 0",
            "\tj Exit0",
            "True0:\tadd C, 1, 0",
            "\tadd D, 2, 0",
            "Exit0:",
        ]

    def test_else_if_chain(self):
        """Every if picks up its own else."""
        assert listing("if (A == 1) B = 1; else if (A == 2) B = 2; else B = 3;") == [
            "\tbeq A, 1, True0",
            "\tbeq A, 2, True1",
            "\tadd B, 3, 0",
            "\tj Exit1",
            "True1:\tadd B, 2, 0",
            "Exit1:\tj Exit0",
            "True0:\tadd B, 1, 0",
            "Exit0:",
        ]

    def test_nested_if_in_block(self):
        """An else inside a block is not lowered twice."""
        lines = listing("if (A == B) { if (C == D) E = 1; else E = 2; } F = 3;")
        assert sum(1 for line in lines if "E, 2" in line) == 1
        assert lines[-1] == "Exit0:\tadd F, 3, 0"

    def test_goto_body(self):
        """if (c) goto L branches straight to L."""
        assert listing("if (A == B) goto out; C = 1; out: D = 2;") == [
            "\tbeq A, B, out",
            "\tadd C, 1, 0",
            "out:\tadd D, 2, 0",
        ]

    def test_missing_comparison(self):
        with pytest.raises(PatternNotFoundError, match="no comparison operator"):
            compile_source("if (A) B = 1;")

    def test_two_comparisons(self):
        with pytest.raises(PatternNotFoundError, match="one comparison"):
            compile_source("if (A < B < C) D = 1;")


# =============================================================================
# Comparisons
# =============================================================================

class TestComparisons:
    """Ordering tests reduce to slt plus a branch against zero."""

    @pytest.mark.parametrize("condition, expected", [
        ("A < B", ["\tslt Temp0, A, B", "\tbne Temp0, 0, True0"]),
        ("A > B", ["\tslt Temp0, B, A", "\tbne Temp0, 0, True0"]),
        ("A >= B", ["\tslt Temp0, A, B", "\tbeq Temp0, 0, True0"]),
        ("A <= B", ["\tslt Temp0, B, A", "\tbeq Temp0, 0, True0"]),
    ])
    def test_ordering(self, condition, expected):
        assert listing(f"if ({condition}) C = 1;")[:2] == expected

    def test_expression_operands(self):
        """Operands of a comparison may be expressions."""
        lines = listing("if (A + 1 == B[2]) C = 1;")
        assert lines[:3] == [
            "\tadd Temp0, A, 1",
            "\tlw Temp1, 8(B)",
            "\tbeq Temp0, Temp1, True0",
        ]


# =============================================================================
# While
# =============================================================================

class TestWhile:
    """Tests for while loops."""

    def test_negated_condition(self):
        """Failing the condition branches to the exit."""
        assert listing("while (A < 5) A = A + 1;") == [
            "Loop0:\tslt Temp0, A, 5",
            "\tbeq Temp0, 0, Exit0",
            "\tadd A, A, 1",
            "\tj Loop0",
            "Exit0:",
        ]

    def test_not_equal(self):
        """!= loops exit on equality."""
        assert listing("while (A != 0) A = A - 1;")[0] == "Loop0:\tbeq A, 0, Exit0"

    def test_accumulator(self):
        assert listing("while (A < 5) A = A + 1;", "accumulator") == [
            "Loop0:\tload A",
            "\tslt 5",
            "\tbeq 0, Exit0",
            "\tload A",
            "\tadd 1",
            "\tstore A",
            "\tj Loop0",
            "Exit0:",
        ]

    def test_stack(self):
        assert listing("while (A < 5) A = A + 1;", "stack") == [
            "Loop0:\tpush Exit0",
            "\tpush A",
            "\tpush 5",
            "\tslt",
            "\tpush 0",
            "\tbeq",
            "\tpush A",
            "\tpush 1",
            "\tadd",
            "\tpop A",
            "\tpush Loop0",
            "\tj",
            "Exit0:",
        ]

    @pytest.mark.parametrize("isa", [isa.value for isa in ISA])
    def test_labels_defined_once(self, isa):
        lines = listing("while (A < 5) A = A + 1;", isa)
        assert definitions(lines, "Loop0") == 1
        assert definitions(lines, "Exit0") == 1

    def test_nested_loops(self):
        """Inner loop labels are distinct; its exit labels the next statement."""
        lines = listing(
            "while (I < N) { J = 0; while (J < N) J = J + 1; I = I + 1; }"
        )
        assert lines == [
            "Loop0:\tslt Temp0, I, N",
            "\tbeq Temp0, 0, Exit0",
            "\tadd J, 0, 0",
            "Loop1:\tslt Temp0, J, N",
            "\tbeq Temp0, 0, Exit1",
            "\tadd J, J, 1",
            "\tj Loop1",
            "Exit1:\tadd I, I, 1",
            "\tj Loop0",
            "Exit0:",
        ]


# =============================================================================
# Switch
# =============================================================================

SWITCH = """
switch (A) {
    case 0: B = 1; break;
    case 1: B = 2; break;
    default: B = 3;
}
"""


class TestSwitch:
    """Tests for switch statements."""

    def test_layout(self):
        """Bounds checks, indirect jump, then the case bodies."""
        assert listing(SWITCH) == [
            "\tslti Temp0, A, 0",
            "\tbne Temp0, 0, Exit0",
            "\tslti Temp0, A, 3",
            "\tbeq Temp0, 0, Exit0",
            "\tadd Temp0, A, A",
            "\tadd Temp0, Temp0, Temp0",
            "\tadd Temp0, Temp0, addrJumpTable",
            "\tlw Temp0, 0(Temp0)",
            "\tjr Temp0",
            "L0:\tadd B, 1, 0",
            "\tj Exit0",
            "L1:\tadd B, 2, 0",
            "\tj Exit0",
            "L2:\tadd B, 3, 0",
            "Exit0:",
        ]

    def test_stack_jumps(self):
        """Two bounds checks and N-1 trailing jumps on the stack machine."""
        lines = listing(SWITCH, "stack")
        assert lines.count("\tpush Exit0") == 4
        assert lines.count("\tj") == 2
        assert lines.count("\tjr") == 1
        assert definitions(lines, "Exit0") == 1

    def test_accumulator_jumps(self):
        lines = listing(SWITCH, "accumulator")
        assert sum(1 for line in lines if line.endswith(", Exit0")) == 2
        assert lines.count("\tj Exit0") == 2
        assert "\tjr Temp0" in lines

    def test_fallthrough(self):
        """A case without break runs into the next one."""
        lines = listing(
            "switch (A) { case 0: B = 1; case 1: B = 2; break; case 2: B = 3; }"
        )
        assert lines.count("\tj Exit0") == 1
        assert lines[lines.index("L1:\tadd B, 2, 0") + 1] == "\tj Exit0"

    def test_jump_table_option(self):
        options = CompilerOptions(jump_table="table", emit_summary=False)
        assert "\tadd Temp0, Temp0, table" in listing(SWITCH, options=options)

    def test_expression_value(self):
        """The switch value may be an expression."""
        lines = listing("switch (A + 1) { case 0: B = 1; break; default: B = 2; }")
        assert lines[:2] == ["\tadd Temp0, A, 1", "\tslti Temp1, Temp0, 0"]

    def test_statement_before_case(self):
        with pytest.raises(PatternNotFoundError):
            compile_source("switch (A) { B = 1; }")

    def test_missing_body(self):
        with pytest.raises(PatternNotFoundError, match="body"):
            compile_source("switch (A) B = 1;")

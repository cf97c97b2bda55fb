"""
Control-Flow Lowering
=====================

Lowers if / else, while and switch statements. Conditions compare two
operands with one of == != < > <= >=; each side may be a name, a
number, an array element or a parenthesised expression.

Layouts
-------
if (c) S1; else S2;::

        branch-if c  -> True0
        S2
        j Exit0
    True0:
        S1
    Exit0:

while (c) S;::

    Loop0:
        branch-if not c -> Exit0
        S
        j Loop0
    Exit0:

switch (v) { case ...: S0; break; ... } with N cases::

        bounds checks (v < 0, v >= N) -> Exit0
        jump through word (addrJumpTable + 4 * v)
    L0: S0
        j Exit0             (all but the last case, when it ends in break)
    L1: ...
    Exit0:

The else of an if is found by looking at the source right after the if
statement, past any else clauses that a nested unbraced if claims first.
Its body is lowered in place and its source span is recorded,
so the statement scanner drops the else when it reaches it later.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from isacc.backends.base import Condition
from isacc.compiler.lexer import (
    COMPARISONS,
    Token,
    TokenType,
    find_first,
    find_matching,
    split_statements,
)
from isacc.errors import PatternNotFoundError, UnbalancedBracketError

if TYPE_CHECKING:
    from isacc.compiler.engine import StatementLowerer

logger = logging.getLogger(__name__)

_ELSE = re.compile(r"\s*else\b")
# Unbraced if or while, after any labels, up to its '('
_NESTED_HEADER = re.compile(r"\s*(?:[A-Za-z_]\w*\s*:\s*)*(if|while)\s*\(")

# Comparison token -> (condition, operands swapped)
_TESTS = {
    TokenType.EQ: (Condition.EQ, False),
    TokenType.NE: (Condition.NE, False),
    TokenType.LT: (Condition.LT, False),
    TokenType.GT: (Condition.LT, True),
    TokenType.LE: (Condition.GE, True),
    TokenType.GE: (Condition.GE, False),
}


@dataclass
class _Case:
    body: list[Token] = field(default_factory=list)
    breaks: bool = False


class ControlFlowLowerer:
    """Lowers if, while and switch statements for a StatementLowerer."""

    def __init__(self, lowerer: "StatementLowerer"):
        self.lowerer = lowerer
        self.state = lowerer.state
        self.backend = lowerer.backend
        self.namespace = lowerer.namespace

    # =========================================================================
    # If / Else
    # =========================================================================

    def lower_if(self, tokens: list[Token]) -> None:
        keyword = tokens[0]
        condition, body = self._split_header(tokens)
        temps: list[str] = []
        test, operand1, operand2 = self._condition(keyword, condition, temps)

        target = self._goto_target(body)
        if target is not None:
            self.namespace.add_label(target)
            self.backend.branch(test, operand1, operand2, target)
            self.lowerer.release(temps)
            self._lower_else(tokens, body)
            return

        true_label = self.namespace.new_label("True")
        exit_label = self.namespace.new_label("Exit")
        self.backend.branch(test, operand1, operand2, true_label)
        self.lowerer.release(temps)

        self._lower_else(tokens, body)
        self.backend.jump(exit_label)

        self.state.add_pending_label(true_label)
        self.lowerer.lower_body(body)
        self.state.add_pending_label(exit_label)

    def _lower_else(self, if_tokens: list[Token], body: list[Token]) -> None:
        """
        Lower the else clause belonging to this if, if there is one.

        An else binds to the nearest if. When the body is itself an
        unbraced if (possibly under a while), the else clauses that body
        claims are skipped first.
        """
        end = if_tokens[-1].end
        if body and body[0].offset >= 0:
            end = self._statement_end(body[0].offset, if_tokens[0])
        if end < 0:
            return
        match = _ELSE.match(self.state.text, end)
        if match is None:
            return

        else_start = match.end() - len("else")
        body_end = self._statement_extent(match.end(), if_tokens[0])
        logger.debug(f"Lowering else body at offset {else_start}")
        body = self.lowerer.tokenize(self.state.text[match.end():body_end], match.end())
        self.lowerer.lower_body(body)
        self.state.mark_consumed(else_start, body_end)

    def _statement_end(self, start: int, anchor: Token) -> int:
        """End offset of the statement at start, its else clauses included."""
        match = _NESTED_HEADER.match(self.state.text, start)
        if match is None:
            return self._statement_extent(start, anchor)

        close = self._closing_paren(match.end() - 1, anchor)
        end = self._statement_end(close + 1, anchor)
        if match.group(1) == "if":
            else_match = _ELSE.match(self.state.text, end)
            if else_match is not None:
                end = self._statement_end(else_match.end(), anchor)
        return end

    def _closing_paren(self, start: int, anchor: Token) -> int:
        depth = 0
        for position in range(start, len(self.state.text)):
            char = self.state.text[position]
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
                if depth == 0:
                    return position
        raise self.state.error(UnbalancedBracketError, "'(' is never closed", anchor)

    def _statement_extent(self, start: int, anchor: Token) -> int:
        """End offset of the statement starting at start in the source."""
        text = self.state.text
        parens = braces = 0
        for position in range(start, len(text)):
            char = text[position]
            if char == "(":
                parens += 1
            elif char == ")":
                parens -= 1
            elif char == "{":
                braces += 1
            elif char == "}":
                braces -= 1
                if braces < 0:
                    break
                if braces == 0 and parens == 0:
                    return position + 1
            elif char == ";" and braces == 0 and parens == 0:
                return position + 1
        raise self.state.error(
            UnbalancedBracketError, "'else' body is not terminated", anchor
        )

    # =========================================================================
    # While
    # =========================================================================

    def lower_while(self, tokens: list[Token]) -> None:
        keyword = tokens[0]
        loop_label = self.namespace.new_label("Loop")
        self.state.add_pending_label(loop_label)

        condition, body = self._split_header(tokens)
        temps: list[str] = []
        test, operand1, operand2 = self._condition(keyword, condition, temps)

        target = self._goto_target(body)
        if target is not None:
            self.namespace.add_label(target)
            self.backend.branch(test, operand1, operand2, target)
            self.lowerer.release(temps)
            return

        exit_label = self.namespace.new_label("Exit")
        self.backend.branch(test.negated, operand1, operand2, exit_label)
        self.lowerer.release(temps)

        self.lowerer.lower_body(body)
        self.backend.jump(loop_label)
        self.state.add_pending_label(exit_label)

    # =========================================================================
    # Switch
    # =========================================================================

    def lower_switch(self, tokens: list[Token]) -> None:
        keyword = tokens[0]
        header, rest = self._split_header(tokens)
        if not rest or rest[0].type is not TokenType.LBRACE:
            raise self.state.error(PatternNotFoundError, "'switch' needs a { } body", keyword)
        close = find_matching(rest, 0)
        cases = self._split_cases(keyword, rest[1:close])

        temps: list[str] = []
        value = self.lowerer.resolve_operand(header, temps, keyword)
        exit_label = self.namespace.new_label("Exit")
        self.backend.switch_dispatch(value, len(cases), exit_label)
        self.lowerer.release(temps)

        last = len(cases) - 1
        for number, case in enumerate(cases):
            self.state.add_pending_label(self.namespace.new_label("L"))
            self.lowerer.lower_sequence(split_statements(case.body))
            if case.breaks and number < last:
                self.backend.jump(exit_label)
        self.state.add_pending_label(exit_label)

    def _split_cases(self, keyword: Token, body: list[Token]) -> list[_Case]:
        cases: list[_Case] = []
        depth = 0
        index = 0
        while index < len(body):
            token = body[index]
            if depth == 0 and token.is_word("case", "default"):
                colon = find_first(body, TokenType.COLON, index)
                if colon < 0:
                    raise self.state.error(
                        PatternNotFoundError, f"'{token.value}' needs a ':'", token
                    )
                cases.append(_Case())
                index = colon + 1
                continue
            if not cases:
                raise self.state.error(
                    PatternNotFoundError, "statement before the first 'case'", token
                )
            if depth == 0 and token.is_word("break"):
                cases[-1].breaks = True
                # code between break and the next label is unreachable
                index += 1
                while index < len(body) and not body[index].is_word("case", "default"):
                    index += 1
                continue

            if token.type is TokenType.LBRACE:
                depth += 1
            elif token.type is TokenType.RBRACE:
                depth -= 1
            cases[-1].body.append(token)
            index += 1

        if not cases:
            raise self.state.error(PatternNotFoundError, "'switch' has no case labels", keyword)
        return cases

    # =========================================================================
    # Conditions
    # =========================================================================

    def _split_header(self, tokens: list[Token]) -> tuple[list[Token], list[Token]]:
        keyword = tokens[0]
        if len(tokens) < 2 or tokens[1].type is not TokenType.LPAREN:
            raise self.state.error(
                PatternNotFoundError, f"'{keyword.value}' needs a parenthesised condition", keyword
            )
        close = find_matching(tokens, 1)
        return tokens[2:close], tokens[close + 1:]

    def _condition(
        self,
        keyword: Token,
        tokens: list[Token],
        temps: list[str],
    ) -> tuple[Condition, str, str]:
        depth = 0
        positions = []
        for index, token in enumerate(tokens):
            if token.type in (TokenType.LPAREN, TokenType.LBRACKET):
                depth += 1
            elif token.type in (TokenType.RPAREN, TokenType.RBRACKET):
                depth -= 1
            elif token.type in COMPARISONS and depth == 0:
                positions.append(index)

        if not positions:
            raise self.state.error(
                PatternNotFoundError, "no comparison operator in condition", keyword,
                hint="compare with ==, !=, <, >, <= or >=",
            )
        if len(positions) > 1:
            raise self.state.error(
                PatternNotFoundError, "only one comparison per condition", tokens[positions[1]]
            )

        at = positions[0]
        comparison = tokens[at]
        left = self.lowerer.resolve_operand(tokens[:at], temps, comparison)
        right = self.lowerer.resolve_operand(tokens[at + 1:], temps, comparison)
        test, swapped = _TESTS[comparison.type]
        if swapped:
            return test, right, left
        return test, left, right

    @staticmethod
    def _goto_target(body: list[Token]) -> Optional[str]:
        words = [token for token in body if token.type is not TokenType.SEMICOLON]
        if (
            len(words) == 2
            and words[0].is_word("goto")
            and words[1].type is TokenType.IDENTIFIER
        ):
            return words[1].value
        return None

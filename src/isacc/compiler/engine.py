"""
Statement Lowering Engine
=========================

Turns one statement at a time into primitive instructions. Every
statement that reaches the back-end holds at most one operator and at
most two operands; anything larger is broken up first by lowering parts
of it into temporaries, recursively.

Pipeline
--------
For each complete statement:

1. Bracket aggregation: segments are buffered while a '{' is open, so a
   block arrives here as one statement.
2. Label extraction: leading ``name:`` pairs become labels of the next
   instruction.
3. Control dispatch: if / while / switch / function declarations go to
   their handlers, before any hoisting, so that temporaries computed for
   a body stay inside that body.
4. Parenthesis hoisting: every ``( ... )`` that is not a call's argument
   list becomes ``TempN = ...;``, lowered on the spot.
5. Operator flattening: while more than one operator remains, the part
   from the assignment up to the second operator becomes
   ``TempN = ...;``. Evaluation is strictly left to right.
6. Scan and emit: one pass picks out the result, the operator and the
   operands (running calls and array loads as it meets them), then one
   primitive instruction is emitted and, outside sub-expressions,
   stored back where the machine needs it.
7. Cleanup: temporaries are released in reverse allocation order.

Each call reports what happened through LoweringResult.
"""

import logging
from enum import Enum, auto
from typing import Optional

from isacc.backends.base import Backend
from isacc.compiler.control import ControlFlowLowerer
from isacc.compiler.functions import FunctionLowerer
from isacc.compiler.lexer import (
    COMPARISONS,
    OPERATIONS,
    Segment,
    Token,
    TokenType,
    find_matching,
    is_keyword,
    is_type_name,
    split_statements,
    tokenize,
)
from isacc.compiler.state import CompilerState
from isacc.errors import (
    NamespaceError,
    PatternNotFoundError,
    UnbalancedBracketError,
    UnrecognizedOperationError,
    UnsupportedConstructError,
)

logger = logging.getLogger(__name__)


class LoweringResult(Enum):
    """Outcome of lowering one statement."""

    EMITTED = auto()    # primitive instructions were written
    CONTROL = auto()    # handed to a control-flow or function handler
    DEFERRED = auto()   # buffered until the '}' closing an open block
    SKIPPED = auto()    # nothing to emit (empty, declaration, lowered else)


_OPENERS = {TokenType.LPAREN: TokenType.RPAREN, TokenType.LBRACKET: TokenType.RBRACKET}
_CLOSERS = {closer: opener for opener, closer in _OPENERS.items()}


class StatementLowerer:
    """
    The recursive statement translator.

    Usage:
        lowerer = StatementLowerer(state, backend)
        for segment in segment_statements(source):
            lowerer.feed(segment)
        lowerer.finish()

    Attributes:
        state: The compilation's CompilerState
        backend: The target back-end
        control: Handler for if / while / switch
        functions: Handler for declarations and calls
    """

    def __init__(self, state: CompilerState, backend: Backend):
        self.state = state
        self.backend = backend
        self.namespace = state.namespace
        self.control = ControlFlowLowerer(self)
        self.functions = FunctionLowerer(self)
        self._pending: list[Token] = []

    # =========================================================================
    # Statement Stream
    # =========================================================================

    def feed(self, segment: Segment) -> LoweringResult:
        """
        Accept the next segment of the program.

        Segments are collected while a '{' is open; the complete block
        is then lowered as one statement.

        Raises:
            UnbalancedBracketError: On a '}' with no open block
        """
        if not self._pending and self.state.is_consumed(segment.offset, segment.end):
            logger.debug(f"Skipping already lowered {segment.text!r}")
            return LoweringResult.SKIPPED

        self._pending.extend(self.tokenize(segment.text, segment.offset))

        depth = 0
        for token in self._pending:
            if token.type is TokenType.LBRACE:
                depth += 1
            elif token.type is TokenType.RBRACE:
                depth -= 1
                if depth < 0:
                    raise self.state.error(
                        UnbalancedBracketError, "'}' without a matching '{'", token
                    )
        if depth > 0:
            logger.debug(f"Buffering block, {depth} brace(s) open")
            return LoweringResult.DEFERRED

        statement, self._pending = self._pending, []
        return self.lower(statement)

    def finish(self) -> None:
        """
        Check that no block is left open at the end of the source.

        Raises:
            UnbalancedBracketError: If a '{' was never closed
        """
        if self._pending:
            opener = next(t for t in self._pending if t.type is TokenType.LBRACE)
            raise self.state.error(
                UnbalancedBracketError, "'{' is never closed", opener,
                hint="add the missing '}'",
            )

    def tokenize(self, text: str, offset: int) -> list[Token]:
        """Tokenize source text, renaming parameters inside a function body."""
        tokens = tokenize(text, offset, self.state.filename, self.state.source)
        if self.state.function is not None:
            tokens = self.functions.rename_parameters(tokens, self.state.function)
        return tokens

    def lower_sequence(self, statements: list[list[Token]]) -> None:
        for statement in statements:
            self.lower(statement)

    def lower_body(self, tokens: list[Token]) -> None:
        """Lower the body of a control statement: one statement or a block."""
        if tokens and tokens[0].type is TokenType.LBRACE:
            close = find_matching(tokens, 0)
            if close < 0:
                raise self.state.error(UnbalancedBracketError, "'{' is never closed", tokens[0])
            for token in tokens[close + 1:]:
                if token.type is not TokenType.SEMICOLON:
                    raise self.state.error(
                        PatternNotFoundError, f"unexpected '{token.value}' after block", token
                    )
            self.lower_sequence(split_statements(tokens[1:close]))
        else:
            self.lower(tokens)

    # =========================================================================
    # Statement Lowering
    # =========================================================================

    def lower(self, tokens: list[Token], subline: bool = False) -> LoweringResult:
        """
        Lower one complete statement.

        Args:
            tokens: The statement's tokens
            subline: True for a hoisted sub-expression, whose result
                stays in its temporary (no store-back)

        Raises:
            PatternNotFoundError: If the statement cannot be lowered
        """
        if all(token.type is TokenType.SEMICOLON for token in tokens):
            return LoweringResult.SKIPPED
        if self.state.is_consumed(tokens[0].offset, tokens[-1].end):
            logger.debug("Skipping already lowered else body")
            return LoweringResult.SKIPPED

        self._check_brackets(tokens)
        outstanding = self.namespace.outstanding
        temps: list[str] = []

        tokens = self._extract_labels(tokens)
        result = self._dispatch_control(tokens)
        if result is None:
            tokens = self._hoist_parentheses(tokens, temps)
            tokens = self._flatten_operators(tokens, temps)
            result = self._emit(tokens, temps, subline)

        self.release(temps)
        if self.namespace.outstanding != outstanding:
            raise NamespaceError(
                f"{self.namespace.outstanding - outstanding} temporaries leaked by statement"
            )
        return result

    def release(self, temps: list[str]) -> None:
        """Release temporaries in reverse allocation order."""
        for temp in reversed(temps):
            self.namespace.release_temporary(temp)
        temps.clear()

    def _check_brackets(self, tokens: list[Token]) -> None:
        openers: list[Token] = []
        for token in tokens:
            if token.type in _OPENERS:
                openers.append(token)
            elif token.type in _CLOSERS:
                if not openers or openers[-1].type is not _CLOSERS[token.type]:
                    raise self.state.error(
                        UnbalancedBracketError, f"'{token.value}' without a matching opener", token
                    )
                openers.pop()
        if openers:
            raise self.state.error(
                UnbalancedBracketError, f"'{openers[-1].value}' is never closed", openers[-1]
            )

    def _extract_labels(self, tokens: list[Token]) -> list[Token]:
        start = 0
        while (
            start + 1 < len(tokens)
            and tokens[start].type is TokenType.IDENTIFIER
            and tokens[start + 1].type is TokenType.COLON
            and not is_keyword(tokens[start].value)
        ):
            label = tokens[start].value
            logger.debug(f"Label {label} waits for the next instruction")
            self.state.add_pending_label(label)
            start += 2
        return tokens[start:]

    def _dispatch_control(self, tokens: list[Token]) -> Optional[LoweringResult]:
        if not tokens:
            return LoweringResult.SKIPPED

        first = tokens[0]
        if first.type is TokenType.LBRACE:
            self.lower_body(tokens)
            return LoweringResult.CONTROL
        if first.is_word("if"):
            self.control.lower_if(tokens)
            return LoweringResult.CONTROL
        if first.is_word("while"):
            self.control.lower_while(tokens)
            return LoweringResult.CONTROL
        if first.is_word("switch"):
            self.control.lower_switch(tokens)
            return LoweringResult.CONTROL
        if first.is_word("else"):
            raise self.state.error(
                UnsupportedConstructError, "'else' without a matching 'if'", first
            )
        if first.is_word("case", "default", "break"):
            raise self.state.error(
                UnsupportedConstructError, f"'{first.value}' outside of a switch", first
            )
        if self._is_declaration(tokens):
            self.functions.lower_declaration(tokens)
            return LoweringResult.CONTROL

        for token in tokens:
            if token.type in (TokenType.LBRACE, TokenType.RBRACE):
                raise self.state.error(
                    PatternNotFoundError, f"unexpected '{token.value}' in statement", token
                )
        return None

    def _is_declaration(self, tokens: list[Token]) -> bool:
        for index, token in enumerate(tokens[:-1]):
            if token.type is TokenType.IDENTIFIER and tokens[index + 1].type is TokenType.LPAREN:
                if is_keyword(token.value) or is_type_name(token.value):
                    return False
                close = find_matching(tokens, index + 1)
                return 0 <= close < len(tokens) - 1 and tokens[close + 1].type is TokenType.LBRACE
        return False

    # =========================================================================
    # Hoisting and Flattening
    # =========================================================================

    def _hoist_parentheses(self, tokens: list[Token], temps: list[str]) -> list[Token]:
        hoisted: list[Token] = []
        index = 0
        while index < len(tokens):
            token = tokens[index]
            if token.type is not TokenType.LPAREN:
                hoisted.append(token)
                index += 1
                continue

            close = find_matching(tokens, index)
            if self._opens_call(tokens, index):
                hoisted.extend(tokens[index:close + 1])
            else:
                inner = tokens[index + 1:close]
                if not inner:
                    raise self.state.error(PatternNotFoundError, "empty parentheses", token)
                temp = self.lower_into_temporary(inner, temps)
                hoisted.append(self._operand_token(temp))
            index = close + 1
        return hoisted

    def _flatten_operators(self, tokens: list[Token], temps: list[str]) -> list[Token]:
        while True:
            positions = self._operator_positions(tokens)
            if len(positions) <= 1:
                return tokens

            start = self._expression_start(tokens)
            following = [position for position in positions if position >= start]
            if start == 0 or len(following) < 2:
                raise self.state.error(
                    PatternNotFoundError, "expression has no assignment target", tokens[0]
                )
            second = following[1]
            temp = self.lower_into_temporary(tokens[start:second], temps)
            tokens = tokens[:start] + [self._operand_token(temp)] + tokens[second:]

    def _operator_positions(self, tokens: list[Token]) -> list[int]:
        positions = []
        depth = 0
        for index, token in enumerate(tokens):
            if token.type in _OPENERS:
                depth += 1
            elif token.type in _CLOSERS:
                depth -= 1
            elif token.type is TokenType.OPERATOR and depth == 0:
                positions.append(index)
        return positions

    @staticmethod
    def _expression_start(tokens: list[Token]) -> int:
        for index, token in enumerate(tokens):
            if token.type is TokenType.ASSIGN or token.is_word("return"):
                return index + 1
        return 0

    @staticmethod
    def _opens_call(tokens: list[Token], index: int) -> bool:
        if index == 0:
            return False
        previous = tokens[index - 1]
        return previous.type is TokenType.IDENTIFIER and not is_keyword(previous.value)

    def lower_into_temporary(self, tokens: list[Token], temps: list[str]) -> str:
        """
        Lower ``<temp> = tokens;`` as a sub-expression and return the temp.

        The temporary is appended to temps; the caller releases it.
        """
        temp = self.namespace.new_temporary()
        temps.append(temp)
        logger.debug(f"Hoisting {' '.join(t.value for t in tokens)} into {temp}")
        statement = [
            self._operand_token(temp),
            Token(TokenType.ASSIGN, "="),
            *tokens,
            Token(TokenType.SEMICOLON, ";"),
        ]
        self.lower(statement, subline=True)
        return temp

    @staticmethod
    def _operand_token(name: str) -> Token:
        token_type = TokenType.NATIVE if name.startswith("$") else TokenType.IDENTIFIER
        return Token(token_type, name)

    # =========================================================================
    # Operands
    # =========================================================================

    def resolve_operand(
        self,
        tokens: list[Token],
        temps: list[str],
        anchor: Optional[Token] = None,
    ) -> str:
        """
        Turn a group of tokens into one bound operand.

        A single name or number is bound directly, ``name[index]`` goes
        through the array-load primitive, and anything longer is lowered
        into a temporary (appended to temps).
        """
        tokens = [token for token in tokens if token.type is not TokenType.SEMICOLON]
        if not tokens:
            raise self.state.error(PatternNotFoundError, "missing operand", anchor)

        if len(tokens) == 1:
            token = tokens[0]
            if token.type in (TokenType.NUMBER, TokenType.NATIVE):
                return token.value
            if token.type is TokenType.IDENTIFIER and not is_keyword(token.value):
                return self.backend.bind_operand(token.value)
            raise self.state.error(PatternNotFoundError, f"'{token.value}' is not an operand", token)

        if (
            tokens[0].type is TokenType.IDENTIFIER
            and tokens[1].type is TokenType.LBRACKET
            and find_matching(tokens, 1) == len(tokens) - 1
        ):
            return self._array_load(tokens[0], tokens[2:-1], temps)

        return self.lower_into_temporary(tokens, temps)

    def _array_load(self, name: Token, index_tokens: list[Token], temps: list[str]) -> str:
        if not index_tokens:
            raise self.state.error(PatternNotFoundError, "array index is empty", name)
        index = self.resolve_operand(index_tokens, temps, name)
        base = self.backend.bind_operand(name.value)
        temp = self.namespace.new_temporary()
        temps.append(temp)
        self.backend.array_load(temp, base, index)
        return temp

    @staticmethod
    def _has_call(tokens: list[Token], start: int) -> bool:
        for index in range(start, len(tokens) - 1):
            token = tokens[index]
            if (
                token.type is TokenType.IDENTIFIER
                and not is_keyword(token.value)
                and tokens[index + 1].type is TokenType.LPAREN
            ):
                return True
        return False

    # =========================================================================
    # Scan and Emit
    # =========================================================================

    def _emit(self, tokens: list[Token], temps: list[str], subline: bool) -> LoweringResult:
        result: Optional[str] = None
        operands: list[str] = []
        operation: Optional[str] = None
        operator_first = False
        assigned = False
        returning = False
        called = False
        jump_target: Optional[str] = None

        def place(value: str, token: Token) -> None:
            nonlocal result
            if assigned or result is not None:
                operands.append(value)
            elif token.type is TokenType.NUMBER:
                raise self.state.error(
                    PatternNotFoundError, "a number cannot be assigned to", token
                )
            else:
                result = value

        index = 0
        while index < len(tokens):
            token = tokens[index]
            following = tokens[index + 1] if index + 1 < len(tokens) else None

            if token.type is TokenType.SEMICOLON:
                break
            elif token.type is TokenType.COLON:
                pass
            elif token.type is TokenType.ASSIGN:
                if assigned:
                    raise self.state.error(
                        UnsupportedConstructError, "chained assignment", token
                    )
                assigned = True
            elif token.type in COMPARISONS:
                raise self.state.error(
                    UnsupportedConstructError,
                    f"comparison '{token.value}' outside an if or while condition",
                    token,
                )
            elif token.type is TokenType.OPERATOR:
                operation = OPERATIONS.get(token.value)
                if operation is None:
                    location = self.state.locate(token)
                    raise UnrecognizedOperationError(
                        token.value, location=location, source_line=self.state.source_line(location)
                    )
                operator_first = not operands
            elif token.type in (TokenType.NUMBER, TokenType.NATIVE):
                place(token.value, token)
            elif token.type is TokenType.IDENTIFIER:
                if token.is_word("goto"):
                    if following is None or following.type is not TokenType.IDENTIFIER:
                        raise self.state.error(PatternNotFoundError, "'goto' needs a label", token)
                    jump_target = following.value
                    index += 1
                elif token.is_word("return"):
                    result = self.backend.return_value
                    assigned = True
                    returning = True
                elif is_type_name(token.value):
                    pass
                elif is_keyword(token.value):
                    raise self.state.error(
                        UnsupportedConstructError, f"'{token.value}' cannot appear here", token
                    )
                elif following is not None and following.type is TokenType.LPAREN:
                    close = find_matching(tokens, index + 1)
                    self.functions.lower_call(token, tokens[index + 2:close])
                    called = True
                    if assigned:
                        value = self.backend.return_value
                        if self._has_call(tokens, close + 1):
                            temp = self.namespace.new_temporary()
                            temps.append(temp)
                            self.backend.assign(temp, value)
                            value = temp
                        operands.append(value)
                    elif any(t.type is not TokenType.SEMICOLON for t in tokens[close + 1:]):
                        raise self.state.error(
                            PatternNotFoundError, "result of call is not assigned", token
                        )
                    index = close
                elif following is not None and following.type is TokenType.LBRACKET:
                    if not assigned:
                        raise self.state.error(
                            UnsupportedConstructError,
                            "array element as assignment target", token,
                        )
                    close = find_matching(tokens, index + 1)
                    operands.append(self._array_load(token, tokens[index + 2:close], temps))
                    index = close
                else:
                    place(token.value, token)
            else:
                raise self.state.error(
                    PatternNotFoundError, f"unexpected '{token.value}'", token
                )
            index += 1

        if jump_target is not None:
            if result is not None or operands or operation:
                raise self.state.error(
                    PatternNotFoundError, "'goto' cannot be combined with an assignment", tokens[0]
                )
            self.namespace.add_label(jump_target)
            self.backend.jump(jump_target)
            return LoweringResult.EMITTED

        if result is None:
            if operands or operation:
                raise self.state.error(PatternNotFoundError, "no assignment target", tokens[0])
            return LoweringResult.CONTROL if called else LoweringResult.SKIPPED

        if not operands:
            if returning:
                return self._return_to_caller()
            if assigned or operation:
                raise self.state.error(PatternNotFoundError, "assignment has no value", tokens[0])
            return LoweringResult.SKIPPED

        if not assigned:
            raise self.state.error(
                PatternNotFoundError, "no '=' between target and value", tokens[0]
            )

        if operator_first and operation == "sub" and len(operands) == 1:
            operands.insert(0, self.backend.zero)

        bound = [self.backend.bind_operand(operand) for operand in operands]
        target = self.backend.bind_result(result)

        if len(bound) == 1:
            if operation is not None:
                raise self.state.error(
                    PatternNotFoundError, f"'{operation}' needs two operands", tokens[0]
                )
            if bound[0] != target:
                self.backend.assign(target, bound[0])
        elif len(bound) == 2:
            if operation is None:
                raise self.state.error(
                    PatternNotFoundError, "missing operator between operands", tokens[0]
                )
            self.backend.binary(operation, target, bound[0], bound[1])
        else:
            raise self.state.error(
                PatternNotFoundError, "too many operands for one operation", tokens[0]
            )

        if not subline:
            self.backend.store_back(target)
        if returning:
            self._return_to_caller()
        return LoweringResult.EMITTED

    def _return_to_caller(self) -> LoweringResult:
        context = self.state.function
        if context is None:
            return LoweringResult.SKIPPED
        self.backend.function_return()
        context.returned_at = len(self.state.stream.instructions)
        return LoweringResult.EMITTED

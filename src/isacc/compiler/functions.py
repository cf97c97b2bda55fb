"""
Function Declarations and Calls
===============================

Declarations
------------
``int f(int x, int y) { ... }`` binds each parameter to a positional
argument slot (arg0, arg1 on memory machines; $a0, $a1 on the register
machine), renames the parameters throughout the body, and lowers the
body into the function stream, which is rendered after the main
program. The body ends with a return to the caller unless its last
statement already returned.

Calls
-----
``A = f(B, C + 1);``::

    (inside a function only) save return address and argument slots
    move each argument into its slot, unless it is already there
    jump-and-link to f
    returnAddressN:   (memory machines label the return point)
    (inside a function only) restore the saved slots, in saved order

The call's value is then read from the machine's return-value location.
"""

import logging
from typing import TYPE_CHECKING

from isacc.compiler.lexer import (
    Token,
    TokenType,
    find_matching,
    is_keyword,
    is_type_name,
    split_arguments,
    split_statements,
)
from isacc.compiler.state import FunctionContext
from isacc.errors import PatternNotFoundError, UnsupportedConstructError

if TYPE_CHECKING:
    from isacc.compiler.engine import StatementLowerer

logger = logging.getLogger(__name__)


class FunctionLowerer:
    """Lowers function declarations and call sites for a StatementLowerer."""

    def __init__(self, lowerer: "StatementLowerer"):
        self.lowerer = lowerer
        self.state = lowerer.state
        self.backend = lowerer.backend
        self.namespace = lowerer.namespace

    # =========================================================================
    # Declarations
    # =========================================================================

    def lower_declaration(self, tokens: list[Token]) -> None:
        """
        Lower a complete function declaration into the function stream.

        Raises:
            UnsupportedConstructError: If already inside a function
            PatternNotFoundError: If no name precedes the parameter list
        """
        if self.state.function is not None:
            raise self.state.error(
                UnsupportedConstructError,
                "functions cannot be declared inside another function", tokens[0],
            )

        name_index = self._name_index(tokens)
        name = tokens[name_index].value
        close = find_matching(tokens, name_index + 1)
        parameters = [
            token.value for token in tokens[name_index + 2:close]
            if token.type is TokenType.IDENTIFIER and not is_type_name(token.value)
        ]
        end = find_matching(tokens, close + 1)
        context = FunctionContext(
            name=name,
            parameters={
                parameter: self.backend.arg_slot(index)
                for index, parameter in enumerate(parameters)
            },
        )
        body = self.rename_parameters(tokens[close + 2:end], context)
        logger.debug(f"Declaring {name}({', '.join(parameters)})")

        self.namespace.add_label(name)
        self.state.enter_function(context)
        try:
            self.state.add_pending_label(name)
            self.lowerer.lower_sequence(split_statements(body))
            stream = self.state.stream
            if context.returned_at != len(stream.instructions) or stream.pending_labels:
                self.backend.function_return()
        finally:
            self.state.leave_function()

    def _name_index(self, tokens: list[Token]) -> int:
        for index, token in enumerate(tokens[:-1]):
            if tokens[index + 1].type is TokenType.LPAREN:
                if token.type is TokenType.IDENTIFIER and not is_keyword(token.value):
                    return index
                break
        raise self.state.error(
            PatternNotFoundError, "no function name before '('", tokens[0]
        )

    @staticmethod
    def rename_parameters(tokens: list[Token], context: FunctionContext) -> list[Token]:
        """Replace parameter names in tokens with their argument slots."""
        renamed = []
        for token in tokens:
            slot = context.parameters.get(token.value)
            if token.type is TokenType.IDENTIFIER and slot is not None:
                token_type = TokenType.NATIVE if slot.startswith("$") else TokenType.IDENTIFIER
                token = Token(token_type, slot, token.offset)
            renamed.append(token)
        return renamed

    # =========================================================================
    # Calls
    # =========================================================================

    def lower_call(self, name: Token, argument_tokens: list[Token]) -> None:
        """
        Lower a call of name with the given argument tokens.

        Arguments are evaluated first, then (inside a function) the
        caller's return address and argument slots are saved, the
        arguments moved into place, and the call emitted.
        """
        temps: list[str] = []
        values = [
            self.lowerer.resolve_operand(group, temps, name)
            for group in split_arguments(argument_tokens)
        ]

        context = self.state.function
        if context is not None:
            context.saved = [self.backend.return_address, *context.parameters.values()]
            self.backend.save_frame(context.saved)

        for index, value in enumerate(values):
            slot = self.backend.arg_slot(index)
            if value != slot:
                self.backend.assign(slot, value)
        self.lowerer.release(temps)

        self.namespace.add_label(name.value)
        self.backend.call(name.value)
        if self.backend.labels_return_point:
            self.state.add_pending_label(f"returnAddress{self.state.call_count}")
        self.state.call_count += 1
        logger.debug(f"Call {name.value} with {len(values)} argument(s)")

        if context is not None:
            self.backend.restore_frame(context.saved)
            context.saved = []

"""
Error taxonomy and control-flow signals for the hyscript interpreter.

Everything a user can see derives from ScriptError. Control-flow signals
(return/break/continue and, in inference, suggestions) derive from
ControlFlowSignal instead so a broad `except ScriptError` never swallows them.
"""

from typing import Any, List, Optional


class ScriptError(Exception):
    """Base class for all user-visible hyscript errors."""
    def __init__(self, message: str, span: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        # Filled in by the evaluator with the innermost node's span.
        self.span = span

    @property
    def kind(self) -> str:
        return type(self).__name__


class LexError(ScriptError):
    def __init__(self, offset: int, message: str):
        from hyscript.hyscript_scanner import Span
        super().__init__(f"Index {offset}: {message}", Span(offset, offset))
        self.offset = offset


class ParseError(ScriptError):
    pass


class NameNotFound(ScriptError):
    def __init__(self, ident: str):
        super().__init__(f"No such value {ident}")
        self.ident = ident


class EvaluationError(ScriptError):
    pass


# -----------------------------------------------------------------
# Value/domain errors
# -----------------------------------------------------------------

class ValueOperationError(ScriptError):
    pass


class NoSuchMemberError(ValueOperationError):
    def __init__(self, type_name: str, member: str):
        super().__init__(f"Type {type_name} has no member {member}")
        self.type_name = type_name
        self.member = member


class InvalidOperationError(ValueOperationError):
    def __init__(self, type_name: str, operation: str):
        super().__init__(f"Operation {operation} is invalid for type {type_name}")
        self.type_name = type_name
        self.operation = operation


class TypeMismatchError(ValueOperationError):
    def __init__(self, expected: str, got: str):
        super().__init__(f"Expected type {expected}, but found {got}.")
        self.expected = expected
        self.got = got


class InvalidConversionError(ValueOperationError):
    def __init__(self, from_type: str, to_type: str):
        super().__init__(f"Can not convert from type {from_type} to {to_type}.")
        self.from_type = from_type
        self.to_type = to_type


# -----------------------------------------------------------------
# Control flow
# -----------------------------------------------------------------

class ControlFlowSignal(Exception):
    """Non-error unwinding used by the tree walkers."""
    pass


class ReturnSignal(ControlFlowSignal):
    def __init__(self, value: Any):
        super().__init__("return")
        self.value = value


class BreakSignal(ControlFlowSignal):
    def __init__(self, span: Optional[Any] = None):
        super().__init__("break")
        self.span = span


class ContinueSignal(ControlFlowSignal):
    def __init__(self, span: Optional[Any] = None):
        super().__init__("continue")
        self.span = span


class Suggestions(ControlFlowSignal):
    """Completion candidates found by a speculative run.

    Raised from deep inside inference to short-circuit the walk, then returned
    (not raised) by get_suggestions().
    """
    def __init__(self, identifiers: List[str], replace_span: Any):
        super().__init__("suggestions")
        self.identifiers = list(identifiers)
        self.replace_span = replace_span

    def __repr__(self) -> str:
        return f"Suggestions(identifiers={self.identifiers!r}, replace_span={self.replace_span!r})"

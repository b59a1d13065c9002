"""
Defines the AST node types produced by the hyscript parser.

Nodes are immutable. Every node carries a `span` into the source it was parsed
from and exposes a `source` property that regenerates an equivalent program
text through the Printer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from hyscript.hyscript_scanner import Span


class UnaryOp(Enum):
    PLUS = "+"
    NEGATE = "-"
    NOT = "!"
    BIT_NOT = "^"


class BinaryOp(Enum):
    LOGICAL_OR = "||"
    LOGICAL_AND = "&&"
    EQUAL = "=="
    NOT_EQUAL = "!="
    LESSER = "<"
    LESSER_EQUAL = "<="
    GREATER = ">"
    GREATER_EQUAL = ">="
    ADD = "+"
    SUB = "-"
    OR = "|"
    XOR = "^"
    MUL = "*"
    DIV = "/"
    REM = "%"
    LSH = "<<"
    RSH = ">>"
    AND = "&"
    AND_NOT = "&^"
    MEMBER = "."
    CALL = "()"
    SUBSCRIPT = "[]"
    GROUP = ","


class AssignOp(Enum):
    ASSIGN = "="
    ADD_ASSIGN = "+="
    SUB_ASSIGN = "-="
    MUL_ASSIGN = "*="
    QUO_ASSIGN = "/="
    REM_ASSIGN = "%="
    AND_ASSIGN = "&="
    OR_ASSIGN = "|="
    XOR_ASSIGN = "^="
    SHL_ASSIGN = "<<="
    SHR_ASSIGN = ">>="
    AND_NOT_ASSIGN = "&^="


KEYWORD_TYPES = ("Boolean", "Number", "String")


class Node:
    """Base class for every AST node."""
    span: Span

    @property
    def source(self) -> str:
        from hyscript.hyscript_printer import Printer
        return Printer().pformat(self)


# =================================================================
# Expressions
# =================================================================

@dataclass(frozen=True)
class PlaceholderNode(Node):
    """Stands in for a missing sub-expression; only produced by partial parses."""
    span: Span


@dataclass(frozen=True)
class IdentNode(Node):
    span: Span
    ident: str


@dataclass(frozen=True)
class KeywordNode(Node):
    """One of the type keywords (`Boolean`, `Number`, `String`) used as a value."""
    span: Span
    keyword: str


@dataclass(frozen=True)
class NumberNode(Node):
    span: Span
    value: float


@dataclass(frozen=True)
class BooleanNode(Node):
    span: Span
    value: bool


@dataclass(frozen=True)
class StringNode(Node):
    span: Span
    value: str


@dataclass(frozen=True)
class NullNode(Node):
    span: Span
    value: None = None

    @property
    def is_empty_arguments(self) -> bool:
        """True for the zero-width null the parser inserts for `f()`."""
        return self.span.start == self.span.end


@dataclass(frozen=True)
class UnaryNode(Node):
    span: Span
    operator: UnaryOp
    operand: Node


@dataclass(frozen=True)
class BinaryNode(Node):
    """Binary operators, including member access, call, subscript and the
    comma group used for argument lists."""
    operand_a: Node
    operator: BinaryOp
    operand_b: Node
    span: Span = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "span", Span(self.operand_a.span.start, self.operand_b.span.end))


@dataclass(frozen=True)
class TernaryNode(Node):
    operand_a: Node
    operand_b: Node
    operand_c: Node
    span: Span = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "span", Span(self.operand_a.span.start, self.operand_c.span.end))


@dataclass(frozen=True)
class LambdaNode(Node):
    span: Span
    args: Tuple[str, ...]
    expr: Node


@dataclass(frozen=True)
class FunctionNode(Node):
    span: Span
    args: Tuple[str, ...]
    block: "BlockStatement"


# =================================================================
# Statements
# =================================================================

class Statement(Node):
    pass


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    expr: Node
    span: Span = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "span", self.expr.span)


@dataclass(frozen=True)
class AssignStatement(Statement):
    operand_a: Node
    operator: AssignOp
    operand_b: Node
    span: Span = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "span", Span(self.operand_a.span.start, self.operand_b.span.end))


@dataclass(frozen=True)
class LetStatement(Statement):
    span: Span
    ident: str
    initializer: Optional[Node] = None


@dataclass(frozen=True)
class ReturnStatement(Statement):
    span: Span
    value: Optional[Node] = None


@dataclass(frozen=True)
class BreakStatement(Statement):
    span: Span


@dataclass(frozen=True)
class ContinueStatement(Statement):
    span: Span


@dataclass(frozen=True)
class BlockStatement(Statement):
    span: Span
    statements: Tuple[Statement, ...]


@dataclass(frozen=True)
class ConditionalStatement(Statement):
    span: Span
    condition: Node
    branch: Statement
    alternate: Optional[Statement] = None


@dataclass(frozen=True)
class ForStatement(Statement):
    span: Span
    initializer: Optional[Statement]
    condition: Optional[Node]
    iterator: Optional[Statement]
    body: Statement


@dataclass(frozen=True)
class WhileStatement(Statement):
    span: Span
    condition: Node
    body: Statement


@dataclass(frozen=True)
class EmptyStatement(Statement):
    span: Span


def flatten_group(node: Node) -> list:
    """Flattens a comma group into its operands, left to right."""
    if isinstance(node, BinaryNode) and node.operator is BinaryOp.GROUP:
        return flatten_group(node.operand_a) + flatten_group(node.operand_b)
    return [node]


def call_arguments(node: Node) -> list:
    """The argument expressions of a call's right operand. `f()` has none."""
    if isinstance(node, NullNode) and node.is_empty_arguments:
        return []
    return flatten_group(node)

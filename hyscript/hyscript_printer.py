"""
A pretty-printer for hyscript AST nodes.

Output is valid hyscript source: sub-expressions are parenthesized by
precedence so that parsing the printed text yields the same tree.
"""
import json
import math

from hyscript.hyscript_ast import (
    Node, PlaceholderNode, IdentNode, KeywordNode, NumberNode, BooleanNode,
    StringNode, NullNode, UnaryNode, UnaryOp, BinaryNode, BinaryOp, TernaryNode,
    LambdaNode, FunctionNode, ExpressionStatement, AssignStatement, LetStatement,
    ReturnStatement, BreakStatement, ContinueStatement, BlockStatement,
    ConditionalStatement, ForStatement, WhileStatement, EmptyStatement,
)
from hyscript.hyscript_values import format_number


BINARY_PRECEDENCE = {
    BinaryOp.MEMBER: 8,
    BinaryOp.CALL: 8,
    BinaryOp.SUBSCRIPT: 8,
    BinaryOp.MUL: 7,
    BinaryOp.DIV: 7,
    BinaryOp.REM: 7,
    BinaryOp.LSH: 7,
    BinaryOp.RSH: 7,
    BinaryOp.AND: 7,
    BinaryOp.AND_NOT: 7,
    BinaryOp.ADD: 6,
    BinaryOp.SUB: 6,
    BinaryOp.OR: 6,
    BinaryOp.XOR: 6,
    BinaryOp.EQUAL: 5,
    BinaryOp.NOT_EQUAL: 5,
    BinaryOp.LESSER: 5,
    BinaryOp.LESSER_EQUAL: 5,
    BinaryOp.GREATER: 5,
    BinaryOp.GREATER_EQUAL: 5,
    BinaryOp.LOGICAL_AND: 4,
    BinaryOp.LOGICAL_OR: 3,
    BinaryOp.GROUP: 2,
}

PRIMARY_PRECEDENCE = 9


def precedence(node: Node) -> int:
    """Binding strength of a node, matching the parser's depth tiers."""
    match node:
        case BinaryNode(operator=op):
            return BINARY_PRECEDENCE[op]
        case UnaryNode():
            return 7
        case TernaryNode():
            return 3
        case LambdaNode() | FunctionNode():
            return 1
        case _:
            return PRIMARY_PRECEDENCE


def _ends_with_open_if(statement) -> bool:
    """True if a trailing `else` after this statement would bind inside it."""
    match statement:
        case ConditionalStatement(alternate=None):
            return True
        case ConditionalStatement(alternate=alternate):
            return _ends_with_open_if(alternate)
        case ForStatement(body=body) | WhileStatement(body=body):
            return _ends_with_open_if(body)
        case _:
            return False


class Printer:
    """Formats hyscript nodes into readable, re-parseable source strings."""

    def __init__(self, indent="\t"):
        self._indent_char = indent
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format a node."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            return repr(obj)
        return handler(obj, level)

    def _create_handlers(self):
        return {
            PlaceholderNode: lambda o, l: "",
            IdentNode: lambda o, l: o.ident,
            KeywordNode: lambda o, l: o.keyword,
            NumberNode: self._pformat_number,
            BooleanNode: lambda o, l: "true" if o.value else "false",
            StringNode: lambda o, l: json.dumps(o.value, ensure_ascii=False),
            NullNode: lambda o, l: "null",
            UnaryNode: self._pformat_unary,
            BinaryNode: self._pformat_binary,
            TernaryNode: self._pformat_ternary,
            LambdaNode: self._pformat_lambda,
            FunctionNode: self._pformat_function,
            ExpressionStatement: lambda o, l: self.pformat(o.expr, l),
            AssignStatement: self._pformat_assign,
            LetStatement: self._pformat_let,
            ReturnStatement: self._pformat_return,
            BreakStatement: lambda o, l: "break",
            ContinueStatement: lambda o, l: "continue",
            BlockStatement: self._pformat_block,
            ConditionalStatement: self._pformat_conditional,
            ForStatement: self._pformat_for,
            WhileStatement: self._pformat_while,
            EmptyStatement: lambda o, l: "",
        }

    # --- Expressions ---

    def _wrap(self, node, level, parens):
        text = self.pformat(node, level)
        return f"({text})" if parens else text

    def _pformat_number(self, obj, level):
        if math.isnan(obj.value):
            return "(0 / 0)"
        if math.isinf(obj.value):
            return "(1 / 0)" if obj.value > 0 else "(-1 / 0)"
        return format_number(obj.value)

    def _pformat_unary(self, obj, level):
        operand = obj.operand
        parens = not isinstance(operand, UnaryNode) and precedence(operand) < 8
        # `-1` would scan back as a single negative literal.
        if obj.operator is UnaryOp.NEGATE and isinstance(operand, NumberNode) and operand.value >= 0:
            parens = True
        return obj.operator.value + self._wrap(operand, level, parens)

    def _pformat_postfix_target(self, node, level):
        # A bare number would swallow the dot as a decimal point.
        return self._wrap(node, level, precedence(node) < 8 or isinstance(node, NumberNode))

    def _pformat_binary(self, obj, level):
        op = obj.operator
        a, b = obj.operand_a, obj.operand_b
        if op is BinaryOp.MEMBER:
            right = self._wrap(b, level, precedence(b) < PRIMARY_PRECEDENCE)
            return f"{self._pformat_postfix_target(a, level)}.{right}"
        if op is BinaryOp.CALL:
            args = "" if isinstance(b, NullNode) and b.is_empty_arguments else self.pformat(b, level)
            return f"{self._pformat_postfix_target(a, level)}({args})"
        if op is BinaryOp.SUBSCRIPT:
            return f"{self._pformat_postfix_target(a, level)}[{self.pformat(b, level)}]"
        d = BINARY_PRECEDENCE[op]
        left = self._wrap(a, level, precedence(a) < d)
        right = self._wrap(b, level, precedence(b) <= d)
        if op is BinaryOp.GROUP:
            return f"{left}, {right}"
        return f"{left} {op.value} {right}"

    def _pformat_ternary(self, obj, level):
        a = self._wrap(obj.operand_a, level, precedence(obj.operand_a) < 3)
        b = self._wrap(obj.operand_b, level, precedence(obj.operand_b) <= 3)
        c = self._wrap(obj.operand_c, level, precedence(obj.operand_c) <= 3)
        return f"{a} ? {b} : {c}"

    def _pformat_lambda(self, obj, level):
        return f"lambda {', '.join(obj.args)}: {self.pformat(obj.expr, level)}"

    def _pformat_function(self, obj, level):
        return f"function({', '.join(obj.args)}) {self.pformat(obj.block, level)}"

    # --- Statements ---

    def pformat_terminated(self, statement, level=0):
        """Formats a statement as it appears in a block, with its `;`."""
        text = self.pformat(statement, level)
        if isinstance(statement, (BlockStatement, ConditionalStatement, ForStatement, WhileStatement)):
            return text
        return text + ";"

    def _pformat_assign(self, obj, level):
        return f"{self.pformat(obj.operand_a, level)} {obj.operator.value} {self.pformat(obj.operand_b, level)}"

    def _pformat_let(self, obj, level):
        if obj.initializer is None:
            return f"let {obj.ident}"
        return f"let {obj.ident} = {self.pformat(obj.initializer, level)}"

    def _pformat_return(self, obj, level):
        if obj.value is None:
            return "return"
        return f"return {self.pformat(obj.value, level)}"

    def _pformat_statements(self, statements, level):
        inner = self._indent_char * (level + 1)
        body = "".join(f"{inner}{self.pformat_terminated(s, level + 1)}\n" for s in statements)
        return "{\n" + body + self._indent_char * level + "}"

    def _pformat_block(self, obj, level):
        return self._pformat_statements(obj.statements, level)

    def _pformat_conditional(self, obj, level):
        head = f"if ({self.pformat(obj.condition, level)}) "
        if obj.alternate is None:
            return head + self.pformat_terminated(obj.branch, level)
        if _ends_with_open_if(obj.branch):
            branch = self._pformat_statements((obj.branch,), level)
        else:
            branch = self.pformat_terminated(obj.branch, level)
        return f"{head}{branch} else {self.pformat_terminated(obj.alternate, level)}"

    def _pformat_for(self, obj, level):
        parts = [
            self.pformat(obj.initializer, level) if obj.initializer is not None else "",
            self.pformat(obj.condition, level) if obj.condition is not None else "",
            self.pformat(obj.iterator, level) if obj.iterator is not None else "",
        ]
        return f"for ({parts[0]}; {parts[1]}; {parts[2]}) {self.pformat_terminated(obj.body, level)}"

    def _pformat_while(self, obj, level):
        return f"while ({self.pformat(obj.condition, level)}) {self.pformat_terminated(obj.body, level)}"

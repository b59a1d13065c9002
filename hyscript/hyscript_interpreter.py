"""
The hyscript evaluator: walks an AST against a Resolver and produces a Value.

Evaluation is asynchronous only because Value.call may perform host I/O;
everything else runs synchronously between those awaits. Return, break and
continue unwind as ControlFlowSignal exceptions.
"""
import os
import sys
from typing import List, Sequence

from hyscript.hyscript_ast import (
    Node, IdentNode, KeywordNode, NumberNode, BooleanNode, StringNode, NullNode,
    PlaceholderNode, UnaryNode, UnaryOp, BinaryNode, BinaryOp, TernaryNode,
    LambdaNode, FunctionNode, ExpressionStatement, AssignStatement, AssignOp,
    LetStatement, ReturnStatement, BreakStatement, ContinueStatement,
    BlockStatement, ConditionalStatement, ForStatement, WhileStatement,
    EmptyStatement, call_arguments,
)
from hyscript.hyscript_errors import (
    BreakSignal, ContinueSignal, EvaluationError, ReturnSignal, ScriptError,
)
from hyscript.hyscript_resolver import Resolver, ScopeResolver
from hyscript.hyscript_values import (
    BooleanTypeValue, BooleanValue, FunctionValue, NullValue, NumberTypeValue,
    NumberValue, StringTypeValue, StringValue, Value, Variable,
)


# -----------------------------------------------------------------
# Operator tables shared with the inference engine
# -----------------------------------------------------------------

UNARY_METHODS = {
    UnaryOp.NEGATE: "negate",
    UnaryOp.NOT: "not_",
    UnaryOp.BIT_NOT: "bit_not",
}

BINARY_METHODS = {
    BinaryOp.LOGICAL_OR: "logical_or",
    BinaryOp.LOGICAL_AND: "logical_and",
    BinaryOp.EQUAL: "equal",
    BinaryOp.NOT_EQUAL: "not_equal",
    BinaryOp.LESSER: "lesser",
    BinaryOp.LESSER_EQUAL: "lesser_equal",
    BinaryOp.GREATER: "greater",
    BinaryOp.GREATER_EQUAL: "greater_equal",
    BinaryOp.ADD: "add",
    BinaryOp.SUB: "sub",
    BinaryOp.OR: "or_",
    BinaryOp.XOR: "xor",
    BinaryOp.MUL: "mul",
    BinaryOp.DIV: "div",
    BinaryOp.REM: "rem",
    BinaryOp.LSH: "lsh",
    BinaryOp.RSH: "rsh",
    BinaryOp.AND: "and_",
    BinaryOp.AND_NOT: "and_not",
    BinaryOp.SUBSCRIPT: "index",
}

ASSIGN_METHODS = {
    AssignOp.ADD_ASSIGN: "add",
    AssignOp.SUB_ASSIGN: "sub",
    AssignOp.MUL_ASSIGN: "mul",
    AssignOp.QUO_ASSIGN: "div",
    AssignOp.REM_ASSIGN: "rem",
    AssignOp.AND_ASSIGN: "and_",
    AssignOp.OR_ASSIGN: "or_",
    AssignOp.XOR_ASSIGN: "xor",
    AssignOp.SHL_ASSIGN: "lsh",
    AssignOp.SHR_ASSIGN: "rsh",
    AssignOp.AND_NOT_ASSIGN: "and_not",
}

TYPE_KEYWORDS = {
    "Boolean": BooleanTypeValue,
    "Number": NumberTypeValue,
    "String": StringTypeValue,
}


def apply_unary(op: UnaryOp, operand: Value) -> Value:
    if op is UnaryOp.PLUS:
        return operand
    return getattr(operand, UNARY_METHODS[op])()


def apply_binary(op: BinaryOp, a: Value, b: Value) -> Value:
    if op is BinaryOp.GROUP:
        return b
    return getattr(a, BINARY_METHODS[op])(b)


def apply_assign(op: AssignOp, target: Value, value: Value) -> None:
    if op is AssignOp.ASSIGN:
        target.assign(value)
    else:
        target.assign(getattr(target, ASSIGN_METHODS[op])(value))


def literal_value(node: Node) -> Value:
    """Values of leaf nodes that need no resolver."""
    match node:
        case NumberNode(value=value):
            return NumberValue(value)
        case BooleanNode(value=value):
            return BooleanValue(value)
        case StringNode(value=value):
            return StringValue(value)
        case NullNode() | PlaceholderNode():
            return NullValue()
        case KeywordNode(keyword=keyword):
            return TYPE_KEYWORDS[keyword]()
    raise EvaluationError(f"Unknown node type {type(node).__name__}")


def bind_arguments(scope: Resolver, params: Sequence[str], args: List[Value]) -> None:
    """Binds each parameter to a fresh Variable; missing arguments are Null."""
    for i, name in enumerate(params):
        scope.assign(name, Variable(args[i] if i < len(args) else NullValue()))


def member_name(node: Node) -> str:
    if not isinstance(node, IdentNode):
        raise EvaluationError("Expected identifier after dot operator")
    return node.ident


MAX_DEPTH_MESSAGE = "Maximum call depth exceeded"


def flow_error(signal) -> EvaluationError:
    kind = "break" if isinstance(signal, BreakSignal) else "continue"
    return EvaluationError(f"Unexpected {kind} outside of loop", signal.span)


class Evaluator:
    """The hyscript execution engine (real path)."""

    def _dbg(self, *parts):
        if os.environ.get("HYSCRIPT_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    async def evaluate(self, resolver: Resolver, node: Node) -> Value:
        """Evaluates `node` in a fresh scope over `resolver`.

        A `return` yields its value; break/continue that escape every loop
        become EvaluationErrors, and so does recursion past the interpreter's
        stack limit.
        """
        scoped = ScopeResolver(resolver)
        try:
            return await self._eval(node, scoped)
        except ReturnSignal as r:
            return r.value
        except (BreakSignal, ContinueSignal) as signal:
            raise flow_error(signal) from None
        except RecursionError:
            raise EvaluationError(MAX_DEPTH_MESSAGE, node.span) from None

    async def _eval(self, node: Node, resolver: Resolver) -> Value:
        # One frame per tree level: every node kind is handled inline.
        try:
            match node:
                # --- Statements ---
                case BlockStatement(statements=statements):
                    for statement in statements:
                        await self._eval(statement, resolver)
                    return NullValue()
                case ExpressionStatement(expr=expr):
                    return await self._eval(expr, resolver)
                case AssignStatement(operand_a=a, operator=op, operand_b=b):
                    target = await self._eval(a, resolver)
                    value = await self._eval(b, resolver)
                    apply_assign(op, target, value)
                    return NullValue()
                case LetStatement(ident=ident, initializer=initializer):
                    initial = NullValue() if initializer is None else await self._eval(initializer, resolver)
                    resolver.assign(ident, Variable(initial))
                    return NullValue()
                case ReturnStatement(value=value):
                    raise ReturnSignal(NullValue() if value is None else await self._eval(value, resolver))
                case BreakStatement(span=span):
                    self._dbg("break at", span)
                    raise BreakSignal(span)
                case ContinueStatement(span=span):
                    self._dbg("continue at", span)
                    raise ContinueSignal(span)
                case ConditionalStatement(condition=condition, branch=branch, alternate=alternate):
                    if BooleanValue.into(await self._eval(condition, resolver)).value:
                        await self._eval(branch, resolver)
                    elif alternate is not None:
                        await self._eval(alternate, resolver)
                    return NullValue()
                case ForStatement(initializer=initializer, condition=condition, iterator=iterator, body=body):
                    if initializer is not None:
                        await self._eval(initializer, resolver)
                    while condition is None or BooleanValue.into(await self._eval(condition, resolver)).value:
                        try:
                            await self._eval(body, resolver)
                        except BreakSignal:
                            break
                        except ContinueSignal:
                            pass
                        if iterator is not None:
                            await self._eval(iterator, resolver)
                    return NullValue()
                case WhileStatement(condition=condition, body=body):
                    while BooleanValue.into(await self._eval(condition, resolver)).value:
                        try:
                            await self._eval(body, resolver)
                        except BreakSignal:
                            break
                        except ContinueSignal:
                            continue
                    return NullValue()
                case EmptyStatement():
                    return NullValue()

                # --- Expressions ---
                case IdentNode(ident=ident):
                    return resolver.resolve(ident)
                case UnaryNode(operator=op, operand=operand):
                    return apply_unary(op, await self._eval(operand, resolver))
                case BinaryNode(operand_a=a_node, operator=BinaryOp.CALL, operand_b=b_node):
                    fn = await self._eval(a_node, resolver)
                    args = [await self._eval(arg, resolver) for arg in call_arguments(b_node)]
                    self._dbg("call", a_node.source, "with", len(args), "args")
                    return await fn.call(args)
                case BinaryNode(operand_a=a_node, operator=BinaryOp.MEMBER, operand_b=b_node):
                    return (await self._eval(a_node, resolver)).dot(member_name(b_node))
                case BinaryNode(operand_a=a_node, operator=op, operand_b=b_node):
                    a = await self._eval(a_node, resolver)
                    return apply_binary(op, a, await self._eval(b_node, resolver))
                case TernaryNode(operand_a=a, operand_b=b, operand_c=c):
                    if BooleanValue.from_(await self._eval(a, resolver)).value:
                        return await self._eval(b, resolver)
                    return await self._eval(c, resolver)
                case FunctionNode(args=params, block=block):
                    return self._make_function(resolver, params, block)
                case LambdaNode(args=params, expr=expr):
                    return self._make_function(resolver, params, expr)
                case _:
                    return literal_value(node)
        except ScriptError as e:
            if e.span is None:
                e.span = node.span
            raise

    def _make_function(self, resolver: Resolver, params: Sequence[str], body: Node) -> FunctionValue:
        """A user-defined procedure closing over `resolver`. It can only run
        for real; speculative runs must never reach it."""
        async def call(args):
            scoped = ScopeResolver(resolver)
            bind_arguments(scoped, params, args)
            return await self.evaluate(scoped, body)

        def placeholder(args):
            raise EvaluationError("Unexpected speculative execution of a real procedure")

        return FunctionValue(call, placeholder)


async def evaluate(resolver: Resolver, node: Node) -> Value:
    """Evaluates a parsed expression or script against `resolver`."""
    return await Evaluator().evaluate(resolver, node)

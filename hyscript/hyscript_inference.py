"""
Speculative evaluation for autocomplete.

The SuggestionEngine walks the same AST as the Evaluator, but synchronously
and against a SpeculativeResolver, so nothing it does can reach real program
state or host I/O. When the walk reaches the identifier or member access under
the cursor it raises Suggestions built from the runtime values it has seen.
"""
import os
import sys
from typing import Optional, Sequence, Union

from hyscript.hyscript_ast import (
    Node, IdentNode, UnaryNode, BinaryNode, BinaryOp, TernaryNode, LambdaNode,
    FunctionNode, ExpressionStatement, AssignStatement, LetStatement,
    ReturnStatement, BreakStatement, ContinueStatement, BlockStatement,
    ConditionalStatement, ForStatement, WhileStatement, EmptyStatement,
    call_arguments,
)
from hyscript.hyscript_errors import (
    BreakSignal, ContinueSignal, EvaluationError, NameNotFound, ReturnSignal,
    ScriptError, Suggestions,
)
from hyscript.hyscript_interpreter import (
    MAX_DEPTH_MESSAGE, apply_assign, apply_binary, apply_unary, bind_arguments,
    literal_value, member_name,
)
from hyscript.hyscript_resolver import Resolver, ScopeResolver, SpeculativeResolver
from hyscript.hyscript_suggest import fuzzy_suggest
from hyscript.hyscript_values import BooleanValue, FunctionValue, NullValue, Value, Variable


class SuggestionEngine:
    """Runs a speculative pass looking for completions at `cursor`.

    A cursor of None disables suggestions, turning the engine into a plain
    side-effect free evaluator.
    """

    def __init__(self, cursor: Optional[int]):
        self.cursor = cursor

    def _dbg(self, *parts):
        if os.environ.get("HYSCRIPT_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def get_suggestions(self, resolver: Resolver, node: Node) -> Union[Suggestions, ScriptError, None]:
        try:
            self.infer(resolver, node)
        except Suggestions as s:
            self._dbg("suggest", s.identifiers, "at", s.replace_span)
            return s
        except (ReturnSignal, BreakSignal, ContinueSignal):
            return None
        except ScriptError as e:
            self._dbg("inference stopped:", e.kind, e.message)
            return e
        return None

    def infer(self, resolver: Resolver, node: Node) -> Value:
        """Evaluates `node` speculatively in a shadow scope over `resolver`."""
        shadow = SpeculativeResolver(resolver)
        try:
            return self._infer(node, shadow)
        except ReturnSignal as r:
            return r.value
        except (BreakSignal, ContinueSignal):
            return NullValue()
        except RecursionError:
            raise EvaluationError(MAX_DEPTH_MESSAGE, node.span) from None

    def _cursor_in(self, start: int, end: int) -> bool:
        return self.cursor is not None and start <= self.cursor <= end

    def _infer(self, node: Node, resolver: Resolver) -> Value:
        try:
            match node:
                # --- Statements ---
                case BlockStatement(statements=statements):
                    for statement in statements:
                        self._infer(statement, resolver)
                    return NullValue()
                case ExpressionStatement(expr=expr):
                    return self._infer(expr, resolver)
                case AssignStatement(operand_a=a, operator=op, operand_b=b):
                    target = self._infer(a, resolver)
                    apply_assign(op, target, self._infer(b, resolver))
                    return NullValue()
                case LetStatement(ident=ident, initializer=initializer):
                    initial = NullValue() if initializer is None else self._infer(initializer, resolver)
                    resolver.assign(ident, Variable(initial))
                    return NullValue()
                case ReturnStatement(value=value):
                    raise ReturnSignal(NullValue() if value is None else self._infer(value, resolver))
                case BreakStatement(span=span):
                    raise BreakSignal(span)
                case ContinueStatement(span=span):
                    raise ContinueSignal(span)
                case ConditionalStatement(condition=condition, branch=branch, alternate=alternate):
                    if BooleanValue.into(self._infer(condition, resolver)).value:
                        self._infer(branch, resolver)
                    elif alternate is not None:
                        self._infer(alternate, resolver)
                    return NullValue()
                case ForStatement(initializer=initializer, condition=condition, iterator=iterator, body=body):
                    # One visit of each part is enough to discover names and types.
                    if initializer is not None:
                        self._infer(initializer, resolver)
                    if condition is not None:
                        self._infer(condition, resolver)
                    if self._infer_loop_body(body, resolver) and iterator is not None:
                        self._infer(iterator, resolver)
                    return NullValue()
                case WhileStatement(condition=condition, body=body):
                    self._infer(condition, resolver)
                    self._infer_loop_body(body, resolver)
                    return NullValue()
                case EmptyStatement():
                    return NullValue()

                # --- Expressions ---
                case IdentNode(ident=ident, span=span):
                    try:
                        return resolver.resolve(ident)
                    except NameNotFound:
                        if self._cursor_in(span.start, span.end):
                            raise Suggestions(fuzzy_suggest(ident, resolver.suggestions()), span) from None
                        raise
                case UnaryNode(operator=op, operand=operand):
                    return apply_unary(op, self._infer(operand, resolver))
                case BinaryNode(operand_a=a_node, operator=BinaryOp.CALL, operand_b=b_node):
                    fn = self._infer(a_node, resolver)
                    return fn.call_placeholder([self._infer(arg, resolver) for arg in call_arguments(b_node)])
                case BinaryNode(operand_a=a_node, operator=BinaryOp.MEMBER, operand_b=b_node):
                    a = self._infer(a_node, resolver)
                    if self._cursor_in(a_node.span.end, b_node.span.end):
                        members = a.dot_suggest()
                        if isinstance(b_node, IdentNode):
                            members = fuzzy_suggest(b_node.ident, members)
                        raise Suggestions(members, b_node.span)
                    return a.dot(member_name(b_node))
                case BinaryNode(operand_a=a_node, operator=op, operand_b=b_node):
                    a = self._infer(a_node, resolver)
                    return apply_binary(op, a, self._infer(b_node, resolver))
                case TernaryNode(operand_a=a, operand_b=b, operand_c=c):
                    if BooleanValue.from_(self._infer(a, resolver)).value:
                        return self._infer(b, resolver)
                    return self._infer(c, resolver)
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

    def _infer_loop_body(self, body: Node, resolver: Resolver) -> bool:
        """Visits a loop body once. Returns False if it broke out."""
        try:
            self._infer(body, resolver)
        except BreakSignal:
            return False
        except ContinueSignal:
            pass
        return True

    def _make_function(self, resolver: Resolver, params: Sequence[str], body: Node) -> FunctionValue:
        """A user-defined procedure that can only be run speculatively."""
        async def call(args):
            raise EvaluationError("Unexpected real execution of a speculative procedure")

        def placeholder(args):
            scoped = ScopeResolver(resolver)
            bind_arguments(scoped, params, args)
            return self.infer(scoped, body)

        return FunctionValue(call, placeholder)


def get_suggestions(resolver: Resolver, node: Node, cursor: Optional[int]) -> Union[Suggestions, ScriptError, None]:
    """Completions at `cursor`, the error that stopped inference, or None."""
    return SuggestionEngine(cursor).get_suggestions(resolver, node)

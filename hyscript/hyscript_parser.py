"""
The hyscript parser.

Expressions are parsed by precedence climbing over an explicit `depth`
(8 binds tightest, 2 is the comma). Statements are layered on top with a
three-tier `order`. In partial mode missing tokens are assumed present and
missing expressions become PlaceholderNodes, so text can be parsed while it is
still being typed.
"""
import json
from typing import List, Optional, Tuple

from hyscript.hyscript_ast import (
    Node, PlaceholderNode, IdentNode, KeywordNode, NumberNode, BooleanNode,
    StringNode, NullNode, UnaryNode, UnaryOp, BinaryNode, BinaryOp, TernaryNode,
    LambdaNode, FunctionNode, Statement, ExpressionStatement, AssignStatement,
    AssignOp, LetStatement, ReturnStatement, BreakStatement, ContinueStatement,
    BlockStatement, ConditionalStatement, ForStatement, WhileStatement,
    EmptyStatement,
)
from hyscript.hyscript_errors import ParseError
from hyscript.hyscript_scanner import Scanner, Span, Token, TokenType
from hyscript.hyscript_values import string_to_number

LOOP_LIMIT = 5000

KEYWORD_NODES = {
    TokenType.BOOLEAN_KEYWORD: "Boolean",
    TokenType.NUMBER_KEYWORD: "Number",
    TokenType.STRING_KEYWORD: "String",
}

UNARY_OPERATORS = {
    TokenType.ADD: UnaryOp.PLUS,
    TokenType.SUB: UnaryOp.NEGATE,
    TokenType.NOT: UnaryOp.NOT,
    TokenType.XOR: UnaryOp.BIT_NOT,
}

# (depth, operators) from tightest to loosest. A None operator is the ternary.
BINARY_TIERS = (
    (7, {
        TokenType.MUL: BinaryOp.MUL,
        TokenType.QUO: BinaryOp.DIV,
        TokenType.REM: BinaryOp.REM,
        TokenType.SHL: BinaryOp.LSH,
        TokenType.SHR: BinaryOp.RSH,
        TokenType.AND: BinaryOp.AND,
        TokenType.AND_NOT: BinaryOp.AND_NOT,
    }),
    (6, {
        TokenType.ADD: BinaryOp.ADD,
        TokenType.SUB: BinaryOp.SUB,
        TokenType.OR: BinaryOp.OR,
        TokenType.XOR: BinaryOp.XOR,
    }),
    (5, {
        TokenType.EQUAL: BinaryOp.EQUAL,
        TokenType.NOT_EQUAL: BinaryOp.NOT_EQUAL,
        TokenType.LESSER: BinaryOp.LESSER,
        TokenType.LESSER_EQUAL: BinaryOp.LESSER_EQUAL,
        TokenType.GREATER: BinaryOp.GREATER,
        TokenType.GREATER_EQUAL: BinaryOp.GREATER_EQUAL,
    }),
    (4, {TokenType.LOGICAL_AND: BinaryOp.LOGICAL_AND}),
    (3, {TokenType.LOGICAL_OR: BinaryOp.LOGICAL_OR, TokenType.TERNARY: None}),
    (2, {TokenType.COMMA: BinaryOp.GROUP}),
)

ASSIGN_OPERATORS = {
    TokenType.ASSIGN: AssignOp.ASSIGN,
    TokenType.ADD_ASSIGN: AssignOp.ADD_ASSIGN,
    TokenType.SUB_ASSIGN: AssignOp.SUB_ASSIGN,
    TokenType.MUL_ASSIGN: AssignOp.MUL_ASSIGN,
    TokenType.QUO_ASSIGN: AssignOp.QUO_ASSIGN,
    TokenType.REM_ASSIGN: AssignOp.REM_ASSIGN,
    TokenType.AND_ASSIGN: AssignOp.AND_ASSIGN,
    TokenType.OR_ASSIGN: AssignOp.OR_ASSIGN,
    TokenType.XOR_ASSIGN: AssignOp.XOR_ASSIGN,
    TokenType.SHL_ASSIGN: AssignOp.SHL_ASSIGN,
    TokenType.SHR_ASSIGN: AssignOp.SHR_ASSIGN,
    TokenType.AND_NOT_ASSIGN: AssignOp.AND_NOT_ASSIGN,
}


def _guard(i: int) -> int:
    if i > LOOP_LIMIT:
        raise ParseError("Hit loop limit")
    return i + 1


class Parser:
    """Parses one source string, either strictly or tolerating missing input."""

    def __init__(self, source: str, allow_partial: bool = False):
        self.source = source
        self.allow_partial = allow_partial
        self.scanner = Scanner(source)
        self.accepted_span = Span(0, 0)
        self.accepted_text = ""
        self.p = 0
        self.last_end = 0
        self.token: Optional[Token] = self.scanner.scan() if allow_partial else self.scanner.must_scan()
        if self.token is not None:
            self.p = self.token.span.start

    # -----------------------------------------------------------------
    # Token stream
    # -----------------------------------------------------------------

    def _token_name(self) -> str:
        return str(self.token.type) if self.token is not None else "end of script"

    def _advance(self):
        if self.token is None:
            raise ParseError("Advanced past end of token stream")
        end = self.token.span.end
        self.last_end = end
        self.token = self.scanner.scan()
        self.p = self.token.span.start if self.token is not None else end

    def _consume(self):
        self.accepted_span = self.token.span
        self.accepted_text = self.source[self.token.span.start:self.token.span.end]
        self._advance()

    def _accept(self, token_type: TokenType) -> bool:
        if self.token is None or self.token.type is not token_type:
            return False
        self._consume()
        return True

    def _expect(self, token_type: TokenType) -> bool:
        """Consumes a required token. In partial mode a missing token is
        recorded as a zero-width span at the cursor and False is returned."""
        if self.token is not None and self.token.type is token_type:
            self._consume()
            return True
        if self.allow_partial:
            self.accepted_span = Span(self.p, self.p)
            self.accepted_text = ""
            return False
        if self.token is None:
            raise ParseError("Unexpected end of expression")
        raise ParseError(f"Unexpected token {self.token.type} (expected {token_type}) at {self.p}")

    def _split_negative_literal(self):
        """Re-reads a `-N` literal that follows an operand as `-` then `N`."""
        if self.token is None or self.token.type is not TokenType.NUMBER:
            return
        start = self.token.span.start
        if self.source[start] != "-":
            return
        self.token = Token(TokenType.SUB, Span(start, start + 1))
        self.scanner.p = start + 1

    # -----------------------------------------------------------------
    # Entry points
    # -----------------------------------------------------------------

    def parse_expression(self) -> Node:
        result = self._parse_expr_part()
        if self.token is not None:
            raise ParseError(f"Unexpected token: {self.token.type}")
        return result

    def parse_script(self) -> BlockStatement:
        start = self.p
        statements = self._parse_statements_part()
        if self.token is not None:
            raise ParseError(f"Unexpected token: {self.token.type}")
        return BlockStatement(Span(start, self.p), tuple(statements))

    # -----------------------------------------------------------------
    # Statements
    # -----------------------------------------------------------------

    def _parse_statements_part(self) -> List[Statement]:
        result = []
        i = 0
        while self.token is not None and self.token.type is not TokenType.RIGHT_BRACE:
            i = _guard(i)
            result.append(self._parse_statement_part())
        return result

    def _parse_statement_part(self, order: int = 0) -> Statement:
        start = self.p
        if order < 1 and self._accept(TokenType.LEFT_BRACE):
            statements = self._parse_statements_part()
            self._expect(TokenType.RIGHT_BRACE)
            return BlockStatement(Span(start, self.last_end), tuple(statements))

        if order < 2:
            if self._accept(TokenType.RETURN_KEYWORD):
                if self._accept(TokenType.SEMICOLON):
                    return ReturnStatement(Span(start, self.accepted_span.start))
                value = self._parse_expr_part()
                self._expect(TokenType.SEMICOLON)
                return ReturnStatement(Span(start, value.span.end), value)
            if self._accept(TokenType.BREAK_KEYWORD):
                span = Span(start, self.accepted_span.end)
                self._expect(TokenType.SEMICOLON)
                return BreakStatement(span)
            if self._accept(TokenType.CONTINUE_KEYWORD):
                span = Span(start, self.accepted_span.end)
                self._expect(TokenType.SEMICOLON)
                return ContinueStatement(span)
            if self._accept(TokenType.IF_KEYWORD):
                self._expect(TokenType.LEFT_PAREN)
                condition = self._parse_expr_part()
                self._expect(TokenType.RIGHT_PAREN)
                branch = self._parse_statement_part()
                alternate = None
                if self._accept(TokenType.ELSE_KEYWORD):
                    alternate = self._parse_statement_part()
                return ConditionalStatement(Span(start, self.last_end), condition, branch, alternate)
            if self._accept(TokenType.FOR_KEYWORD):
                return self._parse_for_tail(start)
            if self._accept(TokenType.WHILE_KEYWORD):
                self._expect(TokenType.LEFT_PAREN)
                condition = self._parse_expr_part()
                self._expect(TokenType.RIGHT_PAREN)
                body = self._parse_statement_part()
                return WhileStatement(Span(start, self.last_end), condition, body)

        if order < 3:
            if self._accept(TokenType.SEMICOLON):
                return EmptyStatement(Span(start, start))
            statement = self._parse_decl_or_assignment_or_call()
            self._expect(TokenType.SEMICOLON)
            return statement

        raise ParseError(f"Unexpected token: {self._token_name()}")

    def _parse_for_tail(self, start: int) -> ForStatement:
        self._expect(TokenType.LEFT_PAREN)
        initializer = None
        if not self._accept(TokenType.SEMICOLON):
            initializer = self._parse_decl_or_assignment_or_call()
            self._expect(TokenType.SEMICOLON)
        condition = None
        if not self._accept(TokenType.SEMICOLON):
            condition = self._parse_expr_part()
            self._expect(TokenType.SEMICOLON)
        iterator = None
        if not self._accept(TokenType.RIGHT_PAREN):
            iterator = self._parse_assignment_or_call()
            self._expect(TokenType.RIGHT_PAREN)
        body = self._parse_statement_part()
        return ForStatement(Span(start, self.last_end), initializer, condition, iterator, body)

    def _parse_decl_or_assignment_or_call(self) -> Statement:
        start = self.p
        if self._accept(TokenType.LET_KEYWORD):
            self._expect(TokenType.IDENTIFIER)
            ident = self.accepted_text
            ident_end = self.accepted_span.end
            if self.token is None or self.token.type is TokenType.SEMICOLON:
                return LetStatement(Span(start, ident_end), ident)
            self._expect(TokenType.ASSIGN)
            initializer = self._parse_expr_part()
            return LetStatement(Span(start, initializer.span.end), ident, initializer)
        return self._parse_assignment_or_call()

    def _parse_assignment_or_call(self) -> Statement:
        left, is_call = self._parse_statement_left()
        if is_call:
            return ExpressionStatement(left)
        op = ASSIGN_OPERATORS.get(self.token.type) if self.token is not None else None
        if op is None:
            if self.allow_partial:
                return ExpressionStatement(left)
            raise ParseError(f"Unexpected token: {self._token_name()}; expected assignment operator")
        self._advance()
        return AssignStatement(left, op, self._parse_expr_part())

    def _parse_statement_left(self) -> Tuple[Node, bool]:
        """Parses an lvalue or call target: an identifier followed by member,
        call and subscript postfixes. It is a call if the last postfix was."""
        if not self._accept(TokenType.IDENTIFIER):
            raise ParseError(f"Lvalue cannot start with {self._token_name()}")
        n: Node = IdentNode(self.accepted_span, self.accepted_text)
        is_call = False
        i = 0
        while True:
            i = _guard(i)
            if self._accept(TokenType.PERIOD):
                self._expect(TokenType.IDENTIFIER)
                n = BinaryNode(n, BinaryOp.MEMBER, IdentNode(self.accepted_span, self.accepted_text))
                is_call = False
            elif self._accept(TokenType.LEFT_PAREN):
                n = self._parse_call_tail(n)
                is_call = True
            elif self._accept(TokenType.LEFT_BRACKET):
                index = self._parse_expr_part(1)
                self._expect(TokenType.RIGHT_BRACKET)
                n = BinaryNode(n, BinaryOp.SUBSCRIPT, index)
                is_call = False
            else:
                return n, is_call

    def _parse_call_tail(self, target: Node) -> Node:
        if self._accept(TokenType.RIGHT_PAREN):
            return BinaryNode(target, BinaryOp.CALL, NullNode(Span(self.p, self.p)))
        args = self._parse_expr_part(1)
        self._expect(TokenType.RIGHT_PAREN)
        return BinaryNode(target, BinaryOp.CALL, args)

    # -----------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------

    def _parse_primary(self) -> Optional[Node]:
        token = self.token
        if token is None:
            return None
        if self._accept(TokenType.IDENTIFIER):
            return IdentNode(self.accepted_span, self.accepted_text)
        if token.type in KEYWORD_NODES:
            self._consume()
            return KeywordNode(self.accepted_span, KEYWORD_NODES[token.type])
        if self._accept(TokenType.NUMBER):
            return NumberNode(self.accepted_span, string_to_number(self.accepted_text))
        if self._accept(TokenType.BOOLEAN):
            return BooleanNode(self.accepted_span, self.accepted_text == "true")
        if self._accept(TokenType.STRING):
            try:
                value = json.loads(self.accepted_text)
            except ValueError as e:
                raise ParseError(f"Invalid string literal {self.accepted_text}: {e}", self.accepted_span) from e
            return StringNode(self.accepted_span, value)
        if self._accept(TokenType.NULL):
            return NullNode(self.accepted_span)
        if self._accept(TokenType.LEFT_PAREN):
            n = self._parse_expr_part(1)
            self._expect(TokenType.RIGHT_PAREN)
            return n
        return None

    def _accept_binary(self, depth: int):
        """Accepts the next binary operator allowed at `depth`.
        Returns (op, tier), or None if nothing binds here."""
        if self.token is None:
            return None
        for tier, operators in BINARY_TIERS:
            if depth >= tier:
                return None
            token_type = self.token.type
            if token_type in operators:
                self._consume()
                return operators[token_type], tier
        return None

    def _parse_expr_part(self, depth: int = 0) -> Node:
        start = self.p
        if self._accept(TokenType.FUNCTION_KEYWORD):
            return self._parse_function_tail(start)
        if self._accept(TokenType.LAMBDA_KEYWORD):
            return self._parse_lambda_tail(start)
        n = self._parse_primary()

        i = 0
        while True:
            i = _guard(i)
            if depth >= 8:
                break
            if n is not None:
                self._split_negative_literal()
                if self._accept(TokenType.PERIOD):
                    n = BinaryNode(n, BinaryOp.MEMBER, self._parse_expr_part(8))
                    continue
                if self._accept(TokenType.LEFT_PAREN):
                    n = self._parse_call_tail(n)
                    continue
                if self._accept(TokenType.LEFT_BRACKET):
                    index = self._parse_expr_part(1)
                    self._expect(TokenType.RIGHT_BRACKET)
                    n = BinaryNode(n, BinaryOp.SUBSCRIPT, index)
                    continue
            elif self.token is not None and self.token.type in UNARY_OPERATORS:
                op = UNARY_OPERATORS[self.token.type]
                self._advance()
                operand = self._parse_expr_part(7)
                n = UnaryNode(Span(start, operand.span.end), op, operand)

            accepted = self._accept_binary(depth)
            if accepted is None:
                break
            op, tier = accepted
            if n is None:
                raise ParseError("Unexpected binary operator" if op is not None else "Unexpected ternary operator")
            if op is None:
                consequent = self._parse_expr_part(tier)
                self._expect(TokenType.COLON)
                n = TernaryNode(n, consequent, self._parse_expr_part(tier))
            else:
                n = BinaryNode(n, op, self._parse_expr_part(tier))

        if n is None:
            if self.allow_partial:
                return PlaceholderNode(Span(self.p, self.p))
            raise ParseError("No expression was parsed")
        return n

    def _parse_block_part(self) -> BlockStatement:
        start = self.p
        self._expect(TokenType.LEFT_BRACE)
        statements = self._parse_statements_part()
        self._expect(TokenType.RIGHT_BRACE)
        return BlockStatement(Span(start, self.last_end), tuple(statements))

    def _parse_function_tail(self, start: int) -> FunctionNode:
        args = []
        if self._expect(TokenType.LEFT_PAREN) and not self._accept(TokenType.RIGHT_PAREN):
            i = 0
            while True:
                i = _guard(i)
                if self.allow_partial and self.token is None:
                    break
                self._expect(TokenType.IDENTIFIER)
                args.append(self.accepted_text)
                if self._accept(TokenType.RIGHT_PAREN):
                    break
                self._expect(TokenType.COMMA)
        block = self._parse_block_part()
        return FunctionNode(Span(start, self.last_end), tuple(args), block)

    def _parse_lambda_tail(self, start: int) -> LambdaNode:
        args = []
        i = 0
        while True:
            i = _guard(i)
            if not self._expect(TokenType.IDENTIFIER):
                break
            args.append(self.accepted_text)
            if self._accept(TokenType.COLON):
                break
            if not self._expect(TokenType.COMMA):
                break
        expr = self._parse_expr_part()
        return LambdaNode(Span(start, expr.span.end), tuple(args), expr)

"""
Recursive descent parser for the template expression language.

Grammar (precedence low to high):
    ternary     → or_expr ("?" ternary ":" ternary)?
    or_expr     → and_expr ("||" and_expr)*
    and_expr    → not_expr ("&&" not_expr)*
    not_expr    → "!" not_expr | comparison
    comparison  → primary (comp_op primary)?
    primary     → literal | func_call | path | "(" ternary ")"
    literal     → "-"? (INT | FLOAT) | STRING | "true" | "false" | "null" | "undefined"
    func_call   → IDENT "(" (ternary ("," ternary)*)? ")"
    path        → IDENT ("." (IDENT | INT) | "[" INT "]")*
"""

from __future__ import annotations

from uiflow.core.errors import ExpressionError
from uiflow.core.template_lang.nodes import (
    BinaryExpr,
    BinaryOp,
    Expr,
    FuncCall,
    Literal,
    NotExpr,
    PathRef,
    TernaryExpr,
)
from uiflow.core.template_lang.tokenizer import (
    ExpressionTokenError,
    Token,
    TokenKind,
    tokenize,
)

_COMPARISON_OPS: dict[TokenKind, BinaryOp] = {
    TokenKind.STRICT_EQ: BinaryOp.STRICT_EQ,
    TokenKind.STRICT_NE: BinaryOp.STRICT_NE,
    TokenKind.EQ: BinaryOp.EQ,
    TokenKind.NE: BinaryOp.NE,
    TokenKind.LT: BinaryOp.LT,
    TokenKind.GT: BinaryOp.GT,
    TokenKind.LE: BinaryOp.LE,
    TokenKind.GE: BinaryOp.GE,
}

# Tokens allowed as a segment name after "." (keywords are plain keys there)
_SEGMENT_KINDS = (
    TokenKind.IDENT,
    TokenKind.INT,
    TokenKind.TRUE,
    TokenKind.FALSE,
    TokenKind.NULL,
)


class ExpressionParseError(ExpressionError):
    """Error during expression parsing."""

    def __init__(self, message: str, pos: int = 0) -> None:
        super().__init__(message)
        self.pos = pos


class _Parser:
    """Recursive descent parser for template expressions."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]  # EOF

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def expect(self, kind: TokenKind) -> Token:
        tok = self.current
        if tok.kind != kind:
            raise ExpressionParseError(
                f"Expected {kind}, got {tok.kind} ({tok.value!r})",
                tok.pos,
            )
        return self.advance()

    def match(self, *kinds: TokenKind) -> Token | None:
        if self.current.kind in kinds:
            return self.advance()
        return None

    # -- Grammar rules --

    def parse_ternary(self) -> Expr:
        """or_expr ('?' ternary ':' ternary)?"""
        condition = self.parse_or_expr()
        if not self.match(TokenKind.QUESTION):
            return condition
        then_expr = self.parse_ternary()
        self.expect(TokenKind.COLON)
        else_expr = self.parse_ternary()
        return TernaryExpr(condition=condition, then_expr=then_expr, else_expr=else_expr)

    def parse_or_expr(self) -> Expr:
        """and_expr ('||' and_expr)*"""
        left = self.parse_and_expr()
        while self.match(TokenKind.OR):
            right = self.parse_and_expr()
            left = BinaryExpr(op=BinaryOp.OR, left=left, right=right)
        return left

    def parse_and_expr(self) -> Expr:
        """not_expr ('&&' not_expr)*"""
        left = self.parse_not_expr()
        while self.match(TokenKind.AND):
            right = self.parse_not_expr()
            left = BinaryExpr(op=BinaryOp.AND, left=left, right=right)
        return left

    def parse_not_expr(self) -> Expr:
        """'!' not_expr | comparison"""
        if self.match(TokenKind.NOT):
            return NotExpr(operand=self.parse_not_expr())
        return self.parse_comparison()

    def parse_comparison(self) -> Expr:
        """primary (comp_op primary)?"""
        left = self.parse_primary()
        if self.current.kind in _COMPARISON_OPS:
            op = _COMPARISON_OPS[self.advance().kind]
            right = self.parse_primary()
            return BinaryExpr(op=op, left=left, right=right)
        return left

    def parse_primary(self) -> Expr:
        """literal | func_call | path | '(' ternary ')'"""
        tok = self.current

        if tok.kind == TokenKind.LPAREN:
            self.advance()
            expr = self.parse_ternary()
            self.expect(TokenKind.RPAREN)
            return expr

        if tok.kind == TokenKind.MINUS:
            return self._parse_negative_number()

        if tok.kind == TokenKind.INT:
            self.advance()
            return Literal(value=int(tok.value))
        if tok.kind == TokenKind.FLOAT:
            self.advance()
            return Literal(value=float(tok.value))
        if tok.kind == TokenKind.STRING:
            self.advance()
            return Literal(value=tok.value)
        if tok.kind == TokenKind.TRUE:
            self.advance()
            return Literal(value=True)
        if tok.kind == TokenKind.FALSE:
            self.advance()
            return Literal(value=False)
        if tok.kind == TokenKind.NULL:
            self.advance()
            return Literal(value=None)

        if tok.kind == TokenKind.IDENT:
            if self.peek(1).kind == TokenKind.LPAREN:
                return self._parse_func_call()
            return self._parse_path()

        raise ExpressionParseError(
            f"Unexpected token: {tok.kind} ({tok.value!r})",
            tok.pos,
        )

    def _parse_negative_number(self) -> Literal:
        """'-' (INT | FLOAT)"""
        self.expect(TokenKind.MINUS)
        tok = self.current
        if tok.kind == TokenKind.INT:
            self.advance()
            return Literal(value=-int(tok.value))
        if tok.kind == TokenKind.FLOAT:
            self.advance()
            return Literal(value=-float(tok.value))
        raise ExpressionParseError(
            f"Expected number after '-', got {tok.kind} ({tok.value!r})",
            tok.pos,
        )

    def _parse_func_call(self) -> FuncCall:
        """IDENT '(' (ternary (',' ternary)*)? ')'"""
        name_tok = self.expect(TokenKind.IDENT)
        self.expect(TokenKind.LPAREN)

        args: list[Expr] = []
        if self.current.kind != TokenKind.RPAREN:
            args.append(self.parse_ternary())
            while self.match(TokenKind.COMMA):
                args.append(self.parse_ternary())

        self.expect(TokenKind.RPAREN)
        return FuncCall(name=name_tok.value, args=args)

    def _parse_path(self) -> PathRef:
        """IDENT ('.' (IDENT | INT) | '[' INT ']')*"""
        path = self.expect(TokenKind.IDENT).value

        while True:
            if self.match(TokenKind.DOT):
                segment = self.current
                if segment.kind not in _SEGMENT_KINDS:
                    raise ExpressionParseError(
                        f"Expected path segment, got {segment.kind} ({segment.value!r})",
                        segment.pos,
                    )
                self.advance()
                path += f".{segment.value}"
            elif self.match(TokenKind.LBRACKET):
                index = self.expect(TokenKind.INT)
                self.expect(TokenKind.RBRACKET)
                path += f"[{index.value}]"
            else:
                return PathRef(path=path)


def parse_template_expr(source: str) -> Expr:
    """Parse the inside of a ``#{...}`` placeholder into an AST.

    Raises:
        ExpressionParseError: If the expression is invalid or fails to tokenize.
    """
    try:
        tokens = tokenize(source)
    except ExpressionTokenError as e:
        raise ExpressionParseError(str(e), e.pos) from e

    parser = _Parser(tokens)
    expr = parser.parse_ternary()

    if parser.current.kind != TokenKind.EOF:
        raise ExpressionParseError(
            f"Unexpected token after expression: {parser.current.value!r}",
            parser.current.pos,
        )

    return expr

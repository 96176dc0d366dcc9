"""
AST node types for the ``#{...}`` template expression language.

Supports:
- Property paths: user.name, items[0].id, __result.token
- Literals: 'text', "text", 42, 1.5, true, false, null, undefined
- Comparison: ===, !==, ==, !=, <, >, <=, >=
- Logic: &&, ||, !
- Ternary: cond ? a : b
- Built-in calls: exists(path), notExists(path)
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class BinaryOp(StrEnum):
    """Binary operators."""

    # Comparison
    STRICT_EQ = "==="
    STRICT_NE = "!=="
    EQ = "=="
    NE = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="
    # Logical
    AND = "&&"
    OR = "||"


# ---------------------------------------------------------------------------
# AST node types
# ---------------------------------------------------------------------------


class Literal(BaseModel):
    """A literal value: int, float, str, bool, or None (null / undefined)."""

    value: int | float | str | bool | None = Field(description="The literal value")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if self.value is None:
            return "null"
        if isinstance(self.value, str):
            return repr(self.value)
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        return str(self.value)


class PathRef(BaseModel):
    """
    Reference into the context, resolved with ``resolve_path``.

    Examples:
        - PathRef(path="user.name")
        - PathRef(path="user.skills[0]")
    """

    path: str = Field(description="Dotted/bracketed path")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.path


class BinaryExpr(BaseModel):
    """Binary operation: left op right."""

    op: BinaryOp
    left: Expr
    right: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"({self.left} {self.op.value} {self.right})"


class NotExpr(BaseModel):
    """Logical negation: !operand."""

    operand: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"!{self.operand}"


class FuncCall(BaseModel):
    """
    Built-in function call: name(arg1, ...).

    Built-in functions: exists(x), notExists(x)
    """

    name: str = Field(description="Function name")
    args: list[Expr] = Field(default_factory=list, description="Arguments")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        args_str = ", ".join(str(a) for a in self.args)
        return f"{self.name}({args_str})"


class TernaryExpr(BaseModel):
    """Conditional expression: condition ? then_expr : else_expr."""

    condition: Expr
    then_expr: Expr
    else_expr: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"({self.condition} ? {self.then_expr} : {self.else_expr})"


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

Expr = Literal | PathRef | BinaryExpr | NotExpr | FuncCall | TernaryExpr

# Rebuild models for recursive forward references
BinaryExpr.model_rebuild()
NotExpr.model_rebuild()
FuncCall.model_rebuild()
TernaryExpr.model_rebuild()

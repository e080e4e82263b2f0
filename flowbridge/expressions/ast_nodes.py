"""AST node definitions for workflow expressions."""

import json
from typing import Union
from pydantic import BaseModel, ConfigDict, Field


class ExprNode(BaseModel):
    """Base for expression nodes."""

    model_config = ConfigDict(frozen=True)


class Literal(ExprNode):
    """String, number, boolean or null literal. ``raw`` keeps the source text."""
    value: Union[bool, int, float, str, None]
    raw: str

    @classmethod
    def string(cls, value: str) -> "Literal":
        return cls(value=value, raw=json.dumps(value))

    def __str__(self) -> str:
        return self.raw


class Identifier(ExprNode):
    """Bare name such as ``env`` or ``upper``."""
    name: str

    def __str__(self) -> str:
        return self.name


class Variable(ExprNode):
    """``$``-prefixed name such as ``$json``."""
    name: str

    def __str__(self) -> str:
        return self.name


class Member(ExprNode):
    """Dotted member access: ``obj.name``."""
    obj: "Expr"
    name: str

    def __str__(self) -> str:
        return f"{self.obj}.{self.name}"


class Index(ExprNode):
    """Bracket access: ``obj[index]``."""
    obj: "Expr"
    index: "Expr"

    def __str__(self) -> str:
        return f"{self.obj}[{self.index}]"


class Call(ExprNode):
    """Function call: ``callee(args)``."""
    callee: "Expr"
    args: list["Expr"] = Field(default_factory=list)

    def __str__(self) -> str:
        args = ", ".join(str(a) for a in self.args)
        return f"{self.callee}({args})"


class Unary(ExprNode):
    """Prefix operator."""
    op: str
    operand: "Expr"

    def __str__(self) -> str:
        operand = str(self.operand)
        # "- -x" must not print as the decrement "--x"
        if self.op == "-" and operand.startswith("-"):
            return f"{self.op} {operand}"
        return f"{self.op}{operand}"


class Binary(ExprNode):
    """Infix operator."""
    op: str
    left: "Expr"
    right: "Expr"

    def __str__(self) -> str:
        return f"{self.left} {self.op} {self.right}"


class Conditional(ExprNode):
    """Ternary ``test ? then : otherwise``."""
    test: "Expr"
    then: "Expr"
    otherwise: "Expr"

    def __str__(self) -> str:
        return f"{self.test} ? {self.then} : {self.otherwise}"


class Group(ExprNode):
    """Parenthesized expression, kept so printing preserves grouping."""
    expr: "Expr"

    def __str__(self) -> str:
        return f"({self.expr})"


Expr = Union[Literal, Identifier, Variable, Member, Index, Call, Unary, Binary, Conditional, Group]

for _model in (Member, Index, Call, Unary, Binary, Conditional, Group):
    _model.model_rebuild()

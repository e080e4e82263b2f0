"""Parser and AST transformer for workflow expressions."""

import ast as pyast
from pathlib import Path
from lark import Lark, Transformer
from lark.exceptions import LarkError, VisitError

from ..exceptions import ExpressionSyntaxError
from .ast_nodes import (
    Binary,
    Call,
    Conditional,
    Expr,
    Group,
    Identifier,
    Index,
    Literal,
    Member,
    Unary,
    Variable,
)


def _binary(op: str):
    def handler(self, items):
        return Binary(op=op, left=items[0], right=items[1])
    handler.__doc__ = f"Transform binary ``{op}``."
    return handler


class ExpressionTransformer(Transformer):
    """Transform Lark parse tree into expression AST nodes."""

    def number(self, items):
        """Transform number literal."""
        raw = str(items[0])
        value = float(raw) if "." in raw else int(raw)
        return Literal(value=value, raw=raw)

    def string(self, items):
        """Transform quoted string literal."""
        raw = str(items[0])
        return Literal(value=pyast.literal_eval(raw), raw=raw)

    def true(self, items):
        return Literal(value=True, raw="true")

    def false(self, items):
        return Literal(value=False, raw="false")

    def null(self, items):
        return Literal(value=None, raw="null")

    def variable(self, items):
        """Transform ``$name`` variable."""
        return Variable(name=str(items[0]))

    def identifier(self, items):
        return Identifier(name=str(items[0]))

    def group(self, items):
        return Group(expr=items[0])

    def member(self, items):
        """Transform member access: postfix . NAME"""
        return Member(obj=items[0], name=str(items[1]))

    def index(self, items):
        """Transform index access: postfix [ expr ]"""
        return Index(obj=items[0], index=items[1])

    def arguments(self, items):
        return list(items)

    def call(self, items):
        """Transform call: postfix ( arguments? )"""
        args = items[1] if len(items) > 1 and items[1] is not None else []
        return Call(callee=items[0], args=args)

    def not_(self, items):
        return Unary(op="!", operand=items[0])

    def neg(self, items):
        return Unary(op="-", operand=items[0])

    def conditional(self, items):
        """Transform ternary: test ? then : otherwise"""
        return Conditional(test=items[0], then=items[1], otherwise=items[2])

    or_ = _binary("||")
    and_ = _binary("&&")
    strict_eq = _binary("===")
    strict_ne = _binary("!==")
    eq = _binary("==")
    ne = _binary("!=")
    le = _binary("<=")
    ge = _binary(">=")
    lt = _binary("<")
    gt = _binary(">")
    add = _binary("+")
    sub = _binary("-")
    mul = _binary("*")
    div = _binary("/")
    mod = _binary("%")


class ExpressionParser:
    """Parser for expression content (the text between delimiters)."""

    def __init__(self, grammar_path: str | Path | None = None):
        """Initialize parser with grammar."""
        if grammar_path is None:
            grammar_path = Path(__file__).parent / "grammar.lark"

        with open(grammar_path) as f:
            self.parser = Lark(
                f.read(),
                start="start",
                parser="lalr",
            )
        self.transformer = ExpressionTransformer()

    def parse(self, content: str) -> Expr:
        """Parse expression content into AST.

        Raises ExpressionSyntaxError when the content is empty or outside
        the supported grammar.
        """
        if not content or not content.strip():
            raise ExpressionSyntaxError(content, "empty expression")
        try:
            tree = self.parser.parse(content)
            return self.transformer.transform(tree)
        except VisitError as e:
            raise ExpressionSyntaxError(content, str(e.orig_exc)) from e
        except LarkError as e:
            raise ExpressionSyntaxError(content, type(e).__name__) from e

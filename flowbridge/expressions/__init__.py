"""Expression package for workflow parameter values.

This package parses the expression mini-language embedded in parameter
strings and rewrites it between the n8n dialect (``={{ ... }}``) and the
Make dialect (``{{ ... }}``).

Classes:
    ExpressionParser: Parse expression content into an AST
    ExpressionTranspiler: Rewrite expressions between dialects
    Dialect: The two expression dialects
    ReferenceContext: Entity ids and names an expression may refer to
    RewriteOutcome: Result of rewriting bare expression content
    TranspileResult: Result of transpiling a whole string value

Functions:
    is_expression: Check whether a string is one delimited expression
    detect_dialect: Dialect of a whole-string expression
    extract_content: Strip delimiters from a whole-string expression
    find_embedded: Locate expression segments inside a larger string
"""

from .parser import ExpressionParser
from .transpiler import (
    AMBIGUOUS_UPSTREAM,
    Dialect,
    ExpressionTranspiler,
    ReferenceContext,
    RewriteOutcome,
    Segment,
    TranspileResult,
    detect_dialect,
    extract_content,
    find_embedded,
    is_expression,
)

__all__ = [
    "ExpressionParser",
    "ExpressionTranspiler",
    "Dialect",
    "ReferenceContext",
    "RewriteOutcome",
    "Segment",
    "TranspileResult",
    "AMBIGUOUS_UPSTREAM",
    "detect_dialect",
    "extract_content",
    "find_embedded",
    "is_expression",
]

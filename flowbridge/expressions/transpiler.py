"""Rewrite expressions between the n8n and Make dialects.

n8n wraps expressions as ``={{ ... }}`` and Make as ``{{ ... }}``. The
content is parsed into an AST, rewritten node by node against closed
tables of variable roots and library functions, and printed back. Any
construct outside those tables makes the whole expression untranslated so
the caller can keep the original text and flag it for review.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

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
from .functions import (
    CURRENT_ITEM_ROOT,
    NAMED_NODE_ROOT,
    REVERSE_VARIABLE_ROOTS,
    RULES_BY_MODULE_FLOW_NAME,
    RULES_BY_NODE_GRAPH_NAME,
    VARIABLE_ROOTS,
)
from .parser import ExpressionParser

logger = logging.getLogger(__name__)

# Note attached when $json had to be resolved against one of several upstream entities
AMBIGUOUS_UPSTREAM = "ambiguous_upstream"


class Dialect(str, Enum):
    """Expression dialects."""

    NODE_GRAPH = "n8n"
    MODULE_FLOW = "make"


_WHOLE = {
    Dialect.NODE_GRAPH: re.compile(r"^=\{\{(.*)\}\}$", re.DOTALL),
    Dialect.MODULE_FLOW: re.compile(r"^\{\{(.*)\}\}$", re.DOTALL),
}
_SEGMENT = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_LEGACY_SEGMENT = re.compile(r"=\{\{(.*?)\}\}", re.DOTALL)
# Module ids usable as a bare reference root; matches the grammar's NAME
_REFERENCE_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_KEYWORDS = frozenset({"true", "false", "null"})


@dataclass(frozen=True)
class Segment:
    """Delimited expression inside a string. ``start``/``end`` cover the delimiters."""

    start: int
    end: int
    content: str


@dataclass
class ReferenceContext:
    """What an expression of one entity may refer to.

    All keys are source-side entity ids. ``upstream`` lists the immediate
    predecessors of the entity in edge order.
    """

    upstream: list[str] = field(default_factory=list)
    output_ids: dict[str, str] = field(default_factory=dict)
    output_names: dict[str, str] = field(default_factory=dict)
    ids_by_name: dict[str, str] = field(default_factory=dict)


@dataclass
class RewriteOutcome:
    """Result of rewriting bare expression content."""

    content: str
    translated: bool
    notes: list[str] = field(default_factory=list)
    reason: str = ""


@dataclass
class TranspileResult:
    """Result of transpiling one string value."""

    value: str
    found: bool = False
    translated: bool = True
    notes: list[str] = field(default_factory=list)


def _whole_content(value: str, dialect: Dialect) -> str | None:
    match = _WHOLE[dialect].match(value)
    if not match:
        return None
    content = match.group(1)
    if "{{" in content or "}}" in content:
        return None
    return content


def is_expression(value: object, dialect: Dialect | None = None) -> bool:
    """True iff the whole string is one delimited expression."""
    if not isinstance(value, str):
        return False
    dialects = [Dialect(dialect)] if dialect else list(Dialect)
    return any(_whole_content(value, d) is not None for d in dialects)


def detect_dialect(value: object) -> Dialect | None:
    """Dialect of a whole-string expression, or None."""
    if not isinstance(value, str):
        return None
    for dialect in Dialect:
        if _whole_content(value, dialect) is not None:
            return dialect
    return None


def extract_content(value: str) -> str:
    """Content of a whole-string expression without delimiters, stripped."""
    for dialect in Dialect:
        content = _whole_content(value, dialect)
        if content is not None:
            return content.strip()
    return value


def find_embedded(value: str, dialect: Dialect) -> list[Segment]:
    """Locate expression segments inside a string.

    n8n strings starting with ``=`` are in expression mode and every
    ``{{ ... }}`` in them is an expression. Other n8n strings may carry
    legacy ``={{ ... }}`` segments. Make strings carry ``{{ ... }}``.
    """
    if not isinstance(value, str) or "{{" not in value:
        return []
    if Dialect(dialect) is Dialect.NODE_GRAPH:
        if value.startswith("="):
            matches = _SEGMENT.finditer(value, 1)
        else:
            matches = _LEGACY_SEGMENT.finditer(value)
    else:
        matches = _SEGMENT.finditer(value)
    return [Segment(m.start(), m.end(), m.group(1)) for m in matches]


class _Untranslatable(Exception):
    pass


class _Rewriter:
    """Rewrite one AST from a source dialect to the other."""

    def __init__(self, source: Dialect, context: ReferenceContext):
        self.source = source
        self.context = context
        self.recognized = False
        self.notes: list[str] = []

    def rewrite(self, node: Expr) -> Expr:
        if self.source is Dialect.NODE_GRAPH:
            return self._to_module_flow(node)
        return self._to_node_graph(node)

    def _note(self, note: str) -> None:
        if note not in self.notes:
            self.notes.append(note)

    # n8n -> Make

    def _to_module_flow(self, node: Expr) -> Expr:
        if isinstance(node, Literal):
            return node
        if isinstance(node, Group):
            return Group(expr=self._to_module_flow(node.expr))
        if isinstance(node, Unary):
            return Unary(op=node.op, operand=self._to_module_flow(node.operand))
        if isinstance(node, Binary):
            return Binary(
                op=node.op,
                left=self._to_module_flow(node.left),
                right=self._to_module_flow(node.right),
            )
        if isinstance(node, Conditional):
            self.recognized = True
            return Call(
                callee=Identifier(name="ifThenElse"),
                args=[
                    self._to_module_flow(node.test),
                    self._to_module_flow(node.then),
                    self._to_module_flow(node.otherwise),
                ],
            )
        if isinstance(node, Call):
            return self._call_to_module_flow(node)
        if isinstance(node, Member):
            if self._is_variable(node.obj, CURRENT_ITEM_ROOT):
                return Member(obj=self._current_item_ref(), name=node.name)
            if node.name == "json" and self._named_node(node.obj) is not None:
                return self._named_node_ref(self._named_node(node.obj))
            return Member(obj=self._to_module_flow(node.obj), name=node.name)
        if isinstance(node, Index):
            if self._is_variable(node.obj, CURRENT_ITEM_ROOT):
                obj = self._current_item_ref()
            else:
                obj = self._to_module_flow(node.obj)
            return Index(obj=obj, index=self._to_module_flow(node.index))
        if isinstance(node, Variable):
            if node.name in VARIABLE_ROOTS:
                self.recognized = True
                return Identifier(name=VARIABLE_ROOTS[node.name])
            raise _Untranslatable(f"unknown variable {node.name}")
        raise _Untranslatable(f"unsupported construct {node}")

    def _call_to_module_flow(self, node: Call) -> Expr:
        name = None
        if isinstance(node.callee, Variable):
            name = node.callee.name
        elif isinstance(node.callee, Member) and isinstance(node.callee.obj, Variable):
            name = f"{node.callee.obj.name}.{node.callee.name}"

        rule = RULES_BY_NODE_GRAPH_NAME.get(name)
        if rule is None:
            raise _Untranslatable(f"unknown function {node.callee}")
        if not rule.accepts(len(node.args)):
            raise _Untranslatable(f"{name} called with {len(node.args)} arguments")

        self.recognized = True
        return Call(
            callee=Identifier(name=rule.module_flow_name),
            args=[self._to_module_flow(arg) for arg in node.args],
        )

    @staticmethod
    def _is_variable(node: Expr, name: str) -> bool:
        return isinstance(node, Variable) and node.name == name

    def _named_node(self, node: Expr) -> str | None:
        """Name X of a ``$node["X"]`` expression."""
        if (
            isinstance(node, Index)
            and self._is_variable(node.obj, NAMED_NODE_ROOT)
            and isinstance(node.index, Literal)
            and isinstance(node.index.value, str)
        ):
            return node.index.value
        return None

    @staticmethod
    def _module_ref(output_id: str) -> Expr:
        if output_id.isascii() and output_id.isdigit():
            return Literal(value=int(output_id), raw=output_id)
        if (
            not _REFERENCE_NAME.fullmatch(output_id)
            or output_id in _KEYWORDS
            or output_id in REVERSE_VARIABLE_ROOTS
        ):
            raise _Untranslatable(f"module id {output_id!r} cannot be written as a reference")
        return Identifier(name=output_id)

    def _current_item_ref(self) -> Expr:
        upstream = self.context.upstream
        if not upstream:
            raise _Untranslatable("$json has no upstream entity")
        output_id = self.context.output_ids.get(upstream[0])
        if output_id is None:
            raise _Untranslatable(f"upstream entity {upstream[0]} has no output id")
        if len(upstream) > 1:
            self._note(AMBIGUOUS_UPSTREAM)
        self.recognized = True
        return self._module_ref(output_id)

    def _named_node_ref(self, name: str) -> Expr:
        source_id = self.context.ids_by_name.get(name)
        output_id = self.context.output_ids.get(source_id) if source_id is not None else None
        if output_id is None:
            raise _Untranslatable(f"unknown node {name!r}")
        self.recognized = True
        return self._module_ref(output_id)

    # Make -> n8n

    def _to_node_graph(self, node: Expr) -> Expr:
        if isinstance(node, Literal):
            return node
        if isinstance(node, Group):
            return Group(expr=self._to_node_graph(node.expr))
        if isinstance(node, Unary):
            return Unary(op=node.op, operand=self._to_node_graph(node.operand))
        if isinstance(node, Binary):
            return Binary(
                op=node.op,
                left=self._to_node_graph(node.left),
                right=self._to_node_graph(node.right),
            )
        if isinstance(node, Call):
            return self._call_to_node_graph(node)
        if isinstance(node, Member):
            module_id = self._module_id(node.obj)
            if module_id is not None:
                return Member(obj=self._item_ref(module_id), name=node.name)
            return Member(obj=self._to_node_graph(node.obj), name=node.name)
        if isinstance(node, Index):
            module_id = self._module_id(node.obj)
            if module_id is not None:
                obj = self._item_ref(module_id)
            else:
                obj = self._to_node_graph(node.obj)
            return Index(obj=obj, index=self._to_node_graph(node.index))
        if isinstance(node, Identifier):
            if node.name in REVERSE_VARIABLE_ROOTS:
                self.recognized = True
                return Variable(name=REVERSE_VARIABLE_ROOTS[node.name])
            raise _Untranslatable(f"unknown identifier {node.name}")
        raise _Untranslatable(f"unsupported construct {node}")

    def _call_to_node_graph(self, node: Call) -> Expr:
        name = node.callee.name if isinstance(node.callee, Identifier) else None
        rule = RULES_BY_MODULE_FLOW_NAME.get(name)
        if rule is None:
            raise _Untranslatable(f"unknown function {node.callee}")
        if not rule.accepts(len(node.args)):
            raise _Untranslatable(f"{name} called with {len(node.args)} arguments")

        self.recognized = True
        root, _, member = rule.node_graph_name.partition(".")
        callee: Expr = Variable(name=root)
        if member:
            callee = Member(obj=callee, name=member)
        return Call(callee=callee, args=[self._to_node_graph(arg) for arg in node.args])

    def _module_id(self, node: Expr) -> str | None:
        """Source module id when ``node`` is a module reference root."""
        if isinstance(node, Literal) and isinstance(node.value, int) and not isinstance(node.value, bool):
            return node.raw
        if (
            isinstance(node, Identifier)
            and node.name not in REVERSE_VARIABLE_ROOTS
            and node.name in self.context.output_names
        ):
            return node.name
        return None

    def _item_ref(self, module_id: str) -> Expr:
        upstream = self.context.upstream
        if upstream and upstream[0] == module_id:
            if len(upstream) > 1:
                self._note(AMBIGUOUS_UPSTREAM)
            self.recognized = True
            return Variable(name=CURRENT_ITEM_ROOT)

        name = self.context.output_names.get(module_id)
        if name is None:
            raise _Untranslatable(f"unknown module {module_id}")
        self.recognized = True
        return Member(
            obj=Index(obj=Variable(name=NAMED_NODE_ROOT), index=Literal.string(name)),
            name="json",
        )


class ExpressionTranspiler:
    """Translate expressions between dialects."""

    def __init__(self, parser: ExpressionParser | None = None):
        self.parser = parser or ExpressionParser()

    def rewrite(
        self,
        content: str,
        source: Dialect,
        target: Dialect,
        context: ReferenceContext | None = None,
    ) -> RewriteOutcome:
        """Rewrite bare expression content (no delimiters).

        Returns ``translated=False`` with the content unchanged when it does
        not parse, uses anything outside the known roots and functions, or
        uses no known root or function at all.
        """
        source, target = Dialect(source), Dialect(target)
        if source is target:
            raise ValueError("Source and target dialect must differ")

        try:
            tree = self.parser.parse(content)
        except ExpressionSyntaxError as e:
            logger.debug("Expression did not parse: %s", e)
            return RewriteOutcome(content=content, translated=False, reason=str(e))

        rewriter = _Rewriter(source, context or ReferenceContext())
        try:
            rewritten = rewriter.rewrite(tree)
        except _Untranslatable as e:
            return RewriteOutcome(content=content, translated=False, reason=str(e))

        if not rewriter.recognized:
            return RewriteOutcome(
                content=content,
                translated=False,
                reason="no variable root or library function",
            )
        return RewriteOutcome(content=str(rewritten), translated=True, notes=rewriter.notes)

    def transpile_value(
        self,
        value: str,
        source: Dialect,
        target: Dialect,
        context: ReferenceContext | None = None,
    ) -> TranspileResult:
        """Transpile every expression segment of a string value.

        Literal text around segments is kept. If any segment cannot be
        translated the original string is returned untouched.
        """
        source, target = Dialect(source), Dialect(target)
        segments = find_embedded(value, source)
        if not segments:
            return TranspileResult(value=value)

        pieces = []
        notes: list[str] = []
        cursor = 0
        for segment in segments:
            outcome = self.rewrite(segment.content.strip(), source, target, context)
            if not outcome.translated:
                return TranspileResult(value=value, found=True, translated=False)
            pieces.append(value[cursor:segment.start])
            pieces.append(f"{{{{ {outcome.content} }}}}")
            notes.extend(n for n in outcome.notes if n not in notes)
            cursor = segment.end
        pieces.append(value[cursor:])
        result = "".join(pieces)

        if source is Dialect.NODE_GRAPH:
            if value.startswith("="):
                result = result[1:]
        else:
            result = "=" + result

        return TranspileResult(value=result, found=True, translated=True, notes=notes)

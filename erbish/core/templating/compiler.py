# erbish/core/templating/compiler.py
"""
Compiles ERB-style template source into a TemplateUnit.

Scanning splits the source into literal, output (<%= %>) and control (<% %>)
segments. Each tag body is then parsed with the expression language, and
block statements are matched into a tree so unbalanced if/loop/end markers
are reported at compile time rather than during a render.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import structlog

from erbish.exceptions import ParseError
from erbish.util import line_number_at

from .expressions import parse_expression, parse_statement
from .segments import (
    Branch, ControlSegment, IfNode, LiteralSegment, LoopNode, Node,
    OutputNode, OutputSegment, Segment, StatementNode, TemplateUnit, TextNode,
)

log = structlog.get_logger(__name__)

OPEN_TAG = "<%"
CLOSE_TAG = "%>"
OUTPUT_MARKER = "="
ESCAPED_OPEN_TAG = "<%%"


def scan_segments(source: str, name: str = "<string>") -> List[Segment]:
    """Splits source text into segments in source order. Literal whitespace is kept as-is."""
    segments: List[Segment] = []
    literal_parts: List[str] = []
    literal_start = 0
    cursor = 0

    def flush_literal():
        text = "".join(literal_parts)
        if text:
            segments.append(LiteralSegment(text, line_number_at(source, literal_start)))
        literal_parts.clear()

    while True:
        opener = source.find(OPEN_TAG, cursor)
        if opener == -1:
            if cursor < len(source):
                if not literal_parts:
                    literal_start = cursor
                literal_parts.append(source[cursor:])
            flush_literal()
            return segments

        if not literal_parts:
            literal_start = cursor
        literal_parts.append(source[cursor:opener])

        if source.startswith(ESCAPED_OPEN_TAG, opener):
            literal_parts.append(OPEN_TAG)
            cursor = opener + len(ESCAPED_OPEN_TAG)
            continue

        is_output = source.startswith(OUTPUT_MARKER, opener + len(OPEN_TAG))
        body_start = opener + len(OPEN_TAG) + (1 if is_output else 0)
        closer = source.find(CLOSE_TAG, body_start)
        if closer == -1:
            kind = "<%=" if is_output else "<%"
            raise ParseError(
                f"Tag '{kind}' is never closed with '{CLOSE_TAG}'",
                name, line_number_at(source, opener),
            )

        flush_literal()
        code = source[body_start:closer]
        line = line_number_at(source, opener)
        segments.append(OutputSegment(code, line) if is_output else ControlSegment(code, line))
        cursor = closer + len(CLOSE_TAG)


@dataclass
class _OpenBlock:
    # a block statement waiting for its 'end'
    kind: str  # if, unless or loop
    code: str
    line: int
    loop: Optional[tuple] = None
    branches: List[Branch] = field(default_factory=list)
    branch_condition: Optional[object] = None
    branch_negate: bool = False
    branch_code: str = ""
    branch_line: int = 0
    body: List[Node] = field(default_factory=list)
    has_else: bool = False

    def close_branch(self):
        self.branches.append(Branch(
            self.branch_condition, self.branch_negate, tuple(self.body),
            self.branch_code, self.branch_line,
        ))
        self.body = []


def _build_tree(segments: List[Segment], name: str) -> Tuple[Node, ...]:
    root: List[Node] = []
    stack: List[_OpenBlock] = []

    def current_body() -> List[Node]:
        return stack[-1].body if stack else root

    for seg in segments:
        if isinstance(seg, LiteralSegment):
            current_body().append(TextNode(seg.text))
            continue

        if isinstance(seg, OutputSegment):
            try:
                expr = parse_expression(seg.expression)
            except ParseError as e:
                raise ParseError(str(e), name, seg.line) from e
            current_body().append(OutputNode(expr, seg.expression.strip(), seg.line))
            continue

        try:
            statement = parse_statement(seg.code)
        except ParseError as e:
            raise ParseError(str(e), name, seg.line) from e
        code = seg.code.strip()
        kind = statement.kind

        if kind in ("comment", "noop"):
            continue
        if kind in ("if", "unless"):
            block = _OpenBlock(kind, code, seg.line)
            block.branch_condition = statement.expr
            block.branch_negate = kind == "unless"
            block.branch_code, block.branch_line = code, seg.line
            stack.append(block)
        elif kind == "loop":
            block = _OpenBlock("loop", code, seg.line,
                               loop=(statement.expr, statement.names, statement.loop_kind))
            stack.append(block)
        elif kind == "elsif":
            if not stack or stack[-1].kind != "if":
                raise ParseError("'elsif' without a matching 'if'", name, seg.line)
            block = stack[-1]
            if block.has_else:
                raise ParseError("'elsif' after 'else'", name, seg.line)
            block.close_branch()
            block.branch_condition, block.branch_negate = statement.expr, False
            block.branch_code, block.branch_line = code, seg.line
        elif kind == "else":
            if not stack or stack[-1].kind not in ("if", "unless"):
                raise ParseError("'else' without a matching 'if'", name, seg.line)
            block = stack[-1]
            if block.has_else:
                raise ParseError("Duplicate 'else'", name, seg.line)
            block.close_branch()
            block.has_else = True
            block.branch_condition, block.branch_negate = None, False
            block.branch_code, block.branch_line = code, seg.line
        elif kind == "end":
            if not stack:
                raise ParseError("'end' without an open block", name, seg.line)
            block = stack.pop()
            if block.kind == "loop":
                iterable, names, loop_kind = block.loop
                node: Node = LoopNode(iterable, names, loop_kind, tuple(block.body), block.code, block.line)
            else:
                block.close_branch()
                node = IfNode(tuple(block.branches), block.line)
            current_body().append(node)
        else:
            current_body().append(StatementNode(statement, code, seg.line))

    if stack:
        block = stack[-1]
        raise ParseError(f"Block '{block.code}' is never closed with 'end'", name, block.line)
    return tuple(root)


def compile_template(source: str, name: str = "<string>") -> TemplateUnit:
    """Compiles template source into an immutable TemplateUnit. Raises ParseError on malformed input."""
    segments = scan_segments(source, name)
    nodes = _build_tree(segments, name)
    log.debug("template_compiled", template=name, segments=len(segments))
    return TemplateUnit(name=name, source=source, segments=tuple(segments), nodes=nodes)

# erbish/core/templating/segments.py
"""
Data model for compiled templates.

A template compiles to an ordered tuple of segments (literal text, output
tags, control tags) in source order, plus a tree of nodes built from those
segments in which block statements (if/unless/loops) own their bodies.
Everything here is immutable once compiled, so a TemplateUnit can be shared
between concurrent renders.
"""
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .expressions import Expr, Statement, contains_yield


@dataclass(frozen=True)
class LiteralSegment:
    text: str
    line: int = 1


@dataclass(frozen=True)
class OutputSegment:
    expression: str
    line: int = 1


@dataclass(frozen=True)
class ControlSegment:
    code: str
    line: int = 1


Segment = Union[LiteralSegment, OutputSegment, ControlSegment]


@dataclass(frozen=True)
class TextNode:
    text: str


@dataclass(frozen=True)
class OutputNode:
    expr: Expr
    code: str
    line: int


@dataclass(frozen=True)
class StatementNode:
    # assignments and bare expressions evaluated for effect
    statement: Statement
    code: str
    line: int


@dataclass(frozen=True)
class Branch:
    # condition is None for the trailing else branch
    condition: Optional[Expr]
    negate: bool
    body: Tuple["Node", ...]
    code: str
    line: int


@dataclass(frozen=True)
class IfNode:
    branches: Tuple[Branch, ...]
    line: int


@dataclass(frozen=True)
class LoopNode:
    iterable: Expr
    names: Tuple[str, ...]
    loop_kind: str  # each, each_with_index or times
    body: Tuple["Node", ...]
    code: str
    line: int


Node = Union[TextNode, OutputNode, StatementNode, IfNode, LoopNode]


@dataclass(frozen=True)
class TemplateUnit:
    """A compiled template: its source, flat segments and executable node tree."""
    name: str
    source: str
    segments: Tuple[Segment, ...]
    nodes: Tuple[Node, ...]

    def references_yield(self) -> bool:
        # true if any output or control tag reads the reserved yield binding
        return _nodes_reference_yield(self.nodes)


def _nodes_reference_yield(nodes: Tuple[Node, ...]) -> bool:
    for node in nodes:
        if isinstance(node, OutputNode) and contains_yield(node.expr):
            return True
        if isinstance(node, StatementNode) and contains_yield(node.statement.expr):
            return True
        if isinstance(node, IfNode):
            for branch in node.branches:
                if contains_yield(branch.condition) or _nodes_reference_yield(branch.body):
                    return True
        if isinstance(node, LoopNode):
            if contains_yield(node.iterable) or _nodes_reference_yield(node.body):
                return True
    return False

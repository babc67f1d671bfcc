# erbish/core/templating/executor.py
"""
Executes a compiled TemplateUnit against a context, producing text.
"""
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from erbish.exceptions import EvaluationError

from .expressions import Expr, is_truthy
from .helpers import BUILTIN_HELPERS, call_value_method, to_text
from .segments import IfNode, LoopNode, Node, OutputNode, StatementNode, TemplateUnit, TextNode

log = structlog.get_logger(__name__)


class _UndefinedName(Exception):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name


class RenderScope:
    """
    Name resolution for one execution. The caller's context is copied into the
    bottom frame; each loop iteration pushes a frame that is popped on exit, so
    a loop variable shadows an outer name only inside the loop.
    """

    def __init__(
        self,
        context: Optional[Mapping] = None,
        yield_value: Optional[str] = None,
        helpers: Optional[Dict[str, Callable[..., Any]]] = None,
    ):
        self.frames: List[Dict[str, Any]] = [dict(context or {})]
        self._yield_value = yield_value
        self.helpers = BUILTIN_HELPERS if helpers is None else helpers

    def lookup(self, name: str, invoke_helpers: bool = True) -> Any:
        for frame in reversed(self.frames):
            if name in frame:
                return frame[name]
        if name in self.helpers:
            helper = self.helpers[name]
            return helper() if invoke_helpers else helper
        raise _UndefinedName(name)

    def assign(self, name: str, value: Any):
        for frame in reversed(self.frames):
            if name in frame:
                frame[name] = value
                return
        self.frames[-1][name] = value

    def push(self, bindings: Dict[str, Any]):
        self.frames.append(dict(bindings))

    def pop(self):
        self.frames.pop()

    def yield_value(self) -> str:
        if self._yield_value is None:
            raise _UndefinedName("yield")
        return self._yield_value

    def call_method(self, value: Any, name: str, args: list, has_call: bool) -> Any:
        return call_value_method(value, name, args, has_call)


class _Execution:
    def __init__(self, unit: TemplateUnit, scope: RenderScope):
        self.unit = unit
        self.scope = scope
        self.output: List[str] = []

    def evaluate(self, expr: Expr, code: str, line: int) -> Any:
        try:
            return expr.evaluate(self.scope)
        except EvaluationError:
            raise
        except _UndefinedName as e:
            raise EvaluationError(
                f"undefined local variable or method '{e.name}' for template '{self.unit.name}' (line {line})",
                self.unit.name, identifier=e.name,
            ) from None
        except Exception as e:
            raise EvaluationError(
                f"Error evaluating '{code}' in template '{self.unit.name}' (line {line}): {e}",
                self.unit.name,
            ) from e

    def run(self, nodes: Tuple[Node, ...]):
        for node in nodes:
            if isinstance(node, TextNode):
                self.output.append(node.text)
            elif isinstance(node, OutputNode):
                self.output.append(to_text(self.evaluate(node.expr, node.code, node.line)))
            elif isinstance(node, IfNode):
                self.run_if(node)
            elif isinstance(node, LoopNode):
                self.run_loop(node)
            elif isinstance(node, StatementNode):
                self.run_statement(node)

    def run_if(self, node: IfNode):
        for branch in node.branches:
            if branch.condition is None:
                self.run(branch.body)
                return
            matched = is_truthy(self.evaluate(branch.condition, branch.code, branch.line))
            if matched != branch.negate:
                self.run(branch.body)
                return

    def run_loop(self, node: LoopNode):
        for bindings in self.iterate(node):
            self.scope.push(bindings)
            try:
                self.run(node.body)
            finally:
                self.scope.pop()

    def iterate(self, node: LoopNode):
        source = self.evaluate(node.iterable, node.code, node.line)
        try:
            if node.loop_kind == "times":
                if not isinstance(source, int) or isinstance(source, bool):
                    raise TypeError(f"times needs an integer, got {type(source).__name__}")
                items = ((i,) for i in range(source))
            elif node.loop_kind == "each_with_index":
                items = ((item, index) for index, item in enumerate(self.elements(source)))
            else:
                items = ((item,) for item in self.elements(source))
            for values in items:
                yield self.bind(node.names, values)
        except (TypeError, ValueError) as e:
            raise EvaluationError(
                f"Cannot iterate '{node.code}' in template '{self.unit.name}' (line {node.line}): {e}",
                self.unit.name,
            ) from e

    @staticmethod
    def elements(source: Any):
        if source is None:
            raise TypeError("cannot iterate over nil")
        if isinstance(source, (str, bytes)):
            # strings have no each; iterate over .chars instead
            raise TypeError(f"cannot iterate over {type(source).__name__}")
        if isinstance(source, Mapping):
            return list(source.items())
        return iter(source)

    @staticmethod
    def bind(names: Tuple[str, ...], values: tuple) -> Dict[str, Any]:
        if not names:
            return {}
        if len(values) == 1 and len(names) > 1:
            # destructure a single element, e.g. |key, value| over a hash
            element = tuple(values[0])
            if len(element) != len(names):
                raise ValueError(f"expected {len(names)} values to unpack, got {len(element)}")
            return dict(zip(names, element))
        return dict(zip(names, values))

    def run_statement(self, node: StatementNode):
        statement = node.statement
        value = self.evaluate(statement.expr, node.code, node.line)
        if statement.kind != "assign":
            return
        name = statement.names[0]
        if statement.operator != "=":
            current = self.evaluate(_NameRef(name), node.code, node.line)
            try:
                value = current + value if statement.operator == "+=" else current - value
            except TypeError as e:
                raise EvaluationError(
                    f"Error evaluating '{node.code}' in template '{self.unit.name}' (line {node.line}): {e}",
                    self.unit.name,
                ) from e
        self.scope.assign(name, value)


class _NameRef(Expr):
    def __init__(self, name: str):
        self.name = name

    def evaluate(self, scope):
        return scope.lookup(self.name, invoke_helpers=False)


def execute(
    unit: TemplateUnit,
    context: Optional[Mapping] = None,
    yield_value: Optional[str] = None,
    helpers: Optional[Dict[str, Callable[..., Any]]] = None,
) -> str:
    """
    Runs a compiled template against a context and returns the output text.
    yield_value is only given when executing a layout; otherwise `yield` is an
    undefined name. The caller's context mapping is never mutated.
    """
    scope = RenderScope(context, yield_value, helpers)
    execution = _Execution(unit, scope)
    execution.run(unit.nodes)
    log.debug("template_executed", template=unit.name, is_layout=yield_value is not None)
    return "".join(execution.output)

# erbish/core/templating/expressions.py
"""
Tokenizer, parser and AST for the small Ruby-flavoured expression language
used inside template tags.

Tag bodies are never handed to Python's eval(). They are parsed once at
compile time into the node classes below; each node knows how to evaluate
itself against a scope object supplied by the executor. The scope must
provide ``lookup(name, invoke_helpers=True)``, ``assign(name, value)``,
``yield_value()`` and ``call_method(value, name, args, has_call)``.
"""
import re
from dataclasses import dataclass, fields, is_dataclass
from typing import Any, List, Optional, Tuple

from erbish.exceptions import ParseError

from .helpers import to_text

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>\d+\.\d+|\d+)
  | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
  | (?P<ivar>@[A-Za-z_]\w*)
  | (?P<name>[A-Za-z_]\w*(?:[?!](?!=))?)
  | (?P<op>=>|==|!=|<=|>=|&&|\|\||\.\.|\+=|-=|[-+*/%<>!=.,()\[\]{}|?:])
    """,
    re.VERBOSE,
)

KEYWORDS = frozenset({
    "if", "unless", "elsif", "else", "end", "for", "in", "do",
    "true", "false", "nil", "and", "or", "not", "yield",
})

LOOP_METHODS = frozenset({"each", "each_with_index", "times"})

_STRING_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'", "0": "\0"}


@dataclass(frozen=True)
class Token:
    kind: str  # number, string, ivar, name, op, eof
    value: str
    pos: int


def tokenize(code: str) -> List[Token]:
    """Splits tag code into tokens; raises ParseError on characters outside the language."""
    tokens: List[Token] = []
    pos = 0
    while pos < len(code):
        match = _TOKEN_RE.match(code, pos)
        if not match:
            raise ParseError(f"Unexpected character {code[pos]!r} in {code.strip()!r}")
        kind = match.lastgroup
        if kind != "ws":
            tokens.append(Token(kind, match.group(), pos))
        pos = match.end()
    tokens.append(Token("eof", "", pos))
    return tokens


def _unescape_double(body: str) -> str:
    return re.sub(r"\\(.)", lambda m: _STRING_ESCAPES.get(m.group(1), m.group(1)), body)


def _unescape(literal: str) -> str:
    body = literal[1:-1]
    if literal[0] == "'":
        # single quotes only escape the quote and backslash, as in ruby
        return body.replace("\\'", "'").replace("\\\\", "\\")
    return _unescape_double(body)


def _split_interpolation(body: str) -> List[Tuple[str, str]]:
    """
    Splits a double-quoted string body into ("text", raw) and ("code", source)
    parts around #{...}. Text parts are still escaped; \\#{ stays literal.
    """
    parts: List[Tuple[str, str]] = []
    buf: List[str] = []
    i = 0
    while i < len(body):
        if body[i] == "\\" and i + 1 < len(body):
            buf.append(body[i:i + 2])
            i += 2
            continue
        if not body.startswith("#{", i):
            buf.append(body[i])
            i += 1
            continue
        depth, j, quote = 1, i + 2, None
        while j < len(body) and depth:
            ch = body[j]
            if quote:
                if ch == "\\":
                    j += 1
                elif ch == quote:
                    quote = None
            elif ch == "'":
                quote = ch
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
            j += 1
        if depth:
            raise ParseError("Unterminated '#{' in string literal")
        parts.append(("text", "".join(buf)))
        parts.append(("code", body[i + 2:j - 1]))
        buf = []
        i = j
    parts.append(("text", "".join(buf)))
    return parts


def is_truthy(value: Any) -> bool:
    # ruby truthiness: only false and nil are false.
    return value is not None and value is not False


# --- expression nodes -------------------------------------------------------

class Expr:
    def evaluate(self, scope) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class Literal(Expr):
    value: Any

    def evaluate(self, scope):
        return self.value


@dataclass(frozen=True)
class Name(Expr):
    name: str

    def evaluate(self, scope):
        return scope.lookup(self.name)


@dataclass(frozen=True)
class YieldExpr(Expr):
    def evaluate(self, scope):
        return scope.yield_value()


@dataclass(frozen=True)
class ArrayLiteral(Expr):
    items: Tuple[Expr, ...]

    def evaluate(self, scope):
        return [item.evaluate(scope) for item in self.items]


@dataclass(frozen=True)
class HashLiteral(Expr):
    pairs: Tuple[Tuple[Expr, Expr], ...]

    def evaluate(self, scope):
        return {key.evaluate(scope): value.evaluate(scope) for key, value in self.pairs}


@dataclass(frozen=True)
class Attribute(Expr):
    target: Expr
    name: str
    args: Tuple[Expr, ...] = ()
    has_call: bool = False

    def evaluate(self, scope):
        value = self.target.evaluate(scope)
        args = [arg.evaluate(scope) for arg in self.args]
        return scope.call_method(value, self.name, args, self.has_call)


@dataclass(frozen=True)
class Index(Expr):
    target: Expr
    index: Expr

    def evaluate(self, scope):
        value = self.target.evaluate(scope)
        key = self.index.evaluate(scope)
        try:
            return value[key]
        except (IndexError, KeyError):
            return None


@dataclass(frozen=True)
class Call(Expr):
    func: Expr
    args: Tuple[Expr, ...]

    def evaluate(self, scope):
        if isinstance(self.func, Name):
            func = scope.lookup(self.func.name, invoke_helpers=False)
            label = self.func.name
        else:
            func = self.func.evaluate(scope)
            label = type(func).__name__
        if not callable(func):
            raise TypeError(f"'{label}' is not callable")
        return func(*[arg.evaluate(scope) for arg in self.args])


@dataclass(frozen=True)
class Unary(Expr):
    op: str
    operand: Expr

    def evaluate(self, scope):
        value = self.operand.evaluate(scope)
        if self.op == "-":
            return -value
        return not is_truthy(value)


_BINARY_OPS = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": lambda a, b: a / b,
    "%": lambda a, b: a % b,
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
}


@dataclass(frozen=True)
class Binary(Expr):
    op: str
    left: Expr
    right: Expr

    def evaluate(self, scope):
        return _BINARY_OPS[self.op](self.left.evaluate(scope), self.right.evaluate(scope))


@dataclass(frozen=True)
class Logical(Expr):
    op: str  # "and" / "or"
    left: Expr
    right: Expr

    def evaluate(self, scope):
        left = self.left.evaluate(scope)
        if self.op == "and":
            return self.right.evaluate(scope) if is_truthy(left) else left
        return left if is_truthy(left) else self.right.evaluate(scope)


@dataclass(frozen=True)
class Conditional(Expr):
    condition: Expr
    then: Expr
    otherwise: Expr

    def evaluate(self, scope):
        if is_truthy(self.condition.evaluate(scope)):
            return self.then.evaluate(scope)
        return self.otherwise.evaluate(scope)


@dataclass(frozen=True)
class RangeExpr(Expr):
    start: Expr
    stop: Expr

    def evaluate(self, scope):
        start, stop = self.start.evaluate(scope), self.stop.evaluate(scope)
        if not (isinstance(start, int) and isinstance(stop, int)):
            raise TypeError("range bounds must be integers")
        return range(start, stop + 1)


@dataclass(frozen=True)
class Interpolation(Expr):
    # a double-quoted string with #{...} parts; nil parts render as ""
    parts: Tuple[Expr, ...]

    def evaluate(self, scope):
        return "".join(to_text(part.evaluate(scope)) for part in self.parts)


def _child_exprs(value: Any):
    if isinstance(value, Expr):
        yield value
    elif isinstance(value, tuple):
        for item in value:
            yield from _child_exprs(item)


def contains_yield(expr: Optional[Expr]) -> bool:
    """True if expr reads the reserved yield binding anywhere in its tree."""
    if isinstance(expr, YieldExpr):
        return True
    if expr is None or not is_dataclass(expr):
        return False
    return any(
        contains_yield(child)
        for field_ in fields(expr)
        for child in _child_exprs(getattr(expr, field_.name))
    )


# --- statements -------------------------------------------------------------

@dataclass(frozen=True)
class Statement:
    # kind is one of: comment, noop, if, unless, elsif, else, end, loop, assign, expr
    kind: str
    expr: Optional[Expr] = None
    names: Tuple[str, ...] = ()
    loop_kind: Optional[str] = None
    operator: str = "="


class _Parser:
    def __init__(self, code: str):
        self.code = code
        self.tokens = tokenize(code)
        self.pos = 0

    # token helpers

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int = 1) -> Token:
        return self.tokens[min(self.pos + offset, len(self.tokens) - 1)]

    def advance(self) -> Token:
        token = self.current
        self.pos += 1
        return token

    def at(self, kind: str, value: Optional[str] = None) -> bool:
        token = self.current
        return token.kind == kind and (value is None or token.value == value)

    def at_keyword(self, *words: str) -> bool:
        return self.current.kind == "name" and self.current.value in words

    def expect(self, kind: str, value: Optional[str] = None) -> Token:
        if not self.at(kind, value):
            wanted = value or kind
            found = self.current.value or "end of tag"
            self.error(f"Expected {wanted!r} but found {found!r}")
        return self.advance()

    def error(self, message: str):
        raise ParseError(f"{message} in tag {self.code.strip()!r}")

    def expect_end(self):
        if not self.at("eof"):
            self.error(f"Unexpected {self.current.value!r}")

    # grammar

    def parse_expression(self) -> Expr:
        condition = self.parse_or()
        if self.at("op", "?"):
            self.advance()
            then = self.parse_expression()
            self.expect("op", ":")
            otherwise = self.parse_expression()
            return Conditional(condition, then, otherwise)
        return condition

    def parse_or(self) -> Expr:
        left = self.parse_and()
        while self.at("op", "||") or self.at_keyword("or"):
            self.advance()
            left = Logical("or", left, self.parse_and())
        return left

    def parse_and(self) -> Expr:
        left = self.parse_not()
        while self.at("op", "&&") or self.at_keyword("and"):
            self.advance()
            left = Logical("and", left, self.parse_not())
        return left

    def parse_not(self) -> Expr:
        if self.at_keyword("not"):
            self.advance()
            return Unary("!", self.parse_not())
        return self.parse_comparison()

    def parse_comparison(self) -> Expr:
        left = self.parse_range()
        if self.current.kind == "op" and self.current.value in ("==", "!=", "<", "<=", ">", ">="):
            op = self.advance().value
            left = Binary(op, left, self.parse_range())
        return left

    def parse_range(self) -> Expr:
        left = self.parse_additive()
        if self.at("op", ".."):
            self.advance()
            return RangeExpr(left, self.parse_additive())
        return left

    def parse_additive(self) -> Expr:
        left = self.parse_multiplicative()
        while self.current.kind == "op" and self.current.value in ("+", "-"):
            op = self.advance().value
            left = Binary(op, left, self.parse_multiplicative())
        return left

    def parse_multiplicative(self) -> Expr:
        left = self.parse_unary()
        while self.current.kind == "op" and self.current.value in ("*", "/", "%"):
            op = self.advance().value
            left = Binary(op, left, self.parse_unary())
        return left

    def parse_unary(self) -> Expr:
        if self.current.kind == "op" and self.current.value in ("-", "!"):
            op = self.advance().value
            return Unary(op, self.parse_unary())
        return self.parse_postfix()

    def parse_postfix(self) -> Expr:
        expr = self.parse_primary()
        while True:
            if self.at("op", "."):
                self.advance()
                name_token = self.expect("name")
                args: Tuple[Expr, ...] = ()
                has_call = False
                if self.at("op", "("):
                    args = self.parse_arguments()
                    has_call = True
                expr = Attribute(expr, name_token.value, args, has_call)
            elif self.at("op", "["):
                self.advance()
                index = self.parse_expression()
                self.expect("op", "]")
                expr = Index(expr, index)
            elif self.at("op", "(") and isinstance(expr, Name):
                expr = Call(expr, self.parse_arguments())
            else:
                return expr

    def parse_arguments(self) -> Tuple[Expr, ...]:
        self.expect("op", "(")
        args: List[Expr] = []
        while not self.at("op", ")"):
            args.append(self.parse_expression())
            if not self.at("op", ")"):
                self.expect("op", ",")
        self.advance()
        return tuple(args)

    def parse_primary(self) -> Expr:
        token = self.current
        if token.kind == "number":
            self.advance()
            return Literal(float(token.value) if "." in token.value else int(token.value))
        if token.kind == "string":
            self.advance()
            return self.parse_string(token.value)
        if token.kind == "ivar":
            self.advance()
            return Name(token.value[1:])
        if token.kind == "name":
            word = token.value
            if word == "true":
                self.advance()
                return Literal(True)
            if word == "false":
                self.advance()
                return Literal(False)
            if word == "nil":
                self.advance()
                return Literal(None)
            if word == "yield":
                self.advance()
                return YieldExpr()
            if word in KEYWORDS:
                self.error(f"Unexpected keyword {word!r}")
            self.advance()
            return Name(word)
        if self.at("op", "("):
            self.advance()
            expr = self.parse_expression()
            self.expect("op", ")")
            return expr
        if self.at("op", "["):
            self.advance()
            items: List[Expr] = []
            while not self.at("op", "]"):
                items.append(self.parse_expression())
                if not self.at("op", "]"):
                    self.expect("op", ",")
            self.advance()
            return ArrayLiteral(tuple(items))
        if self.at("op", "{"):
            return self.parse_hash()
        found = token.value or "end of tag"
        self.error(f"Unexpected {found!r}")

    def parse_string(self, literal: str) -> Expr:
        if literal[0] == "'" or "#{" not in literal:
            return Literal(_unescape(literal))
        parts: List[Expr] = []
        for kind, text in _split_interpolation(literal[1:-1]):
            if kind == "text":
                if text:
                    parts.append(Literal(_unescape_double(text)))
            elif text.strip():
                parts.append(parse_expression(text))
        return Interpolation(tuple(parts))

    def parse_hash(self) -> Expr:
        self.expect("op", "{")
        pairs: List[Tuple[Expr, Expr]] = []
        while not self.at("op", "}"):
            if self.current.kind == "name" and self.peek().kind == "op" and self.peek().value == ":":
                key: Expr = Literal(self.advance().value)
                self.advance()
            else:
                key = self.parse_expression()
                self.expect("op", "=>")
            pairs.append((key, self.parse_expression()))
            if not self.at("op", "}"):
                self.expect("op", ",")
        self.advance()
        return HashLiteral(tuple(pairs))

    # statements

    def parse_statement(self) -> Statement:
        if self.at("eof"):
            return Statement("noop")
        if self.at_keyword("if", "unless", "elsif"):
            kind = self.advance().value
            expr = self.parse_expression()
            self.expect_end()
            return Statement(kind, expr)
        if self.at_keyword("else", "end"):
            kind = self.advance().value
            self.expect_end()
            return Statement(kind)
        if self.at_keyword("for"):
            self.advance()
            names = [self.expect("name").value]
            while self.at("op", ","):
                self.advance()
                names.append(self.expect("name").value)
            self.check_binding_names(names)
            if not self.at_keyword("in"):
                self.error("Expected 'in' after loop variable")
            self.advance()
            iterable = self.parse_expression()
            if self.at_keyword("do"):
                self.advance()
            self.expect_end()
            return Statement("loop", iterable, tuple(names), "each")
        if self.current.kind in ("name", "ivar") and self.peek().kind == "op" and self.peek().value in ("=", "+=", "-="):
            target = self.advance()
            name = target.value.lstrip("@")
            self.check_binding_names([name])
            operator = self.advance().value
            expr = self.parse_expression()
            self.expect_end()
            return Statement("assign", expr, (name,), operator=operator)

        expr = self.parse_expression()
        if self.at_keyword("do"):
            return self.parse_loop_block(expr)
        self.expect_end()
        return Statement("expr", expr)

    def parse_loop_block(self, expr: Expr) -> Statement:
        if not (isinstance(expr, Attribute) and expr.name in LOOP_METHODS and not expr.args):
            self.error("Only each, each_with_index and times accept a do block")
        self.advance()  # do
        names: List[str] = []
        if self.at("op", "|"):
            self.advance()
            names.append(self.expect("name").value)
            while self.at("op", ","):
                self.advance()
                names.append(self.expect("name").value)
            self.expect("op", "|")
        self.expect_end()
        self.check_binding_names(names)
        if expr.name == "each_with_index" and len(names) > 2:
            self.error("each_with_index binds at most two variables")
        if expr.name == "times" and len(names) > 1:
            self.error("times binds at most one variable")
        return Statement("loop", expr.target, tuple(names), expr.name)

    def check_binding_names(self, names: List[str]):
        for name in names:
            if name in KEYWORDS:
                self.error(f"Cannot bind to reserved word {name!r}")


def parse_expression(code: str) -> Expr:
    """Parses the body of an output tag."""
    parser = _Parser(code)
    if parser.at("eof"):
        raise ParseError("Empty output tag")
    try:
        expr = parser.parse_expression()
    except RecursionError:
        raise ParseError("Expression nested too deeply") from None
    parser.expect_end()
    return expr


def parse_statement(code: str) -> Statement:
    """Parses the body of a control tag into a Statement."""
    if code.lstrip().startswith("#"):
        return Statement("comment")
    try:
        return _Parser(code).parse_statement()
    except RecursionError:
        raise ParseError("Expression nested too deeply") from None

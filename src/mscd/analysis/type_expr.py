"""Rust type expressions: parsing raw type text and peeling wrapper layers.

Field and alias types are kept as raw text by the extractor. This module
turns that text into a small expression tree and flattens it into
``TypeReference`` values: the innermost named path of each branch together
with the chain of wrapper kinds that were peeled to reach it.

Wrapper vocabulary:
    The set of wrappers is fixed by the language and its standard library,
    so it is a closed table (``WRAPPERS``) rather than a plugin point. Each
    entry names the wrapper kind and which type arguments are followed, e.g.
    ``HashMap<K, V>`` follows ``V`` only, ``Result<T, E>`` follows both.

Example:
    >>> expr = parse_type_text("Option<Box<Node>>")
    >>> [str(ref) for ref in flatten(expr)]
    ['Option -> Box -> Node']
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, replace
from enum import StrEnum

from ..config.defaults import WRAPPER_CRATES


class TypeSyntaxError(ValueError):
    """Raw type text could not be parsed."""


@dataclass(frozen=True)
class Scope:
    """Where a type expression was written.

    Attributes:
        module: Module path used for scope lookups
        generics: Generic parameter names visible at that point
        self_identity: Record that ``Self`` refers to, if any
    """

    module: tuple[str, ...]
    generics: frozenset[str] = frozenset()
    self_identity: str | None = None


# ---------------------------------------------------------------------------
# Expression tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PathType:
    """A named type such as ``a::b::Inner<T>``.

    ``args`` are the type arguments of the last segment; lifetimes, const
    arguments and associated-type bindings are not part of it. ``origin`` is
    set on arguments substituted into an alias so they keep resolving in the
    scope they were written in.
    """

    segments: tuple[str, ...]
    args: tuple[TypeExpr, ...] = ()
    origin: Scope | None = None

    def __str__(self) -> str:
        text = "::".join(self.segments)
        if self.args:
            text += "<" + ", ".join(str(arg) for arg in self.args) + ">"
        return text


@dataclass(frozen=True)
class RefType:
    """``&T``, ``&mut T``, ``*const T`` or ``*mut T``."""

    inner: TypeExpr

    def __str__(self) -> str:
        return f"&{self.inner}"


@dataclass(frozen=True)
class SliceType:
    """``[T]`` or ``[T; N]``."""

    inner: TypeExpr

    def __str__(self) -> str:
        return f"[{self.inner}]"


@dataclass(frozen=True)
class TupleType:
    elems: tuple[TypeExpr, ...]

    def __str__(self) -> str:
        return "(" + ", ".join(str(e) for e in self.elems) + ")"


@dataclass(frozen=True)
class OpaqueType:
    """A type that never names a record: trait objects, fn pointers, ``!``, ``()``."""

    text: str

    def __str__(self) -> str:
        return self.text


TypeExpr = PathType | RefType | SliceType | TupleType | OpaqueType


# ---------------------------------------------------------------------------
# Wrapper vocabulary
# ---------------------------------------------------------------------------


class WrapperKind(StrEnum):
    COLLECTION = "collection"
    OPTIONAL = "optional"
    FALLIBLE = "fallible"
    OWNING_POINTER = "owning_pointer"
    SHARED_POINTER = "shared_pointer"
    REFERENCE = "reference"
    ARRAY = "array"
    CELL = "cell"


@dataclass(frozen=True)
class Wrapper:
    kind: WrapperKind
    follow: tuple[int, ...] = (0,)


WRAPPERS: dict[str, Wrapper] = {
    # Collections follow the element, maps follow the value (not the key)
    "Vec": Wrapper(WrapperKind.COLLECTION),
    "VecDeque": Wrapper(WrapperKind.COLLECTION),
    "LinkedList": Wrapper(WrapperKind.COLLECTION),
    "HashSet": Wrapper(WrapperKind.COLLECTION),
    "BTreeSet": Wrapper(WrapperKind.COLLECTION),
    "BinaryHeap": Wrapper(WrapperKind.COLLECTION),
    "IndexSet": Wrapper(WrapperKind.COLLECTION),
    "HashMap": Wrapper(WrapperKind.COLLECTION, (1,)),
    "BTreeMap": Wrapper(WrapperKind.COLLECTION, (1,)),
    "IndexMap": Wrapper(WrapperKind.COLLECTION, (1,)),
    "Option": Wrapper(WrapperKind.OPTIONAL),
    "Result": Wrapper(WrapperKind.FALLIBLE, (0, 1)),
    "Box": Wrapper(WrapperKind.OWNING_POINTER),
    "Rc": Wrapper(WrapperKind.SHARED_POINTER),
    "Arc": Wrapper(WrapperKind.SHARED_POINTER),
    "Weak": Wrapper(WrapperKind.SHARED_POINTER),
    "Cow": Wrapper(WrapperKind.REFERENCE),
    "Cell": Wrapper(WrapperKind.CELL),
    "RefCell": Wrapper(WrapperKind.CELL),
    "UnsafeCell": Wrapper(WrapperKind.CELL),
    "OnceCell": Wrapper(WrapperKind.CELL),
    "OnceLock": Wrapper(WrapperKind.CELL),
    "Mutex": Wrapper(WrapperKind.CELL),
    "RwLock": Wrapper(WrapperKind.CELL),
    "Pin": Wrapper(WrapperKind.CELL),
    "ManuallyDrop": Wrapper(WrapperKind.CELL),
    "MaybeUninit": Wrapper(WrapperKind.CELL),
}


def wrapper_for(path: PathType) -> Wrapper | None:
    """Return the wrapper a path names, if any.

    A wrapper matches when written bare (``Vec<T>``) or through a standard
    crate path (``std::collections::HashMap<K, V>``).
    """
    wrapper = WRAPPERS.get(path.segments[-1])
    if wrapper is None:
        return None
    if len(path.segments) == 1 or path.segments[0] in WRAPPER_CRATES:
        return wrapper
    return None


@dataclass(frozen=True)
class Layer:
    """One peeled wrapper: its kind and the name it was written with."""

    kind: WrapperKind
    name: str


@dataclass(frozen=True)
class TypeReference:
    """The innermost named path of one branch of a type expression.

    Attributes:
        wrappers: Wrapper layers peeled on the way in, outermost first
        path: The innermost path
    """

    wrappers: tuple[Layer, ...]
    path: PathType

    @property
    def kinds(self) -> tuple[WrapperKind, ...]:
        return tuple(layer.kind for layer in self.wrappers)

    def __str__(self) -> str:
        return " -> ".join([*(layer.name for layer in self.wrappers), str(self.path)])


def peel(
    expr: TypeExpr, declared: Callable[[PathType], bool] | None = None
) -> tuple[Layer, tuple[TypeExpr, ...]] | None:
    """Peel one wrapper layer.

    Args:
        expr: Expression to peel
        declared: Tells whether a bare path names a declaration in scope;
            such a declaration shadows the wrapper of the same name

    Returns:
        The layer and the inner expression(s) it wraps, or None when ``expr``
        is not a wrapper. A wrapper name written without type arguments is a
        plain path.
    """
    if isinstance(expr, RefType):
        return Layer(WrapperKind.REFERENCE, "&"), (expr.inner,)
    if isinstance(expr, SliceType):
        return Layer(WrapperKind.ARRAY, "[]"), (expr.inner,)
    if isinstance(expr, PathType):
        wrapper = wrapper_for(expr)
        if wrapper is None or not expr.args:
            return None
        if len(expr.segments) == 1 and declared is not None and declared(expr):
            return None
        inner = tuple(expr.args[i] for i in wrapper.follow if i < len(expr.args))
        return Layer(wrapper.kind, expr.segments[-1]), inner
    return None


def flatten(
    expr: TypeExpr,
    chain: tuple[Layer, ...] = (),
    declared: Callable[[PathType], bool] | None = None,
) -> Iterator[TypeReference | OpaqueType]:
    """Peel every wrapper layer and split tuples element-wise.

    Yields one ``TypeReference`` per innermost path, or an ``OpaqueType`` for
    branches that end in something that can never name a record.
    """
    if isinstance(expr, TupleType):
        if not expr.elems:
            yield OpaqueType("()")
        for elem in expr.elems:
            yield from flatten(elem, chain, declared)
        return

    step = peel(expr, declared)
    if step is not None:
        layer, inners = step
        if not inners:
            # A map written with its key only
            yield OpaqueType(str(expr))
        for inner in inners:
            yield from flatten(inner, (*chain, layer), declared)
        return

    if isinstance(expr, PathType):
        yield TypeReference(chain, expr)
    else:
        yield expr


def substitute(expr: TypeExpr, mapping: Mapping[str, TypeExpr]) -> TypeExpr:
    """Replace bare generic parameter paths with the given expressions."""
    if not mapping:
        return expr
    if isinstance(expr, PathType):
        if len(expr.segments) == 1 and not expr.args and expr.segments[0] in mapping:
            return mapping[expr.segments[0]]
        return replace(expr, args=tuple(substitute(a, mapping) for a in expr.args))
    if isinstance(expr, (RefType, SliceType)):
        return replace(expr, inner=substitute(expr.inner, mapping))
    if isinstance(expr, TupleType):
        return TupleType(tuple(substitute(e, mapping) for e in expr.elems))
    return expr


def with_origin(expr: TypeExpr, scope: Scope) -> TypeExpr:
    """Pin every path in ``expr`` that has no origin yet to ``scope``."""
    if isinstance(expr, PathType):
        return replace(
            expr,
            args=tuple(with_origin(a, scope) for a in expr.args),
            origin=expr.origin or scope,
        )
    if isinstance(expr, (RefType, SliceType)):
        return replace(expr, inner=with_origin(expr.inner, scope))
    if isinstance(expr, TupleType):
        return TupleType(tuple(with_origin(e, scope) for e in expr.elems))
    return expr


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(
    r"""
    (?P<space>\s+)
    | (?P<char>'(?:[^'\\]|\\.)')
    | (?P<lifetime>'[A-Za-z_][A-Za-z0-9_]*)
    | (?P<ident>(?:r\#)?[A-Za-z_][A-Za-z0-9_]*)
    | (?P<number>[0-9][0-9A-Za-z_.]*)
    | (?P<string>"(?:[^"\\]|\\.)*")
    | (?P<punct>::|->|=>|[<>(),\[\];&*!+=:{}?#\-.|/%^@$~])
    """,
    re.VERBOSE,
)

_OPENERS = {"<": ">", "(": ")", "[": "]", "{": "}"}
_CLOSERS = {">", ")", "]", "}"}


@dataclass(frozen=True)
class _Token:
    kind: str
    value: str


def tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise TypeSyntaxError(f"Unexpected character {text[pos]!r} in {text!r}")
        kind = match.lastgroup or ""
        if kind != "space":
            value = match.group()
            if kind == "ident" and value.startswith("r#"):
                value = value[2:]
            tokens.append(_Token(kind, value))
        pos = match.end()
    return tokens


class _TypeParser:
    """Recursive-descent parser over the token stream of one type."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0

    def peek(self, offset: int = 0) -> _Token | None:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def at(self, value: str, offset: int = 0) -> bool:
        token = self.peek(offset)
        return token is not None and token.value == value

    def advance(self) -> _Token:
        token = self.peek()
        if token is None:
            raise TypeSyntaxError(f"Unexpected end of type {self.text!r}")
        self.pos += 1
        return token

    def expect(self, value: str) -> _Token:
        token = self.advance()
        if token.value != value:
            raise TypeSyntaxError(f"Expected {value!r}, got {token.value!r} in {self.text!r}")
        return token

    def expect_ident(self) -> str:
        token = self.advance()
        if token.kind != "ident":
            raise TypeSyntaxError(f"Expected identifier, got {token.value!r} in {self.text!r}")
        return token.value

    def parse(self) -> TypeExpr:
        expr = self.parse_type()
        if self.peek() is not None:
            raise TypeSyntaxError(f"Trailing tokens after type in {self.text!r}")
        return expr

    def parse_type(self) -> TypeExpr:
        start = self.pos
        token = self.peek()
        if token is None:
            raise TypeSyntaxError(f"Unexpected end of type {self.text!r}")

        if token.value == "&":
            self.advance()
            if self.peek() is not None and self.peek().kind == "lifetime":
                self.advance()
            if self.at("mut"):
                self.advance()
            return RefType(self.parse_type())

        if token.value == "*":
            self.advance()
            if self.at("const") or self.at("mut"):
                self.advance()
            return RefType(self.parse_type())

        if token.value == "[":
            self.advance()
            inner = self.parse_type()
            if self.at(";"):
                self.advance()
                self.skip_until({"]"})
            self.expect("]")
            return SliceType(inner)

        if token.value == "(":
            return self.parse_tuple()

        if token.value == "!":
            self.advance()
            return OpaqueType("!")

        if token.value == "<":
            # Qualified projection: <T as Trait>::Assoc
            self.skip_group()
            while self.at("::"):
                self.advance()
                self.expect_ident()
                if self.at("<"):
                    self.skip_group()
            return OpaqueType(self.slice_text(start))

        if token.kind != "ident" and token.value != "::":
            raise TypeSyntaxError(f"Unexpected {token.value!r} in {self.text!r}")

        if token.value in ("dyn", "impl"):
            self.advance()
            self.skip_until({",", ">", ")", "]", ";", "="})
            return OpaqueType(self.slice_text(start))

        if token.value == "for":
            # Higher-ranked bound: for<'a> fn(&'a T)
            self.advance()
            self.skip_group()
            self.parse_type()
            return OpaqueType(self.slice_text(start))

        if token.value in ("fn", "unsafe", "extern"):
            self.skip_fn_pointer()
            return OpaqueType(self.slice_text(start))

        if token.value == "_":
            self.advance()
            return OpaqueType("_")

        path = self.parse_path()
        if self.at("+"):
            # Bare trait object with extra bounds: Error + Send
            self.skip_until({",", ">", ")", "]", ";", "="})
            return OpaqueType(self.slice_text(start))
        return path

    def parse_tuple(self) -> TypeExpr:
        self.expect("(")
        elems: list[TypeExpr] = []
        trailing_comma = False
        while not self.at(")"):
            elems.append(self.parse_type())
            trailing_comma = False
            if self.at(","):
                self.advance()
                trailing_comma = True
            else:
                break
        self.expect(")")
        if len(elems) == 1 and not trailing_comma:
            return elems[0]
        return TupleType(tuple(elems))

    def parse_path(self) -> PathType:
        if self.at("::"):
            self.advance()

        segments: list[str] = []
        args: tuple[TypeExpr, ...] = ()
        while True:
            name = self.expect_ident()
            segments.append(name)
            args = ()
            if self.at("::") and self.at("<", 1):
                self.advance()
            if self.at("<"):
                args = self.parse_generic_args()
            elif self.at("(") and name in ("Fn", "FnMut", "FnOnce"):
                self.skip_group()
                if self.at("->"):
                    self.advance()
                    self.parse_type()
            if self.at("::") and self.peek(1) is not None and self.peek(1).kind == "ident":
                self.advance()
                continue
            break
        return PathType(tuple(segments), args)

    def parse_generic_args(self) -> tuple[TypeExpr, ...]:
        self.expect("<")
        args: list[TypeExpr] = []
        while not self.at(">"):
            token = self.peek()
            if token is None:
                raise TypeSyntaxError(f"Unclosed generic arguments in {self.text!r}")
            if token.kind in ("lifetime", "number", "string", "char"):
                self.advance()
            elif token.value == "{":
                self.skip_group()
            elif token.value == "-":
                self.advance()
                self.advance()
            elif token.kind == "ident" and (self.at("=", 1) or self.at(":", 1)):
                # Associated type binding or bound: Item = T, Item: Trait
                self.advance()
                if self.at("="):
                    self.advance()
                    self.parse_type()
                else:
                    self.skip_until({",", ">"})
            else:
                args.append(self.parse_type())
            if self.at(","):
                self.advance()
            else:
                break
        self.expect(">")
        return tuple(args)

    def skip_group(self) -> None:
        """Skip a bracketed group starting at the current opener."""
        opener = self.advance().value
        if opener not in _OPENERS:
            raise TypeSyntaxError(f"Expected an opening bracket in {self.text!r}")
        stack = [_OPENERS[opener]]
        while stack:
            token = self.advance()
            if token.value in _OPENERS:
                stack.append(_OPENERS[token.value])
            elif token.value in _CLOSERS:
                if token.value != stack.pop():
                    raise TypeSyntaxError(f"Mismatched brackets in {self.text!r}")

    def skip_until(self, stops: set[str]) -> None:
        """Skip tokens until one of ``stops`` appears outside any brackets."""
        while True:
            token = self.peek()
            if token is None or token.value in stops or token.value in _CLOSERS:
                return
            if token.value in _OPENERS:
                self.skip_group()
            else:
                self.advance()

    def skip_fn_pointer(self) -> None:
        if self.at("unsafe"):
            self.advance()
        if self.at("extern"):
            self.advance()
            if self.peek() is not None and self.peek().kind == "string":
                self.advance()
        if not self.at("fn"):
            raise TypeSyntaxError(f"Expected fn pointer in {self.text!r}")
        self.advance()
        self.skip_group()
        if self.at("->"):
            self.advance()
            self.parse_type()

    def slice_text(self, start: int) -> str:
        return " ".join(token.value for token in self.tokens[start : self.pos])


def parse_type_text(text: str) -> TypeExpr:
    """Parse raw Rust type text into an expression tree.

    Raises:
        TypeSyntaxError: If the text is not a well-formed type

    Examples:
        >>> str(parse_type_text("std::collections::HashMap<String, Vec<Item>>"))
        'std::collections::HashMap<String, Vec<Item>>'
    """
    return _TypeParser(text).parse()

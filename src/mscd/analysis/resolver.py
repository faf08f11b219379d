"""Type resolver: maps field type text to declared records or opaque leaves.

Resolution of one field type:

1. Parse the text and peel wrapper layers (``type_expr.flatten``); tuples
   and multi-argument wrappers split into several branches. A bare wrapper
   name that a corpus declaration shadows in scope (``struct Cell``, a crate
   ``type Result<T>``) is resolved as that declaration instead.
2. A bare generic parameter of the enclosing record (or alias) is opaque.
3. Look the innermost path up against the frozen module index:
   ``crate::``/``self::``/``super::`` prefixes and ``use`` imports first,
   then the exact qualified path, then outward from the declaring module to
   the root, then glob imports, then a corpus-wide scan by bare name.
4. An alias expands to its target, with its arguments substituted, and
   resolution restarts from step 1. A revisited alias is a cycle.
5. Anything else is opaque (primitives, external crates).

The resolver only reads the index. Warnings are collected on the resolver
and deduplicated so each distinct problem is reported once.
"""

from __future__ import annotations

from collections.abc import Iterator

from loguru import logger

from ..config.defaults import PRIMITIVE_TYPES
from ..core.exceptions import AnalysisWarning, WarningKind
from .models import (
    PATH_SEPARATOR,
    FieldResolution,
    OpaqueReason,
    RecordType,
    ResolvedTarget,
    TypeAlias,
)
from .module_index import IndexedDeclaration, ModuleIndex
from .type_expr import (
    OpaqueType,
    PathType,
    Scope,
    TypeExpr,
    TypeSyntaxError,
    flatten,
    parse_type_text,
    substitute,
    with_origin,
)

_RELATIVE_PREFIXES = ("crate", "self", "super")


def _ancestors(module: tuple[str, ...]) -> Iterator[tuple[str, ...]]:
    """Yield ``module`` and each of its ancestors up to the root, nearest first."""
    for length in range(len(module), -1, -1):
        yield module[:length]


def _dedupe(targets: list[ResolvedTarget]) -> tuple[ResolvedTarget, ...]:
    return tuple(dict.fromkeys(targets))


class TypeResolver:
    """Resolves the field types of records against a frozen ModuleIndex.

    Example:
        >>> resolver = TypeResolver(index)
        >>> for resolution in resolver.resolve_record(record):
        ...     print(resolution.field.name, [str(t) for t in resolution.targets])
    """

    def __init__(
        self,
        index: ModuleIndex,
        primitives: frozenset[str] = PRIMITIVE_TYPES,
    ) -> None:
        self.index = index
        self.primitives = primitives
        self._warnings: list[AnalysisWarning] = []
        self._warned: set[tuple[WarningKind, str]] = set()

    @property
    def warnings(self) -> list[AnalysisWarning]:
        """Warnings raised so far, in the order they were first seen."""
        return list(self._warnings)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve_record(self, record: RecordType) -> tuple[FieldResolution, ...]:
        """Resolve every field of ``record``, in declaration order."""
        scope = Scope(
            module=record.module_path,
            generics=record.generics,
            self_identity=record.qualified_name,
        )
        return tuple(
            FieldResolution(field, self.resolve_text(field.type_text, scope))
            for field in record.fields
        )

    def resolve_text(self, type_text: str, scope: Scope) -> tuple[ResolvedTarget, ...]:
        """Resolve raw type text written in ``scope``.

        Returns:
            One or more distinct targets; several when the type is a tuple or
            a wrapper that follows more than one argument.
        """
        try:
            expr = parse_type_text(type_text)
        except TypeSyntaxError as e:
            logger.debug(f"Unparseable type {type_text!r}: {e}")
            return (ResolvedTarget.opaque(OpaqueReason.UNSUPPORTED, type_text),)
        return _dedupe(self._resolve_expr(expr, scope, frozenset()))

    # ------------------------------------------------------------------
    # Expression resolution
    # ------------------------------------------------------------------

    def _resolve_expr(
        self, expr: TypeExpr, scope: Scope, visited: frozenset[str]
    ) -> list[ResolvedTarget]:
        targets: list[ResolvedTarget] = []
        for leaf in flatten(expr, declared=lambda p: self._shadows_wrapper(p, p.origin or scope)):
            if isinstance(leaf, OpaqueType):
                reason = OpaqueReason.PRIMITIVE if leaf.text == "()" else OpaqueReason.UNSUPPORTED
                targets.append(ResolvedTarget.opaque(reason, leaf.text))
            else:
                path = leaf.path
                targets.extend(self._resolve_path(path, path.origin or scope, visited))
        return targets

    def _resolve_path(
        self, path: PathType, scope: Scope, visited: frozenset[str]
    ) -> list[ResolvedTarget]:
        segments = path.segments
        text = str(path)

        if len(segments) == 1:
            name = segments[0]
            if name in scope.generics:
                return [ResolvedTarget.opaque(OpaqueReason.GENERIC, name)]
            if name == "Self":
                if scope.self_identity is None:
                    return [ResolvedTarget.opaque(OpaqueReason.UNSUPPORTED, name)]
                return [ResolvedTarget.entity(scope.self_identity)]

        decl = self._lookup(segments, scope)
        if decl is None:
            if len(segments) == 1 and segments[0] in self.primitives:
                return [ResolvedTarget.opaque(OpaqueReason.PRIMITIVE, text)]
            return [ResolvedTarget.opaque(OpaqueReason.EXTERNAL, text)]

        if isinstance(decl, RecordType):
            return [ResolvedTarget.entity(decl.qualified_name)]

        return self._expand_alias(decl, path, scope, visited)

    def _expand_alias(
        self,
        alias: TypeAlias,
        path: PathType,
        scope: Scope,
        visited: frozenset[str],
    ) -> list[ResolvedTarget]:
        if alias.qualified_name in visited:
            self._warn(
                WarningKind.ALIAS_CYCLE,
                f"Type alias cycle through {alias.qualified_name} "
                f"({' -> '.join(sorted(visited))}); treating as opaque",
                alias.qualified_name,
            )
            return [ResolvedTarget.opaque(OpaqueReason.ALIAS_CYCLE, alias.qualified_name)]

        try:
            target = parse_type_text(alias.target_text)
        except TypeSyntaxError as e:
            logger.debug(f"Unparseable alias target {alias.target_text!r}: {e}")
            return [ResolvedTarget.opaque(OpaqueReason.UNSUPPORTED, alias.target_text)]

        # Arguments keep resolving where they were written, the target where
        # the alias was declared
        mapping = {
            param: with_origin(arg, scope) for param, arg in zip(alias.generics, path.args)
        }
        alias_scope = Scope(module=alias.module_path, generics=frozenset(alias.generics))
        return self._resolve_expr(
            substitute(target, mapping), alias_scope, visited | {alias.qualified_name}
        )

    # ------------------------------------------------------------------
    # Scope lookup
    # ------------------------------------------------------------------

    def _lookup(
        self, segments: tuple[str, ...], scope: Scope
    ) -> IndexedDeclaration | None:
        """Find the declaration a path names, or None."""
        segments, absolute = self._normalize(segments, scope)
        if not segments:
            return None

        imported = False
        if not absolute:
            rewritten = self._apply_import(segments, scope)
            if rewritten is not None:
                segments, absolute = self._normalize(rewritten, scope)
                imported = True

        if absolute:
            found = self.index.lookup(segments)
            if found is not None:
                return found
        elif len(segments) > 1 or imported:
            found = self.index.lookup(segments)
            if found is not None:
                return found
            for module in _ancestors(scope.module):
                found = self.index.lookup((*module, *segments))
                if found is not None:
                    return found
        else:
            for module in _ancestors(scope.module):
                found = self.index.lookup((*module, *segments))
                if found is not None:
                    return found
            found = self._lookup_glob(segments, scope)
            if found is not None:
                return found
            if segments[0] in self.primitives:
                return None

        return self._scan(segments, scope, qualified=absolute or len(segments) > 1 or imported)

    def _shadows_wrapper(self, path: PathType, scope: Scope) -> bool:
        """Whether a bare wrapper name is declared in the corpus where it is written.

        A named import decides on its own; otherwise the declaring module and
        its ancestors are searched. The corpus-wide scan is not consulted.
        """
        name = path.segments[0]
        for imported in self.index.imports(scope.module):
            if imported.local_name != name:
                continue
            segments, absolute = self._normalize(imported.path, scope)
            if self.index.lookup(segments) is not None:
                return True
            return not absolute and any(
                self.index.lookup((*module, *segments)) is not None
                for module in _ancestors(scope.module)
            )
        return any(
            self.index.lookup((*module, name)) is not None for module in _ancestors(scope.module)
        )

    def _normalize(
        self, segments: tuple[str, ...], scope: Scope
    ) -> tuple[tuple[str, ...], bool]:
        """Expand ``crate::``, ``self::`` and ``super::`` prefixes.

        Returns:
            The segments and whether they are now rooted at the corpus root
        """
        if not segments or segments[0] not in _RELATIVE_PREFIXES:
            return segments, False

        head, rest = segments[0], segments[1:]
        if head == "crate":
            return (*self.index.crate_root_for(scope.module), *rest), True
        if head == "self":
            return (*scope.module, *rest), True

        module = scope.module
        while segments and segments[0] == "super":
            module = module[:-1]
            segments = segments[1:]
        return (*module, *segments), True

    def _apply_import(
        self, segments: tuple[str, ...], scope: Scope
    ) -> tuple[str, ...] | None:
        for imported in self.index.imports(scope.module):
            if imported.local_name == segments[0]:
                return (*imported.path, *segments[1:])
        return None

    def _lookup_glob(
        self, segments: tuple[str, ...], scope: Scope
    ) -> IndexedDeclaration | None:
        for imported in self.index.imports(scope.module):
            if imported.local_name is not None:
                continue
            base, absolute = self._normalize(imported.path, scope)
            bases = [base] if absolute else [(*m, *base) for m in _ancestors(scope.module)]
            for candidate in bases:
                found = self.index.lookup((*candidate, *segments))
                if found is not None:
                    return found
        return None

    def _scan(
        self, segments: tuple[str, ...], scope: Scope, qualified: bool
    ) -> IndexedDeclaration | None:
        """Corpus-wide fallback by bare name, in sorted qualified-name order.

        A qualified path only matches declarations whose qualified name ends
        with it, so ``crate::a::B`` still finds ``src::a::B`` when the corpus
        root sits above the crate root.
        """
        candidates = self.index.candidates(segments[-1])
        if qualified:
            suffix = PATH_SEPARATOR.join(segments)
            candidates = tuple(
                c
                for c in candidates
                if c.qualified_name == suffix
                or c.qualified_name.endswith(PATH_SEPARATOR + suffix)
            )
        if not candidates:
            return None

        chosen = candidates[0]
        if len(candidates) > 1:
            where = PATH_SEPARATOR.join(scope.module) or "crate root"
            names = ", ".join(c.qualified_name for c in candidates)
            self._warn(
                WarningKind.AMBIGUOUS_RESOLUTION,
                f"Ambiguous type {PATH_SEPARATOR.join(segments)!r} in {where}: "
                f"{len(candidates)} candidates ({names}); using {chosen.qualified_name}",
                PATH_SEPARATOR.join(segments),
            )
        return chosen

    def _warn(self, kind: WarningKind, message: str, subject: str) -> None:
        if (kind, message) in self._warned:
            return
        self._warned.add((kind, message))
        logger.warning(message)
        self._warnings.append(AnalysisWarning(kind, message, subject))

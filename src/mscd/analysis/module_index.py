"""Module index: the corpus-wide namespace forest.

Per-file declarations are merged append-only by ``ModuleIndexBuilder``.
``freeze()`` ends the build phase and returns a ``ModuleIndex`` that is
never mutated again, so resolver workers may read it without locking.

Duplicate qualified names are common with conditional compilation
(``#[cfg(unix)] struct Handle`` next to ``#[cfg(windows)] struct Handle``),
which the extractor does not evaluate. The first declaration is kept and a
``duplicate_declaration`` warning is recorded.
"""

from __future__ import annotations

import weakref
from collections import defaultdict
from types import MappingProxyType

from loguru import logger

from ..core.exceptions import AnalysisWarning, IndexFrozenError, WarningKind
from .models import (
    AliasDecl,
    FileDeclarations,
    ImportDecl,
    RecordDecl,
    RecordType,
    TypeAlias,
    qualify,
)

IndexedDeclaration = RecordType | TypeAlias


class Module:
    """A node of the namespace forest.

    Children are owned and unique per segment; the parent is a weak
    back-reference so the tree has a single owner (the index).
    """

    def __init__(self, path: tuple[str, ...], parent: Module | None = None) -> None:
        self.path = path
        self._parent = weakref.ref(parent) if parent is not None else None
        self.children: dict[str, Module] = {}
        self.records: dict[str, RecordType] = {}
        self.aliases: dict[str, TypeAlias] = {}
        self.imports: list[ImportDecl] = []

    @property
    def name(self) -> str:
        return self.path[-1] if self.path else ""

    @property
    def parent(self) -> Module | None:
        return self._parent() if self._parent is not None else None

    def child(self, segment: str) -> Module:
        """Return the child module for ``segment``, creating it if needed."""
        module = self.children.get(segment)
        if module is None:
            module = Module((*self.path, segment), self)
            self.children[segment] = module
        return module

    def __repr__(self) -> str:
        return f"Module({'::'.join(self.path) or 'crate'!r})"


class ModuleIndexBuilder:
    """Collects declarations from every file, then freezes into a ModuleIndex."""

    def __init__(self) -> None:
        self._root = Module(())
        self._declarations: dict[str, IndexedDeclaration] = {}
        self._crate_roots: set[tuple[str, ...]] = set()
        self._files: list[str] = []
        self._warnings: list[AnalysisWarning] = []
        self._duplicates = 0
        self._frozen = False

    def add(self, declarations: FileDeclarations) -> None:
        """Merge one file's declarations into the namespace forest.

        Raises:
            IndexFrozenError: If the index was already frozen
        """
        if self._frozen:
            raise IndexFrozenError(
                f"Cannot add {declarations.path}: module index is frozen",
                {"path": declarations.path},
            )

        self._files.append(declarations.path)
        if not declarations.parsed:
            return

        if declarations.crate_root:
            self._crate_roots.add(declarations.module_path)

        for module_path, decl in declarations.items:
            module = self._module(module_path)
            if isinstance(decl, ImportDecl):
                module.imports.append(decl)
            elif isinstance(decl, RecordDecl):
                record = RecordType(
                    qualified_name=qualify(module_path, decl.name),
                    name=decl.name,
                    module_path=module_path,
                    file_path=declarations.path,
                    fields=decl.fields,
                    generics=frozenset(decl.generics),
                )
                if self._register(record):
                    module.records[decl.name] = record
            elif isinstance(decl, AliasDecl):
                alias = TypeAlias(
                    qualified_name=qualify(module_path, decl.name),
                    name=decl.name,
                    module_path=module_path,
                    file_path=declarations.path,
                    target_text=decl.target_text,
                    generics=decl.generics,
                )
                if self._register(alias):
                    module.aliases[decl.name] = alias

    def _module(self, path: tuple[str, ...]) -> Module:
        module = self._root
        for segment in path:
            module = module.child(segment)
        return module

    def _register(self, decl: IndexedDeclaration) -> bool:
        existing = self._declarations.get(decl.qualified_name)
        if existing is None:
            self._declarations[decl.qualified_name] = decl
            return True

        self._duplicates += 1
        message = (
            f"Duplicate declaration of {decl.qualified_name} in {decl.file_path} "
            f"(keeping the one from {existing.file_path})"
        )
        logger.warning(message)
        self._warnings.append(
            AnalysisWarning(WarningKind.DUPLICATE_DECLARATION, message, decl.qualified_name)
        )
        return False

    def freeze(self) -> ModuleIndex:
        """End the build phase and return the read-only index."""
        self._frozen = True
        index = ModuleIndex(
            root=self._root,
            declarations=self._declarations,
            crate_roots=frozenset(self._crate_roots),
            files=tuple(self._files),
            warnings=tuple(self._warnings),
            duplicate_count=self._duplicates,
        )
        logger.debug(
            f"Module index frozen: {len(index.records)} structs, "
            f"{len(self._declarations) - len(index.records)} aliases, "
            f"{self._duplicates} duplicates"
        )
        return index


class ModuleIndex:
    """Frozen, read-only view of every declaration in the corpus."""

    def __init__(
        self,
        root: Module,
        declarations: dict[str, IndexedDeclaration],
        crate_roots: frozenset[tuple[str, ...]],
        files: tuple[str, ...],
        warnings: tuple[AnalysisWarning, ...],
        duplicate_count: int,
    ) -> None:
        self.root = root
        self.crate_roots = crate_roots
        self.files = files
        self.warnings = warnings
        self.duplicate_count = duplicate_count
        self._declarations = MappingProxyType(dict(declarations))

        by_name: dict[str, list[IndexedDeclaration]] = defaultdict(list)
        for decl in declarations.values():
            by_name[decl.name].append(decl)
        self._by_name = MappingProxyType(
            {
                name: tuple(sorted(decls, key=lambda d: d.qualified_name))
                for name, decls in by_name.items()
            }
        )
        self._records = MappingProxyType(
            {
                name: decl
                for name, decl in sorted(self._declarations.items())
                if isinstance(decl, RecordType)
            }
        )

    @property
    def records(self) -> MappingProxyType[str, RecordType]:
        """All records keyed by identity, in sorted identity order."""
        return self._records

    def lookup(self, path: tuple[str, ...]) -> IndexedDeclaration | None:
        """Exact lookup of a fully qualified path."""
        if not path:
            return None
        return self._declarations.get(qualify(path[:-1], path[-1]))

    def candidates(self, name: str) -> tuple[IndexedDeclaration, ...]:
        """Every declaration with this bare name, sorted by qualified name."""
        return self._by_name.get(name, ())

    def module(self, path: tuple[str, ...]) -> Module | None:
        module: Module | None = self.root
        for segment in path:
            module = module.children.get(segment)
            if module is None:
                return None
        return module

    def imports(self, path: tuple[str, ...]) -> tuple[ImportDecl, ...]:
        module = self.module(path)
        return tuple(module.imports) if module is not None else ()

    def crate_root_for(self, path: tuple[str, ...]) -> tuple[str, ...]:
        """Module that ``crate::`` refers to from ``path``.

        The nearest enclosing module declared by a ``lib.rs``/``main.rs``;
        the corpus root when there is none.
        """
        for length in range(len(path), -1, -1):
            if path[:length] in self.crate_roots:
                return path[:length]
        return ()

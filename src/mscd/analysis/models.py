"""Declaration and result dataclasses for composition depth analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from ..core.exceptions import AnalysisWarning, WarningKind

PATH_SEPARATOR = "::"


def qualify(module_path: tuple[str, ...], name: str) -> str:
    """Join a module path and a declared name into a fully qualified name.

    Examples:
        >>> qualify(("a", "b"), "Inner")
        'a::b::Inner'

        >>> qualify((), "Root")
        'Root'
    """
    return PATH_SEPARATOR.join((*module_path, name))


# ---------------------------------------------------------------------------
# Raw declarations (output of the extractor, one set per file)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldDecl:
    """A struct field with its declared type text."""

    name: str
    type_text: str


@dataclass(frozen=True)
class RecordDecl:
    """A ``struct`` item as written in the source."""

    name: str
    fields: tuple[FieldDecl, ...] = ()
    generics: tuple[str, ...] = ()


@dataclass(frozen=True)
class AliasDecl:
    """A ``type Name<..> = Target;`` item as written in the source."""

    name: str
    target_text: str
    generics: tuple[str, ...] = ()


@dataclass(frozen=True)
class ImportDecl:
    """One binding introduced by a ``use`` declaration.

    ``local_name`` is None for glob imports (``use a::b::*``), in which case
    ``path`` is the module whose items are imported.
    """

    path: tuple[str, ...]
    local_name: str | None


Declaration = RecordDecl | AliasDecl | ImportDecl


@dataclass
class FileDeclarations:
    """Everything extracted from one source file.

    Attributes:
        path: File path relative to the corpus root
        module_path: Module the file itself occupies
        items: Ordered (module path, declaration) pairs
        parsed: False when the file was skipped because of a syntax error
        crate_root: True for ``lib.rs`` / ``main.rs``, whose module ``crate::`` names
    """

    path: str
    module_path: tuple[str, ...] = ()
    items: list[tuple[tuple[str, ...], Declaration]] = field(default_factory=list)
    parsed: bool = True
    crate_root: bool = False
    warning: AnalysisWarning | None = None

    @property
    def record_count(self) -> int:
        return sum(1 for _, decl in self.items if isinstance(decl, RecordDecl))


# ---------------------------------------------------------------------------
# Indexed declarations (owned by the module index)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecordType:
    """A declared struct with a corpus-unique identity."""

    qualified_name: str
    name: str
    module_path: tuple[str, ...]
    file_path: str
    fields: tuple[FieldDecl, ...]
    generics: frozenset[str]


@dataclass(frozen=True)
class TypeAlias:
    """A declared type alias with a corpus-unique identity."""

    qualified_name: str
    name: str
    module_path: tuple[str, ...]
    file_path: str
    target_text: str
    generics: tuple[str, ...]


# ---------------------------------------------------------------------------
# Resolution results
# ---------------------------------------------------------------------------


class OpaqueReason(StrEnum):
    GENERIC = "generic"
    PRIMITIVE = "primitive"
    EXTERNAL = "external"
    ALIAS_CYCLE = "alias_cycle"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class ResolvedTarget:
    """Outcome of resolving one type path: an entity or an opaque leaf."""

    identity: str | None = None
    reason: OpaqueReason | None = None
    text: str = ""

    @classmethod
    def entity(cls, identity: str) -> ResolvedTarget:
        return cls(identity=identity)

    @classmethod
    def opaque(cls, reason: OpaqueReason, text: str = "") -> ResolvedTarget:
        return cls(reason=reason, text=text)

    @property
    def is_opaque(self) -> bool:
        return self.identity is None

    def __str__(self) -> str:
        if self.identity is not None:
            return self.identity
        return f"<{self.reason}>{' ' + self.text if self.text else ''}"


@dataclass(frozen=True)
class FieldResolution:
    """A field together with every target its type resolved to."""

    field: FieldDecl
    targets: tuple[ResolvedTarget, ...]


# ---------------------------------------------------------------------------
# Depth results
# ---------------------------------------------------------------------------


class Granularity(StrEnum):
    """Which depth table a report includes after the summary."""

    SUMMARY = "summary"
    FILES = "files"
    DIRECTORIES = "dirs"
    TARGET = "target"


@dataclass
class DepthResult:
    """Composition depth at every granularity.

    Attributes:
        entity_depths: Depth per record identity
        file_depths: Max entity depth per file (relative path)
        directory_depths: Max file depth per directory, recursively ("." is the root)
        global_depth: Max depth over all entities
        entity_count: Number of records analyzed
        cyclic_entities: Records that sit on a structural cycle
    """

    entity_depths: dict[str, int] = field(default_factory=dict)
    file_depths: dict[str, int] = field(default_factory=dict)
    directory_depths: dict[str, int] = field(default_factory=dict)
    global_depth: int = 0
    entity_count: int = 0
    cyclic_entities: frozenset[str] = frozenset()


@dataclass
class AnalysisReport:
    """Everything a reporter needs: depths, entity listings, and warnings."""

    root: str
    depth: DepthResult
    entities: dict[str, RecordType]
    resolutions: dict[str, tuple[FieldResolution, ...]]
    files: list[str]
    warnings: list[AnalysisWarning] = field(default_factory=list)

    @property
    def parse_failures(self) -> int:
        return sum(1 for w in self.warnings if w.kind == WarningKind.PARSE_ERROR)

    @property
    def is_clean(self) -> bool:
        return not self.warnings

"""Rust declaration extractor built on tree-sitter."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from loguru import logger
from tree_sitter_language_pack import get_parser

from ..analysis.models import AliasDecl, Declaration, FieldDecl, ImportDecl, RecordDecl
from ..core.exceptions import ParsingError
from .base import DeclarationParser

if TYPE_CHECKING:
    from tree_sitter import Node

# Node types that carry a single path segment in a use tree
_PATH_LEAVES = {"identifier", "type_identifier", "self", "super", "crate"}

_GENERIC_PARAMETER_TYPES = {
    "type_parameter",
    "constrained_type_parameter",
    "optional_type_parameter",
    "const_parameter",
}


def _text(node: Node) -> str:
    return node.text.decode("utf-8")


def _normalize(text: str) -> str:
    """Collapse whitespace so multi-line types print on one line."""
    return " ".join(text.split())


def _first_error(node: Node) -> Node | None:
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error:
            found = _first_error(child)
            if found is not None:
                return found
    return None


class RustParser(DeclarationParser):
    """Extracts structs, type aliases, use imports and inline modules.

    Only module-scope items are collected: items nested in function bodies
    or ``impl`` blocks are invisible to paths elsewhere in the crate.

    tree-sitter parsers are not safe to share between threads, so each
    worker thread lazily creates its own.
    """

    def __init__(self) -> None:
        """Initialize Rust parser."""
        super().__init__("rust")
        self._local = threading.local()

    @property
    def _parser(self):
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = get_parser("rust")
            self._local.parser = parser
            logger.debug("Rust Tree-sitter parser initialized via tree-sitter-language-pack")
        return parser

    def get_supported_extensions(self) -> list[str]:
        """Get supported file extensions."""
        return [".rs"]

    def parse(self, text: str) -> list[tuple[tuple[str, ...], Declaration]]:
        tree = self._parser.parse(text.encode("utf-8"))
        root = tree.root_node
        if root.has_error:
            error = _first_error(root) or root
            line, column = error.start_point
            raise ParsingError(
                f"syntax error at line {line + 1}, column {column + 1}",
                {"line": line + 1, "column": column + 1},
            )

        items: list[tuple[tuple[str, ...], Declaration]] = []
        self._visit_items(root, (), items)
        return items

    def _visit_items(
        self,
        node: Node,
        module: tuple[str, ...],
        out: list[tuple[tuple[str, ...], Declaration]],
    ) -> None:
        """Collect declarations from a source file or inline module body."""
        for child in node.named_children:
            node_type = child.type
            if node_type == "struct_item":
                out.append((module, self._extract_struct(child)))
            elif node_type == "type_item":
                out.append((module, self._extract_alias(child)))
            elif node_type == "use_declaration":
                argument = child.child_by_field_name("argument")
                if argument is not None:
                    for decl in self._walk_use_tree(argument, ()):
                        out.append((module, decl))
            elif node_type == "mod_item":
                body = child.child_by_field_name("body")
                # Out-of-line modules (mod x;) are picked up through their own file
                if body is not None:
                    name = _text(child.child_by_field_name("name"))
                    self._visit_items(body, (*module, name), out)

    def _extract_struct(self, node: Node) -> RecordDecl:
        name = _text(node.child_by_field_name("name"))
        generics = self._generic_names(node.child_by_field_name("type_parameters"))
        body = node.child_by_field_name("body")

        fields: list[FieldDecl] = []
        if body is not None and body.type == "field_declaration_list":
            for decl in body.named_children:
                if decl.type != "field_declaration":
                    continue
                field_name = decl.child_by_field_name("name")
                field_type = decl.child_by_field_name("type")
                if field_name is not None and field_type is not None:
                    fields.append(FieldDecl(_text(field_name), _normalize(_text(field_type))))
        elif body is not None and body.type == "ordered_field_declaration_list":
            for position, field_type in enumerate(body.children_by_field_name("type")):
                fields.append(FieldDecl(str(position), _normalize(_text(field_type))))

        return RecordDecl(name=name, fields=tuple(fields), generics=generics)

    def _extract_alias(self, node: Node) -> AliasDecl:
        return AliasDecl(
            name=_text(node.child_by_field_name("name")),
            target_text=_normalize(_text(node.child_by_field_name("type"))),
            generics=self._generic_names(node.child_by_field_name("type_parameters")),
        )

    def _generic_names(self, node: Node | None) -> tuple[str, ...]:
        """Names of type and const parameters; lifetimes are skipped."""
        if node is None:
            return ()

        names: list[str] = []
        for child in node.named_children:
            if child.type == "type_identifier":
                names.append(_text(child))
                continue
            if child.type not in _GENERIC_PARAMETER_TYPES:
                continue
            target = child.child_by_field_name("name") or child.child_by_field_name("left")
            if target is not None and target.type == "constrained_type_parameter":
                target = target.child_by_field_name("left")
            if target is None:
                target = next(
                    (c for c in child.named_children if c.type in ("type_identifier", "identifier")),
                    None,
                )
            if target is not None and target.type in ("type_identifier", "identifier"):
                names.append(_text(target))
        return tuple(names)

    def _path_segments(self, node: Node | None) -> tuple[str, ...]:
        if node is None:
            return ()
        if node.type in _PATH_LEAVES:
            return (_text(node),)
        if node.type == "scoped_identifier":
            return (
                *self._path_segments(node.child_by_field_name("path")),
                _text(node.child_by_field_name("name")),
            )
        return tuple(_text(node).split("::"))

    def _walk_use_tree(self, node: Node, prefix: tuple[str, ...]) -> list[ImportDecl]:
        """Flatten a use tree into one ImportDecl per binding."""
        node_type = node.type

        if node_type in _PATH_LEAVES or node_type == "scoped_identifier":
            path = (*prefix, *self._path_segments(node))
            if path and path[-1] == "self":
                # use a::b::{self} binds the module b
                path = path[:-1]
            if not path:
                return []
            return [ImportDecl(path=path, local_name=path[-1])]

        if node_type == "use_as_clause":
            path = (*prefix, *self._path_segments(node.child_by_field_name("path")))
            alias = _text(node.child_by_field_name("alias"))
            if alias == "_":
                return []
            return [ImportDecl(path=path, local_name=alias)]

        if node_type == "use_list":
            imports: list[ImportDecl] = []
            for child in node.named_children:
                imports.extend(self._walk_use_tree(child, prefix))
            return imports

        if node_type == "scoped_use_list":
            path_node = node.child_by_field_name("path")
            list_node = node.child_by_field_name("list")
            return self._walk_use_tree(list_node, (*prefix, *self._path_segments(path_node)))

        if node_type == "use_wildcard":
            path_node = next(iter(node.named_children), None)
            return [ImportDecl(path=(*prefix, *self._path_segments(path_node)), local_name=None)]

        logger.debug(f"Ignoring unsupported use tree node: {node_type}")
        return []

"""Tests for Rust parser."""

import pytest

from mscd.analysis.models import AliasDecl, ImportDecl, RecordDecl
from mscd.core.exceptions import ParsingError, WarningKind
from mscd.parsers.base import is_crate_root, module_path_for
from mscd.parsers.rust import RustParser


@pytest.fixture
def rust_parser():
    """Create Rust parser fixture."""
    return RustParser()


@pytest.fixture
def sample_rust_code():
    """Sample Rust code for testing."""
    return """
use std::collections::HashMap;
use crate::model::{self, Account as Acct, ledger::*};

/// User represents a user entity.
#[derive(Debug, Clone)]
pub struct User<T: Clone, const N: usize> {
    pub id: u32,
    pub name: String,
    pub tags: HashMap<String,
        Vec<T>>,
}

pub struct Point(pub i32, i32);

pub struct Marker;

pub type Registry<V> = HashMap<String, V>;

impl User<u8, 3> {
    pub fn new() -> Self {
        struct Hidden { x: u8 }
        todo!()
    }
}

mod inner {
    pub struct Nested {
        pub user: super::User<u8, 1>,
    }
}
"""


def _records(items):
    return {decl.name: (module, decl) for module, decl in items if isinstance(decl, RecordDecl)}


def test_rust_parser_initialization(rust_parser):
    """Test Rust parser initialization."""
    assert rust_parser is not None
    assert rust_parser.language == "rust"
    assert ".rs" in rust_parser.get_supported_extensions()


def test_rust_parser_structs(rust_parser, sample_rust_code):
    """Test struct extraction with named, tuple and unit bodies."""
    records = _records(rust_parser.parse(sample_rust_code))

    assert set(records) == {"User", "Point", "Marker", "Nested"}, "Items in impl bodies are not module scope"

    _, user = records["User"]
    assert [f.name for f in user.fields] == ["id", "name", "tags"]
    assert user.fields[2].type_text == "HashMap<String, Vec<T>>", "Whitespace is normalized"
    assert user.generics == ("T", "N")

    _, point = records["Point"]
    assert [(f.name, f.type_text) for f in point.fields] == [("0", "i32"), ("1", "i32")]

    _, marker = records["Marker"]
    assert marker.fields == ()


def test_rust_parser_inline_modules(rust_parser, sample_rust_code):
    """Test that inline mod blocks nest their items."""
    records = _records(rust_parser.parse(sample_rust_code))

    module, nested = records["Nested"]
    assert module == ("inner",)
    assert nested.fields[0].type_text == "super::User<u8, 1>"


def test_rust_parser_aliases(rust_parser, sample_rust_code):
    """Test type alias extraction."""
    aliases = [decl for _, decl in rust_parser.parse(sample_rust_code) if isinstance(decl, AliasDecl)]

    assert aliases == [AliasDecl(name="Registry", target_text="HashMap<String, V>", generics=("V",))]


def test_rust_parser_use_trees(rust_parser, sample_rust_code):
    """Test flattening of use declarations into bindings."""
    imports = [decl for _, decl in rust_parser.parse(sample_rust_code) if isinstance(decl, ImportDecl)]

    assert ImportDecl(("std", "collections", "HashMap"), "HashMap") in imports
    assert ImportDecl(("crate", "model"), "model") in imports, "self in a use list binds the module"
    assert ImportDecl(("crate", "model", "Account"), "Acct") in imports
    assert ImportDecl(("crate", "model", "ledger"), None) in imports, "Glob import"


def test_rust_parser_syntax_error(rust_parser):
    """Test that broken source raises ParsingError with a location."""
    with pytest.raises(ParsingError) as excinfo:
        rust_parser.parse("struct Broken {\n    a: i32\n")

    assert "line" in excinfo.value.context


def test_extract_file_places_declarations(rust_parser, tmp_path):
    """Test that declarations are prefixed with the file's module path."""
    source = tmp_path / "net" / "http.rs"
    source.parent.mkdir()
    source.write_text("pub struct Client { pool: Pool }\nmod pool { pub struct Pool; }\n")

    declarations = rust_parser.extract_file(source, "net/http.rs")

    assert declarations.parsed
    assert declarations.module_path == ("net", "http")
    assert [(module, decl.name) for module, decl in declarations.items] == [
        (("net", "http"), "Client"),
        (("net", "http", "pool"), "Pool"),
    ]
    assert declarations.record_count == 2


def test_extract_file_skips_unparsable_file(rust_parser, tmp_path):
    """Test that a syntax error skips the file with a parse_error warning."""
    source = tmp_path / "broken.rs"
    source.write_text("pub struct Broken { a: }")

    declarations = rust_parser.extract_file(source, "broken.rs")

    assert not declarations.parsed
    assert declarations.items == []
    assert declarations.warning is not None
    assert declarations.warning.kind == WarningKind.PARSE_ERROR
    assert "broken.rs" in declarations.warning.message


@pytest.mark.parametrize(
    ("relative", "expected"),
    [
        ("lib.rs", ()),
        ("main.rs", ()),
        ("model.rs", ("model",)),
        ("model/mod.rs", ("model",)),
        ("src/net/http.rs", ("src", "net", "http")),
    ],
)
def test_module_path_for(relative, expected):
    """Test module placement from the file's position in the corpus."""
    assert module_path_for(relative) == expected


def test_is_crate_root():
    """Test crate root detection."""
    assert is_crate_root("src/lib.rs")
    assert is_crate_root("main.rs")
    assert not is_crate_root("src/mod.rs")

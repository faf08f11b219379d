"""End-to-end tests of the analysis pipeline over small Rust corpora."""

from mscd.analysis import DependencyGraph, DepthEngine, ModuleIndexBuilder, TypeResolver
from mscd.analysis.pipeline import DepthAnalyzer
from mscd.analysis.reporters import ConsoleReporter
from mscd.config.settings import AnalysisConfig
from mscd.core.corpus import CorpusProvider
from mscd.core.exceptions import WarningKind
from mscd.parsers.rust import RustParser

CHAIN = {
    "lib.rs": """
    pub struct A { b: B }
    pub struct B { c: Option<Box<C>> }
    pub struct C { d: Vec<D>, count: usize }
    pub struct D { name: String, tag: external::Tag }
    """
}


class TestDepthProperties:
    """Composition depth over whole corpora."""

    def test_linear_chain(self, analyze):
        report = analyze(CHAIN)

        assert report.depth.entity_depths == {"A": 3, "B": 2, "C": 1, "D": 0}
        assert report.depth.global_depth == 3
        assert report.depth.entity_count == 4
        assert report.is_clean

    def test_empty_and_opaque_records(self, analyze):
        report = analyze(
            {
                "lib.rs": """
                pub struct Unit;
                pub struct Empty {}
                pub struct Tuple(u8, String);
                pub struct Generic<T> { items: Vec<T>, handler: Box<dyn Fn(T)> }
                """
            }
        )
        assert set(report.depth.entity_depths.values()) == {0}

    def test_wrapper_layering_does_not_change_depth(self, analyze):
        report = analyze(
            {
                "lib.rs": """
                pub struct X { v: u8 }
                pub struct Y { v: X }
                pub struct Bare { x: Y }
                pub struct Wrapped { x: Option<Box<Y>> }
                """
            }
        )
        assert report.depth.entity_depths["Bare"] == report.depth.entity_depths["Wrapped"] == 2

    def test_alias_does_not_change_depth(self, analyze):
        report = analyze(
            {
                "lib.rs": """
                pub struct X;
                pub type AliasOfX = X;
                pub struct Direct { x: X }
                pub struct ViaAlias { x: AliasOfX }
                """
            }
        )
        assert report.depth.entity_depths["Direct"] == report.depth.entity_depths["ViaAlias"] == 1
        assert report.resolutions["Direct"][0].targets == report.resolutions["ViaAlias"][0].targets

    def test_wrapper_names_declared_in_the_corpus(self, analyze):
        report = analyze(
            {
                "lib.rs": """
                pub struct Cell { alive: bool }
                pub struct Grid { cells: Vec<Cell> }
                pub struct Detail { code: u16 }
                pub struct AppError { detail: Detail }
                pub type Result<T> = std::result::Result<T, AppError>;
                pub struct Holder { value: Result<u8> }
                """
            }
        )
        depths = report.depth.entity_depths
        assert depths["Grid"] == 1
        assert depths["Holder"] == 2

    def test_recursive_structures_terminate(self, analyze):
        report = analyze(
            {
                "lib.rs": """
                pub struct Node { next: Option<Box<Node>> }
                pub struct A { b: Option<Box<B>> }
                pub struct B { a: std::rc::Rc<A> }
                """
            }
        )
        assert report.depth.entity_depths == {"A": 1, "B": 1, "Node": 0}
        assert report.depth.cyclic_entities == frozenset({"A", "B", "Node"})

    def test_directory_depth_is_max_beneath(self, analyze):
        report = analyze(
            {
                "lib.rs": "pub struct Root;",
                "shallow/mod.rs": "pub struct S { r: crate::Root }",
                "deep/mod.rs": "pub struct D { m: crate::deep::inner::M }",
                "deep/inner/mod.rs": "pub struct M { s: crate::shallow::S }",
            }
        )
        depth = report.depth
        assert depth.file_depths == {
            "deep/inner/mod.rs": 2,
            "deep/mod.rs": 3,
            "lib.rs": 0,
            "shallow/mod.rs": 1,
        }
        assert depth.directory_depths == {".": 3, "deep": 3, "deep/inner": 2, "shallow": 1}


class TestRobustness:
    """Recoverable problems become warnings, never aborts."""

    def test_unparsable_file_is_skipped(self, analyze):
        report = analyze(
            {
                "a.rs": "pub struct A { b: crate::b::B }",
                "b.rs": "pub struct B;",
                "broken.rs": "pub struct Broken { field: }",
            }
        )
        assert sorted(report.entities) == ["a::A", "b::B"]
        assert report.parse_failures == 1
        assert [w.kind for w in report.warnings] == [WarningKind.PARSE_ERROR]
        assert report.files == ["a.rs", "b.rs"]
        assert report.depth.entity_depths["a::A"] == 1

    def test_duplicate_declarations_keep_first(self, analyze):
        report = analyze(
            {
                "lib.rs": """
                #[cfg(unix)]
                pub struct Handle { fd: i32 }
                #[cfg(windows)]
                pub struct Handle { raw: Raw }
                pub struct Raw;
                """
            }
        )
        assert report.entities["Handle"].fields[0].name == "fd"
        assert [w.kind for w in report.warnings] == [WarningKind.DUPLICATE_DECLARATION]

    def test_ignored_directories_are_not_walked(self, analyze):
        report = analyze(
            {
                "lib.rs": "pub struct Kept;",
                "target/debug/build.rs": "pub struct Generated;",
            }
        )
        assert list(report.entities) == ["Kept"]

    def test_empty_corpus(self, analyze):
        report = analyze({"README.md": "nothing here"})
        assert report.depth.entity_count == 0
        assert report.depth.global_depth == 0
        assert report.files == []


class TestStageComposition:
    """The stages composed by hand agree with DepthAnalyzer."""

    def test_manual_composition_excludes_unparsed_files(self, write_corpus):
        files = {
            "lib.rs": "pub struct Root { child: model::Child }",
            "model.rs": "pub struct Child;",
            "broken.rs": "pub struct Broken {",
        }
        root = write_corpus(files)
        parser = RustParser()
        extracted_files = [parser.extract_file(root / path, path) for path in sorted(files)]

        builder = ModuleIndexBuilder()
        for declarations in extracted_files:
            builder.add(declarations)
        index = builder.freeze()
        resolver = TypeResolver(index)
        resolutions = {
            identity: resolver.resolve_record(record)
            for identity, record in index.records.items()
        }
        graph = DependencyGraph.build(resolutions)
        parsed_files = [d.path for d in extracted_files if d.parsed]
        result = DepthEngine(graph).compute(index.records, parsed_files)

        assert "broken.rs" in index.files
        assert result.file_depths == {"lib.rs": 1, "model.rs": 0}

        with CorpusProvider.local(root) as provider:
            report = DepthAnalyzer().analyze(provider)
        assert report.depth.file_depths == result.file_depths
        assert report.depth.directory_depths == result.directory_depths


class TestDeterminism:
    """Re-running on an unchanged corpus gives identical output."""

    def test_text_report_is_byte_identical(self, write_corpus):
        root = write_corpus(
            {
                "z/item.rs": "pub struct Item;",
                "a/item.rs": "pub struct Item;",
                "m/user.rs": "pub struct User { item: Item, other: Vec<crate::a::item::Item> }",
                "m/group.rs": "pub struct Group { users: Vec<User> }",
            }
        )
        reporter = ConsoleReporter(verbose=True)
        texts = []
        for workers in (1, 4):
            config = AnalysisConfig(max_workers=workers)
            with CorpusProvider.local(root, config) as provider:
                report = DepthAnalyzer(config).analyze(provider, label="corpus")
            texts.append(reporter.render_text(report))

        assert texts[0] == texts[1]
        assert "Ambiguous type 'Item'" in texts[0]

    def test_non_recursive_target(self, write_corpus):
        root = write_corpus(
            {
                "top.rs": "pub struct Top { n: nested::Nested }",
                "nested/mod.rs": "pub struct Nested;",
            }
        )
        with CorpusProvider.local(root, recursive=False) as provider:
            report = DepthAnalyzer().analyze(provider)

        assert list(report.entities) == ["top::Top"]
        assert report.depth.entity_depths["top::Top"] == 0

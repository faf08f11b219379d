"""Default configurations for mscd."""

# Source files of the analyzed language
RUST_FILE_EXTENSION = ".rs"

# Directories never descended into while walking a corpus
DEFAULT_IGNORE_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "target",  # cargo build output
        "node_modules",
        ".idea",
        ".vscode",
    }
)

# File stems that name their parent directory's module rather than a new one
MODULE_ROOT_STEMS = frozenset({"mod", "lib", "main"})

# Built-in scalar and string types; never resolved against the corpus-wide scan
PRIMITIVE_TYPES = frozenset(
    {
        "u8",
        "u16",
        "u32",
        "u64",
        "u128",
        "usize",
        "i8",
        "i16",
        "i32",
        "i64",
        "i128",
        "isize",
        "f32",
        "f64",
        "bool",
        "char",
        "str",
        "String",
    }
)

# Crates whose paths may prefix a recognized wrapper name (std::sync::Arc<T>)
WRAPPER_CRATES = frozenset({"std", "core", "alloc", "indexmap"})

# Parsing worker pool size (None lets the executor decide)
DEFAULT_MAX_WORKERS: int | None = None

# Seconds allowed for a repository clone
DEFAULT_CLONE_TIMEOUT = 300.0

# Config file picked up from the working directory when --config is not given
DEFAULT_CONFIG_FILENAME = ".mscd.yaml"

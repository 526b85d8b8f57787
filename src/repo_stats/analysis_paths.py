from __future__ import annotations

from pathlib import PurePosixPath

BINARY_EXTENSIONS = frozenset(
    {
        ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".ico", ".svg", ".webp",
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
        ".zip", ".tar", ".gz", ".bz2", ".7z", ".rar",
        ".exe", ".dll", ".so", ".dylib", ".lib", ".a",
        ".class", ".jar", ".war", ".ear", ".pyc", ".pyo",
        ".ttf", ".otf", ".woff", ".woff2", ".eot",
        ".mp3", ".mp4", ".avi", ".mov", ".wmv", ".flv",
        ".db", ".sqlite", ".sqlite3",
        ".bin", ".dat", ".img", ".iso",
    }
)

LANGUAGE_BY_EXT = {
    ".py": "Python",
    ".ipynb": "Jupyter",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".mjs": "JavaScript",
    ".cjs": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".java": "Java",
    ".kt": "Kotlin",
    ".swift": "Swift",
    ".go": "Go",
    ".rs": "Rust",
    ".php": "PHP",
    ".rb": "Ruby",
    ".cs": "C#",
    ".c": "C",
    ".h": "C/C++ Headers",
    ".cpp": "C++",
    ".cc": "C++",
    ".cxx": "C++",
    ".hpp": "C++",
    ".mm": "Objective-C++",
    ".m": "Objective-C",
    ".scala": "Scala",
    ".r": "R",
    ".lua": "Lua",
    ".pl": "Perl",
    ".pm": "Perl",
    ".sql": "SQL",
    ".tf": "Terraform",
    ".yml": "YAML",
    ".yaml": "YAML",
    ".json": "JSON",
    ".toml": "TOML",
    ".ini": "INI",
    ".cfg": "Config",
    ".conf": "Config",
    ".properties": "Properties",
    ".md": "Markdown",
    ".rst": "reStructuredText",
    ".html": "HTML",
    ".htm": "HTML",
    ".css": "CSS",
    ".scss": "SCSS",
    ".sass": "Sass",
    ".less": "Less",
    ".sh": "Shell",
    ".bash": "Shell",
    ".zsh": "Shell",
    ".fish": "Shell",
    ".ps1": "PowerShell",
    ".psm1": "PowerShell",
    ".bat": "Batch",
    ".cmd": "Batch",
    ".vim": "VimScript",
    ".gradle": "Gradle",
    ".xml": "XML",
    ".proto": "Protobuf",
    ".mk": "Makefile",
}


def normalize_path(path: str) -> str:
    p = (path or "").strip().replace("\\", "/")
    while p.startswith("./"):
        p = p[2:]
    return p


def is_binary_path(path: str) -> bool:
    return PurePosixPath(normalize_path(path)).suffix.lower() in BINARY_EXTENSIONS


def language_for_path(path: str, overrides: dict[str, str] | None = None) -> str:
    p = normalize_path(path)
    base = p.rsplit("/", 1)[-1]
    if base == "Dockerfile" or base.lower().startswith("dockerfile."):
        return "Dockerfile"
    if base == "Makefile" or base == "makefile":
        return "Makefile"
    if base in (".gitignore", ".gitattributes"):
        return "Git"

    ext = PurePosixPath(base).suffix.lower()
    if overrides and ext in overrides:
        return overrides[ext]
    if ext in BINARY_EXTENSIONS:
        return "Binary"
    if ext in LANGUAGE_BY_EXT:
        return LANGUAGE_BY_EXT[ext]
    return "Other"


CATEGORIES = ("Application", "Test", "Build", "Documentation", "Other")

DEFAULT_TEST_PATTERNS = (
    ".test.",
    ".spec.",
    "test/",
    "tests/",
    "__tests__/",
    "_test.",
)

_APPLICATION = (
    "Python", "Jupyter", "JavaScript", "TypeScript", "Java", "Kotlin", "Swift", "Go", "Rust", "PHP", "Ruby",
    "C#", "C", "C/C++ Headers", "C++", "Objective-C", "Objective-C++", "Scala", "R", "Lua", "Perl", "SQL",
    "HTML", "CSS", "SCSS", "Sass", "Less", "Protobuf",
)
_BUILD = (
    "JSON", "YAML", "XML", "TOML", "INI", "Config", "Properties", "Shell", "PowerShell", "Batch",
    "Dockerfile", "Makefile", "Gradle", "Terraform", "Git", "VimScript",
)
_DOCUMENTATION = ("Markdown", "reStructuredText")

CATEGORY_BY_LANGUAGE = {
    **{lang: "Application" for lang in _APPLICATION},
    **{lang: "Build" for lang in _BUILD},
    **{lang: "Documentation" for lang in _DOCUMENTATION},
}


def category_for_path(
    path: str,
    test_patterns: tuple[str, ...] | None = None,
    overrides: dict[str, str] | None = None,
    language_overrides: dict[str, str] | None = None,
) -> str:
    """
    Application / Test / Build / Documentation / Other. Binary files are Other,
    then any test pattern found in the path wins, then the language decides.
    """
    p = normalize_path(path)
    if is_binary_path(p):
        return "Other"
    patterns = DEFAULT_TEST_PATTERNS if test_patterns is None else test_patterns
    if any(t in p for t in patterns):
        return "Test"
    language = language_for_path(p, language_overrides)
    if overrides and language in overrides:
        return overrides[language]
    return CATEGORY_BY_LANGUAGE.get(language, "Other")

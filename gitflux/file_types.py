"""File type classification for change breakdowns."""

from __future__ import annotations

from typing import Dict, NamedTuple, Tuple

# Category and display colour keyed by lowercased extension
FILE_TYPE_MAP: Dict[str, Tuple[str, str]] = {
    # Code files
    "js": ("JavaScript", "#f7df1e"),
    "jsx": ("JavaScript", "#f7df1e"),
    "ts": ("TypeScript", "#3178c6"),
    "tsx": ("TypeScript", "#3178c6"),
    "py": ("Python", "#3776ab"),
    "java": ("Java", "#ed8b00"),
    "cpp": ("C++", "#00599c"),
    "c": ("C", "#a8b9cc"),
    "cs": ("C#", "#239120"),
    "php": ("PHP", "#777bb4"),
    "rb": ("Ruby", "#cc342d"),
    "go": ("Go", "#00add8"),
    "rs": ("Rust", "#dea584"),
    "swift": ("Swift", "#fa7343"),
    "kt": ("Kotlin", "#7f52ff"),
    # Web files
    "html": ("HTML", "#e34f26"),
    "css": ("CSS", "#1572b6"),
    "scss": ("CSS", "#cf649a"),
    "sass": ("CSS", "#cf649a"),
    "less": ("CSS", "#1d365d"),
    # Config files
    "json": ("Config", "#000000"),
    "xml": ("Config", "#0060ac"),
    "yml": ("Config", "#cb171e"),
    "yaml": ("Config", "#cb171e"),
    "toml": ("Config", "#9c4221"),
    "ini": ("Config", "#6d6d6d"),
    # Documentation
    "md": ("Documentation", "#083fa1"),
    "txt": ("Documentation", "#6d6d6d"),
    "rst": ("Documentation", "#6d6d6d"),
    # Images
    "png": ("Images", "#ff6b6b"),
    "jpg": ("Images", "#ff6b6b"),
    "jpeg": ("Images", "#ff6b6b"),
    "gif": ("Images", "#ff6b6b"),
    "svg": ("Images", "#ff6b6b"),
    "webp": ("Images", "#ff6b6b"),
}

OTHER_CATEGORY = "Other"
OTHER_COLOR = "#6d6d6d"


class FileType(NamedTuple):
    extension: str
    category: str
    color: str


def file_extension(filename: str) -> str:
    """Lowercased extension of the last path segment, or "" when there is none."""
    basename = (filename or "").rsplit("/", 1)[-1]
    if "." not in basename:
        return ""
    return basename.rsplit(".", 1)[-1].lower()


def categorize_file_type(filename: str) -> FileType:
    """Classify a path; unknown or missing extensions fall into ``Other``."""
    extension = file_extension(filename)
    category, color = FILE_TYPE_MAP.get(extension, (OTHER_CATEGORY, OTHER_COLOR))
    return FileType(extension=extension, category=category, color=color)

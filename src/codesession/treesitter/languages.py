# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Grammar registry and language detection for JavaScript-family sources."""

import logging
import re
from functools import cache
from pathlib import PurePath

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES: tuple[str, ...] = ("javascript", "jsx", "typescript", "tsx")

_LANGUAGE_ALIASES: dict[str, str] = {
    "js": "javascript",
    "ecmascript": "javascript",
    "ts": "typescript",
}

_EXTENSION_LANGUAGES: dict[str, str] = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "jsx",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}

_TYPESCRIPT_MARKERS = re.compile(
    r"\binterface\s+[A-Za-z_$][\w$]*\s*[{<]"
    r"|\btype\s+[A-Za-z_$][\w$]*\s*(<[^>]*>)?\s*="
    r"|\benum\s+[A-Za-z_$][\w$]*\s*\{"
    r"|\b(public|private|protected|readonly)\s+[A-Za-z_$]"
    r"|[\w$)\]]\s*:\s*(string|number|boolean|any|void|unknown|never)\b"
    r"|\bas\s+const\b"
    r"|\bimport\s+type\b"
)
_JSX_MARKERS = re.compile(r"</[A-Za-z][\w.-]*\s*>|<[A-Za-z][\w.-]*(\s[^<>]*)?/>")


class UnsupportedLanguageError(ValueError):
    """Represent a language hint outside the supported grammar set."""


def normalize_language(hint: str) -> str:
    """Normalize a caller-supplied language hint.

    Args:
        hint: Language name as supplied by the caller.

    Returns:
        Canonical language tag.

    Raises:
        UnsupportedLanguageError: If the hint names no supported grammar.
    """
    normalized = hint.strip().lower()
    normalized = _LANGUAGE_ALIASES.get(normalized, normalized)
    if normalized not in SUPPORTED_LANGUAGES:
        raise UnsupportedLanguageError(
            f"Unsupported language: {hint} (supported: {', '.join(SUPPORTED_LANGUAGES)})"
        )
    return normalized


def detect_language(text: str, path: str | None = None) -> str:
    """Infer the language of a source text.

    The file extension wins when it is known; otherwise TypeScript and JSX
    markers in the text are checked. Plain JavaScript is the fallback.

    Args:
        text: Source text.
        path: Optional origin path.

    Returns:
        Canonical language tag.
    """
    if path is not None:
        suffix = PurePath(path).suffix.lower()
        if suffix in _EXTENSION_LANGUAGES:
            return _EXTENSION_LANGUAGES[suffix]
    looks_typescript = _TYPESCRIPT_MARKERS.search(text) is not None
    looks_jsx = _JSX_MARKERS.search(text) is not None
    if looks_typescript and looks_jsx:
        return "tsx"
    if looks_typescript:
        return "typescript"
    if looks_jsx:
        return "jsx"
    return "javascript"


@cache
def load_language(language: str) -> Language:
    """Load the tree-sitter grammar for a canonical language tag.

    Args:
        language: Canonical language tag.

    Returns:
        Loaded grammar.

    Raises:
        UnsupportedLanguageError: If the tag names no supported grammar.
    """
    if language in ("javascript", "jsx"):
        return Language(tree_sitter_javascript.language())
    if language == "typescript":
        return Language(tree_sitter_typescript.language_typescript())
    if language == "tsx":
        return Language(tree_sitter_typescript.language_tsx())
    raise UnsupportedLanguageError(f"Unsupported language: {language}")

# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Tree-sitter backed structural provider."""

import logging
from functools import partial

from tree_sitter import Parser

from codesession.errors import ParseFailure
from codesession.treesitter.languages import (
    UnsupportedLanguageError,
    detect_language,
    load_language,
    normalize_language,
)
from codesession.treesitter.nodes import SyntaxTree
from codesession.treesitter.rewriter import Rewriter

logger = logging.getLogger(__name__)


class TreeSitterProvider:
    """Parse JavaScript, JSX, TypeScript and TSX sources with tree-sitter."""

    def parse(
        self, text: str, language: str | None = None, path: str | None = None
    ) -> SyntaxTree:
        """Parse source text into a syntax tree.

        Most malformed code still parses; the resulting root then reports
        ``has_error``. Only unusable input is rejected.

        Args:
            text: Source text.
            language: Optional language hint (``javascript``, ``jsx``,
                ``typescript``, ``tsx``).
            path: Optional origin path used for extension-based detection.

        Returns:
            Parsed syntax tree.

        Raises:
            ParseFailure: If the language is unsupported or the grammar
                rejects the input.
        """
        try:
            resolved = (
                normalize_language(language)
                if language
                else detect_language(text, path=path)
            )
            parser = Parser(load_language(resolved))
        except UnsupportedLanguageError as exc:
            logger.warning(f"Parse rejected (language={language} error={exc})")
            raise ParseFailure(str(exc)) from exc

        try:
            raw_tree = parser.parse(text.encode("utf-8"))
        except (ValueError, UnicodeEncodeError) as exc:
            logger.warning(f"Parse failed (language={resolved} error={exc})")
            raise ParseFailure(f"Parser rejected input: {exc}") from exc
        if raw_tree is None:
            raise ParseFailure("Parser returned no tree")

        tree = SyntaxTree(raw_tree, source=text, language=resolved)
        logger.debug(
            f"Parsed source (language={resolved} bytes={len(tree.source_bytes)} "
            f"has_error={tree.root.has_error})"
        )
        return tree

    def rewriter(self, tree: SyntaxTree) -> Rewriter:
        """Return a rewrite builder whose steps re-parse with the tree's language."""
        return Rewriter(tree, reparse=partial(self.parse, language=tree.language))

# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Tree-sitter structural and rewrite providers for JavaScript-family sources."""

from codesession.treesitter.languages import SUPPORTED_LANGUAGES
from codesession.treesitter.nodes import SyntaxTree, TreeNode
from codesession.treesitter.provider import TreeSitterProvider
from codesession.treesitter.rewriter import RewriteError, Rewriter

__all__ = [
    "SUPPORTED_LANGUAGES",
    "RewriteError",
    "Rewriter",
    "SyntaxTree",
    "TreeNode",
    "TreeSitterProvider",
]

# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Serve a code parsing and rewriting session over the Model Context Protocol."""

import argparse
import logging
import sys
from collections.abc import Callable
from typing import Any, TextIO

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from rich.console import Console
from rich.logging import RichHandler

from codesession.config import SessionConfig
from codesession.dispatcher import RESOURCE_URIS, Dispatcher, ToolResponse
from codesession.session import Session
from codesession.treesitter import SUPPORTED_LANGUAGES

logger = logging.getLogger(__name__)

SERVER_NAME = "codesession"
SERVER_INSTRUCTIONS = """\
Parse one JavaScript or TypeScript document, query its structure and rewrite it.

Start with parse_code (a file path or inline source). Query tools read the
loaded document; rewrite tools (rename_identifier, remove_unused_imports,
transform_code, insert_code) commit by default and return the new text.
Pass preview=true to see the result without changing the document.
"""
TRANSPORTS: tuple[str, ...] = ("stdio", "sse", "streamable-http")
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR")

Serve = Callable[[FastMCP, str], None]


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler on stderr.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=Console(stderr=True), rich_tracebacks=True, show_path=False
            )
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the server CLI parser.

    Returns:
        Configured argument parser instance.
    """
    defaults = SessionConfig()
    parser = argparse.ArgumentParser(
        prog="codesession-mcp",
        description="MCP server for parsing, querying and rewriting JS/TS code.",
    )
    parser.add_argument(
        "--transport",
        choices=TRANSPORTS,
        default="stdio",
        help="MCP transport to serve on.",
    )
    parser.add_argument(
        "--preview-chars",
        type=int,
        default=defaults.record_preview_chars,
        help="Characters of candidate text kept per transform history record.",
    )
    parser.add_argument(
        "--path-max-length",
        type=int,
        default=defaults.path_max_length,
        help="Inputs at least this long are never guessed to be file paths.",
    )
    parser.add_argument(
        "--language",
        choices=SUPPORTED_LANGUAGES,
        default=None,
        help="Language used when parse_code receives no hint.",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging severity threshold.",
    )
    return parser


def _raise_on_error(response: ToolResponse) -> str:
    if response.is_error:
        raise ToolError(response.to_text())
    return response.to_text()


def create_server(dispatcher: Dispatcher) -> FastMCP:
    """Create the MCP server with all tools and resources registered.

    Args:
        dispatcher: Dispatcher bound to the session the server exposes.

    Returns:
        FastMCP server instance.
    """
    mcp = FastMCP(SERVER_NAME, instructions=SERVER_INSTRUCTIONS)

    @mcp.tool()
    def parse_code(
        source: str, isFilePath: bool | None = None, language: str | None = None
    ) -> str:
        """Parse a file path or inline source and make it the current document.

        Args:
            source: File path or source text.
            isFilePath: Force path (true) or inline (false); guessed when omitted.
            language: javascript, jsx, typescript or tsx; detected when omitted.
        """
        return _raise_on_error(
            dispatcher.call(
                "parse_code",
                {"source": source, "isFilePath": isFilePath, "language": language},
            )
        )

    @mcp.tool()
    def find_pattern(pattern: str) -> str:
        """Find the first node matching a pattern such as function[async]."""
        return _raise_on_error(dispatcher.call("find_pattern", {"pattern": pattern}))

    @mcp.tool()
    def find_all_pattern(pattern: str, limit: int | None = None) -> str:
        """Find every node matching a pattern, optionally limited."""
        return _raise_on_error(
            dispatcher.call("find_all_pattern", {"pattern": pattern, "limit": limit})
        )

    @mcp.tool()
    def get_functions(includeAnonymous: bool = True, asyncOnly: bool = False) -> str:
        """List functions with name, location and async flag."""
        return _raise_on_error(
            dispatcher.call(
                "get_functions",
                {"includeAnonymous": includeAnonymous, "asyncOnly": asyncOnly},
            )
        )

    @mcp.tool()
    def get_classes(includeProperties: bool = True, includeMethods: bool = True) -> str:
        """List classes with their methods and properties."""
        return _raise_on_error(
            dispatcher.call(
                "get_classes",
                {"includeProperties": includeProperties, "includeMethods": includeMethods},
            )
        )

    @mcp.tool()
    def get_imports(includeTypeImports: bool = True) -> str:
        """List import statements with module and specifiers."""
        return _raise_on_error(
            dispatcher.call("get_imports", {"includeTypeImports": includeTypeImports})
        )

    @mcp.tool()
    def rename_identifier(oldName: str, newName: str, preview: bool = False) -> str:
        """Rename every identifier spelled oldName (not strings or comments)."""
        return _raise_on_error(
            dispatcher.call(
                "rename_identifier",
                {"oldName": oldName, "newName": newName, "preview": preview},
            )
        )

    @mcp.tool()
    def remove_unused_imports(preview: bool = False) -> str:
        """Remove import specifiers that are never referenced."""
        return _raise_on_error(
            dispatcher.call("remove_unused_imports", {"preview": preview})
        )

    @mcp.tool()
    def transform_code(operations: list[dict[str, Any]], preview: bool = False) -> str:
        """Apply several rewrite operations in order as one all-or-nothing change.

        Each operation is {"type": ..., "parameters": {...}} with type one of
        rename (oldName, newName), removeUnusedImports, replaceIn (nodeType,
        pattern, replacement), insertBefore (pattern, text) or insertAfter
        (pattern, text). A replaceIn pattern written as /regex/flags is a
        regular expression.
        """
        return _raise_on_error(
            dispatcher.call(
                "transform_code", {"operations": operations, "preview": preview}
            )
        )

    @mcp.tool()
    def insert_code(pattern: str, code: str, position: str, preview: bool = False) -> str:
        """Insert code on its own line before or after every node matching pattern.

        Args:
            pattern: Structural pattern locating the anchor nodes.
            code: Code to insert.
            position: "before" or "after".
            preview: Return the result without changing the document.
        """
        return _raise_on_error(
            dispatcher.call(
                "insert_code",
                {"pattern": pattern, "code": code, "position": position, "preview": preview},
            )
        )

    @mcp.tool()
    def get_node_at_position(line: int, column: int) -> str:
        """Describe the node at a 1-based line and 0-based column."""
        return _raise_on_error(
            dispatcher.call("get_node_at_position", {"line": line, "column": column})
        )

    @mcp.tool()
    def analyze_scopes(includeBuiltins: bool = False) -> str:
        """Report scopes, bindings, shadowing, unused bindings and globals."""
        return _raise_on_error(
            dispatcher.call("analyze_scopes", {"includeBuiltins": includeBuiltins})
        )

    for uri, description in RESOURCE_URIS.items():
        _register_resource(mcp, dispatcher, uri, description)

    logger.debug(f"Server created (name={SERVER_NAME} resources={len(RESOURCE_URIS)})")
    return mcp


def _register_resource(
    mcp: FastMCP, dispatcher: Dispatcher, uri: str, description: str
) -> None:
    @mcp.resource(
        uri,
        name=uri.removeprefix("ast://"),
        description=description,
        mime_type="application/json",
    )
    def read() -> str:
        return dispatcher.read_resource_text(uri)


def _serve(mcp: FastMCP, transport: str) -> None:
    mcp.run(transport=transport)  # type: ignore[arg-type]


def run(
    argv: list[str], stdout: TextIO, stderr: TextIO, serve: Serve = _serve
) -> int:
    """Run the server.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.
        serve: Callable that runs the server on a transport.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning(f"Argument parsing failed (argv={argv})")
        return 2
    logging.getLogger().setLevel(args.log_level)

    try:
        config = SessionConfig(
            record_preview_chars=args.preview_chars,
            path_max_length=args.path_max_length,
            default_language=args.language,
        )
    except ValueError as exc:
        logger.warning(f"Invalid configuration (error={exc})")
        stderr.write(f"Invalid configuration: {exc}\n")
        return 2

    dispatcher = Dispatcher(Session.create(config))
    mcp = create_server(dispatcher)
    logger.info(f"Serving session (transport={args.transport} language={args.language or 'auto'})")
    serve(mcp, args.transport)
    return 0


def main() -> None:
    """Run the server and exit."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()

# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Error taxonomy for session operations."""


class SessionError(RuntimeError):
    """Represent a failure surfaced to the caller of a session operation."""

    kind: str = "SessionError"


class NoDocumentLoaded(SessionError):
    """Represent an operation attempted before any document was loaded."""

    kind = "NoDocumentLoaded"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "No document loaded. Please use parse_code first.")


class NotFound(SessionError):
    """Represent a file path that does not resolve to a readable file."""

    kind = "NotFound"


class ParseFailure(SessionError):
    """Represent source text rejected outright by the structural provider."""

    kind = "ParseFailure"


class UnknownOperation(SessionError):
    """Represent an unrecognized rewrite operation tag in a batch."""

    kind = "UnknownOperation"


class MalformedOperation(UnknownOperation):
    """Represent a recognized rewrite operation with unusable parameters."""

    kind = "MalformedOperation"


class PatternError(SessionError):
    """Represent a malformed or non-matching structural pattern."""

    kind = "PatternError"

    def __init__(self, pattern: str, detail: str) -> None:
        super().__init__(f"Pattern error in '{pattern}': {detail}")
        self.pattern = pattern
        self.detail = detail


class ProviderFailure(SessionError):
    """Represent any other structural or rewrite provider failure."""

    kind = "ProviderFailure"


class InvalidArguments(SessionError):
    """Represent a request whose arguments are missing or of the wrong type."""

    kind = "InvalidArguments"

# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Session configuration values."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionConfig:
    """Describe tunable limits for one session process.

    Attributes:
        record_preview_chars: Candidate text kept in each transform record.
        match_text_chars: Node text kept by single-node query responses.
        list_text_chars: Node text kept per item by multi-match responses.
        function_text_chars: Node text kept per item by the functions facet.
        path_max_length: Upper bound (exclusive) for treating input as a path.
        default_language: Language hint used when a load supplies none.
    """

    record_preview_chars: int = 500
    match_text_chars: int = 200
    list_text_chars: int = 100
    function_text_chars: int = 150
    path_max_length: int = 200
    default_language: str | None = None

    def __post_init__(self) -> None:
        for field_name in (
            "record_preview_chars",
            "match_text_chars",
            "list_text_chars",
            "function_text_chars",
            "path_max_length",
        ):
            value = getattr(self, field_name)
            if value <= 0:
                raise ValueError(f"{field_name} must be > 0 (got {value})")


def truncate(text: str, limit: int) -> str:
    """Truncate text to ``limit`` characters, appending an ellipsis marker.

    Args:
        text: Text to shorten.
        limit: Maximum kept characters.

    Returns:
        The original text, or its first ``limit`` characters followed by ``...``.
    """
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."

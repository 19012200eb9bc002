"""Base error definitions for takeout_organizer."""

from typing import Any, Dict


class OrganizerError(Exception):
    """Base exception for all takeout_organizer errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

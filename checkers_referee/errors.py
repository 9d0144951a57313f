"""
Exception hierarchy for the checkers referee.

Only broken invariants and configuration problems are raised. An illegal
*move* is adversarial input and is reported as a Rejection by the validator,
never raised.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "CheckersError",
    "ConfigurationError",
    "InvalidBoardError",
    "InvalidTurnError",
]


class CheckersError(Exception):
    """Base exception for all checkers referee errors.

    Attributes:
        code: Machine-readable error code
        message: Human-readable description
        context: Additional context for debugging
    """

    code: str = "CHECKERS_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class InvalidBoardError(CheckersError):
    """A board cell holds neither EMPTY nor a well-formed piece, or cells are missing."""

    code: str = "INVALID_BOARD"


class InvalidTurnError(CheckersError):
    """The committed turn index handed in by the platform is not 0 or 1."""

    code: str = "INVALID_TURN"


class ConfigurationError(CheckersError):
    """Configuration values or files could not be loaded."""

    code: str = "CONFIGURATION_ERROR"

"""Error taxonomy for inkwell services.

Services raise these; callers (CLI, HTTP layer) map them to user-facing
responses.  Nothing in the core retries on them except a single slug
re-allocation after a ConflictError.
"""

from __future__ import annotations


class InkwellError(Exception):
    """Base class for all errors raised by inkwell services."""


class InputValidationError(InkwellError):
    """A required field is missing or malformed.  Never persisted."""

    def __init__(self, errors: list[str] | str) -> None:
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))


class NotFoundError(InkwellError):
    """A referenced entity does not exist."""

    def __init__(self, kind: str, key: object) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class ForbiddenError(InkwellError):
    """The actor lacks permission for the requested action."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Not allowed to {action}")


class ConflictError(InkwellError):
    """A uniqueness or referential constraint would be violated."""


class DependencyError(InkwellError):
    """The repository or asset host failed."""

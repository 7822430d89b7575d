"""Errors raised by the category assignment workflow.

Every error here is recoverable by a user retry. The controller converts
them into selection state instead of letting them propagate.
"""


class CategoryWorkflowError(Exception):
    """Base class for assignment workflow failures."""

    kind = "error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LookupFailure(CategoryWorkflowError):
    """A taxonomy search, browse or id lookup failed."""

    kind = "lookup"


class ValidationFailure(CategoryWorkflowError):
    """A confirm action was attempted with missing or invalid input."""

    kind = "validation"


class CreationConflict(CategoryWorkflowError):
    """The backend rejected creation of a tenant category."""

    kind = "creation"


class AssignmentFailure(CategoryWorkflowError):
    """The backend rejected applying a category to an item."""

    kind = "assignment"

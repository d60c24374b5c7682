"""BranchTree exception hierarchy.

All BranchTree-specific exceptions inherit from BranchTreeError.
"""


class BranchTreeError(Exception):
    """Base exception for all BranchTree errors."""


class NotFoundError(BranchTreeError):
    """Base for lookups of records that do not exist."""


class MessageNotFoundError(NotFoundError):
    """Raised when a message id lookup fails."""

    def __init__(self, message_id: str) -> None:
        self.message_id = message_id
        super().__init__(f"Message not found: {message_id}")


class BranchNotFoundError(NotFoundError):
    """Raised when a branch id lookup fails."""

    def __init__(self, branch_id: str) -> None:
        self.branch_id = branch_id
        super().__init__(f"Branch not found: {branch_id}")


class InvalidOperationError(BranchTreeError):
    """Raised when an operation is not valid for the current tree state."""


class TopLevelMergeError(InvalidOperationError):
    """Raised when merging a branch that has no parent branch."""

    def __init__(self, branch_id: str) -> None:
        self.branch_id = branch_id
        super().__init__(
            f"Branch {branch_id} is a top-level conversation and has nothing to merge into"
        )


class EmptyBranchError(InvalidOperationError):
    """Raised when an operation needs messages but the branch has none."""

    def __init__(self, branch_id: str) -> None:
        self.branch_id = branch_id
        super().__init__(f"Branch {branch_id} has no messages")


class AlreadyMergedError(InvalidOperationError):
    """Raised when merging a branch that was already merged."""

    def __init__(self, branch_id: str) -> None:
        self.branch_id = branch_id
        super().__init__(f"Branch {branch_id} is already merged")


class InvalidBranchNameError(InvalidOperationError):
    """Raised when a branch name violates naming rules."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid branch name {name!r}: {reason}")


class IntegrityViolationError(BranchTreeError):
    """Raised when the stored tree is inconsistent.

    Signals corruption (e.g. a merge insertion point that cannot be
    resolved). Never downgraded to a fallback.
    """

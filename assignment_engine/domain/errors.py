"""Domain exceptions.

Only non-recoverable outcomes are raised. Unassignable accounts and locked
accounts met during a cascade are reported as data (warnings and cascade
states), never as exceptions.
"""


class AssignmentEngineError(Exception):
    """Base class for every error raised by the engine."""


class ConfigurationError(AssignmentEngineError):
    """Rule or capacity configuration is inconsistent; rejected before a pass."""


class AccountNotFoundError(AssignmentEngineError):
    def __init__(self, account_id: str):
        super().__init__(f"Account not found: {account_id}")
        self.account_id = account_id


class InvalidManualTargetError(AssignmentEngineError):
    """The requested new owner does not exist or cannot receive accounts."""

    def __init__(self, rep_id: str, reason: str):
        super().__init__(f"Invalid manual target {rep_id}: {reason}")
        self.rep_id = rep_id
        self.reason = reason


class InvalidLockReasonError(AssignmentEngineError):
    pass


class InvalidTransitionError(AssignmentEngineError):
    """A cascade plan was driven through a transition its state machine forbids."""

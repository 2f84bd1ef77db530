"""
Typed errors raised by the authorization and workflow core.

Decision functions raise these and never log or swallow them. The HTTP layer
(see `freight_core.main`) maps every `CoreError` to `{"error": str(exc)}` with
the class' `status_code`.
"""

from __future__ import annotations


class CoreError(Exception):
    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


# ---- Access ----------------------------------------------------------------------------


class AccessDenied(CoreError):
    status_code = 403


class EntityInvisible(AccessDenied):
    """
    Respond exactly as if the record did not exist.

    Raised both for genuinely missing ids and for private records the caller has
    no ownership relation to, so the two cases cannot be told apart.
    """

    status_code = 404

    def __init__(self, entity_label: str) -> None:
        super().__init__(f"{entity_label} not found")
        self.entity_label = entity_label


class AccessForbidden(AccessDenied):
    status_code = 403


class WrongCounterparty(AccessForbidden):
    """The caller knows the request exists but is not the side that must answer it."""


# ---- Workflow --------------------------------------------------------------------------


class IllegalTransition(CoreError):
    status_code = 400


class UnknownStatus(IllegalTransition):
    def __init__(self, raw: object, workflow: str) -> None:
        super().__init__(f"Unknown {workflow} status: {raw!r}")
        self.raw = raw


class StaleWorkflowState(IllegalTransition):
    """A concurrent request changed the record between read and write."""

    status_code = 409


class ExpiredWorkflowItem(CoreError):
    status_code = 400


# ---- Ledger ----------------------------------------------------------------------------


class LedgerError(CoreError):
    status_code = 409


class LedgerInsufficientFunds(LedgerError):
    status_code = 402

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Insufficient balance in account {account_id}")
        self.account_id = account_id


class LedgerAccountNotFound(LedgerError):
    status_code = 409

    def __init__(self, account_ids: list[str]) -> None:
        super().__init__(f"Settlement account not found: {', '.join(sorted(account_ids))}")
        self.account_ids = tuple(sorted(account_ids))


class InvalidLedgerOperation(LedgerError):
    status_code = 400

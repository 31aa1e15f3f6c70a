# Ledger Errors
# Typed failures raised by the campaign services and rendered by the API layer

from typing import Optional
from fastapi import HTTPException, status


class LedgerError(HTTPException):
    """Base class for campaign ledger failures. Carries a toast-style title and description."""

    kind = "ledger_error"
    title = "Operation failed"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, description: str, title: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(status_code=status_code or self.status_code, detail=description)
        self.description = description
        if title:
            self.title = title

    def to_dict(self) -> dict:
        return {"kind": self.kind, "title": self.title, "description": self.description}


class AuthorizationError(LedgerError):
    kind = "authorization"
    title = "Not authorized"
    status_code = status.HTTP_403_FORBIDDEN


class BudgetExceededError(LedgerError):
    kind = "budget_exceeded"
    title = "Budget exceeded"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, remaining_after: int, description: Optional[str] = None):
        self.remaining_after = remaining_after
        super().__init__(
            description or f"This invitation would exceed your campaign budget. Remaining budget: {remaining_after}"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["remaining_after"] = self.remaining_after
        return data


class DuplicateInvitationError(LedgerError):
    kind = "duplicate"
    title = "Already invited"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, description: str = "This creator has already been invited to this campaign"):
        super().__init__(description)


class NotFoundError(LedgerError):
    kind = "not_found"
    title = "Not found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found" + (f": {entity_id}" if entity_id else ""))


class InvalidTransitionError(LedgerError):
    kind = "invalid_transition"
    title = "Invalid status change"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, entity: str, current: str, target: str, description: Optional[str] = None):
        self.current = current
        self.target = target
        super().__init__(description or f"Cannot move {entity} from '{current}' to '{target}'")


class NegotiationConflictError(LedgerError):
    kind = "negotiation_conflict"
    title = "Negotiation already resolved"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, description: str = "This proposal has already been answered"):
        super().__init__(description)


class PersistenceError(LedgerError):
    kind = "persistence"
    title = "Could not save changes"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

# Negotiations Router for the Campaign Ledger
# Counter-offers on an invitation's payout, deliverables and timeline

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User
from database.campaign_models import CampaignNegotiation
from schemas.campaigns import CounterOfferCreate, NegotiationRespond
from auth.roles import Permission
from auth.decorators import require_permission
from services.negotiation_service import NegotiationService
from routers.campaigns import _participant_to_response
from routers.invitations import _invitation_to_response
from routers.common import commit

router = APIRouter(prefix="/invitations/{invitation_id}/negotiations", tags=["Negotiations"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_counter_offer(
    invitation_id: str,
    offer_data: CounterOfferCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.NEGOTIATE))
):
    """
    Propose new terms. Either the brand or the invited creator may propose;
    a pending invitation moves to negotiating.
    """
    negotiation = NegotiationService(db).submit_counter_offer(
        actor=current_user,
        invitation_id=invitation_id,
        message=offer_data.message,
        proposed_payout=offer_data.proposed_payout,
        proposed_deliverables=_dump_deliverables(offer_data.proposed_deliverables),
        proposed_timeline_start=offer_data.proposed_timeline_start,
        proposed_timeline_end=offer_data.proposed_timeline_end,
    )
    commit(db, "submit the proposal")
    db.refresh(negotiation)

    return _negotiation_to_response(negotiation)


@router.get("")
async def get_negotiation_history(
    invitation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.NEGOTIATE))
):
    """All proposals on the invitation, newest first."""
    negotiations = NegotiationService(db).get_negotiation_history(current_user, invitation_id)
    return {"negotiations": [_negotiation_to_response(n) for n in negotiations]}


@router.get("/active")
async def get_active_negotiation(
    invitation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.NEGOTIATE))
):
    negotiation = NegotiationService(db).get_active_negotiation(current_user, invitation_id)
    return {"negotiation": _negotiation_to_response(negotiation) if negotiation else None}


@router.post("/{negotiation_id}/respond")
async def respond_to_negotiation(
    invitation_id: str,
    negotiation_id: str,
    response_data: NegotiationRespond,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.NEGOTIATE))
):
    """
    Accept, reject or counter the other party's proposal.

    Accepting applies the proposed terms and accepts the invitation. A second
    response to the same proposal gets 409.
    """
    result = NegotiationService(db).respond_to_negotiation(
        actor=current_user,
        negotiation_id=negotiation_id,
        response=response_data.response.value,
        invitation_id=invitation_id,
        counter_payout=response_data.counter_payout,
        counter_message=response_data.counter_message,
        counter_deliverables=_dump_deliverables(response_data.counter_deliverables),
        counter_timeline_start=response_data.counter_timeline_start,
        counter_timeline_end=response_data.counter_timeline_end,
    )
    commit(db, "respond to the proposal")
    db.refresh(result["negotiation"])
    db.refresh(result["invitation"])

    return {
        "negotiation": _negotiation_to_response(result["negotiation"]),
        "invitation": _invitation_to_response(result["invitation"]),
        "counter": _negotiation_to_response(result["counter"]) if result["counter"] else None,
        "participant": _participant_to_response(result["participant"]) if result["participant"] else None,
        "budget_warning": result["budget_warning"],
    }


# ============================================================================
# HELPERS
# ============================================================================

def _dump_deliverables(deliverables):
    if deliverables is None:
        return None
    return [d.model_dump(mode="json") for d in deliverables]


def _negotiation_to_response(negotiation: CampaignNegotiation) -> dict:
    return {
        "id": negotiation.id,
        "invitation_id": negotiation.invitation_id,
        "sequence": negotiation.sequence,
        "proposed_by": negotiation.proposed_by.value,
        "proposed_payout": negotiation.proposed_payout,
        "proposed_deliverables": negotiation.proposed_deliverables,
        "proposed_timeline_start": negotiation.proposed_timeline_start,
        "proposed_timeline_end": negotiation.proposed_timeline_end,
        "message": negotiation.message,
        "status": negotiation.status.value,
        "created_at": negotiation.created_at,
        "responded_at": negotiation.responded_at,
    }

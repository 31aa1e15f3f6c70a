# Invitations Router for the Campaign Ledger
# Brand -> creator invitations: invite, re-price, withdraw, accept, decline

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from database.config import get_db
from database.models import User
from database.campaign_models import CampaignInvitation, InvitationStatusDB
from schemas.campaigns import (
    InvitationCreate,
    InvitationStatus,
    PayoutUpdate,
    DeclineRequest,
    NegotiationImpactRequest,
)
from auth.roles import UserType as UserTypeRole, Permission
from auth.decorators import require_user_type, require_permission
from services.errors import AuthorizationError
from services.invitation_service import InvitationService
from routers.campaigns import _participant_to_response
from routers.common import commit

router = APIRouter(tags=["Invitations"])


# ============================================================================
# BRAND ENDPOINTS
# ============================================================================

@router.post("/campaigns/{campaign_id}/invitations", status_code=status.HTTP_201_CREATED)
async def invite_creator(
    campaign_id: str,
    invitation_data: InvitationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.INVITE_CREATORS))
):
    """
    Invite a creator at an offered payout (cents).

    Fails with 400 when the offer does not fit the remaining budget and with
    409 when the creator was already invited to this campaign.
    """
    invitation = InvitationService(db).invite_creator(
        actor=current_user,
        campaign_id=campaign_id,
        creator_user_id=invitation_data.creator_user_id,
        base_payout=invitation_data.base_payout,
        offered_payout=invitation_data.offered_payout,
        deliverables=[d.model_dump(mode="json") for d in invitation_data.deliverables],
        timeline_start=invitation_data.timeline_start,
        timeline_end=invitation_data.timeline_end,
        special_requirements=invitation_data.special_requirements,
    )
    commit(db, "send the invitation")
    db.refresh(invitation)

    return _invitation_to_response(invitation)


@router.get("/campaigns/{campaign_id}/invitations")
async def list_campaign_invitations(
    campaign_id: str,
    status: Optional[InvitationStatus] = Query(None, description="Filter by invitation status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    invitations = InvitationService(db).list_campaign_invitations(
        current_user, campaign_id, InvitationStatusDB(status.value) if status else None
    )
    return {
        "invitations": [_invitation_to_response(i) for i in invitations],
        "total": len(invitations),
    }


@router.post("/campaigns/{campaign_id}/invitations/{invitation_id}/withdraw")
async def withdraw_invitation(
    campaign_id: str,
    invitation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_CAMPAIGNS))
):
    """
    Withdraw a pending invitation and give its payout back to the budget.
    """
    invitation = InvitationService(db).withdraw_invitation(current_user, invitation_id, campaign_id)
    commit(db, "withdraw the invitation")
    db.refresh(invitation)

    return _invitation_to_response(invitation)


@router.patch("/campaigns/{campaign_id}/invitations/{invitation_id}/payout")
async def update_invitation_payout(
    campaign_id: str,
    invitation_id: str,
    payout_data: PayoutUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_CAMPAIGNS))
):
    """
    Change the offered payout. The response carries a budget_warning when the
    campaign is now allocated beyond its total budget.
    """
    result = InvitationService(db).update_invitation_payout(
        current_user, invitation_id, payout_data.new_payout, campaign_id
    )
    commit(db, "update the payout")
    db.refresh(result["invitation"])

    return {
        "invitation": _invitation_to_response(result["invitation"]),
        "budget_warning": result["budget_warning"],
    }


@router.post("/invitations/{invitation_id}/negotiation-impact")
async def get_negotiation_impact(
    invitation_id: str,
    impact_data: NegotiationImpactRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    """
    Preview what granting a requested payout would do to the remaining budget
    and to how many more creators the campaign can afford.
    """
    service = InvitationService(db)
    invitation = service.get_invitation(invitation_id)
    if invitation.campaign.brand_user_id != current_user.id:
        raise AuthorizationError("Only the campaign owner can review negotiation impact")

    return service.ledger.calculate_negotiation_impact(invitation_id, impact_data.requested_payout)


# ============================================================================
# CREATOR ENDPOINTS
# ============================================================================

@router.get("/invitations")
async def list_my_invitations(
    status: Optional[InvitationStatus] = Query(None, description="Filter by invitation status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.CREATOR))
):
    invitations = InvitationService(db).list_creator_invitations(
        current_user, InvitationStatusDB(status.value) if status else None
    )
    return {
        "invitations": [_invitation_to_response(i, include_campaign=True) for i in invitations],
        "total": len(invitations),
    }


@router.post("/invitations/{invitation_id}/accept")
async def accept_invitation(
    invitation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RESPOND_TO_INVITATIONS))
):
    """
    Accept an invitation. The creator joins the campaign and their payout is held.
    """
    result = InvitationService(db).accept_invitation(current_user, invitation_id)
    commit(db, "accept the invitation")
    db.refresh(result["invitation"])

    return {
        "invitation": _invitation_to_response(result["invitation"]),
        "participant": _participant_to_response(result["participant"]),
        "reserved_amount": result["reservation"].reserved_amount,
    }


@router.post("/invitations/{invitation_id}/decline")
async def decline_invitation(
    invitation_id: str,
    decline_data: Optional[DeclineRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RESPOND_TO_INVITATIONS))
):
    """
    Decline an invitation. The freed payout returns to the campaign budget,
    optionally shared out across the campaign's other open invitations.
    """
    redistribute = decline_data.redistribute_to_existing if decline_data else False
    result = InvitationService(db).decline_invitation(current_user, invitation_id, redistribute)
    commit(db, "decline the invitation")
    db.refresh(result["invitation"])

    return {
        "invitation": _invitation_to_response(result["invitation"]),
        "budget": result["budget"],
    }


# ============================================================================
# HELPERS
# ============================================================================

def _invitation_to_response(invitation: CampaignInvitation, include_campaign: bool = False) -> dict:
    data = {
        "id": invitation.id,
        "campaign_id": invitation.campaign_id,
        "creator_user_id": invitation.creator_user_id,
        "base_payout": invitation.base_payout,
        "offered_payout": invitation.offered_payout,
        "negotiated_delta": invitation.negotiated_delta,
        "total_payout": invitation.total_payout,
        "deliverables": invitation.deliverables or [],
        "timeline_start": invitation.timeline_start,
        "timeline_end": invitation.timeline_end,
        "special_requirements": invitation.special_requirements,
        "status": invitation.status.value if invitation.status else None,
        "created_at": invitation.created_at,
        "updated_at": invitation.updated_at,
        "responded_at": invitation.responded_at,
    }
    if include_campaign and invitation.campaign:
        data["campaign"] = {
            "id": invitation.campaign.id,
            "name": invitation.campaign.name,
            "status": invitation.campaign.status.value,
            "timeline_start": invitation.campaign.timeline_start,
            "timeline_end": invitation.campaign.timeline_end,
        }
    return data

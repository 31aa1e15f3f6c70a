# Campaigns Router for the Campaign Ledger
# Campaign setup, budget views, participants and deliverables

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from database.config import get_db
from database.models import User
from database.campaign_models import Campaign, CampaignDeliverable, CampaignParticipant, CampaignStatusDB
from schemas.campaigns import (
    CampaignCreate,
    CampaignStatus,
    BudgetImpactRequest,
    CompleteParticipation,
    SubmissionCreate,
)
from auth.roles import UserType as UserTypeRole, Permission
from auth.decorators import require_user_type, require_permission
from services.budget_ledger import BudgetLedger
from services.campaign_service import CampaignService
from routers.common import commit

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])


# ============================================================================
# BRAND ENDPOINTS (Create & Manage Campaigns)
# ============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_campaign(
    campaign_data: CampaignCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.CREATE_CAMPAIGNS))
):
    """
    Create a campaign in draft. Nothing is allocated until creators are invited.
    """
    campaign = CampaignService(db).create_campaign(
        actor=current_user,
        name=campaign_data.name,
        description=campaign_data.description,
        total_budget=campaign_data.total_budget,
        influencer_count=campaign_data.influencer_count,
        base_payout_per_influencer=campaign_data.base_payout_per_influencer,
        timeline_start=campaign_data.timeline_start,
        timeline_end=campaign_data.timeline_end,
        deliverables=[
            {
                "title": d.title,
                "deliverable_type": d.deliverable_type.value,
                "description": d.description,
                "required_by": d.required_by,
            }
            for d in campaign_data.deliverables
        ],
    )
    commit(db, "create the campaign")
    db.refresh(campaign)

    return _campaign_to_response(campaign, include_deliverables=True)


@router.get("")
async def list_my_campaigns(
    status: Optional[CampaignStatus] = Query(None, description="Filter by campaign status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    """List the current brand's campaigns, newest first."""
    campaigns = CampaignService(db).list_brand_campaigns(
        current_user, CampaignStatusDB(status.value) if status else None
    )
    return {
        "campaigns": [_campaign_to_response(c) for c in campaigns],
        "total": len(campaigns),
    }


@router.get("/{campaign_id}")
async def get_campaign(
    campaign_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_CAMPAIGNS))
):
    campaign = CampaignService(db).get_campaign(current_user, campaign_id)
    return _campaign_to_response(campaign, include_deliverables=True)


@router.post("/{campaign_id}/publish")
async def publish_campaign(
    campaign_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_CAMPAIGNS))
):
    """
    Move a draft campaign into discovery so creators can be invited.
    """
    campaign = CampaignService(db).publish_campaign(current_user, campaign_id)
    commit(db, "publish the campaign")
    db.refresh(campaign)

    return _campaign_to_response(campaign)


# ============================================================================
# BUDGET
# ============================================================================

@router.get("/{campaign_id}/budget")
async def get_budget_summary(
    campaign_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    """
    Budget breakdown recomputed from the campaign's invitations.
    """
    CampaignService(db).get_campaign(current_user, campaign_id)
    return BudgetLedger(db).get_campaign_budget_summary(campaign_id)


@router.post("/{campaign_id}/budget-impact")
async def get_budget_impact(
    campaign_id: str,
    impact_data: BudgetImpactRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    """
    Preview what offering a payout would do to the budget. Nothing is written.
    """
    CampaignService(db).get_campaign(current_user, campaign_id)
    return BudgetLedger(db).calculate_budget_impact(campaign_id, impact_data.proposed_payout)


# ============================================================================
# PARTICIPANTS
# ============================================================================

@router.get("/{campaign_id}/participants")
async def list_participants(
    campaign_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_CAMPAIGNS))
):
    participants = CampaignService(db).list_participants(current_user, campaign_id)
    return {"participants": [_participant_to_response(p) for p in participants]}


@router.post("/{campaign_id}/participants/{participant_id}/complete")
async def complete_participation(
    campaign_id: str,
    participant_id: str,
    completion_data: CompleteParticipation,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_CAMPAIGNS))
):
    """
    Mark a participant's work as complete. Once every participant is complete
    the lifecycle sweep closes a reviewing campaign.
    """
    participant = CampaignService(db).complete_participation(
        current_user, campaign_id, participant_id, completion_data.final_payout
    )
    commit(db, "complete the participation")
    db.refresh(participant)

    return _participant_to_response(participant)


# ============================================================================
# DELIVERABLES
# ============================================================================

@router.get("/{campaign_id}/deliverables")
async def list_deliverables(
    campaign_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_CAMPAIGNS))
):
    deliverables = CampaignService(db).list_deliverables(current_user, campaign_id)
    return {"deliverables": [_deliverable_to_response(d) for d in deliverables]}


@router.post("/deliverables/{deliverable_id}/submissions", status_code=status.HTTP_201_CREATED)
async def submit_deliverable(
    deliverable_id: str,
    submission_data: SubmissionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.SUBMIT_DELIVERABLES))
):
    """
    Submit content for a deliverable. Resubmitting replaces the earlier link.
    """
    submission = CampaignService(db).submit_deliverable(
        current_user, deliverable_id, submission_data.submission_url, submission_data.submission_type
    )
    commit(db, "save the submission")
    db.refresh(submission)

    return {
        "id": submission.id,
        "campaign_id": submission.campaign_id,
        "deliverable_id": submission.deliverable_id,
        "creator_user_id": submission.creator_user_id,
        "submission_url": submission.submission_url,
        "submission_type": submission.submission_type,
        "status": submission.status,
        "submitted_at": submission.submitted_at,
    }


# ============================================================================
# HELPERS
# ============================================================================

def _campaign_to_response(campaign: Campaign, include_deliverables: bool = False) -> dict:
    data = {
        "id": campaign.id,
        "brand_user_id": campaign.brand_user_id,
        "name": campaign.name,
        "description": campaign.description,
        "total_budget": campaign.total_budget,
        "allocated_budget": campaign.allocated_budget,
        "remaining_budget": campaign.remaining_budget,
        "influencer_count": campaign.influencer_count,
        "base_payout_per_influencer": campaign.base_payout_per_influencer,
        "timeline_start": campaign.timeline_start,
        "timeline_end": campaign.timeline_end,
        "status": campaign.status.value if campaign.status else None,
        "status_changed_at": campaign.status_changed_at,
        "version": campaign.version,
        "created_at": campaign.created_at,
        "updated_at": campaign.updated_at,
    }
    if include_deliverables:
        data["deliverables"] = [_deliverable_to_response(d) for d in campaign.deliverables]
    return data


def _deliverable_to_response(deliverable: CampaignDeliverable) -> dict:
    return {
        "id": deliverable.id,
        "campaign_id": deliverable.campaign_id,
        "deliverable_index": deliverable.deliverable_index,
        "title": deliverable.title,
        "deliverable_type": deliverable.deliverable_type,
        "description": deliverable.description,
        "required_by": deliverable.required_by,
    }


def _participant_to_response(participant: CampaignParticipant) -> dict:
    return {
        "id": participant.id,
        "campaign_id": participant.campaign_id,
        "invitation_id": participant.invitation_id,
        "creator_user_id": participant.creator_user_id,
        "status": participant.status.value if participant.status else None,
        "final_payout": participant.final_payout,
        "joined_at": participant.joined_at,
        "completed_at": participant.completed_at,
    }

# Campaign Service
# Brand-side campaign setup and the participant / deliverable bookkeeping the lifecycle sweep reads

from datetime import date, datetime
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from database.models import User, UserType
from database.campaign_models import (
    Campaign, CampaignDeliverable, CampaignParticipant, CreatorSubmission, BudgetReservation,
    CampaignStatusDB, ParticipantStatusDB, ReservationStatusDB,
)
from services.budget_ledger import BudgetLedger
from services.campaign_lifecycle import CampaignLifecycleService
from services.errors import AuthorizationError, InvalidTransitionError, NotFoundError
from services.notification_service import NotificationService, NotificationType

logger = logging.getLogger(__name__)


class CampaignService:
    def __init__(self, db: Session, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)
        self.ledger = BudgetLedger(db)
        self.lifecycle = CampaignLifecycleService(db, self.notifications)

    def create_campaign(
        self,
        actor: User,
        name: str,
        total_budget: int,
        influencer_count: int,
        description: Optional[str] = None,
        base_payout_per_influencer: Optional[int] = None,
        timeline_start: Optional[date] = None,
        timeline_end: Optional[date] = None,
        deliverables: Optional[List[dict]] = None,
    ) -> Campaign:
        """
        Create a campaign in draft with nothing allocated.

        ``base_payout_per_influencer`` defaults to an even split of the budget.
        ``deliverables`` is a list of {title, deliverable_type, description, required_by}.
        """
        if actor is None or actor.user_type not in (UserType.BRAND, UserType.ADMIN):
            raise AuthorizationError("Only brands can create campaigns")

        if base_payout_per_influencer is None:
            base_payout_per_influencer = total_budget // influencer_count if influencer_count else 0

        campaign = Campaign(
            brand_user_id=actor.id,
            name=name,
            description=description,
            total_budget=total_budget,
            allocated_budget=0,
            remaining_budget=total_budget,
            influencer_count=influencer_count,
            base_payout_per_influencer=base_payout_per_influencer,
            timeline_start=timeline_start,
            timeline_end=timeline_end,
            status=CampaignStatusDB.DRAFT,
            status_changed_at=datetime.utcnow(),
        )
        self.db.add(campaign)
        self.db.flush()

        for index, item in enumerate(deliverables or []):
            self.db.add(CampaignDeliverable(
                campaign_id=campaign.id,
                deliverable_index=index,
                title=item["title"],
                deliverable_type=item.get("deliverable_type", "post"),
                description=item.get("description"),
                required_by=item.get("required_by"),
            ))
        self.db.flush()

        logger.info(f"Campaign {campaign.id} created by {actor.id} with budget {total_budget}")
        return campaign

    def get_campaign(self, actor: User, campaign_id: str) -> Campaign:
        """Visible to the owning brand, admins and the campaign's participants."""
        campaign = self.ledger.get_campaign(campaign_id)
        if actor.id == campaign.brand_user_id or actor.user_type == UserType.ADMIN:
            return campaign
        if self._participant_for(campaign_id, actor.id) is None:
            raise AuthorizationError("You do not have access to this campaign")
        return campaign

    def list_brand_campaigns(self, actor: User, status: Optional[CampaignStatusDB] = None) -> List[Campaign]:
        query = self.db.query(Campaign).filter(Campaign.brand_user_id == actor.id)
        if status:
            query = query.filter(Campaign.status == status)
        return query.order_by(Campaign.created_at.desc()).all()

    def publish_campaign(self, actor: User, campaign_id: str) -> Campaign:
        """Open a draft campaign for creator discovery."""
        campaign = self.ledger.get_campaign(campaign_id)
        self._require_owner(actor, campaign)
        self.lifecycle.transition_campaign(campaign, CampaignStatusDB.DISCOVERY, "Published by brand")
        self.db.flush()
        return campaign

    def list_participants(self, actor: User, campaign_id: str) -> List[CampaignParticipant]:
        self.get_campaign(actor, campaign_id)
        return self.db.query(CampaignParticipant).filter(
            CampaignParticipant.campaign_id == campaign_id
        ).order_by(CampaignParticipant.joined_at).all()

    def complete_participation(self, actor: User, campaign_id: str, participant_id: str,
                               final_payout: Optional[int] = None) -> CampaignParticipant:
        """
        Mark a participant's work as done.

        The final payout defaults to the participant's held reservation, falling
        back to the invitation's total payout.
        """
        campaign = self.ledger.get_campaign(campaign_id)
        self._require_owner(actor, campaign)

        participant = self.db.get(CampaignParticipant, participant_id)
        if participant is None or participant.campaign_id != campaign_id:
            raise NotFoundError("participant", participant_id)
        if participant.status != ParticipantStatusDB.ACTIVE:
            raise InvalidTransitionError(
                "participant", participant.status.value, ParticipantStatusDB.COMPLETED.value,
            )

        if final_payout is None:
            reservation = self.db.query(BudgetReservation).filter(
                BudgetReservation.invitation_id == participant.invitation_id,
                BudgetReservation.reservation_status == ReservationStatusDB.HELD,
            ).first()
            final_payout = reservation.reserved_amount if reservation else participant.invitation.total_payout

        participant.status = ParticipantStatusDB.COMPLETED
        participant.final_payout = final_payout
        participant.completed_at = datetime.utcnow()
        self.db.flush()

        self.notifications.dispatch(
            user_id=participant.creator_user_id,
            type=NotificationType.CAMPAIGN_STATUS_CHANGED,
            title="Work Approved",
            message=f"Your work on '{campaign.name}' has been marked complete",
            action_url=f"/campaign/{campaign.id}",
            data={"campaign_id": campaign.id, "final_payout": final_payout},
        )
        logger.info(f"Participant {participant.id} completed campaign {campaign_id} for {final_payout}")
        return participant

    # =========================================================================
    # DELIVERABLES
    # =========================================================================

    def list_deliverables(self, actor: User, campaign_id: str) -> List[CampaignDeliverable]:
        campaign = self.get_campaign(actor, campaign_id)
        return list(campaign.deliverables)

    def submit_deliverable(self, actor: User, deliverable_id: str, submission_url: str,
                           submission_type: str = "link") -> CreatorSubmission:
        """Record (or replace) a participant's submission for a deliverable."""
        deliverable = self.db.get(CampaignDeliverable, deliverable_id)
        if deliverable is None:
            raise NotFoundError("deliverable", deliverable_id)

        participant = self._participant_for(deliverable.campaign_id, actor.id)
        if participant is None or participant.status != ParticipantStatusDB.ACTIVE:
            raise AuthorizationError("Only active participants can submit deliverables")

        submission = self.db.query(CreatorSubmission).filter(
            CreatorSubmission.deliverable_id == deliverable_id,
            CreatorSubmission.creator_user_id == actor.id,
        ).first()
        if submission:
            submission.submission_url = submission_url
            submission.submission_type = submission_type
            submission.status = "submitted"
        else:
            submission = CreatorSubmission(
                campaign_id=deliverable.campaign_id,
                deliverable_id=deliverable_id,
                creator_user_id=actor.id,
                submission_url=submission_url,
                submission_type=submission_type,
            )
            self.db.add(submission)
        self.db.flush()

        self.notifications.dispatch(
            user_id=deliverable.campaign.brand_user_id,
            type=NotificationType.SYSTEM,
            title="Deliverable Submitted",
            message=f"{actor.display_name} submitted \"{deliverable.title}\"",
            action_url=f"/campaign/{deliverable.campaign_id}",
            data={"campaign_id": deliverable.campaign_id, "deliverable_id": deliverable_id},
        )
        return submission

    def _participant_for(self, campaign_id: str, creator_user_id: str) -> Optional[CampaignParticipant]:
        return self.db.query(CampaignParticipant).filter(
            CampaignParticipant.campaign_id == campaign_id,
            CampaignParticipant.creator_user_id == creator_user_id,
        ).first()

    @staticmethod
    def _require_owner(actor: User, campaign: Campaign) -> None:
        if actor is None or campaign.brand_user_id != actor.id:
            raise AuthorizationError("Only the campaign owner can manage this campaign")

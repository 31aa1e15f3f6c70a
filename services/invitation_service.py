# Invitation Lifecycle
# Brand -> creator invitations, each status change paired with its budget side effect

from datetime import date, datetime
from typing import List, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.app_config import ENFORCE_BUDGET_ON_PAYOUT_CHANGES
from database.models import User
from database.campaign_models import (
    Campaign, CampaignInvitation, CampaignNegotiation, CampaignParticipant, BudgetReservation,
    InvitationStatusDB, NegotiationStatusDB, ParticipantStatusDB, ACTIVE_INVITATION_STATUSES,
)
from services.audit import record_status_change
from services.budget_ledger import BudgetLedger, utilization
from services.errors import (
    AuthorizationError, BudgetExceededError, DuplicateInvitationError,
    InvalidTransitionError, NotFoundError,
)
from services.notification_service import NotificationService, NotificationType
from services.transitions import ensure_invitation_transition

logger = logging.getLogger(__name__)


class InvitationService:
    """
    Invite, withdraw, re-price, accept and decline campaign invitations.

    Methods flush but never commit; the invitation write and the campaign
    allocation write land in the caller's single transaction.
    """

    def __init__(self, db: Session, notifications: Optional[NotificationService] = None,
                 enforce_budget_on_payout_changes: Optional[bool] = None):
        self.db = db
        self.ledger = BudgetLedger(db)
        self.notifications = notifications or NotificationService(db)
        if enforce_budget_on_payout_changes is None:
            enforce_budget_on_payout_changes = ENFORCE_BUDGET_ON_PAYOUT_CHANGES
        self.enforce_budget_on_payout_changes = enforce_budget_on_payout_changes

    # =========================================================================
    # BRAND ACTIONS
    # =========================================================================

    def invite_creator(
        self,
        actor: Optional[User],
        campaign_id: str,
        creator_user_id: str,
        base_payout: int,
        offered_payout: int,
        deliverables: Optional[List[dict]] = None,
        timeline_start: Optional[date] = None,
        timeline_end: Optional[date] = None,
        special_requirements: Optional[str] = None,
    ) -> CampaignInvitation:
        if actor is None:
            raise AuthorizationError("You must be logged in")

        campaign = self.ledger.get_campaign(campaign_id)
        self._require_campaign_owner(actor, campaign)

        impact = self.ledger.calculate_budget_impact(campaign_id, offered_payout)
        if impact["is_over_budget"]:
            logger.info(f"Invite on campaign {campaign_id} blocked: {impact['remaining_after']} remaining after offer")
            raise BudgetExceededError(impact["remaining_after"])

        existing = self.db.query(CampaignInvitation).filter(
            CampaignInvitation.campaign_id == campaign_id,
            CampaignInvitation.creator_user_id == creator_user_id,
        ).first()
        if existing:
            raise DuplicateInvitationError()

        if self.db.get(User, creator_user_id) is None:
            raise NotFoundError("creator", creator_user_id)

        invitation = CampaignInvitation(
            campaign_id=campaign_id,
            creator_user_id=creator_user_id,
            base_payout=base_payout,
            offered_payout=offered_payout,
            deliverables=deliverables or [],
            timeline_start=timeline_start,
            timeline_end=timeline_end,
            special_requirements=special_requirements,
            status=InvitationStatusDB.PENDING,
        )
        try:
            with self.db.begin_nested():
                self.db.add(invitation)
        except IntegrityError:
            # Lost a race with a concurrent invite for the same creator
            raise DuplicateInvitationError()

        self.ledger.reserve_allocation(campaign_id, offered_payout)

        self.notifications.notify_invitation_received(
            creator_user_id=creator_user_id,
            brand_name=actor.display_name,
            campaign_id=campaign_id,
            campaign_name=campaign.name,
            offered_payout=offered_payout,
        )
        logger.info(f"Invitation {invitation.id} sent to creator {creator_user_id} on campaign {campaign_id}")
        return invitation

    def withdraw_invitation(self, actor: User, invitation_id: str,
                            campaign_id: Optional[str] = None) -> CampaignInvitation:
        invitation = self.get_invitation(invitation_id, campaign_id)
        campaign = invitation.campaign
        self._require_campaign_owner(actor, campaign)

        self.transition(invitation, InvitationStatusDB.WITHDRAWN, actor.id)
        self.db.flush()

        if campaign_id:
            self.ledger.adjust_allocation(campaign_id, -invitation.total_payout)

        self.notifications.notify_invitation_withdrawn(invitation.creator_user_id, campaign.id, campaign.name)
        return invitation

    def update_invitation_payout(self, actor: User, invitation_id: str, new_payout: int,
                                 campaign_id: Optional[str] = None) -> dict:
        """
        Replace the offered payout and shift the allocation by the difference.

        Returns the invitation plus a ``budget_warning`` when the campaign ends
        up over its total budget (only possible with enforcement off).
        """
        invitation = self.get_invitation(invitation_id, campaign_id)
        campaign = invitation.campaign
        self._require_campaign_owner(actor, campaign)

        if invitation.status not in ACTIVE_INVITATION_STATUSES:
            raise InvalidTransitionError(
                "invitation", invitation.status.value, invitation.status.value,
                description="Payout can only change on an open invitation",
            )

        delta = new_payout - invitation.offered_payout
        invitation.offered_payout = new_payout
        self.db.flush()

        if campaign_id:
            self.ledger.adjust_allocation(campaign_id, delta, enforce_ceiling=self.enforce_budget_on_payout_changes)
        if invitation.status == InvitationStatusDB.ACCEPTED:
            self.ledger.sync_reservation(invitation)

        self.notifications.dispatch(
            user_id=invitation.creator_user_id,
            type=NotificationType.PAYOUT_UPDATED,
            title="Payout Updated",
            message=f"The offer for '{campaign.name}' is now {new_payout / 100:,.2f}",
            action_url=f"/campaign/{campaign.id}",
            data={"campaign_id": campaign.id, "invitation_id": invitation.id, "offered_payout": new_payout},
        )
        return {"invitation": invitation, "budget_warning": self.budget_warning(campaign)}

    def list_campaign_invitations(self, actor: User, campaign_id: str,
                                  status: Optional[InvitationStatusDB] = None) -> List[CampaignInvitation]:
        campaign = self.ledger.get_campaign(campaign_id)
        self._require_campaign_owner(actor, campaign)

        query = self.db.query(CampaignInvitation).filter(CampaignInvitation.campaign_id == campaign_id)
        if status:
            query = query.filter(CampaignInvitation.status == status)
        return query.order_by(CampaignInvitation.created_at.desc()).all()

    # =========================================================================
    # CREATOR ACTIONS
    # =========================================================================

    def accept_invitation(self, actor: User, invitation_id: str, campaign_id: Optional[str] = None) -> dict:
        """Accept an invitation. Budget was allocated at invite time; this only holds it."""
        invitation = self.get_invitation(invitation_id, campaign_id)
        self._require_invited_creator(actor, invitation)

        self.transition(invitation, InvitationStatusDB.ACCEPTED, actor.id)
        invitation.responded_at = datetime.utcnow()
        participant, reservation = self.enroll_participant(invitation)

        self.notifications.notify_invitation_answered(
            brand_user_id=invitation.campaign.brand_user_id,
            creator_name=actor.display_name,
            campaign_id=invitation.campaign_id,
            invitation_id=invitation.id,
            accepted=True,
        )
        return {"invitation": invitation, "participant": participant, "reservation": reservation}

    def decline_invitation(self, actor: User, invitation_id: str, redistribute: bool = False) -> dict:
        invitation = self.get_invitation(invitation_id)
        self._require_invited_creator(actor, invitation)

        self.transition(invitation, InvitationStatusDB.DECLINED, actor.id)
        invitation.responded_at = datetime.utcnow()
        self.close_open_negotiations(invitation, NegotiationStatusDB.REJECTED)
        self.db.flush()

        budget = self.ledger.handle_declined_invitation(invitation.campaign_id, invitation.id, redistribute)
        if budget["redistributed_creator_ids"]:
            self.notifications.notify_budget_redistributed(
                creator_user_ids=budget["redistributed_creator_ids"],
                campaign_id=invitation.campaign_id,
                campaign_name=invitation.campaign.name,
                extra_payout=budget["extra_per_creator"],
            )

        self.notifications.notify_invitation_answered(
            brand_user_id=invitation.campaign.brand_user_id,
            creator_name=actor.display_name,
            campaign_id=invitation.campaign_id,
            invitation_id=invitation.id,
            accepted=False,
        )
        return {"invitation": invitation, "budget": budget}

    def list_creator_invitations(self, actor: User,
                                 status: Optional[InvitationStatusDB] = None) -> List[CampaignInvitation]:
        query = self.db.query(CampaignInvitation).filter(CampaignInvitation.creator_user_id == actor.id)
        if status:
            query = query.filter(CampaignInvitation.status == status)
        return query.order_by(CampaignInvitation.created_at.desc()).all()

    # =========================================================================
    # SHARED
    # =========================================================================

    def enroll_participant(self, invitation: CampaignInvitation):
        """Turn an accepted invitation into a participant with a held reservation."""
        participant = CampaignParticipant(
            campaign_id=invitation.campaign_id,
            invitation_id=invitation.id,
            creator_user_id=invitation.creator_user_id,
            status=ParticipantStatusDB.ACTIVE,
        )
        self.db.add(participant)
        reservation: BudgetReservation = self.ledger.hold_reservation(invitation)
        logger.info(
            f"Creator {invitation.creator_user_id} joined campaign {invitation.campaign_id}; "
            f"{reservation.reserved_amount} held"
        )
        return participant, reservation

    def close_open_negotiations(self, invitation: CampaignInvitation, status: NegotiationStatusDB,
                                exclude_id: Optional[str] = None) -> int:
        """Resolve every still-pending proposal on the invitation; returns how many were closed."""
        query = self.db.query(CampaignNegotiation).filter(
            CampaignNegotiation.invitation_id == invitation.id,
            CampaignNegotiation.status == NegotiationStatusDB.PENDING,
        )
        if exclude_id:
            query = query.filter(CampaignNegotiation.id != exclude_id)

        closed = query.update({
            CampaignNegotiation.status: status,
            CampaignNegotiation.responded_at: datetime.utcnow(),
        }, synchronize_session="fetch")
        return closed

    def transition(self, invitation: CampaignInvitation, target: InvitationStatusDB, actor_id: Optional[str]) -> None:
        ensure_invitation_transition(invitation.status, target)
        record_status_change(self.db, "invitation", invitation.id, actor_id, invitation.status, target)
        invitation.status = target

    def get_invitation(self, invitation_id: str, campaign_id: Optional[str] = None) -> CampaignInvitation:
        invitation = self.db.get(CampaignInvitation, invitation_id)
        if invitation is None or (campaign_id and invitation.campaign_id != campaign_id):
            logger.warning(f"Invitation {invitation_id} not found")
            raise NotFoundError("invitation", invitation_id)
        return invitation

    def budget_warning(self, campaign: Campaign) -> Optional[dict]:
        self.db.refresh(campaign)
        if campaign.allocated_budget <= campaign.total_budget:
            return None
        return {
            "title": "Over budget",
            "description": f"Allocations exceed the campaign budget by {campaign.allocated_budget - campaign.total_budget}",
            "allocated_budget": campaign.allocated_budget,
            "total_budget": campaign.total_budget,
            "utilization_percent": utilization(campaign.allocated_budget, campaign.total_budget),
        }

    @staticmethod
    def _require_campaign_owner(actor: User, campaign: Campaign) -> None:
        if actor is None or campaign.brand_user_id != actor.id:
            raise AuthorizationError("Only the campaign owner can manage its invitations")

    @staticmethod
    def _require_invited_creator(actor: User, invitation: CampaignInvitation) -> None:
        if actor is None or invitation.creator_user_id != actor.id:
            raise AuthorizationError("Only the invited creator can respond to this invitation")

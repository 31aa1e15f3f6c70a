# Negotiation Flow
# Proposal / counter-proposal exchange between brand and creator on top of an invitation

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from database.models import User
from database.campaign_models import (
    CampaignInvitation, CampaignNegotiation,
    InvitationStatusDB, NegotiationPartyDB, NegotiationStatusDB,
)
from services.errors import (
    AuthorizationError, InvalidTransitionError, NegotiationConflictError, NotFoundError,
)
from services.invitation_service import InvitationService
from services.notification_service import NotificationService, NotificationType

logger = logging.getLogger(__name__)


class NegotiationResponse(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTERED = "countered"


NEGOTIABLE_STATUSES = (InvitationStatusDB.PENDING, InvitationStatusDB.NEGOTIATING)


class NegotiationService:
    """
    Counter-offers over payout, deliverables and timeline.

    The newest pending negotiation on an invitation is the one that can be
    answered; answering is a conditional update on its status, so only the
    first of two concurrent responses wins.
    """

    def __init__(self, db: Session, notifications: Optional[NotificationService] = None,
                 invitations: Optional[InvitationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)
        self.invitations = invitations or InvitationService(db, self.notifications)
        self.ledger = self.invitations.ledger

    def submit_counter_offer(
        self,
        actor: User,
        invitation_id: str,
        message: str,
        proposed_payout: Optional[int] = None,
        proposed_deliverables: Optional[List[dict]] = None,
        proposed_timeline_start: Optional[date] = None,
        proposed_timeline_end: Optional[date] = None,
    ) -> CampaignNegotiation:
        invitation = self.invitations.get_invitation(invitation_id)
        party = self._party_for(actor, invitation)
        self._require_negotiable(invitation)

        negotiation = self._propose(
            invitation, party, message, proposed_payout, proposed_deliverables,
            proposed_timeline_start, proposed_timeline_end,
        )
        if invitation.status == InvitationStatusDB.PENDING:
            self.invitations.transition(invitation, InvitationStatusDB.NEGOTIATING, actor.id)
        self.db.flush()

        self.notifications.notify_negotiation(
            user_id=self._counterpart_id(invitation, party),
            type=NotificationType.NEGOTIATION_PROPOSED,
            campaign_id=invitation.campaign_id,
            invitation_id=invitation.id,
            proposed_payout=proposed_payout,
        )
        logger.info(f"{party.value} proposed new terms on invitation {invitation.id}")
        return negotiation

    def respond_to_negotiation(
        self,
        actor: User,
        negotiation_id: str,
        response: NegotiationResponse | str,
        invitation_id: Optional[str] = None,
        counter_payout: Optional[int] = None,
        counter_message: Optional[str] = None,
        counter_deliverables: Optional[List[dict]] = None,
        counter_timeline_start: Optional[date] = None,
        counter_timeline_end: Optional[date] = None,
    ) -> dict:
        """
        Accept, reject or counter a pending proposal made by the other party.

        Returns {"negotiation", "invitation", "counter", "participant",
        "reservation", "budget_warning"}; keys that do not apply are None.
        """
        response = NegotiationResponse(response)

        negotiation = self.db.get(CampaignNegotiation, negotiation_id)
        if negotiation is None or (invitation_id and negotiation.invitation_id != invitation_id):
            raise NotFoundError("negotiation", negotiation_id)

        invitation = negotiation.invitation
        party = self._party_for(actor, invitation)
        if party == negotiation.proposed_by:
            raise AuthorizationError("You cannot respond to your own proposal")
        if negotiation.status != NegotiationStatusDB.PENDING:
            raise NegotiationConflictError()
        if self._has_newer_proposal(negotiation):
            raise NegotiationConflictError("A newer proposal has replaced this one")
        self._require_negotiable(invitation)

        self._resolve(negotiation, NegotiationStatusDB(response.value))

        result = {
            "negotiation": negotiation,
            "invitation": invitation,
            "counter": None,
            "participant": None,
            "reservation": None,
            "budget_warning": None,
        }

        if response == NegotiationResponse.ACCEPTED:
            delta = self._apply_terms(invitation, negotiation)
            self.invitations.close_open_negotiations(
                invitation, NegotiationStatusDB.REJECTED, exclude_id=negotiation.id,
            )
            self.invitations.transition(invitation, InvitationStatusDB.ACCEPTED, actor.id)
            invitation.responded_at = datetime.utcnow()
            self.db.flush()

            if delta:
                self.ledger.adjust_allocation(
                    invitation.campaign_id, delta,
                    enforce_ceiling=self.invitations.enforce_budget_on_payout_changes,
                )
                result["budget_warning"] = self.invitations.budget_warning(invitation.campaign)
            result["participant"], result["reservation"] = self.invitations.enroll_participant(invitation)
            notification_type = NotificationType.NEGOTIATION_ACCEPTED

        elif response == NegotiationResponse.COUNTERED:
            result["counter"] = self._propose(
                invitation, party, counter_message or "", counter_payout, counter_deliverables,
                counter_timeline_start, counter_timeline_end,
            )
            if invitation.status == InvitationStatusDB.PENDING:
                self.invitations.transition(invitation, InvitationStatusDB.NEGOTIATING, actor.id)
            notification_type = NotificationType.NEGOTIATION_PROPOSED

        else:
            notification_type = NotificationType.NEGOTIATION_REJECTED

        self.db.flush()
        self.notifications.notify_negotiation(
            user_id=self._counterpart_id(invitation, party),
            type=notification_type,
            campaign_id=invitation.campaign_id,
            invitation_id=invitation.id,
            proposed_payout=counter_payout if response == NegotiationResponse.COUNTERED else negotiation.proposed_payout,
        )
        logger.info(f"Negotiation {negotiation.id} {response.value} by {party.value}")
        return result

    def get_negotiation_history(self, actor: User, invitation_id: str) -> List[CampaignNegotiation]:
        """All negotiations on an invitation, newest first."""
        invitation = self.invitations.get_invitation(invitation_id)
        self._party_for(actor, invitation)

        return self.db.query(CampaignNegotiation).filter(
            CampaignNegotiation.invitation_id == invitation_id
        ).order_by(
            CampaignNegotiation.created_at.desc(),
            CampaignNegotiation.sequence.desc(),
        ).all()

    def get_active_negotiation(self, actor: User, invitation_id: str) -> Optional[CampaignNegotiation]:
        """The newest pending negotiation, the only one that can still be answered."""
        for negotiation in self.get_negotiation_history(actor, invitation_id):
            if negotiation.status == NegotiationStatusDB.PENDING:
                return negotiation
        return None

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _propose(self, invitation: CampaignInvitation, party: NegotiationPartyDB, message: str,
                 payout: Optional[int], deliverables: Optional[List[dict]],
                 timeline_start: Optional[date], timeline_end: Optional[date]) -> CampaignNegotiation:
        # A new proposal supersedes any still-pending one
        self.invitations.close_open_negotiations(invitation, NegotiationStatusDB.COUNTERED)

        sequence = self.db.query(CampaignNegotiation).filter(
            CampaignNegotiation.invitation_id == invitation.id
        ).count() + 1

        negotiation = CampaignNegotiation(
            invitation_id=invitation.id,
            sequence=sequence,
            proposed_by=party,
            proposed_payout=payout,
            proposed_deliverables=deliverables,
            proposed_timeline_start=timeline_start,
            proposed_timeline_end=timeline_end,
            message=message,
            status=NegotiationStatusDB.PENDING,
        )
        self.db.add(negotiation)
        self.db.flush()
        return negotiation

    def _resolve(self, negotiation: CampaignNegotiation, status: NegotiationStatusDB) -> None:
        updated = self.db.query(CampaignNegotiation).filter(
            CampaignNegotiation.id == negotiation.id,
            CampaignNegotiation.status == NegotiationStatusDB.PENDING,
        ).update({
            CampaignNegotiation.status: status,
            CampaignNegotiation.responded_at: datetime.utcnow(),
        }, synchronize_session=False)
        self.db.expire(negotiation, ["status", "responded_at"])

        if not updated:
            raise NegotiationConflictError()

    def _has_newer_proposal(self, negotiation: CampaignNegotiation) -> bool:
        return self.db.query(CampaignNegotiation.id).filter(
            CampaignNegotiation.invitation_id == negotiation.invitation_id,
            CampaignNegotiation.status == NegotiationStatusDB.PENDING,
            CampaignNegotiation.sequence > negotiation.sequence,
        ).first() is not None

    @staticmethod
    def _apply_terms(invitation: CampaignInvitation, negotiation: CampaignNegotiation) -> int:
        """Copy accepted terms onto the invitation; returns the payout delta."""
        delta = 0
        if negotiation.proposed_payout is not None:
            delta = negotiation.proposed_payout - invitation.offered_payout
            invitation.offered_payout = negotiation.proposed_payout
        if negotiation.proposed_deliverables is not None:
            invitation.deliverables = negotiation.proposed_deliverables
        if negotiation.proposed_timeline_start is not None:
            invitation.timeline_start = negotiation.proposed_timeline_start
        if negotiation.proposed_timeline_end is not None:
            invitation.timeline_end = negotiation.proposed_timeline_end
        return delta

    @staticmethod
    def _party_for(actor: User, invitation: CampaignInvitation) -> NegotiationPartyDB:
        if actor is None:
            raise AuthorizationError("You must be signed in to negotiate")
        if actor.id == invitation.creator_user_id:
            return NegotiationPartyDB.CREATOR
        if actor.id == invitation.campaign.brand_user_id:
            return NegotiationPartyDB.BRAND
        raise AuthorizationError("Only the brand and the invited creator can negotiate")

    @staticmethod
    def _counterpart_id(invitation: CampaignInvitation, party: NegotiationPartyDB) -> str:
        if party == NegotiationPartyDB.CREATOR:
            return invitation.campaign.brand_user_id
        return invitation.creator_user_id

    @staticmethod
    def _require_negotiable(invitation: CampaignInvitation) -> None:
        if invitation.status not in NEGOTIABLE_STATUSES:
            raise InvalidTransitionError(
                "invitation", invitation.status.value, InvitationStatusDB.NEGOTIATING.value,
                description="Only pending or negotiating invitations can be negotiated",
            )

# Budget Ledger
# Maintains a campaign's allocated / remaining budget as a persisted aggregate of its invitations

from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy import case
from sqlalchemy.orm import Session

from database.campaign_models import (
    Campaign, CampaignInvitation, BudgetReservation,
    InvitationStatusDB, ReservationStatusDB, ACTIVE_INVITATION_STATUSES,
)
from services.errors import BudgetExceededError, NotFoundError

logger = logging.getLogger(__name__)


def utilization(amount: int, total: int) -> float:
    if not total:
        return 0.0
    return amount / total * 100


class BudgetLedger:
    """
    Budget bookkeeping for a campaign.

    Reads are plain queries. Every write to ``allocated_budget`` is a single
    UPDATE statement so the capacity check and the write cannot be separated
    by a concurrent writer; each write also bumps ``Campaign.version``.
    Nothing here commits: callers own the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # READS
    # =========================================================================

    def get_campaign(self, campaign_id: str) -> Campaign:
        campaign = self.db.get(Campaign, campaign_id)
        if campaign is None:
            logger.warning(f"Budget lookup for missing campaign {campaign_id}")
            raise NotFoundError("campaign", campaign_id)
        return campaign

    def active_invitations(self, campaign_id: str, exclude_id: Optional[str] = None) -> List[CampaignInvitation]:
        query = self.db.query(CampaignInvitation).filter(
            CampaignInvitation.campaign_id == campaign_id,
            CampaignInvitation.status.in_(ACTIVE_INVITATION_STATUSES),
        )
        if exclude_id:
            query = query.filter(CampaignInvitation.id != exclude_id)
        return query.order_by(CampaignInvitation.created_at).all()

    def calculate_budget_impact(self, campaign_id: str, proposed_payout: int) -> dict:
        """Project the campaign's budget after committing ``proposed_payout``. No mutation."""
        campaign = self.get_campaign(campaign_id)

        current_allocated = campaign.allocated_budget or 0
        after_allocation = current_allocated + proposed_payout

        return {
            "current_allocated": current_allocated,
            "proposed_payout": proposed_payout,
            "after_allocation": after_allocation,
            "remaining_after": campaign.total_budget - after_allocation,
            "utilization_percent": utilization(after_allocation, campaign.total_budget),
            "is_over_budget": after_allocation > campaign.total_budget,
            "base_payout_per_influencer": campaign.base_payout_per_influencer or 0,
        }

    def get_campaign_budget_summary(self, campaign_id: str) -> dict:
        campaign = self.get_campaign(campaign_id)

        invitations = self.db.query(CampaignInvitation).filter(
            CampaignInvitation.campaign_id == campaign_id
        ).all()

        status_counts = {status.value: 0 for status in InvitationStatusDB}
        allocated = 0
        committed = 0

        for invitation in invitations:
            status_counts[invitation.status.value] += 1
            if invitation.status in ACTIVE_INVITATION_STATUSES:
                allocated += invitation.total_payout
            if invitation.status == InvitationStatusDB.ACCEPTED:
                committed += invitation.total_payout

        return {
            "total_budget": campaign.total_budget,
            "allocated_budget": allocated,
            "committed_budget": committed,
            "remaining_budget": campaign.total_budget - allocated,
            "target_influencers": campaign.influencer_count,
            "base_payout_per_influencer": campaign.base_payout_per_influencer or 0,
            "status_counts": status_counts,
            "utilization_percent": utilization(allocated, campaign.total_budget),
        }

    def calculate_negotiation_impact(self, invitation_id: str, requested_payout: int) -> dict:
        """What accepting a requested payout would do to the campaign's budget and open slots."""
        invitation = self.db.get(CampaignInvitation, invitation_id)
        if invitation is None:
            raise NotFoundError("invitation", invitation_id)
        campaign = self.get_campaign(invitation.campaign_id)

        original_payout = invitation.total_payout
        delta = requested_payout - original_payout
        allocated = campaign.allocated_budget or 0
        remaining = campaign.total_budget - allocated
        new_remaining = remaining - delta

        base = campaign.base_payout_per_influencer or 0
        capacity = remaining // base if base > 0 and remaining > 0 else 0
        new_capacity = new_remaining // base if base > 0 and new_remaining > 0 else 0

        return {
            "invitation_id": invitation.id,
            "original_payout": original_payout,
            "requested_payout": requested_payout,
            "delta": delta,
            "new_remaining_budget": new_remaining,
            "new_influencer_capacity": new_capacity,
            "capacity_change": new_capacity - capacity,
            "utilization_percent": utilization(allocated + delta, campaign.total_budget),
            "is_over_budget": allocated + delta > campaign.total_budget,
        }

    # =========================================================================
    # ALLOCATION WRITES
    # =========================================================================

    def reserve_allocation(self, campaign_id: str, amount: int) -> None:
        """
        Add ``amount`` to the allocation only while it stays within total_budget.

        Raises BudgetExceededError when no row qualifies, which also covers a
        concurrent writer having used the headroom since it was last read.
        """
        self.db.flush()
        new_allocated = Campaign.allocated_budget + amount
        updated = self.db.query(Campaign).filter(
            Campaign.id == campaign_id,
            new_allocated <= Campaign.total_budget,
        ).update({
            Campaign.allocated_budget: new_allocated,
            Campaign.remaining_budget: Campaign.total_budget - new_allocated,
            Campaign.version: Campaign.version + 1,
        }, synchronize_session=False)
        self._expire(campaign_id)

        if not updated:
            campaign = self.get_campaign(campaign_id)
            raise BudgetExceededError(campaign.total_budget - (campaign.allocated_budget or 0) - amount)

    def adjust_allocation(self, campaign_id: str, delta: int, enforce_ceiling: bool = False) -> None:
        """Shift the allocation by ``delta``, never below zero."""
        self.db.flush()
        raw = Campaign.allocated_budget + delta
        new_allocated = case((raw < 0, 0), else_=raw)

        query = self.db.query(Campaign).filter(Campaign.id == campaign_id)
        if enforce_ceiling and delta > 0:
            query = query.filter(raw <= Campaign.total_budget)

        updated = query.update({
            Campaign.allocated_budget: new_allocated,
            Campaign.remaining_budget: Campaign.total_budget - new_allocated,
            Campaign.version: Campaign.version + 1,
        }, synchronize_session=False)
        self._expire(campaign_id)

        if not updated:
            campaign = self.get_campaign(campaign_id)
            raise BudgetExceededError(
                campaign.total_budget - (campaign.allocated_budget or 0) - delta,
                description="This payout change would exceed your campaign budget",
            )

    def sync_allocation(self, campaign_id: str, exclude_id: Optional[str] = None) -> int:
        """Recompute allocated / remaining budget from the campaign's active invitations."""
        campaign = self.get_campaign(campaign_id)
        active = self.active_invitations(campaign_id, exclude_id=exclude_id)

        allocated = max(0, sum(invitation.total_payout for invitation in active))
        campaign.allocated_budget = allocated
        campaign.remaining_budget = campaign.total_budget - allocated
        campaign.version = (campaign.version or 0) + 1
        self.db.flush()
        return allocated

    # =========================================================================
    # REDISTRIBUTION
    # =========================================================================

    def handle_declined_invitation(self, campaign_id: str, declined_invitation_id: str,
                                   redistribute_to_existing: bool = False) -> dict:
        """
        Free a declined invitation's payout and optionally share it out.

        With ``redistribute_to_existing`` every active invitation gets
        floor(freed / active_count) on top of its offered payout. The
        remainder is reported, not allocated.
        """
        campaign = self.get_campaign(campaign_id)

        declined = self.db.get(CampaignInvitation, declined_invitation_id)
        if declined is None or declined.campaign_id != campaign_id:
            logger.warning(f"Declined invitation {declined_invitation_id} not found on campaign {campaign_id}")
            raise NotFoundError("invitation", declined_invitation_id)

        freed_amount = declined.total_payout
        active = self.active_invitations(campaign_id, exclude_id=declined.id)
        active_count = len(active)

        extra_per_creator = 0
        if redistribute_to_existing and active_count > 0 and freed_amount > 0:
            extra_per_creator = freed_amount // active_count
            for invitation in active:
                invitation.offered_payout += extra_per_creator
                self.sync_reservation(invitation)
            if extra_per_creator > 0:
                logger.info(
                    f"Redistributed {extra_per_creator * active_count} of {freed_amount} "
                    f"across {active_count} invitations on campaign {campaign_id}"
                )

        redistributed = extra_per_creator * active_count
        allocated = self.sync_allocation(campaign_id, exclude_id=declined.id)
        remaining = campaign.total_budget - allocated
        remaining_capacity = campaign.influencer_count - active_count

        return {
            "success": True,
            "freed_amount": freed_amount,
            "redistributed_amount": redistributed,
            "extra_per_creator": extra_per_creator,
            "undistributed_remainder": freed_amount - redistributed if redistribute_to_existing and active_count else 0,
            "allocated_budget": allocated,
            "remaining_budget": remaining,
            "new_base_payout_per_influencer": remaining / remaining_capacity if remaining_capacity > 0 else 0,
            "remaining_influencer_capacity": remaining_capacity,
            "redistributed_creator_ids": (
                [invitation.creator_user_id for invitation in active] if extra_per_creator else []
            ),
        }

    # =========================================================================
    # RESERVATIONS
    # =========================================================================

    def hold_reservation(self, invitation: CampaignInvitation) -> BudgetReservation:
        """Set budget aside for an accepted invitation."""
        reservation = BudgetReservation(
            campaign_id=invitation.campaign_id,
            invitation_id=invitation.id,
            creator_user_id=invitation.creator_user_id,
            reserved_amount=invitation.total_payout,
            reservation_status=ReservationStatusDB.HELD,
        )
        self.db.add(reservation)
        self.db.flush()
        return reservation

    def sync_reservation(self, invitation: CampaignInvitation) -> Optional[BudgetReservation]:
        """Match a held reservation to the invitation's current payout. None when nothing is held."""
        reservation = self.db.query(BudgetReservation).filter(
            BudgetReservation.invitation_id == invitation.id,
            BudgetReservation.reservation_status == ReservationStatusDB.HELD,
        ).first()
        if reservation is None:
            return None

        if reservation.reserved_amount != invitation.total_payout:
            logger.info(
                f"Reservation {reservation.id} resized {reservation.reserved_amount} -> {invitation.total_payout}"
            )
            reservation.reserved_amount = invitation.total_payout
            self.db.flush()
        return reservation

    def release_reservations(self, campaign_id: str, reason: str) -> List[BudgetReservation]:
        reservations = self.db.query(BudgetReservation).filter(
            BudgetReservation.campaign_id == campaign_id,
            BudgetReservation.reservation_status == ReservationStatusDB.HELD,
        ).all()

        now = datetime.utcnow()
        for reservation in reservations:
            reservation.reservation_status = ReservationStatusDB.RELEASED
            reservation.released_at = now
            reservation.released_reason = reason
        self.db.flush()
        return reservations

    def _expire(self, campaign_id: str) -> None:
        campaign = self.db.identity_map.get(self.db.identity_key(Campaign, campaign_id))
        if campaign is not None:
            self.db.expire(campaign, ["allocated_budget", "remaining_budget", "version", "updated_at"])

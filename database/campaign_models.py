# Campaign Ledger Models
# Campaigns, invitations, negotiations and the budget / lifecycle bookkeeping around them

from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, Text, JSON, Enum, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime
import enum

from database.models import Base, generate_uuid


# ============================================================================
# ENUMS
# ============================================================================

class CampaignStatusDB(str, enum.Enum):
    DRAFT = "draft"
    DISCOVERY = "discovery"
    ACTIVE = "active"
    REVIEWING = "reviewing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InvitationStatusDB(str, enum.Enum):
    PENDING = "pending"
    NEGOTIATING = "negotiating"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    WITHDRAWN = "withdrawn"


class NegotiationStatusDB(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTERED = "countered"


class NegotiationPartyDB(str, enum.Enum):
    BRAND = "brand"
    CREATOR = "creator"


class ReservationStatusDB(str, enum.Enum):
    HELD = "held"
    RELEASED = "released"


class ParticipantStatusDB(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    WITHDRAWN = "withdrawn"


class SnapshotTypeDB(str, enum.Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _enum(enum_cls, name):
    return Enum(enum_cls, values_callable=lambda x: [e.value for e in x], name=name)


# Invitations in these statuses hold budget
ACTIVE_INVITATION_STATUSES = (
    InvitationStatusDB.PENDING,
    InvitationStatusDB.ACCEPTED,
    InvitationStatusDB.NEGOTIATING,
)


# ============================================================================
# CAMPAIGN
# ============================================================================

class Campaign(Base):
    """Brand-funded campaign with a fixed budget and a target creator count."""
    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    brand_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text)

    # Budget (in cents)
    total_budget = Column(Integer, nullable=False, default=0)
    allocated_budget = Column(Integer, nullable=False, default=0)  # Sum over pending/accepted/negotiating invitations
    remaining_budget = Column(Integer, nullable=False, default=0)
    influencer_count = Column(Integer, nullable=False, default=1)
    base_payout_per_influencer = Column(Integer, default=0)

    # Timeline
    timeline_start = Column(Date)
    timeline_end = Column(Date)

    status = Column(_enum(CampaignStatusDB, "campaignstatus"), nullable=False, default=CampaignStatusDB.DRAFT)
    status_changed_at = Column(DateTime, default=datetime.utcnow)

    # Bumped on every allocation write
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    brand = relationship("User", backref="campaigns")
    invitations = relationship("CampaignInvitation", back_populates="campaign", cascade="all, delete-orphan")
    participants = relationship("CampaignParticipant", back_populates="campaign", cascade="all, delete-orphan")
    deliverables = relationship("CampaignDeliverable", back_populates="campaign", cascade="all, delete-orphan",
                                order_by="CampaignDeliverable.deliverable_index")
    reservations = relationship("BudgetReservation", back_populates="campaign", cascade="all, delete-orphan")


# ============================================================================
# INVITATION
# ============================================================================

class CampaignInvitation(Base):
    """Offer from a brand to one creator to join a campaign at a payout."""
    __tablename__ = "campaign_invitations"
    __table_args__ = (
        UniqueConstraint("campaign_id", "creator_user_id", name="uq_invitation_campaign_creator"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # Payouts (in cents)
    base_payout = Column(Integer, nullable=False, default=0)
    offered_payout = Column(Integer, nullable=False, default=0)
    negotiated_delta = Column(Integer, nullable=True)

    deliverables = Column(JSON)  # [{"type": "reel", "quantity": 2, "description": "..."}]
    timeline_start = Column(Date)
    timeline_end = Column(Date)
    special_requirements = Column(Text)

    status = Column(_enum(InvitationStatusDB, "invitationstatus"), nullable=False, default=InvitationStatusDB.PENDING)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    responded_at = Column(DateTime)

    # Relationships
    campaign = relationship("Campaign", back_populates="invitations")
    creator = relationship("User")
    negotiations = relationship("CampaignNegotiation", back_populates="invitation", cascade="all, delete-orphan")

    @property
    def total_payout(self) -> int:
        return (self.offered_payout or 0) + (self.negotiated_delta or 0)


# ============================================================================
# NEGOTIATION
# ============================================================================

class CampaignNegotiation(Base):
    """A proposed change to an invitation's payout, deliverables or timeline."""
    __tablename__ = "campaign_negotiations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    invitation_id = Column(String(36), ForeignKey("campaign_invitations.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False, default=1)  # Position within the invitation's thread

    proposed_by = Column(_enum(NegotiationPartyDB, "negotiationparty"), nullable=False)
    proposed_payout = Column(Integer)
    proposed_deliverables = Column(JSON)
    proposed_timeline_start = Column(Date)
    proposed_timeline_end = Column(Date)
    message = Column(Text)

    status = Column(_enum(NegotiationStatusDB, "negotiationstatus"), nullable=False, default=NegotiationStatusDB.PENDING)

    created_at = Column(DateTime, default=datetime.utcnow)
    responded_at = Column(DateTime)

    # Relationships
    invitation = relationship("CampaignInvitation", back_populates="negotiations")


# ============================================================================
# BUDGET RESERVATION
# ============================================================================

class BudgetReservation(Base):
    """Budget set aside for an accepted invitation; released, never deleted."""
    __tablename__ = "campaign_budget_reservations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    invitation_id = Column(String(36), ForeignKey("campaign_invitations.id"), nullable=True)
    creator_user_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    reserved_amount = Column(Integer, nullable=False)  # In cents
    reservation_status = Column(_enum(ReservationStatusDB, "reservationstatus"), nullable=False, default=ReservationStatusDB.HELD)

    held_at = Column(DateTime, default=datetime.utcnow)
    released_at = Column(DateTime)
    released_reason = Column(String(255))

    # Relationships
    campaign = relationship("Campaign", back_populates="reservations")


# ============================================================================
# PARTICIPANT
# ============================================================================

class CampaignParticipant(Base):
    """Creator who joined a campaign through an accepted invitation."""
    __tablename__ = "campaign_participants"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    invitation_id = Column(String(36), ForeignKey("campaign_invitations.id"), nullable=False, unique=True)
    creator_user_id = Column(String(36), ForeignKey("users.id"), nullable=False)

    status = Column(_enum(ParticipantStatusDB, "participantstatus"), nullable=False, default=ParticipantStatusDB.ACTIVE)
    final_payout = Column(Integer)  # In cents

    joined_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime)

    # Relationships
    campaign = relationship("Campaign", back_populates="participants")
    invitation = relationship("CampaignInvitation")


# ============================================================================
# DELIVERABLES & SUBMISSIONS
# ============================================================================

class CampaignDeliverable(Base):
    """Content item every participant owes by a due date."""
    __tablename__ = "campaign_deliverables"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    deliverable_index = Column(Integer, nullable=False, default=0)

    title = Column(String(255), nullable=False)
    deliverable_type = Column(String(50), nullable=False)  # post, story, reel, video
    description = Column(Text)
    required_by = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    campaign = relationship("Campaign", back_populates="deliverables")
    submissions = relationship("CreatorSubmission", back_populates="deliverable", cascade="all, delete-orphan")


class CreatorSubmission(Base):
    """A creator's submitted content for one deliverable."""
    __tablename__ = "creator_submissions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    deliverable_id = Column(String(36), ForeignKey("campaign_deliverables.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_user_id = Column(String(36), ForeignKey("users.id"), nullable=False)

    submission_url = Column(String(500), nullable=False)
    submission_type = Column(String(50), nullable=False, default="link")
    status = Column(String(30), nullable=False, default="submitted")

    submitted_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    deliverable = relationship("CampaignDeliverable", back_populates="submissions")


class DeadlineReminder(Base):
    """Marks a deadline reminder as sent for a (deliverable, creator) pair."""
    __tablename__ = "deadline_reminders"
    __table_args__ = (
        UniqueConstraint("deliverable_id", "creator_user_id", name="uq_reminder_deliverable_creator"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    deliverable_id = Column(String(36), ForeignKey("campaign_deliverables.id", ondelete="CASCADE"), nullable=False)
    creator_user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    sent_at = Column(DateTime, default=datetime.utcnow)


# ============================================================================
# AUDIT, SNAPSHOTS & HEALTH
# ============================================================================

class AuditLog(Base):
    """Record of a status change on a campaign or invitation."""
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    action = Column(String(100), nullable=False)  # campaign_status_changed, invitation_status_changed
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(36))
    old_value = Column(JSON)
    new_value = Column(JSON)
    metadata_json = Column(JSON)

    created_at = Column(DateTime, default=datetime.utcnow)


class CampaignSnapshot(Base):
    """Archived copy of a campaign record taken on completion or cancellation."""
    __tablename__ = "campaign_snapshots"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    snapshot_type = Column(_enum(SnapshotTypeDB, "snapshottype"), nullable=False)
    snapshot_data = Column(JSON, nullable=False)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)


class SystemHealthLog(Base):
    """Operational events emitted by background sweeps."""
    __tablename__ = "system_health_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    event_type = Column(String(100), nullable=False)
    severity = Column(String(20), nullable=False, default="info")
    message = Column(Text)
    metadata_json = Column(JSON)

    created_at = Column(DateTime, default=datetime.utcnow)


# ============================================================================
# NOTIFICATION
# ============================================================================

class Notification(Base):
    """User notifications."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(String(50), nullable=False)  # invitation_received, campaign_status_changed, etc.
    title = Column(String(200), nullable=False)
    message = Column(Text)
    action_url = Column(String(500))
    data = Column(JSON)  # Additional context (campaign_id, amount, etc.)

    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", backref="notifications")

# Pydantic Schemas for the Campaign Ledger
# Request bodies and response models for campaigns, invitations, negotiations and notifications

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import date, datetime
from enum import Enum


# ============================================================================
# ENUMS
# ============================================================================

class CampaignStatus(str, Enum):
    DRAFT = "draft"
    DISCOVERY = "discovery"
    ACTIVE = "active"
    REVIEWING = "reviewing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    NEGOTIATING = "negotiating"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    WITHDRAWN = "withdrawn"


class NegotiationAnswer(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTERED = "countered"


class LifecycleAction(str, Enum):
    CHECK_TRANSITIONS = "check-transitions"
    CANCEL_CAMPAIGN = "cancel-campaign"
    CHECK_DEADLINE_REMINDERS = "check-deadline-reminders"


class ContentTypeEnum(str, Enum):
    POST = "post"
    STORY = "story"
    REEL = "reel"
    VIDEO = "video"
    CAROUSEL = "carousel"


class _TimelineMixin(BaseModel):
    timeline_start: Optional[date] = None
    timeline_end: Optional[date] = None

    @model_validator(mode="after")
    def check_timeline(self):
        if self.timeline_start and self.timeline_end and self.timeline_end < self.timeline_start:
            raise ValueError("timeline_end must not be before timeline_start")
        return self


# ============================================================================
# CAMPAIGN SCHEMAS
# ============================================================================

class DeliverableSpec(BaseModel):
    """A deliverable every participant owes."""
    title: str = Field(..., max_length=255)
    deliverable_type: ContentTypeEnum = ContentTypeEnum.POST
    description: Optional[str] = None
    required_by: Optional[datetime] = None


class CampaignCreate(_TimelineMixin):
    """Schema for creating a campaign. Amounts are in cents."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    total_budget: int = Field(..., ge=0)
    influencer_count: int = Field(1, ge=1)
    base_payout_per_influencer: Optional[int] = Field(None, ge=0)
    deliverables: List[DeliverableSpec] = []


class SubmissionCreate(BaseModel):
    submission_url: str = Field(..., max_length=500)
    submission_type: str = "link"


class CompleteParticipation(BaseModel):
    final_payout: Optional[int] = Field(None, ge=0)


class BudgetImpactRequest(BaseModel):
    proposed_payout: int = Field(..., ge=0)


# ============================================================================
# INVITATION SCHEMAS
# ============================================================================

class InvitationDeliverable(BaseModel):
    type: ContentTypeEnum
    quantity: int = Field(1, ge=1)
    description: Optional[str] = None


class InvitationCreate(_TimelineMixin):
    """Schema for inviting a creator. Amounts are in cents."""
    creator_user_id: str
    base_payout: int = Field(..., ge=0)
    offered_payout: int = Field(..., ge=0)
    deliverables: List[InvitationDeliverable] = []
    special_requirements: Optional[str] = None


class PayoutUpdate(BaseModel):
    new_payout: int = Field(..., ge=0)


class DeclineRequest(BaseModel):
    redistribute_to_existing: bool = False


class NegotiationImpactRequest(BaseModel):
    requested_payout: int = Field(..., ge=0)


# ============================================================================
# NEGOTIATION SCHEMAS
# ============================================================================

class CounterOfferCreate(BaseModel):
    """A new proposal on an invitation. Omitted terms stay as they are."""
    message: str = Field(..., min_length=1)
    proposed_payout: Optional[int] = Field(None, ge=0)
    proposed_deliverables: Optional[List[InvitationDeliverable]] = None
    proposed_timeline_start: Optional[date] = None
    proposed_timeline_end: Optional[date] = None


class NegotiationRespond(BaseModel):
    response: NegotiationAnswer
    counter_payout: Optional[int] = Field(None, ge=0)
    counter_message: Optional[str] = None
    counter_deliverables: Optional[List[InvitationDeliverable]] = None
    counter_timeline_start: Optional[date] = None
    counter_timeline_end: Optional[date] = None

    @model_validator(mode="after")
    def check_counter(self):
        if self.response == NegotiationAnswer.COUNTERED and not (self.counter_message or "").strip():
            raise ValueError("counter_message is required when countering")
        return self


# ============================================================================
# LIFECYCLE SCHEMAS
# ============================================================================

class LifecycleRequest(BaseModel):
    action: LifecycleAction
    campaign_id: Optional[str] = None
    reason: Optional[str] = None

    @model_validator(mode="after")
    def check_campaign(self):
        if self.action == LifecycleAction.CANCEL_CAMPAIGN and not self.campaign_id:
            raise ValueError("campaign_id is required for cancel-campaign")
        return self


# ============================================================================
# NOTIFICATION SCHEMAS
# ============================================================================

class NotificationResponse(BaseModel):
    """Schema for notification response."""
    id: str
    type: str
    title: str
    message: Optional[str] = None
    action_url: Optional[str] = None
    data: Optional[dict] = None
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True

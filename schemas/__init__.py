# Schemas module for the Campaign Ledger
# Organizes all Pydantic schemas in a modular structure

from schemas.campaigns import (
    # Enums
    CampaignStatus,
    InvitationStatus,
    NegotiationAnswer,
    LifecycleAction,
    ContentTypeEnum,

    # Campaign schemas
    DeliverableSpec,
    CampaignCreate,
    SubmissionCreate,
    CompleteParticipation,
    BudgetImpactRequest,

    # Invitation schemas
    InvitationDeliverable,
    InvitationCreate,
    PayoutUpdate,
    DeclineRequest,
    NegotiationImpactRequest,

    # Negotiation schemas
    CounterOfferCreate,
    NegotiationRespond,

    # Lifecycle schemas
    LifecycleRequest,

    # Notification schemas
    NotificationResponse,
)

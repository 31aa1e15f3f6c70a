# Services Module for the Campaign Ledger
# Contains business logic services

from services.notification_service import NotificationService, NotificationType, get_notification_service
from services.budget_ledger import BudgetLedger
from services.invitation_service import InvitationService
from services.negotiation_service import NegotiationService, NegotiationResponse
from services.campaign_lifecycle import CampaignLifecycleService
from services.campaign_service import CampaignService

__all__ = [
    'NotificationService',
    'NotificationType',
    'get_notification_service',
    'BudgetLedger',
    'InvitationService',
    'NegotiationService',
    'NegotiationResponse',
    'CampaignLifecycleService',
    'CampaignService',
]

# Status transition tables for invitations and campaigns

from database.campaign_models import CampaignStatusDB, InvitationStatusDB
from services.errors import InvalidTransitionError


INVITATION_TRANSITIONS = {
    InvitationStatusDB.PENDING: {
        InvitationStatusDB.NEGOTIATING,
        InvitationStatusDB.ACCEPTED,
        InvitationStatusDB.DECLINED,
        InvitationStatusDB.WITHDRAWN,
    },
    InvitationStatusDB.NEGOTIATING: {
        InvitationStatusDB.ACCEPTED,
        InvitationStatusDB.DECLINED,
    },
    InvitationStatusDB.ACCEPTED: set(),
    InvitationStatusDB.DECLINED: set(),
    InvitationStatusDB.WITHDRAWN: set(),
}

CAMPAIGN_TRANSITIONS = {
    CampaignStatusDB.DRAFT: {CampaignStatusDB.DISCOVERY, CampaignStatusDB.CANCELLED},
    CampaignStatusDB.DISCOVERY: {CampaignStatusDB.ACTIVE, CampaignStatusDB.CANCELLED},
    CampaignStatusDB.ACTIVE: {CampaignStatusDB.REVIEWING, CampaignStatusDB.CANCELLED},
    CampaignStatusDB.REVIEWING: {CampaignStatusDB.COMPLETED, CampaignStatusDB.CANCELLED},
    CampaignStatusDB.COMPLETED: set(),
    CampaignStatusDB.CANCELLED: set(),
}


def can_transition(table: dict, current, target) -> bool:
    return target in table.get(current, set())


def ensure_invitation_transition(current: InvitationStatusDB, target: InvitationStatusDB) -> None:
    if not can_transition(INVITATION_TRANSITIONS, current, target):
        raise InvalidTransitionError("invitation", current.value, target.value)


def ensure_campaign_transition(current: CampaignStatusDB, target: CampaignStatusDB) -> None:
    if not can_transition(CAMPAIGN_TRANSITIONS, current, target):
        raise InvalidTransitionError("campaign", current.value, target.value)

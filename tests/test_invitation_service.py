"""
Tests for the invitation lifecycle.

Tests cover:
1. Inviting within and beyond the remaining budget
2. Duplicate invitations whatever the first invitation's status
3. Withdraw, payout updates, accept and decline with their budget and reservation effects
4. Redistribution notices for creators whose offer grew
5. Authorization and transition rules
6. Notification failures never failing the invitation
"""

import pytest
from sqlalchemy.exc import OperationalError

from database.models import UserType
from database.campaign_models import (
    CampaignInvitation, CampaignParticipant, BudgetReservation, AuditLog, Notification,
    InvitationStatusDB, ReservationStatusDB,
)
from services.errors import (
    AuthorizationError, BudgetExceededError, DuplicateInvitationError,
    InvalidTransitionError, NotFoundError,
)
from services.invitation_service import InvitationService
from services.notification_service import NotificationService


@pytest.fixture
def service(db):
    return InvitationService(db, enforce_budget_on_payout_changes=False)


def _invite(service, brand, campaign, creator, payout):
    return service.invite_creator(
        actor=brand,
        campaign_id=campaign.id,
        creator_user_id=creator.id,
        base_payout=payout,
        offered_payout=payout,
        deliverables=[{"type": "reel", "quantity": 2, "description": "Launch reels"}],
    )


class TestInviteCreator:

    def test_invite_allocates_budget_and_notifies(self, db, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)

        invitation = _invite(service, brand, campaign, creators[0], 300)

        assert invitation.status == InvitationStatusDB.PENDING
        assert campaign.allocated_budget == 300
        assert campaign.remaining_budget == 700
        notification = db.query(Notification).filter(Notification.user_id == creators[0].id).one()
        assert notification.type == "invitation_received"

    def test_invite_over_budget_is_blocked(self, db, service, brand, make_campaign, creators):
        """1000 total with 900 allocated cannot take a 200 offer."""
        campaign = make_campaign(total_budget=1000)
        _invite(service, brand, campaign, creators[0], 900)

        with pytest.raises(BudgetExceededError) as exc_info:
            _invite(service, brand, campaign, creators[1], 200)

        assert exc_info.value.remaining_after == -100
        assert exc_info.value.status_code == 400
        assert db.query(CampaignInvitation).filter(
            CampaignInvitation.creator_user_id == creators[1].id
        ).count() == 0
        assert campaign.allocated_budget == 900

    @pytest.mark.parametrize("first_status", list(InvitationStatusDB))
    def test_duplicate_invite_is_blocked(self, db, service, brand, make_campaign, creators, first_status):
        campaign = make_campaign(total_budget=1000)
        first = _invite(service, brand, campaign, creators[0], 100)
        first.status = first_status
        db.flush()

        with pytest.raises(DuplicateInvitationError):
            _invite(service, brand, campaign, creators[0], 100)

        assert db.query(CampaignInvitation).filter(CampaignInvitation.campaign_id == campaign.id).count() == 1

    def test_only_owner_can_invite(self, service, make_user, make_campaign, creators):
        campaign = make_campaign()
        other_brand = make_user(UserType.BRAND)

        with pytest.raises(AuthorizationError):
            _invite(service, other_brand, campaign, creators[0], 100)

    def test_anonymous_actor_is_rejected(self, service, make_campaign, creators):
        campaign = make_campaign()

        with pytest.raises(AuthorizationError):
            _invite(service, None, campaign, creators[0], 100)

    def test_unknown_creator(self, service, brand, make_campaign):
        campaign = make_campaign()

        with pytest.raises(NotFoundError):
            service.invite_creator(brand, campaign.id, "no-such-user", 100, 100)

    def test_notification_failure_does_not_fail_invite(self, db, brand, make_campaign, creators, monkeypatch):
        def broken_create(self, *args, **kwargs):
            raise OperationalError("INSERT INTO notifications", {}, Exception("disk full"))

        monkeypatch.setattr(NotificationService, "create", broken_create)
        campaign = make_campaign(total_budget=1000)

        invitation = _invite(InvitationService(db), brand, campaign, creators[0], 250)

        assert invitation.id is not None
        assert campaign.allocated_budget == 250
        assert db.query(Notification).count() == 0


class TestBrandActions:

    def test_withdraw_returns_budget(self, db, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        invitation = _invite(service, brand, campaign, creators[0], 400)

        service.withdraw_invitation(brand, invitation.id, campaign.id)

        assert invitation.status == InvitationStatusDB.WITHDRAWN
        assert campaign.allocated_budget == 0
        assert campaign.remaining_budget == 1000
        audit = db.query(AuditLog).filter(AuditLog.entity_id == invitation.id).one()
        assert audit.old_value == {"status": "pending"}
        assert audit.new_value == {"status": "withdrawn"}

    def test_withdraw_never_drives_allocation_negative(self, db, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        invitation = _invite(service, brand, campaign, creators[0], 500)
        campaign.allocated_budget = 200
        db.flush()

        service.withdraw_invitation(brand, invitation.id, campaign.id)

        assert campaign.allocated_budget == 0

    def test_withdraw_accepted_invitation_is_invalid(self, db, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        invitation = _invite(service, brand, campaign, creators[0], 100)
        service.accept_invitation(creators[0], invitation.id)

        with pytest.raises(InvalidTransitionError):
            service.withdraw_invitation(brand, invitation.id, campaign.id)

    def test_withdraw_with_wrong_campaign_is_not_found(self, service, brand, make_campaign, creators):
        campaign = make_campaign()
        other = make_campaign(name="Other")
        invitation = _invite(service, brand, campaign, creators[0], 100)

        with pytest.raises(NotFoundError):
            service.withdraw_invitation(brand, invitation.id, other.id)

    def test_payout_update_shifts_allocation(self, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        invitation = _invite(service, brand, campaign, creators[0], 300)

        result = service.update_invitation_payout(brand, invitation.id, 450, campaign.id)

        assert result["invitation"].offered_payout == 450
        assert result["budget_warning"] is None
        assert campaign.allocated_budget == 450

    def test_payout_update_over_budget_warns(self, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        invitation = _invite(service, brand, campaign, creators[0], 900)

        result = service.update_invitation_payout(brand, invitation.id, 1200, campaign.id)

        assert campaign.allocated_budget == 1200
        assert result["budget_warning"]["allocated_budget"] == 1200
        assert result["budget_warning"]["total_budget"] == 1000

    def test_payout_update_over_budget_blocked_when_enforced(self, db, brand, make_campaign, creators):
        service = InvitationService(db, enforce_budget_on_payout_changes=True)
        campaign = make_campaign(total_budget=1000)
        invitation = _invite(service, brand, campaign, creators[0], 900)

        with pytest.raises(BudgetExceededError):
            service.update_invitation_payout(brand, invitation.id, 1200, campaign.id)

    def test_payout_update_resizes_held_reservation(self, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=5000)
        invitation = _invite(service, brand, campaign, creators[0], 1000)
        reservation = service.accept_invitation(creators[0], invitation.id)["reservation"]

        service.update_invitation_payout(brand, invitation.id, 1500, campaign.id)

        assert reservation.reserved_amount == 1500
        assert campaign.allocated_budget == 1500

    def test_payout_update_on_closed_invitation(self, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        invitation = _invite(service, brand, campaign, creators[0], 100)
        service.withdraw_invitation(brand, invitation.id, campaign.id)

        with pytest.raises(InvalidTransitionError):
            service.update_invitation_payout(brand, invitation.id, 200, campaign.id)

    def test_list_campaign_invitations_filters_status(self, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        first = _invite(service, brand, campaign, creators[0], 100)
        _invite(service, brand, campaign, creators[1], 100)
        service.withdraw_invitation(brand, first.id, campaign.id)

        pending = service.list_campaign_invitations(brand, campaign.id, InvitationStatusDB.PENDING)

        assert [invitation.creator_user_id for invitation in pending] == [creators[1].id]


class TestCreatorActions:

    def test_accept_creates_participant_and_reservation(self, db, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        invitation = _invite(service, brand, campaign, creators[0], 350)

        result = service.accept_invitation(creators[0], invitation.id)

        assert result["invitation"].status == InvitationStatusDB.ACCEPTED
        assert result["invitation"].responded_at is not None
        assert result["participant"].creator_user_id == creators[0].id
        assert result["reservation"].reserved_amount == 350
        assert result["reservation"].reservation_status == ReservationStatusDB.HELD
        assert campaign.allocated_budget == 350
        assert db.query(CampaignParticipant).count() == 1
        assert db.query(BudgetReservation).count() == 1

    def test_only_invited_creator_can_accept(self, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        invitation = _invite(service, brand, campaign, creators[0], 100)

        with pytest.raises(AuthorizationError):
            service.accept_invitation(creators[1], invitation.id)

    def test_decline_frees_budget(self, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        _invite(service, brand, campaign, creators[0], 200)
        invitation = _invite(service, brand, campaign, creators[1], 300)

        result = service.decline_invitation(creators[1], invitation.id)

        assert result["invitation"].status == InvitationStatusDB.DECLINED
        assert result["budget"]["freed_amount"] == 300
        assert campaign.allocated_budget == 200
        assert campaign.remaining_budget == 800

    def test_decline_with_redistribution(self, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        others = [_invite(service, brand, campaign, creator, 100) for creator in creators[:3]]
        invitation = _invite(service, brand, campaign, creators[3], 300)

        result = service.decline_invitation(creators[3], invitation.id, redistribute=True)

        assert result["budget"]["extra_per_creator"] == 100
        assert [other.offered_payout for other in others] == [200, 200, 200]
        assert campaign.allocated_budget == 600

    def test_redistribution_notifies_creators_who_gained(self, db, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        for creator in creators[:3]:
            _invite(service, brand, campaign, creator, 100)
        invitation = _invite(service, brand, campaign, creators[3], 300)

        service.decline_invitation(creators[3], invitation.id, redistribute=True)

        notified = db.query(Notification).filter(Notification.type == "budget_redistributed").all()
        assert sorted(n.user_id for n in notified) == sorted(creator.id for creator in creators[:3])
        assert all(n.data["extra_payout"] == 100 for n in notified)

    def test_plain_decline_sends_no_redistribution_notice(self, db, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        _invite(service, brand, campaign, creators[0], 100)
        invitation = _invite(service, brand, campaign, creators[1], 300)

        service.decline_invitation(creators[1], invitation.id)

        assert db.query(Notification).filter(Notification.type == "budget_redistributed").count() == 0

    def test_decline_twice_is_invalid(self, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        invitation = _invite(service, brand, campaign, creators[0], 100)
        service.decline_invitation(creators[0], invitation.id)

        with pytest.raises(InvalidTransitionError):
            service.decline_invitation(creators[0], invitation.id)

    def test_allocation_never_negative_after_withdraw_and_decline(self, db, service, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        withdrawn = _invite(service, brand, campaign, creators[0], 300)
        declined = _invite(service, brand, campaign, creators[1], 300)

        service.withdraw_invitation(brand, withdrawn.id, campaign.id)
        service.decline_invitation(creators[1], declined.id)

        assert campaign.allocated_budget == 0
        assert campaign.remaining_budget == 1000

    def test_list_creator_invitations(self, service, brand, make_campaign, creators):
        first = make_campaign(name="First")
        second = make_campaign(name="Second")
        _invite(service, brand, first, creators[0], 100)
        _invite(service, brand, second, creators[0], 100)
        _invite(service, brand, second, creators[1], 100)

        invitations = service.list_creator_invitations(creators[0])

        assert {invitation.campaign_id for invitation in invitations} == {first.id, second.id}

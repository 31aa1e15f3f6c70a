"""
Tests for the negotiation flow.

Tests cover:
1. Counter-offers moving an invitation into negotiation
2. Accepting applies the proposed terms and accepts the invitation
3. Rejecting and countering
4. Racing and self responses, superseded proposals and declines closing proposals
5. History ordering
"""

from datetime import date

import pytest

from database.campaign_models import (
    CampaignNegotiation, CampaignParticipant, InvitationStatusDB, NegotiationPartyDB, NegotiationStatusDB,
)
from services.errors import AuthorizationError, InvalidTransitionError, NegotiationConflictError
from services.invitation_service import InvitationService
from services.negotiation_service import NegotiationService, NegotiationResponse


@pytest.fixture
def invitations(db):
    return InvitationService(db, enforce_budget_on_payout_changes=False)


@pytest.fixture
def negotiations(db, invitations):
    return NegotiationService(db, invitations=invitations)


@pytest.fixture
def invitation(invitations, brand, make_campaign, creators):
    campaign = make_campaign(total_budget=5000)
    return invitations.invite_creator(
        actor=brand,
        campaign_id=campaign.id,
        creator_user_id=creators[0].id,
        base_payout=1000,
        offered_payout=1000,
        deliverables=[{"type": "post", "quantity": 1}],
    )


class TestCounterOffers:

    def test_counter_offer_moves_invitation_to_negotiating(self, negotiations, invitation, creators):
        negotiation = negotiations.submit_counter_offer(
            creators[0], invitation.id, "Could we do 1200?", proposed_payout=1200,
        )

        assert negotiation.proposed_by == NegotiationPartyDB.CREATOR
        assert negotiation.status == NegotiationStatusDB.PENDING
        assert negotiation.sequence == 1
        assert invitation.status == InvitationStatusDB.NEGOTIATING

    def test_outsider_cannot_negotiate(self, negotiations, invitation, creators):
        with pytest.raises(AuthorizationError):
            negotiations.submit_counter_offer(creators[1], invitation.id, "Me too", proposed_payout=900)

    def test_closed_invitation_cannot_be_negotiated(self, invitations, negotiations, invitation, creators):
        invitations.decline_invitation(creators[0], invitation.id)

        with pytest.raises(InvalidTransitionError):
            negotiations.submit_counter_offer(creators[0], invitation.id, "Wait", proposed_payout=1200)


class TestResponses:

    def test_accept_applies_terms(self, db, negotiations, invitation, brand, creators):
        """A creator's 1200 request on a 1000 offer, accepted by the brand."""
        proposal = negotiations.submit_counter_offer(
            creators[0], invitation.id, "Could we do 1200?",
            proposed_payout=1200,
            proposed_deliverables=[{"type": "reel", "quantity": 1}],
            proposed_timeline_end=date(2027, 1, 31),
        )

        result = negotiations.respond_to_negotiation(brand, proposal.id, NegotiationResponse.ACCEPTED)

        assert result["negotiation"].status == NegotiationStatusDB.ACCEPTED
        assert result["negotiation"].responded_at is not None
        assert invitation.offered_payout == 1200
        assert invitation.status == InvitationStatusDB.ACCEPTED
        assert invitation.deliverables == [{"type": "reel", "quantity": 1}]
        assert invitation.timeline_end == date(2027, 1, 31)
        assert invitation.campaign.allocated_budget == 1200
        assert result["reservation"].reserved_amount == 1200
        assert result["budget_warning"] is None
        assert db.query(CampaignParticipant).count() == 1

    def test_reject_keeps_invitation_open(self, negotiations, invitation, brand, creators):
        proposal = negotiations.submit_counter_offer(creators[0], invitation.id, "1500?", proposed_payout=1500)

        result = negotiations.respond_to_negotiation(brand, proposal.id, "rejected")

        assert result["negotiation"].status == NegotiationStatusDB.REJECTED
        assert invitation.status == InvitationStatusDB.NEGOTIATING
        assert invitation.offered_payout == 1000
        assert invitation.campaign.allocated_budget == 1000

    def test_counter_creates_new_proposal_from_responder(self, negotiations, invitation, brand, creators):
        proposal = negotiations.submit_counter_offer(creators[0], invitation.id, "1500?", proposed_payout=1500)

        result = negotiations.respond_to_negotiation(
            brand, proposal.id, NegotiationResponse.COUNTERED,
            counter_payout=1200, counter_message="Meet at 1200",
        )

        assert result["negotiation"].status == NegotiationStatusDB.COUNTERED
        counter = result["counter"]
        assert counter.proposed_by == NegotiationPartyDB.BRAND
        assert counter.proposed_payout == 1200
        assert counter.sequence == 2
        assert counter.status == NegotiationStatusDB.PENDING

        final = negotiations.respond_to_negotiation(creators[0], counter.id, NegotiationResponse.ACCEPTED)

        assert final["invitation"].offered_payout == 1200
        assert final["invitation"].status == InvitationStatusDB.ACCEPTED

    def test_cannot_answer_own_proposal(self, negotiations, invitation, creators):
        proposal = negotiations.submit_counter_offer(creators[0], invitation.id, "1200?", proposed_payout=1200)

        with pytest.raises(AuthorizationError):
            negotiations.respond_to_negotiation(creators[0], proposal.id, NegotiationResponse.ACCEPTED)

    def test_second_response_conflicts(self, negotiations, invitation, brand, creators):
        proposal = negotiations.submit_counter_offer(creators[0], invitation.id, "1200?", proposed_payout=1200)
        negotiations.respond_to_negotiation(brand, proposal.id, NegotiationResponse.REJECTED)

        with pytest.raises(NegotiationConflictError):
            negotiations.respond_to_negotiation(brand, proposal.id, NegotiationResponse.ACCEPTED)

    def test_accept_over_budget_warns(self, invitations, negotiations, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        invitation = invitations.invite_creator(brand, campaign.id, creators[1].id, 900, 900)
        proposal = negotiations.submit_counter_offer(creators[1], invitation.id, "1100?", proposed_payout=1100)

        result = negotiations.respond_to_negotiation(brand, proposal.id, NegotiationResponse.ACCEPTED)

        assert result["budget_warning"]["allocated_budget"] == 1100
        assert campaign.allocated_budget == 1100

    def test_superseded_proposal_cannot_be_accepted(self, negotiations, invitation, brand, creators):
        """The creator asks for 3000, then lowers it to 1200; only the 1200 proposal stays answerable."""
        first = negotiations.submit_counter_offer(creators[0], invitation.id, "3000?", proposed_payout=3000)
        second = negotiations.submit_counter_offer(creators[0], invitation.id, "1200 then", proposed_payout=1200)

        assert first.status == NegotiationStatusDB.COUNTERED
        assert second.status == NegotiationStatusDB.PENDING

        with pytest.raises(NegotiationConflictError):
            negotiations.respond_to_negotiation(brand, first.id, NegotiationResponse.ACCEPTED)

        result = negotiations.respond_to_negotiation(brand, second.id, NegotiationResponse.ACCEPTED)

        assert result["invitation"].offered_payout == 1200
        assert result["reservation"].reserved_amount == 1200
        assert negotiations.get_active_negotiation(creators[0], invitation.id) is None

    def test_older_pending_row_loses_to_newer(self, db, negotiations, invitation, brand, creators):
        older, newer = [
            CampaignNegotiation(
                invitation_id=invitation.id, sequence=sequence, proposed_by=NegotiationPartyDB.CREATOR,
                proposed_payout=payout, message="", status=NegotiationStatusDB.PENDING,
            )
            for sequence, payout in ((1, 3000), (2, 1200))
        ]
        db.add_all([older, newer])
        db.flush()

        with pytest.raises(NegotiationConflictError):
            negotiations.respond_to_negotiation(brand, older.id, NegotiationResponse.ACCEPTED)

        negotiations.respond_to_negotiation(brand, newer.id, NegotiationResponse.ACCEPTED)

        assert older.status == NegotiationStatusDB.REJECTED
        assert newer.status == NegotiationStatusDB.ACCEPTED
        assert invitation.offered_payout == 1200

    def test_decline_closes_pending_proposals(self, invitations, negotiations, invitation, creators):
        proposal = negotiations.submit_counter_offer(creators[0], invitation.id, "1500?", proposed_payout=1500)

        invitations.decline_invitation(creators[0], invitation.id)

        assert proposal.status == NegotiationStatusDB.REJECTED
        assert proposal.responded_at is not None
        assert negotiations.get_active_negotiation(creators[0], invitation.id) is None


class TestHistory:

    def test_history_is_newest_first(self, negotiations, invitation, brand, creators):
        first = negotiations.submit_counter_offer(creators[0], invitation.id, "1500?", proposed_payout=1500)
        result = negotiations.respond_to_negotiation(
            brand, first.id, NegotiationResponse.COUNTERED, counter_payout=1200, counter_message="1200",
        )

        history = negotiations.get_negotiation_history(creators[0], invitation.id)

        assert [n.id for n in history] == [result["counter"].id, first.id]
        assert negotiations.get_active_negotiation(brand, invitation.id).id == result["counter"].id

    def test_no_active_negotiation_after_acceptance(self, negotiations, invitation, brand, creators):
        proposal = negotiations.submit_counter_offer(creators[0], invitation.id, "1200?", proposed_payout=1200)
        negotiations.respond_to_negotiation(brand, proposal.id, NegotiationResponse.ACCEPTED)

        assert negotiations.get_active_negotiation(creators[0], invitation.id) is None

"""
API tests for the campaign ledger routers.

Tests cover:
1. Campaign creation and publishing
2. Invitations through the HTTP layer, including the budget error envelope
3. Creator acceptance
4. Lifecycle action and campaign management permissions
5. Notifications listing
"""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from database.config import get_db
from database.campaign_models import CampaignStatusDB
from auth.dependencies import create_access_token
from server import app


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.email)}"}


class TestCampaignEndpoints:

    def test_create_and_publish(self, client, brand):
        response = client.post("/api/v1/campaigns", headers=auth_headers(brand), json={
            "name": "Winter Collection",
            "total_budget": 500000,
            "influencer_count": 5,
            "timeline_start": str(date.today() + timedelta(days=3)),
            "timeline_end": str(date.today() + timedelta(days=20)),
            "deliverables": [{"title": "Lookbook reel", "deliverable_type": "reel"}],
        })

        assert response.status_code == 201
        campaign = response.json()
        assert campaign["status"] == "draft"
        assert campaign["remaining_budget"] == 500000
        assert campaign["base_payout_per_influencer"] == 100000
        assert campaign["deliverables"][0]["deliverable_type"] == "reel"

        published = client.post(f"/api/v1/campaigns/{campaign['id']}/publish", headers=auth_headers(brand))

        assert published.status_code == 200
        assert published.json()["status"] == "discovery"

    def test_timeline_must_be_ordered(self, client, brand):
        response = client.post("/api/v1/campaigns", headers=auth_headers(brand), json={
            "name": "Backwards",
            "total_budget": 1000,
            "timeline_start": "2026-12-10",
            "timeline_end": "2026-12-01",
        })

        assert response.status_code == 422

    def test_creators_cannot_create_campaigns(self, client, creators):
        response = client.post("/api/v1/campaigns", headers=auth_headers(creators[0]), json={
            "name": "Nope", "total_budget": 1000,
        })

        assert response.status_code == 403

    def test_missing_token_is_rejected(self, client):
        assert client.get("/api/v1/campaigns").status_code in (401, 403)


class TestInvitationEndpoints:

    def test_invite_then_accept(self, client, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)

        invited = client.post(f"/api/v1/campaigns/{campaign.id}/invitations", headers=auth_headers(brand), json={
            "creator_user_id": creators[0].id,
            "base_payout": 400,
            "offered_payout": 400,
            "deliverables": [{"type": "reel", "quantity": 2}],
        })

        assert invited.status_code == 201
        invitation = invited.json()
        assert invitation["status"] == "pending"
        assert invitation["deliverables"] == [{"type": "reel", "quantity": 2, "description": None}]

        accepted = client.post(f"/api/v1/invitations/{invitation['id']}/accept", headers=auth_headers(creators[0]))

        assert accepted.status_code == 200
        assert accepted.json()["invitation"]["status"] == "accepted"
        assert accepted.json()["reserved_amount"] == 400

        budget = client.get(f"/api/v1/campaigns/{campaign.id}/budget", headers=auth_headers(brand)).json()
        assert budget["allocated_budget"] == 400
        assert budget["remaining_budget"] == 600

    def test_over_budget_invite_returns_error_envelope(self, client, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        client.post(f"/api/v1/campaigns/{campaign.id}/invitations", headers=auth_headers(brand), json={
            "creator_user_id": creators[0].id, "base_payout": 900, "offered_payout": 900,
        })

        response = client.post(f"/api/v1/campaigns/{campaign.id}/invitations", headers=auth_headers(brand), json={
            "creator_user_id": creators[1].id, "base_payout": 200, "offered_payout": 200,
        })

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["kind"] == "budget_exceeded"
        assert body["error"]["remaining_after"] == -100

    def test_duplicate_invite_conflicts(self, client, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        payload = {"creator_user_id": creators[0].id, "base_payout": 100, "offered_payout": 100}
        client.post(f"/api/v1/campaigns/{campaign.id}/invitations", headers=auth_headers(brand), json=payload)

        response = client.post(f"/api/v1/campaigns/{campaign.id}/invitations", headers=auth_headers(brand), json=payload)

        assert response.status_code == 409
        assert response.json()["error"]["kind"] == "duplicate"


class TestLifecycleEndpoint:

    def test_sweeps_require_admin(self, client, brand):
        response = client.post("/api/v1/campaign-lifecycle", headers=auth_headers(brand),
                               json={"action": "check-transitions"})

        assert response.status_code == 403

    def test_admin_runs_sweep(self, client, admin, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000, timeline_start=date.today() - timedelta(days=1))
        invited = client.post(f"/api/v1/campaigns/{campaign.id}/invitations", headers=auth_headers(brand), json={
            "creator_user_id": creators[0].id, "base_payout": 100, "offered_payout": 100,
        }).json()
        client.post(f"/api/v1/invitations/{invited['id']}/accept", headers=auth_headers(creators[0]))

        response = client.post("/api/v1/campaign-lifecycle", headers=auth_headers(admin),
                               json={"action": "check-transitions"})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert [t["to"] for t in response.json()["transitions"]] == ["active"]

    def test_cancel_requires_campaign_id(self, client, brand):
        response = client.post("/api/v1/campaign-lifecycle", headers=auth_headers(brand),
                               json={"action": "cancel-campaign"})

        assert response.status_code == 422

    def test_owner_cancels(self, client, brand, make_campaign):
        campaign = make_campaign()

        response = client.post("/api/v1/campaign-lifecycle", headers=auth_headers(brand), json={
            "action": "cancel-campaign", "campaign_id": campaign.id, "reason": "Budget cut",
        })

        assert response.status_code == 200
        assert response.json()["campaign"]["status"] == CampaignStatusDB.CANCELLED.value

    def test_creators_cannot_cancel(self, client, creators, make_campaign):
        campaign = make_campaign()

        response = client.post("/api/v1/campaign-lifecycle", headers=auth_headers(creators[0]), json={
            "action": "cancel-campaign", "campaign_id": campaign.id,
        })

        assert response.status_code == 403
        assert response.json()["detail"] == "You do not have permission to cancel campaigns"
        assert campaign.status == CampaignStatusDB.DISCOVERY

    def test_creators_cannot_publish(self, client, creators, make_campaign):
        campaign = make_campaign(status=CampaignStatusDB.DRAFT)

        response = client.post(f"/api/v1/campaigns/{campaign.id}/publish", headers=auth_headers(creators[0]))

        assert response.status_code == 403
        assert response.json()["detail"] == "You don't have permission to perform this action"


class TestNotificationEndpoints:

    def test_invited_creator_sees_notification(self, client, brand, make_campaign, creators):
        campaign = make_campaign(total_budget=1000)
        client.post(f"/api/v1/campaigns/{campaign.id}/invitations", headers=auth_headers(brand), json={
            "creator_user_id": creators[0].id, "base_payout": 100, "offered_payout": 100,
        })

        notifications = client.get("/api/v1/notifications", headers=auth_headers(creators[0]))
        unread = client.get("/api/v1/notifications/unread-count", headers=auth_headers(creators[0]))

        assert notifications.status_code == 200
        assert [n["type"] for n in notifications.json()] == ["invitation_received"]
        assert unread.json()["unread_count"] == 1

        notification_id = notifications.json()[0]["id"]
        read = client.post(f"/api/v1/notifications/{notification_id}/read", headers=auth_headers(creators[0]))
        assert read.status_code == 200

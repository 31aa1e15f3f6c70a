# Campaign Lifecycle Scheduler
# Sweeps that advance campaign status from timeline dates and participant progress,
# brand-initiated cancellation, and deliverable deadline reminders

from datetime import datetime, timedelta
from typing import Callable, List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.app_config import REVIEW_AUTO_COMPLETE_DAYS, DEADLINE_REMINDER_HOURS
from database.models import User
from database.campaign_models import (
    Campaign, CampaignDeliverable, CampaignParticipant, CreatorSubmission, DeadlineReminder,
    CampaignStatusDB, ParticipantStatusDB, SnapshotTypeDB,
)
from services.audit import archive_campaign, record_health_event, record_status_change, serialize_campaign
from services.budget_ledger import BudgetLedger
from services.errors import AuthorizationError, LedgerError, NotFoundError
from services.notification_service import NotificationService
from services.transitions import ensure_campaign_transition

logger = logging.getLogger(__name__)

CLOSED_STATUSES = (CampaignStatusDB.COMPLETED, CampaignStatusDB.CANCELLED)


class CampaignLifecycleService:
    """
    Drives Campaign.status through draft -> discovery -> active -> reviewing -> completed,
    plus cancellation from any open status.

    Sweeps process each campaign inside its own savepoint: a failure rolls
    back and logs that campaign only and the sweep moves on. Every
    transition re-checks its precondition, so re-running a sweep is a no-op.
    """

    def __init__(self, db: Session, notifications: Optional[NotificationService] = None,
                 auto_complete_days: int = REVIEW_AUTO_COMPLETE_DAYS,
                 reminder_hours: int = DEADLINE_REMINDER_HOURS):
        self.db = db
        self.notifications = notifications or NotificationService(db)
        self.ledger = BudgetLedger(db)
        self.auto_complete_days = auto_complete_days
        self.reminder_hours = reminder_hours

    def transition_campaign(self, campaign: Campaign, new_status: CampaignStatusDB, reason: str,
                            now: Optional[datetime] = None) -> dict:
        ensure_campaign_transition(campaign.status, new_status)
        old_status = campaign.status

        campaign.status = new_status
        campaign.status_changed_at = now or datetime.utcnow()
        record_status_change(self.db, "campaign", campaign.id, campaign.brand_user_id, old_status, new_status, reason)

        logger.info(f"Campaign {campaign.id}: {old_status.value} -> {new_status.value} ({reason})")
        return {
            "id": campaign.id,
            "name": campaign.name,
            "from": old_status.value,
            "to": new_status.value,
            "reason": reason,
        }

    # =========================================================================
    # check-transitions
    # =========================================================================

    def check_transitions(self, now: Optional[datetime] = None) -> List[dict]:
        now = now or datetime.utcnow()
        today = now.date()
        transitions: List[dict] = []

        # 1. Discovery -> Active
        for campaign_id in self._campaign_ids(CampaignStatusDB.DISCOVERY, Campaign.timeline_start <= today):
            self._sweep_one(campaign_id, self._activate, now, transitions)

        # 2. Active -> Reviewing
        for campaign_id in self._campaign_ids(CampaignStatusDB.ACTIVE, Campaign.timeline_end <= today):
            self._sweep_one(campaign_id, self._start_review, now, transitions)

        # 3. Reviewing -> Completed
        for campaign_id in self._campaign_ids(CampaignStatusDB.REVIEWING):
            self._sweep_one(campaign_id, self._complete, now, transitions)

        if transitions:
            record_health_event(
                self.db, "campaign_lifecycle",
                f"Transitioned {len(transitions)} campaigns",
                {"transitions": transitions},
            )
            self.db.flush()
        return transitions

    def _activate(self, campaign: Campaign, now: datetime) -> Optional[dict]:
        if campaign.status != CampaignStatusDB.DISCOVERY or campaign.timeline_start is None:
            return None
        if campaign.timeline_start > now.date():
            return None

        active_participants = self.db.query(CampaignParticipant).filter(
            CampaignParticipant.campaign_id == campaign.id,
            CampaignParticipant.status == ParticipantStatusDB.ACTIVE,
        ).count()
        if not active_participants:
            return None
        return self.transition_campaign(campaign, CampaignStatusDB.ACTIVE,
                                        "Timeline started with active participants", now)

    def _start_review(self, campaign: Campaign, now: datetime) -> Optional[dict]:
        if campaign.status != CampaignStatusDB.ACTIVE or campaign.timeline_end is None:
            return None
        if campaign.timeline_end > now.date():
            return None
        return self.transition_campaign(campaign, CampaignStatusDB.REVIEWING, "Timeline ended", now)

    def _complete(self, campaign: Campaign, now: datetime) -> Optional[dict]:
        if campaign.status != CampaignStatusDB.REVIEWING:
            return None

        statuses = [status for (status,) in self.db.query(CampaignParticipant.status).filter(
            CampaignParticipant.campaign_id == campaign.id
        ).all()]
        all_completed = bool(statuses) and all(status == ParticipantStatusDB.COMPLETED for status in statuses)

        review_started = campaign.status_changed_at or campaign.updated_at or now
        days_in_review = (now - review_started).total_seconds() / 86400

        if not all_completed and days_in_review < self.auto_complete_days:
            return None

        reason = "All participants completed" if all_completed else f"Auto-completed after {self.auto_complete_days} days"
        transition = self.transition_campaign(campaign, CampaignStatusDB.COMPLETED, reason, now)
        archive_campaign(self.db, campaign, SnapshotTypeDB.COMPLETED)
        return transition

    def _campaign_ids(self, status: CampaignStatusDB, *criteria) -> List[str]:
        query = self.db.query(Campaign.id).filter(Campaign.status == status, *criteria)
        return [campaign_id for (campaign_id,) in query.all()]

    def _sweep_one(self, campaign_id: str, step: Callable[[Campaign, datetime], Optional[dict]],
                   now: datetime, transitions: List[dict]) -> None:
        try:
            with self.db.begin_nested():
                campaign = self.db.get(Campaign, campaign_id)
                if campaign is None:
                    raise NotFoundError("campaign", campaign_id)
                transition = step(campaign, now)
        except (LedgerError, SQLAlchemyError):
            logger.exception(f"Lifecycle step {step.__name__} failed for campaign {campaign_id}")
            return

        if transition:
            transitions.append(transition)

    # =========================================================================
    # cancel-campaign
    # =========================================================================

    def cancel_campaign(self, actor: Optional[User], campaign_id: str, reason: Optional[str] = None) -> dict:
        campaign = self.db.get(Campaign, campaign_id)
        if campaign is None:
            raise NotFoundError("campaign", campaign_id)
        if actor is None or campaign.brand_user_id != actor.id:
            raise AuthorizationError("Only the campaign owner can cancel it")
        ensure_campaign_transition(campaign.status, CampaignStatusDB.CANCELLED)

        snapshot_data = serialize_campaign(campaign)
        released = self.ledger.release_reservations(campaign_id, "Campaign cancelled")
        transition = self.transition_campaign(campaign, CampaignStatusDB.CANCELLED, reason or "Cancelled by brand")
        snapshot = archive_campaign(self.db, campaign, SnapshotTypeDB.CANCELLED, created_by=actor.id, data=snapshot_data)
        self.db.flush()

        creator_ids = [creator_id for (creator_id,) in self.db.query(CampaignParticipant.creator_user_id).filter(
            CampaignParticipant.campaign_id == campaign_id
        ).all()]
        notified = self.notifications.notify_campaign_cancelled(creator_ids, campaign.id, campaign.name)

        return {
            "campaign": campaign,
            "transition": transition,
            "released_reservations": released,
            "snapshot": snapshot,
            "notified": len(notified),
        }

    # =========================================================================
    # check-deadline-reminders
    # =========================================================================

    def check_deadline_reminders(self, now: Optional[datetime] = None) -> dict:
        """Remind active participants once per deliverable due inside the reminder window."""
        now = now or datetime.utcnow()
        window_end = now + timedelta(hours=self.reminder_hours)

        deliverables = self.db.query(CampaignDeliverable).join(Campaign).filter(
            CampaignDeliverable.required_by >= now,
            CampaignDeliverable.required_by <= window_end,
            Campaign.status.notin_(CLOSED_STATUSES),
        ).all()

        reminders = []
        for deliverable in deliverables:
            creator_ids = [creator_id for (creator_id,) in self.db.query(CampaignParticipant.creator_user_id).filter(
                CampaignParticipant.campaign_id == deliverable.campaign_id,
                CampaignParticipant.status == ParticipantStatusDB.ACTIVE,
            ).all()]

            for creator_id in creator_ids:
                if self._has_submitted(deliverable.id, creator_id) or self._was_reminded(deliverable.id, creator_id):
                    continue

                self.notifications.notify_deadline_reminder(
                    creator_user_id=creator_id,
                    campaign_id=deliverable.campaign_id,
                    campaign_name=deliverable.campaign.name,
                    deliverable_id=deliverable.id,
                    deliverable_title=deliverable.title,
                    hours=self.reminder_hours,
                )
                self.db.add(DeadlineReminder(deliverable_id=deliverable.id, creator_user_id=creator_id, sent_at=now))
                reminders.append({"deliverable_id": deliverable.id, "creator_user_id": creator_id})

        self.db.flush()
        if reminders:
            logger.info(f"Sent {len(reminders)} deadline reminders")
        return {"reminders_sent": len(reminders), "reminders": reminders}

    def _has_submitted(self, deliverable_id: str, creator_id: str) -> bool:
        return self.db.query(CreatorSubmission.id).filter(
            CreatorSubmission.deliverable_id == deliverable_id,
            CreatorSubmission.creator_user_id == creator_id,
        ).first() is not None

    def _was_reminded(self, deliverable_id: str, creator_id: str) -> bool:
        return self.db.query(DeadlineReminder.id).filter(
            DeadlineReminder.deliverable_id == deliverable_id,
            DeadlineReminder.creator_user_id == creator_id,
        ).first() is not None

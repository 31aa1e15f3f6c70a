# Notification Service for the Campaign Ledger
# Provides centralized notification creation and management

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import datetime
from enum import Enum
import logging

from database.campaign_models import Notification

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    INVITATION_RECEIVED = "invitation_received"
    INVITATION_ACCEPTED = "invitation_accepted"
    INVITATION_DECLINED = "invitation_declined"
    INVITATION_WITHDRAWN = "invitation_withdrawn"
    PAYOUT_UPDATED = "payout_updated"
    NEGOTIATION_PROPOSED = "negotiation_proposed"
    NEGOTIATION_ACCEPTED = "negotiation_accepted"
    NEGOTIATION_REJECTED = "negotiation_rejected"
    BUDGET_REDISTRIBUTED = "budget_redistributed"
    CAMPAIGN_STATUS_CHANGED = "campaign_status_changed"
    DEADLINE_REMINDER = "deadline_reminder"
    SYSTEM = "system"


class NotificationService:
    """
    Service for creating and managing user notifications.
    Use this service from any other service or router to send notifications.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user_id: str,
        type: NotificationType | str,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> Notification:
        """
        Create a new notification for a user.

        Args:
            user_id: The user to notify
            type: Notification type (use NotificationType enum)
            title: Short notification title
            message: Full notification message
            action_url: Optional URL for the notification action
            data: Optional additional data as JSON

        Returns:
            The created Notification object
        """
        if isinstance(type, NotificationType):
            type = type.value
        elif type not in NotificationType._value2member_map_:
            type = NotificationType.SYSTEM.value

        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            action_url=action_url,
            data=data or {},
        )
        self.db.add(notification)
        self.db.flush()  # Get the ID without committing
        return notification

    def dispatch(
        self,
        user_id: str,
        type: NotificationType | str,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> Optional[Notification]:
        """
        Fire-and-forget variant of create().

        The notification is written inside a savepoint so a failure is logged
        and rolled back on its own, leaving the caller's transaction intact.
        """
        try:
            with self.db.begin_nested():
                return self.create(user_id, type, title, message, action_url=action_url, data=data)
        except SQLAlchemyError:
            logger.exception(f"Failed to notify user {user_id} ({type})")
            return None

    def dispatch_batch(
        self,
        user_ids: List[str],
        type: NotificationType | str,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> List[Notification]:
        """Notify several users; failures for one user do not stop the rest."""
        notifications = []
        for user_id in user_ids:
            notification = self.dispatch(user_id, type, title, message, action_url=action_url, data=data)
            if notification is not None:
                notifications.append(notification)
        return notifications

    def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read == False)  # noqa: E712
        return query.order_by(Notification.created_at.desc()).limit(limit).all()

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        """
        Mark a notification as read.

        Returns:
            True if notification was marked read, False if not found
        """
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()

        if notification:
            notification.is_read = True
            notification.read_at = datetime.utcnow()
            return True
        return False

    def mark_all_read(self, user_id: str) -> int:
        """
        Mark all notifications as read for a user.

        Returns:
            Number of notifications marked as read
        """
        count = self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read == False  # noqa: E712
        ).update({
            "is_read": True,
            "read_at": datetime.utcnow()
        }, synchronize_session=False)
        return count

    def get_unread_count(self, user_id: str) -> int:
        """Get unread notification count for a user."""
        return self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read == False  # noqa: E712
        ).count()

    # =========================================================================
    # INVITATION NOTIFICATION HELPERS
    # =========================================================================

    def notify_invitation_received(self, creator_user_id: str, brand_name: str, campaign_id: str,
                                   campaign_name: str, offered_payout: int):
        """Notify creator of a new campaign invitation."""
        return self.dispatch(
            user_id=creator_user_id,
            type=NotificationType.INVITATION_RECEIVED,
            title="New Campaign Invitation",
            message=f"{brand_name} invited you to '{campaign_name}' for {offered_payout / 100:,.2f}",
            action_url=f"/campaign/{campaign_id}",
            data={"campaign_id": campaign_id, "offered_payout": offered_payout},
        )

    def notify_invitation_answered(self, brand_user_id: str, creator_name: str, campaign_id: str,
                                   invitation_id: str, accepted: bool):
        """Notify brand that a creator accepted or declined an invitation."""
        if accepted:
            return self.dispatch(
                user_id=brand_user_id,
                type=NotificationType.INVITATION_ACCEPTED,
                title="Invitation Accepted",
                message=f"{creator_name} joined your campaign.",
                action_url=f"/campaign/{campaign_id}",
                data={"campaign_id": campaign_id, "invitation_id": invitation_id},
            )
        return self.dispatch(
            user_id=brand_user_id,
            type=NotificationType.INVITATION_DECLINED,
            title="Invitation Declined",
            message=f"{creator_name} declined your invitation. The budget has been freed.",
            action_url=f"/campaign/{campaign_id}",
            data={"campaign_id": campaign_id, "invitation_id": invitation_id},
        )

    def notify_invitation_withdrawn(self, creator_user_id: str, campaign_id: str, campaign_name: str):
        return self.dispatch(
            user_id=creator_user_id,
            type=NotificationType.INVITATION_WITHDRAWN,
            title="Invitation Withdrawn",
            message=f"The invitation to '{campaign_name}' has been cancelled.",
            action_url="/invitations",
            data={"campaign_id": campaign_id},
        )

    def notify_budget_redistributed(self, creator_user_ids: List[str], campaign_id: str, campaign_name: str,
                                    extra_payout: int):
        """Tell creators their offer grew after another creator declined."""
        return self.dispatch_batch(
            user_ids=creator_user_ids,
            type=NotificationType.BUDGET_REDISTRIBUTED,
            title="Payout Increased",
            message=f"Your offer for '{campaign_name}' went up by {extra_payout / 100:,.2f}",
            action_url=f"/campaign/{campaign_id}",
            data={"campaign_id": campaign_id, "extra_payout": extra_payout},
        )

    def notify_negotiation(self, user_id: str, type: NotificationType, campaign_id: str,
                           invitation_id: str, proposed_payout: Optional[int] = None):
        """Notify the other party about a proposal or its outcome."""
        titles = {
            NotificationType.NEGOTIATION_PROPOSED: ("New Proposal", "You received revised terms to review."),
            NotificationType.NEGOTIATION_ACCEPTED: ("Terms Accepted", "Your proposal was accepted."),
            NotificationType.NEGOTIATION_REJECTED: ("Proposal Declined", "Your proposal was not accepted."),
        }
        title, message = titles[type]
        return self.dispatch(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            action_url=f"/campaign/{campaign_id}",
            data={"campaign_id": campaign_id, "invitation_id": invitation_id, "proposed_payout": proposed_payout},
        )

    # =========================================================================
    # LIFECYCLE NOTIFICATION HELPERS
    # =========================================================================

    def notify_campaign_cancelled(self, creator_user_ids: List[str], campaign_id: str, campaign_name: str):
        """Notify every participant that the brand cancelled the campaign."""
        return self.dispatch_batch(
            user_ids=creator_user_ids,
            type=NotificationType.CAMPAIGN_STATUS_CHANGED,
            title="Campaign Cancelled",
            message=f'"{campaign_name}" has been cancelled by the brand.',
            action_url="/dashboard",
            data={"campaign_id": campaign_id, "campaign_name": campaign_name},
        )

    def notify_deadline_reminder(self, creator_user_id: str, campaign_id: str, campaign_name: str,
                                 deliverable_id: str, deliverable_title: str, hours: int):
        return self.dispatch(
            user_id=creator_user_id,
            type=NotificationType.DEADLINE_REMINDER,
            title="Deadline Reminder",
            message=f'"{deliverable_title}" for "{campaign_name}" is due in {hours} hours',
            action_url=f"/campaign/{campaign_id}",
            data={"deliverable_id": deliverable_id, "title": deliverable_title},
        )


# Convenience function to get service
def get_notification_service(db: Session) -> NotificationService:
    """Get NotificationService instance."""
    return NotificationService(db)

# Campaign Lifecycle Router for the Campaign Ledger
# Single action endpoint for the lifecycle sweeps and brand cancellation

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from database.config import get_db
from database.models import User
from schemas.campaigns import LifecycleRequest, LifecycleAction
from auth.decorators import AuthError, get_user_type
from auth.roles import Permission, has_permission
from auth.dependencies import get_current_user
from services.campaign_lifecycle import CampaignLifecycleService
from routers.campaigns import _campaign_to_response
from routers.common import commit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/campaign-lifecycle", tags=["Campaign Lifecycle"])


@router.post("")
async def run_lifecycle_action(
    request: LifecycleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Dispatch a lifecycle action.

    - check-transitions: advance every campaign whose dates or participants allow it (admin)
    - check-deadline-reminders: remind participants of deliverables due soon (admin)
    - cancel-campaign: cancel ``campaign_id`` and release its held budget (campaign owner)
    """
    service = CampaignLifecycleService(db)

    if request.action == LifecycleAction.CANCEL_CAMPAIGN:
        if not has_permission(get_user_type(current_user), Permission.CANCEL_CAMPAIGNS):
            raise AuthError(detail="You do not have permission to cancel campaigns")
        result = service.cancel_campaign(current_user, request.campaign_id, request.reason)
        commit(db, "cancel the campaign")
        db.refresh(result["campaign"])
        return {
            "success": True,
            "campaign": _campaign_to_response(result["campaign"]),
            "released_reservations": len(result["released_reservations"]),
            "notified": result["notified"],
        }

    if not has_permission(get_user_type(current_user), Permission.RUN_LIFECYCLE_SWEEPS):
        raise AuthError(detail="Admin access required")

    if request.action == LifecycleAction.CHECK_TRANSITIONS:
        transitions = service.check_transitions()
        commit(db, "record the campaign transitions")
        logger.info(f"Lifecycle sweep by {current_user.id}: {len(transitions)} transitions")
        return {"success": True, "transitions": transitions}

    result = service.check_deadline_reminders()
    commit(db, "record the deadline reminders")
    return {"success": True, **result}

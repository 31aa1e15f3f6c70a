# Audit trail helpers: status-change audit rows, campaign snapshots, health events

from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from database.campaign_models import (
    AuditLog, Campaign, CampaignSnapshot, SnapshotTypeDB, SystemHealthLog
)


def record_status_change(
    db: Session,
    entity_type: str,
    entity_id: str,
    user_id: Optional[str],
    old_status,
    new_status,
    reason: Optional[str] = None,
) -> AuditLog:
    """Write an audit row capturing {old_status, new_status, reason}."""
    entry = AuditLog(
        user_id=user_id,
        action=f"{entity_type}_status_changed",
        entity_type=entity_type,
        entity_id=entity_id,
        old_value={"status": _plain(old_status)},
        new_value={"status": _plain(new_status)},
        metadata_json={"reason": reason} if reason else {},
    )
    db.add(entry)
    return entry


def archive_campaign(db: Session, campaign: Campaign, snapshot_type: SnapshotTypeDB, created_by: Optional[str] = None,
                     data: Optional[dict] = None) -> CampaignSnapshot:
    snapshot = CampaignSnapshot(
        campaign_id=campaign.id,
        snapshot_type=snapshot_type,
        snapshot_data=data if data is not None else serialize_campaign(campaign),
        created_by=created_by or campaign.brand_user_id,
    )
    db.add(snapshot)
    return snapshot


def record_health_event(db: Session, event_type: str, message: str, metadata: Optional[dict] = None,
                        severity: str = "info") -> SystemHealthLog:
    event = SystemHealthLog(event_type=event_type, severity=severity, message=message, metadata_json=metadata or {})
    db.add(event)
    return event


def serialize_campaign(campaign: Campaign) -> dict:
    """JSON-safe copy of every column on the campaign row."""
    return {column.name: _plain(getattr(campaign, column.key)) for column in Campaign.__table__.columns}


def _plain(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value

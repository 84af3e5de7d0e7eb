"""User dashboard — activity feed, notifications, performance and charts.

Everything here is derived from the audit trail and the user's listings;
there are no separate analytics tables. Feed texts are Dutch and shown
to users as-is.

Business Rules:
- Activities: last 20 audit rows of the user, newest first
- Notifications: last 10 rows among offer/view/favorite/login actions,
  always unread
- Views and favorites are not tracked yet and report 0
- Conversion rate = completed sales / offers received × 100
- Chart buckets are positional within the selected range
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..models import AuditLog, EnergyProject, Property

log = logging.getLogger(__name__)

ACTIVITY_LIMIT = 20
NOTIFICATION_LIMIT = 10
NOTIFICATION_ACTIONS = ["Offer created", "Property viewed", "Property favorited", "User logged in"]
ANALYTICS_ACTIONS = ["Property viewed", "Property favorited", "Offer created"]

RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
RANGE_LABELS = {
    "7d": ["Ma", "Di", "Wo", "Do", "Vr", "Za", "Zo"],
    "30d": [str(i + 1) for i in range(30)],
    "90d": ["Jan", "Feb", "Mar"],
    "1y": ["Q1", "Q2", "Q3", "Q4"],
}


def _aware(dt: datetime | None) -> datetime | None:
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _values(row: AuditLog) -> dict:
    return row.new_values or {}


# ── Activity feed ─────────────────────────────────────────────────────


def activity_type(action: str) -> str:
    a = action.lower()
    if "view" in a:
        return "view"
    if "favorite" in a:
        return "favorite"
    if "message" in a or "inquiry" in a:
        return "message"
    if "offer" in a:
        return "inquiry"
    return "info"


_ACTIVITY_STYLE = {
    "view": ("Eye", "blue"),
    "favorite": ("Heart", "red"),
    "message": ("MessageSquare", "green"),
    "inquiry": ("User", "purple"),
    "info": ("Info", "gray"),
}


def activity_message(row: AuditLog) -> str:
    values = _values(row)
    if row.action == "Property created":
        return f"Je hebt een nieuwe woning geplaatst: {values.get('address') or 'Onbekend adres'}"
    if row.action == "Property updated":
        return f"Je hebt een woning bijgewerkt: {values.get('address') or 'Onbekend adres'}"
    if row.action == "Offer created":
        amount = values.get("amount")
        return f"Je hebt een bod uitgebracht van €{amount if amount is not None else 'onbekend bedrag'}"
    if row.action == "User logged in":
        return "Je bent ingelogd op je account"
    return f"{row.action} - {row.resource_type}"


def activity_to_dict(row: AuditLog) -> dict:
    kind = activity_type(row.action)
    icon, color = _ACTIVITY_STYLE[kind]
    return {
        "id": row.id,
        "type": kind,
        "message": activity_message(row),
        "timestamp": row.created_at.isoformat() if row.created_at else None,
        "icon": icon,
        "color": color,
    }


def user_activities(db: Session, user_id: int) -> list[dict]:
    rows = (
        db.query(AuditLog)
        .filter(AuditLog.user_id == user_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(ACTIVITY_LIMIT)
        .all()
    )
    return [activity_to_dict(r) for r in rows]


# ── Notifications ─────────────────────────────────────────────────────

_NOTIFICATION_STYLE = {
    "Offer created": ("Nieuw bod uitgebracht", "success", "Euro"),
    "Property viewed": ("Woning bekeken", "info", "Eye"),
    "Property favorited": ("Woning toegevoegd aan favorieten", "info", "Heart"),
    "User logged in": ("Ingelogd", "success", "User"),
}


def notification_message(row: AuditLog) -> str:
    values = _values(row)
    if row.action == "Offer created":
        amount = values.get("amount")
        return f"Je hebt een bod uitgebracht van €{amount if amount is not None else 'onbekend bedrag'}"
    if row.action == "Property viewed":
        return f"Je hebt een woning bekeken: {values.get('address') or 'Onbekend adres'}"
    if row.action == "Property favorited":
        return "Je hebt een woning toegevoegd aan je favorieten"
    if row.action == "User logged in":
        return "Je bent succesvol ingelogd op je account"
    return f"{row.action} uitgevoerd"


def user_notifications(db: Session, user_id: int) -> list[dict]:
    rows = (
        db.query(AuditLog)
        .filter(AuditLog.user_id == user_id, AuditLog.action.in_(NOTIFICATION_ACTIONS))
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(NOTIFICATION_LIMIT)
        .all()
    )
    notifications = []
    for row in rows:
        title, kind, icon = _NOTIFICATION_STYLE.get(row.action, ("Melding", "info", "Info"))
        notifications.append({
            "id": row.id,
            "title": title,
            "message": notification_message(row),
            "type": kind,
            "icon": icon,
            "timestamp": row.created_at.isoformat() if row.created_at else None,
            "read": False,
        })
    return notifications


# ── Performance ───────────────────────────────────────────────────────


def user_performance(db: Session, user_id: int) -> dict:
    props = db.query(Property).filter(Property.user_id == user_id).all()
    sold = [p for p in props if p.status == "SOLD"]
    total_offers = sum(len(p.offers) for p in props)

    days_on_market = [
        (_aware(p.updated_at) - _aware(p.created_at)).days
        for p in sold
        if p.updated_at and p.created_at
    ]
    return {
        "total_views": 0,
        "total_favorites": 0,
        "active_listings": sum(1 for p in props if p.status == "AVAILABLE"),
        "completed_sales": len(sold),
        "total_revenue": sum(float(p.asking_price or 0) for p in sold),
        "monthly_growth": 0,
        "conversion_rate": (len(sold) / total_offers * 100) if total_offers else 0,
        "average_time_on_market": (
            sum(days_on_market) / len(days_on_market) if days_on_market else 0
        ),
    }


# ── Analytics chart ───────────────────────────────────────────────────


def bucket_index(time_range: str, created_at: datetime, start: datetime) -> int:
    """Position of an activity among the range's chart labels."""
    n = len(RANGE_LABELS[time_range])
    if time_range == "7d":
        return created_at.weekday()
    span = RANGE_DAYS[time_range] / n
    index = int((created_at - start).total_seconds() / 86400 // span)
    return max(0, min(n - 1, index))


def user_analytics(db: Session, user_id: int, time_range: str = "7d",
                   now: datetime | None = None) -> dict:
    if time_range not in RANGE_DAYS:
        time_range = "7d"
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=RANGE_DAYS[time_range])
    labels = RANGE_LABELS[time_range]

    rows = (
        db.query(AuditLog)
        .filter(
            AuditLog.user_id == user_id,
            AuditLog.created_at >= start,
            AuditLog.action.in_(ANALYTICS_ACTIONS),
        )
        .order_by(AuditLog.created_at.asc())
        .all()
    )
    views = [0] * len(labels)
    inquiries = [0] * len(labels)
    for row in rows:
        i = bucket_index(time_range, _aware(row.created_at), start)
        if row.action == "Property viewed":
            views[i] += 1
        elif row.action == "Offer created":
            inquiries[i] += 1

    return {
        "chart_data": {
            "labels": labels,
            "datasets": [
                {
                    "label": "Weergaven",
                    "data": views,
                    "border_color": "rgb(59, 130, 246)",
                    "background_color": "rgba(59, 130, 246, 0.1)",
                    "tension": 0.4,
                },
                {
                    "label": "Interesse",
                    "data": inquiries,
                    "border_color": "rgb(16, 185, 129)",
                    "background_color": "rgba(16, 185, 129, 0.1)",
                    "tension": 0.4,
                },
            ],
        }
    }


def user_energy_projects(db: Session, user_id: int) -> list[dict]:
    from .energy_service import project_to_dict

    rows = (
        db.query(EnergyProject)
        .filter(EnergyProject.user_id == user_id)
        .order_by(EnergyProject.created_at.desc())
        .all()
    )
    return [project_to_dict(p) for p in rows]

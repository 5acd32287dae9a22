from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


ALERT_LOW_STOCK = "LOW_STOCK"
ALERT_DUE_DATE = "DUE_DATE"
ALERT_OTHER = "OTHER"
ALERT_TYPES = (ALERT_LOW_STOCK, ALERT_DUE_DATE, ALERT_OTHER)

PRIORITY_LOW = "LOW"
PRIORITY_MEDIUM = "MEDIUM"
PRIORITY_HIGH = "HIGH"
ALERT_PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH)

# Sort key for "most urgent first" listings
PRIORITY_RANK = {PRIORITY_LOW: 1, PRIORITY_MEDIUM: 2, PRIORITY_HIGH: 3}


class Alert(db.Model):
    """
    Operational alert for a company.

    Only the read flag changes after creation. The low-stock trigger is
    additive: it never updates or deletes existing rows.
    """
    __tablename__ = "alerts"
    __table_args__ = (
        # Deduplication lookup: (company, type, title) within a time window
        db.Index("ix_alerts_company_type_title_created", "company_id", "type", "title", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    priority = db.Column(db.String(8), nullable=False, default=PRIORITY_MEDIUM)
    is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "priority": self.priority,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }

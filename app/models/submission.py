"""
DiagnosticSubmission model — one row per form submission.

Stores the raw metrics, the derived scoring output, the rendered report, and
timestamps recording which downstream integrations succeeded.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, Text, DateTime, Index
from sqlalchemy.sql import func

from app.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


def _new_id():
    return str(uuid.uuid4())


class DiagnosticSubmission(Base):
    __tablename__ = 'diagnostic_submissions'

    id = Column(Text, primary_key=True, default=_new_id)

    # Contact
    first_name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    store_url = Column(Text, nullable=False)
    monthly_revenue_range = Column(Text, nullable=True)

    # Raw metrics (trailing 30 days)
    sessions_30d = Column(Integer, nullable=False)
    orders_30d = Column(Integer, nullable=False)
    conversion_rate = Column(Float, nullable=False)
    aov = Column(Float, nullable=False)
    abandoned_carts_30d = Column(Integer, nullable=False)

    # Derived
    revenue_est = Column(Float, nullable=False)
    revenue_per_session = Column(Float, nullable=False)
    leak_score = Column(Integer, nullable=False)
    leak_bucket = Column(Text, nullable=False)
    top_leak_1 = Column(Text, default='None')
    top_leak_2 = Column(Text, default='None')
    teaser_json = Column(Text, nullable=False)
    full_report_html = Column(Text, nullable=False)

    # Tracking
    ip_address = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    utm_source = Column(Text, nullable=True)
    utm_medium = Column(Text, nullable=True)
    utm_campaign = Column(Text, nullable=True)

    # Integration status (set after the response payload is built)
    email_sent_at = Column(DateTime(timezone=True), nullable=True)
    owner_notified_at = Column(DateTime(timezone=True), nullable=True)
    ghl_synced_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    __table_args__ = (
        Index('ix_diagnostic_submissions_email', 'email'),
        Index('ix_diagnostic_submissions_created_at', 'created_at'),
    )

    def to_dict(self):
        """Admin listing view — everything except the stored report bodies."""
        def _iso(dt):
            return dt.isoformat() if dt else None

        return {
            'id': self.id,
            'created_at': _iso(self.created_at),
            'first_name': self.first_name,
            'email': self.email,
            'store_url': self.store_url,
            'monthly_revenue_range': self.monthly_revenue_range,
            'sessions_30d': self.sessions_30d,
            'orders_30d': self.orders_30d,
            'conversion_rate': self.conversion_rate,
            'aov': self.aov,
            'abandoned_carts_30d': self.abandoned_carts_30d,
            'revenue_est': self.revenue_est,
            'revenue_per_session': self.revenue_per_session,
            'leak_score': self.leak_score,
            'leak_bucket': self.leak_bucket,
            'top_leak_1': self.top_leak_1,
            'top_leak_2': self.top_leak_2,
            'email_sent_at': _iso(self.email_sent_at),
            'owner_notified_at': _iso(self.owner_notified_at),
            'ghl_synced_at': _iso(self.ghl_synced_at),
        }

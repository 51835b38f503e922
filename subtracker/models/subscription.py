from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String

from subtracker.db import Base


def utc_now():
    return datetime.now(timezone.utc)


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    cost = Column(Numeric(10, 2), nullable=False)
    frequency = Column(String(20), nullable=False)
    custom_frequency_days = Column(Integer, nullable=True, default=None)
    start_date = Column(Date, nullable=False)

    # Derived by the billing calendar at write time and by the daily refresh job
    renewal_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="Active")

    logo = Column(String(10), nullable=True)
    card_issuer = Column(String(50), nullable=True, default=None)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

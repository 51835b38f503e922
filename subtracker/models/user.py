from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, Numeric, String

from subtracker.db import Base


def utc_now():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String(50), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    # Profile
    monthly_budget = Column(Numeric(10, 2), nullable=True, default=None)
    location = Column(String(100), nullable=True, default=None)
    primary_curr = Column(String(3), nullable=False, default="USD")
    timezone = Column(String(50), default="UTC", nullable=False)

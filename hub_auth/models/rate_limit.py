from sqlalchemy import Column, DateTime, Index, Integer, String

from hub_auth.database import Base


class RateLimitEvent(Base):
    __tablename__ = "otp_rate_limits"

    id = Column(Integer, primary_key=True)
    identifier = Column(String(255), nullable=False)
    action_type = Column(String(32), nullable=False, default="send")
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_rate_limit_lookup", "identifier", "action_type", "created_at"),
    )

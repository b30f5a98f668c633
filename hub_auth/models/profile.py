from sqlalchemy import Column, String

from hub_auth.database import Base


class Profile(Base):
    """Account profile owned by the identity directory; read-only here."""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)

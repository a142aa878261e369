import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from ..database import Base
from .guid import GUID


class Startup(Base):
    __tablename__ = "startups"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    founder_name = Column(String(255), nullable=True)
    # Opaque identifier issued by the external identity provider
    user_id = Column(String(255), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    analyses = relationship(
        "Analysis",
        back_populates="startup",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

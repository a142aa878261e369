import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from ..database import Base
from .guid import GUID


class Analysis(Base):
    __tablename__ = "analyses"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    startup_id = Column(GUID(), ForeignKey("startups.id"), nullable=False, index=True)
    analysis_json = Column(Text, nullable=False)  # stored verbatim, opaque to the datastore
    created_at = Column(DateTime, default=datetime.utcnow)

    startup = relationship("Startup", back_populates="analyses")

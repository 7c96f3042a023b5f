from sqlalchemy import Column, String, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
import uuid

from edusocial.database import Base
from edusocial.utils.time_utils import utcnow

class Institution(Base):
    __tablename__ = "institutions"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    code = Column(String, unique=True, index=True, nullable=False)
    # Comma-separated e-mail domains, e.g. "buet.ac.bd,cse.buet.ac.bd"
    valid_domains = Column(String, default="")
    followers_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    departments = relationship("Department", back_populates="institution")

    @property
    def domains(self):
        return [d.strip().lower() for d in (self.valid_domains or "").split(",") if d.strip()]


class Department(Base):
    __tablename__ = "departments"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    institution_id = Column(String, ForeignKey("institutions.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    code = Column(String, nullable=False)
    followers_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    institution = relationship("Institution", back_populates="departments")

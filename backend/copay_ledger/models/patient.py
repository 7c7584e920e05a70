"""Patient model."""

from sqlalchemy import Column, DateTime, String, func

from copay_ledger.core.database import Base
from copay_ledger.models.shared import UUIDType, generate_uuid


class Patient(Base):
    __tablename__ = "patients"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

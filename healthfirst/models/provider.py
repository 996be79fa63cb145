"""Provider model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from healthfirst.database import Base

PROVIDER_STATUS_PENDING = 'pending'
PROVIDER_STATUS_APPROVED = 'approved'
PROVIDER_STATUS_REJECTED = 'rejected'
PROVIDER_STATUS_SUSPENDED = 'suspended'

PROVIDER_STATUSES = (
    PROVIDER_STATUS_PENDING,
    PROVIDER_STATUS_APPROVED,
    PROVIDER_STATUS_REJECTED,
    PROVIDER_STATUS_SUSPENDED,
)


class Provider(Base):
    """Represents a care provider who owns availability, slots and blocked days."""
    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    specialization = Column(String)
    clinic_name = Column(String)
    city = Column(String)
    state = Column(String)
    status = Column(String, nullable=False, default=PROVIDER_STATUS_PENDING)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f'{self.first_name} {self.last_name}'.strip()

    @property
    def location(self) -> str:
        return ', '.join(part for part in (self.city, self.state) if part)

    @property
    def is_approved(self) -> bool:
        return self.status == PROVIDER_STATUS_APPROVED

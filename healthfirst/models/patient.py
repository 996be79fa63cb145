"""Patient model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String

from healthfirst.database import Base

PATIENT_STATUSES = ('active', 'inactive', 'suspended')


class Patient(Base):
    """Represents a patient assigned to a single provider."""
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    patient_code = Column(String, unique=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    status = Column(String, nullable=False, default='active')
    assigned_provider_id = Column(Integer, ForeignKey("providers.id", ondelete="CASCADE"), nullable=False)

    @property
    def full_name(self) -> str:
        return f'{self.first_name} {self.last_name}'.strip()

from sqlalchemy import Column, String, DateTime, ForeignKey

from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models._ids import new_id


class Profile(Base):
    """A team member of a company. Owns jobs and acts on candidates."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    password_hash = Column(String, nullable=True)
    role = Column(String, nullable=False, default="member")  # admin | member
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

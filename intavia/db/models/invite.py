from sqlalchemy import Column, String, DateTime, ForeignKey

from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models._ids import new_id


class Invite(Base):
    """
    Pending team membership offer.

    Any status other than "pending" is terminal. An invite past expires_at is
    invalid even while its status still reads "pending".
    """
    __tablename__ = "invites"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String, nullable=False, index=True)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    role = Column(String, nullable=False, default="member")
    status = Column(String, nullable=False, default="pending")  # pending | accepted | rejected
    invited_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

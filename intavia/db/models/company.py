from sqlalchemy import Column, String, DateTime

from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models._ids import new_id


class Company(Base):
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

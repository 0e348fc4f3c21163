from sqlalchemy import Column, String, Text, DateTime
from db.session import Base
from db.models.mixins import TimestampMixin, new_id


class Verification(Base, TimestampMixin):
    __tablename__ = "verification"

    id = Column(String(64), primary_key=True, default=new_id)
    # "<purpose>:<normalized email>", one live row per identifier
    identifier = Column(String(320), unique=True, index=True, nullable=False)
    # JSON {"code": <sha256 hex>, "attempts": <int>}
    value = Column(Text, nullable=False)
    expires_at = Column(DateTime, nullable=False)

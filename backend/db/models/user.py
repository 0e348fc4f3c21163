from sqlalchemy import Column, String, Boolean
from db.session import Base
from db.models.mixins import TimestampMixin, new_id
from core.roles import DEFAULT_ROLE


class User(Base, TimestampMixin):
    __tablename__ = "user"

    id = Column(String(64), primary_key=True, default=new_id)
    name = Column(String(255), nullable=True)
    # Stored lower-cased and trimmed
    email = Column(String(255), unique=True, index=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    image = Column(String(512), nullable=True)
    role = Column(String(50), default=DEFAULT_ROLE, nullable=False)

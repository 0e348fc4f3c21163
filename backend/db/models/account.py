from sqlalchemy import Column, String, ForeignKey, Index
from db.session import Base
from db.models.mixins import TimestampMixin, new_id

CREDENTIAL_PROVIDER = "credential"


class Account(Base, TimestampMixin):
    """A login method linked to a user: password credential or social provider."""
    __tablename__ = "account"

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(255), nullable=True)
    provider_id = Column(String(255), nullable=False, default=CREDENTIAL_PROVIDER)
    user_id = Column(String(64), ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    password = Column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_account_user_provider", "user_id", "provider_id"),
    )

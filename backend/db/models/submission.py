from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import declared_attr
from db.session import Base
from db.models.mixins import TimestampMixin, new_id

SUBMISSION_STATUSES = ("pending", "accepted", "rejected")


class SubmissionMixin(TimestampMixin):
    id = Column(String(64), primary_key=True, default=new_id)
    full_name = Column(String(255), nullable=False)
    phone_number = Column(String(64), nullable=False)
    woreda = Column(String(255), nullable=False)
    kebele = Column(String(255), nullable=False)
    village = Column(String(255), nullable=False)
    identity_document_url = Column(String(1024), nullable=False)
    home_map_url = Column(String(1024), nullable=False)
    status = Column(String(32), default="pending", nullable=False)
    status_updated_at = Column(DateTime, nullable=True)

    # Foreign keys on a mixin have to be built per table
    @declared_attr
    def user_id(cls):
        return Column(String(64), ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)

    @declared_attr
    def status_updated_by_user_id(cls):
        return Column(String(64), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)


class SellSubmission(Base, SubmissionMixin):
    __tablename__ = "sell_submission"


class LessorSubmission(Base, SubmissionMixin):
    __tablename__ = "lessor_submission"


SUBMISSION_MODELS = {
    "sell": SellSubmission,
    "lessor": LessorSubmission,
}

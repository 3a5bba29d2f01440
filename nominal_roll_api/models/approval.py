from datetime import datetime
from nominal_roll_api.extensions import db

class MonthlyApproval(db.Model):
    """One approval decision per staff member per calendar month.

    Rows are only ever inserted or overwritten in place; a month with no row
    reads as Pending. ``version`` starts at 1 and bumps on every overwrite so
    a caller can detect that somebody else decided in between.
    """
    __tablename__ = "monthly_approvals"

    id = db.Column(db.Integer, primary_key=True)
    staff_member_id  = db.Column(db.Integer, db.ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False)
    month_start_date = db.Column(db.Date, nullable=False)          # always the 1st, UTC
    status   = db.Column(db.String(16), nullable=False)            # Approved|Disapproved
    emiscode = db.Column(db.Integer, nullable=False)               # school at decision time
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    version     = db.Column(db.Integer, nullable=False, default=1)

    __table_args__ = (
        db.UniqueConstraint("staff_member_id", "month_start_date", name="uq_monthly_approval_staff_month"),
        db.Index("ix_monthly_approval_school_month", "emiscode", "month_start_date"),
        db.Index("ix_monthly_approval_month", "month_start_date"),
    )

    staff_member = db.relationship("StaffMember", back_populates="approvals")
    approved_by  = db.relationship("User")

    def __repr__(self) -> str:
        return (f"<MonthlyApproval staff_member_id={self.staff_member_id} "
                f"month={self.month_start_date} status={self.status!r} v{self.version}>")

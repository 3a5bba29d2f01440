from datetime import datetime
from nominal_roll_api.extensions import db

class PullHistoryEntry(db.Model):
    """Where a pulled staff member was before the pull, kept per acting user for one-step undo.

    Capped to the most recent entries per actor and consumed by undo. This is
    not an audit trail.
    """
    __tablename__ = "pull_history"

    id = db.Column(db.Integer, primary_key=True)
    actor_user_id   = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    staff_member_id = db.Column(db.Integer, db.ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False)

    # location before the pull
    prior_emiscode = db.Column(db.Integer, nullable=False)
    prior_school   = db.Column(db.String(255), nullable=False)
    prior_unit     = db.Column(db.String(120), nullable=True)

    pulled_to_emiscode = db.Column(db.Integer, nullable=False)
    pulled_to_school   = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    staff_member = db.relationship("StaffMember", lazy="joined")

from datetime import datetime
from nominal_roll_api.extensions import db
from nominal_roll_api.models.enums import StaffStatus, ArchivalState

class StaffMember(db.Model):
    __tablename__ = "staff_members"

    id = db.Column(db.Integer, primary_key=True)
    # identity / placement
    staff_id = db.Column(db.String(32), unique=True, nullable=False)   # business key
    name     = db.Column(db.String(255), nullable=False)
    school   = db.Column(db.String(255), nullable=False)
    emiscode = db.Column(db.Integer, nullable=False)                  # current school
    unit     = db.Column(db.String(120), nullable=True)
    rank      = db.Column(db.String(120), nullable=True)
    stafftype = db.Column(db.String(40), nullable=True)               # e.g. headteacher / teaching / non-teaching

    # lifecycle
    status      = db.Column(db.String(20), nullable=False, default=StaffStatus.AT_POST.value)
    status_desc = db.Column(db.Text, nullable=True)
    authorised  = db.Column(db.Boolean, nullable=False, default=False)  # login gate for teachers
    is_archived = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())

    # personal / contact
    dob             = db.Column(db.Date, nullable=True)
    email           = db.Column(db.String(255), nullable=True)
    phone           = db.Column(db.String(20), nullable=True)
    phone2          = db.Column(db.String(20), nullable=True)
    resident_add    = db.Column(db.String(255), nullable=True)
    residential_gps = db.Column(db.String(64), nullable=True)

    # statutory ids
    ssnit   = db.Column(db.String(32), nullable=True)
    gh_card = db.Column(db.String(32), nullable=True)
    nhis    = db.Column(db.String(32), nullable=True)
    ntc_num = db.Column(db.String(32), nullable=True)

    # banking
    bank_name   = db.Column(db.String(120), nullable=True)
    bank_branch = db.Column(db.String(120), nullable=True)
    account     = db.Column(db.String(40), nullable=True)

    # qualifications
    acad_qual          = db.Column(db.String(120), nullable=True)
    date_obtained_acad = db.Column(db.Date, nullable=True)
    prof_qual          = db.Column(db.String(120), nullable=True)
    date_obtained_prof = db.Column(db.Date, nullable=True)
    level              = db.Column(db.String(40), nullable=True)
    subject            = db.Column(db.String(120), nullable=True)

    # service dates
    date_first_app          = db.Column(db.Date, nullable=True)
    date_promoted           = db.Column(db.Date, nullable=True)
    date_posted_present_sta = db.Column(db.Date, nullable=True)

    profile_image_url = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_staff_emiscode", "emiscode"),
        db.Index("ix_staff_emiscode_archived", "emiscode", "is_archived"),
        db.Index("ix_staff_name", "name"),
    )

    approvals = db.relationship(
        "MonthlyApproval",
        back_populates="staff_member",
        lazy="dynamic",
        passive_deletes=True,
    )

    @property
    def archival_state(self) -> ArchivalState:
        return ArchivalState.ARCHIVED if self.is_archived else ArchivalState.ACTIVE

    @classmethod
    def active(cls):
        """Query over staff that have not been archived."""
        return cls.query.filter(cls.is_archived.is_(False))

    def __repr__(self) -> str:
        return f"<StaffMember id={self.id} staff_id={self.staff_id!r} emiscode={self.emiscode}>"

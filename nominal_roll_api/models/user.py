from datetime import datetime
from nominal_roll_api.extensions import db
from nominal_roll_api.models.enums import UserRole
from werkzeug.security import generate_password_hash, check_password_hash

class User(db.Model):
    __tablename__ = "users"

    id           = db.Column(db.Integer, primary_key=True)
    email        = db.Column(db.String(255), unique=True, index=True, nullable=False)
    staff_id     = db.Column(db.String(32), unique=True, index=True, nullable=False)
    emiscode     = db.Column(db.Integer, nullable=True)
    role         = db.Column(db.String(20), nullable=False, default=UserRole.TEACHER.value)
    password_hash= db.Column(db.String(255), nullable=False)
    full_name    = db.Column(db.String(255), nullable=False)
    created_at   = db.Column(db.DateTime, default=datetime.utcnow)

    # --- helpers ---
    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return check_password_hash(self.password_hash, raw)

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.SUPERADMIN.value

    @property
    def is_admin(self) -> bool:
        """True for school admins and superadmins alike."""
        return self.role in (UserRole.ADMIN.value, UserRole.SUPERADMIN.value)

    def __repr__(self) -> str:
        return f"<User id={self.id} staff_id={self.staff_id!r} role={self.role!r}>"

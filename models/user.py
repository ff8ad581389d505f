"""User model definition."""

from datetime import datetime

from werkzeug.security import check_password_hash, generate_password_hash

from . import db


ROLES = ("user", "admin")


class User(db.Model):
    """An account moving through registration, verification and approval."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(16), nullable=False, default="user")
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    is_approved = db.Column(db.Boolean, nullable=False, default=False)
    verification_token = db.Column(db.String(128), unique=True, nullable=True)
    reset_password_token = db.Column(db.String(128), nullable=True, index=True)
    reset_password_expires = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    documents = db.relationship("Document", back_populates="author", lazy="dynamic")

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def mark_verified(self) -> None:
        """Flag the email as verified and drop the one-shot token."""

        self.is_verified = True
        self.verification_token = None

    def clear_reset_token(self) -> None:
        self.reset_password_token = None
        self.reset_password_expires = None

    def to_session_dict(self) -> dict:
        """The subset returned alongside a session token."""

        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role}

    def to_dict(self) -> dict:
        """Serialize the user for admin listings; never includes secrets."""

        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_verified": self.is_verified,
            "is_approved": self.is_approved,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"

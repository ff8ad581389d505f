"""SMTP configuration model definition."""

from datetime import datetime

from . import db


class SmtpConfig(db.Model):
    """Outgoing mail server settings; at most one row is active."""

    __tablename__ = "smtp_configs"

    id = db.Column(db.Integer, primary_key=True)
    host = db.Column(db.String(255), nullable=False)
    port = db.Column(db.Integer, nullable=False)
    secure = db.Column(db.Boolean, nullable=False, default=True)
    auth_user = db.Column(db.String(255), nullable=False)
    auth_pass = db.Column(db.String(255), nullable=False)
    from_email = db.Column(db.String(255), nullable=False)
    from_name = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    creator = db.relationship("User")

    @classmethod
    def active(cls):
        return cls.query.filter_by(is_active=True).first()

    @classmethod
    def deactivate_all(cls, exclude_id: int | None = None) -> None:
        query = cls.query.filter_by(is_active=True)
        if exclude_id is not None:
            query = query.filter(cls.id != exclude_id)
        query.update({cls.is_active: False}, synchronize_session="fetch")

    def to_dict(self) -> dict:
        """Serialize without the SMTP password."""

        return {
            "id": self.id,
            "host": self.host,
            "port": self.port,
            "secure": self.secure,
            "auth": {"user": self.auth_user},
            "from_email": self.from_email,
            "from_name": self.from_name,
            "is_active": self.is_active,
            "created_by": (
                {"id": self.creator.id, "name": self.creator.name, "email": self.creator.email}
                if self.creator is not None
                else None
            ),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

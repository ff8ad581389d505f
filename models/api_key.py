"""Third-party API key model definition."""

from datetime import datetime

from . import db


API_KEY_SERVICES = ("openai", "google", "azure", "other")


class ApiKey(db.Model):
    """A stored credential for an external AI service."""

    __tablename__ = "api_keys"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    service = db.Column(db.String(32), nullable=False, index=True)
    key = db.Column(db.String(512), nullable=False)
    model = db.Column(db.String(120), nullable=False, default="")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @classmethod
    def active_for(cls, service: str):
        """Return the active key for a service, if any."""

        return cls.query.filter_by(service=service.lower(), is_active=True).first()

    @classmethod
    def deactivate_service(cls, service: str, exclude_id: int | None = None) -> None:
        """Deactivate every active key of a service, optionally sparing one."""

        query = cls.query.filter_by(service=service.lower(), is_active=True)
        if exclude_id is not None:
            query = query.filter(cls.id != exclude_id)
        query.update({cls.is_active: False}, synchronize_session="fetch")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "service": self.service,
            "key": self.key,
            "model": self.model,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

"""Converted document model definition."""

from datetime import datetime

from . import db


class Document(db.Model):
    """An uploaded file or URL together with its markdown conversion."""

    __tablename__ = "documents"

    id = db.Column(db.Integer, primary_key=True)
    author_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    original_name = db.Column(db.String(1024), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(512), nullable=False)
    file_size = db.Column(db.Integer, nullable=False, default=0)
    content_type = db.Column(db.String(255), nullable=False)
    markdown_content = db.Column(db.Text, nullable=False, default="")
    conversion_method = db.Column(db.String(64), nullable=False)
    processing_time = db.Column(db.Float, nullable=False, default=0.0)
    original_url = db.Column(db.String(2048), nullable=True)
    created_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        server_default=db.func.now(),
    )

    author = db.relationship("User", back_populates="documents")

    def is_owned_by(self, user) -> bool:
        return self.author_id is not None and self.author_id == user.id

    def to_dict(self, include_author: bool = False) -> dict:
        """Serialize the document into a dictionary."""

        data = {
            "id": self.id,
            "author_id": self.author_id,
            "original_name": self.original_name,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "content_type": self.content_type,
            "markdown_content": self.markdown_content,
            "conversion_method": self.conversion_method,
            "processing_time": self.processing_time,
            "original_url": self.original_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_author:
            data["author"] = (
                {"id": self.author.id, "name": self.author.name, "email": self.author.email}
                if self.author is not None
                else None
            )
        return data

    def __repr__(self) -> str:
        return f"<Document id={self.id} author_id={self.author_id} name={self.original_name!r}>"

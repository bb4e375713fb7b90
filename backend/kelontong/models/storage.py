from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class StorageBlob(db.Model):
    """
    One named, wholesale-serialized collection (products, transactions).

    The payload is opaque to this table; versioning and decoding live in
    services/persistence_service.py.
    """
    __tablename__ = "storage_blobs"

    key = db.Column(db.String(64), primary_key=True)
    payload = db.Column(db.Text, nullable=False)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<StorageBlob key={self.key!r} bytes={len(self.payload or '')}>"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "bytes": len(self.payload or ""),
            "updated_at": to_utc_z(self.updated_at),
        }

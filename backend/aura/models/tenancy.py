from __future__ import annotations

from ..extensions import db
from aura.time_utils import to_utc_z

class Organization(db.Model):
    """
    Partner organization that dealers sell on behalf of.

    WHY: Referral landing pages and attribution reports show the
    organization's display fields (name, logo), not the individual dealer.

    DESIGN:
    - One organization may have many dealers (dealers.organization_id FK)
    - Deactivating an organization does not deactivate its dealers;
      attribution only looks at dealers.is_active
    """
    __tablename__ = "organizations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    logo_url = db.Column(db.String(1024), nullable=True)
    contact_email = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "logo_url": self.logo_url,
            "contact_email": self.contact_email,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_public_dict(self) -> dict:
        """Display fields safe to show on unauthenticated referral pages."""
        return {"name": self.name, "logoUrl": self.logo_url}

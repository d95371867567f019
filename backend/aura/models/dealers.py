from __future__ import annotations

from ..extensions import db
from aura.time_utils import to_utc_z


class Dealer(db.Model):
    """
    Referring partner that earns attribution for box subscriptions.

    Attribution is valid only while is_active is True. Inactive dealers
    keep their row (and code) for reporting.

    NOTE: referral_code is indexed but not unique. Lookups pick the lowest
    id when the data holds duplicates (see referral_service).
    """
    __tablename__ = "dealers"
    __table_args__ = (
        db.Index("ix_dealers_code_active", "referral_code", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    profile_id = db.Column(db.String(64), db.ForeignKey("profiles.id"), nullable=True, index=True)

    referral_code = db.Column(db.String(64), nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("dealers", lazy=True))
    profile = db.relationship("Profile", backref=db.backref("dealers", lazy=True))

    def __repr__(self) -> str:
        return f"<Dealer id={self.id} code={self.referral_code!r} active={self.is_active}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "profile_id": self.profile_id,
            "referral_code": self.referral_code,
            "is_active": self.is_active,
            "organization": self.organization.to_public_dict() if self.organization else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

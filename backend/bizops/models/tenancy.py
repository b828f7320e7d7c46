from __future__ import annotations

from ..extensions import db
from bizops.time_utils import to_utc_z, utcnow


class Business(db.Model):
    """
    Client business (tenant).

    Locations and client users hang off a business; destructive operations on
    those collections go through the last-record guard.
    """
    __tablename__ = "businesses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    soft_delete = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "soft_delete": self.soft_delete,
            "created_at": to_utc_z(self.created_at),
        }


class ServiceLocation(db.Model):
    """Site where service is delivered; the headquarters row is not a service location."""
    __tablename__ = "service_locations"
    __table_args__ = (
        db.Index("ix_service_locations_business_active", "business_id", "is_active", "soft_delete"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    is_headquarters = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    soft_delete = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    business = db.relationship("Business", backref=db.backref("service_locations", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "is_headquarters": self.is_headquarters,
            "is_active": self.is_active,
            "soft_delete": self.soft_delete,
            "created_at": to_utc_z(self.created_at),
        }


class ClientUser(db.Model):
    """Client-side login belonging to a business."""
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_business_active", "business_id", "is_active", "soft_delete"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    soft_delete = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    business = db.relationship("Business", backref=db.backref("users", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "email": self.email,
            "is_active": self.is_active,
            "soft_delete": self.soft_delete,
            "created_at": to_utc_z(self.created_at),
        }

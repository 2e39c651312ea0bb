from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Tenant(db.Model):
    """
    Multi-tenant root: every clinic is a Tenant.

    All locations, staff, appointments and cash records belong to exactly one
    tenant. Queries touching tenant-owned data filter by tenant_id.
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(64), nullable=False, unique=True, index=True)  # Public booking URL key

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    public_page_enabled = db.Column(db.Boolean, nullable=False, default=False)
    public_booking_enabled = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} slug={self.slug!r}>"

    @property
    def accepts_public_bookings(self) -> bool:
        return bool(self.is_active and self.public_page_enabled and self.public_booking_enabled)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "is_active": self.is_active,
            "public_page_enabled": self.public_page_enabled,
            "public_booking_enabled": self.public_booking_enabled,
            "created_at": to_utc_z(self.created_at),
        }


class Location(db.Model):
    """
    Physical clinic site.

    The timezone is the tenant-local civil time used for slot generation,
    day-of-week resolution and "is this in the past" checks.
    """
    __tablename__ = "locations"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_locations_tenant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    timezone = db.Column(db.String(64), nullable=False, default="UTC")
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("locations", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "address": self.address,
            "timezone": self.timezone,
            "is_active": self.is_active,
        }


class Staff(db.Model):
    """
    Clinic staff member (veterinarians, receptionists, cashiers...).

    role is one of StaffRole; it drives the permission matrix in
    clinic.permissions.
    """
    __tablename__ = "staff"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    position = db.Column(db.String(64), nullable=True)  # Free text job title ("Cajera", "Vet")
    role = db.Column(db.String(32), nullable=False, default="ASSISTANT")
    email = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("staff", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "position": self.position,
            "role": self.role,
            "is_active": self.is_active,
        }


class Pet(db.Model):
    __tablename__ = "pets"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    species = db.Column(db.String(64), nullable=True)
    owner_name = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "species": self.species,
            "owner_name": self.owner_name,
        }

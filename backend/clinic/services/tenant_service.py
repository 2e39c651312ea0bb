"""
Tenant scoping helpers.

Every lookup of a tenant-owned record goes through these functions so that a
record belonging to another tenant is indistinguishable from a missing one
(both raise NotFoundError).
"""

from __future__ import annotations

from ..extensions import db
from ..models import Tenant, Location, Staff, Pet
from ..validation import NotFoundError


def get_tenant(tenant_id: int) -> Tenant:
    tenant = db.session.query(Tenant).filter_by(id=tenant_id, is_active=True).first()
    if not tenant:
        raise NotFoundError("Tenant not found")
    return tenant


def get_tenant_by_slug(slug: str) -> Tenant:
    tenant = db.session.query(Tenant).filter_by(slug=slug, is_active=True).first()
    if not tenant:
        raise NotFoundError("Clinic not found")
    return tenant


def require_location(tenant_id: int, location_id: int) -> Location:
    location = db.session.query(Location).filter_by(id=location_id, tenant_id=tenant_id).first()
    if not location or not location.is_active:
        raise NotFoundError("Location not found")
    return location


def default_location(tenant_id: int) -> Location:
    """First active location of a tenant; used when a public caller omits location_id."""
    location = db.session.query(Location).filter_by(
        tenant_id=tenant_id,
        is_active=True,
    ).order_by(Location.id.asc()).first()
    if not location:
        raise NotFoundError("Location not found")
    return location


def require_staff(tenant_id: int, staff_id: int, *, active_only: bool = True) -> Staff:
    query = db.session.query(Staff).filter_by(id=staff_id, tenant_id=tenant_id)
    if active_only:
        query = query.filter_by(is_active=True)
    staff = query.first()
    if not staff:
        raise NotFoundError("Staff member not found")
    return staff


def require_pet(tenant_id: int, pet_id: int) -> Pet:
    pet = db.session.query(Pet).filter_by(id=pet_id, tenant_id=tenant_id).first()
    if not pet:
        raise NotFoundError("Pet not found")
    return pet

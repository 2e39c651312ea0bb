"""
Pytest fixtures for clinic backend tests.

Provides test database setup, tenant fixtures, staff per role, a standard
weekly schedule, and caller-context headers for the test client.
"""

from datetime import time

import pytest

from clinic import create_app
from clinic.extensions import db
from clinic.models import BusinessHours, Location, Pet, Staff, Tenant
from clinic.permissions import StaffRole


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DEFAULT_SLOT_DURATION': 30,
        'MAX_APPOINTMENT_DURATION': 480,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def tenant(db_session):
    """Clinic A with public booking enabled."""
    tenant = Tenant(
        name="Happy Paws",
        slug="happy-paws",
        public_page_enabled=True,
        public_booking_enabled=True,
    )
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def other_tenant(db_session):
    """Clinic B, used to prove cross-tenant isolation."""
    tenant = Tenant(name="Beta Vets", slug="beta-vets", public_page_enabled=True, public_booking_enabled=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def location(db_session, tenant):
    location = Location(tenant_id=tenant.id, name="Main", timezone="UTC")
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def other_location(db_session, other_tenant):
    location = Location(tenant_id=other_tenant.id, name="Beta Main", timezone="UTC")
    db_session.add(location)
    db_session.commit()
    return location


def _make_staff(db_session, tenant, name, role):
    staff = Staff(tenant_id=tenant.id, name=name, role=role)
    db_session.add(staff)
    db_session.commit()
    return staff


@pytest.fixture(scope='function')
def owner(db_session, tenant):
    return _make_staff(db_session, tenant, "Olivia Owner", StaffRole.OWNER)


@pytest.fixture(scope='function')
def receptionist(db_session, tenant):
    return _make_staff(db_session, tenant, "Rita Reception", StaffRole.RECEPTIONIST)


@pytest.fixture(scope='function')
def cashier(db_session, tenant):
    return _make_staff(db_session, tenant, "Carla Cashier", StaffRole.CASHIER)


@pytest.fixture(scope='function')
def second_cashier(db_session, tenant):
    return _make_staff(db_session, tenant, "Diego Cashier", StaffRole.CASHIER)


@pytest.fixture(scope='function')
def vet(db_session, tenant):
    return _make_staff(db_session, tenant, "Victor Vet", StaffRole.VETERINARIAN)


@pytest.fixture(scope='function')
def other_owner(db_session, other_tenant):
    return _make_staff(db_session, other_tenant, "Bruno Owner", StaffRole.OWNER)


@pytest.fixture(scope='function')
def pet(db_session, tenant):
    pet = Pet(tenant_id=tenant.id, name="Luna", species="dog", owner_name="Ana Ruiz")
    db_session.add(pet)
    db_session.commit()
    return pet


@pytest.fixture(scope='function')
def weekly_hours(db_session, tenant, location):
    """Mon-Fri 09:00-18:00 with a 13:00-14:00 break, 30 minute slots; weekends closed."""
    rows = []
    for dow in range(7):
        if dow in (0, 6):
            row = BusinessHours(tenant_id=tenant.id, location_id=location.id, day_of_week=dow, is_open=False)
        else:
            row = BusinessHours(
                tenant_id=tenant.id,
                location_id=location.id,
                day_of_week=dow,
                is_open=True,
                open_time=time(9, 0),
                close_time=time(18, 0),
                break_start=time(13, 0),
                break_end=time(14, 0),
                slot_duration=30,
            )
        rows.append(row)
    db_session.add_all(rows)
    db_session.commit()
    return rows


@pytest.fixture(scope='function')
def auth_headers():
    """Caller-context headers as set by the upstream auth layer."""
    def _headers(staff):
        return {"X-Tenant-Id": str(staff.tenant_id), "X-Staff-Id": str(staff.id)}
    return _headers


@pytest.fixture(scope='function')
def assistant(db_session, tenant):
    return _make_staff(db_session, tenant, "Ada Assistant", StaffRole.ASSISTANT)

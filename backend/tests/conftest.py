"""
Pytest configuration and fixtures for backend tests.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from restaurant.domain.user import User, default_roles
from restaurant.models import Base
from restaurant.repositories import (
    SQLKitchenOrderRepository,
    SQLMenuRepository,
    SQLOrderRepository,
    SQLReservationRepository,
    get_inventory_repositories,
    get_user_repositories,
)
from restaurant.services.domain import (
    AuthService,
    InventoryService,
    KitchenService,
    MenuService,
    OrderService,
    ReservationService,
)
from shared.config.constants import Roles
from shared.infrastructure.events import InMemoryEventBus
from shared.security.auth import JWTService
from shared.security.password import PasswordService
from shared.utils.clock import FixedClock, use_clock


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)

# Every test starts at this instant unless it moves the clock
FROZEN_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

# Satisfies the password policy
STAFF_PASSWORD = "Kitchen#Staff9"


@pytest.fixture(autouse=True)
def frozen_clock():
    """Install a fixed clock so timestamps and expiry checks are deterministic."""
    with use_clock(FixedClock(FROZEN_NOW)) as clock:
        yield clock


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def event_bus():
    """In-process bus that records every published event."""
    return InMemoryEventBus()


# =============================================================================
# Repositories
# =============================================================================


@pytest.fixture
def order_repo(db_session):
    return SQLOrderRepository(db_session)


@pytest.fixture
def kitchen_repo(db_session):
    return SQLKitchenOrderRepository(db_session)


@pytest.fixture
def reservation_repo(db_session):
    return SQLReservationRepository(db_session)


@pytest.fixture
def menu_repo(db_session):
    return SQLMenuRepository(db_session)


@pytest.fixture
def inventory_repos(db_session):
    """(items, movements, suppliers)"""
    return get_inventory_repositories(db_session)


@pytest.fixture
def user_repos(db_session):
    """(users, roles, sessions)"""
    return get_user_repositories(db_session)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def order_service(order_repo, event_bus):
    return OrderService(order_repo, event_bus)


@pytest.fixture
def kitchen_service(kitchen_repo, event_bus):
    return KitchenService(kitchen_repo, event_bus)


@pytest.fixture
def reservation_service(reservation_repo, event_bus):
    return ReservationService(reservation_repo, event_bus)


@pytest.fixture
def menu_service(menu_repo, event_bus):
    return MenuService(menu_repo, event_bus)


@pytest.fixture
def inventory_service(inventory_repos, event_bus):
    items, movements, suppliers = inventory_repos
    return InventoryService(items, movements, suppliers, event_bus)


@pytest.fixture
def password_service():
    """Low bcrypt cost keeps the suite fast."""
    return PasswordService(rounds=4)


@pytest.fixture
def jwt_service():
    return JWTService(secret="test-secret-with-enough-length-for-hs256")


@pytest.fixture
def auth_service(user_repos, password_service, jwt_service):
    users, roles, sessions = user_repos
    return AuthService(users, roles, sessions, password_service, jwt_service)


# =============================================================================
# Seed data
# =============================================================================


@pytest.fixture
def roles_by_name():
    """The default roles, keyed by name, without touching the database."""
    return {role.name: role for role in default_roles()}


@pytest.fixture
def seed_roles(user_repos):
    """Persist the default roles."""
    _, roles, _ = user_repos
    created = default_roles()
    for role in created:
        roles.create(role)
    return {role.name: role for role in created}


@pytest.fixture
def make_user(roles_by_name):
    """Factory for in-memory users with a default role."""

    def _make(role_name: str = Roles.WAITSTAFF, email: str | None = None, active: bool = True) -> User:
        user = User.create(email or f"{role_name}@example.com", "not-a-real-hash", roles_by_name[role_name])
        user.is_active = active
        return user

    return _make

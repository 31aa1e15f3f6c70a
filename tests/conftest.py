"""Shared pytest fixtures and configuration."""

import os

# Point the app at SQLite before any application module builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.models import Base, User, UserType
from database.campaign_models import Campaign, CampaignStatusDB


@pytest.fixture
def engine():
    """In-memory SQLite engine with working SAVEPOINT support."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite issues its own BEGIN lazily, which breaks SAVEPOINT; let SQLAlchemy emit it
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    """Factory for users of a given type."""
    counter = {"n": 0}

    def _make_user(user_type: UserType = UserType.CREATOR, name: str = None) -> User:
        counter["n"] += 1
        user = User(
            email=f"{user_type.value}{counter['n']}@example.com",
            name=name or f"{user_type.value.title()} {counter['n']}",
            user_type=user_type,
        )
        db.add(user)
        db.flush()
        return user

    return _make_user


@pytest.fixture
def brand(make_user):
    return make_user(UserType.BRAND, name="Acme Brand")


@pytest.fixture
def admin(make_user):
    return make_user(UserType.ADMIN, name="Ops Admin")


@pytest.fixture
def creators(make_user):
    """Four creators, enough for the redistribution scenarios."""
    return [make_user(UserType.CREATOR) for _ in range(4)]


@pytest.fixture
def make_campaign(db, brand):
    """Factory for campaigns owned by ``brand``. Amounts are in cents."""

    def _make_campaign(total_budget: int = 1000, influencer_count: int = 5,
                       status: CampaignStatusDB = CampaignStatusDB.DISCOVERY, **fields) -> Campaign:
        fields.setdefault("timeline_start", date.today() + timedelta(days=7))
        fields.setdefault("timeline_end", date.today() + timedelta(days=30))
        campaign = Campaign(
            brand_user_id=brand.id,
            name=fields.pop("name", "Summer Launch"),
            total_budget=total_budget,
            allocated_budget=0,
            remaining_budget=total_budget,
            influencer_count=influencer_count,
            base_payout_per_influencer=total_budget // influencer_count,
            status=status,
            **fields,
        )
        db.add(campaign)
        db.flush()
        return campaign

    return _make_campaign

"""Shared test fixtures."""

from datetime import datetime

import pytest

from kit_ledger.database.connection import DatabaseConnection
from kit_ledger.database.models import Actor, Asset
from kit_ledger.database.repository import Repository
from kit_ledger.database.schema import initialize_database


@pytest.fixture
def db_path(tmp_path):
    """Provide a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
def db(db_path):
    """Provide an initialized database connection."""
    conn = DatabaseConnection(db_path)
    initialize_database(conn)
    return conn


@pytest.fixture
def repo(db):
    """Provide a repository with an initialized database."""
    return Repository(db)


@pytest.fixture
def inspector():
    return Actor("EMP-001", "Dana Whitfield")


@pytest.fixture
def audit_time():
    return datetime(2025, 6, 10, 9, 30, 0)


@pytest.fixture
def kit(repo):
    """Impact Wrench Kit: a toolbox of three parts, five on hand."""
    asset = Asset(
        id="T-001", name="Impact Wrench Kit", category="Power Tools",
        zone="Bay A", asset_class="Toolbox", quantity=5, available=5,
        composition=["Socket A", "Socket B", "Driver"],
        monetary_value=420.0,
    )
    repo.create_asset(asset)
    return asset


@pytest.fixture
def drill(repo):
    """A plain piece asset: eight cordless drills."""
    asset = Asset(
        id="T-002", name="Cordless Drill", category="Power Tools",
        zone="Bay A", quantity=8, available=8, monetary_value=159.0,
    )
    repo.create_asset(asset)
    return asset


@pytest.fixture
def meter(repo):
    """A plain piece asset in a second zone."""
    asset = Asset(
        id="T-004", name="Multimeter", category="Test Equipment",
        zone="Bay B", quantity=6, available=6, monetary_value=95.0,
    )
    repo.create_asset(asset)
    return asset

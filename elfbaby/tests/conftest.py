"""Shared test fixtures for the elfbaby test suite."""

import tempfile
from pathlib import Path

import pytest

from elfbaby.db import init_db, insert_shop
from elfbaby.models import Shop
from elfbaby.shutdown import get_shutdown_handler


@pytest.fixture
def temp_db():
    """Create a temporary database."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    init_db(db_path)
    yield db_path
    # Cleanup
    Path(db_path).unlink(missing_ok=True)


@pytest.fixture
def shop_id(temp_db):
    """Insert an active toy shop and return its ID."""
    return insert_shop(temp_db, Shop(
        title="Little Toy Shop",
        domain="littletoys.com",
        description="Hand-made wooden toys for babies and toddlers.",
        markets=["europe"],
    ))


@pytest.fixture(autouse=True)
def reset_shutdown():
    """Clear the process-wide shutdown flag around every test."""
    handler = get_shutdown_handler()
    handler.reset()
    yield handler
    handler.reset()
    handler.uninstall()

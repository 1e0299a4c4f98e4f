"""Shared test fixtures."""

import sqlite3
from typing import Any

import pytest

from focus_annotator.core.database.schema import create_schema
from focus_annotator.core.tree.host import DictHostNode
from tests.unit.samples import (
    empty_frame,
    login_frame,
    payload_for,
    set_rows_frame,
    workout_frame,
)


@pytest.fixture
def workout() -> DictHostNode:
    return DictHostNode(workout_frame())


@pytest.fixture
def set_rows() -> DictHostNode:
    return DictHostNode(set_rows_frame())


@pytest.fixture
def login() -> DictHostNode:
    return DictHostNode(login_frame())


@pytest.fixture
def login_payload() -> dict[str, Any]:
    return payload_for(login_frame())


@pytest.fixture
def empty_payload() -> dict[str, Any]:
    return payload_for(empty_frame())


@pytest.fixture
def spec_db() -> sqlite3.Connection:
    """Return an in-memory spec archive."""
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    return conn

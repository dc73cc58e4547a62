"""Shared fixtures for service tests."""

import pytest

from app.core.roles import Principal
from app.models.user import User


# Session, user, mission and submission fixtures are inherited from root conftest.py


@pytest.fixture(name="missionary_principal")
def missionary_principal_fixture(missionary: User) -> Principal:
    return Principal.of(missionary)


@pytest.fixture(name="advertiser_principal")
def advertiser_principal_fixture(advertiser: User) -> Principal:
    return Principal.of(advertiser)


@pytest.fixture(name="admin_principal")
def admin_principal_fixture(admin: User) -> Principal:
    return Principal.of(admin)

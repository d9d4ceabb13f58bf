"""
Pytest fixtures for the PPE kernel test suite.

Provides:
- An in-memory SQLite database per test (foreign keys on, SAVEPOINTs working)
- Seeded built-in categories and a capacity configuration
- A committed default employee
- Structured log capture
"""

import json
import logging
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session, sessionmaker

from ppe_kernel.domain.clock import DeterministicClock
from ppe_kernel.domain.dtos import CategoryInfo, EmployeeInfo
from ppe_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ppe_kernel.services.assignment_service import AssignmentService
from ppe_kernel.services.audit_recorder import AuditRecorder
from ppe_kernel.services.capacity_config import CapacityConfig
from ppe_kernel.services.catalog_service import CatalogService
from ppe_kernel.services.employee_service import EmployeeService
from ppe_kernel.services.issuance_engine import IssuanceEngine
from tests.factories import make_employee, make_engine


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ppe_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, issuance_engine):
            issuance_engine.issue(request)
            logs = captured_logs()
            assert any(r["message"] == "issuance_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ppe_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    engine = make_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    session = factory()
    yield session
    session.rollback()
    session.close()


# Clock fixtures


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


# Service fixtures


@pytest.fixture
def audit_recorder(session, deterministic_clock):
    return AuditRecorder(session, deterministic_clock)


@pytest.fixture
def catalog_service(session, deterministic_clock, audit_recorder):
    return CatalogService(session, deterministic_clock, audit_recorder)


@pytest.fixture
def employee_service(session, deterministic_clock, audit_recorder):
    return EmployeeService(session, deterministic_clock, audit_recorder)


@pytest.fixture
def assignment_service(session, deterministic_clock, audit_recorder):
    return AssignmentService(session, deterministic_clock, audit_recorder)


@pytest.fixture
def categories(session, catalog_service) -> dict[str, CategoryInfo]:
    """The four built-in categories, committed, keyed by code."""
    seeded = catalog_service.seed_default_categories()
    session.commit()
    return {c.code: c for c in seeded}


@pytest.fixture
def capacity_config() -> CapacityConfig:
    return CapacityConfig()


@pytest.fixture
def issuance_engine(session, capacity_config, deterministic_clock, categories):
    return IssuanceEngine(session, capacity_config, deterministic_clock)


@pytest.fixture
def employee(session) -> EmployeeInfo:
    return make_employee(session)

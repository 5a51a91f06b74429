"""Pytest configuration and shared fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fleetplan.domain.models import OpsTask, WorkOrder, WorkOrderStatus
from fleetplan.domain.records import Base


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (deselect with '-m \"not integration\"')"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def db_session():
    """Create in-memory database session for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def work_orders():
    """Small plan: two TRK-01 jobs, an open and an early TRK-02 job, one closed."""
    return [
        WorkOrder(
            id="WO-001",
            vehicle_id="TRK-01",
            title="Brake inspection",
            status=WorkOrderStatus.SCHEDULED,
            start="2025-08-22T09:00:00",
            end="2025-08-22T11:00:00",
            hours=2.0,
        ),
        WorkOrder(
            id="WO-002",
            vehicle_id="TRK-01",
            title="Oil service",
            status=WorkOrderStatus.SCHEDULED,
            start="2025-08-22T13:00:00",
            end="2025-08-22T15:00:00",
            hours=2.0,
        ),
        WorkOrder(
            id="WO-003",
            vehicle_id="TRK-02",
            title="Replace alternator",
            required_skills=["AutoElec"],
        ),
        WorkOrder(
            id="WO-010",
            vehicle_id="TRK-02",
            title="Tyre rotation",
            status=WorkOrderStatus.SCHEDULED,
            start="2025-08-23T05:00:00",
            end="2025-08-23T07:00:00",
            hours=2.0,
        ),
        WorkOrder(
            id="WO-011",
            vehicle_id="TRK-03",
            title="Wiper replacement",
            status=WorkOrderStatus.CLOSED,
        ),
    ]


@pytest.fixture
def ops_tasks():
    """OPS-1 clashes with WO-001; OPS-2 and OPS-3 overlap on TRK-02."""
    return [
        OpsTask("OPS-1", "TRK-01", "Depot run", "2025-08-22T10:00:00", "2025-08-22T12:00:00", 2.0),
        OpsTask("OPS-2", "TRK-02", "Linehaul", "2025-08-23T09:00:00", "2025-08-23T11:00:00", 2.0),
        OpsTask("OPS-3", "TRK-02", "Linehaul return", "2025-08-23T10:00:00", "2025-08-23T12:00:00", 2.0),
    ]

"""Tests for repositories and the fleet data provider."""

import pytest

from fleetplan.domain.models import WorkOrderStatus
from fleetplan.domain.repositories import (
    DatabaseManager,
    FleetDataProvider,
    OpsTaskRepository,
    PlanRepository,
    WorkOrderRepository,
)
from fleetplan.engine.history import PlanHistory
from fleetplan.engine.policy import propose_schedule


def test_work_order_repository(db_session, work_orders):
    WorkOrderRepository.bulk_create(db_session, work_orders)

    stored = WorkOrderRepository.get_all(db_session)
    assert [w.id for w in stored] == ["WO-001", "WO-002", "WO-003", "WO-010", "WO-011"]

    wo = WorkOrderRepository.get_by_id(db_session, "WO-001")
    assert wo.status == WorkOrderStatus.SCHEDULED
    assert (wo.start, wo.end) == ("2025-08-22T09:00:00", "2025-08-22T11:00:00")
    assert WorkOrderRepository.get_by_id(db_session, "WO-404") is None
    assert [w.id for w in WorkOrderRepository.get_by_vehicle(db_session, "TRK-02")] == ["WO-003", "WO-010"]
    assert WorkOrderRepository.get_by_id(db_session, "WO-003").required_skills == ["AutoElec"]


def test_replace_all(db_session, work_orders):
    WorkOrderRepository.bulk_create(db_session, work_orders)
    WorkOrderRepository.get_all(db_session)

    assert WorkOrderRepository.replace_all(db_session, work_orders[:2]) == 2
    assert [w.id for w in WorkOrderRepository.get_all(db_session)] == ["WO-001", "WO-002"]


def test_ops_repository_orders_by_start(db_session, ops_tasks):
    OpsTaskRepository.bulk_create(db_session, list(reversed(ops_tasks)))
    assert [t.id for t in OpsTaskRepository.get_all(db_session)] == ["OPS-1", "OPS-2", "OPS-3"]
    assert OpsTaskRepository.get_by_id(db_session, "OPS-2").hours == 2.0


def test_plan_repository(db_session, work_orders, ops_tasks):
    history = PlanHistory()
    history.propose(propose_schedule(work_orders, ops_tasks))
    preview_id = PlanRepository.save(db_session, history.preview)
    assert preview_id == 1
    assert PlanRepository.get_latest(db_session, status="accepted") is None

    accepted = history.accept()
    PlanRepository.save(db_session, accepted)
    latest = PlanRepository.get_latest(db_session, status="accepted")
    assert latest.version == 1
    assert latest.work_order("WO-010").start == "2025-08-23T05:00:00"
    assert PlanRepository.next_version(db_session) == 2

    assert PlanRepository.delete_previews(db_session) == 1
    assert PlanRepository.get_latest(db_session, status="preview") is None
    assert [p.version for p in PlanRepository.list_accepted(db_session)] == [1]


def test_provider_requires_load(db_session):
    provider = FleetDataProvider(db_session)
    with pytest.raises(RuntimeError):
        provider.work_orders()


def test_provider_hands_out_copies(db_session, work_orders, ops_tasks):
    WorkOrderRepository.bulk_create(db_session, work_orders)
    OpsTaskRepository.bulk_create(db_session, ops_tasks)
    provider = FleetDataProvider(db_session).load()

    wos = provider.work_orders()
    wos[0].start = None
    assert provider.work_orders()[0].start == "2025-08-22T09:00:00"
    assert provider.vehicle_ids() == ["TRK-01", "TRK-02", "TRK-03"]


def test_provider_commit_plan(db_session, work_orders, ops_tasks):
    WorkOrderRepository.bulk_create(db_session, work_orders)
    OpsTaskRepository.bulk_create(db_session, ops_tasks)
    provider = FleetDataProvider(db_session).load()

    wos = provider.work_orders()
    wos[3].start, wos[3].end = "2025-08-23T08:00:00", "2025-08-23T10:00:00"
    provider.commit_plan(wos, provider.ops_tasks()[:1])

    assert WorkOrderRepository.get_by_id(db_session, "WO-010").start == "2025-08-23T08:00:00"
    assert len(provider.ops_tasks()) == 1


def test_database_manager(tmp_path):
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'fleet.db'}")
    manager.create_tables()
    session = manager.get_session()
    try:
        assert WorkOrderRepository.get_all(session) == []
    finally:
        session.close()

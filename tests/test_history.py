"""Tests for the preview/accept lifecycle and plan deltas."""

import pytest

from fleetplan.domain.models import PlanSnapshot, WorkOrder, WorkOrderStatus
from fleetplan.engine.history import PlanHistory, diff_work_orders, unscheduled_work_orders
from fleetplan.engine.policy import propose_schedule


def _plan(*work_orders):
    return PlanSnapshot(work_orders=list(work_orders), ops_tasks=[])


def _scheduled(wo_id, start, end):
    return WorkOrder(wo_id, "TRK-01", f"Job {wo_id}", status=WorkOrderStatus.SCHEDULED, start=start, end=end)


def test_accept_without_preview_raises():
    with pytest.raises(ValueError, match="No preview"):
        PlanHistory().accept()


def test_propose_and_accept(work_orders, ops_tasks):
    history = PlanHistory()
    history.propose(propose_schedule(work_orders, ops_tasks))
    assert history.current_plan().status == "preview"

    accepted = history.accept()
    assert accepted.status == "accepted"
    assert accepted.version == 1
    assert accepted.when
    assert history.preview is None
    assert history.latest is accepted


def test_reject_drops_preview(work_orders, ops_tasks):
    history = PlanHistory()
    history.propose(propose_schedule(work_orders, ops_tasks))
    assert history.reject() is not None
    assert history.current_plan() is None
    assert history.counts() == {"moved": 0, "scheduled": 0, "unscheduled": 0}


def test_history_is_bounded():
    history = PlanHistory(limit=2)
    for _ in range(3):
        history.propose(_plan())
        history.accept()
    assert [p.version for p in history.accepted] == [2, 3]


def test_base_work_orders_are_copies(work_orders):
    history = PlanHistory()
    base = history.base_work_orders(work_orders)
    base[0].start = None
    assert work_orders[0].start == "2025-08-22T09:00:00"


def test_diff_buckets():
    older = [
        _scheduled("WO-1", "2025-08-22T09:00:00", "2025-08-22T11:00:00"),
        WorkOrder("WO-2", "TRK-01", "Open job"),
        _scheduled("WO-3", "2025-08-22T13:00:00", "2025-08-22T14:00:00"),
        _scheduled("WO-4", "2025-08-22T15:00:00", "2025-08-22T16:00:00"),
    ]
    newer = [
        _scheduled("WO-1", "2025-08-22T10:00:00", "2025-08-22T12:00:00"),
        _scheduled("WO-2", "2025-08-23T08:00:00", "2025-08-23T09:00:00"),
        WorkOrder("WO-3", "TRK-01", "Cancelled", status=WorkOrderStatus.CLOSED),
        _scheduled("WO-4", "2025-08-22T15:00:00", "2025-08-22T16:00:00"),
    ]
    delta = diff_work_orders(older, newer, "2025-08-22T07:00:00")
    assert delta.moved == ["WO-1"]
    assert delta.newly_scheduled == ["WO-2"]
    assert delta.no_longer_scheduled == ["WO-3"]
    assert not delta.empty


def test_delta_needs_two_accepted_plans():
    history = PlanHistory()
    history.propose(_plan(_scheduled("WO-1", "2025-08-22T09:00:00", "2025-08-22T11:00:00")))
    history.accept()
    assert history.delta() is None

    history.propose(_plan(_scheduled("WO-1", "2025-08-22T12:00:00", "2025-08-22T14:00:00")))
    history.accept()
    delta = history.delta()
    assert delta.moved == ["WO-1"]
    # n_back is clamped to the available history
    assert history.delta(n_back=10).moved == ["WO-1"]


def test_restore_continues_versioning():
    stored = [_plan(), _plan()]
    stored[0].version, stored[1].version = 4, 5
    history = PlanHistory(limit=6).restore(stored)
    history.propose(_plan())
    assert history.accept().version == 6


def test_unscheduled_work_orders(work_orders):
    assert [w.id for w in unscheduled_work_orders(work_orders)] == ["WO-003"]

"""Tests for plan validation and summaries."""

import pytest

from fleetplan.domain.models import OpsTask, WorkOrder, WorkOrderStatus
from fleetplan.validator import summarize_plan, validate_plan


def test_sample_plan_is_valid(work_orders, ops_tasks):
    validate_plan(work_orders, ops_tasks)


def test_business_hours_check(work_orders, ops_tasks):
    with pytest.raises(ValueError, match="WO-010"):
        validate_plan(work_orders, ops_tasks, business_hours=(8, 17))


def test_ops_overlap_check(work_orders, ops_tasks):
    with pytest.raises(ValueError, match="Overlapping ops tasks on TRK-02: OPS-3"):
        validate_plan(work_orders, ops_tasks, require_no_ops_overlap=True)
    validate_plan(work_orders, ops_tasks[:2], require_no_ops_overlap=True)


def test_duplicate_ids(work_orders, ops_tasks):
    with pytest.raises(ValueError, match="Duplicate work order ids: WO-001"):
        validate_plan(work_orders + [work_orders[0]], ops_tasks)


def test_scheduled_without_times():
    wos = [WorkOrder("WO-1", "V1", "Job", status=WorkOrderStatus.SCHEDULED)]
    with pytest.raises(ValueError, match="without times"):
        validate_plan(wos, [])


def test_in_progress_without_times():
    wos = [WorkOrder("WO-7", "V1", "Job", status=WorkOrderStatus.IN_PROGRESS, start="2025-08-22T09:00:00")]
    with pytest.raises(ValueError, match="in-progress work orders without times: WO-7"):
        validate_plan(wos, [])


def test_open_with_start():
    wos = [WorkOrder("WO-1", "V1", "Job", start="2025-08-22T09:00:00", end="2025-08-22T10:00:00")]
    with pytest.raises(ValueError, match="Open work orders carrying a start time"):
        validate_plan(wos, [])


def test_backwards_times():
    wos = [
        WorkOrder("WO-1", "V1", "Job", status=WorkOrderStatus.SCHEDULED,
                  start="2025-08-22T10:00:00", end="2025-08-22T09:00:00"),
    ]
    with pytest.raises(ValueError, match="ending before they start"):
        validate_plan(wos, [])
    ops = [OpsTask("OPS-1", "V1", "Run", "2025-08-22T10:00:00", "2025-08-22T10:00:00", 0.0)]
    with pytest.raises(ValueError, match="Ops tasks with invalid times"):
        validate_plan([], ops)


def test_summary(work_orders, ops_tasks):
    text = summarize_plan(work_orders, ops_tasks)
    assert "Work orders per vehicle by status:" in text
    assert "Ops tasks per vehicle:" in text
    assert summarize_plan([], []) == "Empty plan."

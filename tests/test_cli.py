"""End-to-end tests for the command-line interface."""

import json

import pytest

from fleetplan.cli import main
from fleetplan.domain.db import get_session
from fleetplan.domain.repositories import PlanRepository, WorkOrderRepository

WORK_ORDERS_CSV = """id,vehicle_id,title,status,start,end,hours
WO-001,TRK-01,Brake inspection,Scheduled,2025-08-22T09:00:00,2025-08-22T11:00:00,2
WO-003,TRK-02,Replace alternator,Open,,,3
WO-010,TRK-02,Tyre rotation,Scheduled,2025-08-23T05:00:00,2025-08-23T07:00:00,2
"""

OPS_CSV = """id,vehicle_id,title,start,end
OPS-1,TRK-01,Depot run,2025-08-22T10:00:00,2025-08-22T12:00:00
"""


@pytest.fixture
def db_url(tmp_path):
    url = f"sqlite:///{tmp_path / 'fleetplan.db'}"
    wo_file = tmp_path / "work_orders.csv"
    wo_file.write_text(WORK_ORDERS_CSV)
    ops_file = tmp_path / "ops.csv"
    ops_file.write_text(OPS_CSV)
    main(["--db", url, "init-db"])
    main(["--db", url, "import-csv", "--work-orders", str(wo_file), "--ops", str(ops_file)])
    return url


@pytest.mark.integration
def test_import_and_clashes(db_url, capsys):
    main(["--db", db_url, "clashes"])
    out = capsys.readouterr().out
    assert "WO-001" in out
    session = get_session(db_url)
    assert len(WorkOrderRepository.get_all(session)) == 3
    session.close()
    assert "1 clash(es) across 1 vehicle(s):" in out


@pytest.mark.integration
def test_propose_accept_apply_report(db_url, tmp_path, capsys):
    main(["--db", db_url, "propose", "--business-hours", "8", "17", "--accept"])
    out = capsys.readouterr().out
    assert "[OK] Preview plan stored" in out
    assert "[OK] Accepted plan v1" in out
    assert "moved=1 scheduled=2 unscheduled=1" in out

    session = get_session(db_url)
    assert WorkOrderRepository.get_by_id(session, "WO-010").start == "2025-08-23T08:00:00"
    session.close()

    mutations = tmp_path / "mutations.json"
    mutations.write_text(json.dumps([{"op": "CANCEL_WO", "id": "WO-001"}, {"op": "FLY"}]))
    main(["--db", db_url, "apply", "--mutations", str(mutations)])
    out = capsys.readouterr().out
    assert "  - Cancelled WO-001" in out
    assert "Ignored unknown op FLY" in out

    main(["--db", db_url, "accept"])
    assert "[OK] Accepted plan v2" in capsys.readouterr().out

    main(["--db", db_url, "report", "--kind", "delta"])
    out = capsys.readouterr().out
    assert "No longer scheduled:\n- WO-001 - Brake inspection (TRK-01)" in out

    session = get_session(db_url)
    assert len(PlanRepository.list_accepted(session)) == 2
    assert PlanRepository.get_latest(session, status="preview") is None
    session.close()

    main(["--db", db_url, "validate", "--business-hours", "--summary"])
    out = capsys.readouterr().out
    assert "[OK] Validation passed" in out
    assert "Work orders per vehicle by status:" in out


@pytest.mark.integration
def test_accept_without_preview_fails(db_url, capsys):
    with pytest.raises(ValueError):
        main(["--db", db_url, "accept"])
    assert "[ERROR] Accept failed: No preview plan to accept" in capsys.readouterr().out


@pytest.mark.integration
def test_slot_and_export(db_url, tmp_path, capsys):
    main(["--db", db_url, "slot", "--vehicle", "TRK-09", "--hours", "2"])
    assert "[OK] TRK-09: 2025-08-22T08:00:00 -> 2025-08-22T10:00:00" in capsys.readouterr().out

    main(["--db", db_url, "slot", "--vehicle", "TRK-09", "--hours", "12"])
    assert "[WARN] TRK-09: no free slot" in capsys.readouterr().out

    out_file = tmp_path / "export.csv"
    main(["--db", db_url, "export", "--work-orders", str(out_file)])
    assert "[OK] Exported 3 work orders" in capsys.readouterr().out
    assert out_file.exists()


@pytest.mark.integration
def test_validate_reports_business_hour_violation(db_url, capsys):
    with pytest.raises(ValueError):
        main(["--db", db_url, "validate", "--business-hours"])
    assert "[ERROR] Validation failed" in capsys.readouterr().out


@pytest.mark.integration
def test_config_file_is_used(db_url, tmp_path, capsys):
    cfg = tmp_path / "fleetplan.yaml"
    cfg.write_text("business_hours: [5, 18]\n")
    main(["--db", db_url, "--config", str(cfg), "validate", "--business-hours"])
    assert "[OK] Validation passed" in capsys.readouterr().out

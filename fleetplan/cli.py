"""Command-line interface for the fleet maintenance planner."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from fleetplan.config import SchedulerConfig, load_config
from fleetplan.domain.db import get_session, init_database
from fleetplan.domain.models import PlanSnapshot, SchedulerPolicy
from fleetplan.domain.repositories import FleetDataProvider, PlanRepository
from fleetplan.engine.history import PlanHistory
from fleetplan.engine.mutate import apply_mutations_to_plan
from fleetplan.engine.policy import build_snapshot, propose_schedule
from fleetplan.engine.reports import REPORT_KINDS, ReportQuery, build_report
from fleetplan.io.export_csv import export_clashes_csv, export_ops_tasks_csv, export_work_orders_csv
from fleetplan.io.import_csv import import_ops_tasks_csv, import_work_orders_csv
from fleetplan.services.clashes import compute_clashes, summarize_clashes
from fleetplan.services.resources import ResourceStore
from fleetplan.services.slots import find_earliest_slot
from fleetplan.validator import summarize_plan, validate_plan

logger = logging.getLogger(__name__)


def _db_url(args: argparse.Namespace) -> str:
    return args.db or args.cfg.db_url


def _load_history(session, cfg: SchedulerConfig) -> PlanHistory:
    preview = PlanRepository.get_latest(session, status="preview")
    return PlanHistory(cfg.history_limit).restore(
        PlanRepository.list_accepted(session, cfg.history_limit), preview
    )


def _policy_from_args(args: argparse.Namespace) -> SchedulerPolicy:
    raw = {}
    if getattr(args, "policy", None):
        raw = json.loads(Path(args.policy).read_text(encoding="utf-8"))
    policy = SchedulerPolicy.from_dict(raw)
    if getattr(args, "business_hours", None):
        policy.business_hours = (float(args.business_hours[0]), float(args.business_hours[1]))
    if getattr(args, "ops_shift_days", None) is not None:
        policy.ops_shift_days = args.ops_shift_days
    if getattr(args, "avoid_ops_overlap", False):
        policy.avoid_ops_overlap = True
    if getattr(args, "vehicle", None):
        policy.vehicle_scope = list(policy.vehicle_scope) + list(args.vehicle)
    return policy


def _store_preview(session, snapshot: PlanSnapshot) -> None:
    PlanRepository.delete_previews(session)
    PlanRepository.save(session, snapshot)


def _accept_preview(session, provider: FleetDataProvider, cfg: SchedulerConfig) -> PlanSnapshot:
    history = _load_history(session, cfg)
    accepted = history.accept()
    provider.commit_plan(accepted.work_orders, accepted.ops_tasks)
    PlanRepository.delete_previews(session)
    PlanRepository.save(session, accepted)
    return accepted


def _print_counts(snapshot: PlanSnapshot) -> None:
    print(f"  moved={snapshot.moved} scheduled={snapshot.scheduled} unscheduled={snapshot.unscheduled}")


def _cmd_init_db(args: argparse.Namespace) -> None:
    """Initialize the database."""
    db_url = _db_url(args)
    init_database(db_url)
    print(f"[OK] Database initialized: {db_url}")


def _cmd_import_csv(args: argparse.Namespace) -> None:
    """Import CSV data into database."""
    session = get_session(_db_url(args))
    tz = args.cfg.timezone

    try:
        if args.work_orders:
            count = import_work_orders_csv(session, args.work_orders, tz=tz, replace=args.replace)
            print(f"[OK] Imported {count} work orders")

        if args.ops:
            count = import_ops_tasks_csv(session, args.ops, tz=tz, replace=args.replace)
            print(f"[OK] Imported {count} ops tasks")

        session.close()
        print("[OK] CSV import complete")

    except Exception as e:
        session.rollback()
        session.close()
        print(f"[ERROR] Import failed: {e}")
        raise


def _cmd_clashes(args: argparse.Namespace) -> None:
    """Report maintenance/ops clashes of the stored plan."""
    session = get_session(_db_url(args))

    try:
        provider = FleetDataProvider(session).load()
        clashes = compute_clashes(provider.work_orders(), provider.ops_tasks())
        print(summarize_clashes(clashes))
        if args.out:
            export_clashes_csv(args.out, clashes)
            print(f"[OK] Exported {len(clashes)} clashes to {args.out}")
        session.close()

    except Exception as e:
        session.close()
        print(f"[ERROR] Clash check failed: {e}")
        raise


def _cmd_propose(args: argparse.Namespace) -> None:
    """Build a preview plan from a policy."""
    cfg = args.cfg
    session = get_session(_db_url(args))

    try:
        provider = FleetDataProvider(session).load()
        snapshot = propose_schedule(
            provider.work_orders(),
            provider.ops_tasks(),
            _policy_from_args(args),
            cfg,
            vehicle_depots=cfg.extra.get("vehicle_depots"),
        )
        _store_preview(session, snapshot)
        print("[OK] Preview plan stored")
        for line in snapshot.rationale:
            print(f"  - {line}")
        _print_counts(snapshot)

        if args.accept:
            accepted = _accept_preview(session, provider, cfg)
            print(f"[OK] Accepted plan v{accepted.version}")

        session.close()

    except Exception as e:
        session.rollback()
        session.close()
        print(f"[ERROR] Proposal failed: {e}")
        raise


def _cmd_accept(args: argparse.Namespace) -> None:
    """Accept the pending preview and write it back."""
    session = get_session(_db_url(args))

    try:
        provider = FleetDataProvider(session).load()
        accepted = _accept_preview(session, provider, args.cfg)
        session.close()
        print(f"[OK] Accepted plan v{accepted.version}")
        _print_counts(accepted)

    except Exception as e:
        session.rollback()
        session.close()
        print(f"[ERROR] Accept failed: {e}")
        raise


def _cmd_apply(args: argparse.Namespace) -> None:
    """Apply a JSON list of mutations and store the result as a preview."""
    cfg = args.cfg
    session = get_session(_db_url(args))

    try:
        raw = json.loads(Path(args.mutations).read_text(encoding="utf-8"))
        if isinstance(raw, dict):
            raw = raw.get("mutations", [])

        provider = FleetDataProvider(session).load()
        base_wos = provider.work_orders()
        base_ops = provider.ops_tasks()
        resources = ResourceStore().seed_default(cfg.week_start_dt, cfg.horizon_days)
        result = apply_mutations_to_plan(
            base_wos,
            base_ops,
            raw,
            _policy_from_args(args),
            cfg=cfg,
            resources=resources,
            auto_place=args.auto_place,
        )

        ops_before = {t.id: (t.start, t.end) for t in base_ops}
        snapshot = build_snapshot(
            result.work_orders,
            result.ops_tasks,
            result.notes,
            {w.id: (w.start, w.end) for w in base_wos},
            [t.id for t in result.ops_tasks if ops_before.get(t.id) != (t.start, t.end)],
            cfg.id_list_cap,
        )
        _store_preview(session, snapshot)
        print(f"[OK] Applied {len(raw)} mutation(s); preview stored")
        for note in result.notes:
            print(f"  - {note}")
        _print_counts(snapshot)

        if args.accept:
            accepted = _accept_preview(session, provider, cfg)
            print(f"[OK] Accepted plan v{accepted.version}")

        session.close()

    except Exception as e:
        session.rollback()
        session.close()
        print(f"[ERROR] Apply failed: {e}")
        raise


def _cmd_slot(args: argparse.Namespace) -> None:
    """Find the earliest free maintenance slot for a vehicle."""
    cfg = args.cfg
    session = get_session(_db_url(args))

    try:
        provider = FleetDataProvider(session).load()
        slot = find_earliest_slot(
            args.vehicle,
            args.hours,
            provider.work_orders(),
            provider.ops_tasks(),
            business_hours=cfg.business_hours,
            week_start=cfg.week_start_dt,
            horizon_days=cfg.horizon_days,
            default_hour=cfg.default_slot_hour,
        )
        session.close()
        if slot.feasible:
            print(f"[OK] {args.vehicle}: {slot.start} -> {slot.end}")
        else:
            print(f"[WARN] {args.vehicle}: no free slot; default {slot.start} -> {slot.end} may double-book")

    except Exception as e:
        session.close()
        print(f"[ERROR] Slot search failed: {e}")
        raise


def _cmd_validate(args: argparse.Namespace) -> None:
    """Validate the stored plan."""
    session = get_session(_db_url(args))

    try:
        provider = FleetDataProvider(session).load()
        work_orders, ops_tasks = provider.work_orders(), provider.ops_tasks()
        validate_plan(
            work_orders,
            ops_tasks,
            business_hours=args.cfg.business_hours if args.business_hours else None,
            require_no_ops_overlap=args.no_ops_overlap,
        )
        session.close()
        print("[OK] Validation passed")
        if args.summary:
            print(summarize_plan(work_orders, ops_tasks))

    except Exception as e:
        session.close()
        print(f"[ERROR] Validation failed: {e}")
        raise


def _cmd_report(args: argparse.Namespace) -> None:
    """Print a report over the stored plans."""
    session = get_session(_db_url(args))

    try:
        provider = FleetDataProvider(session).load()
        history = _load_history(session, args.cfg)
        query = ReportQuery(kind=args.kind, vehicle_id=args.vehicle_id, n_back=args.n_back)
        print(build_report(query, history, provider.work_orders()))
        session.close()

    except Exception as e:
        session.close()
        print(f"[ERROR] Report failed: {e}")
        raise


def _cmd_export(args: argparse.Namespace) -> None:
    """Export data from database to CSV."""
    session = get_session(_db_url(args))

    try:
        if args.work_orders:
            count = export_work_orders_csv(args.work_orders, session=session)
            print(f"[OK] Exported {count} work orders to {args.work_orders}")

        if args.ops:
            count = export_ops_tasks_csv(args.ops, session=session)
            print(f"[OK] Exported {count} ops tasks to {args.ops}")

        session.close()

    except Exception as e:
        session.close()
        print(f"[ERROR] Export failed: {e}")
        raise


def _add_policy_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--policy", help="Path to policy JSON")
    p.add_argument("--business-hours", nargs=2, type=float, metavar=("OPEN", "CLOSE"),
                   help="Clamp maintenance into this window")
    p.add_argument("--ops-shift-days", type=int, help="Shift ops to night within +/- N days")
    p.add_argument("--avoid-ops-overlap", action="store_true", help="Push overlapping ops back-to-back")
    p.add_argument("--vehicle", action="append", help="Limit to vehicle (repeatable)")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="fleetplan",
        description="Fleet maintenance planner: clashes, policy proposals and plan edits",
    )

    # Global options
    parser.add_argument("--db", help="Database URL (default from config: sqlite:///fleetplan.db)")
    parser.add_argument("--config", help="Path to config YAML/JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at INFO level")

    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-db", help="Initialize database")
    init.set_defaults(func=_cmd_init_db)

    imp = sub.add_parser("import-csv", help="Import CSV data into database")
    imp.add_argument("--work-orders", help="Path to work orders CSV")
    imp.add_argument("--ops", help="Path to ops tasks CSV")
    imp.add_argument("--replace", action="store_true", help="Replace existing rows")
    imp.set_defaults(func=_cmd_import_csv)

    cl = sub.add_parser("clashes", help="List maintenance/ops clashes")
    cl.add_argument("--out", help="Optional: export clashes to CSV")
    cl.set_defaults(func=_cmd_clashes)

    prop = sub.add_parser("propose", help="Build a preview plan from a policy")
    _add_policy_args(prop)
    prop.add_argument("--accept", action="store_true", help="Accept the preview immediately")
    prop.set_defaults(func=_cmd_propose)

    acc = sub.add_parser("accept", help="Accept the pending preview plan")
    acc.set_defaults(func=_cmd_accept)

    app = sub.add_parser("apply", help="Apply mutations from a JSON file")
    app.add_argument("--mutations", required=True, help="Path to mutations JSON (list)")
    app.add_argument("--auto-place", action="store_true", help="Slot new work orders without a start")
    app.add_argument("--accept", action="store_true", help="Accept the result immediately")
    _add_policy_args(app)
    app.set_defaults(func=_cmd_apply)

    slot = sub.add_parser("slot", help="Find the earliest free slot for a vehicle")
    slot.add_argument("--vehicle", required=True, help="Vehicle id")
    slot.add_argument("--hours", type=float, default=2.0, help="Job duration in hours")
    slot.set_defaults(func=_cmd_slot)

    val = sub.add_parser("validate", help="Validate the stored plan")
    val.add_argument("--business-hours", action="store_true", help="Also check maintenance business hours")
    val.add_argument("--no-ops-overlap", action="store_true", help="Also check ops overlaps")
    val.add_argument("--summary", action="store_true", help="Print a plan summary")
    val.set_defaults(func=_cmd_validate)

    rep = sub.add_parser("report", help="Report on the stored plans")
    rep.add_argument("--kind", required=True, choices=REPORT_KINDS, type=str.upper)
    rep.add_argument("--vehicle-id", help="Vehicle for SCHEDULED_FOR_VEHICLE")
    rep.add_argument("--n-back", type=int, default=1, help="Accepted plans back for DELTA")
    rep.set_defaults(func=_cmd_report)

    exp = sub.add_parser("export", help="Export data from database to CSV")
    exp.add_argument("--work-orders", help="Path to export work orders CSV")
    exp.add_argument("--ops", help="Path to export ops tasks CSV")
    exp.set_defaults(func=_cmd_export)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(message)s",
    )
    args.cfg = load_config(args.config)
    args.func(args)


if __name__ == "__main__":
    main()

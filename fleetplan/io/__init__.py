"""I/O utilities for CSV import/export."""

from .import_csv import import_ops_tasks_csv, import_work_orders_csv, read_ops_tasks_csv, read_work_orders_csv
from .export_csv import export_clashes_csv, export_ops_tasks_csv, export_work_orders_csv

__all__ = [
    "import_work_orders_csv",
    "import_ops_tasks_csv",
    "read_work_orders_csv",
    "read_ops_tasks_csv",
    "export_work_orders_csv",
    "export_ops_tasks_csv",
    "export_clashes_csv",
]

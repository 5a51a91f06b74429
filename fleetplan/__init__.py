"""Fleet maintenance planner.

Modules:
- config: load and validate configuration (YAML or JSON)
- domain: plan records, mutations, SQLAlchemy tables and repositories
- services: interval helpers, clash detection, slot search, technician roster
- engine: policy proposals, mutation application, plan history and reports
- io: CSV import/export
- validator: post-planning checks and summaries
- cli: command-line interface entrypoints
"""

__all__ = [
    "config",
    "domain",
    "services",
    "engine",
    "io",
    "validator",
    "cli",
]

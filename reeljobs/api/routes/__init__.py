from . import admin, jobs, tasks

__all__ = ["admin", "jobs", "tasks"]

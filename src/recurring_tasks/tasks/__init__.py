"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Periodicity, Comment, TaskStatus)
- periodicity.py: due-date arithmetic and the validation anchor strategy
- status.py: overdue / due-soon / progress classification
- task_store.py: SQLite-backed storage + validate/archive/import/export
"""

"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Note, Session, enums)
- task_store.py / note_store.py / session_store.py: SQLite-backed storage
- services.py: business rules (ownership, reminders in the future, link notes)
- formatting.py: user-facing text
- task_scheduler.py: reminder and session-sweep polling loops
"""

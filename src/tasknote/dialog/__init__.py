"""
Step-by-step dialogues.

Components:
- time_parser.py: "15:30" / "tomorrow 10:00" / "25.12 14:00" -> datetime
- conversation_store.py: per-user flow state + per-user locks
- flows.py: add_task / add_note / set_notification state machine
"""

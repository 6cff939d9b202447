"""tasknote: chat-driven tasks, notes and reminders."""

__version__ = "0.1.0"

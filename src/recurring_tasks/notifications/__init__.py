"""
Notification subsystem.

Components:
- models.py: settings, per-task state, reminder/event types, throttle and snooze tables
- settings_store.py: JSON-backed reminder preferences with change subscribers
- state_store.py: whole-map persistence of per-task notification state
- scheduler.py: polling sweep, throttling, reminder actions
"""

"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, Urgency)
- task_repository.py: in-memory collection written through to the key-value store,
  change events, restore detection
"""

"""
Service Layer Package

Business logic services between the API layer and the query layer.

- HabitCompletionService: habit completion orchestration, streak repair
- ProgressService: XP, level, streak and today's progress snapshot
- CoachService: coach context, free tier rate limit, chat turns
"""

from trajectory.services.container import ServiceContainer, get_container, init_container, reset_container

__all__ = [
    "ServiceContainer",
    "get_container",
    "init_container",
    "reset_container",
]

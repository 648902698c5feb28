"""Trajectory wellness core: gamification, streaks, achievements and insights"""

__version__ = "1.0.0"

"""
Database queries - re-exports every query function.

Callers import the package (`from trajectory.db import queries`) and call
`queries.<function>` so a single attribute lookup resolves the query.

Module organization:
- habits.py: habits, completions, per-pillar and per-day counts, readings
- progress.py: XP, level and streak fields on the user profile, XP ledger
- achievements.py: achievement unlocks
- insights.py: curated correlations and habit stacks, XP multiplier overrides
- conversation.py: coach message log
"""

# Habit operations
from trajectory.db.queries.habits import (
    get_habit,
    get_active_habits,
    get_recent_habit_names,
    get_completion_on_day,
    insert_completion,
    count_completions_on_day,
    get_completion_days,
    get_completions_since,
    get_completion_times_since,
    count_completions_by_pillar,
    get_pillars_completed_on_day,
    count_completed_readings,
)

# Progress operations
from trajectory.db.queries.progress import (
    get_user_progress,
    update_user_streak,
    add_user_xp,
    update_user_level,
    add_xp_transaction,
    get_onboarding_data,
)

# Achievement operations
from trajectory.db.queries.achievements import (
    get_user_achievement_unlocks,
    add_user_achievement,
)

# Insight operations
from trajectory.db.queries.insights import (
    get_pillar_correlations,
    get_habit_stack_patterns,
    get_xp_multipliers,
    upsert_xp_multipliers,
)

# Conversation operations
from trajectory.db.queries.conversation import (
    save_coach_messages,
    count_user_messages_between,
    get_recent_coach_messages,
)

__all__ = [
    # Habits
    'get_habit',
    'get_active_habits',
    'get_recent_habit_names',
    'get_completion_on_day',
    'insert_completion',
    'count_completions_on_day',
    'get_completion_days',
    'get_completions_since',
    'get_completion_times_since',
    'count_completions_by_pillar',
    'get_pillars_completed_on_day',
    'count_completed_readings',
    # Progress
    'get_user_progress',
    'update_user_streak',
    'add_user_xp',
    'update_user_level',
    'add_xp_transaction',
    'get_onboarding_data',
    # Achievements
    'get_user_achievement_unlocks',
    'add_user_achievement',
    # Insights
    'get_pillar_correlations',
    'get_habit_stack_patterns',
    'get_xp_multipliers',
    'upsert_xp_multipliers',
    # Conversation
    'save_coach_messages',
    'count_user_messages_between',
    'get_recent_coach_messages',
]

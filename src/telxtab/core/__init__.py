"""Core business logic.

Modules:
- ranks: XP rank ladder
- progress_tracker: Video progress and completion XP
- exercises: Lesson exercise grading
- streaks: Daily login streaks
- study_timer: Study time accounting
- certificates: Course completion summaries
- dashboard: Leaderboard and recent activity
- blog: Blog publishing, likes and comments
- messaging: Direct messages and optimistic timeline
- notifications: User notifications and templates
- ai_chats: AI practice conversations
- storage: Media buckets
- auth: Accounts, passwords and tokens
"""

__all__ = [
    "ranks",
    "progress_tracker",
    "exercises",
    "streaks",
    "study_timer",
    "certificates",
    "dashboard",
    "blog",
    "messaging",
    "notifications",
    "ai_chats",
    "storage",
    "auth",
]

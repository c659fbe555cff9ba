"""Local storage key names.

All keys share the ``dh_`` namespace so usage accounting, backup and factory
reset can find them by prefix. Key functions are pure — they compute key
names, never touch storage.
"""

NAMESPACE = "dh_"


def module_key(module: str) -> str:
    """Local copy of a module bucket (``tasks``, ``habits``, ``vocab_terms``...)."""
    return f"{NAMESPACE}{module}"


def course_tree_key() -> str:
    """The user's course tree. Versioned separately from the module bucket name."""
    return f"{NAMESPACE}course_tree_v2"


def feed_cache_key() -> str:
    """Snapshot of the course feed: ``{items, lastFetched, hasMore}``."""
    return f"{NAMESPACE}courses_feed_cache"


def user_profile_key() -> str:
    """Read-only mirror of the signed-in user's profile."""
    return f"{NAMESPACE}user_profile"


def voice_settings_key() -> str:
    """Voice and speech preferences."""
    return f"{NAMESPACE}voice_settings"


def api_key_key() -> str:
    """The user's own assistant API key."""
    return f"{NAMESPACE}gemini_api_key"


def speaking_sessions_key() -> str:
    """Newest-first list of recent speaking sessions."""
    return f"{NAMESPACE}speaking_sessions"


# Keys included in a user-initiated backup/restore.
BACKUP_KEYS: tuple[str, ...] = (
    course_tree_key(),
    module_key("completed_lessons"),
    module_key("vocab_folders"),
    module_key("vocab_terms"),
    module_key("habits"),
    module_key("events"),
    module_key("tasks"),
    module_key("fin_trans"),
    module_key("fin_budgets"),
    module_key("fin_goals"),
    module_key("fin_debts"),
    user_profile_key(),
    module_key("theme"),
    api_key_key(),
    module_key("chat_history"),
    voice_settings_key(),
)

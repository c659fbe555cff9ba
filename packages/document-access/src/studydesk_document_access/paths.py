"""Collection paths in the remote document store.

Paths are pure functions of their ids, like the local key functions. The
naming reflects domain concepts (users, modules, history), not how any one
store lays documents out.
"""


def users_collection() -> str:
    """One document per user, keyed by the auth provider's user id."""
    return "users"


def modules_collection(uid: str) -> str:
    """Module buckets owned by one user, keyed by module name."""
    return f"users/{uid}/modules"


def speaking_history_collection(uid: str) -> str:
    """Append-only speaking sessions for one user, ordered by ``timestamp``."""
    return f"users/{uid}/speaking_history"


def finance_transactions_collection(uid: str) -> str:
    """Finance transactions for one user."""
    return f"users/{uid}/finance_transactions"


def courses_collection() -> str:
    """Published course feed, ordered by ``createdAt``."""
    return "courses"


def system_collection() -> str:
    return "system"


SYSTEM_PUBLIC_DOC = "public"

"""Local key-value storage: the on-device durability floor for user data."""

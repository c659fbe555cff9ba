"""Authentication collaborator: token verification, hosted sign-in, session state."""

"""Access Control Engine: decides whether a subject may use remote persistence."""

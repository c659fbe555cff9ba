"""Shared infrastructure for the StudyDesk persistence core.

Provides the contract models that flow between the sync manager and the
resource access packages, the field sum type and value sanitizer used on
every write path, and environment-driven settings.
"""

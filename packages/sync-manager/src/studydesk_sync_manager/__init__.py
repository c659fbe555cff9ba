"""Sync Manager: local-first module persistence, the course feed, and account flows.

Orchestrates the resource access packages:
- ModuleStore: local storage ⇄ remote module documents, gated by write privilege
- FeedCache: TTL-cached, cursor-paginated course feed
- UserDirectory: administrator operations over the user collection
- AccountService: sign-in/sign-out flow and self-service account changes
- StatsService: dashboard totals and remote health
"""

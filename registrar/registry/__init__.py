"""Registry — namespaced catalog of applications, versions and functions.

The registry provides:
- Addressing: deterministic namespace keys derived from names
- Indirection: namespace key -> true location pointers kept in storage
- Hierarchy: per-application version lists and per-version function lists
- Moderation: a single moderator gating every mutation
"""

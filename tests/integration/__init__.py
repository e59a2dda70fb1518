"""Integration tests for the election tracker.

Tests in this package exercise the PostgreSQL voter storage directly:
- Identifier uniqueness under concurrent registration
- Vote insertion and has_voted applied together
- Concurrent vote attempts for one voter
- Durability across connection pools

All tests are skipped when PostgreSQL is not reachable.
"""

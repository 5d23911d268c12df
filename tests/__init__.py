"""
Sirened Test Suite

Tests are organized into:
- unit/: Unit tests for domain logic, repositories and migrations
- integration/: API tests against the ASGI app
"""

# tasks/tests/__init__.py
"""
Task App Test Suite
===================

Unit and integration tests for the tasks application.

Modules:
--------
- test_engine: Unit tests for scoring, categorization, condition parsing and the rule engine
- test_store: JSON file persistence for tasks, rules and analytics
- test_api: Integration tests through the HTTP endpoints
- utils: Shared fixtures (temporary data dir, task/rule builders)

Running Tests:
--------------
    # Run all tests
    pytest

    # Run specific test module
    pytest backend/tasks/tests/test_engine.py

    # Run with verbose output
    pytest -v
"""

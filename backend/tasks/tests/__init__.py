# tasks/tests/__init__.py
"""
Task App Test Suite
===================

This package contains unit and integration tests for the tasks application.

Modules:
--------
- test_engine: Unit tests for cost, timeframe and scoring logic
- test_orchestration: Integration tests for the AI pipeline (scorer, orchestrator, worker)
- test_quick_add: One-line quick-add parser
- test_api: HTTP endpoints, inbound/outbound webhooks and voice entry

Running Tests:
--------------
    # Run all task tests
    python manage.py test tasks

    # Run specific test module
    python manage.py test tasks.tests.test_engine
    python manage.py test tasks.tests.test_api

    # Run with verbose output
    python manage.py test tasks -v 2
"""

"""
Armis Centrix test suite.

Test Organization:
    - tests/conftest.py: Shared fixtures (settings, fake clock, mocked Armis API)
    - tests/unit/test_*.py: Unit tests for individual modules, HTTP mocked with responses
"""

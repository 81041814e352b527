"""
Test suite for Style Space.

This package contains all tests organized by component:
- test_algorithms/: Tests for the numeric engines
- test_services/: Tests for projection orchestration
"""

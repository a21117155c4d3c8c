"""
Test suite for the furniture catalog reconciliation backend.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_matcher_service.py -v
"""

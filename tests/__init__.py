"""
Test suite for the Foxy datastore webhooks.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_webhook_service.py -v
"""

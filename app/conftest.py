"""
App-level pytest configuration.

Adds the test markers used across the apps and the PostgreSQL flush
patch needed by transactional tests.
"""

import pytest


def pytest_configure(config):
    """Use a fast password hasher; only admin users ever have passwords."""
    from django.conf import settings

    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]

    if settings.DATABASES["default"]["ENGINE"] == "django.db.backends.postgresql":
        _patch_postgresql_flush_for_cascade()


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full webhook delivery workflows)
    - test_views.py, test_services.py, test_processor.py, etc. → integration
    - test_models.py, test_state_machine.py, test_router.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    # Filename patterns for each category
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_processor.py",
        "test_repositories.py",
        "test_ledger.py",
        "test_concurrency.py",
        "test_stripe_adapter.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_exceptions.py",
        "test_signals.py",
        "test_state_machine.py",
        "test_router.py",
        "test_verifier.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filepath = str(item.fspath)
        filename = filepath.split("/")[-1]

        # Check patterns in priority order
        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)


def _patch_postgresql_flush_for_cascade():
    """
    Patch PostgreSQL flush to always use CASCADE.

    This fixes the "cannot truncate a table referenced in a foreign key constraint"
    error that occurs when TransactionTestCase tries to flush the database.
    """
    from django.db.backends.postgresql import operations

    original_sql_flush = operations.DatabaseOperations.sql_flush

    def sql_flush_with_cascade(
        self, style, tables, *, reset_sequences=False, allow_cascade=False
    ):
        # Force CASCADE for PostgreSQL to handle FK constraints
        return original_sql_flush(
            self, style, tables, reset_sequences=reset_sequences, allow_cascade=True
        )

    operations.DatabaseOperations.sql_flush = sql_flush_with_cascade

"""
Tests for payments app.

This package contains test modules for:
- test_state_machine.py: Transition table and helpers
- test_models.py: Payment and ProcessedWebhookEvent model tests
- test_repositories.py: Version-checked store and client store
- test_signals.py: Lifecycle signals and their receivers
- test_admin.py: Read-only admin

Shared helpers:
- factories.py: Factory Boy factories
- stripe_events.py: Signed Stripe delivery builders

Webhook pipeline tests live in payments/webhooks/tests/.

Usage:
    pytest app/payments/tests/
    pytest app/payments/tests/test_repositories.py
"""

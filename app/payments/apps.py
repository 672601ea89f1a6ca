"""
Payments app configuration.

This app tracks payments through their lifecycle and reconciles them
against Stripe webhook events.
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        """Import signals when the app is ready."""
        from payments import signals  # noqa: F401

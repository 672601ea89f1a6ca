"""
URL configuration for the Django application.

URL Structure:
    /admin/                        - Django admin interface (read-only payment views)
    /health/                       - Health check endpoint (for load balancers, Docker)
    /api/v1/payments/              - Payment endpoints
        webhooks/stripe/           - Stripe webhook endpoint (POST)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Payments
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Payments Admin"
admin.site.site_title = "Payments Admin Portal"
admin.site.index_title = "Payments"

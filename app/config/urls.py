"""
URL configuration for the rental settlement service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/rentals/               - Rental endpoints
        applications/{id}/email-verification/ - Send payment email code
        email-verification/verify/ - Verify payment email code
        agreements/{id}/end/       - End an active rental agreement
    /api/v1/payments/              - Payment endpoints
        create-intent/             - Create split-payment intent
        confirm/                   - Confirm a client-side successful payment
        details/{application_id}/  - Payment breakdown for an application
        connect/account/           - Start Stripe Connect onboarding
        connect/account-status/    - Connected account status
        webhooks/stripe/           - Stripe webhook endpoint (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("rentals/", include("rentals.urls")),
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
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
admin.site.site_header = "Rental Settlement Admin"
admin.site.site_title = "Rental Settlement"
admin.site.index_title = "Properties, applications and payouts"

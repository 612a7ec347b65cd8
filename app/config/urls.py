"""
URL configuration for the billing service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/billing/               - Billing endpoints
        orders/                    - Create order and payment link (POST)
        webhooks/{gateway}/        - Gateway webhook (POST)
        return/{gateway}/          - Gateway return-URL callback (GET/POST)
        charges/generate/          - Run monthly charge generation (admin)
        late-fees/apply/           - Run late fee engine (admin)
        subscribers/{id}/balance/  - Subscriber account balance (admin)
        payments/{id}/link/        - Link payment to subscriber (admin)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("billing/", include("billing.urls")),
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
admin.site.site_header = "Billing Admin"
admin.site.site_title = "Billing Admin"
admin.site.index_title = "Billing"

"""
Root URL configuration for the Device Catalog service.

- /admin/                 Django admin (catalog, runs, error log)
- /api/schema|docs|redoc/ OpenAPI schema and viewers
- /api/health/            Unauthenticated health check
- /api/v1/                Pipeline control and catalog queries
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)

from catalog.views import health_check

api_docs_patterns = [
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("redoc/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
]

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include(api_docs_patterns)),
    # Load balancers poll this without credentials
    path("api/health/", health_check, name="health-check"),
    path("api/v1/", include("catalog.api.urls")),
]

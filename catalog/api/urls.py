"""
Catalog API URL Configuration

Endpoints:
- POST /api/v1/pipeline/launch/           - Launch a pipeline run
- POST /api/v1/pipeline/stop/             - Stop the active run
- GET  /api/v1/pipeline/runs/<run_id>/    - Run status and error counters
- POST /api/v1/catalog/reset/             - Reset the catalog
- GET  /api/v1/devices/top/               - Top devices under filters
"""

from django.urls import path

from catalog.api.views import (
    launch_pipeline,
    stop_pipeline,
    get_pipeline_run,
    reset_catalog,
    top_devices,
)

app_name = 'catalog_api'

urlpatterns = [
    # Pipeline endpoints
    path('pipeline/launch/', launch_pipeline, name='launch_pipeline'),
    path('pipeline/stop/', stop_pipeline, name='stop_pipeline'),
    path('pipeline/runs/<uuid:run_id>/', get_pipeline_run, name='get_pipeline_run'),

    # Catalog endpoints
    path('catalog/reset/', reset_catalog, name='reset_catalog'),
    path('devices/top/', top_devices, name='top_devices'),
]

"""
Catalog API views.

REST endpoints to operate the data collection pipeline and query the
catalog:
- Launch and stop a pipeline run, inspect a run
- Reset the catalog
- Top devices under price, display and brand filters

All endpoints require authentication.
"""

import logging
from typing import Any, Dict, Optional

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes
from kombu.exceptions import OperationalError as KombuOperationalError

from catalog.api.throttling import CatalogQueryThrottle, PipelineControlThrottle
from catalog.constants import PipelineOutcome
from catalog.context import PipelineContext
from catalog.exceptions import CatalogError
from catalog.models import Device, PipelineRun
from catalog.types import DeviceFilters

logger = logging.getLogger(__name__)

RANGE_PARAMS = (
    ('min_price', float),
    ('max_price', float),
    ('min_display_size', float),
    ('max_display_size', float),
    ('min_refresh_rate', int),
    ('max_refresh_rate', int),
)


def _get_catalog_database():
    """Get the catalog database (lazy import to avoid circular imports)."""
    from catalog.persistence import DjangoCatalogDatabase
    return DjangoCatalogDatabase(monitor=None)


def _run_payload(run: PipelineRun) -> Dict[str, Any]:
    return {
        'run_id': str(run.id),
        'status': run.status,
        'outcome': run.outcome or None,
        'stop_requested': run.stop_requested,
        'error_counts': run.error_counts,
        'message': run.message,
        'created_at': run.created_at.isoformat() if run.created_at else None,
        'started_at': run.started_at.isoformat() if run.started_at else None,
        'finished_at': run.finished_at.isoformat() if run.finished_at else None,
        'duration_seconds': run.duration_seconds,
    }


def _device_payload(device: Device) -> Dict[str, Any]:
    return {
        'id': str(device.id),
        'brand': device.brand,
        'name': device.name,
        'image': device.image,
        'release_date': device.release_date.isoformat() if device.release_date else None,
        'price': device.real_price,
        'price_category': device.get_price_category_display(),
        'display_size': device.display_size,
        'refresh_rate': device.refresh_rate,
        'battery_capacity': device.battery_capacity,
        'single_core_score': device.single_core_score,
        'multi_core_score': device.multi_core_score,
        'is_estimated_benchmark': device.is_estimated_benchmark,
        'review_score': device.validated_review_score,
        'final_score': device.validated_final_score,
    }


def _parse_filters(query_params) -> DeviceFilters:
    """
    Build DeviceFilters from query parameters.

    Raises:
        ValueError: If a numeric parameter does not parse
    """
    values: Dict[str, Optional[float]] = {}
    for param, cast in RANGE_PARAMS:
        raw = query_params.get(param)
        if raw in (None, ''):
            continue
        try:
            values[param] = cast(raw)
        except ValueError:
            raise ValueError(f'{param} must be a number')

    brands = [
        brand.strip()
        for brand in query_params.get('brands', '').split(',')
        if brand.strip()
    ]
    return DeviceFilters(brands=brands, **values)


# ============================================================
# Pipeline Endpoints
# ============================================================

@extend_schema(
    tags=['Pipeline'],
    summary='Launch the data collection pipeline',
    description='''
    Start a pipeline run in the background.

    Only one run can be active at a time. Error counters start from zero.
    ''',
    request=None,
    responses={
        202: {'description': 'Run created and dispatched'},
        409: {'description': 'A run is already active'},
        503: {'description': 'Task broker unavailable, run marked failed'},
    },
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([PipelineControlThrottle])
def launch_pipeline(request):
    """
    Launch a pipeline run.

    Returns the run id for polling its status.
    """
    from catalog.tasks import run_data_collection

    active = PipelineRun.active().first()
    if active is not None:
        return Response(
            {'error': 'A pipeline run is already active', 'run_id': str(active.id)},
            status=status.HTTP_409_CONFLICT
        )

    run = PipelineRun.objects.create()
    try:
        run_data_collection.delay(str(run.id))
    except (KombuOperationalError, OSError) as e:
        # A run nobody will execute would block every later launch and reset
        logger.error(f"Could not dispatch pipeline run {run.id}: {e}")
        run.finish(PipelineOutcome.FAILED, message=f"Dispatch failed: {e}")
        return Response(
            {'error': 'Task broker unavailable', 'run_id': str(run.id)},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )
    logger.info(f"Dispatched pipeline run {run.id}")

    return Response(
        {
            'run_id': str(run.id),
            'status': run.status,
            'status_url': f'/api/v1/pipeline/runs/{run.id}/',
        },
        status=status.HTTP_202_ACCEPTED
    )


@extend_schema(
    tags=['Pipeline'],
    summary='Stop the active pipeline run',
    description='Flag the active run for stop. The loops finish their current step and exit.',
    request=None,
    responses={
        202: {'description': 'Stop requested'},
        404: {'description': 'No active run'},
    },
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([PipelineControlThrottle])
def stop_pipeline(request):
    """Request a stop of the active pipeline run."""
    run = PipelineRun.active().first()
    if run is None:
        return Response(
            {'error': 'No active pipeline run'},
            status=status.HTTP_404_NOT_FOUND
        )

    run.request_stop()
    logger.info(f"Stop requested for pipeline run {run.id}")
    return Response(_run_payload(run), status=status.HTTP_202_ACCEPTED)


@extend_schema(
    tags=['Pipeline'],
    summary='Get pipeline run status',
    description='Status, outcome and error counter snapshot of a pipeline run.',
    responses={
        200: {'description': 'Run details'},
        404: {'description': 'Run not found'},
    },
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_pipeline_run(request, run_id):
    """Get status of a pipeline run."""
    try:
        run = PipelineRun.objects.get(id=run_id)
    except PipelineRun.DoesNotExist:
        return Response(
            {'error': 'Run not found'},
            status=status.HTTP_404_NOT_FOUND
        )

    return Response(_run_payload(run))


# ============================================================
# Catalog Endpoints
# ============================================================

@extend_schema(
    tags=['Catalog'],
    summary='Reset the catalog',
    description='''
    Delete every device, release year and month and queued entry, and
    reset both bounding boxes, the validation state and the error counters.

    Refused while a pipeline run is active.
    ''',
    request=None,
    responses={
        200: {'description': 'Catalog reset'},
        409: {'description': 'A run is active'},
        503: {'description': 'Database unavailable'},
    },
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([PipelineControlThrottle])
def reset_catalog(request):
    """Wipe the catalog."""
    from catalog.pipeline import wipe_catalog

    if PipelineRun.active().exists():
        return Response(
            {'error': 'Cannot reset the catalog while a pipeline run is active'},
            status=status.HTTP_409_CONFLICT
        )

    try:
        wipe_catalog()
    except CatalogError as e:
        logger.error(f"Catalog reset failed: {e}")
        return Response(
            {'error': f'Catalog reset failed: {e}'},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    return Response({'success': True})


@extend_schema(
    tags=['Catalog'],
    summary='Top devices',
    description='The best devices under the given filters, by validated final score.',
    parameters=[
        OpenApiParameter('min_price', OpenApiTypes.NUMBER, description='Lowest price'),
        OpenApiParameter('max_price', OpenApiTypes.NUMBER, description='Highest price'),
        OpenApiParameter('min_display_size', OpenApiTypes.NUMBER, description='Smallest display, inches'),
        OpenApiParameter('max_display_size', OpenApiTypes.NUMBER, description='Largest display, inches'),
        OpenApiParameter('min_refresh_rate', OpenApiTypes.INT, description='Lowest refresh rate, Hz'),
        OpenApiParameter('max_refresh_rate', OpenApiTypes.INT, description='Highest refresh rate, Hz'),
        OpenApiParameter('brands', OpenApiTypes.STR, description='Comma separated brands, e.g. Apple,Samsung'),
    ],
    responses={
        200: {
            'description': 'Devices, best first',
            'content': {
                'application/json': {
                    'example': {
                        'devices': [
                            {'brand': 'Apple', 'name': 'iPhone 15 Pro', 'price': 999.0, 'final_score': 74.2},
                        ],
                    }
                }
            }
        },
        400: {'description': 'Invalid filter value'},
    },
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
@throttle_classes([CatalogQueryThrottle])
def top_devices(request):
    """
    Top devices under price, display size, refresh rate and brand filters.

    Query parameters:
        min_price, max_price, min_display_size, max_display_size,
        min_refresh_rate, max_refresh_rate, brands (comma separated)
    """
    try:
        filters = _parse_filters(request.query_params)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    try:
        devices = _get_catalog_database().top_n(filters, PipelineContext())
    except CatalogError as e:
        logger.error(f"Top devices query failed: {e}")
        return Response(
            {'error': 'Catalog unavailable'},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    return Response({'devices': [_device_payload(device) for device in devices]})

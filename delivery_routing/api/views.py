"""
API views for delivery route planning.

This module provides the API endpoints for planning a driver's delivery route.
"""
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.decorators import api_view
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
import logging

from delivery_routing.core.domain import OptimizationError
from delivery_routing.core.exceptions import ErrorKind
from delivery_routing.services.route_planning_service import RoutePlanningService
from delivery_routing.api.serializers import (
    OptimizationErrorSerializer,
    RouteOptimizationRequestSerializer,
    RouteOptimizationResponseSerializer,
)

# Set up logging
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ErrorKind.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONSTRAINT_VIOLATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.CAPACITY_EXCEEDED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorKind.ORDER_STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class OptimizeRouteView(APIView):
    """
    API view for planning a single driver's delivery route.
    """

    @swagger_auto_schema(
        request_body=RouteOptimizationRequestSerializer,
        responses={
            200: openapi.Response("Route planned.", RouteOptimizationResponseSerializer),
            400: openapi.Response("Invalid request or unroutable order.", OptimizationErrorSerializer),
            422: openapi.Response("No feasible route under the given constraints.", OptimizationErrorSerializer),
            503: openapi.Response("Order store unavailable.", OptimizationErrorSerializer),
            504: openapi.Response("Time budget ran out before a route was built.", OptimizationErrorSerializer),
            500: openapi.Response("Internal Server Error - Route planning failed.")
        },
        operation_id="optimize_route_create",
        operation_description="""Orders the given deliveries into a route for one driver, starting at the depot.
        Honors vehicle capacity, delivery time windows and a maximum route duration when given,
        and notifies the driver of the assignment unless notifyDriver is false.""",
        tags=['Route Optimization']
    )
    def post(self, request, format=None):
        """
        POST endpoint for route planning.

        Args:
            request: HTTP request object containing the depot, order ids and constraints.
            format: Format of the response.

        Returns:
            Response object with the planned route or an error.
        """
        serializer = RouteOptimizationRequestSerializer(data=request.data)

        if not serializer.is_valid():
            logger.error(f"OptimizeRouteView validation error: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            outcome = RoutePlanningService().plan_route(**serializer.to_service_kwargs())

            if isinstance(outcome, OptimizationError):
                return Response(outcome.to_dict(), status=ERROR_STATUS_CODES[outcome.kind])

            response_data = RouteOptimizationResponseSerializer.from_route(outcome)
            return Response(response_data, status=status.HTTP_200_OK)

        except Exception as e:
            logger.exception("Critical error during route planning: %s", str(e))
            return Response(
                {"error": "An unexpected error occurred during route planning. Please try again later."},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )


@swagger_auto_schema(
    method='get',
    operation_id="health_check_get",
    operation_description="Performs a health check of the API. Returns the operational status of the service.",
    responses={
        200: openapi.Response(
            description="API is healthy and operational.",
            examples={"application/json": {"status": "healthy"}}
        )
    },
    tags=['Health Check']
)
@api_view(['GET'])
def health_check(request):
    """
    Health check endpoint to verify the API is running.
    """
    return Response({"status": "healthy"}, status=status.HTTP_200_OK)

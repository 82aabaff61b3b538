"""
URL configuration for the delivery routing API.

Mount under ``api/routes/`` in the host project.
"""
from django.urls import path
from delivery_routing.api.views import OptimizeRouteView, health_check

app_name = 'delivery_routing'

urlpatterns = [
    # Health check endpoint
    path('health/', health_check, name='health_check_get'),

    # Route optimization endpoint
    path('optimize/', OptimizeRouteView.as_view(), name='optimize_route_create'),
]

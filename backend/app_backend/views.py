from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework import status

from realtime.servers import get_notification_server, get_vehicle_location_server


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """Health check endpoint for monitoring system status"""

    health_status = {
        "status": "healthy",
        "timestamp": timezone.now().isoformat(),
        "services": {}
    }

    # Sweeps start with the first socket of each server, so "idle" is not a failure.
    servers = {
        "notifications": get_notification_server(),
        "vehicle_location": get_vehicle_location_server(),
    }
    for name, server in servers.items():
        try:
            health_status["services"][name] = "running" if server.is_running else "idle"
        except Exception as e:
            health_status["services"][name] = f"unhealthy: {e}"
            health_status["status"] = "unhealthy"

    status_code = (
        status.HTTP_200_OK
        if health_status["status"] == "healthy"
        else status.HTTP_503_SERVICE_UNAVAILABLE
    )

    return Response(health_status, status=status_code)

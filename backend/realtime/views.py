import uuid

from asgiref.sync import async_to_sync
from django.utils import timezone
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common.utils.geo import within_radius
from .protocol import Notification, NotificationType
from .serializers import NotificationBroadcastSerializer, NotificationPushSerializer, VehicleAreaSerializer
from .servers import get_notification_server, get_vehicle_location_server


def build_notification(validated_data, user=None) -> Notification:
    now = timezone.now().isoformat()
    return Notification(
        id=uuid.uuid4().hex,
        user=user,
        type=NotificationType(validated_data["type"]),
        title=validated_data["title"],
        message=validated_data["message"],
        data=validated_data.get("data") or {},
        created_at=now,
        updated_at=now,
    )


class ActiveVehiclesView(APIView):
    """Live vehicle positions, optionally limited to ?lat=&lng=&radius= (meters)."""
    permission_classes = [AllowAny]

    def get(self, request):
        vehicles = get_vehicle_location_server().active_vehicles()

        if "lat" in request.query_params or "lng" in request.query_params:
            serializer = VehicleAreaSerializer(data=request.query_params)
            serializer.is_valid(raise_exception=True)
            area = serializer.validated_data
            vehicles = within_radius(vehicles, area["lat"], area["lng"], area["radius"])

        return Response({"count": len(vehicles), "vehicles": vehicles})


class NotificationPushView(APIView):
    """Push one notification to every device of a user.

    Called by the notification-creation workflow once the record is stored.
    """
    permission_classes = [IsAdminUser]

    def post(self, request):
        serializer = NotificationPushSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user_id = serializer.validated_data["user"]

        notification = build_notification(serializer.validated_data, user=user_id)
        delivered = async_to_sync(get_notification_server().push_to_user)(user_id, notification)

        return Response({"delivered": delivered, "notification": notification.to_dict()})


class NotificationBroadcastView(APIView):
    """Platform-wide announcement (e.g. public transport search alerts)."""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = NotificationBroadcastSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        notification = build_notification(serializer.validated_data)
        delivered = async_to_sync(get_notification_server().broadcast)(notification)

        return Response({"delivered": delivered, "notification": notification.to_dict()})


class RealtimeStatsView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        return Response({
            "notifications": get_notification_server().stats(),
            "vehicle_location": get_vehicle_location_server().stats(),
        })

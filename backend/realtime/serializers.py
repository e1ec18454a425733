from rest_framework import serializers

from .protocol import NotificationType


class NotificationBroadcastSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=[t.value for t in NotificationType])
    title = serializers.CharField(max_length=100, trim_whitespace=True)
    message = serializers.CharField(max_length=500, trim_whitespace=True)
    data = serializers.DictField(required=False, default=dict)


class NotificationPushSerializer(NotificationBroadcastSerializer):
    user = serializers.CharField(max_length=64)


class VehicleAreaSerializer(serializers.Serializer):
    """Optional viewport filter for the active-vehicles listing."""
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)
    radius = serializers.FloatField(min_value=1, max_value=200000, required=False, default=5000)

from django.urls import path

from .views import (
    ActiveVehiclesView,
    NotificationBroadcastView,
    NotificationPushView,
    RealtimeStatsView,
)

urlpatterns = [
    path("vehicles/active/", ActiveVehiclesView.as_view(), name="vehicles-active"),
    path("notifications/push/", NotificationPushView.as_view(), name="notifications-push"),
    path("notifications/broadcast/", NotificationBroadcastView.as_view(), name="notifications-broadcast"),
    path("realtime/stats/", RealtimeStatsView.as_view(), name="realtime-stats"),
]

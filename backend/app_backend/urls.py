from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Realtime REST surface (at /api/): active vehicles, notification push/broadcast, stats
    path('api/', include('realtime.urls')),
]

"""
URL configuration for the salon scheduling core.
"""
from django.urls import path, include

urlpatterns = [
    path('api/', include('apps.bookings.urls', namespace='bookings')),
]

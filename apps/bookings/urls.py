"""
Booking API URLs (mounted under /api/).

  salons/<uuid>/slots/                  GET   available slots grouped by date
  reservations/                         POST  hold a slot
  reservations/<uuid>/release/          POST  give a hold back
  reservations/<uuid>/confirm/          POST  turn a hold into an appointment
  appointments/<uuid>/cancel/           POST  customer cancellation
"""
from django.urls import path
from . import views

app_name = 'bookings'

urlpatterns = [
    path('salons/<uuid:salon_id>/slots/',              views.api_slots,   name='slots'),
    path('reservations/',                              views.api_hold,    name='hold'),
    path('reservations/<uuid:reservation_id>/release/', views.api_release, name='release'),
    path('reservations/<uuid:reservation_id>/confirm/', views.api_confirm, name='confirm'),
    path('appointments/<uuid:appointment_id>/cancel/', views.api_cancel,  name='cancel'),
]

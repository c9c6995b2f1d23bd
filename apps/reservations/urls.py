from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'reservations'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.ReservationViewSet, basename='reservation')

urlpatterns = [
    # GET    /api/reservations/                   - List user's reservations
    # POST   /api/reservations/                   - Create reservation + group
    # GET    /api/reservations/{id}/              - Reservation with members
    # POST   /api/reservations/{id}/status/       - Complete / cancel (owner)
    # GET    /api/reservations/{id}/activities/   - Activity on this reservation
    path('', include(router.urls)),
]

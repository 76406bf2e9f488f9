"""
URL configuration for analytics app.
"""
from django.urls import path
from .views import TopRoutesView, BookingEventsView, BookingStatsView

urlpatterns = [
    path('top-routes/', TopRoutesView.as_view(), name='top_routes'),
    path('booking-events/', BookingEventsView.as_view(), name='booking_events'),
    path('stats/', BookingStatsView.as_view(), name='booking_stats'),
]

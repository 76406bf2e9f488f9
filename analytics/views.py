"""
Analytics over the MongoDB request and booking-event logs.
"""
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import extend_schema, OpenApiParameter, inline_serializer
from rest_framework import serializers as drf_serializers

from trains.permissions import IsAdminUser
from utils.mongo import get_top_routes, get_booking_events, get_booking_stats


def bounded_int(value, default, low, high):
    try:
        return min(max(int(value), low), high)
    except (TypeError, ValueError):
        return default


# Response serializers for Swagger
class RouteSerializer(drf_serializers.Serializer):
    source = drf_serializers.CharField()
    destination = drf_serializers.CharField()
    search_count = drf_serializers.IntegerField()


class TopRoutesResponseSerializer(drf_serializers.Serializer):
    count = drf_serializers.IntegerField()
    results = RouteSerializer(many=True)


class TopRoutesView(APIView):
    """Most searched routes."""
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get top searched routes",
        description="Most searched (source, destination) pairs aggregated from the search logs",
        parameters=[
            OpenApiParameter(name='limit', type=int, required=False, description='Number of routes (default: 5, max: 20)')
        ],
        responses={200: TopRoutesResponseSerializer},
        tags=["Analytics"]
    )
    def get(self, request):
        limit = bounded_int(request.query_params.get('limit', 5), 5, 1, 20)
        top_routes = get_top_routes(limit=limit)
        return Response({'count': len(top_routes), 'results': top_routes})


class BookingEventsView(APIView):
    """Raw booking events (Admin only)."""
    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(
        summary="Get booking events (Admin only)",
        description="Allocation and cancellation outcomes, newest first.",
        parameters=[
            OpenApiParameter(name='event', type=str, required=False, description='booked / failed / cancelled / cancel_failed'),
            OpenApiParameter(name='train_id', type=str, required=False, description='Filter by train id'),
            OpenApiParameter(name='user_id', type=int, required=False, description='Filter by user id'),
            OpenApiParameter(name='limit', type=int, required=False, description='Results limit (default: 50, max: 500)'),
            OpenApiParameter(name='offset', type=int, required=False, description='Pagination offset'),
        ],
        responses={200: inline_serializer(name='BookingEventsResponse', fields={
            'count': drf_serializers.IntegerField(),
            'limit': drf_serializers.IntegerField(),
            'offset': drf_serializers.IntegerField(),
            'results': drf_serializers.ListField(),
        })},
        tags=["Analytics (Admin)"]
    )
    def get(self, request):
        params = request.query_params
        limit = bounded_int(params.get('limit', 50), 50, 1, 500)
        offset = bounded_int(params.get('offset', 0), 0, 0, 10 ** 9)
        user_id = bounded_int(params.get('user_id'), None, 1, 2 ** 63 - 1) if params.get('user_id') else None

        events = get_booking_events(
            limit=limit,
            offset=offset,
            event=params.get('event') or None,
            train_id=params.get('train_id') or None,
            user_id=user_id,
        )
        return Response({'count': len(events), 'limit': limit, 'offset': offset, 'results': events})


class BookingStatsView(APIView):
    """Booking outcome counts (Admin only)."""
    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(
        summary="Get booking statistics (Admin only)",
        parameters=[
            OpenApiParameter(name='hours', type=int, required=False, description='Hours to analyze (default: 24, max: 168)'),
        ],
        responses={200: inline_serializer(name='BookingStatsResponse', fields={
            'period_hours': drf_serializers.IntegerField(),
            'stats': drf_serializers.DictField(),
        })},
        tags=["Analytics (Admin)"]
    )
    def get(self, request):
        hours = bounded_int(request.query_params.get('hours', 24), 24, 1, 168)
        return Response({'period_hours': hours, 'stats': get_booking_stats(hours=hours)})

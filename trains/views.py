"""Views for train search, listing and administration."""
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample, inline_serializer
from rest_framework import serializers as drf_serializers

from .models import Train
from .serializers import TrainSerializer, TrainWriteSerializer
from .permissions import IsAdminOrReadOnly


# Response serializers for Swagger
class TrainSearchResponseSerializer(drf_serializers.Serializer):
    count = drf_serializers.IntegerField()
    limit = drf_serializers.IntegerField()
    offset = drf_serializers.IntegerField()
    results = TrainSerializer(many=True)


class TrainListResponseSerializer(drf_serializers.Serializer):
    count = drf_serializers.IntegerField()
    results = TrainSerializer(many=True)


class TrainWriteResponseSerializer(drf_serializers.Serializer):
    message = drf_serializers.CharField()
    train = TrainSerializer()


ErrorSerializer = inline_serializer(name='TrainError', fields={'error': drf_serializers.CharField()})

TRAIN_EXAMPLE = OpenApiExample(
    "Create Train",
    value={
        "train_number": "12345",
        "train_name": "Rajdhani Express",
        "source": "Delhi",
        "destination": "Mumbai",
        "departure_time": "06:00:00",
        "arrival_time": "20:00:00",
        "journey_date": "2026-01-15",
        "total_seats": 100,
        "price": "2500.00"
    },
    request_only=True
)


def parse_paging(params, default_limit=10, max_limit=100):
    try:
        limit = min(max(int(params.get('limit', default_limit)), 1), max_limit)
        offset = max(int(params.get('offset', 0)), 0)
    except (TypeError, ValueError):
        limit, offset = default_limit, 0
    return limit, offset


class TrainSearchView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Search trains between stations",
        description="Trains with free seats whose source and destination contain the given text. Logged to MongoDB.",
        parameters=[
            OpenApiParameter(name='source', type=str, required=True, description='Source station (e.g., Delhi)'),
            OpenApiParameter(name='destination', type=str, required=True, description='Destination station (e.g., Mumbai)'),
            OpenApiParameter(name='date', type=str, required=False, description='Journey date (YYYY-MM-DD)'),
            OpenApiParameter(name='limit', type=int, required=False, description='Results per page (default: 10, max: 100)'),
            OpenApiParameter(name='offset', type=int, required=False, description='Pagination offset (default: 0)'),
        ],
        responses={200: TrainSearchResponseSerializer, 400: ErrorSerializer},
        tags=["Trains"]
    )
    def get(self, request):
        source = request.query_params.get('source', '').strip()
        destination = request.query_params.get('destination', '').strip()
        journey_date = request.query_params.get('date')

        if not source or not destination:
            return Response({'error': 'Source and destination are required'}, status=status.HTTP_400_BAD_REQUEST)

        limit, offset = parse_paging(request.query_params)

        queryset = Train.objects.filter(
            source__icontains=source,
            destination__icontains=destination,
            available_seats__gt=0,
        )
        if journey_date:
            date_field = drf_serializers.DateField()
            try:
                queryset = queryset.filter(journey_date=date_field.to_internal_value(journey_date))
            except drf_serializers.ValidationError:
                return Response({'error': 'Date must be in YYYY-MM-DD format'}, status=status.HTTP_400_BAD_REQUEST)

        queryset = queryset.order_by('departure_time', 'journey_date')
        total_count = queryset.count()
        trains = queryset[offset:offset + limit]

        return Response({
            'count': total_count, 'limit': limit, 'offset': offset,
            'results': TrainSerializer(trains, many=True).data
        })


class TodayTrainsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Today's trains",
        description="Trains running today that still have free seats.",
        responses={200: TrainListResponseSerializer},
        tags=["Trains"]
    )
    def get(self, request):
        trains = Train.objects.filter(
            journey_date=timezone.localdate(), available_seats__gt=0
        ).order_by('departure_time')
        return Response({'count': trains.count(), 'results': TrainSerializer(trains, many=True).data})


class TrainListCreateView(APIView):
    permission_classes = [IsAdminOrReadOnly]

    @extend_schema(
        summary="List all trains",
        responses={200: TrainListResponseSerializer},
        tags=["Trains"]
    )
    def get(self, request):
        trains = Train.objects.order_by('journey_date', 'departure_time')
        return Response({'count': trains.count(), 'results': TrainSerializer(trains, many=True).data})

    @extend_schema(
        summary="Add a train (Admin only)",
        description="Creates a train run with all seats available.",
        request=TrainWriteSerializer,
        responses={201: TrainWriteResponseSerializer},
        examples=[TRAIN_EXAMPLE],
        tags=["Trains (Admin)"]
    )
    def post(self, request):
        serializer = TrainWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        train = serializer.save()
        return Response({
            'message': 'Train added successfully',
            'train': TrainSerializer(train).data
        }, status=status.HTTP_201_CREATED)


class TrainDetailView(APIView):
    permission_classes = [IsAdminOrReadOnly]

    def get_train(self, train_id):
        return Train.objects.filter(pk=train_id).first()

    @extend_schema(
        summary="Get train by id",
        responses={200: TrainSerializer, 404: ErrorSerializer},
        tags=["Trains"]
    )
    def get(self, request, train_id):
        train = self.get_train(train_id)
        if train is None:
            return Response({'error': 'Train not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(TrainSerializer(train).data)

    def _update(self, request, train_id, partial):
        train = self.get_train(train_id)
        if train is None:
            return Response({'error': 'Train not found'}, status=status.HTTP_404_NOT_FOUND)

        serializer = TrainWriteSerializer(train, data=request.data, partial=partial)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        train = serializer.save()
        return Response({
            'message': 'Train updated successfully',
            'train': TrainSerializer(train).data
        })

    @extend_schema(
        summary="Replace train details (Admin only)",
        request=TrainWriteSerializer,
        responses={200: TrainWriteResponseSerializer, 404: ErrorSerializer},
        examples=[TRAIN_EXAMPLE],
        tags=["Trains (Admin)"]
    )
    def put(self, request, train_id):
        return self._update(request, train_id, partial=False)

    @extend_schema(
        summary="Update train details (Admin only)",
        description="Changing total_seats moves available_seats by the same amount.",
        request=TrainWriteSerializer,
        responses={200: TrainWriteResponseSerializer, 404: ErrorSerializer},
        tags=["Trains (Admin)"]
    )
    def patch(self, request, train_id):
        return self._update(request, train_id, partial=True)

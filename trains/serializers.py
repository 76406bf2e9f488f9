"""
Serializers for train management.
"""
import logging

from rest_framework import serializers
from django.db import IntegrityError, transaction

from utils.locks import train_lock
from .models import Train

logger = logging.getLogger(__name__)


class TrainSerializer(serializers.ModelSerializer):
    """Serializer for Train model."""

    class Meta:
        model = Train
        fields = [
            'id', 'train_number', 'train_name', 'source', 'destination',
            'departure_time', 'arrival_time', 'journey_date',
            'total_seats', 'available_seats', 'price', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class TrainWriteSerializer(serializers.ModelSerializer):
    """
    Admin create/update. available_seats is derived, never written directly:
    a new train starts full, and a total_seats change shifts it by the same delta.
    """
    train_number = serializers.CharField(max_length=20)

    class Meta:
        model = Train
        fields = [
            'train_number', 'train_name', 'source', 'destination',
            'departure_time', 'arrival_time', 'journey_date', 'total_seats', 'price'
        ]

    def validate_train_number(self, value):
        value = value.strip().upper()
        if not value.replace('-', '').isalnum():
            raise serializers.ValidationError("Train number must be alphanumeric.")
        clash = Train.objects.filter(train_number__iexact=value)
        if self.instance is not None:
            clash = clash.exclude(pk=self.instance.pk)
        if clash.exists():
            raise serializers.ValidationError(f"Train number '{value}' already exists.")
        return value

    def validate_train_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Train name is required.")
        return value

    def validate(self, attrs):
        for key in ('source', 'destination'):
            if key in attrs:
                attrs[key] = attrs[key].strip().title()

        source = attrs.get('source', getattr(self.instance, 'source', None))
        destination = attrs.get('destination', getattr(self.instance, 'destination', None))
        if source and destination and source.lower() == destination.lower():
            raise serializers.ValidationError({
                'destination': "Source and destination cannot be the same."
            })
        return attrs

    def duplicate_number_error(self, train_number):
        return serializers.ValidationError({
            'train_number': [f"Train number '{train_number}' already exists."]
        })

    def create(self, validated_data):
        validated_data['available_seats'] = validated_data['total_seats']
        try:
            with transaction.atomic():
                train = Train.objects.create(**validated_data)
        except IntegrityError:
            # Another create with the same number committed after validation.
            raise self.duplicate_number_error(validated_data['train_number'])
        logger.info("Created train %s (%s)", train.train_number, train.id)
        return train

    def update(self, instance, validated_data):
        # Same lock as the allocator: the seat counter must not move underneath us.
        try:
            with train_lock(instance.pk), transaction.atomic():
                train = Train.objects.select_for_update().get(pk=instance.pk)
                new_total = validated_data.pop('total_seats', train.total_seats)
                booked = train.total_seats - train.available_seats
                if new_total < booked:
                    raise serializers.ValidationError({
                        'total_seats': f"Cannot reduce total seats below the {booked} already booked."
                    })

                for attr, value in validated_data.items():
                    setattr(train, attr, value)
                train.total_seats = new_total
                train.available_seats = new_total - booked
                train.save()
        except IntegrityError:
            raise self.duplicate_number_error(validated_data.get('train_number', instance.train_number))

        logger.info("Updated train %s (%s)", train.train_number, train.id)
        return train

from django.contrib import admin
from .models import Train


@admin.register(Train)
class TrainAdmin(admin.ModelAdmin):
    list_display = ['train_number', 'train_name', 'source', 'destination', 'journey_date',
                    'departure_time', 'total_seats', 'available_seats', 'price']
    list_filter = ['journey_date', 'source', 'destination']
    search_fields = ['train_number', 'train_name', 'source', 'destination']
    readonly_fields = ['available_seats', 'created_at', 'updated_at']
    ordering = ['journey_date', 'departure_time']

    def get_readonly_fields(self, request, obj=None):
        # Capacity changes go through the API so booked seats are accounted for.
        if obj is not None:
            return self.readonly_fields + ['total_seats']
        return self.readonly_fields

    def save_model(self, request, obj, form, change):
        if not change:
            obj.available_seats = obj.total_seats
        super().save_model(request, obj, form, change)

from django.contrib import admin
from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Read-only: seats are issued and released only through the allocator."""
    list_display = ['id', 'train', 'seat_number', 'passenger_name', 'user', 'status', 'booking_date']
    list_filter = ['status', 'passenger_gender', 'booking_date']
    search_fields = ['id', 'passenger_name', 'user__email', 'train__train_number']
    ordering = ['-booking_date']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

"""
Django admin registrations for the clinic models.

Super users can inspect tenants, the agenda and stock at ``/admin/``.
"""

from django.contrib import admin

from .models import (
    Appointment,
    AppointmentTransition,
    AuditEvent,
    AvailabilityException,
    Clinic,
    InventoryItem,
    InventoryTransaction,
    MedicalRecord,
    Patient,
    TissBill,
    User,
)


@admin.register(Clinic)
class ClinicAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'phone', 'subscription_status', 'created_at')
    search_fields = ('name',)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'name', 'role', 'clinic', 'is_active', 'is_superuser')
    list_filter = ('role', 'clinic')
    search_fields = ('username', 'name', 'email')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'cpf', 'birth_date', 'clinic')
    list_filter = ('clinic',)
    search_fields = ('name', 'cpf', 'phone')


class AppointmentTransitionInline(admin.TabularInline):
    model = AppointmentTransition
    extra = 0
    readonly_fields = ('from_status', 'to_status', 'operator', 'reason', 'timestamp')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'date', 'start_time', 'doctor', 'patient', 'status', 'payment_status')
    list_filter = ('clinic', 'status', 'date')
    search_fields = ('patient__name', 'doctor__name')
    inlines = [AppointmentTransitionInline]


@admin.register(AvailabilityException)
class AvailabilityExceptionAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'date', 'is_available', 'reason')
    list_filter = ('clinic', 'is_available')


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'status', 'created_at', 'finalized_at')
    list_filter = ('clinic', 'status')


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'quantity', 'min_quantity', 'clinic')
    list_filter = ('clinic', 'category')
    search_fields = ('name', 'batch_number')


@admin.register(InventoryTransaction)
class InventoryTransactionAdmin(admin.ModelAdmin):
    list_display = ('item', 'type', 'quantity', 'created_at')
    list_filter = ('type',)


@admin.register(TissBill)
class TissBillAdmin(admin.ModelAdmin):
    list_display = ('id', 'appointment', 'insurance_id', 'status', 'created_at')
    list_filter = ('clinic', 'status')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'clinic', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('action',)

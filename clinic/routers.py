"""
URL mappings for the clinic API.

Trailing slashes are deliberately omitted; ``APPEND_SLASH`` is off.
"""
from django.urls import include, path

from .views import health
from .views.appointments import (
    appointment_detail,
    appointment_status,
    appointment_transitions,
    appointment_triage,
    appointments,
)
from .views.auth import login_view, logout_view, me_view
from .views.availability import (
    availability,
    availability_bulk_delete,
    availability_exception_detail,
    availability_exceptions,
)
from .views.billing import tiss, tiss_detail
from .views.clinics import clinic_detail, clinics
from .views.dashboard import dashboard
from .views.inventory import inventory, inventory_detail, inventory_transaction
from .views.medical_records import (
    medical_record_detail,
    medical_record_logs,
    medical_record_sign,
    medical_records,
    patient_records,
)
from .views.patients import patient_detail, patients
from .views.users import user_detail, users


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/login', login_view, name='login'),
    path('api/logout', logout_view, name='logout'),
    path('api/user', me_view, name='me'),
    # Staff
    path('api/users', users),
    path('api/users/<int:pk>', user_detail),
    # Patients
    path('api/patients', patients),
    path('api/patients/<int:pk>', patient_detail),
    path('api/patients/<int:pk>/records', patient_records),
    # Appointments
    path('api/appointments', appointments),
    path('api/appointments/<int:pk>', appointment_detail),
    path('api/appointments/<int:pk>/status', appointment_status),
    path('api/appointments/<int:pk>/triage', appointment_triage),
    path('api/appointments/<int:pk>/transitions', appointment_transitions),
    # Availability
    path('api/availability', availability),
    path('api/availability-exceptions', availability_exceptions),
    path('api/availability-exceptions/bulk-delete', availability_bulk_delete),
    path('api/availability-exceptions/<int:pk>', availability_exception_detail),
    # Medical records
    path('api/medical-records', medical_records),
    path('api/medical-records/patient/<int:pk>', patient_records),
    path('api/medical-records/<int:pk>', medical_record_detail),
    path('api/medical-records/<int:pk>/sign', medical_record_sign),
    path('api/medical-records/<int:pk>/logs', medical_record_logs),
    # Inventory
    path('api/inventory', inventory),
    path('api/inventory/transaction', inventory_transaction),
    path('api/inventory/<int:pk>', inventory_detail),
    # Billing
    path('api/tiss', tiss),
    path('api/tiss/<int:pk>', tiss_detail),
    # Administration
    path('api/clinics', clinics),
    path('api/clinics/<int:pk>', clinic_detail),
    path('api/dashboard', dashboard),
]

"""
Clinic dashboard.

Today's agenda at a glance: appointments per status (canceled included),
how many were triaged and how many stock items are at or below their
minimum.
"""
from __future__ import annotations

from django.db.models import Count, F
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Appointment, InventoryItem
from clinic.permissions import Capability, ClinicBound
from clinic.workflow import AppointmentStatus


@api_view(['GET'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('dashboard.view')])
def dashboard(request):
    clinic_id = request.user.clinic_id
    today = timezone.localdate()
    todays = Appointment.objects.filter(clinic_id=clinic_id, date=today)
    by_status = {s.value: 0 for s in AppointmentStatus}
    for row in todays.values('status').annotate(n=Count('id')):
        by_status[row['status']] = row['n']
    low_stock = InventoryItem.objects.filter(clinic_id=clinic_id, quantity__lte=F('min_quantity')).count()
    return Response({
        'date': today.isoformat(),
        'total': sum(by_status.values()),
        'byStatus': by_status,
        'triaged': todays.filter(triage_done=True).count(),
        'lowStock': low_stock,
    })

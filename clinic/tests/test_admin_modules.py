import datetime as dt

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from clinic.models import AuditEvent, InventoryItem, InventoryTransaction, TissBill, User
from clinic.tests.helpers import PASSWORD, make_appointment

pytestmark = pytest.mark.django_db


def _client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


# --- session auth -----------------------------------------------------------

def test_login_sets_session_and_me_returns_capabilities(env):
    client = APIClient()
    r = client.post(reverse('login'), {'username': env.operator.username, 'password': PASSWORD}, format='json')
    assert r.status_code == 200
    assert r.data['user']['role'] == 'operator'
    assert 'clinic_sid' in r.cookies

    r = client.get(reverse('me'))
    assert r.status_code == 200
    assert 'appointments.checkin' in r.data['capabilities']
    assert 'records.write' not in r.data['capabilities']
    assert r.data['clinic']['id'] == env.clinic.id

    assert client.post(reverse('logout')).status_code == 200
    assert client.get(reverse('me')).status_code == 401


def test_wrong_password_is_401_and_audited(env):
    r = APIClient().post(reverse('login'), {'username': env.operator.username, 'password': 'nope'}, format='json')
    assert r.status_code == 401
    assert r.data['ok'] is False
    assert AuditEvent.objects.filter(action='login', detail__result='fail').exists()


def test_login_ignores_role_in_body(env):
    r = APIClient().post(reverse('login'), {
        'username': env.nurse.username, 'password': PASSWORD, 'role': 'super_admin',
    }, format='json')
    assert r.status_code == 200
    env.nurse.refresh_from_db()
    assert env.nurse.role == 'nurse'


def test_unbound_user_is_rejected_on_clinic_routes(db):
    loose = User.objects.create_user(username='loose', password=PASSWORD, role=User.ROLE_OPERATOR)
    r = _client(loose).get('/api/appointments')
    assert r.status_code == 403
    assert r.data['message'] == 'Usuário não vinculado a uma clínica.'


# --- users / patients --------------------------------------------------------

def test_admin_creates_staff_in_own_clinic(env):
    r = _client(env.admin).post('/api/users', {
        'username': 'dra_ana', 'password': 'Outra-Senha-77', 'name': 'Dra. Ana', 'role': 'doctor',
        'specialty': 'Pediatria',
    }, format='json')
    assert r.status_code == 201
    created = User.objects.get(username='dra_ana')
    assert created.clinic_id == env.clinic.id
    assert created.check_password('Outra-Senha-77')


def test_admin_cannot_mint_super_admin(env):
    r = _client(env.admin).post('/api/users', {
        'username': 'root2', 'password': 'Outra-Senha-77', 'name': 'Root', 'role': 'super_admin',
    }, format='json')
    assert r.status_code == 400
    assert r.data['field'] == 'role'


def test_operator_cannot_manage_users(env):
    assert _client(env.operator).get('/api/users').status_code == 200
    r = _client(env.operator).post('/api/users', {'username': 'x'}, format='json')
    assert r.status_code == 403


def test_user_delete_deactivates(env):
    r = _client(env.admin).delete(f'/api/users/{env.nurse.id}')
    assert r.status_code == 200
    env.nurse.refresh_from_db()
    assert env.nurse.is_active is False


def test_patient_crud_and_search(env):
    c = _client(env.operator)
    r = c.post('/api/patients', {
        'name': 'Fernanda Lima', 'birthDate': '1992-07-02', 'cpf': '987.654.321-00', 'phone': '11977772222',
    }, format='json')
    assert r.status_code == 201
    pid = r.data['id']
    r = c.get('/api/patients', {'search': 'fern'})
    assert [p['id'] for p in r.data] == [pid]
    r = c.put(f'/api/patients/{pid}', {'phone': '11900000000'}, format='json')
    assert r.status_code == 200
    assert r.data['phone'] == '11900000000'
    assert r.data['birthDate'] == '1992-07-02'


def test_patient_with_bad_cpf_is_rejected(env):
    r = _client(env.operator).post('/api/patients', {
        'name': 'Fulano', 'birthDate': '1990-01-01', 'cpf': '123',
    }, format='json')
    assert r.status_code == 400
    assert r.data['field'] == 'cpf'


# --- inventory ---------------------------------------------------------------

def _item(env, quantity=10, min_quantity=5):
    return InventoryItem.objects.create(
        clinic=env.clinic, name='Luvas', category='material', unit='caixa',
        quantity=quantity, min_quantity=min_quantity,
    )


def test_stock_movements_adjust_quantity(env):
    item = _item(env)
    c = _client(env.nurse)
    r = c.post('/api/inventory/transaction', {'itemId': item.id, 'type': 'entrada', 'quantity': 5}, format='json')
    assert r.status_code == 201
    assert r.data['item']['quantity'] == 15
    r = c.post('/api/inventory/transaction', {'itemId': item.id, 'type': 'saida', 'quantity': 12}, format='json')
    assert r.status_code == 201
    assert r.data['item']['quantity'] == 3
    assert r.data['item']['lowStock'] is True
    assert InventoryTransaction.objects.filter(item=item).count() == 2


def test_stock_cannot_go_negative(env):
    item = _item(env, quantity=2)
    r = _client(env.nurse).post('/api/inventory/transaction',
                                {'itemId': item.id, 'type': 'baixa_automatica', 'quantity': 3}, format='json')
    assert r.status_code == 400
    item.refresh_from_db()
    assert item.quantity == 2
    assert not InventoryTransaction.objects.exists()


def test_item_edit_does_not_touch_quantity(env):
    item = _item(env)
    r = _client(env.nurse).put(f'/api/inventory/{item.id}', {'quantity': 999, 'minQuantity': 2}, format='json')
    assert r.status_code == 200
    assert r.data['quantity'] == 10
    assert r.data['minQuantity'] == 2


def test_doctor_cannot_see_inventory(env):
    assert _client(env.doctor).get('/api/inventory').status_code == 403


# --- billing -----------------------------------------------------------------

def test_tiss_guide_lifecycle(env):
    appt = make_appointment(env, dt.date(2026, 5, 4), dt.time(9, 0), insurance='Unimed')
    c = _client(env.operator)
    r = c.post('/api/tiss', {'appointmentId': appt.id, 'insuranceId': 'UNI-123', 'xmlData': '<guia/>'},
               format='json')
    assert r.status_code == 201
    assert r.data['patientId'] == env.patient.id
    assert r.data['status'] == 'pendente'
    r = c.patch(f"/api/tiss/{r.data['id']}", {'status': 'enviada'}, format='json')
    assert r.status_code == 200
    assert TissBill.objects.get().status == 'enviada'
    assert c.get('/api/tiss', {'status': 'enviada'}).data[0]['xmlData'] == '<guia/>'


def test_deleting_appointment_keeps_tiss_guide(env):
    appt = make_appointment(env, dt.date(2026, 5, 4), dt.time(9, 0), insurance='Unimed')
    c = _client(env.admin)
    r = c.post('/api/tiss', {'appointmentId': appt.id, 'insuranceId': 'UNI-123'}, format='json')
    assert r.status_code == 201
    assert c.delete(f'/api/appointments/{appt.id}').status_code == 200
    bill = TissBill.objects.get(id=r.data['id'])
    assert bill.appointment_id is None
    assert bill.patient_id == env.patient.id


def test_nurse_cannot_bill(env):
    assert _client(env.nurse).get('/api/tiss').status_code == 403


# --- clinics -----------------------------------------------------------------

def test_only_super_admin_manages_clinics(env):
    assert _client(env.admin).get('/api/clinics').status_code == 403
    root = User.objects.create_user(username='root', password=PASSWORD, role=User.ROLE_SUPER_ADMIN)
    c = _client(root)
    r = c.post('/api/clinics', {'name': 'Nova', 'address': 'Rua B, 2', 'phone': '1130000001'}, format='json')
    assert r.status_code == 201
    assert r.data['subscriptionStatus'] == 'active'
    r = c.put(f"/api/clinics/{r.data['id']}", {'subscriptionStatus': 'inactive'}, format='json')
    assert r.data['subscriptionStatus'] == 'inactive'


# --- dashboard / health ------------------------------------------------------

def test_dashboard_counts_today(env):
    today = timezone.localdate()
    make_appointment(env, today, dt.time(8, 0))
    make_appointment(env, today, dt.time(9, 0), status='presente', triage_done=True)
    make_appointment(env, today, dt.time(10, 0), status='cancelado')
    make_appointment(env, today + dt.timedelta(days=1), dt.time(8, 0))
    _item(env, quantity=1, min_quantity=5)
    _item(env, quantity=50, min_quantity=5)

    r = _client(env.doctor).get('/api/dashboard')
    assert r.status_code == 200
    assert r.data['total'] == 3
    assert r.data['byStatus']['agendado'] == 1
    assert r.data['byStatus']['presente'] == 1
    assert r.data['byStatus']['cancelado'] == 1
    assert r.data['byStatus']['finalizado'] == 0
    assert r.data['triaged'] == 1
    assert r.data['lowStock'] == 1


def test_healthz_and_request_id(env):
    client = APIClient()
    r = client.get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True}
    r = _client(env.operator).get('/api/patients', HTTP_X_REQUEST_ID='req-123')
    assert r['X-Request-ID'] == 'req-123'

import pytest


def _create_hold(api_client, **overrides):
    body = {
        'patient_id': 'P002',
        'hold_type': 'nurse',
        'reason': 'Suspected intoxication at last visit',
        'requires_clearance_from': ['Nurse', 'Physician'],
        'severity': 'critical',
        'created_by': 'RN Lisa Chen',
        'created_by_role': 'Nurse',
    }
    body.update(overrides)
    resp = api_client.post('/api/clinical-alerts/holds', json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()['hold']


def test_health_and_metrics(api_client):
    assert api_client.get('/health').json() == {'status': 'ok'}
    resp = api_client.get('/metrics')
    assert resp.status_code == 200
    assert 'clinic_alerts_mutations' in resp.text


def test_trace_id_is_echoed(api_client):
    resp = api_client.get('/health', headers={'X-Trace-Id': 'abc123'})
    assert resp.headers['X-Trace-Id'] == 'abc123'


def test_patients_sorted_by_last_name(api_client):
    patients = api_client.get('/api/patients').json()['patients']
    assert [p['last_name'] for p in patients] == ['Brown', 'Garcia', 'Johnson', 'Smith', 'Williams']


def test_create_hold_joins_patient_name(api_client):
    hold = _create_hold(api_client)
    assert hold['patient_name'] == 'Maria Garcia'
    assert hold['mrn'] == 'MRN-001235'
    assert hold['status'] == 'active'
    assert hold['cleared_by'] == []
    assert hold['requires_clearance_from'] == ['Nurse', 'Physician']

    listed = api_client.get('/api/clinical-alerts/holds').json()['holds']
    assert [h['id'] for h in listed] == [hold['id']]


def test_create_hold_unknown_patient_is_unknown(api_client):
    hold = _create_hold(api_client, patient_id='P999')
    assert hold['patient_name'] == 'Unknown'


def test_create_hold_validation_returns_error_body(api_client):
    resp = api_client.post(
        '/api/clinical-alerts/holds',
        json={'patient_id': 'P001', 'reason': ''},
    )
    assert resp.status_code == 400
    assert resp.json() == {'error': 'Reason is required'}


def test_clearance_flips_status_when_all_roles_match(api_client):
    hold = _create_hold(api_client)
    url = f"/api/clinical-alerts/holds/{hold['id']}"

    partial = api_client.put(url, json={'cleared_by': 'RN Lisa Chen (Nurse)'}).json()['hold']
    assert partial['status'] == 'active'
    assert partial['cleared_at'] is None

    done = api_client.put(url, json={'cleared_by': 'Dr. Sarah Johnson (Physician)'}).json()['hold']
    assert done['status'] == 'cleared'
    assert done['cleared_by'] == ['RN Lisa Chen (Nurse)', 'Dr. Sarah Johnson (Physician)']
    assert done['cleared_at'] is not None

    active = api_client.get('/api/clinical-alerts/holds', params={'status': 'active'}).json()
    assert active['holds'] == []


def test_update_hold_errors(api_client):
    hold = _create_hold(api_client)
    resp = api_client.put(f"/api/clinical-alerts/holds/{hold['id']}", json={})
    assert resp.status_code == 400
    assert resp.json() == {'error': 'No fields to update'}

    resp = api_client.put('/api/clinical-alerts/holds/missing', json={'notes': 'x'})
    assert resp.status_code == 404
    assert resp.json() == {'error': 'Hold not found'}


def test_explicit_status_update(api_client):
    hold = _create_hold(api_client)
    resp = api_client.put(
        f"/api/clinical-alerts/holds/{hold['id']}",
        json={'status': 'expired', 'notes': 'Discharged'},
    )
    body = resp.json()['hold']
    assert body['status'] == 'expired'
    assert body['notes'] == 'Discharged'
    assert body['cleared_at'] is None


@pytest.mark.parametrize(
    'precaution_type, icon, color',
    [('fall_risk', 'AlertTriangle', '#ef4444'), ('custom', 'FileText', '#64748b')],
)
def test_create_precaution_uses_catalog(api_client, precaution_type, icon, color):
    resp = api_client.post(
        '/api/clinical-alerts/precautions',
        json={'patient_id': 'P005', 'precaution_type': precaution_type, 'custom_text': 'Assist'},
    )
    assert resp.status_code == 201
    precaution = resp.json()['precaution']
    assert (precaution['icon'], precaution['color']) == (icon, color)
    assert precaution['patient_name'] == 'James Brown'
    assert precaution['created_by'] == 'System'


def test_facility_alert_lifecycle(api_client):
    created = api_client.post(
        '/api/clinical-alerts/facility',
        json={
            'alert_type': 'safety',
            'message': 'Wet floor',
            'priority': 'critical',
            'affected_areas': ['Lobby'],
            'created_by': 'Safety Officer',
        },
    ).json()['alert']
    other = api_client.post(
        '/api/clinical-alerts/facility',
        json={'alert_type': 'weather', 'message': 'Snow expected'},
    ).json()['alert']
    url = f"/api/clinical-alerts/facility/{created['id']}"

    updated = api_client.put(
        url,
        json={'alert_type': 'safety', 'message': 'Wet floor', 'priority': 'low', 'affected_areas': ['Lobby']},
    ).json()['alert']
    assert updated['priority'] == 'low'
    assert updated['created_by'] == 'Safety Officer'

    dismissed = api_client.patch(url).json()['alert']
    assert dismissed['is_active'] is False

    alerts = api_client.get('/api/clinical-alerts/facility').json()['alerts']
    assert {a['id']: a['is_active'] for a in alerts} == {created['id']: False, other['id']: True}
    active = api_client.get('/api/clinical-alerts/facility', params={'active': 'true'}).json()['alerts']
    assert [a['id'] for a in active] == [other['id']]

    assert api_client.patch('/api/clinical-alerts/facility/missing').status_code == 404


def test_combined_feed(api_client):
    _create_hold(api_client)
    api_client.post(
        '/api/clinical-alerts/precautions',
        json={'patient_id': 'P001', 'precaution_type': 'water_off'},
    )
    api_client.post(
        '/api/clinical-alerts/facility',
        json={'alert_type': 'maintenance', 'message': 'Water main repair', 'priority': 'medium'},
    )

    feed = api_client.get('/api/clinical-alerts').json()
    assert feed['total'] == 3
    assert feed['count'] == {'total': 3, 'unacknowledged': 3}
    prefixes = sorted(item['id'].split('_')[0] for item in feed['alerts'])
    assert prefixes == ['facility', 'hold', 'precaution']

    summary = api_client.get('/api/clinical-alerts', params={'summary': 'true'}).json()
    assert summary['countByPriority'] == {'high': 1, 'medium': 2, 'low': 0}

    for_patient = api_client.get('/api/clinical-alerts', params={'patientId': 'P001'}).json()
    assert [item['alertType'] for item in for_patient['alerts']] == ['patient_precaution']

    assert api_client.get('/api/clinical-alerts', params={'limit': 0}).status_code == 400


def test_unknown_route_and_method_use_error_body(api_client):
    missing = api_client.get('/api/does-not-exist')
    assert missing.status_code == 404
    assert missing.json() == {'error': 'Not Found'}

    wrong_method = api_client.delete('/api/clinical-alerts/holds')
    assert wrong_method.status_code == 405
    assert wrong_method.json() == {'error': 'Method Not Allowed'}
    assert 'GET' in wrong_method.headers['allow']


def test_create_clinical_alert(api_client):
    resp = api_client.post(
        '/api/clinical-alerts',
        json={'patientId': 'P003', 'message': 'BP 190/120 at intake', 'priority': 'critical'},
    )
    assert resp.status_code == 201, resp.text
    alert = resp.json()['alert']
    assert alert['patient_id'] == 'P003'
    assert alert['patient_name'] == 'Robert Johnson'
    assert alert['alert_message'] == 'BP 190/120 at intake'
    assert alert['alert_type'] == 'general'
    assert alert['severity'] == 'critical'
    assert alert['triggered_by'] == 'manual'
    assert alert['status'] == 'active'

    feed = api_client.get('/api/clinical-alerts').json()
    assert [item['id'] for item in feed['alerts']] == [alert['id']]
    assert feed['alerts'][0]['patient'] == 'Robert Johnson'
    assert feed['alerts'][0]['priority'] == 'high'
    assert feed['alerts'][0]['isAcknowledged'] is False


@pytest.mark.parametrize(
    'body, message',
    [
        ({'message': 'No patient'}, 'Patient ID is required'),
        ({'patient_id': 'P001'}, 'Alert message is required'),
    ],
)
def test_create_clinical_alert_validation(api_client, body, message):
    resp = api_client.post('/api/clinical-alerts', json=body)
    assert resp.status_code == 400
    assert resp.json() == {'error': message}


def test_feed_acknowledged_filter(api_client, engine):
    from clinic_alerts.db.models import clinical_alerts

    created = api_client.post(
        '/api/clinical-alerts',
        json={'patient_id': 'P001', 'alert_message': 'Missed pickup', 'severity': 'low'},
    ).json()['alert']
    resolved = api_client.post(
        '/api/clinical-alerts',
        json={'patient_id': 'P002', 'alert_message': 'Lab result reviewed'},
    ).json()['alert']
    with engine.begin() as conn:
        conn.execute(
            clinical_alerts.update()
            .where(clinical_alerts.c.id == resolved['id'])
            .values(status='resolved', acknowledged_by='Dr. Who')
        )
    _create_hold(api_client)

    pending = api_client.get('/api/clinical-alerts', params={'acknowledged': 'false'}).json()
    assert created['id'] in {item['id'] for item in pending['alerts']}
    assert resolved['id'] not in {item['id'] for item in pending['alerts']}
    assert pending['total'] == 2

    done = api_client.get('/api/clinical-alerts', params={'acknowledged': 'true'}).json()
    assert [item['id'] for item in done['alerts']] == [resolved['id']]
    assert done['count'] == {'total': 1, 'unacknowledged': 0}

    everything = api_client.get('/api/clinical-alerts', params={'summary': 'true'}).json()
    assert everything['total'] == 3
    assert everything['unacknowledged'] == 2

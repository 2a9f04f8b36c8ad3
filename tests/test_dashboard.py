from datetime import datetime, timedelta, timezone

import pytest

from clinic_alerts.dashboard import (
    build_alert_feed,
    severity_to_priority,
    severity_to_variant,
    store_summary,
    summarize_feed,
)
from clinic_alerts.models import ClinicalAlert, FacilityAlert, PatientPrecaution
from clinic_alerts.store import FACILITY_ALERTS, HOLDS, PRECAUTIONS

NOW = datetime(2024, 12, 1, 12, 0, tzinfo=timezone.utc)


def _precaution(**overrides):
    data = {
        'id': 'p1',
        'patient_id': 'P004',
        'patient_name': 'Susan Williams',
        'precaution_type': 'needs_assistance',
        'created_at': NOW - timedelta(hours=3),
    }
    data.update(overrides)
    return PatientPrecaution.model_validate(data)


def _clinical(**overrides):
    data = {
        'id': 'c1',
        'patient_id': 'P003',
        'patient_name': 'Robert Johnson',
        'alert_type': 'vitals',
        'severity': 'critical',
        'alert_message': 'BP 190/120 at intake',
        'status': 'active',
        'created_at': NOW - timedelta(minutes=1),
    }
    data.update(overrides)
    return ClinicalAlert.model_validate(data)


def _facility(**overrides):
    data = {
        'id': 'f1',
        'alert_type': 'safety',
        'message': 'Ice advisory',
        'priority': 'low',
        'created_at': NOW - timedelta(days=2),
    }
    data.update(overrides)
    return FacilityAlert.model_validate(data)


@pytest.mark.parametrize(
    'severity, priority, variant',
    [
        ('critical', 'high', 'destructive'),
        ('high', 'high', 'destructive'),
        ('medium', 'medium', 'warning'),
        ('low', 'low', 'info'),
        ('bogus', 'medium', 'default'),
    ],
)
def test_severity_mapping(severity, priority, variant):
    assert severity_to_priority(severity) == priority
    assert severity_to_variant(severity) == variant


def test_feed_merges_sources_newest_first(hold_factory):
    holds = [
        hold_factory(id='h1', created_at=NOW - timedelta(minutes=5), severity='critical'),
        hold_factory(id='h2', status='cleared', created_at=NOW),
    ]
    precautions = [_precaution(), _precaution(id='p2', is_active=False)]
    alerts = [_facility(), _facility(id='f2', is_active=False)]

    feed = build_alert_feed(holds, precautions, alerts, now=NOW)

    assert [item['id'] for item in feed] == ['hold_h1', 'precaution_p1', 'facility_f1']
    hold_item, precaution_item, facility_item = feed
    assert hold_item['message'] == 'Dosing Hold: Missed counseling'
    assert hold_item['priority'] == 'high'
    assert hold_item['type'] == 'destructive'
    assert hold_item['time'] == '5 min ago'
    assert hold_item['alertType'] == 'dosing_hold'
    assert precaution_item['message'] == 'Patient Precaution: needs_assistance'
    assert precaution_item['time'] == '3 hours ago'
    assert facility_item['patient'] == 'Facility Alert'
    assert facility_item['patientId'] is None
    assert facility_item['time'] == '2 days ago'
    assert facility_item['createdAt'] == '2024-11-29T12:00:00Z'
    assert all(item['isAcknowledged'] is False for item in feed)


def test_feed_filters_and_truncates(hold_factory):
    holds = [
        hold_factory(id=f'h{i}', patient_id='P001', created_at=NOW - timedelta(minutes=i))
        for i in range(5)
    ]
    precautions = [_precaution(custom_text='Offer water', patient_id='P002')]

    assert [i['id'] for i in build_alert_feed(holds, precautions, [], limit=2, now=NOW)] == [
        'hold_h0',
        'hold_h1',
    ]
    only_p2 = build_alert_feed(holds, precautions, [_facility()], patient_id='P002', now=NOW)
    assert [i['message'] for i in only_p2] == ['Offer water']
    medium = build_alert_feed(holds, precautions, [_facility()], priority='medium', now=NOW)
    assert [i['id'] for i in medium] == ['precaution_p1']
    assert len(build_alert_feed(holds, precautions, [], priority='all', now=NOW)) == 6


def test_summaries(store, hold_factory):
    store.merge(HOLDS, hold_factory(id='a', severity='critical'))
    store.merge(HOLDS, hold_factory(id='b', severity='low'))
    store.merge(HOLDS, hold_factory(id='c', status='cleared'))
    store.merge(PRECAUTIONS, _precaution())
    store.merge(FACILITY_ALERTS, _facility(is_active=False))

    assert store_summary(store) == {
        'activeHolds': 2,
        'criticalHolds': 1,
        'activePrecautions': 1,
        'activeFacilityAlerts': 0,
    }

    feed = build_alert_feed(store.holds, store.precautions, store.facility_alerts, now=NOW)
    assert summarize_feed(feed) == {
        'total': 3,
        'countByPriority': {'high': 1, 'medium': 1, 'low': 1},
        'unacknowledged': 3,
    }


def test_unknown_patient_is_labelled_in_feed(hold_factory):
    holds = [hold_factory(id='h1', patient_name=None)]
    precautions = [_precaution(patient_name='Unknown')]

    feed = build_alert_feed(holds, precautions, [], now=NOW)

    assert [item['patient'] for item in feed] == ['Unknown Patient', 'Unknown Patient']


def test_feed_includes_clinical_alerts(hold_factory):
    holds = [hold_factory(id='h1', created_at=NOW - timedelta(minutes=5))]
    clinical = [
        _clinical(),
        _clinical(id='c2', status='acknowledged', severity='low', created_at=NOW - timedelta(hours=1)),
        _clinical(id='c3', patient_id=None, patient_name=None, created_at=NOW - timedelta(days=1)),
        _clinical(id='c4', patient_name='Unknown', alert_message='', created_at=NOW - timedelta(days=3)),
    ]

    feed = build_alert_feed(holds, [], [], clinical, now=NOW)

    assert [item['id'] for item in feed] == ['c1', 'hold_h1', 'c2', 'c3', 'c4']
    first = feed[0]
    assert first['alertType'] == 'vitals'
    assert first['patient'] == 'Robert Johnson'
    assert first['message'] == 'BP 190/120 at intake'
    assert first['priority'] == 'high'
    assert first['time'] == '1 min ago'
    assert first['isAcknowledged'] is False
    assert feed[2]['isAcknowledged'] is True
    assert feed[3]['patient'] == 'Facility Alert'
    assert feed[4]['patient'] == 'Unknown Patient'
    assert feed[4]['message'] == 'No message'
    assert summarize_feed(feed)['unacknowledged'] == 4


def test_feed_acknowledged_filter(hold_factory):
    holds = [hold_factory(id='h1')]
    clinical = [_clinical(), _clinical(id='c2', status='resolved')]

    pending = build_alert_feed(holds, [], [], clinical, acknowledged=False, now=NOW)
    done = build_alert_feed(holds, [], [], clinical, acknowledged=True, now=NOW)

    assert sorted(item['id'] for item in pending) == ['c1', 'hold_h1']
    assert [item['id'] for item in done] == ['c2']

from datetime import timedelta

import pytest
from pydantic import ValidationError

from healthfirst.routes.slot_routes import CreateSlotRequest, UpdateSlotRequest


def slot_payload(slot_date, start: str = '09:00', end: str = '09:30', **overrides) -> dict:
    payload = {
        'date': slot_date.isoformat(),
        'start_time': start,
        'end_time': end,
        'appointment_type': 'consultation',
        'slot_duration': 30,
        'location_type': 'virtual',
        'currency': 'usd',
    }
    payload.update(overrides)
    return payload


def test_create_slot_request_normalizes_currency_and_notes(next_monday) -> None:
    request = CreateSlotRequest(**slot_payload(next_monday, notes='   '))

    assert request.currency == 'USD'
    assert request.notes is None
    assert request.recurrence == 'none'


@pytest.mark.parametrize(
    'overrides',
    [
        {'currency': 'US'},
        {'slot_duration': 10},
        {'slot_duration': 481},
        {'break_duration': 121},
        {'max_appointments': 11},
        {'fee': -1},
        {'appointment_type': 'surgery'},
        {'location_type': 'moon'},
        {'recurrence': 'yearly'},
        {'notes': 'x' * 1001},
    ],
)
def test_create_slot_request_rejects_out_of_range_fields(next_monday, overrides: dict) -> None:
    with pytest.raises(ValidationError):
        CreateSlotRequest(**slot_payload(next_monday, **overrides))


def test_update_slot_request_keeps_only_sent_fields() -> None:
    request = UpdateSlotRequest(notes='Bring records', room_number=None)

    assert request.model_dump(exclude_unset=True) == {'notes': 'Bring records', 'room_number': None}


def test_create_list_update_delete_slot(client, provider_headers, next_monday) -> None:
    created = client.post('/provider/appointment-slots', json=slot_payload(next_monday), headers=provider_headers)

    assert created.status_code == 201
    slot = created.json()['data']['slot']
    assert slot['start_time'] == '09:00'
    assert slot['currency'] == 'USD'

    listed = client.get('/provider/appointment-slots', headers=provider_headers).json()['data']
    assert [s['id'] for s in listed['slots']] == [slot['id']]
    assert 'home_visit' in listed['location_types']
    assert 'monthly' in listed['recurrence_options']

    updated = client.put(
        f'/provider/appointment-slots/{slot["id"]}',
        json={'start_time': '10:00', 'end_time': '10:30'},
        headers=provider_headers,
    )
    assert updated.status_code == 200
    assert updated.json()['data']['slot']['start_time'] == '10:00'

    deleted = client.delete(f'/provider/appointment-slots/{slot["id"]}', headers=provider_headers)
    assert deleted.json() == {'success': True, 'message': 'Appointment slot deleted successfully.'}


def test_overlapping_slot_reports_conflicts(client, provider_headers, next_monday) -> None:
    first = client.post('/provider/appointment-slots', json=slot_payload(next_monday), headers=provider_headers)

    response = client.post(
        '/provider/appointment-slots',
        json=slot_payload(next_monday, '09:15', '09:45'),
        headers=provider_headers,
    )

    assert response.status_code == 422
    body = response.json()
    assert body['message'] == 'Slot conflicts detected.'
    assert [conflict['id'] for conflict in body['conflicts']] == [first.json()['data']['slot']['id']]


def test_deactivated_window_can_be_posted_again(client, provider_headers, next_monday) -> None:
    first = client.post('/provider/appointment-slots', json=slot_payload(next_monday), headers=provider_headers)
    slot_id = first.json()['data']['slot']['id']
    client.put(f'/provider/appointment-slots/{slot_id}', json={'is_active': False}, headers=provider_headers)

    response = client.post('/provider/appointment-slots', json=slot_payload(next_monday), headers=provider_headers)

    assert response.status_code == 201
    assert response.json()['data']['slot']['id'] != slot_id


def test_reactivating_overlapped_slot_is_422(client, provider_headers, next_monday) -> None:
    first = client.post('/provider/appointment-slots', json=slot_payload(next_monday), headers=provider_headers)
    slot_id = first.json()['data']['slot']['id']
    client.put(f'/provider/appointment-slots/{slot_id}', json={'is_active': False}, headers=provider_headers)
    client.post('/provider/appointment-slots', json=slot_payload(next_monday, '09:15', '09:45'), headers=provider_headers)

    response = client.put(f'/provider/appointment-slots/{slot_id}', json={'is_active': True}, headers=provider_headers)

    assert response.status_code == 422
    assert response.json()['message'] == 'Slot conflicts detected.'


def test_recurring_slot_reports_clones_and_skipped_dates(client, provider_headers, next_monday) -> None:
    client.post(
        '/provider/appointment-slots',
        json=slot_payload(next_monday + timedelta(days=7)),
        headers=provider_headers,
    )

    response = client.post(
        '/provider/appointment-slots',
        json=slot_payload(
            next_monday,
            recurrence='weekly',
            recurrence_end_date=(next_monday + timedelta(days=14)).isoformat(),
        ),
        headers=provider_headers,
    )

    assert response.status_code == 201
    data = response.json()['data']
    assert [clone['date'] for clone in data['recurring_slots']] == [(next_monday + timedelta(days=14)).isoformat()]
    assert data['skipped_dates'] == [(next_monday + timedelta(days=7)).isoformat()]


def test_status_filter_is_validated(client, provider_headers) -> None:
    response = client.get('/provider/appointment-slots', params={'status': 'pending'}, headers=provider_headers)

    assert response.status_code == 422

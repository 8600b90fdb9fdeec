"""
Booking endpoints end to end: create, list, update, cancel and conflict checks.

Run with:
    pytest Backend/tests/test_bookings_api.py -v
"""
import asyncio
import uuid

import pytest
from httpx import AsyncClient


def booking_payload(**overrides) -> dict:
    payload = {
        "room": "Sala A",
        "meetingDate": "2031-05-10",
        "startTime": "09:00",
        "endTime": "10:00",
        "description": "Planning",
    }
    payload.update(overrides)
    return payload


async def create(client: AsyncClient, headers: dict, **overrides):
    return await client.post("/bookings", json=booking_payload(**overrides), headers=headers)


# ============================================================================
# CREATE
# ============================================================================

@pytest.mark.asyncio
async def test_create_booking_returns_view(client: AsyncClient, auth_headers: dict):
    response = await create(client, auth_headers)

    assert response.status_code == 201
    body = response.json()
    uuid.UUID(body["id"])
    assert body["room"] == "Sala A"
    assert body["meetingDate"] == "2031-05-10"
    assert body["startTimestamp"] == "2031-05-10T09:00"
    assert body["endTimestamp"] == "2031-05-10T10:00"
    assert body["startTime"] == "09:00"
    assert body["endTime"] == "10:00"
    assert body["description"] == "Planning"
    assert body["status"] == "ACTIVE"


@pytest.mark.asyncio
async def test_create_without_description(client: AsyncClient, auth_headers: dict):
    payload = booking_payload()
    del payload["description"]

    response = await client.post("/bookings", json=payload, headers=auth_headers)

    assert response.status_code == 201
    assert response.json()["description"] is None


@pytest.mark.asyncio
async def test_create_overlapping_booking_conflicts(client: AsyncClient, auth_headers: dict):
    assert (await create(client, auth_headers)).status_code == 201

    response = await create(client, auth_headers, startTime="09:30", endTime="10:30")

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_conflict_applies_across_clients(client: AsyncClient, auth_headers: dict, other_auth_headers: dict):
    assert (await create(client, auth_headers)).status_code == 201

    response = await create(client, other_auth_headers, startTime="08:30", endTime="09:01")

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_touching_intervals_do_not_conflict(client: AsyncClient, auth_headers: dict):
    assert (await create(client, auth_headers)).status_code == 201

    before = await create(client, auth_headers, startTime="08:00", endTime="09:00")
    after = await create(client, auth_headers, startTime="10:00", endTime="11:00")

    assert before.status_code == 201
    assert after.status_code == 201


@pytest.mark.asyncio
async def test_other_room_or_day_does_not_conflict(client: AsyncClient, auth_headers: dict):
    assert (await create(client, auth_headers)).status_code == 201

    assert (await create(client, auth_headers, room="Sala B")).status_code == 201
    assert (await create(client, auth_headers, meetingDate="2031-05-11")).status_code == 201


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "start_time,end_time",
    [("10:00", "10:00"), ("11:00", "10:00")],
)
async def test_end_not_after_start_rejected(client: AsyncClient, auth_headers: dict, start_time: str, end_time: str):
    response = await create(client, auth_headers, startTime=start_time, endTime=end_time)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_TIME_RANGE"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"meetingDate": "10/05/2031"},
        {"meetingDate": "2031-02-30"},
        {"startTime": "9am"},
        {"endTime": "25:00"},
        {"room": ""},
    ],
)
async def test_malformed_fields_rejected(client: AsyncClient, auth_headers: dict, overrides: dict):
    response = await create(client, auth_headers, **overrides)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_missing_required_field_rejected(client: AsyncClient, auth_headers: dict):
    payload = booking_payload()
    del payload["room"]

    response = await client.post("/bookings", json=payload, headers=auth_headers)

    assert response.status_code == 400
    fields = [err["field"] for err in response.json()["error"]["details"]["errors"]]
    assert "room" in fields


@pytest.mark.asyncio
async def test_concurrent_creates_for_same_slot_yield_one_booking(client: AsyncClient, auth_headers: dict):
    responses = await asyncio.gather(*(create(client, auth_headers) for _ in range(5)))

    statuses = sorted(r.status_code for r in responses)
    assert statuses == [201, 409, 409, 409, 409]

    listed = (await client.get("/bookings", headers=auth_headers)).json()
    assert len(listed) == 1


# ============================================================================
# LIST
# ============================================================================

@pytest.mark.asyncio
async def test_list_only_own_bookings_ordered_by_start(
    client: AsyncClient, auth_headers: dict, other_auth_headers: dict
):
    await create(client, auth_headers, startTime="14:00", endTime="15:00")
    await create(client, auth_headers, meetingDate="2031-05-09", startTime="16:00", endTime="17:00")
    await create(client, other_auth_headers, room="Sala C")

    response = await client.get("/bookings", headers=auth_headers)

    assert response.status_code == 200
    starts = [b["startTimestamp"] for b in response.json()]
    assert starts == ["2031-05-09T16:00", "2031-05-10T14:00"]


# ============================================================================
# UPDATE
# ============================================================================

@pytest.mark.asyncio
async def test_update_times_keeps_other_fields(client: AsyncClient, auth_headers: dict):
    booking = (await create(client, auth_headers)).json()

    response = await client.patch(
        f"/bookings/{booking['id']}", json={"startTime": "11:00", "endTime": "12:30"}, headers=auth_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["startTimestamp"] == "2031-05-10T11:00"
    assert body["endTimestamp"] == "2031-05-10T12:30"
    assert body["room"] == "Sala A"
    assert body["description"] == "Planning"


@pytest.mark.asyncio
async def test_update_only_end_time_uses_current_start(client: AsyncClient, auth_headers: dict):
    booking = (await create(client, auth_headers)).json()

    response = await client.patch(f"/bookings/{booking['id']}", json={"endTime": "09:45"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["startTime"] == "09:00"
    assert response.json()["endTime"] == "09:45"


@pytest.mark.asyncio
async def test_update_date_moves_both_instants(client: AsyncClient, auth_headers: dict):
    booking = (await create(client, auth_headers)).json()

    response = await client.patch(
        f"/bookings/{booking['id']}", json={"meetingDate": "2031-06-01"}, headers=auth_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["meetingDate"] == "2031-06-01"
    assert body["startTimestamp"] == "2031-06-01T09:00"
    assert body["endTimestamp"] == "2031-06-01T10:00"


@pytest.mark.asyncio
async def test_update_does_not_conflict_with_itself(client: AsyncClient, auth_headers: dict):
    booking = (await create(client, auth_headers)).json()

    response = await client.patch(
        f"/bookings/{booking['id']}", json={"startTime": "09:30", "endTime": "10:30"}, headers=auth_headers
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_update_into_occupied_slot_conflicts(client: AsyncClient, auth_headers: dict):
    await create(client, auth_headers)
    other = (await create(client, auth_headers, startTime="11:00", endTime="12:00")).json()

    response = await client.patch(
        f"/bookings/{other['id']}", json={"startTime": "09:30"}, headers=auth_headers
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_into_other_room_checks_that_room(client: AsyncClient, auth_headers: dict):
    await create(client, auth_headers, room="Sala B")
    booking = (await create(client, auth_headers)).json()

    response = await client.patch(f"/bookings/{booking['id']}", json={"room": "Sala B"}, headers=auth_headers)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_with_bad_chronology_rejected(client: AsyncClient, auth_headers: dict):
    booking = (await create(client, auth_headers)).json()

    response = await client.patch(f"/bookings/{booking['id']}", json={"endTime": "08:00"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_TIME_RANGE"


@pytest.mark.asyncio
async def test_update_with_empty_body_rejected(client: AsyncClient, auth_headers: dict):
    booking = (await create(client, auth_headers)).json()

    response = await client.patch(f"/bookings/{booking['id']}", json={}, headers=auth_headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_someone_elses_booking_not_found(
    client: AsyncClient, auth_headers: dict, other_auth_headers: dict
):
    booking = (await create(client, auth_headers)).json()

    response = await client.patch(
        f"/bookings/{booking['id']}", json={"description": "mine now"}, headers=other_auth_headers
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_canceled_booking_not_found(client: AsyncClient, auth_headers: dict):
    booking = (await create(client, auth_headers)).json()
    await client.patch(f"/bookings/{booking['id']}/cancel", headers=auth_headers)

    response = await client.patch(
        f"/bookings/{booking['id']}", json={"description": "revived"}, headers=auth_headers
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_with_non_uuid_id_rejected(client: AsyncClient, auth_headers: dict):
    response = await client.patch("/bookings/42", json={"description": "x"}, headers=auth_headers)

    assert response.status_code == 400


# ============================================================================
# CANCEL
# ============================================================================

@pytest.mark.asyncio
async def test_cancel_booking_frees_the_slot(client: AsyncClient, auth_headers: dict):
    booking = (await create(client, auth_headers)).json()

    response = await client.patch(f"/bookings/{booking['id']}/cancel", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"message": "Booking canceled."}

    listed = (await client.get("/bookings", headers=auth_headers)).json()
    assert listed[0]["status"] == "CANCELED"

    assert (await create(client, auth_headers)).status_code == 201


@pytest.mark.asyncio
async def test_cancel_twice_not_found(client: AsyncClient, auth_headers: dict):
    booking = (await create(client, auth_headers)).json()
    await client.patch(f"/bookings/{booking['id']}/cancel", headers=auth_headers)

    response = await client.patch(f"/bookings/{booking['id']}/cancel", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Booking not found or already canceled."


@pytest.mark.asyncio
async def test_cancel_someone_elses_booking_not_found(
    client: AsyncClient, auth_headers: dict, other_auth_headers: dict
):
    booking = (await create(client, auth_headers)).json()

    response = await client.patch(f"/bookings/{booking['id']}/cancel", headers=other_auth_headers)

    assert response.status_code == 404
    listed = (await client.get("/bookings", headers=auth_headers)).json()
    assert listed[0]["status"] == "ACTIVE"


@pytest.mark.asyncio
async def test_cancel_with_non_uuid_id_rejected(client: AsyncClient, auth_headers: dict):
    response = await client.patch("/bookings/not-a-uuid/cancel", headers=auth_headers)

    assert response.status_code == 400

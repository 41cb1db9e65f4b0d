"""
预订管理 API 测试
覆盖 /bookings 端点
"""
import pytest
from datetime import timedelta
from decimal import Decimal

from hotel_pms.models.events import utc_now


def day(offset: int) -> str:
    """相对今天（UTC）的日期字符串"""
    return (utc_now().date() + timedelta(days=offset)).isoformat()


def money(value) -> Decimal:
    return Decimal(str(value))


@pytest.fixture
def create_booking(client, receptionist_auth_headers, sample_room, sample_guest):
    def _create(start=30, end=33, room=None, guest=None, **extra):
        payload = {
            "guestId": (guest or sample_guest).id,
            "roomId": (room or sample_room).id,
            "checkInDate": day(start),
            "checkOutDate": day(end),
            **extra
        }
        return client.post("/bookings", json=payload, headers=receptionist_auth_headers)
    return _create


class TestCreateBooking:

    def test_create(self, create_booking, sample_room, receptionist_staff):
        response = create_booking()

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Booking created successfully"
        data = body["data"]
        assert data["bookingNumber"].startswith(f"BK{utc_now().year}")
        assert data["bookingStatus"] == "confirmed"
        assert data["numberOfNights"] == 3
        assert money(data["roomRate"]) == Decimal("100")
        assert money(data["totalAmount"]) == Decimal("300")
        assert data["roomNumber"] == "101"
        assert data["guestName"] == "Ana Silva"
        assert data["createdBy"] == receptionist_staff.id

    def test_client_rate_ignored(self, create_booking):
        response = create_booking(roomRate=1, totalAmount=1)
        assert money(response.json()["data"]["totalAmount"]) == Decimal("300")

    def test_snake_case_accepted(self, client, receptionist_auth_headers, sample_room, sample_guest):
        response = client.post("/bookings", json={
            "guest_id": sample_guest.id,
            "room_id": sample_room.id,
            "check_in_date": day(30),
            "check_out_date": day(31),
            "tax_amount": 10
        }, headers=receptionist_auth_headers)
        assert response.status_code == 201
        assert money(response.json()["data"]["totalAmount"]) == Decimal("110")

    def test_overlap_conflict(self, create_booking, sample_guest_2):
        assert create_booking(30, 33).status_code == 201

        response = create_booking(32, 35, guest=sample_guest_2)
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Room is not available for the selected dates"
        }

    def test_same_day_turnover(self, create_booking, sample_guest_2):
        assert create_booking(30, 33).status_code == 201
        assert create_booking(33, 35, guest=sample_guest_2).status_code == 201

    def test_date_order(self, create_booking):
        response = create_booking(33, 30)
        assert response.status_code == 400
        assert response.json()["message"] == "Check-out date must be after check-in date"

    def test_missing_field(self, client, receptionist_auth_headers, sample_room):
        response = client.post("/bookings", json={
            "roomId": sample_room.id, "checkInDate": day(30), "checkOutDate": day(31)
        }, headers=receptionist_auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Validation error"

    def test_bad_date_format(self, client, receptionist_auth_headers, sample_room, sample_guest):
        response = client.post("/bookings", json={
            "guestId": sample_guest.id, "roomId": sample_room.id,
            "checkInDate": "next tuesday", "checkOutDate": day(31)
        }, headers=receptionist_auth_headers)
        assert response.status_code == 400

    def test_unknown_guest(self, client, receptionist_auth_headers, sample_room):
        response = client.post("/bookings", json={
            "guestId": 999, "roomId": sample_room.id,
            "checkInDate": day(30), "checkOutDate": day(31)
        }, headers=receptionist_auth_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Guest not found"

    def test_capacity(self, create_booking):
        response = create_booking(numberOfGuests=3)
        assert response.status_code == 400

    def test_same_day_booking_occupies_room(self, client, create_booking, receptionist_auth_headers,
                                            sample_room):
        assert create_booking(0, 2).status_code == 201
        room = client.get(f"/rooms/{sample_room.id}", headers=receptionist_auth_headers).json()
        assert room["data"]["status"] == "occupied"

    def test_requires_authentication(self, client, sample_room, sample_guest):
        response = client.post("/bookings", json={
            "guestId": sample_guest.id, "roomId": sample_room.id,
            "checkInDate": day(30), "checkOutDate": day(31)
        })
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_housekeeping_cannot_create(self, client, housekeeper_auth_headers,
                                        sample_room, sample_guest):
        response = client.post("/bookings", json={
            "guestId": sample_guest.id, "roomId": sample_room.id,
            "checkInDate": day(30), "checkOutDate": day(31)
        }, headers=housekeeper_auth_headers)
        assert response.status_code == 403


class TestReadBookings:

    def test_get_by_id_and_number(self, client, create_booking, receptionist_auth_headers):
        created = create_booking().json()["data"]

        by_id = client.get(f"/bookings/{created['id']}", headers=receptionist_auth_headers)
        by_number = client.get(f"/bookings/number/{created['bookingNumber']}",
                               headers=receptionist_auth_headers)
        assert by_id.json()["data"]["bookingNumber"] == created["bookingNumber"]
        assert by_number.json()["data"]["id"] == created["id"]

    def test_not_found(self, client, receptionist_auth_headers):
        response = client.get("/bookings/999", headers=receptionist_auth_headers)
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Booking not found"}

    def test_list_with_pagination(self, client, create_booking, receptionist_auth_headers):
        for start in (30, 33, 36):
            create_booking(start, start + 2)

        response = client.get("/bookings?page=1&limit=2", headers=receptionist_auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 2
        assert body["pagination"] == {"page": 1, "pages": 2, "total": 3}

    def test_list_filter_by_status(self, client, create_booking, receptionist_auth_headers):
        first = create_booking(30, 32).json()["data"]
        create_booking(33, 35)
        client.post(f"/bookings/{first['id']}/cancel", json={"reason": "Duplicate"},
                    headers=receptionist_auth_headers)

        response = client.get("/bookings?status=cancelled", headers=receptionist_auth_headers)
        assert [b["id"] for b in response.json()["data"]] == [first["id"]]

    def test_today_arrivals(self, client, create_booking, receptionist_auth_headers):
        today = create_booking(0, 2).json()["data"]
        create_booking(10, 12)

        response = client.get("/bookings/today-arrivals", headers=receptionist_auth_headers)
        assert [b["id"] for b in response.json()["data"]] == [today["id"]]


class TestUpdateBooking:

    def test_update_dates_recomputes(self, client, create_booking, receptionist_auth_headers):
        booking = create_booking(30, 33).json()["data"]

        response = client.put(f"/bookings/{booking['id']}", json={"checkOutDate": day(35)},
                              headers=receptionist_auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["numberOfNights"] == 5
        assert money(data["totalAmount"]) == Decimal("500")
        assert data["bookingNumber"] == booking["bookingNumber"]

    def test_update_conflict(self, client, create_booking, receptionist_auth_headers, sample_guest_2):
        booking = create_booking(30, 33).json()["data"]
        create_booking(34, 36, guest=sample_guest_2)

        response = client.put(f"/bookings/{booking['id']}", json={"checkOutDate": day(35)},
                              headers=receptionist_auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Room is not available for the selected dates"

    def test_status_cannot_be_patched(self, client, create_booking, receptionist_auth_headers):
        booking = create_booking().json()["data"]
        response = client.put(f"/bookings/{booking['id']}", json={"bookingStatus": "checked-out"},
                              headers=receptionist_auth_headers)
        assert response.json()["data"]["bookingStatus"] == "confirmed"

    def test_cancelled_booking_not_editable(self, client, create_booking, receptionist_auth_headers):
        booking = create_booking().json()["data"]
        client.post(f"/bookings/{booking['id']}/cancel", json={"reason": "No longer needed"},
                    headers=receptionist_auth_headers)

        response = client.put(f"/bookings/{booking['id']}", json={"notes": "too late"},
                              headers=receptionist_auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Cannot modify a booking that is checked-out or cancelled"


class TestLifecycle:

    def test_full_stay(self, client, create_booking, receptionist_auth_headers, sample_room,
                       sample_guest):
        booking = create_booking(0, 2).json()["data"]
        booking_id = booking["id"]

        checked_in = client.post(f"/bookings/{booking_id}/checkin", headers=receptionist_auth_headers)
        assert checked_in.status_code == 200
        assert checked_in.json()["data"]["bookingStatus"] == "checked-in"
        assert checked_in.json()["data"]["actualCheckInDate"] is not None

        checked_out = client.post(
            f"/bookings/{booking_id}/checkout",
            json={"additionalCharges": [{"description": "Minibar", "amount": 20}]},
            headers=receptionist_auth_headers
        )
        assert checked_out.status_code == 200
        body = checked_out.json()
        assert money(body["additionalCharges"]) == Decimal("20")
        assert body["data"]["bookingStatus"] == "checked-out"
        assert money(body["data"]["totalAmount"]) == Decimal("220")
        assert body["data"]["additionalCharges"][0]["description"] == "Minibar"

        room = client.get(f"/rooms/{sample_room.id}", headers=receptionist_auth_headers).json()["data"]
        assert room["status"] == "cleaning"
        guest = client.get(f"/guests/{sample_guest.id}", headers=receptionist_auth_headers).json()["data"]
        assert guest["totalStays"] == 1
        assert money(guest["totalSpent"]) == Decimal("220")

    def test_checkout_without_body(self, client, create_booking, receptionist_auth_headers):
        booking_id = create_booking(0, 2).json()["data"]["id"]
        client.post(f"/bookings/{booking_id}/checkin", headers=receptionist_auth_headers)

        response = client.post(f"/bookings/{booking_id}/checkout", headers=receptionist_auth_headers)
        assert response.status_code == 200
        assert money(response.json()["additionalCharges"]) == Decimal("0")

    def test_checkout_before_checkin(self, client, create_booking, receptionist_auth_headers):
        booking_id = create_booking().json()["data"]["id"]
        response = client.post(f"/bookings/{booking_id}/checkout", headers=receptionist_auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Booking must be checked in before check-out"

    def test_checkin_twice(self, client, create_booking, receptionist_auth_headers):
        booking_id = create_booking(0, 2).json()["data"]["id"]
        client.post(f"/bookings/{booking_id}/checkin", headers=receptionist_auth_headers)
        response = client.post(f"/bookings/{booking_id}/checkin", headers=receptionist_auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Booking must be confirmed before check-in"

    def test_cancel_requires_reason(self, client, create_booking, receptionist_auth_headers):
        booking_id = create_booking().json()["data"]["id"]
        response = client.post(f"/bookings/{booking_id}/cancel", json={},
                               headers=receptionist_auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Cancellation reason is required"

    def test_cancel_checked_in_frees_room(self, client, create_booking, receptionist_auth_headers,
                                          sample_room):
        booking_id = create_booking(0, 2).json()["data"]["id"]
        client.post(f"/bookings/{booking_id}/checkin", headers=receptionist_auth_headers)

        response = client.post(f"/bookings/{booking_id}/cancel", json={"reason": "Guest left"},
                               headers=receptionist_auth_headers)

        assert response.json()["data"]["bookingStatus"] == "cancelled"
        room = client.get(f"/rooms/{sample_room.id}", headers=receptionist_auth_headers).json()["data"]
        assert room["status"] == "available"

    def test_cancel_twice(self, client, create_booking, receptionist_auth_headers):
        booking_id = create_booking().json()["data"]["id"]
        client.post(f"/bookings/{booking_id}/cancel", json={"reason": "x"},
                    headers=receptionist_auth_headers)
        response = client.post(f"/bookings/{booking_id}/cancel", json={"reason": "x"},
                               headers=receptionist_auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Booking cannot be cancelled"

    def test_no_show(self, client, create_booking, receptionist_auth_headers):
        booking_id = create_booking().json()["data"]["id"]
        response = client.post(f"/bookings/{booking_id}/no-show", headers=receptionist_auth_headers)
        assert response.json()["data"]["bookingStatus"] == "no-show"

    def test_delete_is_soft_cancel(self, client, create_booking, receptionist_auth_headers):
        booking_id = create_booking().json()["data"]["id"]

        response = client.delete(f"/bookings/{booking_id}", headers=receptionist_auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["bookingStatus"] == "cancelled"
        assert data["cancellationReason"] == "Deleted by staff"
        assert client.get(f"/bookings/{booking_id}", headers=receptionist_auth_headers).status_code == 200

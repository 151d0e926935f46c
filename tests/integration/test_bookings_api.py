class TestCreateBooking:
    async def test_reserve_by_quantity(self, client, flight, alice, headers_for):
        resp = await client.post("/bookings", json={"flightId": flight.id, "seats": 2}, headers=headers_for(alice))

        assert resp.status_code == 201
        body = resp.json()
        assert body["userId"] == alice.id
        assert body["seats"] == 2
        assert body["seatNumber"] == []
        assert body["totalPrice"] == 200.0
        assert body["availableTickets"] == 0

    async def test_sold_out_is_a_conflict(self, client, flight, alice, bob, headers_for):
        await client.post("/bookings", json={"flightId": flight.id, "seats": 2}, headers=headers_for(alice))
        resp = await client.post("/bookings", json={"flightId": flight.id, "seats": 1}, headers=headers_for(bob))
        assert resp.status_code == 409
        assert "available" in resp.json()["detail"]

    async def test_reserve_seat_labels(self, client, seat_flight, alice, headers_for):
        resp = await client.post(
            "/bookings",
            json={"flightId": seat_flight.id, "seats": 2, "seatNumber": ["A1", "A2"]},
            headers=headers_for(alice),
        )
        assert resp.status_code == 201
        assert resp.json()["seatNumber"] == ["A1", "A2"]

    async def test_seat_count_mismatch(self, client, seat_flight, alice, headers_for):
        resp = await client.post(
            "/bookings",
            json={"flightId": seat_flight.id, "seats": 2, "seatNumber": ["A1"]},
            headers=headers_for(alice),
        )
        assert resp.status_code == 400

    async def test_zero_seats(self, client, flight, alice, headers_for):
        resp = await client.post("/bookings", json={"flightId": flight.id, "seats": 0}, headers=headers_for(alice))
        assert resp.status_code == 400

    async def test_unknown_flight(self, client, alice, headers_for):
        resp = await client.post("/bookings", json={"flightId": 999, "seats": 1}, headers=headers_for(alice))
        assert resp.status_code == 404

    async def test_booking_for_someone_else(self, client, flight, alice, bob, admin, headers_for):
        payload = {"flightId": flight.id, "seats": 1, "userId": bob.id}
        assert (await client.post("/bookings", json=payload, headers=headers_for(alice))).status_code == 403

        resp = await client.post("/bookings", json=payload, headers=headers_for(admin))
        assert resp.status_code == 201
        assert resp.json()["userId"] == bob.id

    async def test_requires_login(self, client, flight):
        resp = await client.post("/bookings", json={"flightId": flight.id, "seats": 1})
        assert resp.status_code == 401


class TestAmendAndRelease:
    async def test_amend_then_release(self, client, flight, alice, headers_for, fetch_flight):
        headers = headers_for(alice)
        booking = (await client.post("/bookings", json={"flightId": flight.id, "seats": 1}, headers=headers)).json()

        amended = await client.put(f"/bookings/{booking['id']}", json={"seats": 2}, headers=headers)
        assert amended.status_code == 200
        assert amended.json()["totalPrice"] == 200.0
        assert amended.json()["availableTickets"] == 0

        released = await client.delete(f"/bookings/{booking['id']}", headers=headers)
        assert released.status_code == 204
        assert (await fetch_flight(flight.id)).available_tickets == 2

        again = await client.delete(f"/bookings/{booking['id']}", headers=headers)
        assert again.status_code == 404
        assert (await fetch_flight(flight.id)).available_tickets == 2

    async def test_amend_over_capacity(self, client, flight, alice, headers_for):
        headers = headers_for(alice)
        booking = (await client.post("/bookings", json={"flightId": flight.id, "seats": 1}, headers=headers)).json()
        resp = await client.put(f"/bookings/{booking['id']}", json={"seats": 3}, headers=headers)
        assert resp.status_code == 409

    async def test_other_users_booking_is_forbidden(self, client, flight, alice, bob, headers_for):
        booking = (await client.post("/bookings", json={"flightId": flight.id, "seats": 1}, headers=headers_for(alice))).json()

        assert (await client.put(f"/bookings/{booking['id']}", json={"seats": 2}, headers=headers_for(bob))).status_code == 403
        assert (await client.delete(f"/bookings/{booking['id']}", headers=headers_for(bob))).status_code == 403
        assert (await client.get(f"/bookings/{booking['id']}", headers=headers_for(bob))).status_code == 403


class TestReadBookings:
    async def test_booking_details(self, client, seat_flight, alice, headers_for):
        headers = headers_for(alice)
        booking = (
            await client.post(
                "/bookings", json={"flightId": seat_flight.id, "seats": 1, "seatNumber": ["B2"]}, headers=headers
            )
        ).json()

        resp = await client.get(f"/bookings/{booking['id']}", headers=headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["flightNumber"] == "FB200"
        assert body["destination"] == "Accra"
        assert body["flightTime"] == "09:30"
        assert body["username"] == "alice"
        assert body["seatNumber"] == ["B2"]

    async def test_user_listing_is_self_or_admin(self, client, flight, alice, bob, admin, headers_for):
        await client.post("/bookings", json={"flightId": flight.id, "seats": 1}, headers=headers_for(alice))

        own = await client.get(f"/bookings/user/{alice.id}", headers=headers_for(alice))
        assert own.status_code == 200
        assert len(own.json()) == 1

        assert (await client.get(f"/bookings/user/{alice.id}", headers=headers_for(bob))).status_code == 403
        assert (await client.get(f"/bookings/user/{alice.id}", headers=headers_for(admin))).status_code == 200

    async def test_full_listing_is_admin_only(self, client, flight, alice, admin, headers_for):
        await client.post("/bookings", json={"flightId": flight.id, "seats": 1}, headers=headers_for(alice))

        assert (await client.get("/bookings", headers=headers_for(alice))).status_code == 403

        resp = await client.get("/bookings", headers=headers_for(admin))
        assert resp.status_code == 200
        assert [b["flightNumber"] for b in resp.json()] == ["FB100"]

        filtered = await client.get("/bookings", params={"flight_id": 999}, headers=headers_for(admin))
        assert filtered.json() == []

    async def test_unknown_booking(self, client, alice, headers_for):
        assert (await client.get("/bookings/999", headers=headers_for(alice))).status_code == 404

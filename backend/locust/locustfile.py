"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double-selling of seats
  locust -f locustfile.py --tags throughput   # Test quote cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from datetime import date, timedelta

from locust import HttpUser, task, between, tag, events

# Shared state
ROUTE_IDS = []
SCHEDULE_IDS = []
CONCURRENCY_SCHEDULE_ID = None
CONCURRENCY_CAPACITY = 12


def random_suffix():
    return "".join(random.choices(string.ascii_lowercase, k=8))


def booking_payload(schedule_id, seats):
    return {
        "schedule_id": schedule_id,
        "seats": seats,
        "passengers": [
            {"first_name": "Load", "last_name": f"Tester{i}", "age": 30, "gender": "other"}
            for i in range(len(seats))
        ],
        "contact_email": f"load_{random.randint(10000, 99999)}@test.com",
        "contact_phone": "+1 555 010 0000",
        "total_amount": "100.00",
        "final_amount": "100.00",
    }


def create_route_with_schedule(client, capacity, days_ahead=30):
    """Operator -> route -> schedule. Returns (route_id, schedule_id) or (None, None)."""
    resp = client.post("/api/v1/routes/operators", json={"name": f"Load Lines {random_suffix()}"})
    if resp.status_code != 201:
        return None, None
    resp = client.post("/api/v1/routes/", json={
        "operator_id": resp.json()["id"],
        "from_city": "Load City",
        "to_city": f"Dest {random_suffix()}",
        "departure_time": "09:00",
        "arrival_time": "13:00",
        "vehicle_type": "Coach",
        "total_seats": capacity,
        "base_price": "100.00",
    })
    if resp.status_code != 201:
        return None, None
    route_id = resp.json()["id"]
    resp = client.post("/api/v1/schedules/", json={
        "route_id": route_id,
        "travel_date": (date.today() + timedelta(days=days_ahead)).isoformat(),
    })
    if resp.status_code != 201:
        return route_id, None
    return route_id, resp.json()["id"]


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print("SETUP: schedules are created by the first user of each class")
    print("="*60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 12 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT seat_number, COUNT(*) FROM seat_reservations
      WHERE schedule_id = X AND status = 'booked' GROUP BY seat_number HAVING COUNT(*) > 1;
    Should return no rows.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        if not CONCURRENCY_SCHEDULE_ID:
            _, schedule_id = create_route_with_schedule(self.client, CONCURRENCY_CAPACITY)
            if schedule_id:
                globals()["CONCURRENCY_SCHEDULE_ID"] = schedule_id
                print(f"\n✓ Created schedule {schedule_id} with {CONCURRENCY_CAPACITY} seats\n")

    @tag("concurrency")
    @task
    def book_contested_seats(self):
        """Everyone fights for overlapping pairs of the same 12 seats."""
        if not CONCURRENCY_SCHEDULE_ID:
            return

        seats = random.sample(range(1, CONCURRENCY_CAPACITY + 1), 2)
        with self.client.post("/api/v1/bookings/",
            json=booking_payload(CONCURRENCY_SCHEDULE_ID, seats),
            name="/api/v1/bookings/ [contested]",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: seat already taken
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - quote cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        if not ROUTE_IDS:
            route_id, schedule_id = create_route_with_schedule(self.client, 48)
            if route_id:
                ROUTE_IDS.append(route_id)
            if schedule_id:
                SCHEDULE_IDS.append(schedule_id)

    @tag("throughput", "read")
    @task(10)
    def quote_cached(self):
        """Hammer the cached quote endpoint."""
        if ROUTE_IDS:
            travel_date = date.today() + timedelta(days=random.randint(1, 10))
            self.client.get(f"/api/v1/routes/{random.choice(ROUTE_IDS)}/quote?travel_date={travel_date}",
                name="/api/v1/routes/{id}/quote [cached]")

    @tag("throughput", "read")
    @task(3)
    def seat_map(self):
        """Seat maps always come from the ledger."""
        if SCHEDULE_IDS:
            self.client.get(f"/api/v1/schedules/{random.choice(SCHEDULE_IDS)}/seats",
                name="/api/v1/schedules/{id}/seats")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_schedule(self):
        with self.client.post("/api/v1/bookings/",
            json=booking_payload(999999, [1]),
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def seat_out_of_grid(self):
        """Seat label past the row width."""
        with self.client.post("/api/v1/bookings/",
            json=booking_payload(1, ["A9"]),
            catch_response=True
        ) as resp:
            self._expect(resp, [404, 422])

    @tag("edge")
    @task
    def seats_passengers_mismatch(self):
        payload = booking_payload(1, [1, 2])
        payload["passengers"] = payload["passengers"][:1]
        with self.client.post("/api/v1/bookings/", json=payload, catch_response=True) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def too_many_seats(self):
        with self.client.post("/api/v1/bookings/",
            json=booking_payload(1, list(range(1, 20))),
            catch_response=True
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/",
            data="not json at all",
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing quotes and seat maps, some bookings, rare cancellations.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.my_bookings = []
        if len(SCHEDULE_IDS) < 5:
            route_id, schedule_id = create_route_with_schedule(
                self.client, 48, days_ahead=random.randint(1, 60)
            )
            if route_id:
                ROUTE_IDS.append(route_id)
            if schedule_id:
                SCHEDULE_IDS.append(schedule_id)

    @task(50)
    def browse_schedules(self):
        if ROUTE_IDS:
            self.client.get(f"/api/v1/routes/{random.choice(ROUTE_IDS)}/schedules",
                name="/api/v1/routes/{id}/schedules")

    @task(20)
    def view_seat_map(self):
        if SCHEDULE_IDS:
            self.client.get(f"/api/v1/schedules/{random.choice(SCHEDULE_IDS)}/seats",
                name="/api/v1/schedules/{id}/seats")

    @task(10)
    def book_free_seats(self):
        if not SCHEDULE_IDS:
            return
        schedule_id = random.choice(SCHEDULE_IDS)
        resp = self.client.get(f"/api/v1/schedules/{schedule_id}/seats",
            name="/api/v1/schedules/{id}/seats")
        if resp.status_code != 200:
            return
        free = resp.json()["available_seats"]
        if not free:
            return
        seats = random.sample(free, min(len(free), random.randint(1, 3)))
        with self.client.post("/api/v1/bookings/",
            json=booking_payload(schedule_id, seats),
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                self.my_bookings.append(resp.json()["id"])
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Someone was faster

    @task(2)
    def cancel_booking(self):
        if self.my_bookings:
            booking_id = self.my_bookings.pop()
            self.client.post(f"/api/v1/bookings/{booking_id}/cancel",
                name="/api/v1/bookings/{id}/cancel")

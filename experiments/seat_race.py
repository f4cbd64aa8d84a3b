#!/usr/bin/env python3
"""
Seat race against a running Travel Booking API.
Many travellers fight for the same few seats; verifies no seat is sold twice.
"""

import asyncio
import random
import time
from datetime import date, timedelta

import aiohttp

API_URL = "http://localhost:8000"
CONCURRENT_USERS = 50
CAPACITY = 12
SEATS_PER_BOOKING = 2


class SeatRace:
    def __init__(self):
        self.results = {
            "successful_bookings": 0,
            "conflicts": 0,
            "failed_bookings": 0,
            "errors": 0,
            "response_times": [],
        }
        self.schedule_id = None
        self.sold = []

    async def create_schedule(self, session: aiohttp.ClientSession) -> None:
        """Operator -> route -> one schedule with CAPACITY seats."""
        stamp = int(time.time())
        async with session.post(f"{API_URL}/api/v1/routes/operators", json={"name": f"Race Lines {stamp}"}) as resp:
            operator = await resp.json()

        async with session.post(f"{API_URL}/api/v1/routes/", json={
            "operator_id": operator["id"],
            "from_city": "Race Origin",
            "to_city": f"Race Destination {stamp}",
            "departure_time": "08:00",
            "arrival_time": "12:00",
            "vehicle_type": "Coach",
            "total_seats": CAPACITY,
            "base_price": "100.00",
        }) as resp:
            route = await resp.json()

        travel_date = (date.today() + timedelta(days=30)).isoformat()
        async with session.post(f"{API_URL}/api/v1/schedules/", json={
            "route_id": route["id"],
            "travel_date": travel_date,
        }) as resp:
            if resp.status == 201:
                self.schedule_id = (await resp.json())["id"]
                print(f"✓ Created schedule {self.schedule_id} with {CAPACITY} seats on {travel_date}")

    async def book(self, session: aiohttp.ClientSession, user_num: int) -> None:
        seats = random.sample(range(1, CAPACITY + 1), SEATS_PER_BOOKING)
        payload = {
            "schedule_id": self.schedule_id,
            "seats": seats,
            "passengers": [
                {"first_name": f"User{user_num}", "last_name": f"P{i}", "age": 30, "gender": "other"}
                for i in range(len(seats))
            ],
            "contact_email": f"race_{user_num}@example.com",
            "contact_phone": "+1 555 000 0000",
            "total_amount": "200.00",
            "final_amount": "200.00",
        }
        start = time.time()
        try:
            async with session.post(f"{API_URL}/api/v1/bookings/", json=payload) as resp:
                elapsed = (time.time() - start) * 1000
                self.results["response_times"].append(elapsed)
                body = await resp.json()
                if resp.status == 201:
                    self.results["successful_bookings"] += 1
                    self.sold.extend(body["seat_labels"])
                    print(f"✓ User {user_num} booked {body['seat_labels']} ({elapsed:.0f}ms)")
                elif resp.status == 409:
                    self.results["conflicts"] += 1
                    print(f"✗ User {user_num} lost {body.get('unavailable_seats')} ({elapsed:.0f}ms)")
                else:
                    self.results["failed_bookings"] += 1
                    print(f"✗ User {user_num} failed: {resp.status} ({elapsed:.0f}ms)")
        except Exception as e:
            self.results["errors"] += 1
            print(f"✗ User {user_num} error: {e}")

    async def run(self):
        print(f"\n{'='*60}")
        print(f"SEAT RACE: {CONCURRENT_USERS} users x {SEATS_PER_BOOKING} seats -> {CAPACITY} seats")
        print(f"{'='*60}\n")

        async with aiohttp.ClientSession() as session:
            await self.create_schedule(session)
            if not self.schedule_id:
                print("✗ Failed to create schedule")
                return

            start_time = time.time()
            await asyncio.gather(*(self.book(session, i) for i in range(CONCURRENT_USERS)))
            total_time = time.time() - start_time

            async with session.get(f"{API_URL}/api/v1/schedules/{self.schedule_id}/seats") as resp:
                seat_map = await resp.json()

        print("\n" + "="*60)
        print("RESULTS")
        print("="*60)
        print(f"Total time:          {total_time:.2f}s")
        print(f"Successful bookings: {self.results['successful_bookings']}")
        print(f"Conflicts (409):     {self.results['conflicts']}")
        print(f"Failed bookings:     {self.results['failed_bookings']}")
        print(f"Errors:              {self.results['errors']}")

        if self.results["response_times"]:
            times = sorted(self.results["response_times"])
            print(f"\nResponse times:")
            print(f"  Avg: {sum(times)/len(times):.0f}ms")
            print(f"  P50: {times[len(times)//2]:.0f}ms")
            print(f"  P95: {times[int(len(times)*0.95)]:.0f}ms")

        print("\n" + "="*60)
        duplicates = len(self.sold) - len(set(self.sold))
        if duplicates == 0 and sorted(self.sold) == sorted(seat_map["booked_seats"]):
            print("✓ PASS: every sold seat was sold exactly once")
            print(f"  {len(self.sold)} seats sold of {CAPACITY}")
        else:
            print("✗ FAIL: OVERBOOKING DETECTED!")
            print(f"  sold {sorted(self.sold)} vs ledger {seat_map['booked_seats']}")
        print("="*60 + "\n")


if __name__ == "__main__":
    asyncio.run(SeatRace().run())

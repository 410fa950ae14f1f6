"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags contention   # Test overbooking on one FCFS slot
  locust -f locustfile.py --tags throughput   # Test slot listing cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from datetime import date, timedelta
from locust import HttpUser, task, between, tag, events

# Shared state
SLOT_IDS = []
CONTENTION_SLOT_ID = None
CONTENTION_TABLES = 10
PASSWORD = "loadtest123"


def random_email():
    return f"load_{random.randint(100000, 999999)}@test.com"


def random_username():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def register_and_login(client) -> dict:
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "username": random_username(),
        "password": PASSWORD,
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}
    return {}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: first user creates an FCFS slot with {CONTENTION_TABLES} tables")
    print("=" * 60)


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - many requesters, 10 tables

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings WHERE slot_id = X AND status = 'confirmed';
      SELECT booked_tables FROM slots WHERE id = X;
    Both should equal 10.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register_and_login(self.client)
        if self.headers and not CONTENTION_SLOT_ID:
            resp = self.client.post("/api/v1/slots/",
                json={
                    "name": "Contention Dinner",
                    "date": (date.today() + timedelta(days=30)).isoformat(),
                    "start_time": f"{random.randint(17, 21)}:{random.choice(['00', '30'])}:00",
                    "total_tables": CONTENTION_TABLES,
                    "booking_mode": "fcfs",
                    "waitlist_enabled": True,
                },
                headers=self.headers,
            )
            if resp.status_code == 201:
                globals()["CONTENTION_SLOT_ID"] = resp.json()["id"]
                print(f"\nCreated slot {CONTENTION_SLOT_ID} with {CONTENTION_TABLES} tables\n")

    @tag("contention")
    @task
    def request_table(self):
        """Everyone asks for the same tables; the losers join the waitlist."""
        if not CONTENTION_SLOT_ID or not self.headers:
            return

        with self.client.post("/api/v1/bookings/",
            json={"slot_id": CONTENTION_SLOT_ID, "party_size": 2},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # slot_full or duplicate_booking
                if resp.json().get("code") == "slot_full":
                    self.client.post("/api/v1/waitlist/",
                        json={"slot_id": CONTENTION_SLOT_ID},
                        headers=self.headers,
                        name="/api/v1/waitlist/ [overflow]")
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - listing cache effectiveness

    Run with and without Redis and compare requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_slots_cached(self):
        meal = random.choice(["breakfast", "lunch", "dinner"])
        resp = self.client.get(f"/api/v1/slots/?meal_time={meal}", name="/api/v1/slots/ [cached]")
        if resp.status_code == 200:
            for slot in resp.json().get("slots", []):
                if slot["id"] not in SLOT_IDS:
                    SLOT_IDS.append(slot["id"])

    @tag("throughput", "read")
    @task(3)
    def get_slot_detail(self):
        if SLOT_IDS:
            self.client.get(f"/api/v1/slots/{random.choice(SLOT_IDS)}", name="/api/v1/slots/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - bad input must yield 4xx, never 5xx.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register_and_login(self.client)

    def _expect(self, resp, allowed):
        if resp.status_code in allowed:
            resp.success()
        else:
            resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_slot(self):
        with self.client.post("/api/v1/bookings/",
            json={"slot_id": 999999, "party_size": 1},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def zero_party(self):
        with self.client.post("/api/v1/bookings/",
            json={"slot_id": 1, "party_size": 0},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def draw_on_foreign_slot(self):
        with self.client.post("/api/v1/slots/1/lottery/draw",
            json={"winners_count": 5},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [403, 404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/bookings/",
            json={"slot_id": 1, "party_size": 1},
            catch_response=True,
        ) as resp:
            self._expect(resp, [401])

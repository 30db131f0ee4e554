"""
Kaizen POS Load Testing with Locust

Run with:
    locust -f tests/stress/locustfile.py --host http://127.0.0.1:5001

Or headless:
    locust -f tests/stress/locustfile.py --host http://127.0.0.1:5001 \
           --users 10 --spawn-rate 2 --run-time 60s --headless

The target database needs at least one active cashier and a few stocked
products. Point the test at them with:
    LOCUST_CASHIER_ID=1 LOCUST_PRODUCT_IDS=1,2,3

Pass thresholds:
- p95 response time < 500ms for reads
- p95 response time < 1000ms for writes
- Error rate < 1%

Checkouts that run a product out of stock answer 400 INSUFFICIENT_STOCK;
those count as handled, not as errors. A 500 under contention is an error.
"""

import os
import time
import random
import uuid
from typing import Dict, List

from locust import HttpUser, task, between, events


# =============================================================================
# CONFIGURATION
# =============================================================================

CASHIER_ID = int(os.environ.get("LOCUST_CASHIER_ID", "1"))
PRODUCT_IDS = [
    int(pid) for pid in os.environ.get("LOCUST_PRODUCT_IDS", "1").split(",") if pid.strip()
]
PAYMENT_METHODS = ["Cash", "QR Code", "Card"]


# =============================================================================
# METRICS TRACKING
# =============================================================================

class MetricsCollector:
    """Collect and report metrics."""

    def __init__(self):
        self.request_counts: Dict[str, int] = {}
        self.error_counts: Dict[str, int] = {}
        self.response_times: Dict[str, List[float]] = {}

    def record(self, name: str, response_time: float, success: bool):
        if name not in self.request_counts:
            self.request_counts[name] = 0
            self.error_counts[name] = 0
            self.response_times[name] = []

        self.request_counts[name] += 1
        if not success:
            self.error_counts[name] += 1
        self.response_times[name].append(response_time)

    def get_summary(self) -> Dict:
        summary = {}
        for name in self.request_counts:
            times = sorted(self.response_times[name])
            count = len(times)
            if count == 0:
                continue

            p50_idx = int(count * 0.50)
            p95_idx = int(count * 0.95)

            summary[name] = {
                "count": self.request_counts[name],
                "errors": self.error_counts[name],
                "error_rate": self.error_counts[name] / self.request_counts[name] * 100,
                "avg_ms": sum(times) / count,
                "p50_ms": times[p50_idx] if p50_idx < count else times[-1],
                "p95_ms": times[p95_idx] if p95_idx < count else times[-1],
            }
        return summary


metrics = MetricsCollector()


def _handled(response, *accepted_business_codes: str) -> bool:
    """2xx, or a 400 carrying one of the expected business error codes."""
    if 200 <= response.status_code < 300:
        return True
    if response.status_code != 400 or not accepted_business_codes:
        return False
    try:
        return response.json().get("code") in accepted_business_codes
    except ValueError:
        return False


# =============================================================================
# USER BEHAVIORS
# =============================================================================

class POSUser(HttpUser):
    """Base user; no authentication in front of the POS core API."""
    wait_time = between(0.5, 2)
    abstract = True

    def timed(self, name: str, method: str, url: str, accepted=(), **kwargs):
        start = time.time()
        response = self.client.request(method, url, name=name, **kwargs)
        metrics.record(name, (time.time() - start) * 1000, _handled(response, *accepted))
        return response


class BrowsingUser(POSUser):
    """
    User that primarily reads data.
    Simulates a cashier looking up products and the dashboard.
    """
    weight = 3

    @task(5)
    def list_products(self):
        self.timed("products/list", "GET", "/api/products")

    @task(2)
    def low_stock(self):
        self.timed("products/low-stock", "GET", "/api/products/low-stock")

    @task(2)
    def dashboard(self):
        self.timed("transactions/dashboard", "GET", "/api/transactions/dashboard")

    @task(1)
    def weekly_report(self):
        self.timed("transactions/reports", "GET", "/api/transactions/reports", params={"period": "week"})

    @task(1)
    def health_check(self):
        self.timed("system/health", "GET", "/api/health")


class CheckoutUser(POSUser):
    """
    User that commits sales against a shared pool of products, so checkouts
    contend for the same stock rows.
    """
    weight = 3

    @task(4)
    def checkout(self):
        picks = random.sample(PRODUCT_IDS, k=min(len(PRODUCT_IDS), random.randint(1, 3)))
        payment_method = random.choice(PAYMENT_METHODS)
        payload = {
            "items": [{"product": pid, "quantity": random.randint(1, 3)} for pid in picks],
            "paymentMethod": payment_method,
            "cashier": CASHIER_ID,
        }
        self.timed(
            "transactions/create",
            "POST",
            "/api/transactions",
            accepted=("INSUFFICIENT_STOCK",),
            json=payload,
            headers={"Idempotency-Key": str(uuid.uuid4())},
        )

    @task(1)
    def replay_checkout(self):
        """Same key twice: the second call must return the first transaction."""
        key = str(uuid.uuid4())
        payload = {
            "items": [{"product": random.choice(PRODUCT_IDS), "quantity": 1}],
            "paymentMethod": "Card",
            "cashier": CASHIER_ID,
        }
        for _ in range(2):
            self.timed(
                "transactions/create-replay",
                "POST",
                "/api/transactions",
                accepted=("INSUFFICIENT_STOCK",),
                json=payload,
                headers={"Idempotency-Key": key},
            )


class InventoryUser(POSUser):
    """
    User that restocks and removes stock while sales are running.
    """
    weight = 1

    @task(3)
    def stock_in(self):
        pid = random.choice(PRODUCT_IDS)
        self.timed(
            "products/adjust-stock",
            "PATCH",
            f"/api/products/{pid}/adjust-stock",
            json={"type": "in", "quantity": random.randint(5, 20), "note": "Load test restock"},
        )

    @task(1)
    def stock_out(self):
        pid = random.choice(PRODUCT_IDS)
        self.timed(
            "products/adjust-stock",
            "PATCH",
            f"/api/products/{pid}/adjust-stock",
            accepted=("INSUFFICIENT_STOCK",),
            json={"type": "out", "quantity": random.randint(1, 3), "note": "Load test shrinkage"},
        )

    @task(3)
    def stock_history(self):
        pid = random.choice(PRODUCT_IDS)
        self.timed(
            "products/stock-history",
            "GET",
            f"/api/products/{pid}/stock-history",
            params={"limit": 20},
        )


# =============================================================================
# EVENT HANDLERS
# =============================================================================

@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Print summary when test stops."""
    print("\n" + "=" * 80)
    print("LOAD TEST SUMMARY")
    print("=" * 80)

    summary = metrics.get_summary()

    print(f"\n{'Endpoint':<30} {'Count':>8} {'Errors':>8} {'Err%':>8} {'Avg(ms)':>10} {'P95(ms)':>10}")
    print("-" * 80)

    total_requests = 0
    total_errors = 0
    all_pass = True

    for name, stats in sorted(summary.items()):
        total_requests += stats["count"]
        total_errors += stats["errors"]

        # Check thresholds
        p95_threshold = 1000 if "create" in name or "adjust" in name else 500
        passed = stats["p95_ms"] < p95_threshold and stats["error_rate"] < 1

        status = "PASS" if passed else "FAIL"
        if not passed:
            all_pass = False

        print(f"{name:<30} {stats['count']:>8} {stats['errors']:>8} {stats['error_rate']:>7.2f}% {stats['avg_ms']:>9.1f} {stats['p95_ms']:>9.1f} [{status}]")

    print("-" * 80)
    print(f"{'TOTAL':<30} {total_requests:>8} {total_errors:>8} {total_errors/max(total_requests,1)*100:>7.2f}%")
    print("=" * 80)

    if all_pass:
        print("\n[PASS] All endpoints within thresholds")
    else:
        print("\n[FAIL] Some endpoints exceeded thresholds")
        print("  - Reads (list/get): P95 < 500ms, Error rate < 1%")
        print("  - Writes (create/adjust): P95 < 1000ms, Error rate < 1%")

    print("=" * 80)

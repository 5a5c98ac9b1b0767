#!/usr/bin/env python3
"""
Traffic generator for the storefront service.

Simulates shoppers browsing the catalog, checking stock and placing orders.
With --contend it instead fires a burst of simultaneous orders at one
product and reports how many were accepted against the starting stock.
"""

import argparse
import random
import threading
import time
import uuid
from datetime import datetime

import requests

API_URL = "http://localhost:8000"

# Weight for actions
ACTION_WEIGHTS = {
    "browse": 0.45,
    "view_product": 0.25,
    "check_stock": 0.10,
    "place_order": 0.15,
    "view_orders": 0.05,
}


def log(message):
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] {message}")


class Shopper:
    def __init__(self, shopper_id):
        self.shopper_id = shopper_id
        self.customer_id = str(uuid.uuid4())
        self.products = []

    def fetch_products(self):
        try:
            response = requests.get(
                f"{API_URL}/products",
                params={"page": 1, "limit": 50},
                timeout=5
            )
            if response.status_code == 200:
                self.products = response.json()["data"]
                log(f"Shopper {self.shopper_id}: Fetched {len(self.products)} products")
                return True
        except requests.RequestException as e:
            log(f"Shopper {self.shopper_id}: Failed to fetch products - {e}")
        return False

    def view_product(self):
        if not self.products:
            self.fetch_products()

        if self.products:
            product = random.choice(self.products)
            try:
                response = requests.get(f"{API_URL}/products/{product['id']}", timeout=5)
                if response.status_code == 200:
                    log(f"Shopper {self.shopper_id}: Viewing {product['name']}")
                    return True
            except requests.RequestException as e:
                log(f"Shopper {self.shopper_id}: Failed to view product - {e}")
        return False

    def check_stock(self):
        if not self.products:
            self.fetch_products()

        ids = [p["id"] for p in random.sample(self.products, min(3, len(self.products)))]
        try:
            response = requests.post(
                f"{API_URL}/products/check-quantities",
                json={"ids": ids},
                timeout=5
            )
            if response.status_code == 200:
                levels = {row["id"]: row["availableCount"] for row in response.json()}
                log(f"Shopper {self.shopper_id}: Stock levels {levels}")
                return True
        except requests.RequestException as e:
            log(f"Shopper {self.shopper_id}: Failed to check stock - {e}")
        return False

    def place_order(self):
        if not self.products:
            self.fetch_products()

        if not self.products:
            return False

        picks = random.sample(self.products, min(random.randint(1, 3), len(self.products)))
        try:
            response = requests.post(
                f"{API_URL}/orders",
                json={
                    "customerId": self.customer_id,
                    "products": [
                        {"id": p["id"], "quantity": random.randint(1, 3)} for p in picks
                    ]
                },
                timeout=10
            )
            if response.status_code == 201:
                order = response.json()
                log(f"Shopper {self.shopper_id}: Order {order['id']} placed - total {order['orderTotal']}")
                return True
            log(f"Shopper {self.shopper_id}: Order rejected - {response.status_code} {response.json().get('detail')}")
        except requests.RequestException as e:
            log(f"Shopper {self.shopper_id}: Order failed - {e}")
        return False

    def view_orders(self):
        try:
            response = requests.get(f"{API_URL}/orders", timeout=5)
            if response.status_code == 200:
                log(f"Shopper {self.shopper_id}: Viewing {len(response.json())} orders")
                return True
        except requests.RequestException as e:
            log(f"Shopper {self.shopper_id}: Failed to view orders - {e}")
        return False

    def random_action(self):
        action = random.choices(
            list(ACTION_WEIGHTS.keys()),
            weights=list(ACTION_WEIGHTS.values())
        )[0]

        if action == "browse":
            return self.fetch_products()
        elif action == "view_product":
            return self.view_product()
        elif action == "check_stock":
            return self.check_stock()
        elif action == "place_order":
            return self.place_order()
        elif action == "view_orders":
            return self.view_orders()


def shopper_session(shopper_id, duration_seconds):
    """Run random shopper actions until the session expires."""
    shopper = Shopper(shopper_id)
    end_time = time.time() + duration_seconds

    shopper.fetch_products()
    while time.time() < end_time:
        shopper.random_action()
        time.sleep(random.uniform(0.3, 1.2))


def generate_traffic(num_concurrent_users=5, session_duration=60):
    """Generate traffic with multiple concurrent shoppers"""
    log(f"Starting traffic generation with {num_concurrent_users} concurrent shoppers")
    log(f"Session duration: {session_duration} seconds")

    threads = []

    try:
        while True:
            while len([t for t in threads if t.is_alive()]) < num_concurrent_users:
                thread = threading.Thread(
                    target=shopper_session,
                    args=(f"shopper_{random.randint(1000, 9999)}", session_duration)
                )
                thread.start()
                threads.append(thread)

                time.sleep(random.uniform(1, 3))

            threads = [t for t in threads if t.is_alive()]
            time.sleep(5)

    except KeyboardInterrupt:
        log("\nStopping traffic generation...")
        log("Waiting for active sessions to complete...")
        for thread in threads:
            thread.join(timeout=10)
        log("Traffic generation stopped")


def contend_for_stock(product_id, num_orders, quantity):
    """Fire simultaneous orders at one product and compare against its stock."""
    start = requests.get(f"{API_URL}/products/{product_id}", timeout=5).json()
    log(f"Product {product_id} ({start['name']}): starting stock {start['availableCount']}")

    barrier = threading.Barrier(num_orders)
    outcomes = []
    lock = threading.Lock()

    def order():
        barrier.wait()
        response = requests.post(
            f"{API_URL}/orders",
            json={
                "customerId": str(uuid.uuid4()),
                "products": [{"id": product_id, "quantity": quantity}]
            },
            timeout=30
        )
        with lock:
            outcomes.append(response.status_code)

    threads = [threading.Thread(target=order) for _ in range(num_orders)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    accepted = outcomes.count(201)
    end = requests.get(f"{API_URL}/products/{product_id}", timeout=5).json()
    log(f"Accepted {accepted}/{num_orders} orders of {quantity} units")
    log(f"Final stock {end['availableCount']} "
        f"(expected {start['availableCount'] - accepted * quantity})")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate traffic for the storefront service")
    parser.add_argument(
        "--users",
        type=int,
        default=5,
        help="Number of concurrent shoppers (default: 5)"
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=60,
        help="Session duration in seconds (default: 60)"
    )
    parser.add_argument(
        "--url",
        type=str,
        default="http://localhost:8000",
        help="API URL (default: http://localhost:8000)"
    )
    parser.add_argument(
        "--contend",
        type=int,
        metavar="PRODUCT_ID",
        help="Send a burst of simultaneous orders for this product instead"
    )
    parser.add_argument(
        "--orders",
        type=int,
        default=10,
        help="Orders in the contention burst (default: 10)"
    )
    parser.add_argument(
        "--quantity",
        type=int,
        default=6,
        help="Units per order in the contention burst (default: 6)"
    )

    args = parser.parse_args()
    API_URL = args.url

    log("=" * 60)
    log("Storefront Traffic Generator")
    log("=" * 60)
    log(f"API URL: {API_URL}")

    if args.contend is not None:
        contend_for_stock(args.contend, args.orders, args.quantity)
    else:
        log(f"Concurrent Shoppers: {args.users}")
        log(f"Session Duration: {args.duration}s")
        log("=" * 60)
        generate_traffic(args.users, args.duration)

"""
Load test for the claim API.

Each simulated user claims allocations of wallets from the allocation CSV,
sometimes resubmits a claim it already made (expects 409), and hits the
read endpoints.

Run: locust -f locustfile.py --host http://localhost:3001
Env: ALLOCATIONS_CSV_PATH (default data/wallet_allocations.csv)
"""

import csv
import os
import random
import uuid

from locust import HttpUser, between, task

ALLOCATIONS_CSV = os.getenv("ALLOCATIONS_CSV_PATH", "data/wallet_allocations.csv")

# (wallet, token_type, amount) for every non-zero allocation
allocations = []
with open(ALLOCATIONS_CSV, newline="", encoding="utf-8") as f:
    for row in csv.DictReader(f):
        wallet = (row.get("wallet_address") or "").strip()
        for token_type, column in (("TARAL", "taral_amount"), ("RVLNG", "rvlng_amount")):
            amount = (row.get(column) or "").strip()
            if wallet and amount and float(amount) > 0:
                allocations.append((wallet, token_type, amount))


class NovaClaimUser(HttpUser):
    wait_time = between(1, 2)

    def on_start(self):
        self.submitted = []

    @task(3)
    def claim(self):
        wallet, token_type, amount = random.choice(allocations)
        body = {
            "tokenType": token_type,
            "amount": amount,
            "transactionHash": f"0x{uuid.uuid4().hex}",
            "userAddress": wallet,
            "conversionRate": "1",
        }
        with self.client.post("/wallet/claim", json=body, name="/wallet/claim", catch_response=True) as r:
            # 409 once the kind is claimed by any user
            if r.status_code in (200, 409):
                r.success()
                if r.status_code == 200:
                    self.submitted.append(body)

    @task(1)
    def resubmit(self):
        if not self.submitted:
            return
        body = random.choice(self.submitted)
        with self.client.post("/wallet/claim", json=body, name="/wallet/claim [dup]", catch_response=True) as r:
            if r.status_code == 409:
                r.success()
            else:
                r.failure(f"duplicate answered {r.status_code}")

    @task(2)
    def wallet_claims(self):
        wallet, _, _ = random.choice(allocations)
        with self.client.get(f"/wallet/claims/{wallet}", name="/wallet/claims/[address]", catch_response=True) as r:
            if r.status_code in (200, 404):
                r.success()

    @task(1)
    def stats(self):
        self.client.get("/wallet/stats")

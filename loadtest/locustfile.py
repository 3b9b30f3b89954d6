from __future__ import annotations

from locust import HttpUser, between, task


class CRMUser(HttpUser):
    wait_time = between(1, 5)

    @task(3)
    def list_customers(self) -> None:
        self.client.get("/customers")

    @task
    def generate_sql(self) -> None:
        payload = {"query": "Get the total revenue for all orders"}
        self.client.post("/generatesql", json=payload)

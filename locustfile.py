import itertools

from locust import HttpUser, task, between

SAMPLE_TICKETS = [
    ("Cannot login", "I forgot my password and cannot access my account"),
    ("Invoice question", "I was charged twice on my last invoice, please refund"),
    ("Dark mode", "Please add a dark mode option, it would be a nice to have"),
]

IMPORT_CSV = "\n".join([
    "customer_id,customer_email,customer_name,subject,description",
    "LOAD-1,load1@example.com,Load One,App crash,The app shows an error and crashes on start",
    "LOAD-2,load2@example.com,Load Two,Refund,Please refund the duplicate payment on my invoice",
])


class SupportDeskUser(HttpUser):
    wait_time = between(0.2, 1.0)

    def on_start(self):
        self._counter = itertools.count()

    @task(3)
    def create_ticket(self):
        n = next(self._counter)
        subject, description = SAMPLE_TICKETS[n % len(SAMPLE_TICKETS)]
        self.client.post(
            "/tickets?autoClassify=true",
            json={
                "customer_id": f"LOAD-{n}",
                "customer_email": f"load{n}@example.com",
                "customer_name": "Load Test",
                "subject": subject,
                "description": description,
                "metadata": {"source": "api", "device_type": "desktop"},
            },
            name="/tickets",
        )

    @task(2)
    def list_tickets(self):
        self.client.get("/tickets", params={"priority": "urgent"}, name="/tickets?priority")

    @task(1)
    def import_tickets(self):
        self.client.post("/tickets/import", json={"content": IMPORT_CSV, "fileType": "csv"})

    @task(1)
    def create_transaction(self):
        self.client.post(
            "/transactions",
            json={"toAccount": "ACC-LOAD1", "amount": 10.5, "currency": "USD", "type": "deposit"},
        )

    @task(1)
    def export_transactions(self):
        self.client.get("/transactions/export", params={"accountId": "ACC-LOAD1"}, name="/transactions/export")

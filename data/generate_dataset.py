import json
import argparse
from pathlib import Path
from typing import List, Dict
from xml.etree import ElementTree

import pandas as pd
import numpy as np

# Templates per category; priority hints are mixed in through the variations below
TEMPLATES: Dict[str, List[Dict[str, str]]] = {
    "account_access": [
        {"subject": "Cannot login", "description": "I forgot my password and cannot access my account"},
        {"subject": "Locked out", "description": "My account got locked out after three failed sign in attempts"},
        {"subject": "2FA problem", "description": "Two factor codes are rejected when I try to log in"},
    ],
    "technical_issue": [
        {"subject": "Dashboard error", "description": "The dashboard shows a 500 error whenever I open the reports tab"},
        {"subject": "App crash", "description": "The mobile app is not working and crashes with an exception on start"},
        {"subject": "Upload fails", "description": "File upload fails with a broken progress bar and an error message"},
    ],
    "billing_question": [
        {"subject": "Double charge", "description": "I was charged twice this month, please check the invoice and refund"},
        {"subject": "Update credit card", "description": "How do I change the credit card used for my subscription payment?"},
        {"subject": "Receipt missing", "description": "I did not get a receipt for my last billing cycle"},
    ],
    "feature_request": [
        {"subject": "Dark mode", "description": "Please add a dark mode option, it would be a great improvement"},
        {"subject": "Export to PDF", "description": "I would like to export reports as PDF, could you add that feature?"},
        {"subject": "Calendar sync", "description": "Suggestion: sync tasks with my calendar would be an enhancement"},
    ],
    "bug_report": [
        {"subject": "Wrong totals", "description": "Report totals are incorrect; steps to reproduce: open march report"},
        {"subject": "Date shifts", "description": "Saved dates show unexpected values, expected the original day"},
        {"subject": "Regression in search", "description": "Search results are wrong since the last release, a clear regression"},
    ],
    "other": [
        {"subject": "Hello", "description": "Just wanted to say the team has been very helpful lately"},
        {"subject": "Office hours", "description": "What are your office hours during the holiday season?"},
    ],
}

PRIORITY_SUFFIXES = {
    "urgent": " This is urgent, production down for our users.",
    "high": " This is blocking our team and important.",
    "medium": "",
    "low": " Minor thing, low priority.",
}

SOURCES = ["web_form", "email", "api", "chat", "phone"]
DEVICES = ["desktop", "mobile", "tablet"]
BROWSERS = ["Chrome", "Firefox", "Safari", "Edge", ""]
STATUSES = ["new", "new", "new", "in_progress", "waiting_customer", "resolved", "closed"]
TAGS = ["vip", "mobile", "billing", "enterprise", "trial", "onboarding"]


def generate_sample_tickets(n_samples: int = 100, label_ratio: float = 0.5) -> pd.DataFrame:
    """Generate tickets for the import endpoint.

    About `label_ratio` of rows carry an explicit category/priority; the rest
    are left blank and import as other/medium.
    """
    np.random.seed(42)

    categories = list(TEMPLATES)
    priorities = list(PRIORITY_SUFFIXES)
    rows = []
    for i in range(n_samples):
        category = str(np.random.choice(categories))
        template = TEMPLATES[category][np.random.randint(len(TEMPLATES[category]))]
        priority = str(np.random.choice(priorities, p=[0.15, 0.25, 0.4, 0.2]))
        labelled = np.random.random() < label_ratio
        created = pd.Timestamp("2024-01-01", tz="UTC") + pd.Timedelta(minutes=int(np.random.randint(0, 60 * 24 * 180)))

        rows.append({
            "customer_id": f"CUST-{1000 + i}",
            "customer_email": f"customer{i}@example.com",
            "customer_name": f"Customer {i}",
            "subject": template["subject"],
            "description": template["description"] + PRIORITY_SUFFIXES[priority],
            "category": category if labelled else "",
            "priority": priority if labelled else "",
            "status": str(np.random.choice(STATUSES)),
            "tags": ",".join(np.random.choice(TAGS, size=np.random.randint(0, 3), replace=False)),
            "source": str(np.random.choice(SOURCES)),
            "device_type": str(np.random.choice(DEVICES)),
            "browser": str(np.random.choice(BROWSERS)),
            "created_at": created.isoformat().replace("+00:00", "Z"),
        })
    return pd.DataFrame(rows)


def to_json_records(df: pd.DataFrame) -> List[Dict]:
    records = []
    for row in df.to_dict(orient="records"):
        record = {k: row[k] for k in ("customer_id", "customer_email", "customer_name", "subject", "description", "status", "created_at")}
        for key in ("category", "priority"):
            if row[key]:
                record[key] = row[key]
        record["tags"] = [t for t in row["tags"].split(",") if t]
        record["metadata"] = {"source": row["source"], "device_type": row["device_type"]}
        if row["browser"]:
            record["metadata"]["browser"] = row["browser"]
        records.append(record)
    return records


def to_xml(df: pd.DataFrame) -> str:
    root = ElementTree.Element("tickets")
    for record in to_json_records(df):
        ticket = ElementTree.SubElement(root, "ticket")
        for key, value in record.items():
            if key == "tags":
                tags = ElementTree.SubElement(ticket, "tags")
                for tag in value:
                    ElementTree.SubElement(tags, "tag").text = tag
            elif key == "metadata":
                meta = ElementTree.SubElement(ticket, "metadata")
                for mk, mv in value.items():
                    ElementTree.SubElement(meta, mk).text = mv
            else:
                ElementTree.SubElement(ticket, key).text = str(value)
    ElementTree.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ElementTree.tostring(root, encoding="unicode")


def generate_sample_transactions(n_samples: int = 20) -> Dict[str, List[Dict]]:
    """Seed data in the shape SAMPLE_TRANSACTIONS_PATH expects."""
    np.random.seed(7)
    accounts = [f"ACC-{n:05d}" for n in range(1, 6)]
    currencies = ["USD", "USD", "USD", "EUR", "GBP"]
    txs = []
    for _ in range(n_samples):
        kind = str(np.random.choice(["deposit", "withdrawal", "transfer"], p=[0.4, 0.25, 0.35]))
        src, dst = np.random.choice(accounts, size=2, replace=False)
        tx = {
            "amount": round(float(np.random.uniform(5, 2000)), 2),
            "currency": str(np.random.choice(currencies)),
            "type": kind,
        }
        if kind in ("withdrawal", "transfer"):
            tx["fromAccount"] = str(src)
        if kind in ("deposit", "transfer"):
            tx["toAccount"] = str(dst)
        txs.append(tx)
    return {"sampleTransactions": txs}


def save_sample_files(output_dir: str, n_samples: int = 100) -> None:
    """Write tickets as CSV/JSON/XML plus a transaction seed file."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    df = generate_sample_tickets(n_samples)

    df.to_csv(out / "sample_tickets.csv", index=False)
    (out / "sample_tickets.json").write_text(json.dumps(to_json_records(df), indent=2), encoding="utf-8")
    (out / "sample_tickets.xml").write_text(to_xml(df), encoding="utf-8")
    (out / "sample_transactions.json").write_text(json.dumps(generate_sample_transactions(), indent=2), encoding="utf-8")

    print(f"Sample tickets ({len(df)}) written to {out}")
    print(f"Category distribution:\n{df['category'].replace('', 'unlabelled').value_counts()}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate sample import files")
    parser.add_argument("--output-dir", default="data")
    parser.add_argument("-n", "--n-samples", type=int, default=100)
    args = parser.parse_args()
    save_sample_files(args.output_dir, args.n_samples)

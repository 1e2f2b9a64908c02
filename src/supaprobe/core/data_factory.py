"""
Scratch record generator

Payloads look realistic but always carry the configured test prefix in a
marker column, so anything a probe leaves behind can be swept later.
"""

import uuid
from datetime import date, timedelta
from typing import Any, Dict, Optional

from faker import Faker

from supaprobe.config.settings import ProbeConfig


class DataFactory:
    """Test data generator for the CRM tables"""

    def __init__(self, config: ProbeConfig, seed: Optional[int] = None):
        self.config = config
        self.fake = Faker()
        if seed is not None:
            self.fake.seed_instance(seed)
        self.run_tag = uuid.uuid4().hex[:8]

    @property
    def prefix(self) -> str:
        return self.config.test_data_prefix

    def label(self, text: str) -> str:
        """Marker-bearing display name"""
        return f"{self.prefix} {text} {self.run_tag}"

    def scratch_email(self, role: str = "user") -> str:
        local = f"{self.prefix.lower().replace('_', '-')}-{role}-{self.run_tag}"
        return f"{local}@{self.config.scratch_email_domain}"

    def scratch_password(self) -> str:
        return self.fake.password(length=16, special_chars=True, digits=True, upper_case=True)

    @property
    def this_year(self) -> int:
        return date.today().year

    def day(self, offset_days: int = 0) -> str:
        """ISO date relative to today"""
        return (date.today() + timedelta(days=offset_days)).isoformat()

    def generate_budget_category(self, **overrides) -> Dict[str, Any]:
        data = {
            "name": self.label("Budget Category"),
            "description": "Scratch budget category for CRUD probe",
            "department": "IT",
            "annual_budget": 100000,
            "monthly_budget": 8333.33,
            "is_active": True,
        }
        data.update(overrides)
        return data

    def generate_client(self, **overrides) -> Dict[str, Any]:
        company = self.fake.company()
        data = {
            "name": self.label("Client"),
            "email": f"client-{self.run_tag}@{self.config.scratch_email_domain}",
            "phone": self.fake.numerify("+1##########"),
            "company": f"{company} ({self.prefix})",
            "website": "https://example.com",
            "address": self.fake.address().replace("\n", ", "),
            "notes": "Scratch client created by probe; project kickoff pending.",
            "status": "Lead",
            "reference_source": "referral",
            "reference_details": f"Referred by {self.fake.name()}",
            "proposed_budget": 15000.00,
            "approved_budget": 12000.00,
            "probable_start_date": self.day(14),
            "probable_end_date": self.day(150),
        }
        data.update(overrides)
        return data

    def generate_project(self, client_id: str, **overrides) -> Dict[str, Any]:
        data = {
            "name": self.label("Web Project"),
            "description": self.fake.sentence(),
            "client_id": client_id,
            "status": "Backlog",
            "priority": "Medium",
            "budget": 25000,
            "start_date": self.day(0),
            "end_date": self.day(90),
        }
        data.update(overrides)
        return data

    def generate_invoice(self, client_id: str, **overrides) -> Dict[str, Any]:
        data = {
            "invoice_number": f"INV-{self.prefix}-{self.run_tag}",
            "client_id": client_id,
            "subtotal": 1000.00,
            "tax_rate": 0.10,
            "tax_amount": 100.00,
            "total_amount": 1100.00,
            "issue_date": self.day(0),
            "due_date": self.day(30),
            "status": "Draft",
            "terms": "Net 30",
            "notes": f"{self.prefix} scratch invoice",
        }
        data.update(overrides)
        return data

    def generate_invoice_item(self, invoice_id: str, **overrides) -> Dict[str, Any]:
        data = {
            "invoice_id": invoice_id,
            "item_name": self.label("Service"),
            "description": "Scratch service line",
            "quantity": 2,
            "rate": 500.00,
            "amount": 1000.00,
        }
        data.update(overrides)
        return data

    def generate_payment(self, invoice_id: str, **overrides) -> Dict[str, Any]:
        data = {
            "invoice_id": invoice_id,
            "amount": 600.00,
            "payment_date": self.day(5),
            "payment_method": "bank_transfer",
            "notes": f"{self.prefix} partial payment",
        }
        data.update(overrides)
        return data

    def generate_employee(self, **overrides) -> Dict[str, Any]:
        data = {
            "name": self.label("Employee"),
            "email": f"employee-{self.run_tag}@{self.config.scratch_email_domain}",
            "phone": self.fake.numerify("+1##########"),
            "role": "Developer",
            "department": "IT",
            "joining_date": self.day(-30),
            "base_salary": 75000,
            "status": "active",
            "address": self.fake.address().replace("\n", ", "),
            "emergency_contact": {"name": self.fake.name(), "phone": self.fake.numerify("+1##########")},
        }
        data.update(overrides)
        return data

    def generate_payment_history(self, employee_id: str, **overrides) -> Dict[str, Any]:
        data = {
            "employee_id": employee_id,
            "amount": 7500.00,
            "payment_date": self.day(-1),
            "payment_type": "salary",
            "description": f"{self.prefix} salary payment",
            "status": "completed",
        }
        data.update(overrides)
        return data

    def generate_payment_schedule(self, employee_id: str, **overrides) -> Dict[str, Any]:
        data = {
            "employee_id": employee_id,
            "amount": 7500.00,
            "scheduled_date": self.day(29),
            "payment_type": "salary",
            "description": f"{self.prefix} scheduled salary",
            "status": "pending",
        }
        data.update(overrides)
        return data


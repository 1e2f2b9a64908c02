"""Connectivity and dashboard smoke checks"""

from supaprobe.config.settings import ProbeConfig
from supaprobe.config.tables import CRM_TABLES
from supaprobe.core.data_factory import DataFactory
from supaprobe.models.operations import (
    BatchStep, CountStep, GetSessionStep, GetUserStep, ProbeSequence, ReadStep, SignInStep, SignOutStep,
)

# Tables whose exact row counts the connection check reports
COUNTED_TABLES = CRM_TABLES + ["budget_categories"]


def _dashboard_reads():
    return [
        ReadStep(table="clients", select="id"),
        ReadStep(table="projects", select="id, status, created_at"),
        ReadStep(table="invoices", select="id, status, total_amount"),
        ReadStep(table="payments", select="amount, payment_date"),
    ]


def build_connection(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    return ProbeSequence(
        name="connection",
        description="Reach the REST and auth endpoints with the public key",
        steps=[
            ReadStep(name="query clients table", table="clients", select="id", limit=1, on_failure="abort"),
            *[CountStep(name=f"{table} records", table=table) for table in COUNTED_TABLES],
            GetSessionStep(name="fresh handle has no session", expect_session=False),
            GetUserStep(name="no user without a session", expect="error", expect_session=False),
        ],
    )


def build_dashboard(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    config.require_demo_credentials("dashboard")

    return ProbeSequence(
        name="dashboard",
        description="Dashboard reads as an anonymous visitor, then as the demo user",
        steps=[
            GetSessionStep(name="session before sign-in", expect_session=False),
            BatchStep(name="dashboard reads (anonymous)", steps=_dashboard_reads(), expect="any"),
            SignInStep(
                name="sign in demo user",
                email=config.demo_email,
                password=config.demo_password,
                expect_session=True,
                on_failure="abort",
            ),
            GetUserStep(name="current user", expect_session=True),
            BatchStep(name="dashboard reads (signed in)", steps=_dashboard_reads()),
            SignOutStep(name="sign out", expect_session=False),
        ],
    )

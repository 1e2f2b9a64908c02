"""Inspection and data-clearing sequences"""

from supaprobe.config.settings import ProbeConfig
from supaprobe.config.tables import CRM_TABLES, NIL_UUID
from supaprobe.core.data_factory import DataFactory
from supaprobe.models.operations import CountStep, DeleteStep, ProbeSequence, ReadStep, WhereClause


def build_team_requests(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    return ProbeSequence(
        name="team-requests",
        description="Team requests with their assignee, plus a sample of employees",
        steps=[
            ReadStep(
                name="team requests with assignee",
                table="team_requests",
                client="service",
                select="""
                    *,
                    assignee:assignee_id(id, name, role, department)
                """,
                limit=5,
            ),
            ReadStep(name="sample employees", table="employees", client="service", limit=3),
        ],
    )


def build_clear_data(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    """Delete every row of every CRM table, then report what remains"""
    deletes = [
        DeleteStep(
            name=f"clear {table}",
            table=table,
            where=[WhereClause(field="id", op="neq", value=NIL_UUID)],
        )
        for table in CRM_TABLES
    ]
    counts = [CountStep(name=f"{table} remaining", table=table) for table in CRM_TABLES]
    return ProbeSequence(
        name="clear-data",
        description="Remove all CRM records (destructive)",
        steps=deletes + counts,
        destructive=True,
    )

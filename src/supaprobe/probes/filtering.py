"""Read-only filtering, sorting, relationship and search checks across the CRM tables"""

from supaprobe.config.settings import ProbeConfig
from supaprobe.core.data_factory import DataFactory
from supaprobe.models.operations import OrderByClause, ProbeSequence, ReadStep, WhereClause


def _where(field, op, value):
    return [WhereClause(field=field, op=op, value=value)]


def _top(table, field, direction="desc", limit=5):
    return ReadStep(
        name=f"{table} sorted by {field} {direction}",
        table=table,
        order_by=[OrderByClause(field=field, dir=direction)],
        limit=limit,
    )


def _search(table, term, fields):
    return ReadStep(
        name=f"{table} matching '{term}' in {', '.join(fields)}",
        table=table,
        any_of=[WhereClause(field=name, op="ilike", value=f"%{term}%") for name in fields],
    )


def build_filtering(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    return ProbeSequence(
        name="filtering",
        description="Filters, sorting, embeds, client-side aggregation and multi-column search",
        steps=[
            # Employees
            ReadStep(name="employees in Engineering", table="employees",
                     where=_where("department", "eq", "Engineering")),
            ReadStep(name="active employees", table="employees", where=_where("status", "eq", "active")),
            ReadStep(name="employees named like john", table="employees", where=_where("name", "ilike", "%john%")),
            _top("employees", "name", "asc"),
            # Clients
            ReadStep(name="active clients", table="clients", where=_where("status", "eq", "active")),
            ReadStep(name="clients at tech companies", table="clients", where=_where("company", "ilike", "%tech%")),
            _top("clients", "company", "asc"),
            # Projects
            ReadStep(name="active projects", table="projects", where=_where("status", "eq", "active")),
            ReadStep(name="web projects", table="projects", where=_where("name", "ilike", "%web%")),
            _top("projects", "created_at"),
            # Invoices
            ReadStep(name="paid invoices", table="invoices", where=_where("status", "eq", "paid")),
            ReadStep(name="invoices of 1000 or more", table="invoices", where=_where("total_amount", "gte", 1000)),
            _top("invoices", "total_amount"),
            # Budgets
            ReadStep(name="marketing budgets", table="budget_categories",
                     where=_where("name", "ilike", "%marketing%")),
            _top("budget_categories", "annual_budget"),
            # Payment history
            ReadStep(name="bank transfer payments", table="payment_history",
                     where=_where("payment_method", "eq", "bank_transfer")),
            ReadStep(name="payments since 2024", table="payment_history",
                     where=_where("payment_date", "gte", "2024-01-01")),
            _top("payment_history", "amount"),
            # Relationships
            ReadStep(name="projects with client", table="projects", select="*, clients(company, status)", limit=3),
            ReadStep(name="invoices with client", table="invoices", select="*, clients(company)", limit=3),
            ReadStep(name="payments with employee", table="payment_history",
                     select="*, employees(name, department)", limit=3),
            # Aggregation
            ReadStep(name="active employees by department", table="employees", select="department",
                     where=_where("status", "eq", "active"), group_by="department"),
            ReadStep(name="invoice totals", table="invoices", select="status, total_amount",
                     sum_of="total_amount", group_by="status"),
            # Search
            _search("employees", "test", ["name", "email", "role"]),
            _search("clients", "tech", ["company", "name", "email"]),
        ],
    )

"""
Create/read/update/delete round trips for the CRM tables

Every sequence creates its own scratch rows, exercises filters and
relationships around them, and deletes them in cleanup so a run leaves no
residual records.
"""

from supaprobe.config.settings import ProbeConfig
from supaprobe.core.data_factory import DataFactory
from supaprobe.models.operations import (
    DeleteStep, InsertStep, OrderByClause, ProbeSequence, ReadStep, UpdateStep, WhereClause,
)


def eq(field: str, value) -> WhereClause:
    return WhereClause(field=field, op="eq", value=value)


def by_id(ref: str) -> list:
    return [eq("id", f"${{{ref}.id}}")]


def status_walk(table: str, ref: str, column: str, labels) -> list:
    """Push each label through an update; the backend decides what it accepts"""
    return [
        UpdateStep(
            name=f"{table} {column} -> {label}",
            table=table,
            values={column: label},
            where=by_id(ref),
            expect_fields={column: label},
        )
        for label in labels
    ]


def build_budget_crud(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    return ProbeSequence(
        name="budget-crud",
        description="Budget category round trip: 100000 -> 120000, filters, status, sorting, search",
        steps=[
            InsertStep(
                name="create budget category",
                table="budget_categories",
                values=factory.generate_budget_category(annual_budget=100000),
                save_as="budget",
                expect_fields={"annual_budget": 100000},
                on_failure="abort",
            ),
            ReadStep(
                name="read budget category",
                table="budget_categories",
                where=by_id("budget"),
                single=True,
                expect_fields={"annual_budget": 100000},
            ),
            UpdateStep(
                name="raise annual budget",
                table="budget_categories",
                values={
                    "name": factory.label("Updated Budget Category"),
                    "annual_budget": 120000,
                    "allocated_amount": 20000,
                    "remaining_amount": 100000,
                },
                where=by_id("budget"),
                expect_fields={"annual_budget": 120000},
            ),
            ReadStep(
                name="read back updated budget",
                table="budget_categories",
                where=by_id("budget"),
                single=True,
                expect_fields={"annual_budget": 120000},
            ),
            ReadStep(
                name="filter by department",
                table="budget_categories",
                where=[eq("department", "IT")],
                expect_min_rows=1,
            ),
            ReadStep(
                name="filter active categories",
                table="budget_categories",
                where=[eq("is_active", True)],
            ),
            ReadStep(
                name="total annual budget",
                table="budget_categories",
                select="annual_budget, is_active",
                sum_of="annual_budget",
            ),
            *status_walk("budget_categories", "budget", "is_active", [True, False]),
            ReadStep(
                name="budget_categories columns",
                table="budget_categories",
                limit=1,
                show_columns=True,
            ),
            UpdateStep(
                name="update monthly allocation",
                table="budget_categories",
                values={"monthly_budget": 5000},
                where=by_id("budget"),
                expect_fields={"monthly_budget": 5000},
            ),
            ReadStep(
                name="sort by annual budget",
                table="budget_categories",
                order_by=[OrderByClause(field="annual_budget", dir="desc")],
                limit=5,
            ),
            ReadStep(
                name="search by name",
                table="budget_categories",
                where=[WhereClause(field="name", op="ilike", value=f"%{config.test_data_prefix}%")],
                expect_min_rows=1,
            ),
            ReadStep(
                name="created this year",
                table="budget_categories",
                where=[
                    WhereClause(field="created_at", op="gte", value=f"{factory.this_year}-01-01"),
                    WhereClause(field="created_at", op="lte", value=f"{factory.this_year}-12-31T23:59:59"),
                ],
                expect_min_rows=1,
            ),
            DeleteStep(
                name="delete budget category",
                table="budget_categories",
                where=by_id("budget"),
                expect_rows=1,
            ),
            ReadStep(
                name="confirm budget category is gone",
                table="budget_categories",
                where=by_id("budget"),
                expect_rows=0,
            ),
        ],
        cleanup=[
            DeleteStep(name="remove scratch budget category", table="budget_categories", where=by_id("budget")),
        ],
    )


def build_client_crud(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    return ProbeSequence(
        name="client-crud",
        description="Client round trip with website, notes, budgets and dates",
        steps=[
            InsertStep(
                name="create client",
                table="clients",
                values=factory.generate_client(),
                save_as="client",
                expect_fields={"status": "Lead"},
                on_failure="abort",
            ),
            ReadStep(
                name="read client",
                table="clients",
                where=by_id("client"),
                single=True,
                expect_fields={"approved_budget": 12000},
                on_failure="abort",
            ),
            UpdateStep(
                name="activate client",
                table="clients",
                values={
                    "website": "https://updated.example.com",
                    "status": "Active",
                    "notes": "Updated notes: client activated and project started.",
                    "approved_budget": 15000.00,
                    "actual_start_date": factory.day(0),
                },
                where=by_id("client"),
                expect_fields={"status": "Active", "approved_budget": 15000},
                on_failure="abort",
            ),
            ReadStep(
                name="filter active clients",
                table="clients",
                select="name, status, website",
                where=[eq("status", "Active")],
                expect_min_rows=1,
                on_failure="abort",
            ),
            ReadStep(
                name="search notes",
                table="clients",
                select="name, notes",
                where=[WhereClause(field="notes", op="ilike", value="%project%")],
                expect_min_rows=1,
                on_failure="abort",
            ),
            ReadStep(
                name="budget totals",
                table="clients",
                select="name, proposed_budget, approved_budget",
                where=[WhereClause(field="proposed_budget", op="is", value=None, negate=True)],
                sum_of="approved_budget",
                on_failure="abort",
            ),
            InsertStep(
                name="insert client with malformed website",
                table="clients",
                values={
                    "name": factory.label("Invalid Website"),
                    "email": factory.scratch_email("invalid-website"),
                    "website": "not-a-valid-url",
                },
                save_as="invalid_client",
                expect="any",
            ),
        ],
        cleanup=[
            DeleteStep(name="remove malformed-website client", table="clients", where=by_id("invalid_client")),
            DeleteStep(name="remove scratch client", table="clients", where=by_id("client")),
        ],
    )


def build_project_crud(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    return ProbeSequence(
        name="project-crud",
        description="Project round trip with client relationship and status labels",
        steps=[
            InsertStep(
                name="create parent client",
                table="clients",
                values=factory.generate_client(status="Active"),
                save_as="client",
                on_failure="abort",
            ),
            InsertStep(
                name="create project",
                table="projects",
                values=factory.generate_project("${client.id}"),
                save_as="project",
                on_failure="abort",
            ),
            ReadStep(
                name="read project",
                table="projects",
                where=by_id("project"),
                single=True,
                expect_fields={"client_id": "${client.id}"},
            ),
            UpdateStep(
                name="update project",
                table="projects",
                values={"description": "Updated scratch project", "budget": 30000},
                where=by_id("project"),
                expect_fields={"budget": 30000},
            ),
            ReadStep(
                name="projects for client with embed",
                table="projects",
                select="*, clients(name, company)",
                where=[eq("client_id", "${client.id}")],
                expect_rows=1,
            ),
            ReadStep(
                name="filter in-progress projects",
                table="projects",
                where=[eq("status", "In Progress")],
            ),
            ReadStep(
                name="total project budget",
                table="projects",
                select="budget, status",
                sum_of="budget",
            ),
            *status_walk(
                "projects", "project", "status",
                ["Backlog", "Ready to Quote", "Quoted", "Scheduled", "In Progress", "Completed"],
            ),
            ReadStep(name="projects columns", table="projects", limit=1, show_columns=True),
            ReadStep(
                name="project with client details",
                table="projects",
                select="""
                    *,
                    clients(name, company, email)
                """,
                where=by_id("project"),
                single=True,
            ),
            ReadStep(
                name="projects within date range",
                table="projects",
                where=[
                    WhereClause(field="start_date", op="gte", value=f"{factory.this_year}-01-01"),
                    WhereClause(field="end_date", op="lte", value=f"{factory.this_year + 1}-12-31"),
                ],
            ),
        ],
        cleanup=[
            DeleteStep(name="remove scratch project", table="projects", where=by_id("project")),
            DeleteStep(name="remove parent client", table="clients", where=by_id("client")),
        ],
    )


def build_invoice_crud(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    return ProbeSequence(
        name="invoice-crud",
        description="Invoice round trip with line items, payments and client embeds",
        steps=[
            InsertStep(
                name="create parent client",
                table="clients",
                values=factory.generate_client(status="Active", proposed_budget=10000, approved_budget=8000),
                save_as="client",
                on_failure="abort",
            ),
            InsertStep(
                name="create invoice",
                table="invoices",
                values=factory.generate_invoice("${client.id}"),
                save_as="invoice",
                on_failure="abort",
            ),
            ReadStep(
                name="read invoice",
                table="invoices",
                where=by_id("invoice"),
                single=True,
                expect_fields={"total_amount": 1100},
            ),
            UpdateStep(
                name="send invoice",
                table="invoices",
                values={"status": "Sent", "total_amount": 1200.00, "notes": f"{config.test_data_prefix} updated"},
                where=by_id("invoice"),
                expect_fields={"status": "Sent", "total_amount": 1200},
            ),
            InsertStep(
                name="add invoice item",
                table="invoice_items",
                values=factory.generate_invoice_item("${invoice.id}"),
                save_as="item",
            ),
            InsertStep(
                name="record payment",
                table="payments",
                values=factory.generate_payment("${invoice.id}"),
                save_as="payment",
            ),
            ReadStep(
                name="invoices for client with embed",
                table="invoices",
                select="*, clients(name, company)",
                where=[eq("client_id", "${client.id}")],
                expect_rows=1,
            ),
            ReadStep(
                name="invoice with items",
                table="invoices",
                select="*, invoice_items(*)",
                where=by_id("invoice"),
                single=True,
            ),
            ReadStep(
                name="invoice with payments",
                table="invoices",
                select="*, payments(*)",
                where=by_id("invoice"),
                single=True,
            ),
            ReadStep(name="filter sent invoices", table="invoices", where=[eq("status", "Sent")], expect_min_rows=1),
            ReadStep(
                name="total invoiced",
                table="invoices",
                select="total_amount, status",
                sum_of="total_amount",
            ),
            *status_walk("invoices", "invoice", "status", ["Draft", "Sent", "Paid"]),
            ReadStep(name="invoices columns", table="invoices", limit=1, show_columns=True),
        ],
        cleanup=[
            DeleteStep(name="remove payment", table="payments", where=by_id("payment")),
            DeleteStep(name="remove invoice item", table="invoice_items", where=by_id("item")),
            DeleteStep(name="remove invoice", table="invoices", where=by_id("invoice")),
            DeleteStep(name="remove parent client", table="clients", where=by_id("client")),
        ],
    )


def build_employee_crud(config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    return ProbeSequence(
        name="employee-crud",
        description="Employee round trip with payment history and schedules",
        steps=[
            InsertStep(
                name="create employee",
                table="employees",
                values=factory.generate_employee(),
                save_as="employee",
                on_failure="abort",
            ),
            ReadStep(
                name="read employee",
                table="employees",
                where=by_id("employee"),
                single=True,
                expect_fields={"base_salary": 75000},
            ),
            UpdateStep(
                name="promote employee",
                table="employees",
                values={"role": "Senior Developer", "base_salary": 85000, "department": "Engineering"},
                where=by_id("employee"),
                expect_fields={"role": "Senior Developer", "base_salary": 85000},
            ),
            InsertStep(
                name="record salary payment",
                table="payment_history",
                values=factory.generate_payment_history("${employee.id}"),
                save_as="paid",
            ),
            InsertStep(
                name="schedule salary payment",
                table="payment_schedules",
                values=factory.generate_payment_schedule("${employee.id}"),
                save_as="scheduled",
            ),
            ReadStep(
                name="employee with payments",
                table="employees",
                select="*, payment_history(*), payment_schedules(*)",
                where=by_id("employee"),
                single=True,
            ),
            ReadStep(
                name="filter engineering employees",
                table="employees",
                where=[eq("department", "Engineering")],
                expect_min_rows=1,
            ),
            ReadStep(
                name="total base salary",
                table="employees",
                select="base_salary, status",
                sum_of="base_salary",
            ),
            *status_walk("employees", "employee", "status", ["active", "on_leave", "inactive"]),
            UpdateStep(
                name="mark schedule paid",
                table="payment_schedules",
                values={"status": "completed"},
                where=by_id("scheduled"),
                expect_fields={"status": "completed"},
            ),
            ReadStep(
                name="payment history for employee",
                table="payment_history",
                where=[eq("employee_id", "${employee.id}")],
                expect_rows=1,
            ),
            ReadStep(name="employees columns", table="employees", limit=1, show_columns=True),
        ],
        cleanup=[
            DeleteStep(name="remove payment history", table="payment_history", where=by_id("paid")),
            DeleteStep(name="remove payment schedule", table="payment_schedules", where=by_id("scheduled")),
            DeleteStep(name="remove scratch employee", table="employees", where=by_id("employee")),
        ],
    )

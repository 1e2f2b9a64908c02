"""
ProbeRunner sequencing, expectations and failure handling
"""

import pytest

from supaprobe.core.runner import ProbeRunner, values_match
from supaprobe.models.operations import (
    BatchStep, DeleteStep, GetSessionStep, InsertStep, ProbeSequence, ReadStep,
    SignInStep, UpdateStep, WhereClause,
)
from supaprobe.models.results import STATUS_ERROR, STATUS_FAILED, STATUS_PASSED, STATUS_SKIPPED
from supaprobe.utils.error_handling import MissingCredentialError


def by_id(ref):
    return [WhereClause(field="id", value=f"${{{ref}.id}}")]


class TestValuesMatch:

    @pytest.mark.parametrize("actual,expected", [
        (100000, 100000), ("100000.00", 100000), (8333.33, "8333.33"), (True, True), (None, None), ("IT", "IT"),
    ])
    def test_equal(self, actual, expected):
        assert values_match(actual, expected)

    @pytest.mark.parametrize("actual,expected", [
        (120000, 100000), (1, True), (None, 0), ("IT", "HR"),
    ])
    def test_not_equal(self, actual, expected):
        assert not values_match(actual, expected)


class TestSequencing:
    """Order, saved values and cleanup"""

    @pytest.mark.asyncio
    async def test_steps_run_in_order_and_share_saved_values(self, runner, backend, reporter):
        sequence = ProbeSequence(
            name="round-trip",
            steps=[
                InsertStep(table="clients", values={"name": "PROBE_TEST a", "status": "Lead"}, save_as="client"),
                UpdateStep(table="clients", values={"status": "Active"}, where=by_id("client"),
                           expect_fields={"status": "Active"}),
                ReadStep(table="clients", where=by_id("client"), single=True,
                         expect_fields={"name": "PROBE_TEST a", "status": "Active"}),
            ],
            cleanup=[DeleteStep(table="clients", where=by_id("client"), expect_rows=1)],
        )
        result = await runner.run(sequence)

        assert result.passed, result.to_dict()
        assert [s.kind for s in result.steps] == ["insert", "update", "read"]
        assert [s.index for s in result.all_steps] == [1, 2, 3, 4]
        assert result.cleanup[0].cleanup
        assert backend.tables["clients"] == []
        assert reporter.events[0] == ("started", "round-trip")
        assert reporter.events[-1] == ("finished", "round-trip")

        methods = [r.method for r in backend.requests]
        assert methods == ["POST", "PATCH", "GET", "DELETE"]

    @pytest.mark.asyncio
    async def test_unresolved_reference_skips_the_step(self, runner, backend):
        sequence = ProbeSequence(
            name="skip",
            steps=[
                InsertStep(table="clients", values={"name": "x"}, save_as="client", expect="error"),
                ReadStep(table="clients", where=by_id("never_saved")),
            ],
        )
        result = await runner.run(sequence)
        assert result.steps[1].status == STATUS_SKIPPED
        assert "never_saved.id" in result.steps[1].message
        # The insert succeeded, so expect="error" fails it
        assert result.steps[0].status == STATUS_FAILED
        assert not result.passed

    @pytest.mark.asyncio
    async def test_failed_save_is_not_recorded(self, runner, backend):
        backend.constraints["clients"] = lambda row: "violates check constraint"
        sequence = ProbeSequence(
            name="constraint",
            steps=[InsertStep(table="clients", values={"name": "x"}, save_as="client", expect="any")],
            cleanup=[DeleteStep(table="clients", where=by_id("client"))],
        )
        result = await runner.run(sequence)
        assert result.steps[0].status == STATUS_PASSED
        assert "violates check constraint" in result.steps[0].message
        assert result.cleanup[0].status == STATUS_SKIPPED

    @pytest.mark.asyncio
    async def test_abort_on_failure_stops_main_steps_but_not_cleanup(self, runner, backend):
        sequence = ProbeSequence(
            name="abort",
            steps=[
                InsertStep(table="clients", values={"name": "x"}, save_as="client"),
                ReadStep(table="clients", expect_rows=5, on_failure="abort"),
                ReadStep(table="clients"),
            ],
            cleanup=[DeleteStep(table="clients", where=by_id("client"))],
        )
        result = await runner.run(sequence)
        assert result.aborted
        assert result.exception is None
        assert len(result.steps) == 2
        assert result.steps[1].message == "expected 5 rows, got 1"
        assert result.cleanup[0].status == STATUS_PASSED
        assert backend.tables["clients"] == []

    @pytest.mark.asyncio
    async def test_continue_on_failure(self, runner):
        sequence = ProbeSequence(
            name="continue",
            steps=[
                ReadStep(table="no_such_table"),
                ReadStep(table="clients"),
            ],
        )
        result = await runner.run(sequence)
        assert [s.status for s in result.steps] == [STATUS_FAILED, STATUS_PASSED]
        assert result.steps[0].error.code == "42P01"

    @pytest.mark.asyncio
    async def test_exception_aborts_and_cleanup_still_runs(self, runner, backend):
        backend.broken_paths.add("/rest/v1/projects")
        sequence = ProbeSequence(
            name="exception",
            steps=[
                InsertStep(table="clients", values={"name": "x"}, save_as="client"),
                ReadStep(table="projects"),
                ReadStep(table="clients"),
            ],
            cleanup=[DeleteStep(table="clients", where=by_id("client"))],
        )
        result = await runner.run(sequence)

        assert result.steps[1].status == STATUS_ERROR
        assert "ConnectError" in result.steps[1].message
        assert "trace" in result.steps[1].message
        assert result.exception is not None
        assert len(result.steps) == 2
        assert result.cleanup[0].status == STATUS_PASSED
        assert not result.passed
        assert backend.tables["clients"] == []


class TestExpectations:

    @pytest.mark.asyncio
    async def test_expected_error_passes(self, runner, backend):
        backend.add_user("demo@example.com", "right")
        sequence = ProbeSequence(
            name="bad-login",
            steps=[
                SignInStep(email="demo@example.com", password="wrong", expect="error", expect_session=False),
                GetSessionStep(expect_session=False),
            ],
        )
        result = await runner.run(sequence)
        assert result.passed
        assert "Invalid login credentials" in result.steps[0].message

    @pytest.mark.asyncio
    async def test_field_mismatch_reported(self, runner, backend):
        backend.seed("budget_categories", name="b", annual_budget=100000)
        sequence = ProbeSequence(
            name="mismatch",
            steps=[ReadStep(table="budget_categories", expect_fields={"annual_budget": 120000, "missing": 1})],
        )
        result = await runner.run(sequence)
        message = result.steps[0].message
        assert "annual_budget = 100000, expected 120000" in message
        assert "missing missing from result" in message

    @pytest.mark.asyncio
    async def test_any_of_matches_values_with_commas(self, runner, backend):
        backend.seed("clients", name="a", company="Acme, Inc.")
        backend.seed("clients", name="b", company="Acme")
        sequence = ProbeSequence(
            name="any-of",
            steps=[ReadStep(
                table="clients",
                any_of=[
                    WhereClause(field="company", value="Acme, Inc."),
                    WhereClause(field="name", op="ilike", value="%zz%"),
                ],
                expect_rows=1,
                expect_fields={"name": "a"},
            )],
        )
        result = await runner.run(sequence)
        assert result.passed, result.to_dict()

    @pytest.mark.asyncio
    async def test_read_details(self, runner, backend):
        backend.seed("invoices", status="Paid", total_amount="1000.50")
        backend.seed("invoices", status="Sent", total_amount=200)
        sequence = ProbeSequence(
            name="details",
            steps=[ReadStep(table="invoices", sum_of="total_amount", group_by="status", show_columns=True)],
        )
        result = await runner.run(sequence)
        details = result.steps[0].details
        assert "sum(total_amount) = 1,200.50" in details
        assert "by status: {'Paid': 1, 'Sent': 1}" in details
        assert any(d.startswith("columns: id, created_at") for d in details)


class TestBatch:

    @pytest.mark.asyncio
    async def test_batch_reads_all_tables(self, runner, backend):
        backend.seed("clients", name="c")
        backend.seed("projects", name="p")
        sequence = ProbeSequence(
            name="batch",
            steps=[
                BatchStep(
                    steps=[ReadStep(table="clients"), ReadStep(table="projects", save_as="p")],
                    save_as="dash",
                ),
                ReadStep(table="clients", where=[WhereClause(field="id", value="${dash.clients.0.id}")],
                         expect_rows=1),
                # Inner reads are keyed by their own save_as under the batch
                ReadStep(table="projects", where=[WhereClause(field="id", value="${dash.p.0.id}")],
                         expect_rows=1),
                ReadStep(table="projects", where=[WhereClause(field="id", value="${p.0.id}")]),
            ],
        )
        result = await runner.run(sequence)
        assert [s.status for s in result.steps] == [STATUS_PASSED, STATUS_PASSED, STATUS_PASSED, STATUS_SKIPPED]
        assert result.passed, result.to_dict()
        assert result.steps[0].details == ["read clients: 1 rows", "read projects: 1 rows"]

    @pytest.mark.asyncio
    async def test_batch_reports_first_error(self, runner):
        sequence = ProbeSequence(
            name="batch-error",
            steps=[BatchStep(steps=[ReadStep(table="clients"), ReadStep(table="nope")])],
        )
        result = await runner.run(sequence)
        assert result.steps[0].status == STATUS_FAILED
        assert result.steps[0].error.code == "42P01"


class TestCredentials:

    @pytest.mark.asyncio
    async def test_missing_service_key_fails_before_any_request(self, anon_only_config, backend):
        runner = ProbeRunner(anon_only_config, transport=backend.transport)
        sequences = [
            ProbeSequence(name="reads", steps=[ReadStep(table="clients")]),
            ProbeSequence(name="admin", steps=[ReadStep(table="clients", client="service")]),
        ]
        with pytest.raises(MissingCredentialError):
            await runner.run_all(sequences)
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_run_all_reports_once(self, runner, reporter):
        sequences = [
            ProbeSequence(name="one", steps=[ReadStep(table="clients")]),
            ProbeSequence(name="two", steps=[ReadStep(table="projects")]),
        ]
        results = await runner.run_all(sequences)
        assert [r.name for r in results] == ["one", "two"]
        assert reporter.events[-1] == ("run", 2)

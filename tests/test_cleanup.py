"""
Scratch data sweeper
"""

import pytest

from supaprobe.core.cleanup import ScratchDataCleanupJob


@pytest.fixture
def seeded(backend):
    backend.seed("clients", name="PROBE_TEST Client abc123")
    backend.seed("clients", name="Real Customer")
    backend.seed("invoices", invoice_number="INV-PROBE_TEST-abc123")
    backend.seed("payments", notes=None)
    backend.add_user("probe-test-signup-abc123@probe-test.example.com", "pw")
    backend.add_user("someone@company.com", "pw")
    return backend


class TestScratchDataCleanupJob:

    @pytest.mark.asyncio
    async def test_dry_run_counts_without_deleting(self, probe_config, seeded):
        job = ScratchDataCleanupJob(probe_config, dry_run=True, include_users=True, transport=seeded.transport)
        result = await job.run_cleanup()

        assert result["success"]
        assert result["stats"]["records_deleted"] == 2
        assert result["stats"]["users_deleted"] == 1
        assert len(seeded.tables["clients"]) == 2
        assert len(seeded.users) == 2

    @pytest.mark.asyncio
    async def test_deletes_only_marked_rows(self, probe_config, seeded):
        job = ScratchDataCleanupJob(probe_config, include_users=True, transport=seeded.transport)
        result = await job.run_cleanup()

        assert result["success"]
        assert result["stats"]["tables_processed"] == 9
        assert [row["name"] for row in seeded.tables["clients"]] == ["Real Customer"]
        assert seeded.tables["invoices"] == []
        assert len(seeded.tables["payments"]) == 1
        assert [user["email"] for user in seeded.users] == ["someone@company.com"]

    @pytest.mark.asyncio
    async def test_users_need_service_key(self, anon_only_config, seeded):
        job = ScratchDataCleanupJob(anon_only_config, include_users=True, transport=seeded.transport)
        result = await job.run_cleanup()

        assert not result["success"]
        assert "SUPABASE_SERVICE_ROLE_KEY" in result["stats"]["errors"][0]
        assert len(seeded.users) == 2

    @pytest.mark.asyncio
    async def test_table_errors_are_recorded(self, probe_config, backend):
        del backend.tables["payment_schedules"]
        job = ScratchDataCleanupJob(probe_config, transport=backend.transport)
        result = await job.run_cleanup()

        assert not result["success"]
        assert "payment_schedules" in result["stats"]["errors"][0]
        assert result["stats"]["tables_processed"] == 9

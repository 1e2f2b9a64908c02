"""
Scratch data sweeper

Removes records left behind by interrupted probe runs: rows whose marker
column contains the test prefix and, optionally, auth users on the scratch
email domain.
"""

import logging
import time
from typing import Any, Dict, Optional

from supaprobe.config.settings import ProbeConfig
from supaprobe.config.tables import get_cleanup_order, get_table_config
from supaprobe.core.client import BackendClient
from supaprobe.models.operations import WhereClause

logger = logging.getLogger(__name__)


class ScratchDataCleanupJob:
    """Sweeps probe leftovers through the REST API"""

    def __init__(
        self,
        config: ProbeConfig,
        dry_run: bool = False,
        include_users: bool = False,
        transport=None,
    ):
        self.config = config
        self.dry_run = dry_run
        self.include_users = include_users
        self.transport = transport
        self.cleanup_stats: Dict[str, Any] = {
            "tables_processed": 0,
            "records_deleted": 0,
            "users_deleted": 0,
            "errors": [],
        }

    def _client(self, tier: str) -> BackendClient:
        return BackendClient(
            self.config.supabase_url,
            self.config.key_for(tier),
            timeout=self.config.request_timeout,
            transport=self.transport,
            tier=tier,
        )

    def _marker_filter(self, table_name: str) -> WhereClause:
        column = get_table_config(table_name).marker_column
        return WhereClause(field=column, op="ilike", value=f"%{self.config.test_data_prefix}%")

    async def cleanup_table(self, client: BackendClient, table_name: str) -> int:
        """Clean up scratch records from a specific table"""
        print(f"   🧹 Cleaning {table_name}...")
        marker = self._marker_filter(table_name)

        if self.dry_run:
            response = await client.count(table_name, [marker])
            if not response.ok:
                self._record_error(f"Error counting {table_name}: {response.error}")
                return 0
            print(f"      🔍 Would delete {response.data} records (DRY RUN)")
            return response.data or 0

        response = await client.delete(table_name, [marker])
        if not response.ok:
            self._record_error(f"Error cleaning {table_name}: {response.error}")
            return 0
        print(f"      ✅ Deleted {response.count} records")
        return response.count or 0

    def _is_scratch_email(self, email: Optional[str]) -> bool:
        if not email:
            return False
        email = email.lower()
        slug = self.config.test_data_prefix.lower().replace("_", "-")
        return email.endswith(f"@{self.config.scratch_email_domain}") and email.startswith(slug)

    async def cleanup_users(self, client: BackendClient) -> int:
        """Delete auth users created by sign-up and admin probes"""
        print("   🔍 Cleaning scratch auth users...")
        response = await client.admin_list_users(per_page=1000)
        if not response.ok:
            self._record_error(f"Error listing users: {response.error}")
            return 0

        scratch_users = [u for u in response.rows if self._is_scratch_email(u.get("email"))]
        if self.dry_run:
            print(f"      🔍 Would delete {len(scratch_users)} users (DRY RUN)")
            return len(scratch_users)

        deleted = 0
        for user in scratch_users:
            result = await client.admin_delete_user(user["id"])
            if result.ok:
                deleted += 1
            else:
                self._record_error(f"Error deleting user {user.get('email')}: {result.error}")
        print(f"      ✅ Deleted {deleted} users")
        return deleted

    def _record_error(self, message: str) -> None:
        print(f"      ❌ {message}")
        logger.warning(message)
        self.cleanup_stats["errors"].append(message)

    async def run_cleanup(self) -> Dict[str, Any]:
        """Execute complete cleanup process"""
        start_time = time.time()

        tier = "service" if self.config.service_role_key else "anon"
        print("🧹 Starting Scratch Data Cleanup...")
        print(f"   Mode: {'DRY RUN' if self.dry_run else 'EXECUTE'}")
        print(f"   Key: {tier}")
        print(f"   Marker: {self.config.test_data_prefix}")

        async with self._client(tier) as client:
            for table_name in get_cleanup_order():
                deleted = await self.cleanup_table(client, table_name)
                self.cleanup_stats["records_deleted"] += deleted
                self.cleanup_stats["tables_processed"] += 1

            if self.include_users:
                if tier != "service":
                    self._record_error("SUPABASE_SERVICE_ROLE_KEY is required to clean auth users")
                else:
                    self.cleanup_stats["users_deleted"] = await self.cleanup_users(client)

        duration = time.time() - start_time

        print("\n📊 Cleanup Summary:")
        print(f"   Tables Processed: {self.cleanup_stats['tables_processed']}")
        print(f"   Records {'Matched' if self.dry_run else 'Deleted'}: {self.cleanup_stats['records_deleted']}")
        if self.include_users:
            print(f"   Users {'Matched' if self.dry_run else 'Deleted'}: {self.cleanup_stats['users_deleted']}")
        print(f"   Duration: {duration:.2f}s")

        if self.cleanup_stats["errors"]:
            print(f"   ⚠️  Errors: {len(self.cleanup_stats['errors'])}")
        else:
            print("   ✅ No errors")

        return {
            "success": len(self.cleanup_stats["errors"]) == 0,
            "stats": self.cleanup_stats,
            "duration": duration,
        }

"""
Probe sequence runner

Interprets a ``ProbeSequence`` step by step: resolve references, issue the
call, check expectations, report. API errors are values and the sequence
moves on unless the step asks to abort; an exception aborts the remaining
main steps. Cleanup steps always run.
"""

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence

from supaprobe.config.settings import ProbeConfig
from supaprobe.core.client import BackendClient
from supaprobe.core.context import ProbeContext
from supaprobe.core.keys import token_subject
from supaprobe.core.reporter import Reporter
from supaprobe.models.operations import (
    AdminCreateUserStep, AdminDeleteUserStep, AdminListUsersStep, AdminUpdateUserStep,
    BatchStep, CountStep, DeleteStep, GetSessionStep, GetUserStep, InsertStep,
    ProbeSequence, ReadStep, RpcStep, SignInStep, SignOutStep, SignUpStep, UpdateStep,
)
from supaprobe.models.results import (
    STATUS_ERROR, STATUS_FAILED, STATUS_PASSED, STATUS_SKIPPED,
    APIResponse, SequenceResult, StepResult,
)
from supaprobe.utils.error_handling import UnresolvedReferenceError, log_exception, sanitize_data

logger = logging.getLogger(__name__)


@dataclass
class StepOutcome:
    """What a handler observed for one call"""
    response: APIResponse
    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: Optional[int] = None
    saved: Any = None
    has_session: Optional[bool] = None
    details: List[str] = field(default_factory=list)


def values_match(actual: Any, expected: Any) -> bool:
    """Compare a read-back value, tolerant of numeric formatting"""
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    if actual is None or expected is None:
        return actual is expected
    try:
        return Decimal(str(actual)) == Decimal(str(expected))
    except (InvalidOperation, ValueError):
        return str(actual) == str(expected)


def _as_rows(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    if isinstance(data, dict):
        return [data]
    return []


def _format_amount(value: Decimal) -> str:
    return f"{value:,.2f}"


class ProbeRunner:
    """Executes probe sequences against one Supabase project"""

    def __init__(
        self,
        config: ProbeConfig,
        reporter: Optional[Reporter] = None,
        transport=None,
    ):
        self.config = config
        self.reporter = reporter or Reporter()
        self.transport = transport
        self._handlers = {
            "read": self._run_read,
            "insert": self._run_insert,
            "update": self._run_update,
            "delete": self._run_delete,
            "count": self._run_count,
            "rpc": self._run_rpc,
            "sign_in": self._run_sign_in,
            "sign_up": self._run_sign_up,
            "sign_out": self._run_sign_out,
            "get_session": self._run_get_session,
            "get_user": self._run_get_user,
            "admin_list_users": self._run_admin_list_users,
            "admin_create_user": self._run_admin_create_user,
            "admin_update_user": self._run_admin_update_user,
            "admin_delete_user": self._run_admin_delete_user,
            "batch": self._run_batch,
        }

    def _create_clients(self, tiers) -> Dict[str, BackendClient]:
        return {
            tier: BackendClient(
                self.config.supabase_url,
                self.config.key_for(tier),
                timeout=self.config.request_timeout,
                transport=self.transport,
                tier=tier,
            )
            for tier in sorted(tiers)
        }

    async def run_all(self, sequences: Sequence[ProbeSequence]) -> List[SequenceResult]:
        """Run sequences one after another"""
        for sequence in sequences:
            self.config.require_tiers(sequence.name, sequence.required_tiers())

        results = []
        for sequence in sequences:
            results.append(await self.run(sequence))
        self.reporter.run_finished(results)
        return results

    async def run(self, sequence: ProbeSequence) -> SequenceResult:
        """Execute one sequence, cleanup included"""
        self.config.require_tiers(sequence.name, sequence.required_tiers())

        self.reporter.sequence_started(sequence)
        logger.info(f"Starting probe {sequence.name} ({len(sequence.steps)} steps)")

        result = SequenceResult(name=sequence.name)
        context = ProbeContext()
        clients = self._create_clients(sequence.required_tiers())
        start_time = time.time()
        index = 0

        try:
            for client in clients.values():
                await client.open()

            for step in sequence.steps:
                index += 1
                step_result = await self._run_step(index, step, clients, context, sequence.name)
                result.steps.append(step_result)
                self.reporter.step_finished(step_result)

                if step_result.status == STATUS_ERROR:
                    result.aborted = True
                    result.exception = step_result.message
                    break
                if step_result.status == STATUS_FAILED and step.on_failure == "abort":
                    result.aborted = True
                    break

            for step in sequence.cleanup:
                index += 1
                step_result = await self._run_step(index, step, clients, context, sequence.name, cleanup=True)
                result.cleanup.append(step_result)
                self.reporter.step_finished(step_result)
        finally:
            for client in clients.values():
                await client.close()
            result.duration = time.time() - start_time

        logger.info(f"Probe {sequence.name} finished: {result.get_success_summary()}")
        self.reporter.sequence_finished(result)
        return result

    async def _run_step(
        self,
        index: int,
        step,
        clients: Dict[str, BackendClient],
        context: ProbeContext,
        sequence_name: str,
        cleanup: bool = False,
    ) -> StepResult:
        start_time = time.time()

        try:
            resolved = type(step).model_validate(context.resolve(step.model_dump()))
        except UnresolvedReferenceError as e:
            return StepResult(
                index, step.describe(), step.op, STATUS_SKIPPED,
                message=f"needs ${{{e.reference}}} from an earlier step", cleanup=cleanup,
            )

        label = resolved.describe()
        try:
            outcome = await self._handlers[resolved.op](resolved, clients)
        except Exception as e:
            trace_id = log_exception(
                "probe_step_exception",
                f"{sequence_name}: step {index} ({label}) raised",
                exception=e,
                extra_context={"step": resolved.model_dump()},
            )
            return StepResult(
                index, label, resolved.op, STATUS_ERROR,
                duration=time.time() - start_time,
                message=f"{type(e).__name__}: {e} (trace {trace_id})",
                cleanup=cleanup,
            )

        duration = time.time() - start_time
        status, message = self._evaluate(resolved, outcome)

        if resolved.save_as and outcome.response.ok and outcome.saved is not None:
            context.save(resolved.save_as, outcome.saved)

        if outcome.response.error is not None:
            level = logging.INFO if status == STATUS_PASSED else logging.WARNING
            logger.log(level, f"{sequence_name}: {label} returned error {outcome.response.error}")
        logger.info(f"{sequence_name}: [{index}] {label} -> {status} in {duration:.3f}s")

        return StepResult(
            index, label, resolved.op, status,
            duration=duration,
            message=message,
            error=outcome.response.error,
            row_count=outcome.row_count,
            details=outcome.details,
            cleanup=cleanup,
        )

    def _evaluate(self, step, outcome: StepOutcome):
        """Check a step's expectations against what came back"""
        response = outcome.response
        problems = []

        if step.expect_session is not None and outcome.has_session is not None:
            if outcome.has_session != step.expect_session:
                problems.append(
                    "expected an active session" if step.expect_session else "expected no session"
                )

        if step.expect == "error":
            if response.ok:
                problems.insert(0, "expected an error but the call succeeded")
                return STATUS_FAILED, "; ".join(problems)
            if problems:
                return STATUS_FAILED, "; ".join(problems)
            return STATUS_PASSED, f"rejected as expected: {response.error}"

        if not response.ok:
            if step.expect == "any":
                return STATUS_PASSED, f"backend returned an error: {response.error}"
            return STATUS_FAILED, str(response.error)

        count = outcome.row_count
        if step.expect_rows is not None and count != step.expect_rows:
            problems.append(f"expected {step.expect_rows} rows, got {count}")
        if step.expect_min_rows is not None and (count or 0) < step.expect_min_rows:
            problems.append(f"expected at least {step.expect_min_rows} rows, got {count}")

        if step.expect_fields:
            row = outcome.rows[0] if outcome.rows else None
            if row is None:
                problems.append("no row to check fields against")
            else:
                for key, expected in step.expect_fields.items():
                    if key not in row:
                        problems.append(f"{key} missing from result")
                    elif not values_match(row[key], expected):
                        problems.append(f"{key} = {row[key]!r}, expected {expected!r}")

        if problems:
            return STATUS_FAILED, "; ".join(problems)
        if step.expect == "any":
            return STATUS_PASSED, "accepted by backend"
        return STATUS_PASSED, ""

    # === Table handlers ===

    async def _run_read(self, step: ReadStep, clients) -> StepOutcome:
        response = await clients[step.client].select(
            step.table,
            select=step.select,
            where=step.where,
            any_of=step.any_of,
            order_by=step.order_by,
            limit=step.limit,
            single=step.single,
        )
        outcome = StepOutcome(response, rows=response.rows, saved=response.data)
        if not response.ok:
            return outcome

        outcome.row_count = len(outcome.rows)
        if step.show_columns and outcome.rows:
            outcome.details.append(f"columns: {', '.join(outcome.rows[0].keys())}")
        if step.sum_of:
            total = Decimal(0)
            for row in outcome.rows:
                try:
                    total += Decimal(str(row.get(step.sum_of) or 0))
                except InvalidOperation:
                    continue
            outcome.details.append(f"sum({step.sum_of}) = {_format_amount(total)}")
        if step.group_by:
            groups = Counter(str(row.get(step.group_by)) for row in outcome.rows)
            outcome.details.append(f"by {step.group_by}: {dict(sorted(groups.items()))}")
        return outcome

    async def _run_insert(self, step: InsertStep, clients) -> StepOutcome:
        response = await clients[step.client].insert(step.table, step.values, single=step.single)
        return StepOutcome(response, rows=response.rows, row_count=len(response.rows) if response.ok else None,
                           saved=response.data)

    async def _run_update(self, step: UpdateStep, clients) -> StepOutcome:
        response = await clients[step.client].update(step.table, step.values, step.where, single=step.single)
        return StepOutcome(response, rows=response.rows, row_count=len(response.rows) if response.ok else None,
                           saved=response.data)

    async def _run_delete(self, step: DeleteStep, clients) -> StepOutcome:
        response = await clients[step.client].delete(step.table, step.where)
        return StepOutcome(response, rows=response.rows, row_count=response.count, saved=response.data)

    async def _run_count(self, step: CountStep, clients) -> StepOutcome:
        response = await clients[step.client].count(step.table, step.where)
        return StepOutcome(response, row_count=response.data if response.ok else None, saved=response.data)

    async def _run_rpc(self, step: RpcStep, clients) -> StepOutcome:
        response = await clients[step.client].rpc(step.function, step.params)
        outcome = StepOutcome(response, rows=_as_rows(response.data), saved=response.data)
        if response.ok:
            if isinstance(response.data, list):
                outcome.row_count = len(response.data)
            outcome.details.append(f"result: {sanitize_data(response.data)}")
        return outcome

    async def _run_batch(self, step: BatchStep, clients) -> StepOutcome:
        results = await asyncio.gather(
            *(self._run_read(inner, clients) for inner in step.steps),
            return_exceptions=True,
        )

        first_error = None
        saved: Dict[str, Any] = {}
        details = []
        for inner, inner_result in zip(step.steps, results):
            if isinstance(inner_result, BaseException):
                raise inner_result
            key = inner.save_as or inner.table
            if inner_result.response.ok:
                saved[key] = inner_result.response.data
                details.append(f"{inner.describe()}: {inner_result.row_count} rows")
            else:
                details.append(f"{inner.describe()}: error {inner_result.response.error}")
                if first_error is None:
                    first_error = inner_result.response

        response = first_error or APIResponse(data=saved, status_code=200)
        return StepOutcome(response, saved=saved, details=details)

    # === Auth handlers ===

    async def _run_sign_in(self, step: SignInStep, clients) -> StepOutcome:
        client = clients[step.client]
        response = await client.sign_in_with_password(step.email, step.password)
        outcome = StepOutcome(response, saved=response.data, has_session=client.session is not None)
        if response.ok:
            outcome.details.append(f"user: {client.session.user.get('email', step.email)}")
            subject = token_subject(client.session.access_token)
            if subject:
                outcome.details.append(f"token subject: {subject}")
        outcome.details.append(f"session: {'active' if client.session else 'none'}")
        return outcome

    async def _run_sign_up(self, step: SignUpStep, clients) -> StepOutcome:
        client = clients[step.client]
        response = await client.sign_up(step.email, step.password)
        outcome = StepOutcome(response, saved=response.data, has_session=client.session is not None)
        if response.ok:
            user = (response.data or {}).get("user") or {}
            outcome.details.append(f"user id: {user.get('id', 'unknown')}")
            outcome.details.append(
                "session: active" if client.session else "session: none (email confirmation pending)"
            )
        return outcome

    async def _run_sign_out(self, step: SignOutStep, clients) -> StepOutcome:
        client = clients[step.client]
        response = await client.sign_out()
        return StepOutcome(response, has_session=client.session is not None)

    async def _run_get_session(self, step: GetSessionStep, clients) -> StepOutcome:
        client = clients[step.client]
        response = client.get_session()
        session = response.data["session"]
        outcome = StepOutcome(response, saved=session, has_session=session is not None)
        outcome.details.append(f"session: {'active' if session else 'none'}")
        if session:
            outcome.details.append(f"user: {session['user'].get('email', 'unknown')}")
        return outcome

    async def _run_get_user(self, step: GetUserStep, clients) -> StepOutcome:
        client = clients[step.client]
        response = await client.get_user()
        outcome = StepOutcome(response, rows=_as_rows(response.data), saved=response.data,
                              has_session=client.session is not None)
        if response.ok and isinstance(response.data, dict):
            outcome.details.append(f"user: {response.data.get('email', 'unknown')}")
        return outcome

    # === Admin handlers ===

    async def _run_admin_list_users(self, step: AdminListUsersStep, clients) -> StepOutcome:
        response = await clients[step.client].admin_list_users(per_page=step.per_page)
        if not response.ok:
            return StepOutcome(response)

        users = _as_rows(response.data)
        if step.email:
            wanted = step.email.lower()
            matches = [user for user in users if (user.get("email") or "").lower() == wanted]
            outcome = StepOutcome(response, rows=matches, row_count=len(matches),
                                  saved=matches[0] if matches else None)
            if matches:
                outcome.details.append(f"found {wanted} (id {matches[0].get('id')})")
            else:
                outcome.details.append(f"{wanted} not found among {len(users)} users")
            return outcome

        outcome = StepOutcome(response, rows=users, row_count=len(users), saved=users)
        for user in users[:10]:
            outcome.details.append(f"{user.get('email')} (id {user.get('id')})")
        if len(users) > 10:
            outcome.details.append(f"... and {len(users) - 10} more")
        return outcome

    async def _run_admin_create_user(self, step: AdminCreateUserStep, clients) -> StepOutcome:
        response = await clients[step.client].admin_create_user(
            step.email, step.password,
            email_confirm=step.email_confirm,
            user_metadata=step.user_metadata,
        )
        outcome = StepOutcome(response, rows=_as_rows(response.data), saved=response.data)
        if response.ok and isinstance(response.data, dict):
            outcome.details.append(f"user id: {response.data.get('id')}")
            confirmed = response.data.get("email_confirmed_at")
            outcome.details.append(f"email confirmed: {'yes' if confirmed else 'no'}")
        return outcome

    async def _run_admin_update_user(self, step: AdminUpdateUserStep, clients) -> StepOutcome:
        response = await clients[step.client].admin_update_user(step.user_id, step.attributes)
        return StepOutcome(response, rows=_as_rows(response.data), saved=response.data)

    async def _run_admin_delete_user(self, step: AdminDeleteUserStep, clients) -> StepOutcome:
        response = await clients[step.client].admin_delete_user(step.user_id)
        return StepOutcome(response, saved=response.data)

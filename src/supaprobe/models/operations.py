"""
Operation descriptors for probe sequences

A probe is an ordered list of these models interpreted by
``core.runner.ProbeRunner``. Any string value may carry ``${name.field}``
references to results saved by an earlier step (``save_as``).
"""

import json
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field

FilterOp = Literal["eq", "neq", "gt", "gte", "lt", "lte", "like", "ilike", "is", "in"]
KeyTier = Literal["anon", "service"]


class WhereClause(BaseModel):
    """Column filter"""
    field: str
    op: FilterOp = "eq"
    value: Any = None
    negate: bool = False


class OrderByClause(BaseModel):
    """ORDER BY clause"""
    field: str
    dir: Literal["asc", "desc"] = "asc"


class StepBase(BaseModel):
    """Fields shared by every step"""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    client: KeyTier = "anon"
    save_as: Optional[str] = None

    # Expectations checked after the call returns
    expect: Literal["success", "error", "any"] = "success"
    expect_rows: Optional[int] = None
    expect_min_rows: Optional[int] = None
    expect_fields: Dict[str, Any] = Field(default_factory=dict)
    expect_session: Optional[bool] = None

    on_failure: Literal["continue", "abort"] = "continue"

    def describe(self) -> str:
        return self.name or self.op

    def required_tiers(self) -> Set[str]:
        return {self.client}


class ReadStep(StepBase):
    """SELECT rows from a table"""
    op: Literal["read"] = "read"
    table: str
    select: str = "*"
    where: List[WhereClause] = Field(default_factory=list)
    any_of: List[WhereClause] = Field(default_factory=list)
    order_by: List[OrderByClause] = Field(default_factory=list)
    limit: Optional[int] = None
    single: bool = False

    # Reporting extras
    show_columns: bool = False
    sum_of: Optional[str] = None
    group_by: Optional[str] = None

    def describe(self) -> str:
        return self.name or f"read {self.table}"


class InsertStep(StepBase):
    """INSERT one row (or a list of rows) and return the post-image"""
    op: Literal["insert"] = "insert"
    table: str
    values: Union[Dict[str, Any], List[Dict[str, Any]]]
    single: bool = True

    def describe(self) -> str:
        return self.name or f"insert {self.table}"


class UpdateStep(StepBase):
    """UPDATE rows matching the filters and return the post-image"""
    op: Literal["update"] = "update"
    table: str
    values: Dict[str, Any]
    where: List[WhereClause] = Field(min_length=1)
    single: bool = True

    def describe(self) -> str:
        return self.name or f"update {self.table}"


class DeleteStep(StepBase):
    """DELETE rows matching the filters"""
    op: Literal["delete"] = "delete"
    table: str
    where: List[WhereClause] = Field(min_length=1)

    def describe(self) -> str:
        return self.name or f"delete {self.table}"


class CountStep(StepBase):
    """Exact row count without fetching rows"""
    op: Literal["count"] = "count"
    table: str
    where: List[WhereClause] = Field(default_factory=list)

    def describe(self) -> str:
        return self.name or f"count {self.table}"


class RpcStep(StepBase):
    """Call a database function"""
    op: Literal["rpc"] = "rpc"
    function: str
    params: Dict[str, Any] = Field(default_factory=dict)

    def describe(self) -> str:
        return self.name or f"rpc {self.function}"


class SignInStep(StepBase):
    """Password sign-in; the session is kept on the client handle"""
    op: Literal["sign_in"] = "sign_in"
    email: str
    password: str

    def describe(self) -> str:
        return self.name or f"sign in {self.email}"


class SignUpStep(StepBase):
    """Self-service sign-up"""
    op: Literal["sign_up"] = "sign_up"
    email: str
    password: str

    def describe(self) -> str:
        return self.name or f"sign up {self.email}"


class SignOutStep(StepBase):
    op: Literal["sign_out"] = "sign_out"

    def describe(self) -> str:
        return self.name or "sign out"


class GetSessionStep(StepBase):
    """Report the locally held session, no network call"""
    op: Literal["get_session"] = "get_session"

    def describe(self) -> str:
        return self.name or "get session"


class GetUserStep(StepBase):
    """Fetch the user behind the current session"""
    op: Literal["get_user"] = "get_user"

    def describe(self) -> str:
        return self.name or "get user"


class AdminListUsersStep(StepBase):
    """List auth users, optionally narrowed to one email"""
    op: Literal["admin_list_users"] = "admin_list_users"
    client: KeyTier = "service"
    email: Optional[str] = None
    per_page: int = 1000

    def describe(self) -> str:
        if self.name:
            return self.name
        return f"admin find user {self.email}" if self.email else "admin list users"


class AdminCreateUserStep(StepBase):
    op: Literal["admin_create_user"] = "admin_create_user"
    client: KeyTier = "service"
    email: str
    password: str
    email_confirm: bool = True
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

    def describe(self) -> str:
        return self.name or f"admin create user {self.email}"


class AdminUpdateUserStep(StepBase):
    op: Literal["admin_update_user"] = "admin_update_user"
    client: KeyTier = "service"
    user_id: str
    attributes: Dict[str, Any]

    def describe(self) -> str:
        return self.name or "admin update user"


class AdminDeleteUserStep(StepBase):
    op: Literal["admin_delete_user"] = "admin_delete_user"
    client: KeyTier = "service"
    user_id: str

    def describe(self) -> str:
        return self.name or "admin delete user"


class BatchStep(StepBase):
    """Independent reads issued concurrently; waits for all of them

    The batch's ``save_as`` stores one dict of row lists keyed by each
    inner read's ``save_as`` (or its table when unset). Inner results are
    not saved on their own, so a read saved as ``p`` inside a batch saved
    as ``dash`` is referenced as ``${dash.p}``.
    """
    op: Literal["batch"] = "batch"
    steps: List[ReadStep] = Field(min_length=1)

    def describe(self) -> str:
        return self.name or f"batch of {len(self.steps)} reads"

    def required_tiers(self) -> Set[str]:
        tiers: Set[str] = set()
        for step in self.steps:
            tiers |= step.required_tiers()
        return tiers


Step = Annotated[
    Union[
        ReadStep, InsertStep, UpdateStep, DeleteStep, CountStep, RpcStep,
        SignInStep, SignUpStep, SignOutStep, GetSessionStep, GetUserStep,
        AdminListUsersStep, AdminCreateUserStep, AdminUpdateUserStep, AdminDeleteUserStep,
        BatchStep,
    ],
    Field(discriminator="op"),
]

WRITE_OPS = {"insert", "update", "delete", "sign_up", "admin_create_user", "admin_update_user", "admin_delete_user"}


class ProbeSequence(BaseModel):
    """Complete probe: main steps plus cleanup steps that always run"""
    model_config = ConfigDict(extra="forbid")

    name: str
    description: str = ""
    steps: List[Step] = Field(min_length=1)
    cleanup: List[Step] = Field(default_factory=list)
    destructive: bool = False

    def required_tiers(self) -> Set[str]:
        tiers: Set[str] = set()
        for step in self.steps + self.cleanup:
            tiers |= step.required_tiers()
        return tiers

    def is_read_only(self) -> bool:
        """Check if the sequence contains only read operations"""
        return not any(step.op in WRITE_OPS for step in self.steps + self.cleanup)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ProbeSequence":
        """Load a sequence from a JSON document"""
        with open(path, "r", encoding="utf-8") as handle:
            return cls.model_validate(json.load(handle))

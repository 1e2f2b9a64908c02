"""
Built-in probe catalogue

Each entry builds a ``ProbeSequence`` from the loaded configuration and a
scratch data factory, so generated names and emails are unique per run.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List

from supaprobe.config.settings import ProbeConfig
from supaprobe.core.data_factory import DataFactory
from supaprobe.models.operations import ProbeSequence
from supaprobe.probes import auth, connection, crud, filtering, maintenance, users
from supaprobe.utils.error_handling import UnknownProbeError


@dataclass(frozen=True)
class ProbeDefinition:
    name: str
    description: str
    builder: Callable[[ProbeConfig, DataFactory], ProbeSequence]
    destructive: bool = False


_DEFINITIONS = [
    ProbeDefinition("connection", "Reach the REST and auth endpoints", connection.build_connection),
    ProbeDefinition("dashboard", "Dashboard reads anonymous and signed in", connection.build_dashboard),
    ProbeDefinition("auth-signin", "Demo user sign-in and sign-out", auth.build_auth_signin),
    ProbeDefinition("auth-invalid", "Wrong credentials are rejected", auth.build_auth_invalid),
    ProbeDefinition("auth-signup", "Scratch user sign-up with admin cleanup", auth.build_auth_signup),
    ProbeDefinition("auth-function", "Call test_auth_access", auth.build_auth_function),
    ProbeDefinition("users-list", "List auth users", users.build_users_list),
    ProbeDefinition("users-demo", "Recreate the demo user", users.build_users_demo),
    ProbeDefinition("users-password", "Reset and verify the demo user's password", users.build_users_password),
    ProbeDefinition("budget-crud", "Budget category round trip", crud.build_budget_crud),
    ProbeDefinition("client-crud", "Client round trip", crud.build_client_crud),
    ProbeDefinition("project-crud", "Project round trip with client relation", crud.build_project_crud),
    ProbeDefinition("invoice-crud", "Invoice, items and payments round trip", crud.build_invoice_crud),
    ProbeDefinition("employee-crud", "Employee and payment records round trip", crud.build_employee_crud),
    ProbeDefinition("filtering", "Filtering, sorting and search", filtering.build_filtering),
    ProbeDefinition("team-requests", "Team requests with assignees", maintenance.build_team_requests),
    ProbeDefinition("clear-data", "Delete all CRM records", maintenance.build_clear_data, destructive=True),
]

PROBES: Dict[str, ProbeDefinition] = {definition.name: definition for definition in _DEFINITIONS}


def list_probes() -> List[ProbeDefinition]:
    return list(_DEFINITIONS)


def get_probe(name: str, config: ProbeConfig, factory: DataFactory) -> ProbeSequence:
    """Build a catalogue probe by name"""
    definition = PROBES.get(name)
    if definition is None:
        raise UnknownProbeError(name, sorted(PROBES))
    return definition.builder(config, factory)

"""
Remote tables touched by the built-in probes

The schema belongs to the backend; this only records which column carries
the scratch marker and the order in which leftovers can be deleted.
"""

from dataclasses import dataclass
from typing import Dict, List


@dataclass
class TableConfig:
    """Configuration for a probed table"""
    name: str
    marker_column: str
    primary_key: str = "id"


TABLE_CONFIGS: Dict[str, TableConfig] = {
    "payments": TableConfig("payments", "notes"),
    "invoice_items": TableConfig("invoice_items", "item_name"),
    "invoices": TableConfig("invoices", "invoice_number"),
    "payment_history": TableConfig("payment_history", "description"),
    "payment_schedules": TableConfig("payment_schedules", "description"),
    "projects": TableConfig("projects", "name"),
    "budget_categories": TableConfig("budget_categories", "name"),
    "clients": TableConfig("clients", "name"),
    "employees": TableConfig("employees", "name"),
}

# Every table the CRM front-end writes to, children first
CRM_TABLES: List[str] = [
    'payments',
    'invoice_items',
    'invoices',
    'budgets',
    'budget_expenses',
    'team_requests',
    'salaries',
    'projects',
    'clients',
    'employees',
]

# Matches every uuid primary key, used for unfiltered deletes
NIL_UUID = "00000000-0000-0000-0000-000000000000"


def get_table_config(table_name: str) -> TableConfig:
    """Get configuration for a specific table"""
    if table_name not in TABLE_CONFIGS:
        raise ValueError(f"Unknown table: {table_name}")
    return TABLE_CONFIGS[table_name]


def get_cleanup_order() -> List[str]:
    """Get tables in proper cleanup order (children first)"""
    return [
        'payments',
        'invoice_items',
        'invoices',
        'payment_history',
        'payment_schedules',
        'projects',
        'budget_categories',
        'clients',
        'employees',
    ]

"""
PostgREST query-string encoding
"""

import pytest

from supaprobe.core.query import (
    build_query, encode_condition, encode_or_group, format_value, parse_content_range,
)
from supaprobe.models.operations import OrderByClause, WhereClause


class TestConditions:

    @pytest.mark.parametrize("value,expected", [
        (None, "null"), (True, "true"), (False, "false"), (100000, "100000"), ("IT", "IT"),
    ])
    def test_format_value(self, value, expected):
        assert format_value(value) == expected

    def test_comparison_operators(self):
        assert encode_condition(WhereClause(field="annual_budget", op="gte", value=1000)) == "gte.1000"
        assert encode_condition(WhereClause(field="name", op="ilike", value="%web%")) == "ilike.%web%"

    def test_in_quotes_reserved_characters(self):
        clause = WhereClause(field="status", op="in", value=["Ready to Quote", "a,b", "Done"])
        assert encode_condition(clause) == 'in.(Ready to Quote,"a,b",Done)'

    def test_negated_is_null(self):
        clause = WhereClause(field="proposed_budget", op="is", value=None, negate=True)
        assert encode_condition(clause) == "not.is.null"

    def test_is_rejects_arbitrary_values(self):
        with pytest.raises(ValueError):
            encode_condition(WhereClause(field="x", op="is", value="maybe"))


class TestBuildQuery:

    def test_full_query(self):
        params = build_query(
            select="""
                *,
                clients(name, company)
            """,
            where=[WhereClause(field="status", value="Active")],
            order_by=[OrderByClause(field="annual_budget", dir="desc")],
            limit=5,
        )
        assert params == [
            ("select", "*,clients(name,company)"),
            ("status", "eq.Active"),
            ("order", "annual_budget.desc"),
            ("limit", "5"),
        ]

    def test_or_group_uses_star_wildcards(self):
        group = encode_or_group([
            WhereClause(field="name", op="ilike", value="%test%"),
            WhereClause(field="email", op="ilike", value="%test%"),
        ])
        assert group == ("or", "(name.ilike.*test*,email.ilike.*test*)")

    def test_or_group_quotes_reserved_characters(self):
        params = build_query("*", any_of=[
            WhereClause(field="company", value="Acme, Inc."),
            WhereClause(field="name", op="ilike", value="%x%"),
            WhereClause(field="notes", op="ilike", value="%(draft)%", negate=True),
        ])
        assert params == [
            ("select", "*"),
            ("or", '(company.eq."Acme, Inc.",name.ilike.*x*,notes.not.ilike."*(draft)*")'),
        ]

    def test_empty_or_group(self):
        assert encode_or_group([]) is None


@pytest.mark.parametrize("header,expected", [
    ("0-9/42", 42), ("*/0", 0), ("0-4/*", None), (None, None), ("", None),
])
def test_parse_content_range(header, expected):
    assert parse_content_range(header) == expected

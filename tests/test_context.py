"""
Saved values and reference substitution
"""

import pytest

from supaprobe.core.context import ProbeContext
from supaprobe.utils.error_handling import UnresolvedReferenceError


@pytest.fixture
def context():
    ctx = ProbeContext()
    ctx.save("budget", {"id": "b-1", "annual_budget": 100000, "tags": ["a", "b"], "owner": None})
    ctx.save("login", {"user": {"email": "demo@example.com"}})
    return ctx


def test_bare_reference_keeps_type(context):
    assert context.resolve("${budget.annual_budget}") == 100000


def test_embedded_reference_is_substituted(context):
    assert context.resolve("budget ${budget.id} of ${login.user.email}") == "budget b-1 of demo@example.com"


def test_nested_structures_and_list_index(context):
    resolved = context.resolve({"where": [{"value": "${budget.id}"}], "tag": "${budget.tags.1}", "n": 3})
    assert resolved == {"where": [{"value": "b-1"}], "tag": "b", "n": 3}


@pytest.mark.parametrize("reference", ["${missing.id}", "${budget.nope}", "${budget.owner}", "${budget.tags.9}"])
def test_unresolvable_references(context, reference):
    with pytest.raises(UnresolvedReferenceError):
        context.resolve(reference)


def test_plain_values_untouched(context):
    assert context.resolve("no references") == "no references"
    assert context.resolve(None) is None
    assert context.has("budget")
    assert not context.has("client")

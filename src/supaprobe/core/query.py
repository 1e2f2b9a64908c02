"""
PostgREST query-string encoding for filters, ordering and limits
"""

from typing import Any, Iterable, List, Optional, Tuple

from supaprobe.models.operations import OrderByClause, WhereClause

QueryParams = List[Tuple[str, str]]

# Characters that force a value to be quoted inside in.() / or=()
RESERVED_CHARS = set(',.:()"')


def format_value(value: Any) -> str:
    """Render a Python value the way PostgREST expects it"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote_list_item(value: Any) -> str:
    text = format_value(value)
    if any(ch in RESERVED_CHARS for ch in text) or text != text.strip():
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def encode_condition(clause: WhereClause, in_logic_tree: bool = False) -> str:
    """Right-hand side of ``column=<op>.<value>``

    Inside an ``or=()`` logic tree scalar values are quoted like ``in.()``
    items and like patterns use ``*`` for ``%``.
    """
    if clause.op == "in":
        values = clause.value if isinstance(clause.value, (list, tuple, set)) else [clause.value]
        rendered = f"in.({','.join(_quote_list_item(v) for v in values)})"
    elif clause.op == "is":
        if clause.value not in (None, True, False) and str(clause.value).lower() not in ("null", "true", "false", "unknown"):
            raise ValueError(f"'is' filter on {clause.field} only accepts null/true/false, got {clause.value!r}")
        rendered = f"is.{format_value(clause.value).lower()}"
    elif in_logic_tree:
        value = format_value(clause.value)
        if clause.op in ("like", "ilike"):
            # '%' is not allowed unescaped inside logic trees, PostgREST accepts '*'
            value = value.replace("%", "*")
        rendered = f"{clause.op}.{_quote_list_item(value)}"
    else:
        rendered = f"{clause.op}.{format_value(clause.value)}"

    if clause.negate:
        rendered = f"not.{rendered}"
    return rendered


def encode_filters(where: Iterable[WhereClause]) -> QueryParams:
    return [(clause.field, encode_condition(clause)) for clause in where]


def encode_or_group(any_of: Iterable[WhereClause]) -> Optional[Tuple[str, str]]:
    """``or=(a.eq.1,b.ilike.*x*)`` for a list of alternatives"""
    parts = [f"{clause.field}.{encode_condition(clause, in_logic_tree=True)}" for clause in any_of]
    if not parts:
        return None
    return ("or", f"({','.join(parts)})")


def encode_order(order_by: Iterable[OrderByClause]) -> Optional[Tuple[str, str]]:
    parts = [f"{clause.field}.{clause.dir}" for clause in order_by]
    if not parts:
        return None
    return ("order", ",".join(parts))


def build_query(
    select: Optional[str] = None,
    where: Iterable[WhereClause] = (),
    any_of: Iterable[WhereClause] = (),
    order_by: Iterable[OrderByClause] = (),
    limit: Optional[int] = None,
) -> QueryParams:
    """Assemble the full query string for a table request"""
    params: QueryParams = []
    if select is not None:
        # Embedded resources are often written across lines
        params.append(("select", "".join(select.split())))
    params.extend(encode_filters(where))

    or_group = encode_or_group(any_of)
    if or_group:
        params.append(or_group)

    order = encode_order(order_by)
    if order:
        params.append(order)

    if limit is not None:
        params.append(("limit", str(limit)))
    return params


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """Total from ``Content-Range: 0-9/42`` or ``*/42``"""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    return int(total) if total.isdigit() else None

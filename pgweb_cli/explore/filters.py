"""Filter predicate fragments for the rows endpoint's ``where`` parameter."""

from __future__ import annotations

from pgweb_cli.shared.exceptions import ValidationError

FILTER_TEMPLATES: dict[str, str] = {
    "equal": "= 'DATA'",
    "not_equal": "!= 'DATA'",
    "greater": "> 'DATA'",
    "greater_eq": ">= 'DATA'",
    "less": "< 'DATA'",
    "less_eq": "<= 'DATA'",
    "like": "LIKE 'DATA'",
    "ilike": "ILIKE 'DATA'",
    "null": "IS NULL",
    "not_null": "IS NOT NULL",
}

NO_VALUE_OPERATORS = frozenset({"null", "not_null"})
PLACEHOLDER = "DATA"


def validate(column: str, operator: str, value: str | None) -> None:
    """Raise ValidationError when the triple cannot form a predicate."""
    if not column or not column.strip():
        raise ValidationError("Filter column is required.")
    if operator not in FILTER_TEMPLATES:
        raise ValidationError(
            f"Unknown filter operator '{operator}'. Expected one of: {', '.join(FILTER_TEMPLATES)}."
        )
    if operator not in NO_VALUE_OPERATORS and not value:
        raise ValidationError(f"Filter operator '{operator}' requires a value.")


def build(column: str, operator: str, value: str | None = "", *, quote: bool = False) -> str:
    """Return ``<column> <predicate>``, e.g. ``age > '30'`` or ``age IS NULL``.

    The value is substituted verbatim; escaping is the caller's concern.
    """
    template = FILTER_TEMPLATES.get(operator)
    if template is None:
        raise ValidationError(f"Unknown filter operator '{operator}'.")
    predicate = template if operator in NO_VALUE_OPERATORS else template.replace(PLACEHOLDER, value or "")
    identifier = quote_identifier(column) if quote else column
    return f"{identifier} {predicate}"


def quote_identifier(column: str) -> str:
    return '"' + column.replace('"', '""') + '"'

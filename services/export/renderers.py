"""Render extraction results as JSON, CSV and HTML artifacts.

Renderers are pure functions of an ExtractionResult; writing the bytes
somewhere (disk, object storage, HTTP response) is the caller's job.
"""

import csv
import io
from decimal import Decimal

from jinja2 import Environment, select_autoescape

from services.extraction.schema import ExtractionResult, LineItem

CSV_HEADER = ["#", "Quantity", "Description", "Product Code", "Unit Price", "Total"]

_environment = Environment(autoescape=select_autoescape(default_for_string=True))


def format_money(amount: Decimal | None) -> str:
    """Format an amount as ``$1,234.50``; missing amounts render as ``-``."""
    if amount is None:
        return "-"
    return f"${amount:,.2f}"


def to_json(result: ExtractionResult, indent: int | None = 2) -> str:
    """Serialise a result to JSON; Decimal amounts become strings."""
    return result.model_dump_json(indent=indent)


def to_csv(items: list[LineItem]) -> str:
    """Render line items as CSV followed by a ``Line Items Total:`` row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADER)

    for index, item in enumerate(items, start=1):
        writer.writerow(
            [
                index,
                item.quantity,
                item.description,
                item.product_code or "",
                format_money(item.unit_price),
                format_money(item.total),
            ]
        )

    line_total = sum((item.total for item in items), Decimal("0"))
    writer.writerow(["", "", "", "", "Line Items Total:", format_money(line_total)])
    return buffer.getvalue()


REPORT_TEMPLATE = _environment.from_string(
    """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Extraction report: {{ result.source_id }}</title>
<style>
body { font-family: sans-serif; margin: 2em; }
table { border-collapse: collapse; width: 100%; margin-bottom: 1.5em; }
th, td { border: 1px solid #ccc; padding: 6px 10px; text-align: left; }
th { background: #f3f3f3; }
.total-row { font-weight: bold; background: #fafafa; }
.success { color: #1a7f37; }
.warning { color: #b35900; }
</style>
</head>
<body>
<h1>Extraction report: {{ result.source_id }}</h1>

<h2>Statistics</h2>
<table style="max-width: 400px;">
<tr><td>Document type</td><td>{{ document_type }}</td></tr>
<tr><td>Line items</td><td>{{ result.line_items | length }}</td></tr>
<tr><td>Header fields</td><td>{{ result.header | length }}</td></tr>
<tr><td>Strategy</td><td>{{ result.strategy or "-" }}</td></tr>
<tr><td>Processing time</td><td>{{ "%.3f" | format(result.processing_time) }}s</td></tr>
{% if result.cleanup_provider %}<tr><td>Cleanup</td><td>{{ result.cleanup_provider }}</td></tr>{% endif %}
</table>

{% if result.header %}
<h2>Header</h2>
<table style="max-width: 600px;">
{% for name, value in result.header.items() %}
<tr><td>{{ name | replace("_", " ") | title }}</td><td>{{ value }}</td></tr>
{% endfor %}
</table>
{% endif %}

<h2>Line items ({{ result.line_items | length }})</h2>
{% if result.line_items %}
<table>
<tr>{% for column in columns %}<th>{{ column }}</th>{% endfor %}</tr>
{% for item in result.line_items %}
<tr>
<td>{{ loop.index }}</td>
<td>{{ item.quantity }}</td>
<td>{{ item.description }}</td>
<td>{{ item.product_code or "" }}</td>
<td>{{ money(item.unit_price) }}</td>
<td>{{ money(item.total) }}</td>
</tr>
{% endfor %}
<tr class="total-row"><td colspan="5">Line Items Total:</td><td>{{ money(reconciliation.line_items_total) }}</td></tr>
</table>
{% else %}
<p class="warning">No line items found.</p>
{% endif %}

{% if result.totals %}
<h2>Financial summary</h2>
<table style="max-width: 400px;">
{% for name, amount in result.totals.items() %}
<tr><td>{{ name | title }}</td><td style="text-align: right;">{{ money(amount) }}</td></tr>
{% endfor %}
</table>
{% endif %}

<h2>Reconciliation</h2>
{% if reconciliation.stated_subtotal is none %}
<p>No subtotal stated; line items sum to {{ money(reconciliation.line_items_total) }}.</p>
{% elif reconciliation.mismatch %}
<p class="warning">Line items sum to {{ money(reconciliation.line_items_total) }} but the stated subtotal is
{{ money(reconciliation.stated_subtotal) }} (difference {{ money(reconciliation.difference) }}).</p>
{% else %}
<p class="success">Line items match the stated subtotal of {{ money(reconciliation.stated_subtotal) }}.</p>
{% endif %}
</body>
</html>
"""
)


def to_html_report(result: ExtractionResult) -> str:
    """Render a standalone HTML report; all document values are escaped."""
    return REPORT_TEMPLATE.render(
        result=result,
        reconciliation=result.reconciliation,
        document_type=result.document_type.value if result.document_type else "unknown",
        columns=CSV_HEADER,
        money=format_money,
    )


def render_artifacts(result: ExtractionResult) -> dict[str, tuple[bytes, str]]:
    """Render every artifact for a result.

    Returns:
        File name to (content bytes, content type)
    """
    return {
        "result.json": (to_json(result).encode("utf-8"), "application/json"),
        "line_items.csv": (to_csv(result.line_items).encode("utf-8"), "text/csv"),
        "report.html": (to_html_report(result).encode("utf-8"), "text/html"),
    }

"""Chart suggestion, renderer-agnostic chart specs and data export.

Only the data side of charting lives here; colors, legends and other
styling belong to whatever renders the ChartSpec.
"""

import csv
import io
import json
from datetime import datetime
from typing import Any

from ragchat.models.mining import ChartSpec, ChartType

EXPORT_FORMATS = ("csv", "json")

CHART_TITLES: dict[str, str] = {
    "bar": "Gráfico de Barras",
    "line": "Gráfico de Linha",
    "pie": "Gráfico de Pizza",
    "scatter": "Gráfico de Dispersão",
    "area": "Gráfico de Área",
    "table": "Tabela de Dados",
}


def _is_numeric(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _is_date(value: Any) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        datetime.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def suggest_chart_type(rows: list[dict[str, Any]]) -> ChartType:
    """Pick a chart type from the shape of the first row.

    Two or more numeric columns: scatter for exactly two with more than
    five rows, line when a date column exists, bar otherwise. One numeric
    column plus a category: pie up to eight rows, bar beyond. A date with a
    numeric column: line. Anything else: table.
    """
    if not rows or not isinstance(rows[0], dict):
        return "table"

    sample = rows[0]
    numeric = sum(1 for v in sample.values() if _is_numeric(v))
    dates = sum(1 for v in sample.values() if _is_date(v))
    strings = sum(1 for v in sample.values() if isinstance(v, str) and not _is_date(v))
    count = len(rows)

    if numeric >= 2:
        if numeric == 2 and count > 5:
            return "scatter"
        if dates > 0:
            return "line"
        return "bar"
    if numeric == 1 and strings >= 1:
        return "pie" if count <= 8 else "bar"
    if dates > 0 and numeric >= 1:
        return "line"
    return "table"


def build_chart_spec(
    rows: list[dict[str, Any]],
    chart_type: ChartType | str = "auto",
    *,
    x_key: str | None = None,
    y_key: str | None = None,
    title: str | None = None,
) -> ChartSpec | None:
    """Choose axis keys for ``rows`` and describe the chart.

    Args:
        rows: Tabular data (list of row dicts)
        chart_type: Explicit type, or "auto" to use suggest_chart_type
        x_key: Override for the category / x axis key
        y_key: Override for the value / y axis key
        title: Override for the default title

    Returns:
        ChartSpec, or None when there is no data

    Raises:
        ValueError: Unknown chart type
    """
    if not rows or not isinstance(rows[0], dict):
        return None

    resolved = suggest_chart_type(rows) if chart_type == "auto" else chart_type
    if resolved not in CHART_TITLES:
        raise ValueError(f"unsupported chart type: {chart_type}")

    sample = rows[0]
    keys = list(sample)
    numeric_keys = [k for k in keys if _is_numeric(sample[k])]
    string_keys = [k for k in keys if isinstance(sample[k], str)]
    category = string_keys[0] if string_keys else (keys[0] if keys else None)
    value = numeric_keys[0] if numeric_keys else None

    spec = ChartSpec(chart_type=resolved, title=title or CHART_TITLES[resolved], data=rows)
    if resolved == "pie":
        spec.name_key = x_key or category
        spec.value_key = y_key or value
    elif resolved == "scatter":
        spec.x_key = x_key or value
        second = numeric_keys[1] if len(numeric_keys) > 1 else value
        spec.y_keys = [y_key or second] if (y_key or second) else []
    elif resolved != "table":
        spec.x_key = x_key or category
        chosen = y_key or value
        spec.y_keys = [chosen] if chosen else []
    return spec


def _csv_cell(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, dict | list):
        return json.dumps(value, ensure_ascii=False)
    return value


def export_rows(rows: list[dict[str, Any]], fmt: str = "csv") -> str:
    """Serialize tabular data for download.

    CSV uses the first row's keys as the header and quotes values that
    contain commas, quotes or newlines. JSON is pretty-printed.

    Raises:
        ValueError: Format other than csv or json
    """
    fmt = fmt.lower()
    if fmt == "json":
        return json.dumps(rows, ensure_ascii=False, indent=2)
    if fmt != "csv":
        raise ValueError(f"unsupported export format: {fmt}")
    if not rows:
        return ""

    headers = list(rows[0])
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_csv_cell(row.get(h)) for h in headers])
    return buffer.getvalue().removesuffix("\n")

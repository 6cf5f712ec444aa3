"""Data extraction activities."""

from __future__ import annotations

import json
from typing import Any

from ...context import Context
from ...errors import VibiumError
from ...types import FindOptions
from .base import Activity, Environment, get_bool, get_timeout, require_string

_SCRAPE_TABLE_FN = """
(selector) => {
  const table = document.querySelector(selector);
  if (!table) return JSON.stringify({ error: 'Table not found' });

  const headers = [];
  const headerRow = table.querySelector('thead tr, tr:first-child');
  if (headerRow) {
    headerRow.querySelectorAll('th, td').forEach(cell => headers.push(cell.textContent.trim()));
  }

  const rows = [];
  const bodyRows = table.querySelectorAll('tbody tr, tr');
  for (let i = headerRow ? 1 : 0; i < bodyRows.length; i++) {
    const rowData = {};
    bodyRows[i].querySelectorAll('td, th').forEach((cell, j) => {
      rowData[headers[j] || 'col' + j] = cell.textContent.trim();
    });
    if (Object.keys(rowData).length > 0) rows.push(rowData);
  }
  return JSON.stringify({ headers: headers, rows: rows });
}
"""


class ScrapeTable(Activity):
    """Rows of an HTML table keyed by header text (``colN`` when unnamed)."""

    name = "data.scrapeTable"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        selector = require_string(params, "selector")
        session = env.require_session()
        session.find(selector, FindOptions(timeout=get_timeout(params)), ctx=ctx)

        raw = session.evaluate(f"return ({_SCRAPE_TABLE_FN})({json.dumps(selector)})", ctx=ctx)
        if not isinstance(raw, str):
            raise VibiumError(f"unexpected table result type: {type(raw).__name__}")
        try:
            table = json.loads(raw)
        except ValueError as exc:
            raise VibiumError(f"failed to parse table data: {exc}") from exc
        if table.get("error"):
            raise VibiumError(f"table extraction error: {table['error']}")

        rows = table.get("rows") or []
        if get_bool(params, "rowsOnly"):
            return rows
        return {"headers": table.get("headers") or [], "rows": rows, "count": len(rows)}


ACTIVITIES: tuple[Activity, ...] = (ScrapeTable(),)

"""
Blood Inventory Stock Chart
===========================
Stacked bar chart of available vs reserved units per blood type.
"""

import sys
from typing import Dict, List, Optional

import plotly.graph_objects as go

AVAILABLE_COLOR = "#10b981"
RESERVED_COLOR = "#f59e0b"

PLACEHOLDER_HTML = """<!DOCTYPE html>
<html><head><meta charset="utf-8"><title>Blood Inventory</title></head>
<body style="font-family: Arial, sans-serif; padding: 16px;">
  <h3 style="margin-top: 0;">Blood Inventory</h3>
  <p>{message}</p>
</body></html>"""


def create_stock_chart(summary: List[Dict]) -> go.Figure:
    """Build the stacked bar chart from InventoryLedger.summary() rows."""
    blood_types = [row["blood_type"] for row in summary]
    total_units = sum(row["total_units"] for row in summary)

    fig = go.Figure(data=[
        go.Bar(
            name="Available",
            x=blood_types,
            y=[row["available_units"] for row in summary],
            marker=dict(color=AVAILABLE_COLOR),
            hovertemplate="Blood Type: %{x}<br>Available: %{y}<extra></extra>",
        ),
        go.Bar(
            name="Reserved",
            x=blood_types,
            y=[row["reserved_units"] for row in summary],
            marker=dict(color=RESERVED_COLOR),
            hovertemplate="Blood Type: %{x}<br>Reserved: %{y}<extra></extra>",
        ),
    ])

    fig.update_layout(
        barmode="stack",
        title=dict(
            text=f"<b>Blood Inventory by Type</b><br><sub>Total Units: {total_units}</sub>",
            font=dict(size=20)
        ),
        xaxis=dict(title="<b>Blood Type</b>"),
        yaxis=dict(title="<b>Units</b>", gridcolor="#e5e7eb"),
        plot_bgcolor="#f8fafc",
        paper_bgcolor="#ffffff",
        margin=dict(t=80, b=60, l=60, r=30)
    )

    return fig


def _write(output_path: Optional[str], html: str):
    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(html)


def generate_chart_html(ledger, output_path: Optional[str] = None) -> str:
    """
    Generate the chart as HTML and optionally save it.
    A placeholder page is written when there is no stock to show.
    """
    summary = ledger.summary()

    if not any(row["total_units"] for row in summary):
        html = PLACEHOLDER_HTML.format(message="No blood stock is currently recorded.")
        _write(output_path, html)
        if output_path:
            print(f"Placeholder inventory chart saved to: {output_path}", file=sys.stderr)
        return html

    fig = create_stock_chart(summary)
    if output_path:
        fig.write_html(output_path, include_plotlyjs="cdn")
        print(f"Chart saved to: {output_path}", file=sys.stderr)

    return fig.to_html(include_plotlyjs="cdn")

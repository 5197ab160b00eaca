# reporting/report.py
"""
Watering completion report (PDF).

Layout follows the paper form handed to clients: header band, client
details, consumption figures and a financial summary box. Rendered with
matplotlib on an A4 figure, no GUI backend involved.
"""
from __future__ import annotations

import io
import os
import re
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from matplotlib.figure import Figure
from matplotlib.patches import Rectangle

from ..plant.state import WATER_COST_PER_M3, WateringOrder
from ..util import ensure_dir_for_file, log

A4_INCHES = (8.27, 11.69)
FOOTER = "ADS - Autonomous Dam System | Team 001"


@dataclass(frozen=True)
class OrderReport:
    order: WateringOrder
    duration_hours: float
    water_cost: float
    power_cost: float
    total_due: float
    water_cost_per_m3: float
    elec_rate: float


def build_order_report(
    order: WateringOrder,
    elec_rate: float,
    water_cost_per_m3: float = WATER_COST_PER_M3,
    now: Optional[float] = None,
) -> OrderReport:
    end = order.end_time if order.end_time is not None else (now if now is not None else time.time())
    water_cost = order.delivered_volume * water_cost_per_m3
    power_cost = order.power_consumed * elec_rate
    return OrderReport(
        order=order,
        duration_hours=max(0.0, end - order.start_time) / 3600.0,
        water_cost=water_cost,
        power_cost=power_cost,
        total_due=water_cost + power_cost,
        water_cost_per_m3=water_cost_per_m3,
        elec_rate=elec_rate,
    )


def sample_completed_order(now: Optional[float] = None) -> WateringOrder:
    """Two-hour, 50 ha order used for the demo report button."""
    now = time.time() if now is None else now
    return WateringOrder(
        id="javlon-report-001",
        client_name="Javlon Dehqon",
        hectares=50.0,
        target_volume=50000.0,
        delivered_volume=50000.0,
        start_time=now - 7200.0,
        end_time=now,
        status="COMPLETED",
        power_consumed=20.4,
        water_cost=5000000.0,
    )


def report_filename(order: WateringOrder, now: Optional[float] = None) -> str:
    now = time.time() if now is None else now
    client = re.sub(r"\s+", "_", order.client_name.strip()) or "client"
    return f"ADS_Report_{client}_{int(now * 1000)}.pdf"


def _money(x: float) -> str:
    return f"{x:,.2f}"


def render_order_report(report: OrderReport) -> Figure:
    order = report.order
    fig = Figure(figsize=A4_INCHES)

    # header band
    fig.add_artist(Rectangle((0.0, 0.9), 1.0, 0.1, transform=fig.transFigure, color=(31 / 255, 41 / 255, 55 / 255)))
    fig.text(0.5, 0.94, "Watering Completion Report", ha="center", va="center", fontsize=22, color="white")

    # client details
    end = order.end_time if order.end_time is not None else order.start_time + report.duration_hours * 3600.0
    fig.text(0.1, 0.84, "Client Details", fontsize=14)
    fig.add_artist(Rectangle((0.1, 0.835), 0.8, 0.001, transform=fig.transFigure, color="black"))
    fig.text(0.1, 0.80, f"Client Name: {order.client_name}", fontsize=12)
    fig.text(0.1, 0.77, f"Land Area: {order.hectares:g} Hectares", fontsize=12)
    fig.text(0.1, 0.74, "Crop Type: Cotton", fontsize=12)
    fig.text(0.6, 0.80, f"Date: {datetime.fromtimestamp(end).strftime('%Y-%m-%d')}", fontsize=12)

    # consumption
    fig.text(0.1, 0.68, "Consumption & Cost Analysis", fontsize=14)
    fig.add_artist(Rectangle((0.1, 0.675), 0.8, 0.001, transform=fig.transFigure, color="black"))
    rows = [
        ("Total Water Delivered:", f"{order.delivered_volume:.2f} m³"),
        ("Duration:", f"{report.duration_hours:.2f} Hours"),
        ("Power Consumption:", f"{order.power_consumed:.4f} kWh"),
    ]
    y = 0.64
    for label, value in rows:
        fig.text(0.1, y, label, fontsize=12)
        fig.text(0.6, y, value, fontsize=12)
        y -= 0.03

    # financial summary
    fig.add_artist(Rectangle((0.1, 0.36), 0.8, 0.18, transform=fig.transFigure, color=(240 / 255, 253 / 255, 244 / 255)))
    fig.text(0.14, 0.51, "Financial Summary", fontsize=16, color=(21 / 255, 128 / 255, 61 / 255))
    fig.text(0.14, 0.47, f"Water Cost ({report.water_cost_per_m3:g} UZS/m³):", fontsize=12)
    fig.text(0.86, 0.47, f"{_money(report.water_cost)} UZS", fontsize=12, ha="right")
    fig.text(0.14, 0.44, f"Power Cost ({report.elec_rate:g} UZS/kWh):", fontsize=12)
    fig.text(0.86, 0.44, f"{_money(report.power_cost)} UZS", fontsize=12, ha="right")
    fig.text(0.14, 0.39, "TOTAL DUE:", fontsize=14, fontweight="bold")
    fig.text(0.86, 0.39, f"{_money(report.total_due)} UZS", fontsize=14, fontweight="bold", ha="right")

    fig.text(0.5, 0.04, FOOTER, ha="center", fontsize=10, color=(0.4, 0.4, 0.4))
    return fig


def order_pdf_bytes(
    order: WateringOrder,
    elec_rate: float,
    water_cost_per_m3: float = WATER_COST_PER_M3,
    now: Optional[float] = None,
) -> bytes:
    buf = io.BytesIO()
    render_order_report(build_order_report(order, elec_rate, water_cost_per_m3, now=now)).savefig(buf, format="pdf")
    return buf.getvalue()


def export_order_pdf(
    order: WateringOrder,
    out_dir: str,
    elec_rate: float,
    water_cost_per_m3: float = WATER_COST_PER_M3,
    now: Optional[float] = None,
) -> str:
    report = build_order_report(order, elec_rate, water_cost_per_m3, now=now)
    path = os.path.join(out_dir, report_filename(order, now=now))
    ensure_dir_for_file(path)
    render_order_report(report).savefig(path, format="pdf")
    return path


def export_order_pdf_safe(
    order: WateringOrder,
    out_dir: str,
    elec_rate: float,
    water_cost_per_m3: float = WATER_COST_PER_M3,
    now: Optional[float] = None,
) -> Tuple[Optional[str], str]:
    """Same as export_order_pdf, but failures come back as a message."""
    try:
        path = export_order_pdf(order, out_dir, elec_rate, water_cost_per_m3, now=now)
    except Exception as e:
        log(f"[REPORT] export failed for order {order.id}: {e!r}")
        return None, f"Report export failed: {e}"
    log(f"[REPORT] saved {os.path.abspath(path)}")
    return path, f"Report saved to {path}"

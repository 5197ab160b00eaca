#!/usr/bin/env python3
"""
Plot time-series from a telemetry JSONL file produced by the simulator
(out/dam_telemetry.jsonl by default).

Each line is expected as:
{"topic": "ads/dam/telemetry", "payload": {...}}

This script:
- loads the file into a table (see telemetry.load_history)
- builds one plot per numeric metric
- builds two combined plots (levels, flows vs gate)

Usage:
  ads-plots --jsonl out/dam_telemetry.jsonl --outdir out/plots
"""

import argparse
import os
from typing import List

import matplotlib.pyplot as plt
import pandas as pd

from .telemetry import load_history

METRICS = [
    "water_level",
    "downstream_level",
    "inflow_rate",
    "outflow_rate",
    "gate_opening",
    "target_gate_opening",
    "current_power",
    "total_energy",
    "total_cost",
    "order_delivered_volume",
]


def downsample(df: pd.DataFrame, max_points: int) -> pd.DataFrame:
    if len(df) <= max_points:
        return df
    step = max(1, len(df) // max_points)
    return df.iloc[::step]


def plot_series(df: pd.DataFrame, metric: str, outpath: str) -> None:
    plt.figure()
    plt.plot(df["ts"], df[metric])
    plt.title(metric)
    plt.xlabel("time")
    plt.ylabel(metric)
    plt.tight_layout()
    plt.savefig(outpath, dpi=150)
    plt.close()


def plot_combo(df: pd.DataFrame, name: str, metrics: List[str], outpath: str) -> bool:
    cols = [m for m in metrics if m in df.columns and df[m].notna().any()]
    if not cols:
        return False

    plt.figure()
    for m in cols:
        plt.plot(df["ts"], pd.to_numeric(df[m], errors="coerce"), label=m)
    plt.title(name)
    plt.xlabel("time")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outpath, dpi=150)
    plt.close()
    return True


def build_plots(jsonl_path: str, outdir: str, max_points: int = 5000, max_lines: int = 200000) -> List[str]:
    df = load_history(jsonl_path, max_lines=max_lines)
    if df.empty:
        return []

    os.makedirs(outdir, exist_ok=True)
    df = downsample(df, max_points)

    made: List[str] = []
    for metric in METRICS:
        values = pd.to_numeric(df[metric], errors="coerce")
        if values.isna().all():
            continue
        outpath = os.path.join(outdir, f"{metric}.png")
        plot_series(df.assign(**{metric: values}), metric, outpath)
        made.append(outpath)

    combos = [
        ("Levels", ["water_level", "target_level", "downstream_level"], "combo_levels.png"),
        ("Flows and Gate", ["inflow_rate", "outflow_rate", "gate_opening"], "combo_flow_gate.png"),
    ]
    for name, metrics, filename in combos:
        outpath = os.path.join(outdir, filename)
        if plot_combo(df, name, metrics, outpath):
            made.append(outpath)

    return made


# ----------------------------
# Main
# ----------------------------
def main() -> None:
    ap = argparse.ArgumentParser(description="Plot dam telemetry JSONL")
    ap.add_argument("--jsonl", default="out/dam_telemetry.jsonl", help="Telemetry JSONL path")
    ap.add_argument("--outdir", default="out/plots", help="Where to save PNG plots")
    ap.add_argument("--max-points", type=int, default=5000, help="Cap points per metric (simple downsample)")
    args = ap.parse_args()

    made = build_plots(args.jsonl, args.outdir, max_points=args.max_points)
    if not made:
        print("No data found. Check JSONL path.")
        return

    print(f"Plots saved to: {os.path.abspath(args.outdir)} (generated {len(made)} plots)")


if __name__ == "__main__":
    main()

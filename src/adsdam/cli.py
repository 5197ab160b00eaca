#!/usr/bin/env python3
# cli.py - headless dam simulation: scheduler + JSONL telemetry + order reports
from __future__ import annotations

import argparse
import asyncio
import os
import signal
import time
from typing import List

from .plant.events import Event, EventBus
from .plant.orders import OrderError
from .plant.process.config import ProcessConfig
from .plant.process.dam_process import DamProcess
from .plant.scheduler import TickScheduler
from .plant.simulation import DamSimulator
from .plant.state import MAX_WATER_LEVEL, SimulationConfig, SystemState, WateringOrder, clamp
from .reporting.report import export_order_pdf_safe
from .reporting.telemetry import TelemetryRecorder
from .util import log


# ============================================================
# Order reports: export outside the scheduler
# ============================================================
async def order_reporter(bus: EventBus, sim: DamSimulator, report_dir: str, stop_event: asyncio.Event) -> None:
    q = await bus.subscribe("order")
    try:
        while not stop_event.is_set() or not q.empty():
            try:
                ev: Event = await asyncio.wait_for(q.get(), timeout=0.5)
            except asyncio.TimeoutError:
                continue
            if ev.type != "order" or ev.data.get("event") != "COMPLETED":
                continue

            order = WateringOrder.from_dict(ev.data["order"])
            rate = sim.process.cfg.elec_rate_per_kwh
            _, msg = await asyncio.to_thread(export_order_pdf_safe, order, report_dir, rate)
            log(f"[MAIN] {msg}")
    finally:
        await bus.unsubscribe(q)


# ============================================================
# Status line
# ============================================================
async def status_printer(sim: DamSimulator, stop_event: asyncio.Event, every_s: float) -> None:
    while not stop_event.is_set():
        await asyncio.sleep(every_s)
        s = sim.state
        order = sim.active_order
        order_txt = f" order={order.delivered_volume:.0f}/{order.target_volume:.0f}m3" if order else ""
        log(
            f"[SIM] tick={sim.tick_n} mode={sim.mode} level={s.water_level:.3f}m "
            f"gate={s.gate_opening:.0f}%({s.gate_status}) in={s.inflow_rate:.1f} out={s.outflow_rate:.1f} "
            f"E={s.total_energy:.4f}kWh alert={sim.alert_level()}{order_txt}"
        )


# ============================================================
# Main
# ============================================================
def install_signal_handlers(stop_event: asyncio.Event) -> None:
    def _handler(*_):
        stop_event.set()

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except (ValueError, OSError):
        pass


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Autonomous Dam System simulator (headless)")
    p.add_argument("--tick-ms", type=float, default=200.0, help="Tick period in ms (also the physics timestep)")
    p.add_argument("--duration", type=float, default=0.0, help="Stop after N seconds (0 = until Ctrl+C)")
    p.add_argument("--target-level", type=float, default=5.0, help="Radar control level setpoint (m)")
    p.add_argument("--initial-level", type=float, default=5.0, help="Initial reservoir level (m)")
    p.add_argument("--mode", choices=["AUTO", "MANUAL"], default="AUTO", help="Control mode")
    p.add_argument("--rain", type=float, default=0.0, help="Rainfall intensity mm/h (0 = dry)")
    p.add_argument("--elec-rate", type=float, default=1000.0, help="Electricity rate (UZS/kWh)")
    p.add_argument("--seed", type=int, default=None, help="Seed for inflow noise")

    p.add_argument("--order-client", default=None, help="Start a watering order for this client")
    p.add_argument("--order-hectares", type=float, default=50.0, help="Hectares of the watering order")

    p.add_argument("--out", default="out/dam_telemetry.jsonl", help="Output JSONL")
    p.add_argument("--record-every", type=int, default=1, help="Record telemetry every N ticks")
    p.add_argument("--report-dir", default="out/reports", help="Where completed order PDFs go")
    p.add_argument("--status-every", type=float, default=2.0, help="Status line period in seconds")
    return p.parse_args(argv)


def build_simulator(args: argparse.Namespace) -> DamSimulator:
    process = DamProcess(ProcessConfig(elec_rate_per_kwh=args.elec_rate), seed=args.seed)
    sim = DamSimulator(
        state=SystemState(timestamp=time.time(), water_level=clamp(args.initial_level, 0.0, MAX_WATER_LEVEL)),
        config=SimulationConfig(target_level=args.target_level, simulation_speed=args.tick_ms),
        mode=args.mode,
        process=process,
    )
    if args.rain > 0:
        sim.set_rain(True, args.rain)
    return sim


async def run_all(args: argparse.Namespace) -> None:
    stop_event = asyncio.Event()
    install_signal_handlers(stop_event)

    sim = build_simulator(args)
    bus = EventBus()
    recorder = TelemetryRecorder(bus, args.out, every_ticks=args.record_every)

    tasks: List[asyncio.Task] = [
        asyncio.create_task(recorder.run(stop_event)),
        asyncio.create_task(order_reporter(bus, sim, args.report_dir, stop_event)),
    ]
    status = asyncio.create_task(status_printer(sim, stop_event, args.status_every))
    # let the subscribers register before the first tick
    await asyncio.sleep(0)

    log(f"[MAIN] mode={sim.mode} target={sim.config.target_level:.1f}m tick={sim.config.simulation_speed:.0f}ms")
    log(f"[MAIN] out={os.path.abspath(args.out)} reports={os.path.abspath(args.report_dir)}")

    async with TickScheduler(sim, bus) as sched:
        if args.order_client:
            try:
                await sched.call(DamSimulator.start_order, args.order_client, args.order_hectares)
            except OrderError as e:
                log(f"[MAIN] order rejected: {e}")

        await sched.start()

        started = time.monotonic()
        while not stop_event.is_set():
            await asyncio.sleep(0.2)
            if args.duration > 0 and time.monotonic() - started >= args.duration:
                break

        await sched.stop()

    stop_event.set()
    status.cancel()
    await asyncio.gather(status, *tasks, return_exceptions=True)
    log(f"[MAIN] done ticks={sim.tick_n} recorded={recorder.written}")


def main(argv: List[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        asyncio.run(run_all(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()

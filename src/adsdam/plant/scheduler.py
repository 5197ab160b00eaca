# plant/scheduler.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from .events import Event, EventBus
from .simulation import DamSimulator
from ..util import log, utc_iso


@dataclass
class SchedulerConfig:
    jog_interval_s: float = 0.1
    jog_first_step_pct: float = 1.0
    jog_repeat_step_pct: float = 2.0   # faster while the button is held


@dataclass
class _Command:
    fn: Callable[..., Any]
    args: Tuple[Any, ...] = ()
    future: Optional[asyncio.Future] = None
    generation: Optional[int] = None   # set for ticks only
    is_tick: bool = False


class TickScheduler:
    """
    Drives a DamSimulator from asyncio.

    Two producers (the tick clock and the jog repeat timer) and operator
    commands all go through one queue, drained by a single actor task, so the
    simulator only ever sees one writer at a time.
    """

    def __init__(self, sim: DamSimulator, bus: EventBus | None = None, cfg: SchedulerConfig | None = None):
        self.sim = sim
        self.bus = bus or EventBus()
        self.cfg = cfg or SchedulerConfig()

        self._queue: Optional[asyncio.Queue] = None
        self._actor: Optional[asyncio.Task] = None
        self._clock: Optional[asyncio.Task] = None
        self._jog: Optional[asyncio.Task] = None

        # ticks queued under an older generation are dropped
        self._generation: int = 0

    # ======================================================
    # Lifecycle
    # ======================================================
    async def open(self) -> None:
        if self._actor is not None:
            return
        self._queue = asyncio.Queue()
        self._actor = asyncio.create_task(self._actor_loop())

    async def close(self) -> None:
        await self.stop()
        if self._actor is not None:
            await self.drain()
            self._actor.cancel()
            await asyncio.gather(self._actor, return_exceptions=True)
            self._actor = None
            self._queue = None

    async def __aenter__(self) -> "TickScheduler":
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    @property
    def running(self) -> bool:
        return self._clock is not None and not self._clock.done()

    @property
    def jogging(self) -> bool:
        return self._jog is not None and not self._jog.done()

    async def start(self) -> None:
        await self.open()
        if self.running:
            return
        self._generation += 1
        self._clock = asyncio.create_task(self._clock_loop(self._generation))
        log(f"[SCHED] started period={self.sim.config.simulation_speed:.0f}ms")

    async def stop(self) -> None:
        await self.release()
        if self._clock is None:
            return
        self._generation += 1
        task, self._clock = self._clock, None
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        log(f"[SCHED] stopped at tick={self.sim.tick_n}")

    async def set_period(self, ms: float) -> None:
        await self.call(DamSimulator.set_simulation_speed, ms)
        if self.running:
            await self.stop()
            await self.start()

    async def drain(self) -> None:
        if self._queue is not None:
            await self._queue.join()

    # ======================================================
    # Commands
    # ======================================================
    async def call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run fn(sim, *args) on the actor and return its result (or raise its error)."""
        await self.open()
        fut = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(_Command(fn=fn, args=args, future=fut))
        return await fut

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        if self._queue is None:
            raise RuntimeError("scheduler is not open")
        self._queue.put_nowait(_Command(fn=fn, args=args))

    async def press(self, direction: str) -> bool:
        """Start a manual jog: one small step now, bigger steps while held."""
        d = direction.upper()
        if d not in ("OPEN", "CLOSE"):
            raise ValueError(f"direction must be OPEN or CLOSE, got {direction!r}")

        await self.release()
        sign = 1.0 if d == "OPEN" else -1.0
        # the mode check happens on the actor, after anything already queued
        if not await self.call(DamSimulator.jog, sign * self.cfg.jog_first_step_pct):
            log(f"[SCHED] jog {d} ignored in {self.sim.mode} mode")
            return False

        self._jog = asyncio.create_task(self._jog_loop(sign))
        return True

    async def release(self) -> None:
        if self._jog is None:
            return
        task, self._jog = self._jog, None
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    # ======================================================
    # Producers
    # ======================================================
    async def _clock_loop(self, generation: int) -> None:
        while True:
            await asyncio.sleep(self.sim.config.dt_s)
            self._queue.put_nowait(_Command(fn=DamSimulator.tick, generation=generation, is_tick=True))

    async def _jog_loop(self, sign: float) -> None:
        while True:
            await asyncio.sleep(self.cfg.jog_interval_s)
            self.post(DamSimulator.jog, sign * self.cfg.jog_repeat_step_pct)

    # ======================================================
    # Actor
    # ======================================================
    async def _actor_loop(self) -> None:
        q = self._queue
        while True:
            cmd: _Command = await q.get()
            try:
                if cmd.is_tick and cmd.generation != self._generation:
                    continue

                completed_before = self.sim.last_completed_order
                result = cmd.fn(self.sim, *cmd.args)
                if cmd.future is not None and not cmd.future.done():
                    cmd.future.set_result(result)

                if cmd.is_tick:
                    await self._publish_tick()
                    done = self.sim.last_completed_order
                    if done is not None and done is not completed_before:
                        await self.bus.publish(Event(
                            type="order",
                            ts=utc_iso(),
                            source="scheduler",
                            data={"event": "COMPLETED", "order": done.to_dict()},
                        ))
            except Exception as e:
                if cmd.future is not None and not cmd.future.done():
                    cmd.future.set_exception(e)
                else:
                    log(f"[SCHED] command {getattr(cmd.fn, '__name__', cmd.fn)} failed: {e!r}")
            finally:
                q.task_done()

    async def _publish_tick(self) -> None:
        sim = self.sim
        active = sim.active_order
        await self.bus.publish(Event(
            type="telemetry",
            ts=utc_iso(),
            source="scheduler",
            data={
                "tick": sim.tick_n,
                "mode": sim.mode,
                "alert_level": sim.alert_level(),
                "target_level": sim.config.target_level,
                "state": sim.state.to_dict(),
                "order": active.to_dict() if active else None,
            },
        ))

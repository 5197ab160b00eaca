"""
TickScheduler: lifecycle, stale ticks, jog repeat, events
"""

import asyncio

import pytest

from adsdam.plant.events import Event, EventBus
from adsdam.plant.scheduler import SchedulerConfig, TickScheduler, _Command
from adsdam.plant.simulation import DamSimulator
from adsdam.plant.state import SystemState


def drain_queue(q: asyncio.Queue) -> list:
    items = []
    while not q.empty():
        items.append(q.get_nowait())
    return items


class TestLifecycle:
    """start/stop/close"""

    def test_start_is_idempotent(self, make_sim):
        async def scenario():
            async with TickScheduler(make_sim(simulation_speed=10.0)) as sched:
                await sched.start()
                first = sched._clock
                await sched.start()
                assert sched._clock is first
                assert sched.running
                await sched.stop()
                assert not sched.running

        asyncio.run(scenario())

    def test_stop_halts_ticks(self, make_sim):
        async def scenario():
            sim = make_sim(simulation_speed=10.0)
            async with TickScheduler(sim) as sched:
                await sched.start()
                await asyncio.sleep(0.15)
                await sched.stop()
                await sched.drain()
                n = sim.tick_n
                assert n > 0
                await asyncio.sleep(0.1)
                await sched.drain()
                assert sim.tick_n == n

        asyncio.run(scenario())

    def test_stale_tick_is_dropped(self, make_sim):
        async def scenario():
            sim = make_sim()
            async with TickScheduler(sim) as sched:
                await sched.start()
                await sched.stop()
                old = sched._generation - 1
                sched._queue.put_nowait(_Command(fn=DamSimulator.tick, generation=old, is_tick=True))
                await sched.drain()
                assert sim.tick_n == 0

        asyncio.run(scenario())

    def test_set_period_restarts_clock(self, make_sim):
        async def scenario():
            sim = make_sim(simulation_speed=50.0)
            async with TickScheduler(sim) as sched:
                await sched.start()
                first = sched._clock
                await sched.set_period(10.0)
                assert sim.config.simulation_speed == 10.0
                assert sched.running
                assert sched._clock is not first

        asyncio.run(scenario())

    def test_close_stops_everything(self, make_sim):
        async def scenario():
            sched = TickScheduler(make_sim(simulation_speed=10.0))
            async with sched:
                await sched.start()
            assert not sched.running
            assert sched._actor is None
            with pytest.raises(RuntimeError):
                sched.post(DamSimulator.tick)

        asyncio.run(scenario())


class TestCommands:
    """Serialized commands through the actor"""

    def test_call_returns_result(self, make_sim):
        async def scenario():
            sim = make_sim()
            async with TickScheduler(sim) as sched:
                order = await sched.call(DamSimulator.start_order, "Farm", 2)
                assert order.target_volume == 2000.0
                assert sim.active_order is order

        asyncio.run(scenario())

    def test_call_raises_and_actor_survives(self, make_sim):
        async def scenario():
            sim = make_sim()
            async with TickScheduler(sim) as sched:
                with pytest.raises(ValueError):
                    await sched.call(DamSimulator.set_mode, "TURBO")
                await sched.call(DamSimulator.set_mode, "MANUAL")
                assert sim.mode == "MANUAL"

        asyncio.run(scenario())

    def test_posted_failure_is_logged(self, make_sim, capsys):
        async def scenario():
            sim = make_sim()
            async with TickScheduler(sim) as sched:
                sched.post(DamSimulator.set_target_level, float("nan"))
                await sched.drain()
                await sched.call(DamSimulator.tick)
                assert sim.tick_n == 1

        asyncio.run(scenario())
        assert "[SCHED] command set_target_level failed" in capsys.readouterr().out


class TestJog:
    """Press and hold in MANUAL mode"""

    def test_press_steps_then_repeats(self, make_sim):
        async def scenario():
            sim = make_sim(mode="MANUAL")
            cfg = SchedulerConfig(jog_interval_s=0.05)
            async with TickScheduler(sim, cfg=cfg) as sched:
                assert await sched.press("OPEN")
                await sched.drain()
                assert sim.state.target_gate_opening == 1.0

                await asyncio.sleep(0.18)
                await sched.release()
                await sched.drain()
                held = sim.state.target_gate_opening
                assert held >= 3.0
                assert (held - 1.0) % 2.0 == 0.0
                assert not sched.jogging

                await asyncio.sleep(0.1)
                await sched.drain()
                assert sim.state.target_gate_opening == held

        asyncio.run(scenario())

    def test_close_direction(self, make_sim):
        async def scenario():
            sim = make_sim(SystemState(target_gate_opening=50.0, gate_opening=50.0), mode="MANUAL")
            async with TickScheduler(sim) as sched:
                await sched.press("close")
                await sched.release()
                await sched.drain()
                assert sim.state.target_gate_opening == 49.0

        asyncio.run(scenario())

    def test_ignored_in_auto(self, make_sim):
        async def scenario():
            sim = make_sim()
            async with TickScheduler(sim) as sched:
                assert await sched.press("OPEN") is False
                assert not sched.jogging
                await sched.drain()
                assert sim.state.target_gate_opening == 0.0
                with pytest.raises(ValueError):
                    await sched.press("UP")

        asyncio.run(scenario())

    def test_press_after_queued_mode_switch(self, make_sim):
        async def scenario():
            sim = make_sim()
            async with TickScheduler(sim) as sched:
                sched.post(DamSimulator.set_mode, "MANUAL")
                accepted = await sched.press("OPEN")
                assert sched.jogging
                await sched.release()
                await sched.drain()
                return accepted, sim.mode, sim.state.target_gate_opening

        assert asyncio.run(scenario()) == (True, "MANUAL", 1.0)

    def test_press_after_queued_switch_to_auto(self, make_sim):
        async def scenario():
            sim = make_sim(mode="MANUAL")
            async with TickScheduler(sim) as sched:
                sched.post(DamSimulator.set_mode, "AUTO")
                accepted = await sched.press("OPEN")
                assert not sched.jogging
                return accepted, sim.state.target_gate_opening

        assert asyncio.run(scenario()) == (False, 0.0)

    def test_stop_releases_jog(self, make_sim):
        async def scenario():
            sim = make_sim(mode="MANUAL")
            async with TickScheduler(sim) as sched:
                await sched.press("OPEN")
                await sched.stop()
                assert not sched.jogging

        asyncio.run(scenario())


class TestEvents:
    """Telemetry and order events on the bus"""

    def test_telemetry_per_tick(self, make_sim):
        async def scenario():
            sim = make_sim(simulation_speed=10.0)
            bus = EventBus()
            q = await bus.subscribe()
            async with TickScheduler(sim, bus) as sched:
                await sched.start()
                await asyncio.sleep(0.1)
                await sched.stop()
            events = [e for e in drain_queue(q) if e.type == "telemetry"]
            assert len(events) == sim.tick_n
            assert [e.data["tick"] for e in events] == list(range(1, sim.tick_n + 1))
            last = events[-1].data
            assert last["state"] == sim.state.to_dict()
            assert last["mode"] == "AUTO"
            assert last["alert_level"] == "NORMAL"
            assert last["order"] is None
            seqs = [e.seq for e in events]
            assert seqs == sorted(seqs)

        asyncio.run(scenario())

    def test_order_completed_event(self, make_sim):
        async def scenario():
            sim = make_sim(
                SystemState(water_level=6.0, gate_opening=100.0, target_gate_opening=100.0),
                simulation_speed=10.0,
            )
            bus = EventBus()
            q = await bus.subscribe()
            async with TickScheduler(sim, bus) as sched:
                await sched.call(DamSimulator.start_order, "Farm", 0.001)
                await sched.start()
                for _ in range(100):
                    await asyncio.sleep(0.01)
                    if sim.last_completed_order is not None:
                        break
                await sched.stop()
            orders = [e for e in drain_queue(q) if e.type == "order"]
            assert len(orders) == 1
            assert orders[0].data["event"] == "COMPLETED"
            assert orders[0].data["order"]["client_name"] == "Farm"
            assert orders[0].data["order"]["status"] == "COMPLETED"

        asyncio.run(scenario())


class TestEventBus:
    """Type filters and overflow"""

    def test_filtered_subscription(self):
        async def scenario():
            bus = EventBus()
            everything = await bus.subscribe()
            orders = await bus.subscribe("order")
            await bus.publish(Event(type="telemetry", ts="", source="t", data={}))
            await bus.publish(Event(type="order", ts="", source="t", data={}))
            return [e.type for e in drain_queue(everything)], [e.seq for e in drain_queue(orders)]

        all_types, order_seqs = asyncio.run(scenario())
        assert all_types == ["telemetry", "order"]
        assert order_seqs == [2]

    def test_full_queue_drops(self):
        async def scenario():
            bus = EventBus(max_queue=2)
            q = await bus.subscribe()
            for _ in range(5):
                await bus.publish(Event(type="telemetry", ts="", source="t", data={}))
            await bus.unsubscribe(q)
            await bus.publish(Event(type="telemetry", ts="", source="t", data={}))
            return bus, q

        bus, q = asyncio.run(scenario())
        assert q.qsize() == 2
        assert bus.dropped == 3

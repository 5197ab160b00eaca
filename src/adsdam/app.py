# app.py (Streamlit) - operator panel for the dam simulator
# Run: streamlit run src/adsdam/app.py
from __future__ import annotations

import time

import pandas as pd
import streamlit as st

from adsdam.plant.orders import OrderError, estimated_water_cost
from adsdam.plant.process.power import power_summary
from adsdam.plant.simulation import DamSimulator
from adsdam.plant.state import TARGET_LEVEL_MAX, TARGET_LEVEL_MIN
from adsdam.reporting.report import order_pdf_bytes, report_filename, sample_completed_order

JOG_INTERVAL_S = 0.1
JOG_PRESS_STEP = 1.0
JOG_HOLD_STEP = 2.0


# ======================================================
# INIT
# ======================================================
st.set_page_config(page_title="ADS Dashboard", layout="wide")

if "sim" not in st.session_state:
    st.session_state.sim = DamSimulator()
    st.session_state.running = True
    st.session_state.started_at = time.time()
    st.session_state.history = []
    st.session_state.max_history = 2000
    st.session_state.hold_since = None
    st.session_state.notice = None

sim: DamSimulator = st.session_state.sim


# ======================================================
# STEP FUNCTION
# ======================================================
def sim_step():
    s = sim.tick()
    order = sim.active_order
    st.session_state.history.append(
        {
            "t": s.timestamp - st.session_state.started_at,
            "water_level": s.water_level,
            "target_level": sim.config.target_level,
            "downstream_level": s.downstream_level,
            "inflow": s.inflow_rate,
            "outflow": s.outflow_rate,
            "gate": s.gate_opening,
            "gate_target": s.target_gate_opening,
            "gate_status": s.gate_status,
            "power_kw": s.current_power,
            "energy_kwh": s.total_energy,
            "cost": s.total_cost,
            "order_m3": order.delivered_volume if order else None,
        }
    )
    if len(st.session_state.history) > st.session_state.max_history:
        st.session_state.history = st.session_state.history[-st.session_state.max_history :]


def apply_hold(direction: str | None):
    # repeat steps for the time the hold switch has been on
    if direction is None or sim.mode != "MANUAL":
        st.session_state.hold_since = None
        return
    now = time.time()
    since = st.session_state.hold_since
    if since is None:
        sim.jog(JOG_PRESS_STEP if direction == "OPEN" else -JOG_PRESS_STEP)
        st.session_state.hold_since = now
        return
    repeats = int((now - since) / JOG_INTERVAL_S)
    if repeats > 0:
        step = JOG_HOLD_STEP if direction == "OPEN" else -JOG_HOLD_STEP
        sim.jog(step * repeats)
        st.session_state.hold_since = since + repeats * JOG_INTERVAL_S


# ======================================================
# SIDEBAR CONTROLS
# ======================================================
st.sidebar.title("Control Station")

st.session_state.running = st.sidebar.toggle("Simulation running", value=st.session_state.running)
speed = st.sidebar.slider("Tick period (ms)", 50, 2000, int(sim.config.simulation_speed), 50)
if speed != sim.config.simulation_speed:
    sim.set_simulation_speed(speed)

c1, c2 = st.sidebar.columns(2)
if c1.button("Step once"):
    sim_step()
if c2.button("Reset"):
    for k in ("sim", "running", "started_at", "history", "hold_since", "notice"):
        st.session_state.pop(k, None)
    st.rerun()

st.sidebar.divider()

st.sidebar.subheader("Radar Control Level (Target)")
level = st.sidebar.slider("Target level (m)", TARGET_LEVEL_MIN, TARGET_LEVEL_MAX, float(sim.config.target_level), 0.1)
if level != sim.config.target_level:
    sim.set_target_level(level)

st.sidebar.divider()

st.sidebar.subheader("Manual Control")
manual = st.sidebar.toggle("Manual mode", value=(sim.mode == "MANUAL"))
sim.set_mode("MANUAL" if manual else "AUTO")

j1, j2 = st.sidebar.columns(2)
if j1.button("OPEN", disabled=not manual):
    sim.jog(JOG_PRESS_STEP)
if j2.button("CLOSE", disabled=not manual):
    sim.jog(-JOG_PRESS_STEP)
hold = st.sidebar.radio("Hold", ["-", "OPEN", "CLOSE"], horizontal=True, disabled=not manual)
apply_hold(None if hold == "-" else hold)
st.sidebar.caption("Hold keeps moving the gate target until switched back to '-'.")

st.sidebar.divider()

st.sidebar.subheader("Environment")
raining = st.sidebar.checkbox("Raining", value=sim.state.is_raining)
rain_mm = st.sidebar.slider("Rainfall (mm/h)", 0.0, 100.0, float(sim.state.rainfall_intensity), 1.0)
if raining != sim.state.is_raining or rain_mm != sim.state.rainfall_intensity:
    sim.set_rain(raining, rain_mm)

st.sidebar.subheader("Electricity")
rate = st.sidebar.number_input("Rate (UZS/kWh)", min_value=0.0, value=float(sim.process.cfg.elec_rate_per_kwh), step=50.0)
if rate != sim.process.cfg.elec_rate_per_kwh:
    sim.set_elec_rate(rate)


# ======================================================
# MAIN UI
# ======================================================
state = sim.state
alert = sim.alert_level()

st.title("ADS Dashboard | Autonomous Dam System")
st.caption(f"Mode: **{sim.mode}** | Alert: **{alert}**")

if alert == "CRITICAL":
    st.error(f"CRITICAL water level {state.water_level:.2f} m")
elif alert == "WARNING":
    st.warning(f"WARNING water level {state.water_level:.2f} m")

a, b, c, d = st.columns(4)
a.metric("Water Level (m)", f"{state.water_level:.2f}", help=f"Target: {sim.config.target_level:.1f} m")
b.metric("Inflow (m³/s)", f"{state.inflow_rate:.1f}")
c.metric("Outflow (m³/s)", f"{state.outflow_rate:.1f}")
d.metric("Gate Status", state.gate_status)

g1, g2, g3 = st.columns(3)
g1.metric("Gate opening (%)", f"{state.gate_opening:.0f}")
g2.metric("Gate target (%)", f"{state.target_gate_opening:.0f}")
g3.metric("Downstream (m)", f"{state.downstream_level:.2f}")

st.divider()

# Power
st.subheader("Power Consumption Monitor")
p1, p2, p3 = st.columns(3)
p1.metric("Real-time Load (kW)", f"{state.current_power:.1f}")
p2.metric("Total Usage (kWh)", f"{state.total_energy:.4f}")
p3.metric("Est. Cost (UZS)", f"{state.total_cost:.1f}")

summary = power_summary(sim.process.cfg, state.total_energy, time.time() - st.session_state.started_at)
with st.expander("Power analysis", expanded=False):
    e1, e2, e3 = st.columns(3)
    e1.metric("Efficiency", summary.efficiency_status)
    e2.metric("Avg load (kW)", f"{summary.average_load_kw:.2f}")
    e3.metric("Projected month (UZS)", f"{summary.projected_monthly_cost:,.0f}")
    st.write(summary.optimization_tip)

st.divider()

# Orders
st.subheader("Cotton Watering Order")
order = sim.active_order
if order is None:
    client = st.text_input("Client name", value="Javlon Dehqon")
    hectares = st.number_input("Land area (ha)", min_value=0.0, value=50.0, step=1.0)
    per_ha = sim.orders.water_per_hectare_m3
    per_m3 = sim.orders.water_cost_per_m3
    estimate = estimated_water_cost(hectares, per_ha, per_m3)
    st.caption(f"Est. Water Cost: **{estimate:,.0f} UZS** (based on {per_ha:,.0f} m³/ha @ {per_m3:g} UZS/m³)")
    if st.button("Start Order"):
        try:
            sim.start_order(client, hectares)
            st.session_state.notice = None
            st.rerun()
        except OrderError as e:
            st.session_state.notice = str(e)
    if st.session_state.notice:
        st.warning(st.session_state.notice)
else:
    st.write(f"Watering: **{order.client_name}** ({order.hectares:g} ha)")
    st.progress(order.progress_pct / 100.0, text=f"{order.delivered_volume:,.0f} / {order.target_volume:,.0f} m³")
    o1, o2 = st.columns(2)
    o1.metric("Power (kWh)", f"{order.power_consumed:.4f}")
    o2.metric("Water cost (UZS)", f"{order.water_cost:,.0f}")
    if st.button("Cancel order"):
        sim.cancel_order()
        st.rerun()

done = sim.last_completed_order
rate_now = sim.process.cfg.elec_rate_per_kwh
if done is not None and order is None:
    st.success(f"Order Complete: {done.client_name} • {done.hectares:g} ha")
    try:
        st.download_button("PDF Report", order_pdf_bytes(done, rate_now), file_name=report_filename(done), mime="application/pdf")
    except Exception as e:
        st.error(f"Report export failed: {e}")

with st.expander("Sample report", expanded=False):
    sample = sample_completed_order()
    try:
        st.download_button("Export sample report", order_pdf_bytes(sample, rate_now), file_name=report_filename(sample), mime="application/pdf")
    except Exception as e:
        st.error(f"Report export failed: {e}")

st.divider()

# History
if len(st.session_state.history) > 5:
    st.subheader("History")
    df = pd.DataFrame(st.session_state.history).set_index("t")
    st.line_chart(df[["water_level", "target_level", "downstream_level"]])
    st.line_chart(df[["inflow", "outflow"]])
    st.line_chart(df[["gate", "gate_target"]])
    st.dataframe(df.tail(30), use_container_width=True)

# ======================================================
# LOOP
# ======================================================
if st.session_state.running:
    sim_step()
    time.sleep(sim.config.dt_s)
    st.rerun()

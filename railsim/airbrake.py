"""Per-car air brake equipment built from a brake valve description.

Each car holds the tanks its valve needs.  Brake pipe segments of
neighbouring cars are linked so that air flows along the train.
"""

from __future__ import annotations

import math

from .airtank import STDATM, AirPipe, AirTank
from .brakevalve import BrakeValve, get_valve

PIPE_DIAMETER = 0.032
_CUBIC_INCH = 0.0254**3


class AirBrake:
    """The air brake equipment of one car."""

    def __init__(self, brake_valve: str) -> None:
        self.next: AirBrake | None = None
        self.prev: AirBrake | None = None
        self.next_open = False
        self.prev_open = False
        self.cut_out = False
        self._retainer = 0
        self.valve: BrakeValve = get_valve(brake_valve)
        self.valve_state = 0
        self.pipes: list[AirPipe] = []
        self.tanks: list[AirTank] = []
        for spec in self.valve.tanks:
            if spec.volume > 0:
                self.tanks.append(AirTank(spec.volume))
            else:
                pipe = AirPipe(spec.pipe_length, PIPE_DIAMETER)
                self.pipes.append(pipe)
                self.tanks.append(pipe)
        self.bp_index = self.valve.tank_index("BP")
        self.ar_index = self.valve.tank_index("AR")
        self.bc_index = self.valve.tank_index("BC")

    # linking

    def set_next(self, other: AirBrake | None) -> None:
        """Link to the following car, pipe by pipe."""
        self.next = other
        for i, pipe in enumerate(self.pipes):
            pipe.next = other.pipes[i] if other is not None and i < len(other.pipes) else None

    def set_prev(self, other: AirBrake | None) -> None:
        """Link to the preceding car, pipe by pipe."""
        self.prev = other
        for i, pipe in enumerate(self.pipes):
            pipe.prev = other.pipes[i] if other is not None and i < len(other.pipes) else None

    def set_next_open(self, value: bool) -> None:
        self.next_open = value
        for pipe in self.pipes:
            pipe.next_open = value

    def set_prev_open(self, value: bool) -> None:
        self.prev_open = value
        for pipe in self.pipes:
            pipe.prev_open = value

    # retainer

    @property
    def retainer(self) -> int:
        return self._retainer

    @retainer.setter
    def retainer(self, value: int) -> None:
        if 0 <= value < len(self.valve.retainer_settings):
            self._retainer = value

    def inc_retainer(self) -> None:
        if self._retainer < len(self.valve.retainer_settings) - 1:
            self._retainer += 1

    def dec_retainer(self) -> None:
        if self._retainer > 0:
            self._retainer -= 1

    @property
    def retainer_name(self) -> str:
        settings = self.valve.retainer_settings
        return settings[self._retainer].name if settings else ""

    # pressures, all in psig

    def pressure(self, name: str) -> float:
        """Gauge pressure of the named tank, 0 when there is none."""
        i = self.valve.tank_index(name)
        return 0.0 if i < 0 else self.tanks[i].psig

    def set_pressure(self, name: str, psig: float) -> None:
        i = self.valve.tank_index(name)
        if i >= 0:
            self.tanks[i].psig = psig

    @property
    def pipe_pressure(self) -> float:
        return self.tanks[self.bp_index].psig

    def set_pipe_pressure(self, psig: float) -> None:
        self.set_pressure("BP", psig)
        self.set_pressure("QAC", psig)

    def set_emerg_res_pressure(self, psig: float) -> None:
        self.set_pressure("ER", psig)

    @property
    def aux_res_pressure(self) -> float:
        return self.tanks[self.ar_index].psig

    def set_aux_res_pressure(self, psig: float) -> None:
        self.set_pressure("AR", psig)

    @property
    def cyl_pressure(self) -> float:
        return self.tanks[self.bc_index].psig

    def set_cyl_pressure(self, psig: float) -> None:
        self.set_pressure("BC", psig)
        self.set_pressure("AC", psig)

    @property
    def triple_valve_state(self) -> int:
        return self.valve_state & 0xF

    @property
    def force_mult(self) -> float:
        """Fraction of full braking force given by the cylinder pressure."""
        p = self.tanks[self.bc_index].psig
        return (p - 5) / 45 if p > 5 else 0.0

    def set_volume(self, name: str, volume: float) -> None:
        i = self.valve.tank_index(name)
        if i >= 0:
            self.tanks[i].volume = volume

    # simulation

    def update_air_speeds(self, dt: float) -> None:
        for pipe in self.pipes:
            pipe.update_air_speed(dt)

    def update_pressures(self, dt: float) -> None:
        for pipe in self.pipes:
            if pipe.prev is not None and pipe.prev_open:
                pipe.add_air(0.5 * (pipe.air_flow + pipe.prev.air_flow))
            elif pipe.prev_open:
                pipe.add_air(pipe.air_flow)
            if pipe.next is not None and pipe.next_open:
                pipe.add_air(-0.5 * (pipe.air_flow + pipe.next.air_flow))
            elif pipe.next_open:
                pipe.add_air(-pipe.air_flow)
        self.valve_state = self.valve.update_state(self.valve_state, self.tanks)
        self.valve.update_pressures(self.valve_state, dt, self.tanks, self._retainer)


class EngAirBrake(AirBrake):
    """Locomotive air brake: adds compressor, main and equalising reservoirs."""

    def __init__(self, max_eq_res: float, brake_valve: str) -> None:
        super().__init__(brake_valve)
        self.auto_control = 0.0
        self.ind_control = 0.0
        self.pump_on = False
        self.eng_cut_out = True
        self.air_flow = 0.0
        self.pump_on_threshold = max_eq_res + 20
        self.pump_off_threshold = max_eq_res + 30
        self.pump_charge_rate = 1.0
        self.feed_threshold = max_eq_res
        self.service_opening_area = 0.00333 * 0.00333 * math.pi
        self.charge_opening_area = 0.4 * 0.00312 * 0.00312 * math.pi
        self.main_res = AirTank(4 * 50000 * _CUBIC_INCH)
        self.eq_res = AirTank(145 * _CUBIC_INCH)
        self.main_res.psig = self.pump_off_threshold
        self.eq_res.psig = 0
        self.mr_index = self.valve.tank_index("MR")
        self.cp_index = self.valve.tank_index("CP")

    @property
    def main_res_pressure(self) -> float:
        return self.main_res.psig

    @main_res_pressure.setter
    def main_res_pressure(self, psig: float) -> None:
        self.main_res.psig = psig

    @property
    def eq_res_pressure(self) -> float:
        return self.eq_res.psig

    @eq_res_pressure.setter
    def eq_res_pressure(self, psig: float) -> None:
        self.eq_res.psig = psig

    @property
    def max_eq_res_pressure(self) -> float:
        return self.feed_threshold

    def set_max_eq_res_pressure(self, psig: float) -> None:
        self.pump_on_threshold = psig + 20
        self.pump_off_threshold = psig + 30
        self.feed_threshold = psig

    @property
    def air_flow_cfm(self) -> float:
        return self.air_flow * 3.281**3 * 60 * self.tanks[0].pressure / STDATM

    def update_pressures(self, dt: float) -> None:
        if self.mr_index >= 0:
            self.tanks[self.mr_index].pressure = self.main_res.pressure
        super().update_pressures(dt)
        if self.mr_index >= 0:
            self.main_res.pressure = self.tanks[self.mr_index].pressure
        if self.eng_cut_out:
            return
        flow = 0.0
        if self.main_res.psig < self.pump_on_threshold:
            self.pump_on = True
        elif self.main_res.psig > self.pump_off_threshold:
            self.pump_on = False
        if self.pump_on:
            self.main_res.psig = self.main_res.psig + dt * self.pump_charge_rate
        if self.auto_control > 0:
            self.eq_res.psig = self.eq_res.psig - 6.5 * dt
        pipe = self.tanks[self.bp_index]
        if self.auto_control < 0 and pipe.psig < self.feed_threshold:
            kg = self.main_res.move_air_through(pipe, self.charge_opening_area, dt)
            flow = kg / dt / pipe.density
        if self.auto_control >= 0 and pipe.pressure > self.eq_res.pressure:
            kg = pipe.vent(self.service_opening_area, dt)
            flow = kg / dt / pipe.density
        if self.auto_control < 0:
            self.eq_res.pressure = pipe.pressure
        self.air_flow = 0.98 * self.air_flow + 0.02 * flow
        if self.cp_index >= 0 and self.tanks[self.cp_index].psig < self.feed_threshold:
            self.main_res.move_air_through(
                self.tanks[self.cp_index], self.charge_opening_area, dt
            )

    def bail_off(self) -> None:
        """Release the locomotive brakes at once."""
        self.set_aux_res_pressure(self.pipe_pressure)
        self.set_cyl_pressure(0)


def create_air_brake(engine: bool, max_eq_res: float, brake_valve: str) -> AirBrake:
    """Return locomotive equipment when ``engine`` is true, else car equipment."""
    if engine:
        return EngAirBrake(max_eq_res, brake_valve)
    return AirBrake(brake_valve)
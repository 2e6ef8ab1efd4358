"""Automatic brake valve models.

A valve is described by its tanks, one or more pistons that each compare
two tank pressures, the states each piston may be in and the passages
open between tanks in each state.  The combined valve state packs one
4-bit state index per piston.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .airtank import PSI2PA, STDATM, AirTank


class BrakeValveError(Exception):
    """Raised when a valve description refers to unknown tanks or states."""


@dataclass
class Passage:
    """An opening between two tanks, or from a tank to atmosphere."""

    tank1: int
    tank2: int | None
    area: float
    oneway: bool = False
    max_pressure2: float = 0.0


@dataclass(eq=False)
class ValveState:
    """One position of a piston and the passages it opens."""

    name: str
    next_name_up: str
    next_name_down: str
    index: int = 0
    up_threshold: float = 100 * PSI2PA
    down_threshold: float = -100 * PSI2PA
    next_up: ValveState | None = field(default=None, repr=False)
    next_down: ValveState | None = field(default=None, repr=False)
    passages: list[Passage] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.next_up is None:
            self.next_up = self
        if self.next_down is None:
            self.next_down = self


@dataclass
class Piston:
    """A piston moved by the pressure difference between two tanks."""

    up_tank: int
    down_tank: int
    states: list[ValveState] = field(default_factory=list)


@dataclass
class TankSpec:
    """A tank of the valve: a volume, or a pipe length when volume is 0."""

    name: str
    index: int
    volume: float = 0.0
    pipe_length: float = 0.0


@dataclass
class RetainerSetting:
    """A retaining valve position: exhaust area and held pressure (Pa)."""

    name: str
    area: float
    pressure: float


def radius_to_area(r: float) -> float:
    """Area of a circle of radius ``r``."""
    return r * r * math.pi


def choke_area(diameter: float, contraction: float) -> float:
    """Effective area of a choke of ``diameter`` metres."""
    return 0.25 * contraction * diameter * diameter * math.pi


def choke_area_inches(diameter: float, contraction: float) -> float:
    """Effective area of a choke whose diameter is given in inches."""
    return choke_area(0.0254 * diameter, contraction)


class BrakeValve:
    """A configurable automatic brake valve."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.tanks: list[TankSpec] = []
        self.pistons: list[Piston] = []
        self.retainer_settings: list[RetainerSetting] = []
        self.tank_map: dict[str, TankSpec] = {}
        self.state_map: dict[str, ValveState] = {}

    def __repr__(self) -> str:
        return f"BrakeValve({self.name!r})"

    def _tank(self, name: str) -> TankSpec:
        try:
            return self.tank_map[name]
        except KeyError:
            raise BrakeValveError(f"cannot find tank {name}") from None

    def add_tank(self, name: str, volume: float) -> None:
        tank = TankSpec(name, len(self.tanks), volume=volume)
        self.tanks.append(tank)
        self.tank_map[name] = tank

    def add_pipe(self, name: str, length: float) -> None:
        tank = TankSpec(name, len(self.tanks), pipe_length=length)
        self.tanks.append(tank)
        self.tank_map[name] = tank

    def add_piston(self, up: str, down: str) -> None:
        up_tank = self._tank(up)
        down_tank = self._tank(down)
        self.pistons.append(Piston(up_tank.index, down_tank.index))

    def add_state(
        self,
        name: str,
        up_name: str,
        down_name: str,
        up_threshold: float,
        down_threshold: float,
    ) -> None:
        """Add a state to the most recent piston; thresholds are in psi."""
        if not self.pistons:
            raise BrakeValveError(f"state {name} added before any piston")
        piston = self.pistons[-1]
        state = ValveState(
            name,
            up_name,
            down_name,
            index=len(piston.states),
            up_threshold=up_threshold * PSI2PA,
            down_threshold=down_threshold * PSI2PA,
        )
        piston.states.append(state)
        self.state_map[name] = state

    def add_passage(
        self,
        state: str,
        tank1: str,
        tank2: str | None,
        area: float,
        oneway: bool = False,
        max_pressure2: float = 0.0,
    ) -> None:
        """Open a passage in ``state``; an empty ``tank2`` vents to atmosphere.

        ``max_pressure2`` (psig) closes the passage once tank2 reaches it.
        """
        try:
            valve_state = self.state_map[state]
        except KeyError:
            raise BrakeValveError(f"cannot find state {state}") from None
        first = self._tank(tank1)
        second = self._tank(tank2).index if tank2 else None
        limit = max_pressure2 * PSI2PA + STDATM if max_pressure2 > 0 else 0.0
        valve_state.passages.append(Passage(first.index, second, area, oneway, limit))

    def add_retainer_setting(self, name: str, area: float, psig: float) -> None:
        self.retainer_settings.append(RetainerSetting(name, area, psig * PSI2PA + STDATM))

    def match_states(self) -> None:
        """Resolve the next-state names of every state."""
        for piston in self.pistons:
            for state in piston.states:
                for attr, wanted in (
                    ("next_up", state.next_name_up),
                    ("next_down", state.next_name_down),
                ):
                    target = self.state_map.get(wanted)
                    if target is None:
                        raise BrakeValveError(f"cannot find state {wanted}")
                    setattr(state, attr, target)

    def tank_index(self, name: str) -> int:
        """Index of the named tank, or -1 when the valve has none."""
        tank = self.tank_map.get(name)
        return -1 if tank is None else tank.index

    def update_state(self, state: int, tanks: Sequence[AirTank]) -> int:
        """Return the new packed state for the current tank pressures."""
        new_state = 0
        for i, piston in enumerate(self.pistons):
            dp = tanks[piston.up_tank].pressure - tanks[piston.down_tank].pressure
            current = piston.states[(state >> (4 * i)) & 0xF]
            if dp > current.up_threshold:
                index = current.next_up.index
            elif dp < current.down_threshold:
                index = current.next_down.index
            else:
                index = current.index
            new_state |= index << (4 * i)
        return new_state

    def update_pressures(
        self,
        state: int,
        time_step: float,
        tanks: Sequence[AirTank],
        retainer_control: int,
    ) -> None:
        """Move air through every passage open in the packed ``state``."""
        for i, piston in enumerate(self.pistons):
            current = piston.states[(state >> (4 * i)) & 0xF]
            for passage in current.passages:
                tank1 = tanks[passage.tank1]
                if passage.tank2 is not None:
                    tank2 = tanks[passage.tank2]
                    if passage.max_pressure2 > 0 and tank2.pressure >= passage.max_pressure2:
                        continue
                    if passage.oneway and tank1.pressure < tank2.pressure:
                        continue
                    tank1.move_air_through(tank2, passage.area, time_step)
                elif passage.tank1 == 2 and self.retainer_settings:
                    retainer = self.retainer_settings[retainer_control]
                    if tank1.pressure < retainer.pressure:
                        continue
                    tank1.vent(retainer.area, time_step)
                else:
                    tank1.vent(passage.area, time_step)


_CUBIC_INCH = 0.0254**3
_PIPE_LENGTH = 50 * 0.3048


def _add_standard_retainers(valve: BrakeValve) -> None:
    valve.add_retainer_setting("EX", radius_to_area(0.001), 0)
    valve.add_retainer_setting("HP", 0.1 * radius_to_area(0.001), 20)
    valve.add_retainer_setting("LP", 0.25 * radius_to_area(0.001), 10)
    valve.add_retainer_setting("SD", 0.2 * radius_to_area(0.001), 0)


def _build_k(valve: BrakeValve) -> None:
    valve.add_pipe("BP", _PIPE_LENGTH)
    valve.add_tank("AR", 2500 * _CUBIC_INCH)
    valve.add_tank("BC", 1000 * _CUBIC_INCH)
    valve.add_piston("AR", "BP")
    valve.add_state("LAP", "SERV", "REL", 0.64, -0.84)
    valve.add_state("REL", "QS", "RR", 0.64, -2.8)
    valve.add_state("RR", "REL", "RR", -0.63, -100)
    valve.add_state("QS", "SERV", "QSLAP", 1.18, 0.2)
    valve.add_state("SERV", "SERV", "LAP", 100, 0.2)
    valve.add_state("QSLAP", "QS", "REL", 0.64, -0.84)
    valve.add_passage("REL", "BP", "AR", choke_area_inches(0.082, 1))
    valve.add_passage("REL", "BC", "", radius_to_area(0.001))
    valve.add_passage("RR", "BP", "AR", choke_area(0.00143, 1))
    valve.add_passage("RR", "BC", "", radius_to_area(0.001))
    valve.add_passage("QS", "AR", "BC", 0.5 * radius_to_area(0.0016))
    valve.add_passage("QS", "BP", "BC", choke_area_inches(1 / 32, 1))
    valve.add_passage("SERV", "AR", "BC", radius_to_area(0.0016))
    valve.match_states()
    _add_standard_retainers(valve)


def _build_ab(valve: BrakeValve) -> None:
    valve.add_pipe("BP", _PIPE_LENGTH)
    valve.add_tank("AR", 2500 * _CUBIC_INCH)
    valve.add_tank("BC", 1000 * _CUBIC_INCH)
    valve.add_tank("ER", 3500 * _CUBIC_INCH)
    valve.add_tank("QSV", 0.0006)
    valve.add_tank("QAC", 145 * _CUBIC_INCH)
    valve.add_piston("AR", "BP")
    valve.add_state("LAP", "SERV", "REL", 0.64, -0.84)
    valve.add_state("REL", "IQS", "RR", 0.64, -2.8)
    valve.add_state("RR", "REL", "RR", -0.63, -100)
    valve.add_state("IQS", "SERV", "REL", 1.18, 0.2)
    valve.add_state("SERV", "SERV", "LAP", 100, 0.2)
    valve.add_passage("REL", "BP", "AR", 2 * choke_area_inches(0.043, 1))
    valve.add_passage("REL", "AR", "ER", radius_to_area(0.0012))
    valve.add_passage("REL", "BC", "", radius_to_area(0.001))
    valve.add_passage("REL", "QSV", "", choke_area_inches(1 / 32, 0.6))
    valve.add_passage("RR", "BP", "AR", choke_area(0.00143, 0.9))
    valve.add_passage("RR", "AR", "ER", radius_to_area(0.0012))
    valve.add_passage("RR", "BC", "", radius_to_area(0.001))
    valve.add_passage("RR", "QSV", "", choke_area_inches(1 / 32, 0.6))
    valve.add_passage("IQS", "BP", "QSV", radius_to_area(0.015))
    valve.add_passage("IQS", "QSV", "", choke_area_inches(1 / 32, 0.6))
    valve.add_passage("SERV", "AR", "BC", radius_to_area(0.0016))
    valve.add_passage("SERV", "BP", "BC", choke_area_inches(1 / 32, 1), True, 10)
    valve.add_passage("SERV", "QSV", "", choke_area_inches(1 / 32, 0.6))
    valve.add_passage("LAP", "BP", "BC", choke_area_inches(1 / 32, 1), True, 10)
    valve.add_passage("LAP", "QSV", "", choke_area_inches(1 / 32, 0.6))
    valve.add_piston("QAC", "BP")
    valve.add_state("QA1", "QA2", "QA1", 0.8, -100)
    valve.add_state("QA2", "QA3", "QA1", 2.9, 0.7)
    valve.add_state("QA3", "EMERG", "QA2", 4, 2.8)
    valve.add_state("EMERG", "EMERG", "QA3", 100, 3)
    valve.add_passage("QA1", "BP", "QAC", choke_area(0.000515, 0.7))
    valve.add_passage("QA2", "BP", "QAC", choke_area(0.000515, 0.7))
    valve.add_passage("QA2", "QAC", "", choke_area(0.0003, 1))
    valve.add_passage("QA3", "BP", "QAC", choke_area(0.000515, 0.7))
    valve.add_passage("QA3", "QAC", "", choke_area(0.0003, 1))
    valve.add_passage("QA3", "QAC", "", choke_area(0.00246, 0.6))
    valve.add_passage("EMERG", "QAC", "", choke_area(0.00246, 0.6))
    valve.add_passage("EMERG", "BP", "", choke_area(0.00246, 0.6))
    valve.add_passage("EMERG", "ER", "BC", radius_to_area(0.0016))
    valve.match_states()
    _add_standard_retainers(valve)


def _build_h6(valve: BrakeValve) -> None:
    valve.add_pipe("BP", _PIPE_LENGTH)
    valve.add_tank("AR", 1000 * _CUBIC_INCH)
    valve.add_tank("BC", 1000 * _CUBIC_INCH)
    valve.add_tank("AC", 400 * _CUBIC_INCH)
    valve.add_tank("MR", 2 * 5000 * _CUBIC_INCH)
    valve.add_piston("AR", "BP")
    valve.add_state("LAP", "SERV", "REL", 0.64, -0.84)
    valve.add_state("REL", "SERV", "REL", 0.64, -100)
    valve.add_state("SERV", "SERV", "LAP", 100, 0.2)
    valve.add_passage("REL", "BP", "AR", 0.4 * choke_area_inches(0.082, 1))
    valve.add_passage("REL", "AC", "", 0.4 * radius_to_area(0.001))
    valve.add_passage("SERV", "AR", "AC", 0.4 * radius_to_area(0.0016))
    valve.add_piston("AC", "BC")
    valve.add_state("ALAP", "ASERV", "AREL", 0.5, -0.5)
    valve.add_state("AREL", "ASERV", "AREL", 0.5, -100)
    valve.add_state("ASERV", "ASERV", "ALAP", 100, 0)
    valve.add_passage("AREL", "BC", "", radius_to_area(0.001))
    valve.add_passage("ASERV", "MR", "BC", radius_to_area(0.0016))
    valve.match_states()


def _build_l_states(valve: BrakeValve, charge_tank: str) -> None:
    valve.add_piston("AR", "BP")
    valve.add_state("LAP", "SERV", "REL", 0.64, -0.84)
    valve.add_state("REL", "QS", "REL", 0.64, -100)
    valve.add_state("QS", "SERV", "QSLAP", 1.18, 0.2)
    valve.add_state("SERV", "SERV", "LAP", 100, 0.2)
    valve.add_state("QSLAP", "QS", "REL", 0.64, -0.84)
    valve.add_passage("REL", "BP", "AR", choke_area_inches(0.082, 1))
    valve.add_passage("REL", "BC", "", choke_area_inches(0.1875, 1))
    valve.add_passage("REL", charge_tank, "AR", 3 * choke_area_inches(0.073, 1))
    valve.add_passage("QS", "AR", "BC", 0.5 * choke_area_inches(0.12, 1))
    valve.add_passage("QS", "BP", "BC", choke_area_inches(1 / 32, 1))
    valve.add_passage("SERV", "AR", "BC", choke_area_inches(0.12, 1))
    valve.match_states()


def _build_l(valve: BrakeValve) -> None:
    valve.add_pipe("BP", _PIPE_LENGTH)
    valve.add_tank("AR", 4476 * _CUBIC_INCH)
    valve.add_tank("BC", 1847 * _CUBIC_INCH)
    valve.add_tank("ER", 10158 * _CUBIC_INCH)
    _build_l_states(valve, "ER")


def _build_amm(valve: BrakeValve) -> None:
    valve.add_pipe("BP", _PIPE_LENGTH)
    valve.add_pipe("CP", _PIPE_LENGTH)
    valve.add_tank("AR", 4476 * _CUBIC_INCH)
    valve.add_tank("BC", 1847 * _CUBIC_INCH)
    _build_l_states(valve, "CP")


_BUILDERS: dict[str, Callable[[BrakeValve], None]] = {
    "K": _build_k,
    "AB": _build_ab,
    "H6": _build_h6,
    "L": _build_l,
    "AMM": _build_amm,
}

_valves: dict[str, BrakeValve] = {}


def get_valve(name: str) -> BrakeValve:
    """Return the shared valve of type ``name``; unknown types give ``K``."""
    valve = _valves.get(name)
    if valve is not None:
        return valve
    builder = _BUILDERS.get(name)
    if builder is None:
        return get_valve("K")
    valve = BrakeValve(name)
    builder(valve)
    _valves[name] = valve
    return valve
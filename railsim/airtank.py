"""Air tanks and brake pipe segments for the air brake model.

Pressures are absolute, in pascals; volumes are in cubic metres and air
quantities in kilograms.
"""

from __future__ import annotations

import math

#: one atmosphere in Pa
STDATM = 101325.0
#: conversion factor from psi to Pa
PSI2PA = 6894.8
#: air density in kg/m^3 at 20 degrees C and one atmosphere
DENSITY = 1.204
#: dynamic viscosity of air at 20 degrees C
VISCOSITY = 1.825e-5
#: ratio of specific heats of air
HEATRATIO = 1.4

_THRESHOLD = (2 / (HEATRATIO + 1)) ** (HEATRATIO / (HEATRATIO - 1))
_SPEED_OF_SOUND = math.sqrt(HEATRATIO * STDATM / DENSITY)
_CHOKED_MULT = (
    HEATRATIO
    * (2 / (HEATRATIO + 1)) ** (0.5 * (HEATRATIO + 1) / (HEATRATIO - 1))
    / _SPEED_OF_SOUND
)


def mass_flow_rate(p1: float, p2: float, area: float) -> float:
    """Mass flow rate in kg/s between absolute pressures ``p1`` and ``p2``
    through an opening of ``area`` square metres.

    Positive when ``p1`` is upstream, negative otherwise.  Based on steady
    flow through a converging nozzle, choked below the critical ratio.
    """
    if p1 == p2:
        return 0.0
    if p2 > p1:
        return -mass_flow_rate(p2, p1, area)
    r = p2 / p1
    if r > _THRESHOLD:
        h = HEATRATIO
        return (
            p1
            * area
            * math.sqrt(2 * h * h / (h - 1) * r ** (2 / h) * (1 - r ** ((h - 1) / h)))
            / _SPEED_OF_SOUND
        )
    return p1 * area * _CHOKED_MULT


class AirTank:
    """A fixed volume of air at a uniform pressure."""

    def __init__(self, volume: float, pressure: float = STDATM) -> None:
        self.volume = volume
        self.pressure = pressure

    def __repr__(self) -> str:
        return f"{type(self).__name__}(volume={self.volume!r}, pressure={self.pressure!r})"

    @property
    def psig(self) -> float:
        """Gauge pressure in psi."""
        return (self.pressure - STDATM) / PSI2PA

    @psig.setter
    def psig(self, value: float) -> None:
        self.pressure = value * PSI2PA + STDATM

    @property
    def density(self) -> float:
        """Air density in the tank in kg/m^3."""
        return self.pressure * DENSITY / STDATM

    def add_air(self, kg: float) -> None:
        """Add (or with a negative amount remove) ``kg`` of air."""
        self.pressure += kg / self.volume * STDATM / DENSITY

    def vent(self, area: float, time_step: float) -> float:
        """Vent to atmosphere through ``area`` for ``time_step`` seconds.

        Returns the mass released; the pressure never drops below one
        atmosphere.
        """
        kg = time_step * mass_flow_rate(self.pressure, STDATM, area)
        self.add_air(-kg)
        if self.pressure < STDATM:
            self.pressure = STDATM
        return kg

    def move_air(self, other: AirTank, kg: float) -> None:
        """Move ``kg`` of air into ``other`` without passing equilibrium."""
        p0 = self.pressure
        p = (self.pressure * self.volume + other.pressure * other.volume) / (
            self.volume + other.volume
        )
        self.add_air(-kg)
        other.add_air(kg)
        if (p > p0 and self.pressure > p) or (p < p0 and self.pressure < p):
            self.pressure = p
            other.pressure = p

    def move_air_through(self, other: AirTank, area: float, time_step: float) -> float:
        """Let air flow to ``other`` through ``area`` for ``time_step`` seconds.

        Returns the mass moved, negative when it flowed the other way.
        """
        kg = time_step * mass_flow_rate(self.pressure, other.pressure, area)
        self.move_air(other, kg)
        return kg


class AirPipe(AirTank):
    """A length of brake pipe that tracks the speed of the air inside it.

    Positive air speed runs from ``next`` towards ``prev``.
    """

    def __init__(self, length: float, diameter: float) -> None:
        super().__init__(length * diameter * diameter / 4 * math.pi)
        self.length = length
        self.diameter = diameter
        self.air_speed = 0.0
        self.air_flow = 0.0
        self.friction = 0.01235
        self.next: AirPipe | None = None
        self.prev: AirPipe | None = None
        self.next_open = False
        self.prev_open = False

    def add_air(self, kg: float) -> None:
        """Add air; incoming air slows the moving air to conserve momentum."""
        d = self.density
        super().add_air(kg)
        if kg > 0:
            self.air_speed *= d / self.density

    def update_air_speed(self, time_step: float) -> None:
        """Advance the air speed by momentum conservation.

        Reverse flow is limited to the steady flow speed so that the pipe
        does not oscillate.
        """
        dpdx = 0.0
        accel = 0.0
        speed = self.air_speed
        prev = self.prev
        nxt = self.next
        if prev is not None and self.prev_open:
            dpdx += (self.pressure - prev.pressure) / (0.5 * (self.length + prev.length))
            accel -= speed * (speed - prev.air_speed) / self.length
        elif self.prev_open:
            dpdx += (self.pressure - STDATM) / (0.5 * self.length)
        else:
            accel -= speed * speed / self.length
        if nxt is not None and self.next_open:
            dpdx += (nxt.pressure - self.pressure) / (0.5 * (nxt.length + self.length))
            accel -= speed * (nxt.air_speed - speed) / self.length
        elif self.next_open:
            dpdx += (STDATM - self.pressure) / (0.5 * self.length)
        else:
            accel += speed * speed / self.length
        density = self.density
        accel -= dpdx / density
        drag = self.friction * speed * speed / (2 * self.diameter)
        accel += -drag if speed > 0 else drag
        self.air_speed = speed + time_step * accel
        max_speed = math.sqrt(abs(dpdx) / density * 2 * self.diameter / self.friction)
        if self.air_speed < -max_speed:
            self.air_speed = -max_speed
        self.air_flow = (
            time_step * self.air_speed * density * self.diameter * self.diameter / 4 * math.pi
        )
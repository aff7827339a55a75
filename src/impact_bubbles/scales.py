from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Iterable

from impact_bubbles.config import ScaleBoundsConfig

Extent = tuple[float, float]

EMPTY_DOMAIN: Extent = (0.0, 1.0)
DEFAULT_TICK_COUNT = 10

_E10 = math.sqrt(50.0)
_E5 = math.sqrt(10.0)
_E2 = math.sqrt(2.0)


def tick_increment(start: float, stop: float, count: int) -> float:
    """Return a 1/2/5 x 10^k tick step; negative values encode 1/step for k < 0."""
    step = (stop - start) / max(0, count)
    power = math.floor(math.log10(step))
    error = step / (10.0**power)
    if error >= _E10:
        factor = 10
    elif error >= _E5:
        factor = 5
    elif error >= _E2:
        factor = 2
    else:
        factor = 1
    if power >= 0:
        return factor * (10.0**power)
    return -(10.0 ** (-power)) / factor


def nice_extent(domain: Extent, count: int = DEFAULT_TICK_COUNT) -> Extent:
    start, stop = domain
    if start == stop or count <= 0:
        return domain
    reversed_domain = stop < start
    if reversed_domain:
        start, stop = stop, start

    previous_step: float | None = None
    for _ in range(10):
        step = tick_increment(start, stop, count)
        if step == previous_step:
            break
        if step > 0:
            start = math.floor(start / step) * step
            stop = math.ceil(stop / step) * step
        elif step < 0:
            start = math.ceil(start * step) / step
            stop = math.floor(stop * step) / step
        else:
            break
        previous_step = step

    return (stop, start) if reversed_domain else (start, stop)


def ticks(domain: Extent, count: int = DEFAULT_TICK_COUNT) -> list[float]:
    start, stop = min(domain), max(domain)
    if start == stop:
        return [start]
    if count <= 0:
        return []
    step = tick_increment(start, stop, count)
    if step > 0:
        first, last = math.ceil(start / step), math.floor(stop / step)
        return [index * step for index in range(first, last + 1)]
    inverse = -step
    first, last = math.ceil(start * inverse), math.floor(stop * inverse)
    return [index / inverse for index in range(first, last + 1)]


def extent(values: Iterable[float]) -> Extent:
    finite = [float(value) for value in values if value is not None and math.isfinite(value)]
    if not finite:
        return EMPTY_DOMAIN
    return (min(finite), max(finite))


def _interpolate(t: float, output: Extent) -> float:
    return output[0] + t * (output[1] - output[0])


@dataclass(frozen=True)
class LinearScale:
    domain: Extent
    range: Extent

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        if d0 == d1:
            return (self.range[0] + self.range[1]) / 2.0
        return _interpolate((value - d0) / (d1 - d0), self.range)

    def nice(self, count: int = DEFAULT_TICK_COUNT) -> LinearScale:
        return replace(self, domain=nice_extent(self.domain, count))

    def ticks(self, count: int = DEFAULT_TICK_COUNT) -> list[float]:
        return ticks(self.domain, count)


def _signed_sqrt(value: float) -> float:
    return math.copysign(math.sqrt(abs(value)), value)


@dataclass(frozen=True)
class SqrtScale:
    """Square-root scale: output grows with the square root so circle area tracks the input."""

    domain: Extent
    range: Extent
    clamp: bool = False

    def __call__(self, value: float) -> float:
        d0, d1 = (_signed_sqrt(bound) for bound in self.domain)
        if d0 == d1:
            return (self.range[0] + self.range[1]) / 2.0
        t = (_signed_sqrt(value) - d0) / (d1 - d0)
        if self.clamp:
            t = min(max(t, 0.0), 1.0)
        return _interpolate(t, self.range)

    def nice(self, count: int = DEFAULT_TICK_COUNT) -> SqrtScale:
        return replace(self, domain=nice_extent(self.domain, count))

    def ticks(self, count: int = DEFAULT_TICK_COUNT) -> list[float]:
        return ticks(self.domain, count)


@dataclass(frozen=True)
class ChartScales:
    x: LinearScale
    y: LinearScale
    radius: SqrtScale


def build_chart_scales(
    x_values: Iterable[float],
    y_values: Iterable[float],
    size_values: Iterable[float],
    *,
    inner_width: float,
    inner_height: float,
    bounds: ScaleBoundsConfig,
) -> ChartScales:
    x = LinearScale(domain=bounds.x_domain or extent(x_values), range=(0.0, inner_width))
    # Inverted so larger impact plots higher on screen.
    y = LinearScale(domain=bounds.y_domain or extent(y_values), range=(inner_height, 0.0))
    radius = SqrtScale(
        domain=bounds.size_domain or extent(size_values),
        range=(bounds.min_radius, bounds.max_radius),
        clamp=True,
    )
    if bounds.nice:
        x = x.nice()
        y = y.nice()
    return ChartScales(x=x, y=y, radius=radius)

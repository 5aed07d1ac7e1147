"""Deterministic stint-based race strategy simulation.

Each stint runs a fixed number of laps. Lap time grows linearly with tire
age inside a stint and resets after every pit stop. A pit stop sits between
consecutive stints and costs a fixed time loss. Infeasible plans (a stint that
burns more fuel than the tank holds, or stints that do not add up to the race
distance) are flagged, never repaired.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

from pitwall.constants import (
    DEFAULT_BASE_LAP_TIME_S,
    DEFAULT_FUEL_PER_LAP,
    DEFAULT_PIT_LOSS_S,
    DEFAULT_SAFETY_CAR_DELTA_S,
    DEFAULT_TANK_SIZE,
    DEFAULT_TIRE_DEGRADATION_PER_LAP_S,
)


@dataclass(frozen=True)
class StrategyDefaults:
    """Values used for any strategy input the caller leaves out."""

    base_lap_time: float = DEFAULT_BASE_LAP_TIME_S
    fuel_per_lap: float = DEFAULT_FUEL_PER_LAP
    tank_size: float = DEFAULT_TANK_SIZE
    pit_loss: float = DEFAULT_PIT_LOSS_S
    tire_degradation_per_lap: float = DEFAULT_TIRE_DEGRADATION_PER_LAP_S
    safety_car_delta: float = DEFAULT_SAFETY_CAR_DELTA_S


DEFAULT_STRATEGY = StrategyDefaults()


@dataclass(frozen=True)
class StrategyParams:
    """Caller-supplied strategy inputs. ``None`` means "use the default"."""

    laps: int
    base_lap_time: float | None = None
    fuel_per_lap: float | None = None
    tank_size: float | None = None
    pit_loss: float | None = None
    tire_degradation_per_lap: float | None = None
    stint_plan: tuple[int, ...] | None = None
    safety_car_lap: int | None = None
    safety_car_delta: float | None = None


@dataclass(frozen=True)
class ResolvedStrategy:
    """Strategy inputs with every default applied."""

    laps: int
    base_lap_time: float
    fuel_per_lap: float
    tank_size: float
    pit_loss: float
    tire_degradation_per_lap: float
    stint_plan: tuple[int, ...]
    safety_car_lap: int | None
    safety_car_delta: float

    def assumptions(self) -> dict[str, object]:
        """Echo of the resolved inputs, JSON-ready."""
        echo = asdict(self)
        echo["stint_plan"] = list(self.stint_plan)
        return echo


@dataclass(frozen=True)
class StrategyResult:
    """Outcome of a simulated race."""

    feasible: bool
    total_time: float  # seconds, rounded to 3 decimals
    pits: int
    assumptions: dict[str, object] = field(default_factory=dict)


@dataclass
class LapSeries:
    """Per-lap view of a simulated race, for charting."""

    lap_times: list[float]
    fuel_level: list[float]
    pit_laps: list[int]  # global lap count at which each stop happens
    feasible: bool
    total_time: float  # unrounded


@dataclass(frozen=True)
class StintWindow:
    """One row of a pit plan table (1-based lap numbers)."""

    stint: int
    start_lap: int
    end_lap: int
    pit_after_lap: int | None


def resolve_strategy(
    params: StrategyParams,
    defaults: StrategyDefaults = DEFAULT_STRATEGY,
) -> ResolvedStrategy:
    """Apply *defaults* to every omitted field of *params*.

    An absent or empty stint plan becomes a single stint of ``laps`` laps.
    """

    def pick(value: float | None, fallback: float) -> float:
        return float(value) if value is not None else fallback

    stints = tuple(int(n) for n in params.stint_plan) if params.stint_plan else (params.laps,)

    return ResolvedStrategy(
        laps=params.laps,
        base_lap_time=pick(params.base_lap_time, defaults.base_lap_time),
        fuel_per_lap=pick(params.fuel_per_lap, defaults.fuel_per_lap),
        tank_size=pick(params.tank_size, defaults.tank_size),
        pit_loss=pick(params.pit_loss, defaults.pit_loss),
        tire_degradation_per_lap=pick(
            params.tire_degradation_per_lap, defaults.tire_degradation_per_lap
        ),
        stint_plan=stints,
        safety_car_lap=params.safety_car_lap,
        safety_car_delta=pick(params.safety_car_delta, defaults.safety_car_delta),
    )


def _run_race(plan: ResolvedStrategy) -> tuple[LapSeries, int]:
    """Walk every lap of *plan* in order.

    Returns the lap series and the number of pit stops. ``total_time`` is
    accumulated lap by lap with each pit loss added at the end of its stint.
    """
    lap_times: list[float] = []
    fuel_level: list[float] = []
    pit_laps: list[int] = []
    feasible = True
    lap_counter = 0
    total_time = 0.0
    pits = 0
    fuel = plan.tank_size
    last_stint = len(plan.stint_plan) - 1

    for idx, stint_laps in enumerate(plan.stint_plan):
        if stint_laps * plan.fuel_per_lap > plan.tank_size:
            feasible = False

        for j in range(stint_laps):
            lap_counter += 1
            # Tire degradation restarts at zero with every new set
            lap_time = plan.base_lap_time + plan.tire_degradation_per_lap * j
            if plan.safety_car_lap is not None and lap_counter == plan.safety_car_lap:
                # Signed adjustment: the usual negative delta slows the lap
                lap_time -= plan.safety_car_delta
            lap_times.append(lap_time)
            total_time += lap_time

            fuel -= plan.fuel_per_lap
            fuel_level.append(max(0.0, fuel))

        if idx < last_stint:
            total_time += plan.pit_loss
            pits += 1
            pit_laps.append(lap_counter)
            fuel = plan.tank_size

    if lap_counter != plan.laps:
        feasible = False

    series = LapSeries(
        lap_times=lap_times,
        fuel_level=fuel_level,
        pit_laps=pit_laps,
        feasible=feasible,
        total_time=total_time,
    )
    return series, pits


def simulate_strategy(
    params: StrategyParams,
    defaults: StrategyDefaults = DEFAULT_STRATEGY,
) -> StrategyResult:
    """Simulate a race and return feasibility, total time and pit count.

    Pure and deterministic. Physically impossible inputs (negative laps,
    zero-length stints) are not rejected; they degrade into an infeasible
    or empty race.
    """
    plan = resolve_strategy(params, defaults)
    series, pits = _run_race(plan)
    return StrategyResult(
        feasible=series.feasible,
        total_time=round(series.total_time, 3),
        pits=pits,
        assumptions=plan.assumptions(),
    )


def simulate_lap_series(
    params: StrategyParams,
    defaults: StrategyDefaults = DEFAULT_STRATEGY,
) -> LapSeries:
    """Return the lap-by-lap series behind :func:`simulate_strategy`.

    Fuel starts at ``tank_size``, is refilled at every stop and is floored at
    zero in the series.
    """
    series, _ = _run_race(resolve_strategy(params, defaults))
    return series


def build_pit_plan(
    params: StrategyParams,
    defaults: StrategyDefaults = DEFAULT_STRATEGY,
) -> list[StintWindow]:
    """Lay out the resolved stint plan as lap windows."""
    plan = resolve_strategy(params, defaults)
    windows: list[StintWindow] = []
    start = 1
    last_stint = len(plan.stint_plan) - 1
    for idx, stint_laps in enumerate(plan.stint_plan):
        end = start + stint_laps - 1
        windows.append(
            StintWindow(
                stint=idx + 1,
                start_lap=start,
                end_lap=end,
                pit_after_lap=end if idx < last_stint else None,
            )
        )
        start = end + 1
    return windows

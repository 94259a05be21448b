from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager, nullcontext, suppress
from dataclasses import dataclass
from time import perf_counter
from typing import NamedTuple

from .metrics import MostRecentNVar, StatsVar


class MetricSpec(NamedTuple):
    """Definition for a metric to register in batch."""

    name: str
    description: str
    num_samples: int = 100


@dataclass
class LiveVariable:
    """A named metric exposed for inspection by tools and benchmarks."""

    name: str
    description: str
    stats_var: StatsVar

    def record_value(self, value: float) -> None:
        self.stats_var.record(value)

    def get_value(self) -> str:
        if self.stats_var.sample_count == 0:
            return "No samples"
        return self.stats_var.get_percentiles_string()


class LiveVariableRegistry:
    """Registry for all ``LiveVariable`` metrics.

    When ``strict`` is ``True`` (the default), recording a metric that has not
    been registered raises immediately. Test fixtures that clear the registry
    set ``strict = False`` so timing hooks inside the engine keep working.
    """

    def __init__(self) -> None:
        self._variables: dict[str, LiveVariable] = {}
        self.strict: bool = True

    def register_metric(
        self, name: str, description: str = "", num_samples: int = 1000
    ) -> LiveVariable:
        """Register a metric backed by a ``MostRecentNVar`` tracker."""
        if name in self._variables:
            raise ValueError(f"Live variable '{name}' already registered")
        live_var = LiveVariable(
            name=name, description=description, stats_var=MostRecentNVar(num_samples)
        )
        self._variables[name] = live_var
        return live_var

    def register_metrics(self, specs: Sequence[MetricSpec]) -> None:
        """Register every spec that is not registered yet."""
        for spec in specs:
            if spec.name not in self._variables:
                self.register_metric(spec.name, spec.description, spec.num_samples)

    def get_variable(self, name: str) -> LiveVariable | None:
        return self._variables.get(name)

    def get_all_variables(self) -> list[LiveVariable]:
        """Return all registered variables sorted by name."""
        return sorted(self._variables.values(), key=lambda v: v.name)

    def record_metric(self, name: str, value: float) -> None:
        """Record a value to a metric variable.

        Raises:
            KeyError: If the metric name is not registered.
        """
        var = self.get_variable(name)
        if var is None:
            raise KeyError(f"Metric '{name}' is not registered")
        var.record_value(value)

    def record_metric_if_enabled(self, name: str, value: float) -> None:
        """``record_metric`` that honours ``strict`` for unregistered names."""
        ctx = nullcontext() if self.strict else suppress(KeyError)
        with ctx:
            self.record_metric(name, value)


# Global registry instance used throughout the engine
live_variable_registry = LiveVariableRegistry()


# Works as both a context manager and a decorator:
#   with record_time_live_variable("fov.compute_ms"): ...
#   @record_time_live_variable("fov.compute_ms")
@contextmanager
def record_time_live_variable(metric_name: str) -> Iterator[None]:
    """Record elapsed wall-clock time (ms) to the named metric."""
    start = perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (perf_counter() - start) * 1000
        live_variable_registry.record_metric_if_enabled(metric_name, elapsed_ms)

"""
Shared data models for the Fit Scheduler Simulator.

This module contains core data classes used across the simulation, task generation and analysis components.
"""

from dataclasses import dataclass


HOURS_PER_DAY = 24


@dataclass(frozen=True)
class Task:
    """A request for a slice of CPUs and memory for a number of time-steps. Never mutated after creation."""

    id: int
    arrival_time: int  # hours since the start of the trace
    CPUs_required: int
    memory_required: int
    duration: int

    def value(self):
        """Resource 'value' used by the smallest-value-first ordering."""
        return self.CPUs_required * self.memory_required * self.duration

    @property
    def arrival_day(self):
        return self.arrival_time // HOURS_PER_DAY

    @property
    def arrival_hour(self):
        return self.arrival_time % HOURS_PER_DAY


@dataclass(frozen=True)
class UtilisationSample:
    """Mean cluster utilisation (percent) at the end of a time-step."""

    time_step: int
    cpu_utilisation: float
    memory_utilisation: float


@dataclass(frozen=True)
class PlacementRecord:
    """Represents a successful placement of a task on a server."""

    time_step: int
    task: Task
    server_id: int
    attempts: int = 1

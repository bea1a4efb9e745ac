"""
Shared helpers for the simulator tests.
"""
import pytest

from common.models import Task
from fit_simulator.fit_simulator import Server, TaskScheduler


def create_test_task(id, CPUs, memory, duration=1, arrival_time=0):
    return Task(id=id, arrival_time=arrival_time, CPUs_required=CPUs, memory_required=memory, duration=duration)


def create_test_servers(count, CPUs=10, memory=10):
    return [Server(id=i, total_CPUs=CPUs, total_memory=memory) for i in range(count)]


def create_test_scheduler(servers, **kwargs):
    kwargs.setdefault("echo", False)
    return TaskScheduler(servers, **kwargs)


class ListSink:
    def __init__(self):
        self.samples = []

    def record(self, sample):
        self.samples.append(sample)


@pytest.fixture
def sink():
    return ListSink()

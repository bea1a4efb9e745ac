"""
Tests for Server allocation, release and utilisation.
"""
import pytest

from conftest import create_test_task
from fit_simulator.fit_simulator import Server


def test_server_defaults_to_reference_size():
    server = Server(id=0)
    assert server.total_CPUs == 24
    assert server.total_memory == 64
    assert server.available_CPUs == 24
    assert server.available_memory == 64


def test_allocate_deducts_both_dimensions():
    server = Server(id=0, total_CPUs=10, total_memory=10)
    assert server.try_allocate(create_test_task(1, 4, 3))
    assert server.available_CPUs == 6
    assert server.available_memory == 7


@pytest.mark.parametrize("CPUs, memory", [(11, 1), (1, 11), (11, 11)])
def test_allocate_refuses_when_either_dimension_is_short(CPUs, memory):
    server = Server(id=0, total_CPUs=10, total_memory=10)
    assert not server.try_allocate(create_test_task(1, CPUs, memory))
    assert server.available_CPUs == 10
    assert server.available_memory == 10


def test_exact_fit_is_allowed():
    server = Server(id=0, total_CPUs=10, total_memory=10)
    assert server.try_allocate(create_test_task(1, 10, 10))
    assert server.available_CPUs == 0
    assert server.available_memory == 0
    assert not server.try_allocate(create_test_task(2, 1, 1))


def test_allocate_then_release_restores_capacity():
    server = Server(id=0, total_CPUs=24, total_memory=64)
    tasks = [create_test_task(i, 3 + i, 5 + i) for i in range(4)]
    for task in tasks:
        assert server.try_allocate(task)
        assert 0 <= server.available_CPUs <= server.total_CPUs
        assert 0 <= server.available_memory <= server.total_memory
    for task in reversed(tasks):
        server.release(task)
        assert 0 <= server.available_CPUs <= server.total_CPUs
        assert 0 <= server.available_memory <= server.total_memory

    assert server.available_CPUs == 24
    assert server.available_memory == 64


def test_utilisation_percentages():
    server = Server(id=0, total_CPUs=24, total_memory=64)
    assert server.cpu_utilisation() == 0.0
    assert server.memory_utilisation() == 0.0

    server.try_allocate(create_test_task(1, 6, 16))
    assert server.cpu_utilisation() == pytest.approx(25.0)
    assert server.memory_utilisation() == pytest.approx(25.0)
    assert server.utilisation("cpu") == server.cpu_utilisation()
    assert server.utilisation("memory") == server.memory_utilisation()


def test_unknown_dimension_raises():
    with pytest.raises(ValueError):
        Server(id=0).utilisation("gpu")


def test_can_host_looks_at_total_capacity():
    server = Server(id=0, total_CPUs=24, total_memory=64)
    server.try_allocate(create_test_task(1, 24, 64))
    assert server.can_host(create_test_task(2, 24, 64))
    assert not server.can_host(create_test_task(3, 25, 10))
    assert not server.can_host(create_test_task(4, 1, 65))


def test_leftover_after_does_not_change_state():
    server = Server(id=0, total_CPUs=10, total_memory=10)
    assert server.leftover_after(create_test_task(1, 4, 4)) == 12
    assert server.available_CPUs == 10


def test_non_positive_capacity_rejected():
    with pytest.raises(ValueError):
        Server(id=0, total_CPUs=0, total_memory=10)

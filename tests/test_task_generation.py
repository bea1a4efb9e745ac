"""
Tests for random task generation and task files.
"""
import numpy as np
import pytest

from common.models import Task
from data_handling.task_generation import generate_tasks, tasks_to_dataframe, write_tasks, read_tasks


def test_same_seed_gives_same_tasks():
    first = generate_tasks(50, np.random.default_rng(7))
    second = generate_tasks(50, np.random.default_rng(7))
    assert first == second


def test_fields_stay_within_inclusive_ranges():
    tasks = generate_tasks(2000, np.random.default_rng(1))
    assert len(tasks) == 2000
    assert [t.id for t in tasks] == list(range(2000))
    assert all(0 <= t.arrival_time <= 10 for t in tasks)
    assert all(1 <= t.CPUs_required <= 24 for t in tasks)
    assert all(1 <= t.memory_required <= 20 for t in tasks)
    assert all(1 <= t.duration <= 5 for t in tasks)
    # both ends of a range are reachable
    assert {t.duration for t in tasks} == {1, 2, 3, 4, 5}


def test_start_id_offsets_ids():
    tasks = generate_tasks(3, np.random.default_rng(0), start_id=100)
    assert [t.id for t in tasks] == [100, 101, 102]


def test_custom_ranges():
    tasks = generate_tasks(20, np.random.default_rng(0), arrival_range=(30, 30), CPUs_range=(2, 2),
                           memory_range=(8, 8), duration_range=(3, 3))
    assert all(t == Task(t.id, 30, 2, 8, 3) for t in tasks)


@pytest.mark.parametrize("kwargs", [
    {"CPUs_range": (5, 1)},
    {"memory_range": (0, 4)},
    {"duration_range": (0, 0)},
    {"arrival_range": (-1, 3)},
])
def test_bad_ranges_raise(kwargs):
    with pytest.raises(ValueError):
        generate_tasks(5, np.random.default_rng(0), **kwargs)


def test_negative_count_raises():
    with pytest.raises(ValueError):
        generate_tasks(-1, np.random.default_rng(0))


def test_tasks_to_dataframe_columns():
    df = tasks_to_dataframe(generate_tasks(4, np.random.default_rng(0)))
    assert list(df.columns) == ["task_id", "arrival_time", "CPUs_required", "memory_required", "duration"]
    assert len(df) == 4


@pytest.mark.parametrize("file_name", ["tasks.parquet", "tasks.csv"])
def test_task_file_can_be_replayed(tmp_path, file_name):
    tasks = generate_tasks(25, np.random.default_rng(5))
    path = write_tasks(tasks, tmp_path / "nested" / file_name)
    assert read_tasks(path) == tasks


def test_read_tasks_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_tasks(tmp_path / "missing.parquet")


def test_read_tasks_missing_columns(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("task_id,arrival_time\n1,2\n")
    with pytest.raises(ValueError):
        read_tasks(path)

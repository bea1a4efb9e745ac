import numpy as np
import pandas as pd
from pathlib import Path
from common.models import Task


# Inclusive bounds used by the reference run
DEFAULT_ARRIVAL_RANGE = (0, 10)
DEFAULT_CPUS_RANGE = (1, 24)
DEFAULT_MEMORY_RANGE = (1, 20)
DEFAULT_DURATION_RANGE = (1, 5)

TASK_COLUMNS = ["task_id", "arrival_time", "CPUs_required", "memory_required", "duration"]


def check_range(name, bounds, minimum):
    low, high = bounds
    if low > high:
        raise ValueError(f"{name}: lower bound {low} is above upper bound {high}")
    if low < minimum:
        raise ValueError(f"{name}: lower bound must be at least {minimum}, got {low}")
    return int(low), int(high)


def generate_tasks(count, rng, arrival_range=DEFAULT_ARRIVAL_RANGE, CPUs_range=DEFAULT_CPUS_RANGE,
                   memory_range=DEFAULT_MEMORY_RANGE, duration_range=DEFAULT_DURATION_RANGE, start_id=0):
    """
    Draw `count` tasks with independent, uniformly distributed integer fields.

    rng is a numpy Generator (e.g. np.random.default_rng(seed)) so a run can be reproduced.
    Ids run from start_id upwards; give later batches a higher start_id to keep ids unique within a run.
    """
    if count < 0:
        raise ValueError(f"Task count must not be negative, got {count}")

    arrival_low, arrival_high = check_range("arrival_range", arrival_range, 0)
    cpus_low, cpus_high = check_range("CPUs_range", CPUs_range, 1)
    memory_low, memory_high = check_range("memory_range", memory_range, 1)
    duration_low, duration_high = check_range("duration_range", duration_range, 1)

    arrivals = rng.integers(arrival_low, arrival_high, size=count, endpoint=True)
    cpus = rng.integers(cpus_low, cpus_high, size=count, endpoint=True)
    memory = rng.integers(memory_low, memory_high, size=count, endpoint=True)
    durations = rng.integers(duration_low, duration_high, size=count, endpoint=True)

    return [
        Task(
            id=start_id + i,
            arrival_time=int(arrivals[i]),
            CPUs_required=int(cpus[i]),
            memory_required=int(memory[i]),
            duration=int(durations[i]),
        )
        for i in range(count)
    ]


def tasks_to_dataframe(tasks):
    return pd.DataFrame([
        {
            'task_id': task.id,
            'arrival_time': task.arrival_time,
            'CPUs_required': task.CPUs_required,
            'memory_required': task.memory_required,
            'duration': task.duration,
        }
        for task in tasks], columns=TASK_COLUMNS)


def write_tasks(tasks, output_file):
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    df = tasks_to_dataframe(tasks)
    if output_file.suffix == ".parquet":
        df.to_parquet(output_file, index=False, engine='pyarrow')
    else:
        df.to_csv(output_file, index=False)
    return output_file


def read_tasks(input_file):
    """Read a task file written by write_tasks (parquet or csv) back into Task objects"""
    input_file = Path(input_file)
    if not input_file.exists():
        raise FileNotFoundError(f"Task file not found: {input_file}")

    if input_file.suffix == ".parquet":
        df = pd.read_parquet(input_file)
    else:
        df = pd.read_csv(input_file)

    missing = [column for column in TASK_COLUMNS if column not in df.columns]
    if missing:
        raise ValueError(f"Task file {input_file} is missing columns: {missing}")

    tasks = []
    for _, row in df.iterrows():
        tasks.append(Task(
            id=int(row['task_id']),
            arrival_time=int(row['arrival_time']),
            CPUs_required=int(row['CPUs_required']),
            memory_required=int(row['memory_required']),
            duration=int(row['duration']),
        ))
    return tasks


if __name__ == "__main__":
    import sys

    count = int(sys.argv[1]) if len(sys.argv) > 1 else 5000
    seed = int(sys.argv[2]) if len(sys.argv) > 2 else 42
    output_file = sys.argv[3] if len(sys.argv) > 3 else "output/tasks.parquet"

    tasks = generate_tasks(count, np.random.default_rng(seed))
    df = tasks_to_dataframe(tasks)
    print(f"Generated {len(df):,} tasks (seed {seed})")
    print(df.describe())

    write_tasks(tasks, output_file)
    print(f"\nTasks saved to: {output_file}")

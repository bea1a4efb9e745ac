import numpy as np
from dataclasses import replace
import pandas as pd
from pathlib import Path
import pyarrow.parquet as pq
import pyarrow as pa

from fit_simulator.fit_simulator import (
    TaskScheduler, Server,
    FirstFitPlacement, BestFitPlacement, WorstFitPlacement,
    ArrivalOrder, ValueOrder, DurationOrder,
    DEFAULT_SERVER_CPUS, DEFAULT_SERVER_MEMORY, DEFAULT_RETRY_LIMIT,
)
from data_handling.task_generation import (
    generate_tasks, read_tasks,
    DEFAULT_ARRIVAL_RANGE, DEFAULT_CPUS_RANGE, DEFAULT_MEMORY_RANGE, DEFAULT_DURATION_RANGE,
)
from data_handling.utilisation_output import UtilisationRecorder


DEFAULT_PASSES = [("FCFS", "first"), ("smallest", "best"), ("duration", "worst")]
PLACEMENT_COLUMNS = [
    "pass", "ordering", "strategy", "time_step", "task_id", "server_id", "attempts",
    "arrival_day", "arrival_hour", "memory_required", "CPUs_required", "duration",
]


def load_config(config_file="config.txt"):
    """Load configuration from config file"""
    config = {}
    passes = []
    # Try to find config file in multiple locations
    config_paths = [
        config_file,  # Current directory
        Path(__file__).parent / config_file,  # Same directory as this script
    ]

    config_path = None
    for path in config_paths:
        if Path(path).exists():
            config_path = path
            break

    if config_path is None:
        raise FileNotFoundError(f"Config file '{config_file}' not found in any of: {config_paths}")

    with open(config_path, 'r') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#'):
                continue

            if '=' in line:
                key, value = line.split('=', 1)
                key = key.strip()
                value = value.strip()
                if key == "pass":
                    parts = [p.strip() for p in value.split(",")]
                    if len(parts) != 2:
                        raise ValueError(f"Pass line needs '<ordering>, <strategy>', got: {line}")
                    passes.append(tuple(parts))
                else:
                    config[key] = value

    config["passes"] = passes if passes else list(DEFAULT_PASSES)
    return config


def parse_range(value, default):
    if value is None or value == "":
        return default
    parts = [p.strip() for p in str(value).split(",")]
    if len(parts) != 2:
        raise ValueError(f"Range must be '<low>, <high>', got: {value}")
    return int(parts[0]), int(parts[1])


def parse_bool(value, default=False):
    if value is None or value == "":
        return default
    return str(value).strip().lower() in ("true", "yes", "1")


def get_strategy_instance(strategy_name, strategy_type):
    name = strategy_name.strip().lower()
    if strategy_type == "ordering_policy":
        if name in ("fcfs", "arrival"):
            return ArrivalOrder()
        elif name in ("smallest", "value"):
            return ValueOrder()
        elif name == "duration":
            return DurationOrder()
        else:
            raise ValueError(f"Unknown Ordering Policy: {strategy_name}")

    elif strategy_type == "placement_strategy":
        if name in ("first", "first_fit"):
            return FirstFitPlacement()
        elif name in ("best", "best_fit"):
            return BestFitPlacement()
        elif name in ("worst", "worst_fit"):
            return WorstFitPlacement()
        else:
            raise ValueError(f"Unknown Placement Strategy: {strategy_name}")

    else:
        raise ValueError("Unknown Strategy Type")


def create_servers(config):
    server_count = int(config.get('server_count', 128))
    cpus = int(config.get('server_CPUs', DEFAULT_SERVER_CPUS))
    memory = int(config.get('server_memory', DEFAULT_SERVER_MEMORY))
    if server_count < 1:
        raise ValueError(f"server_count must be at least 1, got {server_count}")

    return [Server(id=i, total_CPUs=cpus, total_memory=memory) for i in range(server_count)]


def load_pass_tasks(config, rng, next_id):
    """
    Tasks for one pass: the fixed input file if configured, otherwise a fresh random batch.
    Replayed ids are shifted by next_id so a file fed to several passes never repeats an id.
    """
    input_tasks = config.get('input_tasks')
    if input_tasks:
        return [replace(task, id=next_id + task.id) for task in read_tasks(input_tasks)]

    return generate_tasks(
        int(config.get('task_count', 5000)),
        rng,
        arrival_range=parse_range(config.get('arrival_range'), DEFAULT_ARRIVAL_RANGE),
        CPUs_range=parse_range(config.get('CPUs_range'), DEFAULT_CPUS_RANGE),
        memory_range=parse_range(config.get('memory_range'), DEFAULT_MEMORY_RANGE),
        duration_range=parse_range(config.get('duration_range'), DEFAULT_DURATION_RANGE),
        start_id=next_id,
    )


def run_simulation(config):
    """Run every configured pass against one shared server fleet"""

    servers = create_servers(config)

    # Create strategy instances from config up front so a typo fails before any work is done
    passes = [
        (get_strategy_instance(ordering, 'ordering_policy'), get_strategy_instance(strategy, 'placement_strategy'))
        for ordering, strategy in config['passes']
    ]

    # Setup output directory and file paths
    output_directory = config.get('output_directory', 'output')

    output_path = Path(output_directory)
    output_path.mkdir(parents=True, exist_ok=True)

    output_utilisation = output_path / config.get('output_utilisation', 'utilization.csv')
    output_placements = output_path / config.get('output_placements', 'placements.parquet')
    output_log = output_path / config.get('output_log', 'simulation.log')

    max_time_steps = config.get('max_time_steps')

    scheduler = TaskScheduler(
        servers,
        retry_limit=int(config.get('retry_limit', DEFAULT_RETRY_LIMIT)),
        release_completed=parse_bool(config.get('release_completed_tasks')),
        max_time_steps=int(max_time_steps) if max_time_steps else None,
        log_file=str(output_log),
        echo=parse_bool(config.get('echo_log'), default=True),
    )

    seed = config.get('seed')
    rng = np.random.default_rng(int(seed) if seed not in (None, "") else None)

    recorder = UtilisationRecorder()
    placement_records = []
    results = []
    next_id = 0

    print(f"Starting simulation with {len(servers)} servers and {len(passes)} pass(es)...")
    for pass_index, (ordering_policy, placement_strategy) in enumerate(passes):
        tasks = load_pass_tasks(config, rng, next_id)
        if tasks:
            next_id = max(task.id for task in tasks) + 1
        scheduler.add_tasks(tasks)

        recorder.begin_pass(pass_index)
        result = scheduler.process_tasks(ordering_policy, placement_strategy, sink=recorder)
        results.append(result)

        for record in result.placements:
            task = record.task
            placement_records.append({
                'pass': pass_index,
                'ordering': result.ordering,
                'strategy': result.strategy,
                'time_step': record.time_step,
                'task_id': task.id,
                'server_id': record.server_id,
                'attempts': record.attempts,
                'arrival_day': task.arrival_day,
                'arrival_hour': task.arrival_hour,
                'memory_required': task.memory_required,
                'CPUs_required': task.CPUs_required,
                'duration': task.duration,
            })

        print(f"Pass {pass_index} ({result.ordering}/{result.strategy}): {len(result.placements):,} placed over {result.time_steps:,} time-steps, "
              f"{len(result.unsatisfiable):,} unsatisfiable, {len(result.starved):,} starved")

    recorder.write(output_utilisation)
    placements_table = pa.Table.from_pandas(pd.DataFrame(placement_records, columns=PLACEMENT_COLUMNS), preserve_index=False)
    pq.write_table(placements_table, output_placements)

    # Print simulation statistics
    stats = scheduler.get_stats()
    print("\nSimulation complete:")
    for key, value in stats.items():
        print(f"{key}: {value:,}")
    print(f"Utilisation written to: {output_utilisation}")
    print(f"Placements written to: {output_placements}")

    return results


def main():
    config = load_config("config.txt")
    run_simulation(config)


if __name__ == "__main__":
    main()

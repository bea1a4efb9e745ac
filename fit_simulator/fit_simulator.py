from common.models import PlacementRecord, UtilisationSample


DEFAULT_SERVER_CPUS = 24
DEFAULT_SERVER_MEMORY = 64
DEFAULT_RETRY_LIMIT = 5


class Server:
    def __init__(self, id, total_CPUs=DEFAULT_SERVER_CPUS, total_memory=DEFAULT_SERVER_MEMORY):
        if total_CPUs <= 0 or total_memory <= 0:
            raise ValueError(f"Server {id}: capacity must be positive, got {total_CPUs} CPUs / {total_memory} memory")
        self.id = id
        self.total_CPUs = total_CPUs
        self.total_memory = total_memory
        self.available_CPUs = total_CPUs
        self.available_memory = total_memory


    def try_allocate(self, task):
        if self.available_CPUs >= task.CPUs_required and self.available_memory >= task.memory_required:
            self.available_CPUs -= task.CPUs_required
            self.available_memory -= task.memory_required
            return True
        return False

    def release(self, task):
        self.available_CPUs += task.CPUs_required
        self.available_memory += task.memory_required

    def can_host(self, task):
        """True if the task would fit this server when it is completely empty"""
        return self.total_CPUs >= task.CPUs_required and self.total_memory >= task.memory_required

    def leftover_after(self, task):
        """Waste score: CPUs plus memory left over if the task were placed here"""
        # The task is taken off current availability once. Worst fit accepts any server left with
        # waste above zero, even when that is less than the task's own CPUs plus memory.
        return (self.available_CPUs - task.CPUs_required) + (self.available_memory - task.memory_required)

    def cpu_utilisation(self):
        return (1.0 - self.available_CPUs / self.total_CPUs) * 100

    def memory_utilisation(self):
        return (1.0 - self.available_memory / self.total_memory) * 100

    def utilisation(self, dimension):
        if dimension == "cpu":
            return self.cpu_utilisation()
        elif dimension == "memory":
            return self.memory_utilisation()
        else:
            raise ValueError(f"Unknown resource dimension: {dimension}")


class PlacementStrategy:
    """Base class for placement strategies when choosing a server for a task"""
    name = None

    def select_server(self, task, servers):
        """Returns the server the task was allocated on, or None. No allocation is left behind on failure."""
        raise NotImplementedError


class FirstFitPlacement(PlacementStrategy):
    """Place task on the first server in list order that has room for it"""
    name = "first"

    def select_server(self, task, servers):
        for server in servers:
            if server.try_allocate(task):
                return server
        return None


class BestFitPlacement(PlacementStrategy):
    """
    Place task on the server that would be left with the least spare capacity (CPUs + memory).
    Every candidate is probed with an allocate/release pair, then the winner gets the real allocation.
    Ties go to the first server scanned.
    """
    name = "best"

    def select_server(self, task, servers):
        best_fit = None
        least_waste = None
        for server in servers:
            if server.try_allocate(task):
                server.release(task)
                waste = server.leftover_after(task)
                if least_waste is None or waste < least_waste:
                    least_waste = waste
                    best_fit = server

        if best_fit is not None and best_fit.try_allocate(task):
            return best_fit
        return None


class WorstFitPlacement(PlacementStrategy):
    """
    Place task on the server that would be left with the most spare capacity.
    The running maximum starts at zero and must be strictly exceeded, so a server the
    task fills exactly is never picked, even when it is the only one with room.
    """
    name = "worst"

    def select_server(self, task, servers):
        worst_fit = None
        max_waste = 0
        for server in servers:
            if server.try_allocate(task):
                server.release(task)
                waste = server.leftover_after(task)
                if waste > max_waste:
                    max_waste = waste
                    worst_fit = server

        if worst_fit is not None and worst_fit.try_allocate(task):
            return worst_fit
        return None


class OrderingPolicy:
    """Base class for ordering the pending task set before each time-step"""
    name = None

    def sort_key(self, task):
        raise NotImplementedError

    def order(self, tasks):
        # sorted() is stable, equal keys keep their current relative order
        return sorted(tasks, key=self.sort_key)


class ArrivalOrder(OrderingPolicy):
    """First come, first served"""
    name = "arrival"

    def sort_key(self, task):
        return task.arrival_time


class ValueOrder(OrderingPolicy):
    """Smallest CPUs x memory x duration first"""
    name = "value"

    def sort_key(self, task):
        return task.value()


class DurationOrder(OrderingPolicy):
    """Shortest task first"""
    name = "duration"

    def sort_key(self, task):
        return task.duration


class PassResult:
    """Outcome of one process_tasks call"""

    def __init__(self, ordering, strategy):
        self.ordering = ordering
        self.strategy = strategy
        self.placements = []
        self.samples = []
        self.unsatisfiable = []
        self.starved = []
        self.first_time_step = None
        self.last_time_step = None

    @property
    def completed(self):
        return not self.unsatisfiable and not self.starved

    @property
    def time_steps(self):
        return len(self.samples)


class TaskScheduler:
    def __init__(self, servers, retry_limit=DEFAULT_RETRY_LIMIT, release_completed=False, max_time_steps=None, log_file=None, echo=True):
        if not servers:
            raise ValueError("TaskScheduler needs at least one server")
        if retry_limit < 1:
            raise ValueError(f"retry_limit must be at least 1, got {retry_limit}")
        self.servers = servers
        self.retry_limit = retry_limit
        self.release_completed = release_completed
        self.max_time_steps = max_time_steps
        self.task_list = []
        self.time_tracker = 0
        self.running = []  # (release_step, server, task), only populated when release_completed is set
        self.stats = {
            'placed': 0,
            'deferred': 0,
            'released': 0,
            'unsatisfiable': 0,
            'starved': 0,
            'time_steps': 0,
        }
        self.log_file = log_file
        self.echo = echo

    def _log(self, message):
        """Write message to log file and print to console"""
        if self.echo:
            print(message)
        if self.log_file:
            with open(self.log_file, 'a') as f:
                f.write(message + "\n")

    def add_task(self, task):
        self.task_list.append(task)

    def add_tasks(self, tasks):
        self.task_list.extend(tasks)

    def is_satisfiable(self, task):
        return any(server.can_host(task) for server in self.servers)

    def process_tasks(self, ordering_policy, placement_strategy, sink=None):
        """
        Drain the pending task list, one time-step per pass over it.
        Server state and the time counter carry over from any previous call.
        """
        result = PassResult(ordering_policy.name, placement_strategy.name)
        self._log(f"[PASS START] ordering={ordering_policy.name} strategy={placement_strategy.name} tasks={len(self.task_list)} time={self.time_tracker}")

        pending = []
        for task in self.task_list:
            if self.is_satisfiable(task):
                pending.append(task)
            else:
                result.unsatisfiable.append(task)
                self.stats['unsatisfiable'] += 1
                self._log(f"[UNSATISFIABLE] Task {task.id}: needs {task.CPUs_required} CPUs, {task.memory_required} memory - larger than every server")
        self.task_list = pending

        steps_this_pass = 0
        while self.task_list:
            self.time_tracker += 1
            steps_this_pass += 1
            if result.first_time_step is None:
                result.first_time_step = self.time_tracker

            self._release_completed_tasks()
            placed_this_step = 0
            pending = []

            for task in ordering_policy.order(self.task_list):
                record = self._place_task(task, placement_strategy)
                if record is None:
                    pending.append(task)
                else:
                    result.placements.append(record)
                    placed_this_step += 1

            self.stats['deferred'] += len(pending)
            self.task_list = pending

            sample = self.sample_utilisation()
            result.samples.append(sample)
            if sink is not None:
                sink.record(sample)
            result.last_time_step = self.time_tracker
            self.stats['time_steps'] += 1

            if not self.task_list:
                break
            if placed_this_step == 0 and not self.running:
                self._starve_remaining(result, "no placement possible and nothing left to release")
            elif self.max_time_steps is not None and steps_this_pass >= self.max_time_steps:
                self._starve_remaining(result, f"time-step limit of {self.max_time_steps} reached")

        self._log(f"[PASS END] ordering={ordering_policy.name} strategy={placement_strategy.name} placed={len(result.placements)} unsatisfiable={len(result.unsatisfiable)} starved={len(result.starved)} time={self.time_tracker}")
        return result

    def _place_task(self, task, placement_strategy):
        # Every attempt asks the strategy again, so strategies that consult changing state get another chance
        for attempt in range(1, self.retry_limit + 1):
            selected_server = placement_strategy.select_server(task, self.servers)
            if selected_server is not None:
                self.stats['placed'] += 1
                self._log(f"[SUCCESS PLACE] TaskId: {task.id} Arrival Day: {task.arrival_day} Time Hour: {task.arrival_hour} MemReq: {task.memory_required} CPUReq: {task.CPUs_required} ExeTime: {task.duration} Server: {selected_server.id}")
                if self.release_completed:
                    self.running.append((self.time_tracker + task.duration, selected_server, task))
                return PlacementRecord(self.time_tracker, task, selected_server.id, attempt)
        return None

    def _release_completed_tasks(self):
        if not self.running:
            return 0
        still_running = []
        released = 0
        for release_step, server, task in self.running:
            if release_step <= self.time_tracker:
                server.release(task)
                released += 1
                self._log(f"[RELEASE] Task {task.id}: released from server {server.id}")
            else:
                still_running.append((release_step, server, task))
        self.running = still_running
        self.stats['released'] += released
        return released

    def _starve_remaining(self, result, reason):
        for task in self.task_list:
            self._log(f"[STARVED] Task {task.id}: {reason}")
        result.starved.extend(self.task_list)
        self.stats['starved'] += len(self.task_list)
        self.task_list = []

    def sample_utilisation(self):
        total_cpu_usage = 0.0
        total_memory_usage = 0.0
        for server in self.servers:
            total_cpu_usage += server.cpu_utilisation()
            total_memory_usage += server.memory_utilisation()
        return UtilisationSample(
            self.time_tracker,
            total_cpu_usage / len(self.servers),
            total_memory_usage / len(self.servers),
        )

    def get_stats(self):
        """Return simulation statistics"""
        return self.stats.copy()

    def get_current_state(self):
        """Return current cluster state for external logging"""
        return {
            'time': self.time_tracker,
            'pending_tasks': len(self.task_list),
            'running_tasks': len(self.running),
            'servers': [{
                'id': s.id,
                'available_CPUs': s.available_CPUs,
                'available_memory': s.available_memory,
                'total_CPUs': s.total_CPUs,
                'total_memory': s.total_memory,
                }
            for s in self.servers]
        }

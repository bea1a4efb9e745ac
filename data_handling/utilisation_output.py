import pandas as pd
from pathlib import Path
import pyarrow.parquet as pq
import pyarrow as pa


UTILISATION_COLUMNS = ["Time", "CPU Utilization", "Memory Utilization", "Pass"]


class UtilisationRecorder:
    """
    Collects one utilisation row per simulated time-step, in the order they arrive.
    Rows are tagged with the pass they belong to so passes sharing one file can be told apart.
    """

    def __init__(self):
        self.rows = []
        self.current_pass = 0

    def begin_pass(self, pass_index):
        self.current_pass = pass_index

    def record(self, sample):
        self.rows.append({
            "Time": sample.time_step,
            "CPU Utilization": sample.cpu_utilisation,
            "Memory Utilization": sample.memory_utilisation,
            "Pass": self.current_pass,
        })

    def __len__(self):
        return len(self.rows)

    def to_dataframe(self):
        return pd.DataFrame(self.rows, columns=UTILISATION_COLUMNS)

    def write(self, output_file):
        """Write to parquet if the file name ends in .parquet, otherwise as comma separated text with a header row"""
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        df = self.to_dataframe()
        if output_file.suffix == ".parquet":
            pq.write_table(pa.Table.from_pandas(df, preserve_index=False), output_file)
        else:
            df.to_csv(output_file, index=False)
        return output_file


def read_utilisation(input_file):
    input_file = Path(input_file)
    if not input_file.exists():
        raise FileNotFoundError(f"Utilisation file not found: {input_file}")

    if input_file.suffix == ".parquet":
        return pd.read_parquet(input_file)
    return pd.read_csv(input_file)

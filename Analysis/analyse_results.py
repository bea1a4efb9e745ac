import pandas as pd
import matplotlib
import matplotlib.pyplot as plt
from pathlib import Path

from run_simulation import load_config, parse_bool
from data_handling.utilisation_output import read_utilisation


def summarise_passes(df):
    """Per pass: time-step span, mean and peak CPU / memory utilisation"""
    if df.empty:
        return pd.DataFrame(columns=[
            "Pass", "first_time", "last_time", "time_steps",
            "mean_cpu", "peak_cpu", "mean_memory", "peak_memory",
        ])

    summary = (
        df
        .groupby("Pass", as_index=False)
        .agg(
            first_time=("Time", "min"),
            last_time=("Time", "max"),
            time_steps=("Time", "count"),
            mean_cpu=("CPU Utilization", "mean"),
            peak_cpu=("CPU Utilization", "max"),
            mean_memory=("Memory Utilization", "mean"),
            peak_memory=("Memory Utilization", "max"),
        )
        .sort_values("Pass")
        .reset_index(drop=True)
    )
    return summary


def plot_utilisation(df, output_file=None, show=False):
    fig, ax = plt.subplots(figsize=(14, 6))

    ax.plot(df["Time"], df["CPU Utilization"], label="CPU", linewidth=1.0)
    ax.plot(df["Time"], df["Memory Utilization"], label="Memory", linewidth=1.0)

    # Mark where each pass after the first begins
    for _, first_time in df.groupby("Pass")["Time"].min().iloc[1:].items():
        ax.axvline(first_time, color='red', linestyle='--', linewidth=1.5, alpha=0.7)

    ax.set_xlabel("Time-step")
    ax.set_ylabel("Utilisation (%)")
    ax.set_ylim(0, 105)
    ax.set_title("Cluster utilisation over time")
    ax.grid(True, alpha=0.3)
    ax.legend(loc="upper right")

    plt.tight_layout()
    if output_file is not None:
        fig.savefig(output_file)
    if show:
        plt.show()
    plt.close(fig)
    return output_file


if __name__ == "__main__":
    config = load_config("config.txt")
    output_path = Path(config.get('output_directory', 'output'))
    utilisation_file = output_path / config.get('output_utilisation', 'utilization.csv')
    show_plots = parse_bool(config.get('show_plots'))
    if not show_plots:
        matplotlib.use("Agg")

    df = read_utilisation(utilisation_file)
    print(f"Utilisation data shape: {df.shape}")
    print(df.head())

    summary = summarise_passes(df)
    print("\n" + "="*60)
    print("UTILISATION BY PASS")
    print("="*60)
    for _, row in summary.iterrows():
        print(f"Pass {int(row['Pass'])}: time-steps {int(row['first_time'])}-{int(row['last_time'])} ({int(row['time_steps'])} steps)")
        print(f"  Average CPU utilisation:    {row['mean_cpu']:.2f}%  (peak {row['peak_cpu']:.2f}%)")
        print(f"  Average Memory utilisation: {row['mean_memory']:.2f}%  (peak {row['peak_memory']:.2f}%)")
    print("="*60 + "\n")

    plot_file = output_path / config.get('output_plot', 'utilisation.png')
    plot_utilisation(df, plot_file, show=show_plots)
    print(f"Plot saved to: {plot_file}")

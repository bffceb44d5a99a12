from datetime import timedelta
from pathlib import Path
from typing import List

import pandas as pd
import seaborn as sns
from matplotlib import pyplot as plt
from tabulate import tabulate

from trial_result import SessionReport, TrialResult, VariantReport

# ANSI color codes
GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"

METRICS = [
    ("fragmentation_percent", "Fragmentation %"),
    ("insert_ms", "Insert (ms)"),
    ("select_success_ms", "Select success (ms)"),
    ("select_fail_ms", "Select fail (ms)"),
]


def _ms(duration: timedelta) -> float:
    return duration.total_seconds() * 1000


def format_variant_block(result: TrialResult) -> List[str]:
    """Human-readable lines for one aggregated variant"""
    return [
        f"Fragmentation is {result.fragmentation:.1f} %",
        f"Insert         : {_ms(result.insert_duration):.2f} ms",
        f"Select success : {_ms(result.select_success_duration):.2f} ms",
        f"Select fail    : {_ms(result.select_fail_duration):.2f} ms",
    ]


def print_variant_report(report: VariantReport):
    for line in format_variant_block(report.result):
        print(line)
    print()


def write_test_intro(insert_count: int, run_count: int, variant_name: str):
    print(f"Inserting {insert_count:,} lines using {variant_name} {run_count} times")


def comparison_rows(session: SessionReport) -> List[List[str]]:
    """Table rows, best value per metric in green and worst in red"""
    values = {
        report.name: report.result.to_dict() for report in session.variants
    }

    table_data = []
    for report in session.variants:
        row = [report.name]
        for key, _ in METRICS:
            column = [v[key] for v in values.values()]
            min_val, max_val = min(column), max(column)
            val = values[report.name][key]
            cell = f"{val:.2f}"
            if val == min_val and min_val != max_val:
                cell = f"{GREEN}{cell}{RESET}"
            elif val == max_val and min_val != max_val:
                cell = f"{RED}{cell}{RESET}"
            row.append(cell)
        table_data.append(row)
    return table_data


def print_comparison(session: SessionReport):
    """Print formatted results across variants"""
    if not session.variants:
        print("\nNo results to display")
        return

    print(f"\n{'=' * 80}")
    print(
        f"KEY STRATEGY COMPARISON - {session.insert_count:,} rows, "
        f"median of {session.run_count} runs ({session.profile}, {session.insert_strategy})"
    )
    print(f"{'=' * 80}\n")

    headers = ["Key generator"] + [label for _, label in METRICS]
    print(tabulate(comparison_rows(session), headers=headers, tablefmt="grid"))


def results_frame(session: SessionReport) -> pd.DataFrame:
    """One row per trial plus one 'median' row per variant"""
    records = []
    for report in session.variants:
        for run, trial in enumerate(report.trials, start=1):
            records.append({"variant": report.name, "run": str(run), **trial.to_dict()})
        records.append({"variant": report.name, "run": "median", **report.result.to_dict()})

    df = pd.DataFrame(records)
    df["insert_count"] = session.insert_count
    df["profile"] = session.profile
    df["insert_strategy"] = session.insert_strategy
    return df


def export_csv(session: SessionReport, output_file: str) -> Path:
    path = Path(output_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    results_frame(session).to_csv(path, index=False)
    print(f"✓ Results saved to: {path}")
    return path


def visualize_results(session: SessionReport, output_file: str) -> Path:
    """Bar chart of the median of each metric per key generator"""
    df = results_frame(session)
    medians = df[df["run"] == "median"]

    sns.set_style("whitegrid")
    fig, axes = plt.subplots(2, 2, figsize=(14, 10))
    colors = sns.color_palette("husl", len(medians))

    for ax, (key, label) in zip(axes.flat, METRICS):
        bars = ax.bar(medians["variant"], medians[key], color=colors)
        ax.set_ylabel(label, fontsize=11)
        ax.set_title(label, fontsize=12, fontweight="bold")
        plt.setp(ax.xaxis.get_majorticklabels(), rotation=30, ha="right")

        # Add value labels on bars
        for bar in bars:
            height = bar.get_height()
            ax.text(
                bar.get_x() + bar.get_width() / 2.0,
                height,
                f"{height:.2f}",
                ha="center",
                va="bottom",
                fontsize=9,
            )

    fig.suptitle(
        f"{session.insert_count:,} rows, {session.profile} table, "
        f"{session.insert_strategy} insert, median of {session.run_count} runs",
        fontsize=13,
        fontweight="bold",
    )
    plt.tight_layout()

    path = Path(output_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"📊 Visualization saved to: {path}")
    return path

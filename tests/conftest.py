"""Shared fixtures for election dashboard tests."""

import sys
from pathlib import Path

import pandas as pd
import pytest

# Ensure project root is importable
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from election_core.data import records_to_frame  # noqa: E402


def make_row(name, prob=None, d_won=False, volume=0.0, **extra):
    """Row with the same probability at every horizon unless overridden."""
    row = {"name": name, "d_won": d_won, "combined_volume": volume}
    for d in (7, 6, 5, 4, 3, 2, 1):
        row[f"d_prob_{d}d"] = prob
    row.update(extra)
    return row


@pytest.fixture
def sample_rows():
    return [
        make_row("Presidential Election Winner 2024", 0.41, "FALSE", 3_680_000_000,
                 resolution_date="2024-11-06", d_market_slug="harris-wins", r_market_slug="trump-wins"),
        make_row("Who will win the popular vote?", 0.57, "FALSE", 283_700_000, resolution_date="2024-11-06"),
        make_row("Who will win Arizona in the US Senate Election?", 0.82, "TRUE", 2_900_000,
                 resolution_date="2024-11-12"),
        make_row("Who will win the 2025 NYC Mayoral election?", 0.92, True, 31_500_000,
                 resolution_date="not a date"),
        make_row("Who will win Maryland in the US Senate Election?", None, "TRUE", 850,
                 d_prob_1d=0.91, d_prob_2d=0.9),
        make_row("Senate control after 2024 election?", 0.5, False, None),
    ]


@pytest.fixture
def sample_df(sample_rows):
    return records_to_frame(sample_rows)


@pytest.fixture
def accuracy_df():
    """10 markets at 7d: six D calls that D won, four R calls (<= 0.5) that R won."""
    rows = [make_row(f"D market {i}", 0.6 + i * 0.05, "TRUE", 1000 + i) for i in range(6)]
    rows += [make_row(f"R market {i}", 0.5 - i * 0.1, "FALSE", 500 + i) for i in range(4)]
    return records_to_frame(rows)


@pytest.fixture
def empty_df():
    return records_to_frame([])


def names(df: pd.DataFrame):
    return list(df["name"])

import pandas as pd
import pytest


def make_intervals(data, strand=None, **extra_cols):
    """Create an intervals DataFrame from (chrom, start, end) tuples."""
    df = pd.DataFrame(data, columns=["chrom", "start", "end"])
    if strand is not None:
        df["strand"] = strand
    for name, values in extra_cols.items():
        df[name] = values
    return df


@pytest.fixture
def example_signal():
    return make_intervals(
        [("chr1", s, s + 1) for s in (1, 4, 7, 11, 14, 17, 21, 24, 27)],
        score=[1, 2, 3, 1, 2, 3, 1, 2, 3],
    )


@pytest.fixture
def example_target():
    return make_intervals([("chr1", 10, 20)])

"""
Retail transactions data: a synthetic generator and a cleaning step.

make_transactions() produces a frame with the column layout of the
public retail-sales dataset (one row per transaction) so examples and
tests can run without a download. clean_transactions() turns either
the synthetic frame or the real CSV into a modeling-ready frame.
"""

from __future__ import annotations

import logging
import re

import numpy as np
import pandas as pd

from pybootreg.core.random import RandomSource
from pybootreg.core.validation import check_positive_int

logger = logging.getLogger(__name__)

GENDERS = ('Female', 'Male')
CATEGORIES = ('Beauty', 'Clothing', 'Electronics')
UNIT_PRICES = (25.0, 30.0, 50.0, 300.0, 500.0)

AGE_BINS = (0, 25, 35, 45, 55, np.inf)
AGE_LABELS = ('18-25', '26-35', '36-45', '46-55', '56+')

_NUMERIC_COLUMNS = ('age', 'quantity', 'price_per_unit', 'total_amount')


def make_transactions(n: int = 1000, seed: RandomSource | int | None = None) -> pd.DataFrame:
    """
    Synthetic retail transactions.

    Columns: Transaction ID, Date, Customer ID, Gender, Age,
    Product Category, Quantity, Price per Unit, Total Amount
    (Quantity times Price per Unit). Dates fall in calendar year 2023.

    Args:
        n: Number of transactions
        seed: RandomSource or integer seed

    Returns:
        pandas DataFrame with n rows
    """
    n = check_positive_int(n, 'n')
    rng = RandomSource.coerce(seed).generator()

    quantity = rng.integers(1, 5, size=n)
    price = rng.choice(UNIT_PRICES, size=n)
    days = rng.integers(0, 365, size=n)

    return pd.DataFrame({
        'Transaction ID': np.arange(1, n + 1),
        'Date': pd.Timestamp('2023-01-01') + pd.to_timedelta(days, unit='D'),
        'Customer ID': [f"CUST{i:03d}" for i in range(1, n + 1)],
        'Gender': rng.choice(GENDERS, size=n),
        'Age': rng.integers(18, 65, size=n),
        'Product Category': rng.choice(CATEGORIES, size=n),
        'Quantity': quantity,
        'Price per Unit': price,
        'Total Amount': quantity * price,
    })


def snake_case(name: str) -> str:
    """'Price per Unit' -> 'price_per_unit'."""
    return re.sub(r'[^0-9a-zA-Z]+', '_', name.strip()).strip('_').lower()


def clean_transactions(df: pd.DataFrame) -> pd.DataFrame:
    """
    Modeling-ready copy of a transactions frame.

    Steps:
        1. column names stripped and snake_cased
        2. numeric columns coerced, dates parsed (bad values become missing)
        3. exact duplicate rows and rows with any missing value dropped
        4. derived fields: age_group (categorical bands of age; rows whose
           age falls outside every band are dropped) and
           high_value (1 when total_amount is above its median, else 0)

    Derived fields are added only when their source column is present.
    The input frame is not modified.
    """
    out = df.rename(columns=snake_case)

    for column in _NUMERIC_COLUMNS:
        if column in out.columns:
            out[column] = pd.to_numeric(out[column], errors='coerce')
    if 'date' in out.columns:
        out['date'] = pd.to_datetime(out['date'], errors='coerce')

    n_raw = len(out)
    out = out.drop_duplicates()
    n_unique = len(out)
    out = out.dropna().reset_index(drop=True)
    logger.info(
        "clean_transactions: %d rows in, %d duplicates, %d incomplete, %d out",
        n_raw, n_raw - n_unique, n_unique - len(out), len(out),
    )

    if 'age' in out.columns:
        bands = pd.cut(out['age'], bins=list(AGE_BINS), labels=list(AGE_LABELS))
        in_range = bands.notna()
        if not in_range.all():
            logger.info(
                "clean_transactions: %d rows with age outside %s dropped",
                int((~in_range).sum()), AGE_BINS,
            )
            out = out[in_range].reset_index(drop=True)
            bands = bands[in_range].reset_index(drop=True)
        out['age_group'] = bands.astype(str)
    if 'total_amount' in out.columns:
        median = out['total_amount'].median()
        out['high_value'] = (out['total_amount'] > median).astype(int)

    return out

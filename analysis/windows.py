"""
Snooker Statistics - Ranking & Window Engine

Window-function style operations over DataFrames:

- rank_within_partition: ROW_NUMBER() OVER (PARTITION BY ... ORDER BY ...)
- partition_max: MAX(col) OVER (PARTITION BY ...)
- running_aggregate: AVG/MAX/... OVER (ORDER BY ... ROWS BETWEEN N PRECEDING AND CURRENT ROW)
- rollup_total: GROUP BY ROLLUP(...) with labelled subtotal rows
- pivot: PIVOT over a known set of column values
"""

import logging
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from analysis.aggregation import as_key_list
from analysis.constants import TOTAL_LABEL

logger = logging.getLogger(__name__)

RUNNING_FUNCTIONS = ('mean', 'max', 'min', 'sum', 'count')


def rank_within_partition(df: pd.DataFrame,
                          partition_by: Union[str, Sequence[str], None],
                          order_by: Union[str, Sequence[str]],
                          ascending: Union[bool, Sequence[bool]] = False,
                          name: str = 'rank') -> pd.DataFrame:
    """
    Number the rows of each partition 1..N in the given order.

    Rows that tie on every order key keep their input order, so the result
    is deterministic and each partition of N rows gets exactly the ranks
    1..N.

    Args:
        df: Input rows
        partition_by: Partition column(s); None ranks the whole frame
        order_by: Order column(s), primary key first, then tie-breakers
        ascending: One flag for all order keys, or one flag per key
        name: Name of the rank column

    Returns:
        Copy of df (index reset) with the rank column added
    """
    partition = as_key_list(partition_by)
    order = as_key_list(order_by)
    if isinstance(ascending, bool):
        ascending = [ascending] * len(order)
    if len(ascending) != len(order):
        raise ValueError("ascending must have one flag per order_by column")

    out = df.reset_index(drop=True)
    ordered = out.sort_values(partition + order,
                              ascending=[True] * len(partition) + list(ascending),
                              kind='mergesort')
    if partition:
        ranks = ordered.groupby(partition, sort=False, dropna=False).cumcount() + 1
    else:
        ranks = pd.Series(range(1, len(ordered) + 1), index=ordered.index)

    out[name] = ranks.astype(int)
    return out


def partition_max(df: pd.DataFrame, partition_by: Union[str, Sequence[str]], column: str) -> pd.Series:
    """MAX(column) OVER (PARTITION BY partition_by), aligned with df."""
    return df.groupby(as_key_list(partition_by), dropna=False)[column].transform('max')


def running_aggregate(df: pd.DataFrame,
                      value_col: str,
                      order_by: Union[str, Sequence[str]],
                      func: str = 'mean',
                      preceding: Optional[int] = None,
                      partition_by: Union[str, Sequence[str], None] = None,
                      name: Optional[str] = None) -> pd.DataFrame:
    """
    Trailing aggregate over an ordered sequence.

    The window is ROWS BETWEEN <preceding> PRECEDING AND CURRENT ROW, so it
    always includes the current row; preceding=None means UNBOUNDED
    PRECEDING. Early rows aggregate over however many rows exist.

    Args:
        df: Input rows
        value_col: Column to aggregate
        order_by: Ordering column(s)
        func: One of mean, max, min, sum, count
        preceding: Number of preceding rows in the window, or None
        partition_by: Optional partition column(s); windows restart per partition
        name: Output column name (default running_<func>)

    Returns:
        Copy of df sorted by partition and order columns with the new column
    """
    if func not in RUNNING_FUNCTIONS:
        raise ValueError(f"Unsupported running aggregate '{func}', expected one of {RUNNING_FUNCTIONS}")
    if preceding is not None and preceding < 0:
        raise ValueError(f"preceding must be non-negative, got {preceding}")

    partition = as_key_list(partition_by)
    order = as_key_list(order_by)
    name = name or f'running_{func}'

    out = df.sort_values(partition + order, kind='mergesort').reset_index(drop=True)
    values = out[value_col].astype(float)

    def _window(series: pd.Series) -> pd.Series:
        if preceding is None:
            window = series.expanding(min_periods=1)
        else:
            window = series.rolling(preceding + 1, min_periods=1)
        return getattr(window, func)()

    if partition:
        out[name] = values.groupby([out[k] for k in partition], sort=False, dropna=False).transform(_window)
    else:
        out[name] = _window(values)
    return out


def _rollup_sort_key(level: int, values: Sequence) -> tuple:
    # Detail rows before the subtotal of their prefix, grand total last.
    # A null key sorts after the real values of its level.
    key = []
    for position, value in enumerate(values):
        if level <= position:
            key.append((2, ''))
        elif pd.isna(value):
            key.append((1, ''))
        else:
            key.append((0, value))
    return tuple(key)


def rollup_total(df: pd.DataFrame,
                 group_keys: Union[str, Sequence[str]],
                 value_col: Optional[str] = None,
                 agg: str = 'sum',
                 name: str = 'count',
                 labels: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """
    GROUP BY ROLLUP(group_keys).

    Produces one row per full key combination, one subtotal row per prefix
    of the key list and a grand total row. Keys that are rolled up hold a
    sentinel label (labels[key], default 'Total') and the row has
    is_total=True, so totals are never confused with real groups.

    Args:
        df: Input rows
        group_keys: Grouping columns, outermost first
        value_col: Column to aggregate; None counts rows
        agg: Aggregation applied to value_col
        name: Name of the aggregated column
        labels: Sentinel label per key for rolled-up rows

    Returns:
        Rows ordered by key with each subtotal after its detail rows and
        the grand total last; empty input gives an empty frame
    """
    keys = as_key_list(group_keys)
    labels = labels or {}
    columns = keys + [name, 'is_total']
    if df.empty:
        return pd.DataFrame(columns=columns)

    levels: List[pd.DataFrame] = []
    for depth in range(len(keys), -1, -1):
        prefix = keys[:depth]
        if prefix:
            grouped = df.groupby(prefix, sort=True, dropna=False)
            values = grouped.size() if value_col is None else grouped[value_col].agg(agg)
            level = values.rename(name).reset_index()
        else:
            total = len(df) if value_col is None else df[value_col].agg(agg)
            level = pd.DataFrame({name: [total]})
        for key in keys[depth:]:
            level[key] = labels.get(key, TOTAL_LABEL)
        level['_level'] = depth
        levels.append(level)

    out = pd.concat(levels, ignore_index=True)
    order = sorted(out.index, key=lambda i: _rollup_sort_key(out.at[i, '_level'], [out.at[i, k] for k in keys]))
    out = out.loc[order].reset_index(drop=True)
    out['is_total'] = out['_level'] < len(keys)
    return out[columns]


def pivot(df: pd.DataFrame,
          row_key: str,
          column_key: str,
          column_values: Sequence,
          value_col: Optional[str] = None,
          agg: str = 'sum',
          total_name: Optional[str] = 'total') -> pd.DataFrame:
    """
    Reshape grouped values into one column per known column_key value.

    Values of column_key outside column_values are excluded; missing
    combinations are zero-filled.

    Args:
        df: Input rows
        row_key: Column that becomes the row identifier
        column_key: Column whose values become output columns
        column_values: The known output columns, in order
        value_col: Column to aggregate; None counts rows
        agg: Aggregation applied to value_col
        total_name: Name of a row total column, or None for no total

    Returns:
        DataFrame with row_key, one column per value and the optional total
    """
    column_values = list(column_values)
    columns = [row_key] + column_values + ([total_name] if total_name else [])
    subset = df[df[column_key].isin(column_values)]
    if subset.empty:
        return pd.DataFrame(columns=columns)

    grouped = subset.groupby([row_key, column_key], dropna=False)
    values = grouped.size() if value_col is None else grouped[value_col].agg(agg)
    table = values.unstack(column_key, fill_value=0)
    table = table.reindex(columns=column_values, fill_value=0)
    table.columns.name = None
    if total_name:
        table[total_name] = table[column_values].sum(axis=1)
    return table.reset_index()[columns]

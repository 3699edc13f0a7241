"""
Snooker Statistics - Aggregation Engine

Grouping and reduction primitives shared by the report builders:
conditional counts, rounded ratios, minimum sample filtering and the
role-flattening of matches into one row per player and match.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from analysis.constants import (
    OUTCOME_DRAW,
    OUTCOME_LOSS,
    OUTCOME_WIN,
    PERCENT_DECIMALS,
    ROLE_LOSER,
    ROLE_WINNER,
)
from analysis.exceptions import NoSampleData

logger = logging.getLogger(__name__)

Predicate = Union[pd.Series, Callable[[pd.DataFrame], pd.Series]]
Keys = Union[str, Sequence[str]]

# Tournament columns carried onto each role row
ROLE_CARRY_COLUMNS = ('tournament_name', 'year', 'status', 'category', 'stage')


def as_key_list(keys: Optional[Keys]) -> List[str]:
    if keys is None:
        return []
    if isinstance(keys, str):
        return [keys]
    return list(keys)


def _resolve_predicate(df: pd.DataFrame, predicate: Predicate) -> pd.Series:
    mask = predicate(df) if callable(predicate) else predicate
    return mask.reindex(df.index).fillna(False).astype(bool)


def count_where(df: pd.DataFrame, by: Keys, predicate: Optional[Predicate] = None,
                name: str = 'count') -> pd.DataFrame:
    """
    Count the rows of each group that satisfy a predicate.

    Equivalent to COUNT(CASE WHEN <predicate> THEN 1 END) ... GROUP BY <by>:
    every group present in df is returned, with 0 when no row matches.

    Args:
        df: Input rows
        by: Grouping column(s)
        predicate: Boolean Series aligned with df, or a callable returning one.
            None counts every row.
        name: Name of the count column

    Returns:
        DataFrame with the grouping columns and the count column
    """
    predicates = {name: predicate if predicate is not None else pd.Series(True, index=df.index)}
    return count_where_many(df, by, predicates)


def count_where_many(df: pd.DataFrame, by: Keys, predicates: Dict[str, Predicate],
                     total_name: Optional[str] = None) -> pd.DataFrame:
    """
    Several conditional counts over the same grouping in one pass.

    Args:
        df: Input rows
        by: Grouping column(s)
        predicates: Mapping of output column name to predicate
        total_name: If given, also count all rows of each group under this name

    Returns:
        DataFrame with the grouping columns followed by one column per predicate
    """
    keys = as_key_list(by)
    hits = pd.DataFrame(
        {name: _resolve_predicate(df, predicate).astype(int) for name, predicate in predicates.items()},
        index=df.index,
    )
    if total_name:
        hits[total_name] = 1
    value_columns = list(hits.columns)

    for key in keys:
        hits[key] = df[key]
    counts = hits.groupby(keys, sort=True, dropna=False)[value_columns].sum().reset_index()
    return counts[keys + value_columns].astype({c: int for c in value_columns})


def round_half_away(value: float, decimals: int = PERCENT_DECIMALS) -> float:
    """Round to a fixed number of decimals, halves away from zero (SQL ROUND)."""
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def ratio(numerator, denominator, scale: float = 100.0, decimals: int = PERCENT_DECIMALS):
    """
    Rounded ratio of two counts, as a percentage by default.

    Works on scalars or on aligned Series.

    Raises:
        NoSampleData: if the denominator (or any element of it) is zero or null.
            Callers apply min_sample_filter first, or handle the error.
    """
    if isinstance(denominator, pd.Series):
        numerator = pd.Series(numerator, index=denominator.index) if np.isscalar(numerator) else numerator
        empty = denominator.fillna(0) == 0
        if empty.any():
            raise NoSampleData(f"{int(empty.sum())} group(s) have no sample data",
                               groups=denominator.index[empty].tolist())
        raw = scale * numerator.astype(float) / denominator.astype(float)
        return raw.map(lambda v: round_half_away(v, decimals)).astype(float)

    if denominator is None or pd.isna(denominator) or denominator == 0:
        raise NoSampleData()
    return round_half_away(scale * float(numerator) / float(denominator), decimals)


def min_sample_filter(df: pd.DataFrame, threshold: int, count_col: str = 'matches_played') -> pd.DataFrame:
    """
    Drop aggregated groups whose row count is below a threshold (HAVING).

    Must be applied after aggregation so that it sees each group's full count.
    """
    if threshold < 0:
        raise ValueError(f"Sample threshold must be non-negative, got {threshold}")
    kept = df[df[count_col] >= threshold].reset_index(drop=True)
    logger.debug(f"Sample filter {count_col} >= {threshold}: kept {len(kept)}/{len(df)} groups")
    return kept


def flatten_roles(match_view: pd.DataFrame, carry: Sequence[str] = ROLE_CARRY_COLUMNS) -> pd.DataFrame:
    """
    Turn each match into two rows, one per player.

    The winner row has role 'winner' and outcome 'win', the loser row role
    'loser' and outcome 'loss'; both rows of a drawn match have outcome
    'draw'. Each player therefore appears exactly once per match.

    Args:
        match_view: Output of build_match_view (or a filtered subset)
        carry: Match view columns copied onto both rows

    Returns:
        DataFrame ordered by match_id with the winner row first
    """
    carry = [c for c in carry if c in match_view.columns]
    base = match_view[['match_id'] + carry]
    is_draw = match_view['is_draw'].astype(bool)

    as_winner = base.assign(
        player=match_view['winner'],
        player_country=match_view['winner_country'],
        player_score=match_view['winner_score'],
        opponent=match_view['loser'],
        opponent_country=match_view['loser_country'],
        opponent_score=match_view['loser_score'],
        role=ROLE_WINNER,
        outcome=np.where(is_draw, OUTCOME_DRAW, OUTCOME_WIN),
    )
    as_loser = base.assign(
        player=match_view['loser'],
        player_country=match_view['loser_country'],
        player_score=match_view['loser_score'],
        opponent=match_view['winner'],
        opponent_country=match_view['winner_country'],
        opponent_score=match_view['winner_score'],
        role=ROLE_LOSER,
        outcome=np.where(is_draw, OUTCOME_DRAW, OUTCOME_LOSS),
    )

    flat = pd.concat([as_winner, as_loser], ignore_index=True)
    return flat.sort_values('match_id', kind='mergesort').reset_index(drop=True)


def distinct_entries(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """Distinct combinations of the given columns (SQL UNION semantics)."""
    return df[list(columns)].drop_duplicates().reset_index(drop=True)

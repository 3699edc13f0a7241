"""
Snooker Statistics - Break Reports

Report builders over the break view (professional breaks of 50+).
"""

import logging

import pandas as pd

from analysis.aggregation import count_where, min_sample_filter, ratio, round_half_away
from analysis.constants import (
    CENTURY_BREAK,
    CRUCIBLE_STAGES,
    MAXIMUM_BREAK,
    RECENT_EVENTS_WINDOW,
    TOP_BREAKS_PER_TOURNAMENT,
    WORLD_CHAMPIONSHIP,
)
from analysis.match_reports import professional_matches
from analysis.windows import rank_within_partition, running_aggregate

logger = logging.getLogger(__name__)


def _break_counts(break_view: pd.DataFrame, mask: pd.Series, name: str) -> pd.DataFrame:
    counts = break_view[mask].groupby('player', dropna=False).size().rename(name).reset_index()
    return counts.sort_values([name, 'player'], ascending=[False, True]).reset_index(drop=True)


def century_breaks(break_view: pd.DataFrame) -> pd.DataFrame:
    """Which players have made the most century breaks?"""
    return _break_counts(break_view, break_view['break_value'] >= CENTURY_BREAK, 'century_breaks')


def maximum_breaks(break_view: pd.DataFrame) -> pd.DataFrame:
    """Which players have made the most maximum (147) breaks?"""
    return _break_counts(break_view, break_view['break_value'] == MAXIMUM_BREAK, 'maximum_breaks')


def top_tournament_breaks(break_view: pd.DataFrame, top_n: int = TOP_BREAKS_PER_TOURNAMENT) -> pd.DataFrame:
    """
    The highest breaks made at each tournament, and who made them.

    Equal breaks are ranked by the order they were made (match id, frame).

    Returns:
        tournament_name, year, rank, player, break_value; newest year first
    """
    ranked = rank_within_partition(
        break_view,
        partition_by=['year', 'tournament_name'],
        order_by=['break_value', 'match_id', 'frame'],
        ascending=[False, True, True],
        name='rank',
    )
    top = ranked[ranked['rank'] <= top_n]
    top = top.sort_values(['year', 'tournament_name', 'rank'], ascending=[False, True, True])
    return top[['tournament_name', 'year', 'rank', 'player', 'break_value']].reset_index(drop=True)


def tournament_century_rate(match_view: pd.DataFrame, break_view: pd.DataFrame) -> pd.DataFrame:
    """
    Which tournaments had the highest percentage of frames with a century?

    At most one century can be made per frame, so the century count over
    the frames played is the share of frames containing one. Tournaments
    without any frames played have no sample and are left out.

    Returns:
        tournament_name, year, century_breaks, frames_played, percentage_centuries
    """
    pro = professional_matches(match_view)
    frames = (
        pro.assign(frames=pro['winner_score'] + pro['loser_score'])
        .groupby(['tournament_name', 'year'], dropna=False)['frames'].sum()
        .rename('frames_played').reset_index()
    )
    centuries = count_where(break_view, ['tournament_name', 'year'],
                            break_view['break_value'] >= CENTURY_BREAK, name='century_breaks')

    table = frames.merge(centuries, on=['tournament_name', 'year'], how='left')
    table['century_breaks'] = table['century_breaks'].fillna(0).astype(int)
    table = min_sample_filter(table, 1, count_col='frames_played')
    table['percentage_centuries'] = ratio(table['century_breaks'], table['frames_played'])

    table = table.sort_values(['percentage_centuries', 'year', 'tournament_name'],
                              ascending=[False, False, True]).reset_index(drop=True)
    return table[['tournament_name', 'year', 'century_breaks', 'frames_played', 'percentage_centuries']]


def world_championship_centuries(break_view: pd.DataFrame, window: int = RECENT_EVENTS_WINDOW) -> pd.DataFrame:
    """
    Centuries made at each World Championship at the Crucible.

    Only the Last 32 onwards is played at the Crucible. Alongside each
    year's count: the running total, the average over the last `window`
    events (this one included) and the running record.

    Returns:
        year, century_breaks, running_total, avg_last_<window>, record
    """
    avg_name = f'avg_last_{window}'
    crucible = break_view[
        (break_view['tournament_name'] == WORLD_CHAMPIONSHIP)
        & break_view['stage'].isin(CRUCIBLE_STAGES)
        & (break_view['break_value'] >= CENTURY_BREAK)
    ]
    yearly = crucible.groupby('year', dropna=False).size().rename('century_breaks').reset_index()

    yearly = running_aggregate(yearly, 'century_breaks', 'year', func='sum', name='running_total')
    yearly = running_aggregate(yearly, 'century_breaks', 'year', func='mean', preceding=window - 1, name=avg_name)
    yearly = running_aggregate(yearly, 'century_breaks', 'year', func='max', name='record')

    yearly['running_total'] = yearly['running_total'].astype(int)
    yearly['record'] = yearly['record'].astype(int)
    yearly[avg_name] = yearly[avg_name].map(round_half_away).astype(float)
    return yearly[['year', 'century_breaks', 'running_total', avg_name, 'record']]

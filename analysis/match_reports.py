"""
Snooker Statistics - Match and Tournament Reports

Report builders over the match view. Every builder is a pure function
returning a new, ordered DataFrame; none of them modifies its input.
Unless stated otherwise only matches in Professional tournaments count.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from analysis.aggregation import (
    count_where_many,
    distinct_entries,
    flatten_roles,
    min_sample_filter,
    ratio,
)
from analysis.constants import (
    ALL_PLAYERS_LABEL,
    CATEGORY_RANKING,
    HEAD_TO_HEAD_MIN_FRAMES,
    MIN_HEAD_TO_HEAD_MATCHES,
    MIN_PLAYER_MATCHES,
    MIN_STAGE_MATCHES,
    MIN_TOURNAMENT_ENTRIES,
    OUTCOME_DRAW,
    OUTCOME_LOSS,
    OUTCOME_WIN,
    ROLE_LOSER,
    ROLE_WINNER,
    STAGE_FINAL,
    STATUS_PROFESSIONAL,
    TOP_PLAYERS_LIMIT,
    TOTAL_LABEL,
    TRIPLE_CROWN_EVENTS,
    WHITEWASH_MIN_FRAMES,
)
from analysis.match_view import stage_equals
from analysis.windows import partition_max, pivot, rank_within_partition, rollup_total

logger = logging.getLogger(__name__)


# ---------- Shared filters ----------

def professional_matches(match_view: pd.DataFrame) -> pd.DataFrame:
    """Matches played in Professional tournaments."""
    return match_view[match_view['status'] == STATUS_PROFESSIONAL]


def tournament_finals(match_view: pd.DataFrame) -> pd.DataFrame:
    """Decisive matches whose stage is exactly 'Final' (one per title)."""
    return match_view[stage_equals(match_view['stage'], STAGE_FINAL) & ~match_view['is_draw']]


def triple_crown_matches(match_view: pd.DataFrame) -> pd.DataFrame:
    return match_view[match_view['tournament_name'].isin(TRIPLE_CROWN_EVENTS)]


def _optional_ratio(numerator: pd.Series, denominator: pd.Series) -> pd.Series:
    """Percentage where the denominator is positive, NaN where there is no sample."""
    result = pd.Series(np.nan, index=denominator.index, dtype=float)
    sampled = denominator > 0
    if sampled.any():
        result[sampled] = ratio(numerator[sampled], denominator[sampled])
    return result


# ---------- Win / loss records ----------

def player_records(match_view: pd.DataFrame) -> pd.DataFrame:
    """
    Wins, draws, losses and matches played per professional player.

    Counts from the winner-role and loser-role rows are grouped separately
    and reconciled with an outer join, so a player who never lost (or never
    won) is still reported with zero in the missing column.

    Returns:
        DataFrame with player, wins, draws, losses, matches_played
    """
    flat = flatten_roles(professional_matches(match_view))
    as_winner = flat[flat['role'] == ROLE_WINNER]
    as_loser = flat[flat['role'] == ROLE_LOSER]

    won = count_where_many(as_winner, 'player', {
        'wins': as_winner['outcome'] == OUTCOME_WIN,
        'winner_draws': as_winner['outcome'] == OUTCOME_DRAW,
    })
    lost = count_where_many(as_loser, 'player', {
        'losses': as_loser['outcome'] == OUTCOME_LOSS,
        'loser_draws': as_loser['outcome'] == OUTCOME_DRAW,
    })

    records = won.merge(lost, on='player', how='outer')
    count_columns = ['wins', 'winner_draws', 'losses', 'loser_draws']
    records[count_columns] = records[count_columns].fillna(0).astype(int)
    records['draws'] = records['winner_draws'] + records['loser_draws']
    records['matches_played'] = records['wins'] + records['draws'] + records['losses']
    return records[['player', 'wins', 'draws', 'losses', 'matches_played']]


def win_percentage(match_view: pd.DataFrame, min_matches: int = MIN_PLAYER_MATCHES) -> pd.DataFrame:
    """
    Which players win the highest percentage of their matches?

    Returns:
        player, wins, draws, losses, matches_played, match_win_percentage;
        players with at least min_matches, best percentage first
    """
    records = min_sample_filter(player_records(match_view), min_matches)
    records['match_win_percentage'] = ratio(records['wins'], records['matches_played'])
    return records.sort_values(
        ['match_win_percentage', 'matches_played', 'player'],
        ascending=[False, False, True],
    ).reset_index(drop=True)


def matches_played(match_view: pd.DataFrame) -> pd.DataFrame:
    """Which players have played the most professional matches?"""
    records = player_records(match_view)[['player', 'matches_played']]
    return records.sort_values(['matches_played', 'player'], ascending=[False, True]).reset_index(drop=True)


def whitewash_percentage(match_view: pd.DataFrame,
                         min_frames: int = WHITEWASH_MIN_FRAMES,
                         min_matches: int = MIN_PLAYER_MATCHES) -> pd.DataFrame:
    """
    Which players whitewash their opponents most often?

    A whitewash is a win without the opponent winning a frame. Only wins
    needing at least min_frames frames are considered.

    Returns:
        player, whitewashes, matches_played, whitewash_percentage
    """
    pro = professional_matches(match_view)
    won = pro[(pro['winner_score'] >= min_frames) & ~pro['is_draw']]
    counts = count_where_many(won, 'winner', {'whitewashes': won['loser_score'] == 0},
                              total_name='matches_played')
    counts = counts.rename(columns={'winner': 'player'})
    counts = min_sample_filter(counts, min_matches)
    counts['whitewash_percentage'] = ratio(counts['whitewashes'], counts['matches_played'])
    return counts.sort_values(
        ['whitewash_percentage', 'matches_played', 'player'],
        ascending=[False, False, True],
    ).reset_index(drop=True)


# ---------- Tournament titles ----------

def tournament_titles(match_view: pd.DataFrame) -> pd.DataFrame:
    """
    Which players have won the most tournaments, and what was their latest win?

    A title is a decisive professional match at stage 'Final'. Tournaments
    are only dated by year, so two titles in the same year resolve to the
    alphabetically first tournament name.

    Returns:
        player, tournament_wins, most_recent_year, most_recent_win
    """
    finals = tournament_finals(professional_matches(match_view))
    columns = ['player', 'tournament_wins', 'most_recent_year', 'most_recent_win']
    if finals.empty:
        return pd.DataFrame(columns=columns)

    wins = finals.groupby('winner', dropna=False).size().rename('tournament_wins')
    latest_year = finals.groupby('winner', dropna=False)['year'].max().rename('most_recent_year')
    in_latest_year = finals[finals['year'] == finals.groupby('winner', dropna=False)['year'].transform('max')]
    latest_name = (in_latest_year.groupby('winner', dropna=False)['tournament_name'].min()
                   .rename('most_recent_tournament'))

    titles = pd.concat([wins, latest_year, latest_name], axis=1).reset_index()
    titles = titles.rename(columns={'winner': 'player'})
    titles['most_recent_year'] = titles['most_recent_year'].astype(int)
    titles['most_recent_win'] = [
        f"{year} {name}" for year, name in zip(titles['most_recent_year'], titles['most_recent_tournament'])
    ]
    titles = titles.sort_values(['tournament_wins', 'player'], ascending=[False, True]).reset_index(drop=True)
    return titles[columns]


def top_players(match_view: pd.DataFrame, limit: Optional[int] = None) -> pd.DataFrame:
    """Players ordered by tournament wins, optionally the first `limit` only."""
    titles = tournament_titles(match_view)
    return titles if limit is None else titles.head(limit).reset_index(drop=True)


def tournament_win_percentage(match_view: pd.DataFrame,
                              min_entries: int = MIN_TOURNAMENT_ENTRIES) -> pd.DataFrame:
    """
    Which players win the highest percentage of the tournaments they enter?

    Entries are the distinct tournaments (name, year) a player appears in,
    as winner or loser of any match. Wins and entries are broken down into
    ranking and non-ranking events; a category with no entries reports a
    null percentage.

    Returns:
        player, ranking_wins, ranking_entries, ranking_win_percentage,
        non_ranking_wins, non_ranking_entries, non_ranking_win_percentage,
        total_wins, total_entries, total_win_percentage
    """
    pro = professional_matches(match_view)
    entries = distinct_entries(flatten_roles(pro), ['player', 'tournament_name', 'year', 'category'])
    is_ranking_entry = entries['category'] == CATEGORY_RANKING
    entry_counts = count_where_many(entries, 'player', {
        'ranking_entries': is_ranking_entry,
        'non_ranking_entries': ~is_ranking_entry,
    })

    finals = tournament_finals(pro)
    is_ranking_final = finals['category'] == CATEGORY_RANKING
    win_counts = count_where_many(finals, 'winner', {
        'ranking_wins': is_ranking_final,
        'non_ranking_wins': ~is_ranking_final,
    }).rename(columns={'winner': 'player'})

    table = entry_counts.merge(win_counts, on='player', how='left')
    table[['ranking_wins', 'non_ranking_wins']] = table[['ranking_wins', 'non_ranking_wins']].fillna(0).astype(int)
    table['total_wins'] = table['ranking_wins'] + table['non_ranking_wins']
    table['total_entries'] = table['ranking_entries'] + table['non_ranking_entries']
    table = min_sample_filter(table, min_entries, count_col='total_entries')

    table['ranking_win_percentage'] = _optional_ratio(table['ranking_wins'], table['ranking_entries'])
    table['non_ranking_win_percentage'] = _optional_ratio(table['non_ranking_wins'], table['non_ranking_entries'])
    table['total_win_percentage'] = ratio(table['total_wins'], table['total_entries'])

    table = table.sort_values(['total_win_percentage', 'total_entries', 'player'],
                              ascending=[False, False, True]).reset_index(drop=True)
    return table[[
        'player',
        'ranking_wins', 'ranking_entries', 'ranking_win_percentage',
        'non_ranking_wins', 'non_ranking_entries', 'non_ranking_win_percentage',
        'total_wins', 'total_entries', 'total_win_percentage',
    ]]


def best_without_ranking_title(match_view: pd.DataFrame) -> pd.DataFrame:
    """Who are the best players never to win a ranking event?"""
    finals = tournament_finals(professional_matches(match_view))
    ranking_winners = set(finals.loc[finals['category'] == CATEGORY_RANKING, 'winner'])
    titles = tournament_titles(match_view)
    never = titles[~titles['player'].isin(ranking_winners)]
    return never[['player', 'tournament_wins']].reset_index(drop=True)


# ---------- Triple Crown ----------

def triple_crown_worst_defeats(match_view: pd.DataFrame, top_n: int = TOP_PLAYERS_LIMIT) -> pd.DataFrame:
    """
    Each top player's worst defeat at each Triple Crown event.

    Losses are ranked per (player, event), pooling every year of the event,
    by frame margin; equal margins resolve to the earliest year, then the
    lowest match id.

    Returns:
        player, tournament_name, year, stage, lost_to, score ("<loser> - <winner>")
    """
    columns = ['player', 'tournament_name', 'year', 'stage', 'lost_to', 'score']
    losses = triple_crown_matches(match_view)
    losses = losses[~losses['is_draw']].assign(margin=lambda d: d['winner_score'] - d['loser_score'])
    if losses.empty:
        return pd.DataFrame(columns=columns)

    ranked = rank_within_partition(
        losses,
        partition_by=['loser', 'tournament_name'],
        order_by=['margin', 'year', 'match_id'],
        ascending=[False, True, True],
        name='loss_rank',
    )
    worst = ranked[ranked['loss_rank'] == 1].rename(columns={'loser': 'player', 'winner': 'lost_to'})

    leaders = top_players(match_view, limit=top_n)[['player', 'tournament_wins']]
    worst = worst.merge(leaders, on='player', how='inner')
    worst['score'] = [f"{lost} - {won}" for lost, won in zip(worst['loser_score'], worst['winner_score'])]

    worst = worst.sort_values(['tournament_wins', 'player', 'tournament_name'],
                              ascending=[False, True, False]).reset_index(drop=True)
    return worst[columns]


def triple_crown_deciders(match_view: pd.DataFrame, min_matches: int = MIN_STAGE_MATCHES) -> pd.DataFrame:
    """
    Which Triple Crown stages most often go to a deciding frame?

    A match went to a decider when the winner won by a single frame.

    Returns:
        tournament_name, stage, number_of_deciders, matches_played, perc_deciders
    """
    matches = triple_crown_matches(match_view)
    went_the_distance = ~matches['is_draw'] & ((matches['winner_score'] - matches['loser_score']) == 1)
    stages = count_where_many(matches, ['tournament_name', 'stage'],
                              {'number_of_deciders': went_the_distance},
                              total_name='matches_played')
    stages = min_sample_filter(stages, min_matches)
    stages['perc_deciders'] = ratio(stages['number_of_deciders'], stages['matches_played'])
    return stages.sort_values(['perc_deciders', 'tournament_name', 'stage'],
                              ascending=[False, True, True]).reset_index(drop=True)


def _triple_crown_titles(match_view: pd.DataFrame) -> pd.DataFrame:
    return tournament_finals(triple_crown_matches(match_view))


def triple_crown_titles(match_view: pd.DataFrame) -> pd.DataFrame:
    """
    Triple Crown titles per top player and event, rolled up.

    Each player's event rows are followed by a 'Total' row; the final
    'All Players' row is the grand total. Players are ordered by their
    overall tournament wins.

    Returns:
        player, tournament_name, number_of_titles, is_total
    """
    titles = _triple_crown_titles(match_view)
    leaders = top_players(match_view)
    titles = titles[titles['winner'].isin(set(leaders['player']))]

    rolled = rollup_total(
        titles,
        ['winner', 'tournament_name'],
        name='number_of_titles',
        labels={'winner': ALL_PLAYERS_LABEL, 'tournament_name': TOTAL_LABEL},
    ).rename(columns={'winner': 'player'})
    if rolled.empty:
        return rolled

    wins = leaders.set_index('player')['tournament_wins']
    rolled['_wins'] = np.where(rolled['player'] == ALL_PLAYERS_LABEL, -1,
                               rolled['player'].map(wins).fillna(-1))
    grand_total = (rolled['player'] == ALL_PLAYERS_LABEL) & (rolled['tournament_name'] == TOTAL_LABEL) & rolled['is_total']
    rolled['_grand_total'] = grand_total
    rolled = rolled.sort_values(['_grand_total', '_wins', 'player'],
                                ascending=[True, False, True], kind='mergesort')
    return rolled.drop(columns=['_wins', '_grand_total']).reset_index(drop=True)


def triple_crown_titles_pivot(match_view: pd.DataFrame) -> pd.DataFrame:
    """
    Triple Crown titles with one column per event.

    Returns:
        player, World Championship, Masters, UK Championship, total
    """
    table = pivot(_triple_crown_titles(match_view), 'winner', 'tournament_name',
                  TRIPLE_CROWN_EVENTS, total_name='total').rename(columns={'winner': 'player'})
    if table.empty:
        return table
    return table.sort_values(['total', 'player'], ascending=[False, True]).reset_index(drop=True)


# ---------- Head to head ----------

def head_to_head(match_view: pd.DataFrame,
                 min_frames: int = HEAD_TO_HEAD_MIN_FRAMES,
                 min_meetings: int = MIN_HEAD_TO_HEAD_MATCHES) -> pd.DataFrame:
    """
    Which opponents do players have their best and worst records against?

    Matches where the winner needed fewer than min_frames frames (walkovers,
    short formats) are left out. Opponents met at least min_meetings times
    are ranked per player by win ratio, then number of meetings, then name.
    Rank 1 is reported as 'Best' and the last rank as 'Worst'; with a single
    qualifying opponent both rows name the same opponent.

    Returns:
        player, opponent_type, opponent_name, wins, matches_played, win_percentage;
        ordered by the player's tournament wins
    """
    columns = ['player', 'opponent_type', 'opponent_name', 'wins', 'matches_played', 'win_percentage']
    pro = professional_matches(match_view)
    flat = flatten_roles(pro[pro['winner_score'] >= min_frames])

    pairs = count_where_many(flat, ['player', 'opponent'], {'wins': flat['outcome'] == OUTCOME_WIN},
                             total_name='matches_played')
    pairs = min_sample_filter(pairs, min_meetings)
    if pairs.empty:
        return pd.DataFrame(columns=columns)

    pairs['win_ratio'] = pairs['wins'] / pairs['matches_played']
    ranked = rank_within_partition(
        pairs,
        partition_by='player',
        order_by=['win_ratio', 'matches_played', 'opponent'],
        ascending=[False, False, True],
        name='opponent_rank',
    )
    ranked['max_rank'] = partition_max(ranked, 'player', 'opponent_rank')
    ranked['win_percentage'] = ratio(ranked['wins'], ranked['matches_played'])

    best = ranked[ranked['opponent_rank'] == 1].assign(opponent_type='Best')
    worst = ranked[ranked['opponent_rank'] == ranked['max_rank']].assign(opponent_type='Worst')
    report = pd.concat([best, worst], ignore_index=True).rename(columns={'opponent': 'opponent_name'})

    wins = tournament_titles(match_view).set_index('player')['tournament_wins']
    report['tournament_wins'] = report['player'].map(wins).fillna(0).astype(int)
    report = report.sort_values(['tournament_wins', 'player', 'opponent_type'],
                                ascending=[False, True, True]).reset_index(drop=True)
    return report[columns]

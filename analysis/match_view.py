"""
Snooker Statistics - Match Enrichment

Builds the two derived relations every report reads from:

- the match view: one row per match with the winner and loser resolved by
  score, both players' countries and the tournament's year/status/category
- the break view: one row per recorded 50+ break made in a professional
  tournament, with the slot resolved to the player's name

Both builders validate references and raise DataIntegrityError instead of
dropping rows.
"""

import logging
from typing import List

import numpy as np
import pandas as pd

from analysis.constants import STATUS_PROFESSIONAL
from analysis.exceptions import DataIntegrityError

logger = logging.getLogger(__name__)

MATCH_VIEW_COLUMNS = [
    'match_id',
    'tournament_id',
    'tournament_name',
    'year',
    'status',
    'category',
    'stage',
    'winner',
    'winner_country',
    'winner_score',
    'winner_slot',
    'loser',
    'loser_country',
    'loser_score',
    'is_draw',
]

BREAK_VIEW_COLUMNS = [
    'tournament_name',
    'year',
    'match_id',
    'stage',
    'frame',
    'player',
    'break_value',
]


def stage_equals(stages: pd.Series, label: str) -> pd.Series:
    """
    Case-sensitive stage comparison.

    'Final' must not match 'final' or 'FINAL', which denote other stages
    in the source data, so labels are never normalised.
    """
    return stages.astype(object).map(lambda s: isinstance(s, str) and s == label).astype(bool)


def _duplicated_keys(series: pd.Series) -> List:
    return sorted(series[series.duplicated()].unique().tolist())


def check_match_references(players: pd.DataFrame, tournaments: pd.DataFrame, matches: pd.DataFrame) -> None:
    """
    Validate the references of every match row.

    Raises:
        DataIntegrityError: listing the offending keys or match ids
    """
    duplicate_players = _duplicated_keys(players['full_name'])
    if duplicate_players:
        raise DataIntegrityError("Duplicate player names in players table", duplicate_players)

    duplicate_tournaments = _duplicated_keys(tournaments['id'])
    if duplicate_tournaments:
        raise DataIntegrityError("Duplicate tournament ids in tournaments table", duplicate_tournaments)

    duplicate_matches = _duplicated_keys(matches['match_id'])
    if duplicate_matches:
        raise DataIntegrityError("Duplicate match ids in matches table", duplicate_matches)

    known_players = set(players['full_name'])
    problems = {
        "Matches reference unknown tournaments": ~matches['tournament_id'].isin(set(tournaments['id'])),
        "Matches reference unknown players": (
            ~matches['player1_name'].isin(known_players) | ~matches['player2_name'].isin(known_players)
        ),
        "Matches list the same player twice": matches['player1_name'] == matches['player2_name'],
        "Matches have negative scores": (matches['score1'] < 0) | (matches['score2'] < 0),
    }
    for message, mask in problems.items():
        if mask.any():
            bad_ids = matches.loc[mask, 'match_id'].tolist()
            logger.error(f"{message}: {len(bad_ids)} row(s)")
            raise DataIntegrityError(message, bad_ids)


def build_match_view(players: pd.DataFrame, tournaments: pd.DataFrame, matches: pd.DataFrame) -> pd.DataFrame:
    """
    Join matches with their tournament and both players.

    Args:
        players: full_name, country
        tournaments: id, name, year, status, category
        matches: match_id, tournament_id, stage, player1_name, player2_name, score1, score2

    Returns:
        DataFrame with MATCH_VIEW_COLUMNS, ordered by match_id
    """
    check_match_references(players, tournaments, matches)

    tournament_info = tournaments[['id', 'name', 'year', 'status', 'category']].rename(
        columns={'id': 'tournament_id', 'name': 'tournament_name'}
    )
    view = matches.merge(tournament_info, on='tournament_id', how='left', validate='many_to_one')

    # Draws keep slot order; is_draw marks them so no side is credited
    player1_leads = view['score1'] >= view['score2']
    view['is_draw'] = (view['score1'] == view['score2']).astype(bool)
    view['winner'] = np.where(player1_leads, view['player1_name'], view['player2_name'])
    view['loser'] = np.where(player1_leads, view['player2_name'], view['player1_name'])
    view['winner_score'] = np.where(player1_leads, view['score1'], view['score2']).astype(int)
    view['loser_score'] = np.where(player1_leads, view['score2'], view['score1']).astype(int)
    view['winner_slot'] = np.where(player1_leads, 1, 2).astype(int)

    countries = players.set_index('full_name')['country']
    view['winner_country'] = view['winner'].map(countries)
    view['loser_country'] = view['loser'].map(countries)

    view = view.sort_values('match_id', kind='mergesort').reset_index(drop=True)
    logger.info(f"Built match view with {len(view)} matches "
                f"({int(view['is_draw'].sum())} draws)")
    return view[MATCH_VIEW_COLUMNS]


def build_break_view(scores: pd.DataFrame, matches: pd.DataFrame, tournaments: pd.DataFrame) -> pd.DataFrame:
    """
    List every recorded break made in a professional tournament.

    The scores table only records breaks of 50 or more, one per frame and
    player slot.

    Raises:
        DataIntegrityError: if a score row references an unknown match or slot
    """
    unknown_match = ~scores['match_id'].isin(set(matches['match_id']))
    if unknown_match.any():
        raise DataIntegrityError("Scores reference unknown matches",
                                 sorted(scores.loc[unknown_match, 'match_id'].unique().tolist()))

    bad_slot = ~scores['player_slot'].isin([1, 2])
    if bad_slot.any():
        raise DataIntegrityError("Scores have player slots other than 1 or 2",
                                 sorted(scores.loc[bad_slot, 'match_id'].unique().tolist()))

    breaks = scores[scores['break_value'].notna()]
    match_info = matches[['match_id', 'tournament_id', 'stage', 'player1_name', 'player2_name']]
    tournament_info = tournaments[['id', 'name', 'year', 'status']].rename(
        columns={'id': 'tournament_id', 'name': 'tournament_name'}
    )
    view = (
        breaks.merge(match_info, on='match_id', how='inner')
        .merge(tournament_info, on='tournament_id', how='left')
    )
    view = view[view['status'] == STATUS_PROFESSIONAL].copy()

    view['player'] = np.where(view['player_slot'] == 1, view['player1_name'], view['player2_name'])
    view['break_value'] = view['break_value'].astype(int)

    view = view.sort_values(['match_id', 'frame', 'player_slot'], kind='mergesort').reset_index(drop=True)
    logger.info(f"Built break view with {len(view)} professional breaks")
    return view[BREAK_VIEW_COLUMNS]

"""
Snooker Statistics - Chart Extracts

Tables shaped for charting tools: frame-by-frame progress of World
Championship finals, tournament entries with their outcome per player,
and professional tournaments alongside the host country's player count.
"""

import logging

import numpy as np
import pandas as pd

from analysis.aggregation import distinct_entries, flatten_roles
from analysis.constants import STATUS_PROFESSIONAL, UK_HOME_NATIONS, UNITED_KINGDOM, WORLD_CHAMPIONSHIP
from analysis.match_reports import professional_matches, tournament_finals
from analysis.windows import running_aggregate

logger = logging.getLogger(__name__)


def normalise_country(countries: pd.Series) -> pd.Series:
    """Report the home nations as one country."""
    return countries.replace({nation: UNITED_KINGDOM for nation in UK_HOME_NATIONS})


def world_final_frame_progression(match_view: pd.DataFrame, scores: pd.DataFrame) -> pd.DataFrame:
    """
    How easily did each World Champion win the final?

    For every frame of every World Championship final, the number of frames
    the eventual champion had won so far. A frame counts as won by the
    player whose slot scored more in it.

    Returns:
        year, winner, loser, frames_played, frames_won
    """
    columns = ['year', 'winner', 'loser', 'frames_played', 'frames_won']
    finals = tournament_finals(match_view[match_view['tournament_name'] == WORLD_CHAMPIONSHIP])
    frames = scores[scores['match_id'].isin(set(finals['match_id']))]
    if frames.empty:
        return pd.DataFrame(columns=columns)

    # Frames whose scores are all null are kept; they count as not won
    by_slot = (
        frames.groupby(['match_id', 'frame', 'player_slot'], dropna=False)['score'].first()
        .unstack('player_slot')
        .reindex(columns=[1, 2])
        .reset_index()
    )
    by_slot.columns = ['match_id', 'frame', 'slot1_score', 'slot2_score']

    progress = by_slot.merge(finals[['match_id', 'year', 'winner', 'loser', 'winner_slot']], on='match_id')
    champion_score = np.where(progress['winner_slot'] == 1, progress['slot1_score'], progress['slot2_score'])
    runner_up_score = np.where(progress['winner_slot'] == 1, progress['slot2_score'], progress['slot1_score'])
    progress['frame_won'] = (champion_score > runner_up_score).astype(int)

    progress = running_aggregate(progress, 'frame_won', 'frame', func='sum',
                                 partition_by='match_id', name='frames_won')
    progress['frames_won'] = progress['frames_won'].astype(int)
    progress = progress.rename(columns={'frame': 'frames_played'})
    progress = progress.sort_values(['year', 'match_id', 'frames_played']).reset_index(drop=True)
    return progress[columns]


def tournament_entry_outcomes(match_view: pd.DataFrame) -> pd.DataFrame:
    """
    Every tournament each player entered, and whether they won it.

    Only tournaments with a professional final are listed.

    Returns:
        player, tournament_name, year, category, outcome ('Won' or 'Lost')
    """
    entries = distinct_entries(flatten_roles(match_view), ['player', 'tournament_name', 'year', 'category'])
    champions = tournament_finals(professional_matches(match_view))[['tournament_name', 'year', 'winner']]
    champions = champions.drop_duplicates(['tournament_name', 'year'])

    outcomes = entries.merge(champions, on=['tournament_name', 'year'], how='inner')
    outcomes['outcome'] = np.where(outcomes['player'] == outcomes['winner'], 'Won', 'Lost')
    outcomes = outcomes.sort_values(['player', 'year', 'tournament_name']).reset_index(drop=True)
    return outcomes[['player', 'tournament_name', 'year', 'category', 'outcome']]


def country_player_counts(match_view: pd.DataFrame, tournaments: pd.DataFrame) -> pd.DataFrame:
    """
    Where are professional events held, and how many professionals come from there?

    Players are counted once per country if they played any professional
    match. Countries that never hosted a professional event still appear,
    with empty tournament columns.

    Returns:
        tournament_name, year, country, city, country_player_count
    """
    flat = flatten_roles(professional_matches(match_view))
    players = distinct_entries(flat, ['player', 'player_country'])
    players = players.assign(country=normalise_country(players['player_country']))
    players = players.drop_duplicates(['player', 'country'])
    counts = players.groupby('country', dropna=False).size().rename('country_player_count').reset_index()

    # Players without a country keep their own row; no event is matched to it
    events = tournaments[(tournaments['status'] == STATUS_PROFESSIONAL) & tournaments['country'].notna()]
    events = pd.DataFrame({
        'tournament_name': events['name'],
        'year': events['year'],
        'country': normalise_country(events['country']),
        'city': events['city'],
    })

    table = events.merge(counts, on='country', how='right')
    table['year'] = pd.to_numeric(table['year'], errors='coerce').astype('Int64')
    table = table.sort_values(['country', 'year', 'tournament_name'], na_position='last').reset_index(drop=True)
    return table[['tournament_name', 'year', 'country', 'city', 'country_player_count']]

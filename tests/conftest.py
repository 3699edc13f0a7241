import pandas as pd
import pytest

from analysis.match_view import build_break_view, build_match_view
from database.load_snooker_data import SnookerSnapshot

PLAYERS = [
    ("Ronnie O'Sullivan", "England"),
    ("John Higgins", "Scotland"),
    ("Mark Williams", "Wales"),
    ("Judd Trump", "England"),
    ("Ding Junhui", "China"),
    ("Neil Robertson", "Australia"),
]

PLAYER_COLUMNS = ['full_name', 'country']
TOURNAMENT_COLUMNS = ['id', 'name', 'year', 'status', 'category', 'city', 'country']
MATCH_COLUMNS = ['match_id', 'tournament_id', 'stage', 'player1_name', 'player2_name', 'score1', 'score2']
SCORE_COLUMNS = ['match_id', 'frame', 'player_slot', 'score', 'break_value']

# (id, name, year, status, category, city, country)
SAMPLE_TOURNAMENTS = [
    (1, 'World Championship', 2019, 'Professional', 'Ranking', 'Sheffield', 'England'),
    (2, 'Masters', 2019, 'Professional', 'Non-Ranking', 'London', 'England'),
    (3, 'UK Championship', 2019, 'Professional', 'Ranking', 'York', 'England'),
    (4, 'World Championship', 2020, 'Professional', 'Ranking', 'Sheffield', 'England'),
    (5, 'Shanghai Masters', 2019, 'Professional', 'Ranking', 'Shanghai', 'China'),
    (6, 'Pro-Am Classic', 2019, 'Amateur', 'Non-Ranking', 'Glasgow', 'Scotland'),
]

# (match_id, tournament_id, stage, player1, player2, score1, score2)
SAMPLE_MATCHES = [
    (1, 1, 'Final', 'Judd Trump', 'John Higgins', 18, 9),
    (2, 1, 'Semi-Final', 'John Higgins', 'Mark Williams', 17, 16),
    (3, 2, 'Final', 'Judd Trump', "Ronnie O'Sullivan", 10, 4),
    (4, 3, 'Final', 'Ding Junhui', 'Judd Trump', 10, 6),
    (5, 4, 'Final', "Ronnie O'Sullivan", 'Kyren Wilson', 18, 8),
    (6, 5, 'final', 'Mark Williams', 'Neil Robertson', 10, 9),
    (7, 5, 'Final', 'Neil Robertson', 'Mark Williams', 10, 9),
    (8, 6, 'Final', 'John Higgins', 'Ding Junhui', 6, 0),
    (9, 4, 'Semi-Final', 'Kyren Wilson', 'Neil Robertson', 8, 8),
]

# (match_id, frame, slot, score, break)
SAMPLE_SCORES = [
    (1, 1, 1, 101, 101),
    (1, 1, 2, 0, None),
    (1, 2, 1, 20, None),
    (1, 2, 2, 75, 62),
    (1, 3, 1, 131, 131),
    (1, 3, 2, 8, None),
    (3, 1, 1, 147, 147),
    (3, 1, 2, 0, None),
    (5, 1, 1, 110, 110),
    (5, 1, 2, 14, None),
    (8, 1, 1, 120, 120),
    (8, 1, 2, 0, None),
]


def players_frame(rows=None):
    rows = PLAYERS + [("Kyren Wilson", "England")] if rows is None else rows
    return pd.DataFrame(rows, columns=PLAYER_COLUMNS)


def tournaments_frame(rows):
    return pd.DataFrame(rows, columns=TOURNAMENT_COLUMNS).astype({'id': 'int64', 'year': 'int64'})


def matches_frame(rows):
    return pd.DataFrame(rows, columns=MATCH_COLUMNS).astype(
        {'match_id': 'int64', 'tournament_id': 'int64', 'score1': 'int64', 'score2': 'int64'}
    )


def scores_frame(rows):
    return pd.DataFrame(rows, columns=SCORE_COLUMNS).astype(
        {'match_id': 'int64', 'frame': 'int64', 'player_slot': 'int64', 'score': 'float64', 'break_value': 'float64'}
    )


@pytest.fixture
def make_snapshot():
    """Factory building a validated-shape snapshot from plain tuples"""
    def _make(tournaments=SAMPLE_TOURNAMENTS, matches=SAMPLE_MATCHES, scores=(), players=None):
        return SnookerSnapshot(
            players=players_frame(players),
            tournaments=tournaments_frame(list(tournaments)),
            matches=matches_frame(list(matches)),
            scores=scores_frame(list(scores)),
            source='fixture',
        )
    return _make


@pytest.fixture
def make_match_view(make_snapshot):
    def _make(tournaments=SAMPLE_TOURNAMENTS, matches=SAMPLE_MATCHES, players=None):
        snapshot = make_snapshot(tournaments, matches, players=players)
        return build_match_view(snapshot.players, snapshot.tournaments, snapshot.matches)
    return _make


@pytest.fixture
def sample_snapshot(make_snapshot):
    return make_snapshot(SAMPLE_TOURNAMENTS, SAMPLE_MATCHES, SAMPLE_SCORES)


@pytest.fixture
def sample_match_view(sample_snapshot):
    return build_match_view(sample_snapshot.players, sample_snapshot.tournaments, sample_snapshot.matches)


@pytest.fixture
def sample_break_view(sample_snapshot):
    return build_break_view(sample_snapshot.scores, sample_snapshot.matches, sample_snapshot.tournaments)


@pytest.fixture
def pro_event():
    """A single professional ranking tournament"""
    return [(1, 'Shanghai Masters', 2019, 'Professional', 'Ranking', 'Shanghai', 'China')]


@pytest.fixture
def sample_csv_dir(tmp_path):
    """The sample tables written as CSV files with their source column names"""
    data_dir = tmp_path / 'data'
    data_dir.mkdir()
    players_frame().to_csv(data_dir / 'players.csv', index=False)
    pd.DataFrame(SAMPLE_TOURNAMENTS, columns=TOURNAMENT_COLUMNS).to_csv(data_dir / 'tournaments.csv', index=False)
    pd.DataFrame(SAMPLE_MATCHES, columns=MATCH_COLUMNS).to_csv(data_dir / 'matches.csv', index=False)
    pd.DataFrame(SAMPLE_SCORES, columns=['match_id', 'frame', 'player', 'score', '50plus_breaks_str']).to_csv(
        data_dir / 'scores.csv', index=False
    )
    return data_dir

import math

import pandas as pd
import pytest

from analysis import match_reports
from analysis.match_reports import (
    best_without_ranking_title,
    head_to_head,
    matches_played,
    player_records,
    tournament_titles,
    tournament_win_percentage,
    triple_crown_deciders,
    triple_crown_titles,
    triple_crown_titles_pivot,
    triple_crown_worst_defeats,
    whitewash_percentage,
    win_percentage,
)

WC_2019 = (1, 'World Championship', 2019, 'Professional', 'Ranking', 'Sheffield', 'England')
MASTERS_2019 = (2, 'Masters', 2019, 'Professional', 'Non-Ranking', 'London', 'England')
WC_2020 = (4, 'World Championship', 2020, 'Professional', 'Ranking', 'Sheffield', 'England')


def test_whitewash_percentage(make_match_view, pro_event):
    view = make_match_view(pro_event, [
        (1, 1, 'Last 32', 'Judd Trump', 'John Higgins', 10, 0),
        (2, 1, 'Last 16', 'Judd Trump', 'Mark Williams', 10, 2),
        (3, 1, 'Quarter-Final', 'Judd Trump', 'John Higgins', 10, 0),
        (4, 1, 'Last 64', 'Judd Trump', 'Ding Junhui', 4, 0),
    ])
    report = whitewash_percentage(view, min_matches=1)
    row = report.set_index('player').loc['Judd Trump']
    assert row['whitewashes'] == 2
    assert row['matches_played'] == 3
    assert row['whitewash_percentage'] == 66.667
    assert report['player'].tolist() == ['Judd Trump']


def test_player_who_never_lost_is_reported(make_match_view, pro_event):
    view = make_match_view(pro_event, [
        (1, 1, 'Last 32', 'Judd Trump', 'John Higgins', 10, 0),
        (2, 1, 'Last 16', 'Judd Trump', 'Mark Williams', 10, 2),
        (3, 1, 'Quarter-Final', 'John Higgins', 'Judd Trump', 3, 10),
    ])
    report = win_percentage(view, min_matches=1).set_index('player')
    assert report.loc['Judd Trump', 'losses'] == 0
    assert report.loc['Judd Trump', 'wins'] == 3
    assert report.loc['Judd Trump', 'match_win_percentage'] == 100.0
    assert report.loc['John Higgins', 'wins'] == 0
    assert report.loc['John Higgins', 'match_win_percentage'] == 0.0


def test_win_percentage_counts_add_up(sample_match_view):
    report = win_percentage(sample_match_view, min_matches=1)
    assert (report['wins'] + report['draws'] + report['losses'] == report['matches_played']).all()
    for row in report.itertuples():
        assert row.match_win_percentage == round(100 * row.wins / row.matches_played, 3)


def test_win_percentage_draws_are_neither_wins_nor_losses(sample_match_view):
    records = player_records(sample_match_view).set_index('player')
    assert records.loc['Kyren Wilson'].tolist() == [0, 1, 1, 2]
    assert records.loc['Neil Robertson'].tolist() == [1, 1, 1, 3]


def test_win_percentage_excludes_non_professional(sample_match_view):
    records = player_records(sample_match_view).set_index('player')
    # Pro-Am final between Higgins and Ding is ignored
    assert records.loc['John Higgins', 'matches_played'] == 2
    assert records.loc['Ding Junhui', 'matches_played'] == 1


def test_win_percentage_minimum_matches(sample_match_view):
    assert win_percentage(sample_match_view).empty
    assert set(win_percentage(sample_match_view, min_matches=3)['player']) == {'Judd Trump', 'Mark Williams', 'Neil Robertson'}


def test_matches_played_ordering(sample_match_view):
    report = matches_played(sample_match_view)
    assert report.iloc[0].tolist() == ['Judd Trump', 3]
    assert report['matches_played'].is_monotonic_decreasing


def test_tournament_titles(sample_match_view):
    titles = tournament_titles(sample_match_view)
    assert titles.to_dict('records') == [
        {'player': 'Judd Trump', 'tournament_wins': 2, 'most_recent_year': 2019,
         'most_recent_win': '2019 Masters'},
        {'player': 'Ding Junhui', 'tournament_wins': 1, 'most_recent_year': 2019,
         'most_recent_win': '2019 UK Championship'},
        {'player': 'Neil Robertson', 'tournament_wins': 1, 'most_recent_year': 2019,
         'most_recent_win': '2019 Shanghai Masters'},
        {'player': "Ronnie O'Sullivan", 'tournament_wins': 1, 'most_recent_year': 2020,
         'most_recent_win': '2020 World Championship'},
    ]


def test_lowercase_final_is_not_a_title(sample_match_view):
    titles = tournament_titles(sample_match_view)
    assert 'Mark Williams' not in set(titles['player'])


def test_top_players_limit(sample_match_view):
    assert match_reports.top_players(sample_match_view, limit=2)['player'].tolist() == ['Judd Trump', 'Ding Junhui']


def test_tournament_win_percentage(sample_match_view):
    report = tournament_win_percentage(sample_match_view, min_entries=1).set_index('player')

    trump = report.loc['Judd Trump']
    assert trump['ranking_wins'] == 1
    assert trump['ranking_entries'] == 2
    assert trump['ranking_win_percentage'] == 50.0
    assert trump['non_ranking_wins'] == 1
    assert trump['non_ranking_entries'] == 1
    assert trump['non_ranking_win_percentage'] == 100.0
    assert trump['total_win_percentage'] == 66.667

    higgins = report.loc['John Higgins']
    assert higgins['total_entries'] == 1
    assert higgins['total_win_percentage'] == 0.0
    assert math.isnan(higgins['non_ranking_win_percentage'])


def test_best_without_ranking_title(make_match_view):
    view = make_match_view([WC_2019, MASTERS_2019], [
        (1, 1, 'Final', 'John Higgins', 'Judd Trump', 18, 9),
        (2, 2, 'Final', 'Judd Trump', "Ronnie O'Sullivan", 10, 4),
    ])
    report = best_without_ranking_title(view)
    assert report.to_dict('records') == [{'player': 'Judd Trump', 'tournament_wins': 1}]


def test_best_without_ranking_title_sample(sample_match_view):
    assert best_without_ranking_title(sample_match_view).empty


def test_triple_crown_worst_defeats(sample_match_view):
    report = triple_crown_worst_defeats(sample_match_view)
    assert report.to_dict('records') == [
        {'player': 'Judd Trump', 'tournament_name': 'UK Championship', 'year': 2019,
         'stage': 'Final', 'lost_to': 'Ding Junhui', 'score': '6 - 10'},
        {'player': "Ronnie O'Sullivan", 'tournament_name': 'Masters', 'year': 2019,
         'stage': 'Final', 'lost_to': 'Judd Trump', 'score': '4 - 10'},
    ]


def test_triple_crown_worst_defeat_tie_goes_to_earliest_year(make_match_view):
    view = make_match_view([WC_2019, MASTERS_2019, WC_2020], [
        (1, 4, 'Final', 'John Higgins', 'Judd Trump', 18, 10),
        (2, 1, 'Semi-Final', 'John Higgins', 'Judd Trump', 17, 9),
        (3, 2, 'Final', 'Judd Trump', 'Ding Junhui', 10, 2),
    ])
    report = triple_crown_worst_defeats(view)
    assert report.to_dict('records') == [
        {'player': 'Judd Trump', 'tournament_name': 'World Championship', 'year': 2019,
         'stage': 'Semi-Final', 'lost_to': 'John Higgins', 'score': '9 - 17'},
    ]


def test_triple_crown_deciders(sample_match_view):
    report = triple_crown_deciders(sample_match_view, min_matches=1)
    first = report.iloc[0]
    assert (first['tournament_name'], first['stage']) == ('World Championship', 'Semi-Final')
    assert first['number_of_deciders'] == 1
    assert first['matches_played'] == 2
    assert first['perc_deciders'] == 50.0
    assert (report['perc_deciders'].iloc[1:] == 0.0).all()
    assert triple_crown_deciders(sample_match_view).empty


def test_triple_crown_deciders_count_matches_without_stage(make_match_view):
    view = make_match_view([MASTERS_2019], [
        (1, 2, 'Final', 'Judd Trump', "Ronnie O'Sullivan", 10, 9),
        (2, 2, 'Semi-Final', 'Judd Trump', 'John Higgins', 6, 3),
        (3, 2, None, "Ronnie O'Sullivan", 'Mark Williams', 6, 5),
        (4, 2, None, 'John Higgins', 'Ding Junhui', 6, 2),
    ])
    report = triple_crown_deciders(view, min_matches=1)
    assert report['matches_played'].sum() == 4
    no_stage = report[report['stage'].isna()]
    assert no_stage[['number_of_deciders', 'matches_played', 'perc_deciders']].values.tolist() == [[1, 2, 50.0]]
    assert report['perc_deciders'].tolist() == [100.0, 50.0, 0.0]


def test_triple_crown_titles_pivot_row(make_match_view):
    view = make_match_view([WC_2019, WC_2020], [
        (1, 1, 'Final', 'Judd Trump', 'John Higgins', 18, 9),
        (2, 4, 'Final', 'Judd Trump', 'Ding Junhui', 18, 10),
    ])
    table = triple_crown_titles_pivot(view)
    assert list(table.columns) == ['player', 'World Championship', 'Masters', 'UK Championship', 'total']
    assert table.set_index('player').loc['Judd Trump'].tolist() == [2, 0, 0, 2]


def test_triple_crown_titles_pivot_sample(sample_match_view):
    table = triple_crown_titles_pivot(sample_match_view)
    assert table['player'].tolist() == ['Judd Trump', 'Ding Junhui', "Ronnie O'Sullivan"]
    assert table.set_index('player').loc['Judd Trump'].tolist() == [1, 1, 0, 2]


def test_triple_crown_titles_rollup(sample_match_view):
    rolled = triple_crown_titles(sample_match_view)
    assert rolled[['player', 'tournament_name', 'number_of_titles']].values.tolist() == [
        ['Judd Trump', 'Masters', 1],
        ['Judd Trump', 'World Championship', 1],
        ['Judd Trump', 'Total', 2],
        ['Ding Junhui', 'UK Championship', 1],
        ['Ding Junhui', 'Total', 1],
        ["Ronnie O'Sullivan", 'World Championship', 1],
        ["Ronnie O'Sullivan", 'Total', 1],
        ['All Players', 'Total', 4],
    ]


def test_triple_crown_titles_subtotals_match_rows(sample_match_view):
    rolled = triple_crown_titles(sample_match_view)
    detail = rolled[~rolled['is_total']]
    for player, rows in detail.groupby('player'):
        subtotal = rolled[(rolled['player'] == player) & rolled['is_total']]['number_of_titles'].item()
        assert subtotal == rows['number_of_titles'].sum()


@pytest.fixture
def rivalry_view(make_match_view, pro_event):
    return make_match_view(pro_event, [
        (1, 1, 'Last 16', 'Judd Trump', 'John Higgins', 5, 2),
        (2, 1, 'Last 16', 'Judd Trump', 'John Higgins', 5, 3),
        (3, 1, 'Last 16', 'John Higgins', 'Judd Trump', 5, 4),
        (4, 1, 'Last 16', 'Judd Trump', 'John Higgins', 5, 1),
        (5, 1, 'Last 16', 'Judd Trump', 'Mark Williams', 5, 0),
        (6, 1, 'Last 16', 'Judd Trump', 'Mark Williams', 3, 0),
    ])


def test_head_to_head_best_and_worst(rivalry_view):
    report = head_to_head(rivalry_view, min_meetings=1)
    trump = report[report['player'] == 'Judd Trump'].set_index('opponent_type')
    assert trump.loc['Best', 'opponent_name'] == 'Mark Williams'
    assert trump.loc['Best', 'matches_played'] == 1
    assert trump.loc['Best', 'win_percentage'] == 100.0
    assert trump.loc['Worst', 'opponent_name'] == 'John Higgins'
    assert trump.loc['Worst', 'wins'] == 3
    assert trump.loc['Worst', 'matches_played'] == 4
    assert trump.loc['Worst', 'win_percentage'] == 75.0


def test_head_to_head_single_opponent_is_best_and_worst(rivalry_view):
    report = head_to_head(rivalry_view, min_meetings=1)
    higgins = report[report['player'] == 'John Higgins']
    assert higgins['opponent_type'].tolist() == ['Best', 'Worst']
    assert higgins['opponent_name'].tolist() == ['Judd Trump', 'Judd Trump']
    assert higgins['win_percentage'].tolist() == [25.0, 25.0]


def test_head_to_head_ordering(rivalry_view):
    report = head_to_head(rivalry_view, min_meetings=1)
    assert list(report.columns) == ['player', 'opponent_type', 'opponent_name', 'wins',
                                    'matches_played', 'win_percentage']
    assert report['player'].tolist() == ['John Higgins', 'John Higgins', 'Judd Trump', 'Judd Trump',
                                         'Mark Williams', 'Mark Williams']


def test_head_to_head_minimum_meetings(rivalry_view):
    report = head_to_head(rivalry_view, min_meetings=2)
    assert set(report['opponent_name']) == {'John Higgins', 'Judd Trump'}
    assert head_to_head(rivalry_view).empty


BUILDERS = [
    win_percentage,
    matches_played,
    whitewash_percentage,
    tournament_titles,
    tournament_win_percentage,
    best_without_ranking_title,
    triple_crown_worst_defeats,
    triple_crown_deciders,
    triple_crown_titles,
    triple_crown_titles_pivot,
    head_to_head,
]


@pytest.mark.parametrize('builder', BUILDERS, ids=lambda b: b.__name__)
def test_builders_are_deterministic(builder, make_match_view, sample_snapshot, sample_match_view):
    first = builder(sample_match_view)
    rows = list(sample_snapshot.matches.itertuples(index=False, name=None))
    shuffled = make_match_view(matches=rows[::-1])
    pd.testing.assert_frame_equal(first, builder(sample_match_view))
    pd.testing.assert_frame_equal(first, builder(shuffled))


@pytest.mark.parametrize('builder', BUILDERS, ids=lambda b: b.__name__)
def test_builders_do_not_modify_input(builder, sample_match_view):
    before = sample_match_view.copy()
    builder(sample_match_view)
    pd.testing.assert_frame_equal(sample_match_view, before)

"""
Snooker Statistics - Domain Constants

Labels used in the source data and the thresholds applied by the report
builders. Stage and tournament labels are compared exactly (case-sensitive).
"""

# Tournament status / category labels
STATUS_PROFESSIONAL = 'Professional'
CATEGORY_RANKING = 'Ranking'

# Match stages
STAGE_FINAL = 'Final'
CRUCIBLE_STAGES = ('Final', 'Semi-Final', 'Quarter-Final', 'Last 16', 'Last 32')

# Triple Crown events, in report column order
WORLD_CHAMPIONSHIP = 'World Championship'
MASTERS = 'Masters'
UK_CHAMPIONSHIP = 'UK Championship'
TRIPLE_CROWN_EVENTS = (WORLD_CHAMPIONSHIP, MASTERS, UK_CHAMPIONSHIP)

# Home nations reported as one country
UK_HOME_NATIONS = ('England', 'Scotland', 'Wales', 'Northern Ireland')
UNITED_KINGDOM = 'United Kingdom'

# Breaks
MIN_RECORDED_BREAK = 50
CENTURY_BREAK = 100
MAXIMUM_BREAK = 147

# Minimum sample sizes
MIN_PLAYER_MATCHES = 100        # win / whitewash percentages
MIN_TOURNAMENT_ENTRIES = 100    # tournament win percentage
MIN_STAGE_MATCHES = 30          # Triple Crown stage deciders
MIN_HEAD_TO_HEAD_MATCHES = 10   # player/opponent pairs

# Frame filters
WHITEWASH_MIN_FRAMES = 6        # whitewashes only count when 6+ frames were needed
HEAD_TO_HEAD_MIN_FRAMES = 4     # drops walkovers and short-format matches

TOP_PLAYERS_LIMIT = 40
TOP_BREAKS_PER_TOURNAMENT = 3
RECENT_EVENTS_WINDOW = 5

PERCENT_DECIMALS = 3

# Roll-up sentinel labels
ALL_PLAYERS_LABEL = 'All Players'
TOTAL_LABEL = 'Total'

# Match outcomes / roles in the flattened view
OUTCOME_WIN = 'win'
OUTCOME_LOSS = 'loss'
OUTCOME_DRAW = 'draw'
ROLE_WINNER = 'winner'
ROLE_LOSER = 'loser'

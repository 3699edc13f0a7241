"""
Snooker Statistics Database Schema

This file documents the source tables of the snooker results dataset
(1982-2020). It provides information about tables, their columns, and
relationships, and the column lists the loader reads.
"""

from typing import Dict, List

# Define players table schema
PLAYERS_TABLE = {
    "name": "players",
    "description": "Every player appearing in the matches table",
    "columns": [
        {"name": "full_name", "type": "VARCHAR(255)", "description": "Player's full name, unique (namesakes are numbered, e.g. 'Nick Jones (II)')"},
        {"name": "country", "type": "VARCHAR(100)", "description": "Country the player represents (England, Scotland, ...)"},
    ]
}

# Define tournaments table schema
TOURNAMENTS_TABLE = {
    "name": "tournaments",
    "description": "One row per edition of a tournament",
    "columns": [
        {"name": "id", "type": "INTEGER", "description": "Primary key"},
        {"name": "name", "type": "VARCHAR(255)", "description": "Tournament name, repeated across years"},
        {"name": "year", "type": "INTEGER", "description": "Year the edition was played"},
        {"name": "status", "type": "VARCHAR(50)", "description": "'Professional' or another status (amateur, pro-am, ...)"},
        {"name": "category", "type": "VARCHAR(50)", "description": "'Ranking' or another category (non-ranking, invitational, ...)"},
        {"name": "city", "type": "VARCHAR(100)", "description": "Host city"},
        {"name": "country", "type": "VARCHAR(100)", "description": "Host country"},
    ]
}

# Define matches table schema
MATCHES_TABLE = {
    "name": "matches",
    "description": "Historical snooker match results",
    "columns": [
        {"name": "match_id", "type": "INTEGER", "description": "Primary key"},
        {"name": "tournament_id", "type": "INTEGER", "description": "Tournament edition the match belongs to"},
        {"name": "stage", "type": "VARCHAR(50)", "description": "Round label, case-sensitive ('Final', 'Semi-Final', 'Last 16', ...)"},
        {"name": "player1_name", "type": "VARCHAR(255)", "description": "First player's full name"},
        {"name": "player2_name", "type": "VARCHAR(255)", "description": "Second player's full name"},
        {"name": "score1", "type": "INTEGER", "description": "Frames won by player 1"},
        {"name": "score2", "type": "INTEGER", "description": "Frames won by player 2"},
    ]
}

# Define scores table schema
SCORES_TABLE = {
    "name": "scores",
    "description": "Frame-by-frame scores, one row per frame and player slot",
    "columns": [
        {"name": "match_id", "type": "INTEGER", "description": "Match the frame belongs to"},
        {"name": "frame", "type": "INTEGER", "description": "Frame number, starting at 1"},
        {"name": "player", "type": "INTEGER", "description": "Player slot (1 or 2) of the match"},
        {"name": "score", "type": "INTEGER", "description": "Points the slot scored in the frame"},
        {"name": "50plus_breaks_str", "type": "VARCHAR(20)", "description": "Break of 50+ made in the frame (50-147), NULL if none"},
    ]
}

# Define relationships
RELATIONSHIPS = [
    {"from_table": "matches", "from_column": "tournament_id", "to_table": "tournaments", "to_column": "id", "type": "Foreign Key"},
    {"from_table": "matches", "from_column": "player1_name", "to_table": "players", "to_column": "full_name", "type": "Foreign Key"},
    {"from_table": "matches", "from_column": "player2_name", "to_table": "players", "to_column": "full_name", "type": "Foreign Key"},
    {"from_table": "scores", "from_column": "match_id", "to_table": "matches", "to_column": "match_id", "type": "Foreign Key"}
]

# Combine all schema information
SCHEMA = {
    "tables": [PLAYERS_TABLE, TOURNAMENTS_TABLE, MATCHES_TABLE, SCORES_TABLE],
    "relationships": RELATIONSHIPS
}

TABLE_NAMES = [table["name"] for table in SCHEMA["tables"]]


def get_schema_info() -> Dict:
    """
    Returns a dictionary containing database schema information
    for easy programmatic access
    """
    return SCHEMA


def get_table_columns(table_name: str) -> List[str]:
    """
    Source column names of a table, in schema order.

    Raises:
        KeyError: if the table is not part of the schema
    """
    for table in SCHEMA["tables"]:
        if table["name"] == table_name:
            return [column["name"] for column in table["columns"]]
    raise KeyError(f"Unknown table: {table_name}")


def print_schema_summary() -> None:
    """
    Prints a readable summary of the database schema
    """
    schema = get_schema_info()

    print("Snooker Statistics Database Schema Summary")
    print("=" * 50)

    for table in schema["tables"]:
        print(f"\nTable: {table['name']}")
        print(f"Description: {table['description']}")
        print("-" * 50)

        for column in table["columns"]:
            print(f"  {column['name']}: {column['type']}")
            print(f"    {column['description']}")

    print("\nRelationships:")
    print("-" * 50)
    for rel in schema["relationships"]:
        print(f"  - {rel['from_table']}.{rel['from_column']} → {rel['to_table']}.{rel['to_column']} ({rel['type']})")


if __name__ == "__main__":
    print_schema_summary()

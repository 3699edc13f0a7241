"""
Snooker Statistics - Data Loader

Loads the four source tables (players, tournaments, matches, scores) from a
directory of CSV files or from a SQL database, validates every row with a
pydantic model and returns them as an immutable SnookerSnapshot.

The snapshot is acquired through `acquire_snapshot()` so that loading and
validation are complete before any report runs.
"""

import argparse
import logging
import math
import os
import re
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Type

import pandas as pd
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from tqdm import tqdm

from analysis.exceptions import DataIntegrityError
from database.data_cache import get_cache_key, get_cached_data, save_to_cache
from database.schema import TABLE_NAMES, get_table_columns

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

TABLE_FILES = {name: f"{name}.csv" for name in TABLE_NAMES}

# Source column names that differ from the Python field names
SOURCE_ALIASES = {
    'player_slot': 'player',
    'break_value': '50plus_breaks_str',
}

MAX_LOGGED_INVALID_ROWS = 20
PROGRESS_MIN_ROWS = 10000


class SourceRecord(BaseModel):
    """Common behaviour of the source row models"""
    model_config = ConfigDict(
        alias_generator=lambda x: SOURCE_ALIASES.get(x, x),
        populate_by_name=True,
    )

    @field_validator('*', mode='before')
    @classmethod
    def handle_nan(cls, v):
        if isinstance(v, float) and math.isnan(v):
            return None
        return v


class PlayerRecord(SourceRecord):
    full_name: str = Field(min_length=1)
    country: Optional[str] = None


class TournamentRecord(SourceRecord):
    id: int
    name: str = Field(min_length=1)
    year: int
    status: Optional[str] = None
    category: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None


class MatchRecord(SourceRecord):
    match_id: int
    tournament_id: int
    stage: Optional[str] = None
    player1_name: str = Field(min_length=1)
    player2_name: str = Field(min_length=1)
    score1: int = Field(ge=0)
    score2: int = Field(ge=0)


class ScoreRecord(SourceRecord):
    match_id: int
    frame: int = Field(ge=1)
    player_slot: int = Field(ge=1, le=2)
    score: Optional[int] = Field(default=None, ge=0)
    break_value: Optional[int] = Field(default=None, ge=50, le=147)

    @field_validator('break_value', mode='before')
    @classmethod
    def parse_break(cls, v):
        # Stored as text in the source database
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            try:
                return int(float(v))
            except ValueError:
                return v
        return v


TABLE_MODELS: Dict[str, Type[SourceRecord]] = {
    'players': PlayerRecord,
    'tournaments': TournamentRecord,
    'matches': MatchRecord,
    'scores': ScoreRecord,
}

TABLE_DTYPES: Dict[str, Dict[str, str]] = {
    'players': {},
    'tournaments': {'id': 'int64', 'year': 'int64'},
    'matches': {'match_id': 'int64', 'tournament_id': 'int64', 'score1': 'int64', 'score2': 'int64'},
    'scores': {'match_id': 'int64', 'frame': 'int64', 'player_slot': 'int64',
               'score': 'float64', 'break_value': 'float64'},
}


@dataclass(frozen=True)
class SnookerSnapshot:
    """The four validated source tables, loaded once and read-only afterwards"""
    players: pd.DataFrame
    tournaments: pd.DataFrame
    matches: pd.DataFrame
    scores: pd.DataFrame
    source: str = ""

    def table_sizes(self) -> Dict[str, int]:
        return {name: len(getattr(self, name)) for name in TABLE_NAMES}


def validate_database_url(url: str) -> str:
    """Validate and format database URL to ensure correct dialect"""
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url


def mask_database_url(url: str) -> str:
    """Hide credentials before a URL is logged"""
    return re.sub(r'://[^:/@]+:[^@]+@', '://*****:*****@', url)


def _check_required_columns(df: pd.DataFrame, model: Type[SourceRecord], table_name: str) -> None:
    missing = []
    for name, field in model.model_fields.items():
        if field.is_required() and name not in df.columns and (field.alias or name) not in df.columns:
            missing.append(field.alias or name)
    if missing:
        raise DataIntegrityError(f"Table {table_name} is missing required columns", missing)


def validate_table(df: pd.DataFrame, table_name: str, strict: bool = True) -> pd.DataFrame:
    """
    Validate every row of a source table.

    Args:
        df: Raw table with source column names
        table_name: One of players, tournaments, matches, scores
        strict: Raise on invalid rows; otherwise log and skip them

    Returns:
        DataFrame with the model's field names and dtypes

    Raises:
        DataIntegrityError: on missing columns, or on invalid rows in strict mode
    """
    model = TABLE_MODELS[table_name]
    _check_required_columns(df, model, table_name)

    records = df.to_dict('records')
    validated: List[dict] = []
    invalid_rows: List[int] = []

    for idx, row in enumerate(tqdm(records, desc=f"Validating {table_name}", unit="row",
                                   disable=len(records) < PROGRESS_MIN_ROWS)):
        try:
            validated.append(model.model_validate(row).model_dump())
        except ValidationError as e:
            invalid_rows.append(idx)
            if len(invalid_rows) <= MAX_LOGGED_INVALID_ROWS:
                logger.warning(f"Invalid {table_name} row {idx}: {e.errors()[0]['loc']} {e.errors()[0]['msg']}")

    logger.info(f"Validation complete for {table_name}. {len(validated)}/{len(records)} rows valid.")
    if invalid_rows:
        if strict:
            raise DataIntegrityError(f"{len(invalid_rows)} invalid row(s) in {table_name}", invalid_rows)
        logger.warning(f"Skipped {len(invalid_rows)} invalid row(s) in {table_name}")

    table = pd.DataFrame(validated, columns=list(model.model_fields))
    return table.astype(TABLE_DTYPES[table_name])


def load_csv_tables(data_dir: Path, strict: bool = True) -> SnookerSnapshot:
    """
    Load and validate the source tables from CSV files.

    Args:
        data_dir: Directory holding players.csv, tournaments.csv, matches.csv, scores.csv
        strict: Passed to validate_table

    Returns:
        SnookerSnapshot
    """
    data_dir = Path(data_dir)
    tables = {}
    for table_name, file_name in TABLE_FILES.items():
        file_path = data_dir / file_name
        if not file_path.exists():
            logger.error(f"Missing source file: {file_path}")
            raise FileNotFoundError(f"Missing source file: {file_path}")
        # Only empty cells are missing values; 'NA' is a legitimate label
        raw = pd.read_csv(file_path, keep_default_na=False, na_values=[''])
        logger.info(f"Read {len(raw)} rows from {file_path}")
        tables[table_name] = validate_table(raw, table_name, strict=strict)
    return SnookerSnapshot(source=str(data_dir), **tables)


def get_database_connection(database_url: Optional[str] = None) -> Engine:
    """Create database connection from the argument or DATABASE_URL"""
    load_dotenv()
    database_url = database_url or os.getenv('DATABASE_URL')
    if not database_url:
        raise ValueError("DATABASE_URL not found in environment variables")

    database_url = validate_database_url(database_url)
    connect_args = {'connect_timeout': 10} if database_url.startswith('postgresql') else {}
    return create_engine(database_url, connect_args=connect_args)


def read_table_from_database(engine: Engine, table_name: str, use_cache: bool = True,
                             cache_dir: Optional[Path] = None) -> pd.DataFrame:
    """
    Read one source table, going through the parquet cache when enabled.

    Returns:
        Raw table with source column names
    """
    preparer = engine.dialect.identifier_preparer
    column_list = ', '.join(preparer.quote(column) for column in get_table_columns(table_name))
    query = f"SELECT {column_list} FROM {preparer.quote(table_name)}"

    cache_key = get_cache_key(query, engine.url.render_as_string(hide_password=True))
    if use_cache:
        cached = get_cached_data(cache_key, cache_dir=cache_dir)
        if cached is not None:
            return cached

    try:
        with engine.connect() as conn:
            df = pd.read_sql(text(query), conn)
    except SQLAlchemyError as e:
        logger.error(f"Error reading table {table_name}: {str(e)}")
        raise
    logger.info(f"Read {len(df)} rows from table {table_name}")

    if use_cache:
        save_to_cache(df, cache_key, table=table_name, cache_dir=cache_dir)
    return df


def load_database_tables(database_url: Optional[str] = None, use_cache: bool = True,
                         strict: bool = True, cache_dir: Optional[Path] = None) -> SnookerSnapshot:
    """Load and validate the source tables from a SQL database."""
    engine = get_database_connection(database_url)
    masked_url = mask_database_url(engine.url.render_as_string(hide_password=False))
    logger.info(f"Using database URL: {masked_url}")
    try:
        tables = {
            table_name: validate_table(
                read_table_from_database(engine, table_name, use_cache=use_cache, cache_dir=cache_dir),
                table_name,
                strict=strict,
            )
            for table_name in TABLE_NAMES
        }
    finally:
        engine.dispose()
    return SnookerSnapshot(source=masked_url, **tables)


@contextmanager
def acquire_snapshot(data_dir: Optional[Path] = None, database_url: Optional[str] = None,
                     use_cache: bool = True, strict: bool = True) -> Iterator[SnookerSnapshot]:
    """
    Load the snapshot and hand it to the caller once fully validated.

    Without arguments the source comes from DATABASE_URL, then SNOOKER_DATA_DIR.

    Raises:
        ValueError: if no data source is configured
    """
    load_dotenv()
    if data_dir is None and database_url is None:
        database_url = os.getenv('DATABASE_URL')
        if not database_url:
            data_dir = os.getenv('SNOOKER_DATA_DIR')

    if data_dir:
        snapshot = load_csv_tables(Path(data_dir), strict=strict)
    elif database_url:
        snapshot = load_database_tables(database_url, use_cache=use_cache, strict=strict)
    else:
        raise ValueError("No data source configured: set DATABASE_URL or SNOOKER_DATA_DIR")

    logger.info(f"Snapshot acquired from {snapshot.source}: {snapshot.table_sizes()}")
    try:
        yield snapshot
    finally:
        logger.info("Snapshot released")


def main() -> None:
    """Validate a data source and print the size of each table"""
    parser = argparse.ArgumentParser(description="Load and validate the snooker source tables")
    parser.add_argument("--data-dir", type=str, help="Directory of CSV source files")
    parser.add_argument("--database-url", type=str, help="SQLAlchemy URL of the source database")
    parser.add_argument("--lenient", action="store_true", help="Skip invalid rows instead of failing")
    parser.add_argument("--no-cache", action="store_true", help="Bypass the parquet cache")
    args = parser.parse_args()

    try:
        with acquire_snapshot(data_dir=args.data_dir, database_url=args.database_url,
                              use_cache=not args.no_cache, strict=not args.lenient) as snapshot:
            for table_name, rows in snapshot.table_sizes().items():
                print(f"{table_name}: {rows} rows")
    except Exception as e:
        logger.error(f"Error in main function: {str(e)}")
        raise


if __name__ == "__main__":
    main()

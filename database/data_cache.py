#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Parquet cache for source tables read from the snooker database.

Reading the scores table over the network is slow; the loader keeps a
copy of each table query result keyed by the query and database URL.
"""

import os
import json
import logging
from pathlib import Path
from datetime import datetime
from typing import Optional, Dict, Any
import pandas as pd
import hashlib

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path(__file__).resolve().parent.parent / "cache"
DEFAULT_MAX_AGE_HOURS = 24.0

METADATA_FILE_NAME = "cache_metadata.json"


def get_cache_dir(cache_dir: Optional[Path] = None) -> Path:
    """Cache directory: explicit argument, then SNOOKER_CACHE_DIR, then ./cache."""
    if cache_dir is not None:
        return Path(cache_dir)
    env_dir = os.getenv('SNOOKER_CACHE_DIR')
    return Path(env_dir) if env_dir else DEFAULT_CACHE_DIR


def get_max_age_hours() -> float:
    """Cache expiry from SNOOKER_CACHE_HOURS, defaulting to 24 hours."""
    value = os.getenv('SNOOKER_CACHE_HOURS')
    if not value:
        return DEFAULT_MAX_AGE_HOURS
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid SNOOKER_CACHE_HOURS={value!r}")
        return DEFAULT_MAX_AGE_HOURS


def get_cache_key(query: str, source: str = "") -> str:
    """
    Generate a unique cache key for a database query.

    Args:
        query: The SQL query
        source: Identifies the database (credentials already masked)

    Returns:
        Unique cache key
    """
    params = f"{source}_{query}"
    return hashlib.md5(params.encode()).hexdigest()


def get_cache_path(cache_key: str, cache_dir: Optional[Path] = None) -> Path:
    return get_cache_dir(cache_dir) / f"{cache_key}.parquet"


def load_cache_metadata(cache_dir: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load cache metadata from file.

    Returns:
        Dictionary of cache metadata, empty if missing or unreadable
    """
    metadata_file = get_cache_dir(cache_dir) / METADATA_FILE_NAME
    if metadata_file.exists():
        try:
            with open(metadata_file, 'r') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Error loading cache metadata: {e}")
            return {}
    return {}


def save_cache_metadata(metadata: Dict[str, Any], cache_dir: Optional[Path] = None) -> None:
    directory = get_cache_dir(cache_dir)
    directory.mkdir(parents=True, exist_ok=True)
    with open(directory / METADATA_FILE_NAME, 'w') as f:
        json.dump(metadata, f, indent=2)


def get_cached_data(cache_key: str, cache_dir: Optional[Path] = None,
                    max_age_hours: Optional[float] = None) -> Optional[pd.DataFrame]:
    """
    Try to load a table from cache.

    Args:
        cache_key: Unique cache key
        cache_dir: Cache directory override
        max_age_hours: Expiry override; defaults to get_max_age_hours()

    Returns:
        Cached DataFrame if found and fresh, None otherwise
    """
    cache_path = get_cache_path(cache_key, cache_dir)
    if not cache_path.exists():
        return None

    max_age = get_max_age_hours() if max_age_hours is None else max_age_hours
    cache_info = load_cache_metadata(cache_dir).get(cache_key)
    if not cache_info:
        logger.info(f"No metadata for cache key {cache_key}, ignoring cached file")
        return None

    cache_time = datetime.fromisoformat(cache_info['timestamp'])
    if (datetime.now() - cache_time).total_seconds() > max_age * 3600:
        logger.info(f"Cache expired for key {cache_key}")
        return None

    try:
        df = pd.read_parquet(cache_path)
    except (OSError, ValueError) as e:
        logger.warning(f"Error loading from cache: {e}")
        return None

    logger.info(f"Loaded {len(df)} rows from cache ({cache_info.get('table', cache_key)})")
    return df


def save_to_cache(df: pd.DataFrame, cache_key: str, table: str = "",
                  cache_dir: Optional[Path] = None) -> None:
    """
    Save a table to cache.

    Args:
        df: DataFrame to cache
        cache_key: Unique cache key
        table: Table name recorded in the metadata
        cache_dir: Cache directory override
    """
    cache_path = get_cache_path(cache_key, cache_dir)
    cache_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_parquet(cache_path, index=False)

    metadata = load_cache_metadata(cache_dir)
    metadata[cache_key] = {
        'table': table,
        'timestamp': datetime.now().isoformat(),
        'rows': len(df),
        'columns': list(df.columns)
    }
    save_cache_metadata(metadata, cache_dir)

    logger.info(f"Cached {len(df)} rows of {table or 'table'} with key {cache_key}")


def clear_cache(cache_dir: Optional[Path] = None) -> None:
    """
    Clear all cached data.
    """
    directory = get_cache_dir(cache_dir)
    if not directory.exists():
        return
    for file in directory.glob("*.parquet"):
        file.unlink()
    save_cache_metadata({}, cache_dir)
    logger.info("Cache cleared successfully")


def get_cache_stats(cache_dir: Optional[Path] = None) -> Dict[str, Any]:
    """
    Get statistics about the cache.

    Returns:
        Dictionary of cache statistics
    """
    directory = get_cache_dir(cache_dir)
    metadata = load_cache_metadata(cache_dir)
    files = list(directory.glob("*.parquet")) if directory.exists() else []
    return {
        'total_cached_rows': sum(info.get('rows', 0) for info in metadata.values()),
        'total_cached_files': len(files),
        'cache_size_mb': sum(f.stat().st_size for f in files) / (1024 * 1024)
    }

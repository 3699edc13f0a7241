"""
Snooker Statistics Report Runner

This script produces the full set of snooker statistics reports:
1. Acquire and validate the data snapshot (CSV directory or database)
2. Build the match view and break view
3. Run every selected report builder concurrently
4. Write one CSV per report, and optionally one table per report

A failing report is logged and recorded; the other reports still complete.
"""

import argparse
import logging
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import pandas as pd
from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from tqdm import tqdm

from analysis import break_reports, chart_extracts, match_reports
from analysis.match_view import build_break_view, build_match_view
from database.load_snooker_data import SnookerSnapshot, acquire_snapshot, get_database_connection

logger = logging.getLogger(__name__)

DEFAULT_REPORT_DIR = "reports"
DEFAULT_WORKERS = 4
REPORT_TABLE_PREFIX = "report_"


@dataclass(frozen=True)
class AnalysisViews:
    """Derived relations shared read-only by every report builder"""
    match_view: pd.DataFrame
    break_view: pd.DataFrame
    scores: pd.DataFrame
    tournaments: pd.DataFrame

    @classmethod
    def from_snapshot(cls, snapshot: SnookerSnapshot) -> "AnalysisViews":
        match_view = build_match_view(snapshot.players, snapshot.tournaments, snapshot.matches)
        break_view = build_break_view(snapshot.scores, snapshot.matches, snapshot.tournaments)
        return cls(match_view=match_view, break_view=break_view,
                   scores=snapshot.scores, tournaments=snapshot.tournaments)


@dataclass(frozen=True)
class ReportDefinition:
    name: str
    description: str
    build: Callable[[AnalysisViews], pd.DataFrame]


@dataclass
class ReportResult:
    """Outcome of one report builder: its table, or the error it raised"""
    name: str
    table: Optional[pd.DataFrame] = None
    error: Optional[BaseException] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


_DEFINITIONS = [
    ReportDefinition('win_percentage', "Highest match win percentage (100+ matches)",
                     lambda v: match_reports.win_percentage(v.match_view)),
    ReportDefinition('matches_played', "Most professional matches played",
                     lambda v: match_reports.matches_played(v.match_view)),
    ReportDefinition('whitewash_percentage', "Highest whitewash percentage",
                     lambda v: match_reports.whitewash_percentage(v.match_view)),
    ReportDefinition('tournament_titles', "Most tournament wins and most recent win",
                     lambda v: match_reports.tournament_titles(v.match_view)),
    ReportDefinition('tournament_win_percentage', "Tournament win percentage by category (100+ entries)",
                     lambda v: match_reports.tournament_win_percentage(v.match_view)),
    ReportDefinition('best_without_ranking_title', "Best players never to win a ranking event",
                     lambda v: match_reports.best_without_ranking_title(v.match_view)),
    ReportDefinition('triple_crown_worst_defeats', "Top players' worst Triple Crown defeats",
                     lambda v: match_reports.triple_crown_worst_defeats(v.match_view)),
    ReportDefinition('triple_crown_deciders', "Triple Crown stages going to a deciding frame",
                     lambda v: match_reports.triple_crown_deciders(v.match_view)),
    ReportDefinition('triple_crown_titles', "Triple Crown titles per player with totals",
                     lambda v: match_reports.triple_crown_titles(v.match_view)),
    ReportDefinition('triple_crown_titles_pivot', "Triple Crown titles, one column per event",
                     lambda v: match_reports.triple_crown_titles_pivot(v.match_view)),
    ReportDefinition('head_to_head', "Best and worst head-to-head opponents",
                     lambda v: match_reports.head_to_head(v.match_view)),
    ReportDefinition('century_breaks', "Most century breaks",
                     lambda v: break_reports.century_breaks(v.break_view)),
    ReportDefinition('maximum_breaks', "Most maximum breaks",
                     lambda v: break_reports.maximum_breaks(v.break_view)),
    ReportDefinition('top_tournament_breaks', "Three highest breaks per tournament",
                     lambda v: break_reports.top_tournament_breaks(v.break_view)),
    ReportDefinition('tournament_century_rate', "Share of frames with a century per tournament",
                     lambda v: break_reports.tournament_century_rate(v.match_view, v.break_view)),
    ReportDefinition('world_championship_centuries', "Centuries per year at the Crucible",
                     lambda v: break_reports.world_championship_centuries(v.break_view)),
    ReportDefinition('world_final_frame_progression', "Frame-by-frame progress of World Championship finals",
                     lambda v: chart_extracts.world_final_frame_progression(v.match_view, v.scores)),
    ReportDefinition('tournament_entry_outcomes', "Tournament entries per player, won or lost",
                     lambda v: chart_extracts.tournament_entry_outcomes(v.match_view)),
    ReportDefinition('country_player_counts', "Professional events and the host country's player count",
                     lambda v: chart_extracts.country_player_counts(v.match_view, v.tournaments)),
]

REPORTS: Dict[str, ReportDefinition] = {definition.name: definition for definition in _DEFINITIONS}


def resolve_report_names(names: Optional[Sequence[str]] = None) -> List[str]:
    """
    Registry order for the requested reports, all reports when none given.

    Raises:
        KeyError: if a name is not a registered report
    """
    if not names:
        return list(REPORTS)
    unknown = [name for name in names if name not in REPORTS]
    if unknown:
        raise KeyError(f"Unknown report(s): {', '.join(unknown)}")
    return [name for name in REPORTS if name in set(names)]


def run_report(name: str, views: AnalysisViews) -> ReportResult:
    """Run one builder, capturing its error instead of raising it."""
    start_time = time.time()
    try:
        table = REPORTS[name].build(views)
    except Exception as e:
        logger.error(f"Report {name} failed: {type(e).__name__}: {e}")
        return ReportResult(name=name, error=e, elapsed=time.time() - start_time)
    elapsed = time.time() - start_time
    logger.info(f"Report {name}: {len(table)} rows in {elapsed:.2f} seconds")
    return ReportResult(name=name, table=table, elapsed=elapsed)


def run_reports(views: AnalysisViews, names: Optional[Sequence[str]] = None,
                max_workers: int = DEFAULT_WORKERS) -> Dict[str, ReportResult]:
    """
    Run the selected reports concurrently against the shared views.

    Args:
        views: Match view, break view and source tables
        names: Reports to run (default all)
        max_workers: Thread pool size

    Returns:
        ReportResult per report name, in registry order
    """
    selected = resolve_report_names(names)
    results: Dict[str, ReportResult] = {}

    with tqdm(total=len(selected), desc="Building reports") as pbar:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_name = {executor.submit(run_report, name, views): name for name in selected}
            for future in as_completed(future_to_name):
                result = future.result()
                results[result.name] = result
                pbar.update(1)

    failed = [name for name in selected if not results[name].ok]
    if failed:
        logger.warning(f"{len(failed)} report(s) failed: {', '.join(failed)}")
    return {name: results[name] for name in selected}


def write_reports(results: Dict[str, ReportResult], output_dir: Path) -> List[Path]:
    """Write each successful report to <output_dir>/<name>.csv"""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for name, result in results.items():
        if not result.ok:
            continue
        path = output_dir / f"{name}.csv"
        result.table.to_csv(path, index=False)
        written.append(path)
    logger.info(f"Wrote {len(written)} report(s) to {output_dir}")
    return written


def save_reports_to_database(results: Dict[str, ReportResult], engine: Engine) -> List[str]:
    """Replace one report_<name> table per successful report"""
    tables = []
    for name, result in results.items():
        if not result.ok:
            continue
        table_name = f"{REPORT_TABLE_PREFIX}{name}"
        result.table.to_sql(table_name, engine, if_exists='replace', index=False)
        tables.append(table_name)
    logger.info(f"Saved {len(tables)} report table(s) to database")
    return tables


def run_all(data_dir: Optional[str] = None, database_url: Optional[str] = None,
            output_dir: Optional[str] = None, names: Optional[Sequence[str]] = None,
            max_workers: int = DEFAULT_WORKERS, to_database: bool = False,
            use_cache: bool = True) -> Dict[str, ReportResult]:
    """
    Acquire the snapshot, run the reports and write their output.

    Raises:
        KeyError: if a requested report is not registered, before any data is loaded
    """
    names = resolve_report_names(names)
    start_time = time.time()
    output_dir = output_dir or os.getenv('SNOOKER_REPORT_DIR', DEFAULT_REPORT_DIR)

    with acquire_snapshot(data_dir=data_dir, database_url=database_url, use_cache=use_cache) as snapshot:
        views = AnalysisViews.from_snapshot(snapshot)
        results = run_reports(views, names=names, max_workers=max_workers)

    write_reports(results, Path(output_dir))
    if to_database:
        engine = get_database_connection(database_url)
        try:
            save_reports_to_database(results, engine)
        finally:
            engine.dispose()

    elapsed_time = time.time() - start_time
    logger.info(f"Completed {len(results)} report(s) in {elapsed_time:.2f} seconds")
    return results


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    parser = argparse.ArgumentParser(description="Build the snooker statistics reports")
    parser.add_argument("--data-dir", type=str, help="Directory of CSV source files (default SNOOKER_DATA_DIR)")
    parser.add_argument("--database-url", type=str, help="Source database URL (default DATABASE_URL)")
    parser.add_argument("--output", type=str, help="Output directory (default SNOOKER_REPORT_DIR or ./reports)")
    parser.add_argument("--reports", nargs="+", choices=list(REPORTS), metavar="REPORT",
                        help="Reports to build (default all, see --list)")
    parser.add_argument("--workers", type=int, default=DEFAULT_WORKERS, help="Number of worker threads")
    parser.add_argument("--to-database", action="store_true", help="Also save each report as a report_<name> table")
    parser.add_argument("--no-cache", action="store_true", help="Bypass the parquet cache")
    parser.add_argument("--list", action="store_true", help="List the available reports and exit")
    args = parser.parse_args(argv)

    if args.list:
        for definition in REPORTS.values():
            print(f"{definition.name:32} {definition.description}")
        return 0

    try:
        results = run_all(
            data_dir=args.data_dir,
            database_url=args.database_url,
            output_dir=args.output,
            names=args.reports,
            max_workers=args.workers,
            to_database=args.to_database,
            use_cache=not args.no_cache,
        )
    except Exception as e:
        logger.error(f"Error in main function: {str(e)}")
        return 2

    return 0 if all(result.ok for result in results.values()) else 1


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

"""
META INSIGHTS CLI

  meta-insights report  - pull an insights report (sync, falling back to async jobs)
  meta-insights search  - targeting search (interests, locations, ...)
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from dotenv import load_dotenv

from .config import SETTINGS_PATH_DEFAULT, load_settings
from .infrastructure.error_handling import InsightsError
from .insights import InsightsRequest, InsightsSession, JobMode, ReportRequester, ReportResult, flatten_pages
from .integrations.graph_client import AccountAuth
from .integrations.search import SEARCH_TYPES, search_targeting
from .utils import meta_range_between, meta_range_last_n_full_days

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    for name in ("urllib3", "requests"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _parse_kv(pairs: Optional[Sequence[str]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Expected key=value, got {pair!r}")
        k, v = pair.split("=", 1)
        out[k.strip()] = v.strip()
    return out


def _csv_list(value: Optional[str]) -> List[str]:
    return [x.strip() for x in (value or "").split(",") if x.strip()]


def build_request(args: argparse.Namespace) -> InsightsRequest:
    time_range = None
    if args.last_days:
        time_range = meta_range_last_n_full_days(args.last_days)
    elif args.since or args.until:
        time_range = meta_range_between(args.since or "", args.until or "")
    filtering = json.loads(args.filtering) if args.filtering else ()
    return InsightsRequest(
        targets=tuple(args.target or ()),
        fields=tuple(_csv_list(args.fields)),
        level=args.level,
        date_preset=None if time_range else args.date_preset,
        time_range=time_range,
        filtering=tuple(filtering),
        breakdowns=tuple(_csv_list(args.breakdowns)),
        params=_parse_kv(args.param),
        mode=JobMode.ASYNC if args.use_async else JobMode.SYNC,
        simplify=not args.no_simplify,
    )


def result_frame(outcome: Any) -> pd.DataFrame:
    results = outcome if isinstance(outcome, list) else [outcome]
    frames = []
    for r in results:
        if isinstance(r, ReportResult):
            frames.append(r.table if r.table is not None else flatten_pages(r.data))
    frames = [f for f in frames if not f.empty]
    return pd.concat(frames, ignore_index=True, sort=False) if frames else pd.DataFrame()


def write_output(df: pd.DataFrame, output: Optional[str]) -> None:
    if not output:
        print(df.to_string(index=False) if not df.empty else "(no rows)")
        return
    path = Path(output)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df.to_csv(path, index=False)
    elif suffix == ".xlsx":
        df.to_excel(path, index=False, engine="openpyxl")
    elif suffix == ".json":
        df.to_json(path, orient="records", indent=2)
    else:
        raise SystemExit(f"Unsupported output format {suffix!r} (use .csv, .xlsx or .json)")
    logger.info("Wrote %d rows to %s", len(df), path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="meta-insights", description="Meta Marketing API insights")
    parser.add_argument("--settings", default=SETTINGS_PATH_DEFAULT)
    parser.add_argument("--verbose", "-v", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    rep = sub.add_parser("report", help="fetch an insights report")
    rep.add_argument("--target", action="append", help="ad account/campaign/adset/ad id (repeatable)")
    rep.add_argument("--fields", default=None, help="comma separated fields")
    rep.add_argument("--level", choices=["account", "campaign", "adset", "ad"], default=None)
    rep.add_argument("--breakdowns", default=None)
    rep.add_argument("--date-preset", default=None)
    rep.add_argument("--since", default=None, help="YYYY-MM-DD")
    rep.add_argument("--until", default=None, help="YYYY-MM-DD")
    rep.add_argument("--last-days", type=int, default=None, help="last N full days (account timezone)")
    rep.add_argument("--filtering", default=None, help="JSON list of filter objects")
    rep.add_argument("--param", action="append", help="extra Graph param key=value (repeatable)")
    rep.add_argument("--async", dest="use_async", action="store_true", help="go straight to an async job")
    rep.add_argument("--no-simplify", action="store_true", help="keep raw pages, skip table building")
    rep.add_argument("--output", "-o", default=None, help=".csv, .xlsx or .json")

    srch = sub.add_parser("search", help="targeting search")
    srch.add_argument("q", nargs="+")
    srch.add_argument("--type", default="adinterest", choices=SEARCH_TYPES)
    srch.add_argument("--param", action="append")
    srch.add_argument("--output", "-o", default=None)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()
    configure_logging(args.verbose)

    try:
        settings = load_settings(args.settings)
        session = InsightsSession.for_account(AccountAuth.from_env(), settings)
        if args.command == "report":
            request = build_request(args)
            outcome = ReportRequester(session).request_insights(request)
            if args.no_simplify:
                results = outcome if isinstance(outcome, list) else [outcome]
                print(json.dumps([r.data for r in results], indent=2, default=str))
                return 0
            write_output(result_frame(outcome), args.output)
        else:
            q = args.q[0] if len(args.q) == 1 else args.q
            write_output(search_targeting(session, q, args.type, **_parse_kv(args.param)), args.output)
    except (InsightsError, ValueError) as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

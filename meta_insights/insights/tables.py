from __future__ import annotations

from typing import Any, Iterable, List, Sequence

import pandas as pd


def _page_frame(rows: Sequence[Any]) -> pd.DataFrame:
    records = [r if isinstance(r, dict) else {"value": r} for r in rows or []]
    if not records:
        return pd.DataFrame()
    return pd.json_normalize(records, max_level=1)


def flatten_pages(pages: Iterable[Sequence[Any]]) -> pd.DataFrame:
    """Row-bind pages of records into one table, union of columns, missing cells as NaN."""
    frames: List[pd.DataFrame] = [f for f in (_page_frame(p) for p in pages) if not f.empty]
    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True, sort=False)

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Sequence, Union

import pandas as pd

from ..infrastructure.error_handling import DecodeError, InvalidUsage
from ..insights.session import InsightsSession
from .graph_client import decode_response

logger = logging.getLogger(__name__)

SEARCH_TYPES = (
    "adeducationschool", "adeducationmajor",
    "adgeolocation", "adcountry", "adzipcode", "adgeolocationmeta", "adradiussuggestion",
    "adinterest", "adinterestsuggestion", "adinterestvalid",
    "adlocale", "adTargetingCategory", "adworkemployer", "targetingsearch",
)
# these take a list of interests instead of a single keyword
INTEREST_LIST_TYPES = ("adinterestvalid", "adinterestsuggestion")
INTEREST_TYPES = ("adinterest", "adinterestsuggestion", "adinterestvalid")


def search_targeting(
    session: InsightsSession,
    q: Union[str, Sequence[str]],
    type: str = "adinterest",
    **params: Any,
) -> pd.DataFrame:
    """Query the targeting search API and return the matches as a table.

    Interest searches are reduced to ``id``, ``name`` and ``audience_size``.
    """
    if type not in SEARCH_TYPES:
        raise InvalidUsage(f"Unknown search type {type!r}")

    query: Dict[str, Any] = {"limit": 500, "list": "GLOBAL"}
    if type != "targetingsearch":
        query["type"] = type
    query.update(params)

    terms: List[str] = [q] if isinstance(q, str) else [str(t) for t in q]
    if type in INTEREST_LIST_TYPES:
        query["interest_list"] = json.dumps(terms)
    else:
        if len(terms) != 1:
            raise InvalidUsage("Multiple keywords not allowed")
        query["q"] = terms[0]

    path = f"{session.account_path}/targetingsearch" if type == "targetingsearch" else "search"
    payload = decode_response(session.transport.send("GET", path, query))
    if not isinstance(payload, dict):
        raise DecodeError("Search response is not an object")
    rows = payload.get("data") or []
    logger.debug("Search %s %r returned %d rows", type, terms, len(rows))

    if type in INTEREST_TYPES:
        return pd.DataFrame(
            [{"id": r.get("id"), "name": r.get("name"), "audience_size": r.get("audience_size")} for r in rows],
            columns=["id", "name", "audience_size"],
        )
    return pd.json_normalize(rows) if rows else pd.DataFrame()

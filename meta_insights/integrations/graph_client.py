# graph_client.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

import requests

from ..config import DEFAULT_API_VERSION, GRAPH_BASE_URL, META_TIMEOUT
from ..infrastructure.error_handling import (
    ConfigError,
    DecodeError,
    InsightsDataLimitError,
    TransportError,
)

logger = logging.getLogger(__name__)


def _meta_log(level: int, message: str, *args) -> None:
    logger.log(level, f"[META] {message}", *args)


Decoded = Union[Dict[str, Any], list]


# -------------------------
# Account auth
# -------------------------
@dataclass
class AccountAuth:
    account_id: str                # can be "act_123" or "123"
    access_token: str
    app_id: Optional[str] = None
    app_secret: Optional[str] = None
    api_version: Optional[str] = None  # defaulted in GraphTransport

    @staticmethod
    def from_env() -> "AccountAuth":
        account_id = os.getenv("FB_AD_ACCOUNT_ID") or ""
        token = os.getenv("FB_ACCESS_TOKEN") or ""
        missing = [n for n, v in (("FB_AD_ACCOUNT_ID", account_id), ("FB_ACCESS_TOKEN", token)) if not v]
        if missing:
            raise ConfigError(f"Missing environment variables: {', '.join(missing)}")
        return AccountAuth(
            account_id=account_id,
            access_token=token,
            app_id=os.getenv("FB_APP_ID"),
            app_secret=os.getenv("FB_APP_SECRET"),
            api_version=os.getenv("FB_API_VERSION"),
        )

    @property
    def account_path(self) -> str:
        return _normalize_account_id(self.account_id)[1]


def _normalize_account_id(account_id: str) -> Tuple[str, str]:
    """Returns (numeric_id, act_prefixed_id). Accepts either '123' or 'act_123'."""
    aid = (account_id or "").strip()
    num = aid[4:] if aid.startswith("act_") else aid
    return num, f"act_{num}"


def _stringify_params(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for k, v in (params or {}).items():
        if v is None:
            continue
        if isinstance(v, (list, tuple)) and all(isinstance(x, str) for x in v):
            out[k] = ",".join(v)
        elif isinstance(v, (dict, list, tuple)):
            out[k] = json.dumps(v)
        elif isinstance(v, bool):
            out[k] = "true" if v else "false"
        else:
            out[k] = str(v)
    return out


# -------------------------
# Decoder
# -------------------------
def decode_response(raw: Union[str, bytes, None]) -> Decoded:
    """Parse a Graph response body into dicts/lists. Raises DecodeError on garbage."""
    if raw is None:
        raise DecodeError("Empty response body")
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    text = raw.replace("\n", "").strip()
    if not text:
        raise DecodeError("Empty response body")
    try:
        value = json.loads(text)
    except ValueError as e:
        raise DecodeError(f"Malformed JSON response: {text[:200]!r}") from e
    if not isinstance(value, (dict, list)):
        raise DecodeError(f"Unexpected JSON document type {type(value).__name__}")
    return value


# -------------------------
# Transport
# -------------------------
class GraphTransport:
    """
    One authenticated request/response exchange against the Graph API per call.

    No retries happen here: a failing exchange raises ``TransportError`` and
    the insights layer decides what to do about it.
    """

    def __init__(
        self,
        account: AccountAuth,
        *,
        timeout: float = META_TIMEOUT,
        session: Optional[requests.Session] = None,
        base_url: str = GRAPH_BASE_URL,
    ) -> None:
        self.account = account
        self.timeout = timeout
        self.http = session or requests.Session()
        self.base_url = base_url.rstrip("/")

    @property
    def api_version(self) -> str:
        return self.account.api_version or DEFAULT_API_VERSION

    @property
    def account_path(self) -> str:
        return self.account.account_path

    def _graph_url(self, path: str) -> str:
        path = (path or "").strip("/")
        if path:
            return f"{self.base_url}/{self.api_version}/{path}"
        return f"{self.base_url}/{self.api_version}/"

    def send(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> str:
        method = method.upper()
        if method not in ("GET", "POST"):
            raise ValueError(f"Unsupported method {method}")
        url = self._graph_url(path)
        qp = _stringify_params(params)
        qp["access_token"] = self.account.access_token
        _meta_log(logging.DEBUG, "%s %s", method, url)
        try:
            if method == "GET":
                r = self.http.get(url, params=qp, timeout=self.timeout)
            else:
                r = self.http.post(url, data=qp, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Graph {method} {path} failed: {e}") from e
        return self._check(r, f"{method} {path or '/'}")

    def get_url(self, url: str) -> str:
        """GET an absolute URL, e.g. a ``paging.next`` cursor that already carries the token."""
        _meta_log(logging.DEBUG, "GET %s", url.split("access_token=")[0])
        try:
            r = self.http.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Graph GET next page failed: {e}") from e
        return self._check(r, "GET next page")

    def _check(self, r: requests.Response, what: str) -> str:
        if r.status_code < 400:
            return r.text
        try:
            err = r.json()
        except ValueError:
            err = {"error": {"message": r.text}}
        error = err.get("error", {}) if isinstance(err, dict) else {}
        code = error.get("code")
        subcode = error.get("error_subcode")
        message = error.get("message", "")
        if code == 100 and subcode == 1487534:
            raise InsightsDataLimitError(
                message or "Insights data-per-call limit hit",
                status=r.status_code, code=code, subcode=subcode, payload=err,
            )
        msg = f"Graph {what} {r.status_code}: {message or err}"
        if code == 100 and subcode == 33:
            msg += " - Hint: check ad account id, token scopes (ads_read), and account access."
        raise TransportError(msg, status=r.status_code, code=code, subcode=subcode, payload=err)

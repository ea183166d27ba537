# sources.py
"""
Read the JSON documents the planner consumes, from disk or over HTTP.

Both the demand forecast and the price schedule are plain JSON; a source is
either a filesystem path or an http(s) URL.
"""

from __future__ import annotations
import json
import math
import logging
import pathlib
from typing import Any, Union

import pandas as pd
import requests

log = logging.getLogger(__name__)

HTTP_TIMEOUT = 20


def read_json(source: Union[str, pathlib.Path]) -> Any:
    src = str(source)
    if src.startswith(("http://", "https://")):
        log.debug("fetching %s", src)
        r = requests.get(src, timeout=HTTP_TIMEOUT)
        r.raise_for_status()
        return r.json()
    return json.loads(pathlib.Path(src).read_text())


def parse_timestamp(value) -> pd.Timestamp:
    """
    ISO-8601 string → Timestamp, keeping the offset it was written in
    (the hour lookups depend on it). Raises ValueError for anything else.
    """
    if not isinstance(value, str):
        raise ValueError(f"expected an ISO-8601 string, got {value!r}")
    ts = pd.Timestamp(value)
    if pd.isna(ts):
        raise ValueError(f"not a timestamp: {value!r}")
    return ts


def parse_number(value) -> float:
    """JSON number (or numeric string) → float; NaN, inf and non-numbers raise ValueError."""
    if value is None or isinstance(value, bool):
        raise ValueError(f"expected a number, got {value!r}")
    try:
        x = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"expected a number, got {value!r}") from None
    if not math.isfinite(x):
        raise ValueError(f"not a finite number: {value!r}")
    return x


def warn_mixed_offsets(stamps, what: str) -> None:
    """Hour-of-day lookups only line up when every record shares one offset."""
    offsets = {ts.utcoffset() for ts in stamps}
    if len(offsets) > 1:
        log.warning("%s mixes UTC offsets %s; hour lookup may be wrong",
                    what, sorted(str(o) for o in offsets))

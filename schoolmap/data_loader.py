from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List

import requests

from schoolmap.School import School

log = logging.getLogger(__name__)

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, max-age=0",
    "Pragma": "no-cache",
}


class DataLoadError(RuntimeError):
    """The school data could not be fetched or parsed."""


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def fetch_records(source: str, timeout: float = 60.0) -> Any:
    if is_url(source):
        try:
            r = requests.get(source, headers=NO_STORE_HEADERS, timeout=timeout)
            r.raise_for_status()
            return r.json()
        # requests.JSONDecodeError is both a ValueError and a RequestException
        except ValueError as exc:
            raise DataLoadError(f"{source} is not valid JSON: {exc}") from exc
        except requests.RequestException as exc:
            raise DataLoadError(f"cannot fetch {source}: {exc}") from exc

    try:
        text = Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        raise DataLoadError(f"cannot read {source}: {exc}") from exc
    try:
        return json.loads(text)
    except ValueError as exc:
        raise DataLoadError(f"{source} is not valid JSON: {exc}") from exc


def parse_schools(records: Any) -> List[School]:
    if not isinstance(records, list):
        raise DataLoadError(f"expected a list of schools, got {type(records).__name__}")

    schools: List[School] = []
    seen = set()
    for i, rec in enumerate(records):
        try:
            school = School.from_record(rec)
        except ValueError as exc:
            raise DataLoadError(f"record {i}: {exc}") from exc
        if school.id in seen:
            raise DataLoadError(f"record {i}: duplicate id {school.id!r}")
        seen.add(school.id)
        schools.append(school)
    return schools


def load_schools(source: str, timeout: float = 60.0) -> List[School]:
    log.info("Loading schools from %s", source)
    schools = parse_schools(fetch_records(source, timeout=timeout))
    log.info("Loaded %d schools (%d on the route)", len(schools), sum(s.has_order for s in schools))
    return schools

from typing import Any, Dict, Iterable, List

from schoolmap.School import School

NO_RESULTS = "No results."


def filter_schools(schools: Iterable[School], query: str) -> List[School]:
    q = (query or "").strip().lower()
    if not q:
        return list(schools)
    return [s for s in schools if q in s.name.lower() or q in s.city.lower()]


def list_item(school: School) -> Dict[str, Any]:
    meta = school.city
    if school.order is not None:
        meta += f" · №{school.order}"
    return {"id": school.id, "name": school.name, "meta": meta}


def list_items(schools: Iterable[School]) -> List[Dict[str, Any]]:
    return [list_item(s) for s in schools]


def filter_status(shown: int, total: int) -> str:
    if shown == 0:
        return NO_RESULTS
    return f"Showing: {shown} / {total}"

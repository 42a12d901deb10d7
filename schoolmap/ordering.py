from typing import Iterable, List, Optional, Sequence, Tuple

from schoolmap.School import School


def name_key(name: str) -> Tuple[str, str]:
    # Cyrillic and Latin letters sit in alphabetical order in Unicode, so
    # case-folded code point order matches the Bulgarian collation
    name = name or ""
    return (name.casefold(), name)


def sort_by_order(schools: Iterable[School]) -> List[School]:
    # sorted() is stable: equal (order, name) keep input order
    ordered = [s for s in schools if s.order is not None]
    return sorted(ordered, key=lambda s: (s.order, name_key(s.name)))


def index_of_order(ordered: Sequence[School], order_number: int) -> Optional[int]:
    for i, s in enumerate(ordered):
        if s.order == order_number:
            return i
    return None


def index_of_id(ordered: Sequence[School], school_id: str) -> Optional[int]:
    for i, s in enumerate(ordered):
        if s.id == school_id:
            return i
    return None

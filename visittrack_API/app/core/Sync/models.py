# models.py
# Description: VisitRecord and the positional row layout shared with the remote row store
#
# Imports
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Optional, Dict, Any, List, Sequence, Tuple, Union
#
# Third-party imports
from loguru import logger
#
#######################################################################################################################
#
# Constants:

MAX_PHOTOS = 10

# The store binds columns by position only. Both directions of the codec are
# generated from this one tuple: (row field name, VisitRecord attribute).
ROW_LAYOUT: Tuple[Tuple[str, str], ...] = (
    ("region", "region"),
    ("locationLink", "location_link"),
    ("clientName", "client_name"),
    ("visitDate", "visit_date"),
    ("visitNotes", "visit_notes"),
    *((f"photo{i}", "photos") for i in range(1, MAX_PHOTOS + 1)),
    ("id", "id"),
    ("latitude", "latitude"),
    ("longitude", "longitude"),
    ("aiAnalysis", "ai_analysis"),
)

ROW_WIDTH = len(ROW_LAYOUT)
PHOTO_SLOTS = tuple(i for i, (name, attr) in enumerate(ROW_LAYOUT) if attr == "photos")
ID_COLUMN = next(i for i, (name, attr) in enumerate(ROW_LAYOUT) if attr == "id")
COORDINATE_ATTRS = ("latitude", "longitude")

DateLike = Union[str, date, datetime, None]


#######################################################################################################################
#
# Date helpers:

def normalize_visit_date(value: DateLike) -> str:
    """
    Reduce any accepted date input to ``YYYY-MM-DD``.

    Strings keep their date part only ("2024-06-01T10:00:00Z" -> "2024-06-01",
    "2024-06-01 10:00" -> "2024-06-01"). Unparseable strings are returned stripped
    but otherwise untouched so the store keeps what the user typed.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if not text:
        return ""
    head = text.split("T", 1)[0].split(" ", 1)[0]
    parsed = parse_visit_date(head)
    return parsed.isoformat() if parsed else text


def parse_visit_date(value: DateLike) -> Optional[date]:
    """Return the calendar date of ``value`` or None when it is absent or unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    head = text.split("T", 1)[0].split(" ", 1)[0]
    try:
        return date.fromisoformat(head)
    except ValueError:
        pass
    for fmt in ("%Y/%m/%d", "%Y-%m-%d"):
        try:
            return datetime.strptime(head, fmt).date()
        except ValueError:
            continue
    return None


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


#######################################################################################################################
#
# Models:

@dataclass
class VisitRecord:
    """
    One client visit.

    ``visit_date`` is held as a normalized ``YYYY-MM-DD`` string so that a value the
    store returns unparseable survives a round trip instead of being dropped.
    """
    id: str
    client_name: str = ""
    region: str = ""
    visit_date: str = ""
    visit_notes: str = ""
    location_link: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    photos: List[str] = field(default_factory=list)
    ai_analysis: Optional[str] = None

    def __post_init__(self):
        # Constructed records already hold the form the row codec decodes to
        self.id = _clean_text(self.id)
        self.client_name = _clean_text(self.client_name)
        self.region = _clean_text(self.region)
        self.location_link = _clean_text(self.location_link)
        self.visit_date = normalize_visit_date(self.visit_date)
        self.photos = [_clean_text(p) for p in (self.photos or []) if _clean_text(p)]
        self.ai_analysis = _clean_text(self.ai_analysis) or None

    @classmethod
    def new(cls, client_name: str = "", region: str = "", today: Optional[date] = None) -> "VisitRecord":
        """A fresh, not yet persisted record: new id, dated today in the local calendar."""
        return cls(
            id=uuid.uuid4().hex,
            client_name=client_name,
            region=region,
            visit_date=(today or date.today()).isoformat(),
        )

    @property
    def visit_day(self) -> Optional[date]:
        return parse_visit_date(self.visit_date)

    @property
    def thumbnail(self) -> Optional[str]:
        return self.photos[0] if self.photos else None

    def normalized(self) -> "VisitRecord":
        """Copy re-cleaned after in-place edits (trimmed strings, no blank photos)."""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "client_name": self.client_name,
            "region": self.region,
            "visit_date": self.visit_date,
            "visit_notes": self.visit_notes,
            "location_link": self.location_link,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "photos": list(self.photos),
            "ai_analysis": self.ai_analysis,
        }


#######################################################################################################################
#
# Row codec:

def _coordinate(value: Any) -> Optional[float]:
    # Blank decodes to absent; a literal 0 stays 0.0
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        logger.warning(f"Ignoring non-numeric coordinate cell: {text!r}")
        return None


def _encode_coordinate(value: Optional[float]) -> Union[float, str]:
    return "" if value is None else value


def encode_row(visit: VisitRecord) -> List[Any]:
    """
    Encode a visit into the fixed-width positional row.

    Raises:
        ValueError: If the visit carries more photos than there are slots.
    """
    if len(visit.photos) > MAX_PHOTOS:
        raise ValueError(f"A visit holds at most {MAX_PHOTOS} photos, got {len(visit.photos)}")

    row: List[Any] = []
    photo_index = 0
    for name, attr in ROW_LAYOUT:
        if attr == "photos":
            row.append(visit.photos[photo_index] if photo_index < len(visit.photos) else "")
            photo_index += 1
        elif attr == "visit_date":
            row.append(normalize_visit_date(visit.visit_date))
        elif attr in COORDINATE_ATTRS:
            row.append(_encode_coordinate(getattr(visit, attr)))
        elif attr == "ai_analysis":
            row.append(visit.ai_analysis or "")
        else:
            row.append(getattr(visit, attr) or "")
    return row


def decode_row(cells: Sequence[Any]) -> VisitRecord:
    """
    Decode a positional row into a VisitRecord.

    Short rows (trailing blank cells trimmed by the spreadsheet) are padded.
    Photos are collected from the slots in order with blanks skipped, so the
    resulting list has no gaps.
    """
    padded = list(cells) + [""] * (ROW_WIDTH - len(cells))
    values: Dict[str, Any] = {"photos": []}
    for position, (name, attr) in enumerate(ROW_LAYOUT):
        cell = padded[position]
        if attr == "photos":
            text = _clean_text(cell)
            if text:
                values["photos"].append(text)
        elif attr in COORDINATE_ATTRS:
            values[attr] = _coordinate(cell)
        elif attr == "ai_analysis":
            values[attr] = _clean_text(cell) or None
        elif attr == "visit_notes":
            values[attr] = "" if cell is None else str(cell)
        else:
            values[attr] = _clean_text(cell)
    return VisitRecord(**values)


def row_to_object(row: Sequence[Any]) -> Dict[str, Any]:
    """
    Name the cells of an encoded row with the store's field names.

    The deployed store script reads a ``photos`` array, so the non-blank photo
    slots are also supplied in that form alongside ``photo1..photo10``.
    """
    obj = {name: row[position] for position, (name, attr) in enumerate(ROW_LAYOUT)}
    obj["photos"] = [row[position] for position in PHOTO_SLOTS if row[position]]
    return obj


def object_to_row(obj: Dict[str, Any]) -> List[Any]:
    """Inverse of row_to_object; also accepts the store's ``photos`` array form."""
    photos = obj.get("photos")
    row: List[Any] = []
    photo_index = 0
    for name, attr in ROW_LAYOUT:
        if attr == "photos" and isinstance(photos, list):
            slot_values = [p for p in photos if p is not None and str(p).strip()]
            row.append(slot_values[photo_index] if photo_index < len(slot_values) else "")
            photo_index += 1
        else:
            row.append(obj.get(name, ""))
    return row


def decode_store_row(raw: Union[Sequence[Any], Dict[str, Any]]) -> VisitRecord:
    """Decode either a positional row (list) or a named row object (dict) as returned by the store."""
    if isinstance(raw, dict):
        return decode_row(object_to_row(raw))
    if isinstance(raw, (list, tuple)):
        return decode_row(raw)
    raise ValueError(f"Unsupported row shape from store: {type(raw).__name__}")


def find_row_index(rows: Sequence[Sequence[Any]], visit_id: str) -> int:
    """
    Linear scan for the row whose id column equals ``visit_id``.

    Ids are compared as strings, as the store does. The first match wins.

    Returns:
        The index of the matching row, or -1 if there is none.
    """
    wanted = str(visit_id)
    for index, row in enumerate(rows):
        if len(row) > ID_COLUMN and str(row[ID_COLUMN]) == wanted:
            return index
    return -1

#
# End of models.py
########################################################################################################################

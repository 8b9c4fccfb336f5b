# test_visit_models.py
# Description: Tests for VisitRecord, the positional row codec and the id scan
#
# Imports
import string
from datetime import date, datetime
#
# 3rd-party Libraries
import pytest
from hypothesis import given, strategies as st
#
# Local Imports
from visittrack_API.app.core.Sync.models import (
    ID_COLUMN,
    MAX_PHOTOS,
    PHOTO_SLOTS,
    ROW_LAYOUT,
    ROW_WIDTH,
    VisitRecord,
    decode_row,
    decode_store_row,
    encode_row,
    find_row_index,
    normalize_visit_date,
    object_to_row,
    parse_visit_date,
    row_to_object,
)
#
#######################################################################################################################
#
# Strategies:

clean_text = st.text(alphabet=string.ascii_letters + string.digits + " -_", min_size=1, max_size=20).map(str.strip).filter(bool)
photo_urls = st.one_of(
    st.builds(lambda n: f"https://i.ibb.co/{n}/photo.jpg", st.text(alphabet=string.ascii_lowercase + string.digits, min_size=1, max_size=8)),
    st.text(max_size=20),
)
coordinates = st.one_of(st.none(), st.floats(min_value=-90, max_value=90, allow_nan=False, allow_infinity=False))


@st.composite
def visit_records(draw):
    return VisitRecord(
        id=draw(st.one_of(st.uuids().map(lambda u: u.hex), st.text(max_size=20))),
        client_name=draw(st.one_of(clean_text, st.text(max_size=20))),
        region=draw(st.one_of(st.just(""), clean_text, st.text(max_size=20))),
        visit_date=draw(st.one_of(
            st.dates(min_value=date(2000, 1, 1), max_value=date(2099, 12, 31)).map(date.isoformat),
            st.text(max_size=20),
        )),
        visit_notes=draw(st.text(max_size=60)),
        location_link=draw(st.one_of(st.just(""), st.just("https://maps.google.com/?q=1,2"), st.text(max_size=20))),
        latitude=draw(coordinates),
        longitude=draw(coordinates),
        photos=draw(st.lists(photo_urls, max_size=MAX_PHOTOS)),
        ai_analysis=draw(st.one_of(st.none(), st.just(""), clean_text, st.text(max_size=20))),
    )


#######################################################################################################################
#
# Tests:

class TestRowLayout:

    def test_layout_matches_store_schema(self):
        names = [name for name, attr in ROW_LAYOUT]
        assert ROW_WIDTH == 19
        assert names[:5] == ["region", "locationLink", "clientName", "visitDate", "visitNotes"]
        assert names[5:15] == [f"photo{i}" for i in range(1, 11)]
        assert names[15:] == ["id", "latitude", "longitude", "aiAnalysis"]
        assert ID_COLUMN == 15
        assert PHOTO_SLOTS == tuple(range(5, 15))

    def test_encode_places_fields_positionally(self):
        visit = VisitRecord(
            id="v1", client_name="Acme", region="North", visit_date="2024-06-01T09:30:00Z",
            visit_notes="Talked pricing", location_link="https://maps/x",
            latitude=51.5, longitude=-0.12, photos=["A", "B"], ai_analysis="positive",
        )
        row = encode_row(visit)
        assert row[0] == "North"
        assert row[1] == "https://maps/x"
        assert row[2] == "Acme"
        assert row[3] == "2024-06-01"
        assert row[4] == "Talked pricing"
        assert row[15] == "v1"
        assert row[16:19] == [51.5, -0.12, "positive"]

    def test_photo_slots_are_stable(self):
        visit = VisitRecord(id="v1", client_name="Acme", visit_date="2024-06-01", photos=["A", "B"])
        row = encode_row(visit)
        assert [row[i] for i in PHOTO_SLOTS] == ["A", "B", "", "", "", "", "", "", "", ""]
        assert decode_row(row).photos == ["A", "B"]

    def test_blank_slots_in_the_middle_do_not_leave_gaps(self):
        row = encode_row(VisitRecord(id="v1", client_name="Acme", visit_date="2024-06-01"))
        row[5], row[7], row[14] = "A", "C", "J"
        assert decode_row(row).photos == ["A", "C", "J"]

    def test_too_many_photos_is_rejected(self):
        visit = VisitRecord(id="v1", client_name="Acme", visit_date="2024-06-01", photos=[str(i) for i in range(11)])
        with pytest.raises(ValueError):
            encode_row(visit)

    def test_blank_coordinates_decode_to_absent(self):
        row = encode_row(VisitRecord(id="v1", client_name="Acme", visit_date="2024-06-01"))
        assert row[16] == "" and row[17] == ""
        decoded = decode_row(row)
        assert decoded.latitude is None
        assert decoded.longitude is None

    def test_literal_zero_coordinates_are_kept(self):
        row = encode_row(VisitRecord(id="v1", client_name="Acme", visit_date="2024-06-01", latitude=0.0, longitude=0.0))
        decoded = decode_row(row)
        assert decoded.latitude == 0.0
        assert decoded.longitude == 0.0

    def test_short_rows_are_padded(self):
        decoded = decode_row(["North", "", "Acme", "2024-06-01"])
        assert decoded.client_name == "Acme"
        assert decoded.id == ""
        assert decoded.photos == []
        assert decoded.ai_analysis is None

    def test_numeric_id_cells_decode_as_strings(self):
        row = encode_row(VisitRecord(id="x", client_name="Acme", visit_date="2024-06-01"))
        row[ID_COLUMN] = 1717000000
        assert decode_row(row).id == "1717000000"

    def test_blank_analysis_round_trips_as_absent(self):
        visit = VisitRecord(id="v1", client_name="Acme", visit_date="2024-06-01", ai_analysis="")
        assert visit.ai_analysis is None
        assert decode_row(encode_row(visit)) == visit

    def test_padded_text_round_trips(self):
        visit = VisitRecord(
            id=" v1 ", client_name=" Acme ", region=" North ", visit_date="2024-06-01",
            location_link=" https://maps/x ", photos=[" A ", "  "], ai_analysis=" ok ",
        )
        assert (visit.id, visit.client_name, visit.region) == ("v1", "Acme", "North")
        assert visit.location_link == "https://maps/x"
        assert visit.photos == ["A"]
        assert visit.ai_analysis == "ok"
        assert decode_row(encode_row(visit)) == visit

    @given(visit_records())
    def test_round_trip(self, visit):
        assert decode_row(encode_row(visit)) == visit

    @given(visit_records())
    def test_round_trip_through_named_object(self, visit):
        assert decode_store_row(row_to_object(encode_row(visit))) == visit


class TestStoreObjects:

    def test_object_with_photos_array(self):
        obj = {
            "region": "North", "locationLink": "", "clientName": "Acme", "visitDate": "2024-06-01",
            "visitNotes": "n", "photos": ["A", "", "B"], "id": "v1",
            "latitude": "", "longitude": "", "aiAnalysis": "",
        }
        row = object_to_row(obj)
        assert [row[i] for i in PHOTO_SLOTS][:3] == ["A", "B", ""]
        visit = decode_store_row(obj)
        assert visit.photos == ["A", "B"]
        assert visit.latitude is None

    def test_unsupported_shape(self):
        with pytest.raises(ValueError):
            decode_store_row("not a row")


class TestVisitDates:

    @pytest.mark.parametrize("raw, expected", [
        ("2024-06-01", "2024-06-01"),
        ("2024-06-01T23:59:59.000Z", "2024-06-01"),
        ("2024-06-01 08:00", "2024-06-01"),
        ("2024/06/01", "2024-06-01"),
        (date(2024, 6, 1), "2024-06-01"),
        (datetime(2024, 6, 1, 18, 45), "2024-06-01"),
        ("", ""),
        (None, ""),
        ("someday", "someday"),
        ("June 1", "June 1"),
        ("  June 1st 2024 ", "June 1st 2024"),
    ])
    def test_normalize_visit_date(self, raw, expected):
        assert normalize_visit_date(raw) == expected

    def test_parse_visit_date_unparseable(self):
        assert parse_visit_date("someday") is None
        assert parse_visit_date("") is None

    def test_record_normalizes_on_creation(self):
        assert VisitRecord(id="v", visit_date="2024-06-01T10:00:00Z").visit_date == "2024-06-01"

    def test_new_record_defaults(self):
        visit = VisitRecord.new(client_name="Acme", today=date(2024, 6, 5))
        assert visit.visit_date == "2024-06-05"
        assert visit.id
        assert visit.photos == []
        assert VisitRecord.new().id != VisitRecord.new().id


class TestFindRowIndex:

    def _rows(self, *ids):
        return [encode_row(VisitRecord(id=i, client_name="c", visit_date="2024-06-01")) for i in ids]

    def test_finds_match(self):
        assert find_row_index(self._rows("a", "b", "c"), "b") == 1

    def test_no_match(self):
        assert find_row_index(self._rows("a", "b"), "z") == -1
        assert find_row_index([], "a") == -1

    def test_first_match_wins(self):
        assert find_row_index(self._rows("a", "dup", "b", "dup"), "dup") == 1

    def test_compares_as_strings(self):
        rows = self._rows("x")
        rows[0][ID_COLUMN] = 42
        assert find_row_index(rows, "42") == 0

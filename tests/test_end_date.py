from datetime import datetime, timezone
from urllib.parse import parse_qs, urlencode

from babyapi.end_date import EndDateable, end_dated_query_param


class _Event:
    def __init__(self):
        self.end_date = None

    def end_dated(self):
        return self.end_date is not None

    def set_end_date(self, when):
        self.end_date = when


class _Plain:
    def end_dated(self):
        return False


def test_query_param_true():
    assert end_dated_query_param(True) == {"end_dated": ["true"]}


def test_query_param_false_encodes():
    assert urlencode(end_dated_query_param(False), doseq=True) == "end_dated=false"


def test_query_param_round_trips_through_query_string():
    for value in (True, False):
        params = end_dated_query_param(value)
        assert parse_qs(urlencode(params, doseq=True)) == params


def test_protocol_implementation_drives_query_param():
    event = _Event()
    assert isinstance(event, EndDateable)
    assert end_dated_query_param(event.end_dated()) == {"end_dated": ["false"]}
    event.set_end_date(datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert end_dated_query_param(event.end_dated()) == {"end_dated": ["true"]}


def test_protocol_rejects_partial_implementation():
    plain = _Plain()
    assert not isinstance(plain, EndDateable)
    assert end_dated_query_param(plain.end_dated()) == {"end_dated": ["false"]}
from logsync.services.parser import timestamps


def test_normalize_colon_fraction():
    assert timestamps.normalize_timestamp("2024.06.07-12:34:56:789") == "2024-06-07T12:34:56.789Z"


def test_normalize_dot_fraction():
    assert timestamps.normalize_timestamp("2024.01.01-12:00:00.000") == "2024-01-01T12:00:00.000Z"


def test_normalize_pads_short_fraction():
    assert timestamps.normalize_timestamp("2024.06.07-12:34:56:7") == "2024-06-07T12:34:56.700Z"


def test_normalize_without_fraction():
    assert timestamps.normalize_timestamp("2024.06.07-12:34:56") == "2024-06-07T12:34:56.000Z"


def test_canonical_input_passes_through():
    ts = "2024-06-07T12:34:56.789Z"
    assert timestamps.normalize_timestamp(ts) == ts


def test_unrecognised_input_falls_back_to_now():
    result = timestamps.normalize_timestamp("not a timestamp")
    assert timestamps.CANONICAL_TS_PATTERN.match(result)
    assert timestamps.normalize_timestamp(None) != ""


def test_extract_line_timestamp():
    line = "<2024.06.07-12:34:56:789> <SystemQuit> Player quit"
    assert timestamps.extract_line_timestamp(line) == "2024.06.07-12:34:56:789"
    assert timestamps.extract_line_timestamp("no prefix here") is None


def test_sort_key_orders_chronologically():
    early = timestamps.timestamp_sort_key("2024-06-07T12:34:56.000Z")
    late = timestamps.timestamp_sort_key("2024-06-07T12:34:56.500Z")
    assert late - early == 0.5


def test_sort_key_unparseable_sorts_first():
    assert timestamps.timestamp_sort_key("garbage") == 0.0
    assert timestamps.timestamp_sort_key(None) == 0.0

from httpfanout.transport.encoding import encode_body, is_upload_file, media_type

import pytest


def test_media_type_strips_parameters_and_case():
    assert media_type({"content-type": "Application/JSON; charset=utf-8"}) == "application/json"
    assert media_type({}) == ""


def test_no_body_keeps_headers():
    encoded = encode_body({"Content-Type": "application/json", "X-Trace": "1"}, None)
    assert encoded.data is None and encoded.json is None and not encoded.files
    assert encoded.headers == {"Content-Type": "application/json", "X-Trace": "1"}


def test_json_body_serialized_as_json():
    encoded = encode_body({"Content-Type": "application/json"}, {"message": "Hello JSON"})
    assert encoded.json == {"message": "Hello JSON"}
    assert encoded.data is None


def test_json_string_body_passes_through():
    encoded = encode_body({"content-type": "application/json"}, '{"a": 1}')
    assert encoded.data == '{"a": 1}'
    assert encoded.json is None


def test_form_body():
    encoded = encode_body(
        {"Content-Type": "application/x-www-form-urlencoded"},
        {"key1": "value1", "key2": "value2"},
    )
    assert encoded.data == {"key1": "value1", "key2": "value2"}
    assert encoded.headers["Content-Type"] == "application/x-www-form-urlencoded"


def test_form_body_rejects_non_mapping():
    with pytest.raises(ValueError):
        encode_body({"Content-Type": "application/x-www-form-urlencoded"}, [1, 2])


def test_multipart_splits_files_and_fields():
    files = {"/uploads/report.pdf"}
    encoded = encode_body(
        {"Content-Type": "multipart/form-data", "Authorization": "Bearer t"},
        {"report": "/uploads/report.pdf", "title": "Q3"},
        probe=lambda value: value in files,
    )
    assert encoded.files == {"report": "/uploads/report.pdf"}
    assert encoded.data == {"title": "Q3"}
    assert encoded.multipart
    # boundary comes from the transport
    assert "Content-Type" not in encoded.headers
    assert encoded.headers["Authorization"] == "Bearer t"


def test_multipart_with_real_file(tmp_path):
    upload = tmp_path / "photo.jpg"
    upload.write_bytes(b"\xff\xd8")
    encoded = encode_body(
        {"Content-Type": "multipart/form-data"},
        {"photo": str(upload), "caption": str(tmp_path / "missing.txt"), "dir": str(tmp_path)},
    )
    assert encoded.files == {"photo": str(upload)}
    assert set(encoded.data) == {"caption", "dir"}


def test_multipart_requires_mapping():
    with pytest.raises(ValueError):
        encode_body({"Content-Type": "multipart/form-data"}, "raw")


def test_default_passthrough():
    assert encode_body({"Content-Type": "text/plain"}, "hello").data == "hello"
    assert encode_body({}, b"\x00\x01").data == b"\x00\x01"
    assert encode_body({}, {"a": 1}).json == {"a": 1}


def test_is_upload_file(tmp_path):
    path = tmp_path / "a.txt"
    path.write_text("x")
    assert is_upload_file(str(path))
    assert is_upload_file(path)
    assert not is_upload_file(str(tmp_path))
    assert not is_upload_file(42)
    assert not is_upload_file("no/such/file")


def test_multipart_without_files_stays_multipart():
    encoded = encode_body({"Content-Type": "multipart/form-data"}, {"title": "Q3", "note": "x"}, probe=lambda v: False)
    assert encoded.multipart
    assert encoded.files == {}
    assert encoded.data == {"title": "Q3", "note": "x"}

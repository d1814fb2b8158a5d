"""Tests for waypoint.http.forms: streaming field decoders."""

import pytest

from waypoint.http.forms import (
    JsonDecoder,
    MultipartDecoder,
    UploadFile,
    UrlencodedDecoder,
    create_decoder,
)


def _collect() -> tuple[list[tuple[str, object]], object]:
    fields: list[tuple[str, object]] = []
    return fields, lambda name, value: fields.append((name, value))


class TestUrlencodedDecoder:
    def test_fields_in_order(self) -> None:
        fields, on_field = _collect()
        decoder = UrlencodedDecoder(on_field)
        decoder.feed(b"a=1&b=two+words&c=%2Fpath")
        decoder.finish()
        assert fields == [("a", "1"), ("b", "two words"), ("c", "/path")]

    def test_field_split_across_chunks(self) -> None:
        fields, on_field = _collect()
        decoder = UrlencodedDecoder(on_field)
        for chunk in (b"na", b"me=Gra", b"ce&ag", b"e=85"):
            decoder.feed(chunk)
        decoder.finish()
        assert fields == [("name", "Grace"), ("age", "85")]

    def test_repeated_names_reported_each_time(self) -> None:
        fields, on_field = _collect()
        decoder = UrlencodedDecoder(on_field)
        decoder.feed(b"tag=a&tag=b")
        decoder.finish()
        assert fields == [("tag", "a"), ("tag", "b")]


class TestMultipartDecoder:
    BODY = (
        b"--sep\r\n"
        b'Content-Disposition: form-data; name="note"\r\n'
        b"\r\n"
        b"hello\r\n"
        b"--sep\r\n"
        b'Content-Disposition: form-data; name="avatar"; filename="me.png"\r\n'
        b"Content-Type: image/png\r\n"
        b"\r\n"
        b"\x89PNG\r\n"
        b"--sep--\r\n"
    )

    def test_text_and_file_parts(self) -> None:
        fields, on_field = _collect()
        decoder = MultipartDecoder("multipart/form-data; boundary=sep", on_field)
        decoder.feed(self.BODY)
        decoder.finish()

        assert fields[0] == ("note", "hello")
        name, upload = fields[1]
        assert name == "avatar"
        assert isinstance(upload, UploadFile)
        assert upload.filename == "me.png"
        assert upload.content_type == "image/png"
        assert upload.size == 4

    def test_byte_at_a_time(self) -> None:
        fields, on_field = _collect()
        decoder = MultipartDecoder('multipart/form-data; boundary="sep"', on_field)
        for i in range(len(self.BODY)):
            decoder.feed(self.BODY[i : i + 1])
        decoder.finish()
        assert [name for name, _ in fields] == ["note", "avatar"]

    def test_missing_boundary(self) -> None:
        with pytest.raises(ValueError, match="boundary"):
            MultipartDecoder("multipart/form-data", lambda name, value: None)

    @pytest.mark.asyncio
    async def test_upload_read(self) -> None:
        upload = UploadFile("a.txt", "text/plain", 3, b"abc")
        assert await upload.read() == b"abc"
        assert repr(upload) == "UploadFile('a.txt', 'text/plain', 3 bytes)"


class TestJsonDecoder:
    def test_one_field_per_key(self) -> None:
        fields, on_field = _collect()
        decoder = JsonDecoder(on_field)
        decoder.feed(b'{"a": 1, ')
        decoder.feed(b'"b": {"c": [true]}}')
        decoder.finish()
        assert fields == [("a", 1), ("b", {"c": [True]})]

    def test_empty_body_has_no_fields(self) -> None:
        fields, on_field = _collect()
        decoder = JsonDecoder(on_field)
        decoder.feed(b"  ")
        decoder.finish()
        assert fields == []

    def test_non_object_rejected(self) -> None:
        decoder = JsonDecoder(lambda name, value: None)
        decoder.feed(b"[1, 2]")
        with pytest.raises(ValueError, match="object"):
            decoder.finish()

    def test_invalid_json(self) -> None:
        decoder = JsonDecoder(lambda name, value: None)
        decoder.feed(b"{oops")
        with pytest.raises(ValueError):
            decoder.finish()


class TestCreateDecoder:
    @pytest.mark.parametrize(
        ("content_type", "expected"),
        [
            ("application/json", JsonDecoder),
            ("application/vnd.api+json; charset=utf-8", JsonDecoder),
            ("application/x-www-form-urlencoded", UrlencodedDecoder),
            ("multipart/form-data; boundary=x", MultipartDecoder),
        ],
    )
    def test_selection(self, content_type: str, expected: type) -> None:
        assert isinstance(create_decoder(content_type, lambda name, value: None), expected)

    def test_unsupported(self) -> None:
        with pytest.raises(ValueError, match="Unsupported"):
            create_decoder("text/plain", lambda name, value: None)

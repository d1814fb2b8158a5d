"""Streaming decoders for structured request bodies.

Each decoder is fed body chunks as they arrive from ASGI ``receive`` and
reports every decoded field through an ``on_field(name, value)``
callback, so the body map fills up incrementally.

- ``application/x-www-form-urlencoded``: ``python-multipart`` querystring parser
- ``multipart/form-data``: ``python-multipart`` multipart parser
- ``application/json``: stdlib ``json`` at end of stream, one field per key

Decoders raise ``ValueError`` (``python-multipart``'s ``FormParserError``
is one) on malformed input; the body aggregator turns that into a
``BodyDecodeError``.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import unquote_plus

from python_multipart import MultipartParser, QuerystringParser
from python_multipart.multipart import parse_options_header

type FieldCallback = Callable[[str, Any], None]


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission.

    The content is held in memory as bytes, which suits typical web
    uploads.
    """

    filename: str
    content_type: str
    size: int
    _content: bytes

    async def read(self) -> bytes:
        """Return the file content as bytes."""
        return self._content

    def __repr__(self) -> str:
        return f"UploadFile({self.filename!r}, {self.content_type!r}, {self.size} bytes)"


class FieldDecoder(Protocol):
    """Incremental body decoder."""

    def feed(self, chunk: bytes) -> None: ...
    def finish(self) -> None: ...


def _decode_text(raw: bytes) -> str:
    return unquote_plus(raw.decode("utf-8", errors="replace"))


class UrlencodedDecoder:
    """Decode ``application/x-www-form-urlencoded`` bodies field by field."""

    __slots__ = ("_data", "_name", "_on_field", "_parser")

    def __init__(self, on_field: FieldCallback) -> None:
        self._on_field = on_field
        self._name = bytearray()
        self._data = bytearray()
        self._parser = QuerystringParser(
            {
                "on_field_start": self._on_field_start,
                "on_field_name": self._on_field_name,
                "on_field_data": self._on_field_data,
                "on_field_end": self._on_field_end,
            }
        )

    def _on_field_start(self) -> None:
        self._name = bytearray()
        self._data = bytearray()

    def _on_field_name(self, data: bytes, start: int, end: int) -> None:
        self._name.extend(data[start:end])

    def _on_field_data(self, data: bytes, start: int, end: int) -> None:
        self._data.extend(data[start:end])

    def _on_field_end(self) -> None:
        if self._name:
            self._on_field(_decode_text(bytes(self._name)), _decode_text(bytes(self._data)))

    def feed(self, chunk: bytes) -> None:
        self._parser.write(chunk)

    def finish(self) -> None:
        self._parser.finalize()


class MultipartDecoder:
    """Decode ``multipart/form-data`` bodies part by part.

    Plain parts become ``str`` fields; parts with a filename become
    ``UploadFile`` values.
    """

    __slots__ = ("_data", "_field_name", "_filename", "_headers", "_on_field", "_parser", "_pending")

    def __init__(self, content_type: str, on_field: FieldCallback) -> None:
        _, options = parse_options_header(content_type.encode("latin-1"))
        boundary = options.get(b"boundary")
        if not boundary:
            msg = "Multipart form data missing boundary parameter"
            raise ValueError(msg)

        self._on_field = on_field
        self._headers: dict[str, str] = {}
        self._pending = ""
        self._data = bytearray()
        self._field_name: str | None = None
        self._filename: str | None = None
        self._parser = MultipartParser(
            boundary,
            {
                "on_part_begin": self._on_part_begin,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
            },
        )

    def _on_part_begin(self) -> None:
        self._headers = {}
        self._pending = ""
        self._data = bytearray()
        self._field_name = None
        self._filename = None

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._data.extend(data[start:end])

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._pending += data[start:end].decode("latin-1").lower()

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._headers[self._pending] = self._headers.get(self._pending, "") + data[start:end].decode("latin-1")

    def _on_header_end(self) -> None:
        if self._pending == "content-disposition":
            _, params = parse_options_header(self._headers[self._pending].encode("latin-1"))
            name = params.get(b"name")
            if name is not None:
                self._field_name = name.decode("utf-8")
            filename = params.get(b"filename")
            if filename is not None:
                self._filename = filename.decode("utf-8")
        self._pending = ""

    def _on_part_end(self) -> None:
        if self._field_name is None:
            return
        if self._filename is not None:
            content = bytes(self._data)
            value: Any = UploadFile(
                filename=self._filename,
                content_type=self._headers.get("content-type", "application/octet-stream"),
                size=len(content),
                _content=content,
            )
        else:
            value = self._data.decode("utf-8", errors="replace")
        self._on_field(self._field_name, value)

    def feed(self, chunk: bytes) -> None:
        self._parser.write(chunk)

    def finish(self) -> None:
        self._parser.finalize()


class JsonDecoder:
    """Decode a JSON object body into one field per top-level key."""

    __slots__ = ("_chunks", "_on_field")

    def __init__(self, on_field: FieldCallback) -> None:
        self._on_field = on_field
        self._chunks: list[bytes] = []

    def feed(self, chunk: bytes) -> None:
        self._chunks.append(chunk)

    def finish(self) -> None:
        raw = b"".join(self._chunks)
        if not raw.strip():
            return
        data = json.loads(raw)
        if not isinstance(data, dict):
            msg = f"JSON body must be an object, got {type(data).__name__}"
            raise ValueError(msg)
        for name, value in data.items():
            self._on_field(name, value)


def create_decoder(content_type: str, on_field: FieldCallback) -> FieldDecoder:
    """Pick the decoder for *content_type*.

    Raises:
        ValueError: If the content type has no structured decoder.
    """
    ct_lower = content_type.lower()
    if "json" in ct_lower:
        return JsonDecoder(on_field)
    if "multipart/form-data" in ct_lower:
        return MultipartDecoder(content_type, on_field)
    if "urlencoded" in ct_lower:
        return UrlencodedDecoder(on_field)
    msg = f"Unsupported structured content type: {content_type!r}"
    raise ValueError(msg)

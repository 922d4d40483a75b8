import pytest

from smee_relay._errors import SmeeStreamError
from smee_relay._sse import (
    SSEDecoder,
    SSEEvent,
    aiter_sse_events,
    asplit_lines,
    iter_sse_events,
    split_lines,
)


def lines_of(text: str) -> list[str]:
    return text.split("\n")


def test_iter_sse_events_two_events() -> None:
    text = "id: 1\nevent: push\ndata: hello\n\ndata: world\n\n"
    events = list(iter_sse_events(lines_of(text)))

    assert events == [
        SSEEvent(id="1", name="push", data=b"hello"),
        SSEEvent(id="", name="", data=b"world"),
    ]


def test_data_lines_are_concatenated_without_delimiter() -> None:
    events = list(iter_sse_events(["data: {\"a\":", "data: 1}", ""]))

    assert len(events) == 1
    assert events[0].data == b"{\"a\":1}"
    assert events[0].json() == {"a": 1}


def test_last_id_and_name_win() -> None:
    events = list(iter_sse_events(["id: 1", "event: a", "id: 2", "event: b", "data: x", ""]))

    assert events[0].id == "2"
    assert events[0].name == "b"


def test_value_skips_exactly_one_character_after_colon() -> None:
    events = list(iter_sse_events(["id:77", "data:  two spaces", "event:", ""]))

    # Solo se descarta un caracter despues de los dos puntos.
    assert events[0].id == "7"
    assert events[0].data == b" two spaces"
    assert events[0].name == ""


def test_unterminated_event_is_not_delivered() -> None:
    events = list(iter_sse_events(["data: one", "", "id: 2", "data: partial"]))

    assert [e.data for e in events] == [b"one"]


def test_blank_line_without_fields_yields_empty_event() -> None:
    events = list(iter_sse_events(["", "data: x", ""]))

    assert events == [SSEEvent(), SSEEvent(data=b"x")]


def test_accepts_bytes_and_line_terminators() -> None:
    events = list(iter_sse_events([b"id: 9\r\n", b"data: caf\xc3\xa9\n", b"\r\n"]))

    assert events[0].id == "9"
    assert events[0].data == "café".encode("utf-8")
    assert events[0].text == "café"


def test_garbage_line_raises_protocol_violation_and_discards_event() -> None:
    decoder = SSEDecoder()
    assert decoder.feed("data: kept") is None
    assert decoder.pending

    with pytest.raises(SmeeStreamError) as exc:
        decoder.feed("garbage")

    assert exc.value.kind == "protocol_violation"
    assert exc.value.line == "garbage"
    assert not decoder.pending
    # El evento parcial se descarto: el siguiente terminador produce un evento vacio.
    assert decoder.feed("") == SSEEvent()


def test_iteration_stops_at_violation() -> None:
    delivered: list[SSEEvent] = []

    with pytest.raises(SmeeStreamError) as exc:
        for event in iter_sse_events(["data: a", "", "data: b", "garbage", "data: c", ""]):
            delivered.append(event)

    assert exc.value.is_protocol_violation
    assert [e.data for e in delivered] == [b"a"]


@pytest.mark.parametrize("line", [": keepalive", "retry: 1000", "data", "Data: x"])
def test_strict_mode_rejects_other_lines(line: str) -> None:
    with pytest.raises(SmeeStreamError):
        SSEDecoder().feed(line)


def test_lenient_mode_ignores_comments_and_retry() -> None:
    decoder = SSEDecoder(strict=False)
    lines = [": ping", "retry: 3000", "data: x", ""]

    events = list(iter_sse_events(lines, decoder))

    assert events == [SSEEvent(data=b"x")]


def test_lenient_mode_still_rejects_garbage() -> None:
    with pytest.raises(SmeeStreamError) as exc:
        SSEDecoder(strict=False).feed("garbage")

    assert exc.value.kind == "protocol_violation"


@pytest.mark.asyncio
async def test_aiter_sse_events() -> None:
    async def source():
        for line in ["event: ready", "data: {}", "", "data: [1]", ""]:
            yield line

    events = [e async for e in aiter_sse_events(source())]

    assert [e.name for e in events] == ["ready", ""]
    assert events[1].json() == [1]


def test_split_lines_only_on_newline():
    chunks = [b"data: a\rb\n", b"id: 1\r", b"\n\n", b"data: \xff", b"\xfe\n", b"tail"]

    lines = list(split_lines(chunks))

    assert lines == [b"data: a\rb", b"id: 1", b"", b"data: \xff\xfe", b"tail"]


def test_embedded_carriage_return_is_data():
    events = list(iter_sse_events(split_lines([b"data: a\rb\r\n\r\n"])))

    assert events == [SSEEvent(data=b"a\rb")]


def test_non_utf8_data_is_kept_as_bytes():
    events = list(iter_sse_events(split_lines([b"data: \xff\xfe\n\n"])))

    assert events[0].data == b"\xff\xfe"


@pytest.mark.asyncio
async def test_asplit_lines_across_chunks():
    async def chunks():
        for chunk in [b"event: pu", b"sh\ndata: x", b"\n", b"\n"]:
            yield chunk

    events = [e async for e in aiter_sse_events(asplit_lines(chunks()))]

    assert events == [SSEEvent(name="push", data=b"x")]

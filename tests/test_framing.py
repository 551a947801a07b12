from leasebot.streaming.framing import SSELineDecoder


def _feed_all(chunks):
    decoder = SSELineDecoder()
    out = []
    for chunk in chunks:
        out.extend(decoder.feed(chunk))
    out.extend(decoder.flush())
    return out


def test_record_split_across_chunks_yields_one_payload():
    payloads = _feed_all([b'data: {"typ', b'e":"ping"}\n\n'])
    assert payloads == ['{"type":"ping"}']


def test_multibyte_character_split_across_chunks():
    raw = 'data: {"text":"café"}\n'.encode("utf-8")
    cut = raw.index(b"\xc3") + 1
    payloads = _feed_all([raw[:cut], raw[cut:]])
    assert payloads == ['{"text":"café"}']


def test_event_lines_comments_and_blank_lines_are_skipped():
    body = b": keepalive\nevent: message_start\nid: 7\ndata: {\"a\":1}\n\nevent: ping\ndata:{\"b\":2}\n\n"
    assert _feed_all([body]) == ['{"a":1}', '{"b":2}']


def test_crlf_line_endings():
    assert _feed_all([b"data: x\r\n\r\ndata: y\r\n"]) == ["x", "y"]


def test_incomplete_tail_is_held_until_flush():
    decoder = SSELineDecoder()
    assert list(decoder.feed(b"data: first\ndata: sec")) == ["first"]
    assert list(decoder.feed(b"ond")) == []
    assert list(decoder.flush()) == ["second"]
    assert list(decoder.flush()) == []


def test_empty_data_lines_are_ignored():
    assert _feed_all([b"data:\ndata: \n"]) == []

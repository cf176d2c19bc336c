import json

import pytest

from chatkit_core.domain.models import DecodeResult
from chatkit_core.protocol.decoder import decode, extract_error_message, extract_text, extract_thread_id


def sse(*events):
    return "".join(f"data: {json.dumps(e)}\n\n" for e in events)


def item_done(*texts, item_type="assistant_message"):
    return {
        "type": "thread.item.done",
        "item": {
            "type": item_type,
            "content": [{"type": "output_text", "text": t} for t in texts],
        },
    }


def item_updated(text):
    return {
        "type": "thread.item.updated",
        "update": {"type": "content_part_added", "part": {"text": text}},
    }


def test_decode_sse_thread_and_text():
    body = (
        'data: {"type":"thread.created","thread":{"id":"t1"}}\n\n'
        'data: {"type":"thread.item.done","item":{"type":"assistant_message",'
        '"content":[{"type":"output_text","text":"Hi there"}]}}\n\n'
    )
    res = decode(body)
    assert res == DecodeResult(thread_id="t1", text="Hi there")


def test_decode_sse_concatenates_fragments_in_arrival_order():
    body = sse(
        item_updated("a"),
        item_done("b", "c"),
        item_updated("d"),
        {"type": "thread.item.added", "item": {"type": "assistant_message"}},
        item_updated("e"),
    )
    assert decode(body).text == "abcde"


def test_decode_sse_done_after_deltas_is_double_counted():
    # done 事件不会覆盖之前的增量，而是继续追加
    body = sse(item_updated("Hel"), item_updated("lo"), item_done("Hello"))
    assert decode(body).text == "HelloHello"


def test_decode_sse_skips_malformed_line():
    body = 'data: {not json\n' + sse(item_updated("ok"))
    res = decode(body)
    assert res.text == "ok"
    assert res.thread_id is None


def test_decode_sse_ignores_non_data_lines_and_prefix_variants():
    body = (
        "event: message\n"
        ": keep-alive\n"
        'data:{"type":"thread.item.updated","update":{"type":"content_part_added","part":{"text":"x"}}}\n'
        + sse(item_updated("y"))
    )
    assert decode(body).text == "y"


def test_decode_sse_thread_created_without_id_is_ignored():
    body = sse(
        {"type": "thread.created", "thread": {"id": "t1"}},
        {"type": "thread.created", "thread": {}},
        {"type": "thread.created"},
    )
    assert decode(body).thread_id == "t1"


def test_decode_sse_last_thread_created_wins():
    body = sse(
        {"type": "thread.created", "thread": {"id": "t1"}},
        {"type": "thread.created", "thread": {"id": "t2"}},
    )
    assert decode(body).thread_id == "t2"


def test_decode_sse_ignores_non_assistant_items_and_other_blocks():
    body = sse(
        item_done("user text", item_type="user_message"),
        {
            "type": "thread.item.done",
            "item": {
                "type": "assistant_message",
                "content": [
                    {"type": "output_text", "text": "one"},
                    {"type": "annotation", "text": "skip"},
                    {"type": "output_text", "text": ""},
                    {"type": "output_text", "text": 5},
                    "junk",
                    {"type": "output_text", "text": "two"},
                ],
            },
        },
    )
    assert decode(body).text == "onetwo"


def test_decode_sse_tolerates_odd_shapes():
    body = sse(
        {"type": "thread.item.done", "item": {"type": "assistant_message", "content": 42}},
        {"type": "thread.item.updated", "update": {"type": "content_part_added", "part": "x"}},
        {"type": "thread.item.updated", "update": {"type": "other", "part": {"text": "no"}}},
        {"type": "thread.created", "thread": ["t"]},
    ) + "data: null\ndata: [1, 2]\ndata: \"str\"\n"
    assert decode(body) == DecodeResult()


def test_decode_sse_handles_crlf_and_missing_trailing_newline():
    body = 'data: {"type":"thread.created","thread":{"id":"t9"}}\r\n' + \
        'data: {"type":"thread.item.updated","update":{"type":"content_part_added","part":{"text":"z"}}}'
    assert decode(body) == DecodeResult(thread_id="t9", text="z")


def test_decode_bytes_body():
    body = sse(item_updated("bytes ok")).encode("utf-8")
    assert decode(body).text == "bytes ok"


@pytest.mark.parametrize("body", ["", "garbage\nmore garbage", {}, None, [], 42, b"\xff\xfe", "data: "])
def test_decode_is_total(body):
    res = decode(body)
    assert isinstance(res, DecodeResult)
    assert res.text == ""
    assert res.thread_id is None


def test_decode_object_choices_fallback():
    res = decode({"choices": [{"message": {"content": "fallback text"}}]})
    assert res.text == "fallback text"
    assert res.thread_id is None


def test_decode_object_fallback_order():
    data = {
        "output": "o",
        "response": "r",
        "message": "m",
        "content": "c",
        "text": "t",
    }
    assert extract_text(data) == "o"
    data["output"] = ""
    assert extract_text(data) == "r"
    del data["response"]
    assert extract_text(data) == "m"
    data["message"] = {"role": "assistant"}
    assert extract_text(data) == "c"
    data["content"] = [{"type": "output_text", "text": "x"}]
    assert extract_text(data) == "t"


def test_decode_object_item_content_before_choices():
    data = {
        "item": {"content": [{"type": "output_text", "text": "A"}, {"type": "output_text", "text": "B"}]},
        "choices": [{"message": {"content": "C"}}],
    }
    assert extract_text(data) == "AB"
    data["item"]["content"] = [{"type": "input_text", "text": "A"}]
    assert extract_text(data) == "C"


def test_decode_object_no_match_is_empty():
    assert extract_text({"output": 1, "choices": [], "item": {"content": "x"}}) == ""
    assert extract_text({"choices": [{"message": {"content": None}}]}) == ""


def test_decode_object_thread_id_nested_wins():
    assert extract_thread_id({"thread_id": "top"}) == "top"
    assert extract_thread_id({"thread": {"id": "nested"}}) == "nested"
    assert extract_thread_id({"thread_id": "top", "thread": {"id": "nested"}}) == "nested"
    assert extract_thread_id({"thread_id": "top", "thread": {"id": ""}}) == "top"
    res = decode({"thread_id": "top", "thread": {"id": "nested"}, "text": "hi"})
    assert res == DecodeResult(thread_id="nested", text="hi")


def test_extract_error_message():
    assert extract_error_message({"detail": {"message": "rate limited"}}) == "rate limited"
    assert extract_error_message({"detail": "plain"}) is None
    assert extract_error_message({"detail": {"message": ""}}) is None
    assert extract_error_message("Internal Server Error") is None
    assert extract_error_message(None) is None

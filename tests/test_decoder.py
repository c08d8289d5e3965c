"""Tests for the SSE stream decoder."""

import json

import pytest

from perp.exceptions import StreamReadError
from perp.llm.base import Message, StreamingChoice
from perp.llm.decoder import (
    DecoderState,
    StreamDecoder,
    render_citations,
    select_content,
    transition,
)


def run(lines, **kwargs):
    """Decode lines, returning (decoder, emitted text pieces)."""
    out = []
    decoder = StreamDecoder(**kwargs)
    decoder.consume(lines, write=out.append)
    return decoder, out


class TestSelectContent:
    """The delta/message fallback."""

    def test_prefers_delta(self):
        choice = StreamingChoice(Message("assistant", "inc"), Message("assistant", "full"))
        assert select_content(choice) == "inc"

    def test_falls_back_to_message(self):
        choice = StreamingChoice(Message("", ""), Message("assistant", "full"))
        assert select_content(choice) == "full"

    def test_both_empty(self):
        choice = StreamingChoice(Message("", ""), Message("", ""))
        assert select_content(choice) == ""


class TestTransition:
    """The pure per-line transition function."""

    def test_blank_line_keeps_state(self):
        step = transition(DecoderState.STREAMING, "   \n", latched=False)
        assert step.state is DecoderState.STREAMING
        assert step.text == ""
        assert step.citations is None

    def test_sentinel(self):
        step = transition(DecoderState.STREAMING, "data: [DONE]", latched=False)
        assert step.state is DecoderState.DONE

    def test_sentinel_without_space(self):
        assert transition(DecoderState.STREAMING, "data:[DONE]\r\n", False).state is DecoderState.DONE

    def test_done_is_terminal(self, make_chunk):
        step = transition(DecoderState.DONE, make_chunk("late"), latched=False)
        assert step.state is DecoderState.DONE
        assert step.text == ""

    def test_delta_text_in_choice_order(self, make_chunk):
        step = transition(DecoderState.STREAMING, make_chunk("a", "b", "c"), latched=True)
        assert step.state is DecoderState.STREAMING
        assert step.text == "abc"

    def test_message_fallback(self, make_chunk):
        step = transition(DecoderState.STREAMING, make_chunk("whole reply", field="message"), True)
        assert step.text == "whole reply"

    def test_latch_fires_when_not_latched(self, make_chunk):
        step = transition(DecoderState.STREAMING, make_chunk("x", citations=["a"]), latched=False)
        assert step.citations == ["a"]

    def test_latch_does_not_fire_when_latched(self, make_chunk):
        step = transition(DecoderState.STREAMING, make_chunk("x", citations=["a"]), latched=True)
        assert step.citations is None

    def test_latch_fires_with_missing_citations(self, make_chunk):
        step = transition(DecoderState.STREAMING, make_chunk("x"), latched=False)
        assert step.citations == []

    def test_malformed_data_line(self):
        step = transition(DecoderState.STREAMING, "data: {not json", latched=False)
        assert step.state is DecoderState.ERROR_CONTINUE
        assert step.error.startswith("Error parsing JSON")
        assert step.text == ""

    def test_error_continue_is_not_sticky(self, make_chunk):
        step = transition(DecoderState.ERROR_CONTINUE, make_chunk("ok"), latched=True)
        assert step.state is DecoderState.STREAMING
        assert step.text == "ok"

    def test_wrong_shape_is_decode_error(self):
        step = transition(DecoderState.STREAMING, 'data: {"choices": "nope"}', latched=False)
        assert step.state is DecoderState.ERROR_CONTINUE

    def test_unprefixed_json_emits_without_latch(self):
        line = json.dumps({
            "choices": [{"delta": {"content": "bare"}}],
            "citations": ["http://bare"],
        })
        step = transition(DecoderState.STREAMING, line, latched=False)
        assert step.text == "bare"
        assert step.citations is None

    def test_unprefixed_garbage_is_silent(self):
        step = transition(DecoderState.STREAMING, ": keep-alive", latched=False)
        assert step.state is DecoderState.STREAMING
        assert step.error is None
        assert step.text == ""

    def test_bytes_line(self, make_chunk):
        step = transition(DecoderState.STREAMING, make_chunk("é").encode("utf-8") + b"\n", True)
        assert step.text == "é"


class TestStreamDecoder:
    """Full sessions over canned line sequences."""

    def test_emits_delta_content_verbatim(self, make_chunk):
        decoder, out = run([make_chunk("Hello"), "", make_chunk(", "), make_chunk("world!"), "data: [DONE]"])
        assert out == ["Hello", ", ", "world!"]
        assert decoder.text == "Hello, world!"
        assert decoder.state is DecoderState.DONE

    def test_citation_latch_first_choice_chunk_wins(self, make_chunk):
        lines = [
            'data: {"choices": [], "citations": ["early"]}',
            make_chunk("one", citations=["a", "b"]),
            make_chunk("two", citations=["c"]),
            "data: [DONE]",
        ]
        decoder, out = run(lines)
        assert decoder.citations == ["a", "b"]
        assert "".join(out) == "onetwo"

    def test_empty_choices_do_not_latch_or_emit(self, make_chunk):
        decoder, out = run(['data: {"choices": [], "citations": ["x"]}', make_chunk("hi", citations=["y"])])
        assert out == ["hi"]
        assert decoder.citations == ["y"]

    def test_empty_citation_list_locks_latch(self, make_chunk):
        decoder, _ = run([make_chunk("a", citations=[]), make_chunk("b", citations=["late"])])
        assert decoder.citations == []

    def test_sentinel_stops_reading(self, make_chunk):
        read = []

        def lines():
            for line in [make_chunk("before"), "data: [DONE]", make_chunk("after")]:
                read.append(line)
                yield line

        decoder, out = run(lines())
        assert out == ["before"]
        assert len(read) == 2
        assert decoder.done

    def test_malformed_line_reported_and_decoding_continues(self, make_chunk):
        errors = []
        decoder, out = run([make_chunk("a"), "data: {not json", make_chunk("b")], on_error=errors.append)
        assert out == ["a", "b"]
        assert len(errors) == 1
        assert errors[0].startswith("Error parsing JSON")
        assert decoder.errors == errors

    def test_unprefixed_noise_not_reported(self, make_chunk):
        errors = []
        _, out = run(["event: message", "id: 7", make_chunk("a")], on_error=errors.append)
        assert out == ["a"]
        assert errors == []

    def test_end_of_input_without_sentinel(self, make_chunk):
        decoder, out = run([make_chunk("partial")])
        assert out == ["partial"]
        assert decoder.done
        assert decoder.read_error is None

    def test_read_error_ends_session(self, make_chunk):
        errors = []

        def lines():
            yield make_chunk("kept", citations=["http://c"])
            raise StreamReadError("connection reset")

        decoder, out = run(lines(), on_error=errors.append)
        assert out == ["kept"]
        assert decoder.done
        assert isinstance(decoder.read_error, StreamReadError)
        assert decoder.citations == ["http://c"]
        assert errors == ["Error reading stream: connection reset"]

    def test_closes_iterator(self, make_chunk):
        closed = []

        def lines():
            try:
                yield make_chunk("a")
                yield "data: [DONE]"
                yield make_chunk("never")
            finally:
                closed.append(True)

        run(lines())
        assert closed == [True]

    def test_on_line_sees_raw_lines(self, make_chunk):
        seen = []
        run([make_chunk("a"), "data: [DONE]"], on_line=seen.append)
        assert seen == [make_chunk("a"), "data: [DONE]"]

    def test_independent_sessions_are_identical(self, make_chunk):
        lines = [make_chunk("x", citations=["u1", "u2"]), "data: {bad", make_chunk("y", field="message"), "data: [DONE]"]
        first, first_out = run(list(lines))
        second, second_out = run(list(lines))
        assert first_out == second_out == ["x", "y"]
        assert first.citations == second.citations == ["u1", "u2"]

    def test_citations_property_is_a_copy(self, make_chunk):
        decoder, _ = run([make_chunk("x", citations=["u"])])
        decoder.citations.append("mutated")
        assert decoder.citations == ["u"]


def test_render_citations():
    rendered = render_citations(["http://x", "http://y"])
    assert rendered == "\n\nCitations:\n[1]: http://x\n[2]: http://y\n"


@pytest.mark.parametrize("citations", [["only"], ["a", "b", "c"]])
def test_render_citations_is_one_based_and_ordered(citations):
    lines = render_citations(citations).strip().splitlines()[1:]
    assert lines == [f"[{i + 1}]: {c}" for i, c in enumerate(citations)]

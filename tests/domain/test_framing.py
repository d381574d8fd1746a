import json

from qrc_client.domain.errors import ParseError
from qrc_client.domain.framing import FrameParser, parse_frames

FRAMES = [
    {"jsonrpc": "2.0", "id": 1, "result": {"Name": "Gain", "Controls": [{"Name": "gain", "Value": -12.5}]}},
    {"jsonrpc": "2.0", "method": "EngineStatus", "params": {"State": "Active"}},
    {"jsonrpc": "2.0", "id": 2, "result": "café ✓ lobby"},
]


def encode(frames: list[dict]) -> bytes:
    return b"".join(json.dumps(f, ensure_ascii=False).encode("utf-8") + b"\x00" for f in frames)


class TestFrameParser:
    def test_single_frame(self):
        parser = FrameParser()
        assert list(parser.feed(encode(FRAMES[:1]))) == FRAMES[:1]
        assert parser.pending == 0

    def test_multiple_frames_in_one_read_keep_order(self):
        parser = FrameParser()
        assert list(parser.feed(encode(FRAMES))) == FRAMES

    def test_accepts_text_input(self):
        parser = FrameParser()
        assert list(parser.feed('{"id": 7, "result": true}\u0000')) == [{"id": 7, "result": True}]

    def test_incomplete_frame_is_retained(self):
        stream = encode(FRAMES[:1])
        parser = FrameParser()
        assert list(parser.feed(stream[:-5])) == []
        assert parser.pending == len(stream) - 5
        assert parser.errors == []
        assert list(parser.feed(stream[-5:])) == FRAMES[:1]

    def test_every_two_way_split_gives_same_frames(self):
        stream = encode(FRAMES)
        for split in range(len(stream) + 1):
            parser = FrameParser()
            parsed = list(parser.feed(stream[:split])) + list(parser.feed(stream[split:]))
            assert parsed == FRAMES, f"split at {split}"
            assert parser.errors == []

    def test_byte_at_a_time(self):
        stream = encode(FRAMES)
        parser = FrameParser()
        parsed = []
        for i in range(len(stream)):
            parsed.extend(parser.feed(stream[i : i + 1]))
        assert parsed == FRAMES
        assert parser.errors == []

    def test_empty_segments_are_skipped(self):
        parser = FrameParser()
        assert list(parser.feed(b"\x00\x00" + encode(FRAMES[:1]) + b"\x00")) == FRAMES[:1]

    def test_corrupt_frame_between_valid_frames_is_dropped(self):
        first = encode(FRAMES[:1])
        stream = first + b'{"id": 3, "resu\x00' + encode(FRAMES[2:])
        parser = FrameParser()
        assert list(parser.feed(stream)) == [FRAMES[0], FRAMES[2]]
        assert len(parser.errors) == 1
        error = parser.errors[0]
        assert isinstance(error, ParseError)
        assert error.offset == len(first)
        assert error.excerpt.startswith('{"id": 3')

    def test_invalid_utf8_counts_as_corrupt(self):
        parser = FrameParser()
        assert list(parser.feed(b"\xff\xfe\x00" + encode(FRAMES[:1]))) == FRAMES[:1]
        assert len(parser.errors) == 1
        assert parser.errors[0].offset == 0

    def test_unconsumed_iterator_keeps_remaining_frames(self):
        parser = FrameParser()
        frames = parser.feed(encode(FRAMES))
        assert next(frames) == FRAMES[0]
        assert list(parser.feed(b"")) == FRAMES[1:]

    def test_flush_parses_unterminated_complete_frame(self):
        parser = FrameParser()
        assert list(parser.feed(json.dumps(FRAMES[0]))) == []
        assert parser.flush() == [FRAMES[0]]
        assert parser.pending == 0

    def test_flush_discards_truncated_frame_without_error(self):
        parser = FrameParser()
        list(parser.feed('{"id": 1, "res'))
        assert parser.flush() == []
        assert parser.errors == []
        assert parser.pending == 0

    def test_flush_on_empty_buffer(self):
        assert FrameParser().flush() == []


class TestParseFrames:
    def test_parses_cumulative_snapshot(self):
        assert list(parse_frames(encode(FRAMES))) == FRAMES

    def test_ignores_unterminated_tail(self):
        stream = encode(FRAMES[:2]) + b'{"id": 2'
        assert list(parse_frames(stream)) == FRAMES[:2]

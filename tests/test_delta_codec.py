"""Line delta encoder/decoder tests: wire format, run cap, escaping, rejection."""
import io
import random

import pytest

from logpack_delta import (
    DeltaDecoder,
    DeltaEncoder,
    decode_first,
    decode_next,
    encode_first,
    encode_next,
)
from logpack_lines import split_lines
from logpack_primitives import (
    CONTROL_BYTE,
    DeltaConfig,
    LineTooLongError,
    MalformedStreamError,
)


def _roundtrip(lines):
    encoder, decoder = DeltaEncoder(), DeltaDecoder()
    return [decoder.decode(encoder.encode(line)) for line in lines]


def _pair_roundtrip(previous, current):
    encoded = encode_next(previous, current)
    assert decode_next(previous, encoded) == current
    return encoded


class TestWireFormat:
    def test_single_interior_difference(self):
        encoded = _pair_roundtrip(b"abcXdef\n", b"abcYdef\n")
        assert encoded == b"\x7f\x83Y\x7f\x83\n"

    def test_terminators_are_always_literal(self):
        assert _pair_roundtrip(b"ab\r\n", b"ab\r\n") == b"\x7f\x82\r\n"
        assert _pair_roundtrip(b"\n", b"\n") == b"\n"

    def test_run_of_one_is_literal(self):
        assert _pair_roundtrip(b"aXbY\n", b"aZbW\n") == b"aZbW\n"

    def test_first_line_is_identity(self):
        line = b"\x7f\x85 raw first line\r\n"
        assert encode_first(line) == line
        assert decode_first(line) == line

    def test_inputs_are_not_mutated(self):
        previous, current = bytearray(b"abc\n"), bytearray(b"abd\n")
        encode_next(previous, current)
        assert previous == b"abc\n" and current == b"abd\n"


class TestRunCap:
    def test_exactly_127_shared_bytes(self):
        previous = b"a" * 127 + b"X\n"
        current = b"a" * 127 + b"Y\n"
        assert _pair_roundtrip(previous, current) == b"\x7f\xffY\n"

    def test_128_shared_bytes_split_into_capped_copy_and_literal(self):
        previous = b"a" * 128 + b"X\n"
        current = b"a" * 128 + b"Y\n"
        assert _pair_roundtrip(previous, current) == b"\x7f\xffaY\n"

    def test_long_shared_prefix_uses_consecutive_copies(self):
        line = b"b" * 300 + b"\n"
        encoded = _pair_roundtrip(line, line)
        # 127 + 127 + 46, then the terminator
        assert encoded == b"\x7f\xff\x7f\xff\x7f\xae\n"


class TestSelfEscaping:
    def test_control_byte_line_first_and_repeated(self):
        lines = [b"\x7f\n", b"\x7f\n", b"a\n", b"\x7f\n", b"\x7f"]
        assert _roundtrip(lines) == lines

    def test_repeated_control_byte_line_is_escaped_literal(self):
        assert _pair_roundtrip(b"\x7f\n", b"\x7f\n") == b"\x7f\x7f\n"

    def test_differing_control_byte_is_escaped(self):
        assert _pair_roundtrip(b"a\n", b"\x7f\n") == b"\x7f\x7f\n"

    def test_control_bytes_inside_copied_region_are_copied(self):
        encoded = _pair_roundtrip(b"x\x7f\x7fy-1\n", b"x\x7f\x7fy-2\n")
        assert encoded == b"\x7f\x852\n"

    def test_control_byte_in_suffix_is_escaped(self):
        assert _pair_roundtrip(b"ab\n", b"ab\n\x7f") == b"\x7f\x82\n\x7f\x7f"


class TestLengthMismatch:
    def test_previous_longer_drops_tail(self):
        assert _pair_roundtrip(b"abcdef\n", b"abc\n") == b"\x7f\x83\n"

    def test_current_longer_appends_suffix_literals(self):
        assert _pair_roundtrip(b"abc\n", b"abcdef\n") == b"\x7f\x83def\n"

    def test_empty_current_and_empty_previous(self):
        assert _pair_roundtrip(b"abc\n", b"") == b""
        assert _pair_roundtrip(b"", b"abc\n") == b"abc\n"


class TestMalformedInput:
    def test_bare_trailing_control_byte(self):
        with pytest.raises(MalformedStreamError, match="bare control byte"):
            decode_next(b"abc\n", b"ab\x7f")

    def test_copy_past_previous_end(self):
        with pytest.raises(MalformedStreamError, match="overruns"):
            decode_next(b"abc\n", b"\x7f\x85\n")

    def test_copy_past_end_after_literals(self):
        with pytest.raises(MalformedStreamError):
            decode_next(b"abc\n", b"xyz\x7f\x82")

    @pytest.mark.parametrize("follower", [0x00, 0x41, 0x0A, 0x80])
    def test_control_byte_followed_by_non_command(self, follower):
        with pytest.raises(MalformedStreamError, match="invalid byte"):
            decode_next(b"abcdef\n", bytes([CONTROL_BYTE, follower]))

    def test_decoder_reports_line_number(self):
        decoder = DeltaDecoder()
        decoder.decode(b"abc\n")
        with pytest.raises(MalformedStreamError) as info:
            decoder.decode(b"\x7f")
        assert info.value.line_number == 2

    def test_decoder_rejects_lines_over_capacity(self):
        decoder = DeltaDecoder(DeltaConfig(capacity=4))
        decoder.decode(b"abc\n")
        with pytest.raises(MalformedStreamError, match="exceeds capacity"):
            decoder.decode(b"\x7f\x83defg")


class TestStatefulCodec:
    def test_encoder_rejects_line_over_capacity(self):
        encoder = DeltaEncoder(DeltaConfig(capacity=4))
        encoder.encode(b"abc\n")
        with pytest.raises(LineTooLongError) as info:
            encoder.encode(b"abcde")
        assert info.value.line_number == 2

    def test_reset_forgets_previous_line(self):
        encoder = DeltaEncoder()
        encoder.encode(b"same\n")
        assert encoder.encode(b"same\n") == b"\x7f\x84\n"
        encoder.reset()
        assert encoder.previous is None
        assert encoder.encode(b"same\n") == b"same\n"

    def test_previous_is_the_last_line(self):
        decoder = DeltaDecoder()
        decoder.decode(b"abcXdef\n")
        decoder.decode(b"\x7f\x83Y\x7f\x83\n")
        assert decoder.previous == b"abcYdef\n"
        assert decoder.lines == 2

    def test_mixed_log_roundtrip(self, mixed_log):
        lines = list(split_lines(io.BytesIO(mixed_log)))
        assert _roundtrip(lines) == lines

    def test_encoded_stream_splits_back_into_lines(self, mixed_log):
        lines = list(split_lines(io.BytesIO(mixed_log)))
        encoder = DeltaEncoder()
        stream = b"".join(encoder.encode(line) for line in lines)
        encoded_lines = list(split_lines(io.BytesIO(stream)))
        assert len(encoded_lines) == len(lines)
        decoder = DeltaDecoder()
        assert [decoder.decode(e) for e in encoded_lines] == lines

    def test_randomized_mutations_roundtrip(self):
        rng = random.Random(1234)
        alphabet = b"abc \x7f\r\t0123456789"
        base = bytearray(rng.choice(alphabet) for _ in range(200))
        lines = []
        for _ in range(300):
            for _ in range(rng.randint(0, 6)):
                pos = rng.randrange(len(base))
                base[pos] = rng.choice(alphabet)
            if rng.random() < 0.2:
                del base[rng.randrange(len(base)):]
                base += bytes(rng.choice(alphabet) for _ in range(rng.randint(1, 250)))
            lines.append(bytes(base) + b"\n")
        assert _roundtrip(lines) == lines


class TestDeltaConfig:
    @pytest.mark.parametrize("kwargs", [
        {"control_byte": 0x0A},
        {"control_byte": 0x0D},
        {"control_byte": 0x80},
        {"max_run": 128},
        {"min_run": 1},
        {"capacity": 0},
    ])
    def test_invalid_configs_are_rejected(self, kwargs):
        with pytest.raises(ValueError):
            DeltaConfig(**kwargs)

    def test_encoded_capacity_covers_fully_escaped_line(self):
        config = DeltaConfig(capacity=8)
        line = b"\x7f" * 8
        assert len(encode_next(b"", line, config)) == config.encoded_capacity

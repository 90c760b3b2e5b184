import pytest

from lora_rx.encoder import hamming_encode
from lora_rx.hamming import (
    SYNDROMES, correct_codeword, decode_codeword, extract_nibble,
    hamming_decode, hamming_decode_with_flags, parity, syndromes,
)


def _all_three_flags(bit, rdd):
    flags = syndromes(1 << bit, rdd)
    return all(flags.get(t, 0) for t in ('t1', 't2', 't4'))


def test_parity():
    assert parity(0b1011, 0xFF) == 1
    assert parity(0b1011, 0b0011) == 0
    assert parity(0, 0xFF) == 0


def test_syndrome_table():
    assert SYNDROMES[1] == ('t1',)
    assert SYNDROMES[2] == ('t1', 't2')
    assert SYNDROMES[3] == ('t1', 't2', 't4')
    assert SYNDROMES[4] == ('t1', 't2', 't4', 't8')
    assert set(syndromes(0xFF, 2)) == {'t1', 't2'}


@pytest.mark.parametrize("rdd", [1, 2, 3, 4])
def test_clean_codewords_decode(rdd):
    for nibble in range(16):
        cw = hamming_encode(nibble, rdd)
        assert cw < (1 << (4 + rdd))
        assert decode_codeword(cw, rdd) == (nibble, False)


@pytest.mark.parametrize("rdd", [3, 4])
def test_single_bit_errors_corrected(rdd):
    for nibble in range(16):
        cw = hamming_encode(nibble, rdd)
        for bit in range(4 + rdd):
            decoded, uncorrected = decode_codeword(cw ^ (1 << bit), rdd)
            if _all_three_flags(bit, rdd):
                assert uncorrected
            else:
                assert decoded == nibble, (nibble, bit)
                assert not uncorrected


def test_only_one_position_is_left_uncorrected():
    assert [b for b in range(8) if _all_three_flags(b, 4)] == [1]
    assert [b for b in range(7) if _all_three_flags(b, 3)] == [0]


@pytest.mark.parametrize("rdd", [1, 2])
def test_low_rates_do_not_correct(rdd):
    for nibble in range(16):
        cw = hamming_encode(nibble, rdd)
        assert decode_codeword(cw ^ 0x1, rdd) == (nibble ^ 0x1, False)


def test_uncorrectable_pattern_passes_through():
    assert correct_codeword(0x01, 3) == (0x01, True)
    assert hamming_encode(1, 4) == 0xD2
    # 0xD2 with its d0 bit flipped: t1, t2 and t4 all fire, 3 bits set
    assert correct_codeword(0xD0, 4) == (0xD0, True)


def test_rdd4_bit_count_cleanup():
    assert correct_codeword(0x01, 4) == (0x00, False)
    assert correct_codeword(0xFE, 4) == (0xFF, False)


def test_extract_nibble_positions():
    assert extract_nibble(0b0010_1110, 4) == 0xF
    assert extract_nibble(0b0001_0111, 3) == 0xF
    assert extract_nibble(0b0011_0101, 2) == 0x5
    assert extract_nibble(0b0001_1010, 1) == 0xA


def test_sequence_decode_reports_uncorrected_indices():
    nibbles, uncorrected = hamming_decode_with_flags([0xD2, 0xD0, 0x00], 4)
    assert nibbles.tolist() == [1, 0, 0]
    assert uncorrected == [1]
    assert hamming_decode([0xD2, 0xFF], 4).tolist() == [1, 15]


def test_bad_rdd():
    with pytest.raises(ValueError):
        hamming_decode([0], 0)

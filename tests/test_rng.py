import itertools

from bonsai.rng import (
    Mulberry32,
    hue_from_identifier,
    seed_from_identifier,
    seed_int_from_identifier,
)

ADDRESS = "0x5eC6AF0798b25C563B102d3469971f1a8d598121"


class TestMulberry32:
    def test_same_seed_same_sequence(self):
        a, b = Mulberry32(12345), Mulberry32(12345)
        assert [a() for _ in range(500)] == [b() for _ in range(500)]

    def test_different_seeds_differ(self):
        a, b = Mulberry32(1), Mulberry32(2)
        assert [a() for _ in range(10)] != [b() for _ in range(10)]

    def test_unit_interval(self):
        rng = Mulberry32(987654321)
        for value in itertools.islice(rng, 10000):
            assert 0.0 <= value < 1.0

    def test_reseed_restarts_stream(self):
        rng = Mulberry32(42)
        first = [rng() for _ in range(20)]
        rng.reseed()
        assert [rng() for _ in range(20)] == first

    def test_reseed_with_new_seed(self):
        rng = Mulberry32(42)
        rng.reseed(7)
        assert [rng() for _ in range(5)] == list(itertools.islice(Mulberry32(7), 5))

    def test_seed_is_reduced_to_32_bits(self):
        assert Mulberry32(2**32 + 5).seed == 5
        assert [Mulberry32(2**32 + 5)() for _ in range(3)] == [Mulberry32(5)() for _ in range(3)]

    def test_known_outputs(self):
        assert list(itertools.islice(Mulberry32(0), 3)) == [
            0.26642920868471265,
            0.0003297457005828619,
            0.2232720274478197,
        ]
        assert list(itertools.islice(Mulberry32(42), 3)) == [
            0.6011037519201636,
            0.44829055899754167,
            0.8524657934904099,
        ]

    def test_not_constant(self):
        values = set(itertools.islice(Mulberry32(0), 1000))
        assert len(values) > 990


class TestSeedDerivation:
    def test_stable(self):
        assert seed_from_identifier(ADDRESS) == seed_from_identifier(ADDRESS)
        assert hue_from_identifier(ADDRESS) == hue_from_identifier(ADDRESS)

    def test_range(self):
        assert 0.0 <= seed_from_identifier(ADDRESS) < 1.0
        assert 0 <= hue_from_identifier(ADDRESS) < 360
        assert 0 <= seed_int_from_identifier(ADDRESS) < 2**31

    def test_degenerate_inputs_map_to_zero(self):
        for ident in ("", None, "0x", "0xzzzz", "hello"):
            assert seed_from_identifier(ident) == 0.0
            assert hue_from_identifier(ident) == 0

    def test_reads_leading_twelve_hex_digits(self):
        assert seed_from_identifier("0x00000000000a") == 10 / 1000000
        # digits past the twelfth are ignored
        assert seed_from_identifier("0x00000000000a" + "f" * 28) == 10 / 1000000

    def test_reduced_modulo_one_million(self):
        # 0xf4240 == 1000000
        assert seed_from_identifier("0x0000000f4240") == 0.0
        assert seed_from_identifier("0x0000000f4241") == 1 / 1000000

    def test_stops_at_first_non_hex_digit(self):
        assert seed_from_identifier("0x10zz") == 16 / 1000000

    def test_prefix_optional(self):
        assert seed_from_identifier("abc") == seed_from_identifier("0xabc")

    def test_distinct_addresses_spread(self):
        seeds = {seed_from_identifier("0x%012x" % (i * 7919) + "0" * 28) for i in range(1, 50)}
        assert len(seeds) == 49

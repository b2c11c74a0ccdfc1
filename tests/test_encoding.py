import pytest

from bonsai.constants import BASE_MAINNET, TIP_RECIPIENT, USDC_CONTRACT
from bonsai.encoding import (
    CallPayload,
    build_send_calls,
    encode_log_action,
    encode_usdc_transfer,
    is_likely_address,
)
from bonsai.errors import ValidationError

WORD = 64
PLANT_WORD = "706c616e74" + "0" * 54
OFFSET_WORD = "0" * 62 + "40"


class TestLogAction:
    def test_plant_vector(self):
        data = encode_log_action("plant")
        assert data == "0x2d9bc1fb" + PLANT_WORD + OFFSET_WORD + "0" * WORD
        assert len(data) == 2 + 8 + 3 * WORD

    def test_layout_words(self):
        body = encode_log_action("water")[10:]
        words = [body[i:i + WORD] for i in range(0, len(body), WORD)]
        assert words[0].startswith("7761746572")
        assert words[1] == OFFSET_WORD
        assert int(words[2], 16) == 0
        assert len(words) == 3

    def test_short_payload_padded_to_word(self):
        data = encode_log_action("graft", "0xdeadbeef")
        tail = data[10 + 2 * WORD:]
        assert tail[:WORD] == "0" * 62 + "04"
        assert tail[WORD:] == "deadbeef" + "0" * 56

    def test_exact_word_payload_needs_no_padding(self):
        payload = "ab" * 32
        data = encode_log_action("water", "0x" + payload)
        tail = data[10 + 2 * WORD:]
        assert int(tail[:WORD], 16) == 32
        assert tail[WORD:] == payload

    def test_payload_one_past_word_boundary(self):
        payload = "cd" * 33
        tail = encode_log_action("water", payload)[10 + 2 * WORD:]
        assert int(tail[:WORD], 16) == 33
        assert len(tail) == 3 * WORD
        assert tail[WORD:] == payload + "0" * 62

    def test_payload_hex_is_lowercased(self):
        assert encode_log_action("plant", "0xABCD").endswith("abcd" + "0" * 60)

    def test_none_payload_is_empty(self):
        assert encode_log_action("plant", None) == encode_log_action("plant")

    def test_odd_length_payload_rejected(self):
        with pytest.raises(ValidationError, match="odd length"):
            encode_log_action("plant", "0xabc")

    def test_non_hex_payload_rejected(self):
        with pytest.raises(ValidationError):
            encode_log_action("plant", "0xzz")

    def test_tag_longer_than_word_rejected(self):
        with pytest.raises(ValidationError):
            encode_log_action("x" * 33)

    def test_multibyte_tag(self):
        word = encode_log_action("盆栽")[10:10 + WORD]
        assert word.startswith("盆栽".encode("utf-8").hex())


class TestUsdcTransfer:
    def test_five_usdc_vector(self):
        data = encode_usdc_transfer(TIP_RECIPIENT, 5000000)
        assert data == (
            "0xa9059cbb"
            + "0" * 24 + "5ec6af0798b25c563b102d3469971f1a8d598121"
            + "0" * 58 + "4c4b40"
        )

    def test_checksummed_and_lowercase_address_encode_the_same(self):
        assert encode_usdc_transfer(TIP_RECIPIENT, 1) == encode_usdc_transfer(TIP_RECIPIENT.lower(), 1)

    def test_max_uint256(self):
        data = encode_usdc_transfer(TIP_RECIPIENT, 2**256 - 1)
        assert data.endswith("f" * WORD)

    @pytest.mark.parametrize("amount", [0, -1, 2**256, 1.5, True])
    def test_bad_amount_rejected(self, amount):
        with pytest.raises(ValidationError):
            encode_usdc_transfer(TIP_RECIPIENT, amount)

    @pytest.mark.parametrize("to", [
        "",
        "0x123",
        TIP_RECIPIENT[2:],
        "0x" + "g" * 40,
        TIP_RECIPIENT + "00",
        " " + TIP_RECIPIENT,
    ])
    def test_bad_recipient_rejected(self, to):
        with pytest.raises(ValidationError):
            encode_usdc_transfer(to, 5000000)


class TestAddresses:
    def test_valid(self):
        assert is_likely_address(TIP_RECIPIENT)
        assert is_likely_address("0x" + "0" * 40)

    def test_invalid(self):
        assert not is_likely_address(None)
        assert not is_likely_address("0X" + "0" * 40)
        assert not is_likely_address("0x" + "0" * 39)


class TestSendCalls:
    def test_payload_shape(self):
        call = CallPayload(to=USDC_CONTRACT, data="0xa9059cbb")
        payload = build_send_calls("0xabc", call, BASE_MAINNET, data_suffix="0xfeed")
        assert payload == {
            "version": "2.0.0",
            "from": "0xabc",
            "chainId": "0x2105",
            "atomicRequired": True,
            "calls": [{"to": USDC_CONTRACT, "value": "0x0", "data": "0xa9059cbb"}],
            "capabilities": {"dataSuffix": "0xfeed"},
        }

    def test_call_payload_is_immutable(self):
        call = CallPayload(to=USDC_CONTRACT, data="0x")
        with pytest.raises(Exception):
            call.value = "0x1"

"""Hand-built calldata for the two contract calls the game makes.

Only two shapes are supported:

* ``logAction(bytes32 action, bytes data)`` on the game contract, used for
  plant / water / revive / graft.
* ``transfer(address to, uint256 amount)`` on the USDC contract, used for tips.

Every word is laid out explicitly. All functions return ``0x``-prefixed
lowercase hex strings.
"""

import logging
import re
import string
from dataclasses import dataclass

from bonsai.constants import (
    BASE_MAINNET,
    LOG_ACTION_SELECTOR,
    TRANSFER_SELECTOR,
    WALLET_CALLS_VERSION,
    WORD_BYTES,
)
from bonsai.errors import ValidationError

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_HEX_DIGITS = frozenset(string.hexdigits)
_WORD_HEX = WORD_BYTES * 2


def is_likely_address(addr):
    return isinstance(addr, str) and _ADDRESS_RE.match(addr) is not None


def strip_0x(hex_str):
    return hex_str[2:] if hex_str.startswith("0x") else hex_str


def utf8_to_hex(text):
    return "0x" + text.encode("utf-8").hex()


def pad_left(hex_no_prefix):
    return hex_no_prefix.rjust(_WORD_HEX, "0")


def pad_right(hex_no_prefix):
    return hex_no_prefix.ljust(_WORD_HEX, "0")


def encode_log_action(action, data_hex="0x"):
    """Calldata for ``logAction(bytes32(action), data)``.

    Layout after the selector: the action tag right-padded to one word, the
    offset word (0x40) of the dynamic argument, its byte length, then the
    bytes right-padded to a word boundary. Empty data contributes no words
    after the length.
    """
    action_hex = strip_0x(utf8_to_hex(action))
    if len(action_hex) > _WORD_HEX:
        raise ValidationError("Action tag %r is longer than 32 bytes." % action)

    data = strip_0x(data_hex or "0x")
    if len(data) % 2 != 0:
        raise ValidationError("Invalid data hex (odd length).")
    if not _HEX_DIGITS.issuperset(data):
        raise ValidationError("Invalid data hex (non-hex characters).")

    data_len = len(data) // 2
    words = -(-data_len // WORD_BYTES)
    encoded = "".join((
        "0x",
        LOG_ACTION_SELECTOR,
        pad_right(action_hex),
        pad_left("%x" % (2 * WORD_BYTES)),
        pad_left("%x" % data_len),
        data.lower().ljust(words * _WORD_HEX, "0"),
    ))
    logger.debug("encoded logAction(%s) with %d data bytes", action, data_len)
    return encoded


def encode_usdc_transfer(to, amount_base_units):
    """Calldata for an ERC-20 ``transfer(to, amount)``.

    ``amount_base_units`` is an integer in token base units (USDC has six
    decimals, so 5 USDC is ``5000000``).
    """
    if not is_likely_address(to):
        raise ValidationError("Invalid recipient address.")
    if isinstance(amount_base_units, bool) or not isinstance(amount_base_units, int):
        raise ValidationError("Amount must be an integer number of base units.")
    if amount_base_units <= 0:
        raise ValidationError("Amount must be greater than 0.")
    if amount_base_units.bit_length() > WORD_BYTES * 8:
        raise ValidationError("Amount does not fit in a uint256.")

    return "".join((
        "0x",
        TRANSFER_SELECTOR,
        pad_left(strip_0x(to.lower())),
        pad_left("%x" % amount_base_units),
    ))


@dataclass(frozen=True)
class CallPayload:
    to: str
    data: str
    value: str = "0x0"

    def to_dict(self):
        return {"to": self.to, "value": self.value, "data": self.data}


def build_send_calls(from_address, call, chain_id=BASE_MAINNET, data_suffix=None):
    """The ``wallet_sendCalls`` request body for a single atomic call.

    ``data_suffix`` is an opaque attribution suffix passed straight through.
    """
    payload = {
        "version": WALLET_CALLS_VERSION,
        "from": from_address,
        "chainId": chain_id,
        "atomicRequired": True,
        "calls": [call.to_dict()],
        "capabilities": {},
    }
    if data_suffix is not None:
        payload["capabilities"]["dataSuffix"] = data_suffix
    return payload

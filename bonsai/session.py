"""One player's session: wallet, chain signals and committed game state.

The wallet provider and chain query are collaborators passed in by the
host. They are duck-typed; any object with these coroutine methods works::

    provider.request_accounts() -> [address, ...]
    provider.get_chain_id() -> "0x2105"
    provider.switch_chain(chain_id)
    provider.send_calls(payload) -> result

    chain_query.get_balance(address) -> int (wei)
    chain_query.get_transaction_count(address) -> int

Every game action is two-phase: validate against the stored state, send the
call, and only commit and persist once the provider confirms. Connecting,
actions and tips report failures as an ``ActionOutcome`` and never raise to
the host; only the lower-level ``load`` raises ``StorageError``.
"""

import asyncio
import enum
import logging
import math
import time
from collections import namedtuple

from bonsai import growth
from bonsai.constants import (
    BASE_MAINNET,
    BASE_SEPOLIA,
    GAME_CONTRACT,
    PRE_TX_DELAY,
    TIP_PREPARE_DELAY,
    TIP_RECIPIENT,
    USDC_CONTRACT,
    USDC_DECIMALS,
    ZERO_ADDRESS,
)
from bonsai.encoding import (
    CallPayload,
    build_send_calls,
    encode_log_action,
    encode_usdc_transfer,
    is_likely_address,
)
from bonsai.errors import ExternalError, PreconditionError, StorageError, UserRejectedError, ValidationError
from bonsai.renderer import RenderParams
from bonsai.rng import hue_from_identifier
from bonsai.signals import activity, richness

logger = logging.getLogger(__name__)

ActionOutcome = namedtuple("ActionOutcome", "ok kind message")


class TipState(enum.Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    CONFIRM = "confirm"
    SENDING = "sending"
    DONE = "done"


def _ok(message=""):
    return ActionOutcome(True, "ok", message)


def _precondition(message):
    return ActionOutcome(False, "precondition", message)


def _failure(exc, fallback):
    message = str(exc) or fallback
    if isinstance(exc, UserRejectedError) or "rejected" in message.lower():
        return ActionOutcome(False, "cancelled", "Canceled in wallet.")
    return ActionOutcome(False, "failed", message)


class BonsaiSession:
    def __init__(
        self,
        provider,
        store,
        chain_query=None,
        clock=time.time,
        data_suffix=None,
        game_contract=GAME_CONTRACT,
        tip_recipient=TIP_RECIPIENT,
        pre_tx_delay=PRE_TX_DELAY,
        tip_delay=TIP_PREPARE_DELAY,
    ):
        self.provider = provider
        self.store = store
        self.chain_query = chain_query
        self.clock = clock
        self.data_suffix = data_suffix
        self.game_contract = game_contract
        self.tip_recipient = tip_recipient
        self.pre_tx_delay = pre_tx_delay
        self.tip_delay = tip_delay

        self.account = ""
        self.chain_id = ""
        self.balance_wei = 0
        self.nonce = 0
        self.state = growth.GameState()
        self.friend_hue = None
        self.tip_state = TipState.IDLE
        self.notice = None

    # --- Wallet ---

    async def _accounts(self):
        accounts = await self.provider.request_accounts()
        if not isinstance(accounts, (list, tuple)) or not accounts:
            raise ExternalError("No accounts returned.")
        return list(accounts)

    async def _chain_id(self):
        chain_id = await self.provider.get_chain_id()
        if not isinstance(chain_id, str) or not chain_id.startswith("0x"):
            raise ExternalError("Invalid chainId")
        return chain_id

    async def connect(self):
        if self.provider is None:
            return ActionOutcome(False, "failed", "No wallet provider found.")
        try:
            accounts = await self._accounts()
            self.account = accounts[0]
            self.chain_id = await self._chain_id()
        except Exception as e:
            logger.warning("wallet connection failed: %s", e)
            return _failure(e, "Wallet connection failed.")
        try:
            self.load()
        except StorageError as e:
            self.state = growth.GameState()
            return ActionOutcome(False, "failed", str(e))
        await self.refresh_signals()
        return _ok(growth.short_address(self.account))

    async def ensure_base(self):
        """Make sure the wallet is on Base, asking it to switch if needed."""
        if self.provider is None:
            return ActionOutcome(False, "failed", "No wallet provider found.")
        try:
            chain_id = await self._chain_id()
            if chain_id in (BASE_MAINNET, BASE_SEPOLIA):
                self.chain_id = chain_id
                self.notice = None
                if chain_id != BASE_MAINNET:
                    self.notice = "You're on Base Sepolia. Switch to Base Mainnet for the real tree."
                return _ok(self.notice or "")
            try:
                await self.provider.switch_chain(BASE_MAINNET)
            except Exception as e:
                logger.info("chain switch refused: %s", e)
                raise ExternalError(
                    "Please switch to Base Mainnet (%s) in your wallet to continue." % BASE_MAINNET
                ) from e
            self.chain_id = await self._chain_id()
        except Exception as e:
            return _failure(e, "Couldn't switch to Base.")
        if self.chain_id != BASE_MAINNET:
            return ActionOutcome(False, "failed", "Couldn't switch to Base.")
        return _ok()

    # --- State and signals ---

    def load(self):
        """Reload the account's state, recomputing decay and saving it back.

        Raises ``StorageError`` if the store can't be read or written; the
        in-memory state is left as it was.
        """
        if not self.account:
            self.state = growth.GameState()
            return self.state
        try:
            self.state = self.store.load_fresh(self.account, self.clock())
        except StorageError as e:
            logger.warning("state reload failed for %s: %s", self.account, e.__cause__ or e)
            raise
        return self.state

    async def refresh_signals(self):
        if self.chain_query is None or not self.account:
            return
        try:
            balance, nonce = await asyncio.gather(
                self.chain_query.get_balance(self.account),
                self.chain_query.get_transaction_count(self.account),
            )
            balance, nonce = int(balance), max(0, int(nonce))
        except Exception as e:
            logger.warning("signal refresh failed for %s: %s", self.account, e)
            return
        self.balance_wei = balance
        self.nonce = nonce

    def render_params(self, breeze):
        planted = self.state.planted
        return RenderParams(
            seed=self.account or ZERO_ADDRESS,
            richness=richness(self.balance_wei),
            activity=activity(self.nonce),
            growth=max(1, self.state.growth) if planted else 0,
            health=self.state.health,
            breeze=breeze,
            friend_hue=self.friend_hue,
        )

    @property
    def can_water(self):
        return self.state.planted and not self.state.withered and growth.can_water(self.state, self.clock())

    # --- Game actions ---

    async def _send_game_tx(self, intent, data_hex="0x"):
        if self.provider is None:
            return ActionOutcome(False, "failed", "No wallet provider found.")
        if not is_likely_address(self.game_contract):
            return ActionOutcome(False, "failed", "Game contract address invalid.")

        switched = await self.ensure_base()
        if not switched.ok:
            return switched

        try:
            sender = (await self._accounts())[0]
            if self.chain_query is not None:
                balance = await self.chain_query.get_balance(sender)
                if int(balance) <= 0:
                    return _precondition("You need a small amount of ETH on Base for gas to plant/water.")
            call = CallPayload(to=self.game_contract, data=encode_log_action(intent, data_hex))
            payload = build_send_calls(sender, call, BASE_MAINNET, self.data_suffix)
            if self.pre_tx_delay:
                await asyncio.sleep(self.pre_tx_delay)
            await self.provider.send_calls(payload)
        except ValidationError as e:
            return ActionOutcome(False, "validation", str(e))
        except Exception as e:
            logger.warning("%s transaction failed: %s", intent, e)
            return _failure(e, "Transaction failed.")
        return _ok()

    async def _act(self, intent, transition, message, on_commit=None, refresh=True):
        if not self.account:
            return _precondition("Connect your wallet first.")
        try:
            current = self.load()
        except StorageError as e:
            return ActionOutcome(False, "failed", str(e))
        try:
            nxt = transition(current, self.clock())
        except ValidationError as e:
            return ActionOutcome(False, "validation", str(e))
        except PreconditionError as e:
            return _precondition(str(e))

        sent = await self._send_game_tx(intent)
        if not sent.ok:
            return sent

        try:
            self.store.save(self.account, nxt)
        except StorageError as e:
            logger.error("%s confirmed but not saved for %s: %s", intent, self.account, e.__cause__ or e)
            return ActionOutcome(False, "failed", "Sent, but your progress couldn't be saved on this device.")
        self.state = nxt
        if on_commit is not None:
            on_commit()
        logger.info("%s committed for %s (growth=%d)", intent, self.account, nxt.growth)
        if refresh:
            await self.refresh_signals()
        return _ok(message)

    async def plant(self):
        return await self._act("plant", growth.plant, "Seed planted. Welcome to your bonsai.")

    async def water(self):
        return await self._act("water", growth.water, "Watered. A new branch appears.")

    async def revive(self):
        return await self._act("revive", growth.revive, "Revived. Ink returns to life.")

    async def graft(self, friend_address):
        hue = hue_from_identifier((friend_address or "").strip())

        def commit_hue():
            self.friend_hue = hue

        return await self._act(
            "graft",
            lambda state, now: growth.graft(state, friend_address, now)[0],
            "Grafted. A flower blooms (your color).",
            on_commit=commit_hue,
            refresh=False,
        )

    # --- Tips ---

    async def send_tip(self, usd):
        if self.provider is None:
            return ActionOutcome(False, "failed", "No wallet provider found.")
        if not is_likely_address(self.tip_recipient):
            return ActionOutcome(False, "failed", "Tip recipient not set. Sending disabled.")
        try:
            usd = float(usd)
        except (TypeError, ValueError):
            usd = math.nan
        if not math.isfinite(usd) or usd <= 0:
            return ActionOutcome(False, "validation", "Enter a valid amount.")

        self.tip_state = TipState.PREPARING
        if self.tip_delay:
            await asyncio.sleep(self.tip_delay)
        try:
            switched = await self.ensure_base()
            if not switched.ok:
                self.tip_state = TipState.IDLE
                return switched
            self.tip_state = TipState.CONFIRM
            sender = (await self._accounts())[0]
            amount = int(math.floor(usd * 10**USDC_DECIMALS + 0.5))
            data = encode_usdc_transfer(self.tip_recipient, amount)
            payload = build_send_calls(sender, CallPayload(to=USDC_CONTRACT, data=data), BASE_MAINNET, self.data_suffix)
            self.tip_state = TipState.SENDING
            await self.provider.send_calls(payload)
        except ValidationError as e:
            self.tip_state = TipState.IDLE
            return ActionOutcome(False, "validation", str(e))
        except Exception as e:
            logger.warning("tip failed: %s", e)
            self.tip_state = TipState.IDLE
            return _failure(e, "Tip failed.")
        self.tip_state = TipState.DONE
        return _ok("Tip sent. Thank you.")

"""Game, chain and renderer tunables."""

# --- Chain ---
BASE_MAINNET = "0x2105"
BASE_SEPOLIA = "0x14a34"

# All game actions (plant / water / revive / graft) hit this contract.
GAME_CONTRACT = "0xB331328F506f2D35125e367A190e914B1b6830cF"
USDC_CONTRACT = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
TIP_RECIPIENT = "0x5eC6AF0798b25C563B102d3469971f1a8d598121"
USDC_DECIMALS = 6

ZERO_ADDRESS = "0x" + "0" * 40
WALLET_CALLS_VERSION = "2.0.0"

# --- Selectors ---
LOG_ACTION_SELECTOR = "2d9bc1fb"  # logAction(bytes32,bytes)
TRANSFER_SELECTOR = "a9059cbb"  # transfer(address,uint256)
WORD_BYTES = 32

# --- Persistence ---
STORAGE_PREFIX = "basebonsai:v1:"

# --- Game timing ---
SECONDS_PER_HOUR = 3600.0
SECONDS_PER_DAY = 86400.0
WATER_COOLDOWN_HOURS = 1
# Shown to the player as "Water is ready in ~Nh"; intentionally not the same
# period as the cooldown gate above.
WATER_DISPLAY_PERIOD_HOURS = 24
WITHER_STREAK = 3
MAX_MISSED_STREAK = 30
PRE_TX_DELAY = 1.1
TIP_PREPARE_DELAY = 1.25

# missedStreak -> health; anything past the last entry uses WITHERED_HEALTH
HEALTH_BY_STREAK = (1.0, 0.86, 0.68)
WITHERED_HEALTH = 0.42

# --- Signals ---
WEI_PER_ETH = 10**18
SIGNAL_LOG_SCALE = 4.0

# --- Renderer ---
PAPER_COLOR = (245, 240, 232)
PAPER_NOISE = 10
INK_BASE = 20
INK_WITHER_RANGE = 90
TRUNK_STEPS = 10
TRUNK_BASE_WIDTH = 10
TRUNK_RICHNESS_WIDTH = 24
TREE_HEIGHT_RATIO = 0.58
BASE_BRANCH_LENGTH = 70
BRANCH_LENGTH_PER_GROWTH = 10
BRANCH_LEAN = 0.3
MIN_DEPTH, MAX_DEPTH = 3, 10
SPLIT_CHANCE = 0.65
SIDE_BRANCH_CHANCE = 0.28
FALLING_LEAF_CHANCE = 0.12
SWAY_PIXELS = 22
VIGNETTE_INNER = 50
VIGNETTE_ALPHA = 0.06
BREEZE_PERIOD_MS = 1600.0

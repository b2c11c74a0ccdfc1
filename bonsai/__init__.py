"""Base Bonsai: a small on-chain virtual pet rendered as an ink-wash tree."""

from bonsai.errors import (
    BonsaiError,
    CooldownError,
    ExternalError,
    PreconditionError,
    StorageError,
    UserRejectedError,
    ValidationError,
)
from bonsai.growth import GameState, Stage
from bonsai.renderer import BonsaiRenderer, RenderParams
from bonsai.rng import Mulberry32, hue_from_identifier, seed_from_identifier

__all__ = [
    "BonsaiError",
    "BonsaiRenderer",
    "CooldownError",
    "ExternalError",
    "GameState",
    "Mulberry32",
    "PreconditionError",
    "RenderParams",
    "Stage",
    "StorageError",
    "UserRejectedError",
    "ValidationError",
    "hue_from_identifier",
    "seed_from_identifier",
]

__version__ = "0.1.0"

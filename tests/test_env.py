import numpy as np
import pytest

from bonsai.encoding import encode_log_action
from bonsai.env import BonsaiEnv
from bonsai.rng import hue_from_identifier
from bonsai.store import StateStore

ACCOUNT = "0x2222222222222222222222222222222222222222"
FRIEND = "0x5eC6AF0798b25C563B102d3469971f1a8d598121"

NONE, PLANT, WATER, REVIVE, GRAFT = range(5)


@pytest.fixture
def env():
    env = BonsaiEnv()
    yield env
    env.close()


def reset(env, **options):
    opts = {"account": ACCOUNT, "friend": FRIEND, "balance_wei": 10**18, "nonce": 120}
    opts.update(options)
    return env.reset(seed=0, options=opts)


class TestSpaces:
    def test_reset(self, env):
        obs, info = reset(env)
        assert obs.shape == (BonsaiEnv.SCREEN_HEIGHT, BonsaiEnv.SCREEN_WIDTH, 3)
        assert obs.dtype == np.uint8
        assert env.observation_space.contains(obs)
        assert info["stage"] == "unplanted"
        assert info["growth"] == 0

    def test_step_contract(self, env):
        reset(env)
        obs, reward, terminated, truncated, info = env.step(env.action_space.sample())
        assert obs.shape == (BonsaiEnv.SCREEN_HEIGHT, BonsaiEnv.SCREEN_WIDTH, 3)
        assert isinstance(reward, float)
        assert isinstance(terminated, bool)
        assert truncated is False
        assert isinstance(info, dict)

    def test_random_identity_is_seeded(self):
        a, b = BonsaiEnv(), BonsaiEnv()
        a.reset(seed=7)
        b.reset(seed=7)
        assert a.account == b.account
        assert a.friend == b.friend
        assert a.nonce == b.nonce


class TestGameplay:
    def test_plant_then_water(self, env):
        reset(env)
        _, reward, _, _, info = env.step([PLANT, 0])
        assert reward == BonsaiEnv.REWARD_PLANT
        assert info["stage"] == "alive"
        assert info["last_call"]["calls"][0]["data"] == encode_log_action("plant")

        _, reward, _, _, info = env.step([WATER, 0])
        assert reward == BonsaiEnv.REWARD_WATER
        assert info["growth"] == 2

    def test_water_too_soon_is_illegal(self, env):
        reset(env)
        env.step([PLANT, 0])
        env.step([WATER, 0])
        # back to half an hour after the last watering
        env.now -= 1800
        _, reward, _, _, info = env.step([WATER, 0])
        assert reward == BonsaiEnv.REWARD_ILLEGAL
        assert info["growth"] == 2
        assert env.last_message.startswith("Water is ready in")

    def test_unplanted_actions_are_illegal(self, env):
        reset(env)
        for action in (WATER, REVIVE, GRAFT):
            _, reward, _, _, info = env.step([action, 0])
            assert reward == BonsaiEnv.REWARD_ILLEGAL
            assert info["stage"] == "unplanted"

    def test_wither_and_revive(self, env):
        reset(env)
        env.step([PLANT, 0])
        for _ in range(3):
            _, reward, _, _, info = env.step([NONE, 1])
        assert info["stage"] == "withered"
        assert info["missed_streak"] == 3
        assert reward == pytest.approx(BonsaiEnv.PENALTY_WITHERED)

        _, reward, _, _, _ = env.step([WATER, 0])
        assert reward == pytest.approx(BonsaiEnv.REWARD_ILLEGAL + BonsaiEnv.PENALTY_WITHERED)

        _, reward, _, _, info = env.step([REVIVE, 0])
        assert reward == BonsaiEnv.REWARD_REVIVE
        assert info["stage"] == "alive"

    def test_graft_colours_the_tree(self, env):
        reset(env, nonce=9999)
        env.step([PLANT, 0])
        env.step([GRAFT, 0])
        assert env.friend_hue == hue_from_identifier(FRIEND)
        assert env.render_params().friend_hue == env.friend_hue

    def test_state_persists_in_store(self):
        store = StateStore()
        env = BonsaiEnv(store=store)
        reset(env)
        env.step([PLANT, 0])
        env.close()

        again = BonsaiEnv(store=store)
        _, info = reset(again)
        assert info["stage"] == "alive"
        assert info["growth"] == 1
        again.close()

    def test_episode_ends(self, env):
        reset(env)
        env.steps = BonsaiEnv.MAX_STEPS - 1
        _, _, terminated, _, _ = env.step([NONE, 0])
        assert terminated
        _, reward, terminated, _, _ = env.step([PLANT, 0])
        assert terminated and reward == 0.0


def test_tree_sways_between_frames(env):
    reset(env)
    env.step([PLANT, 0])
    first = env.render()
    env.frame_ms += 800
    second = env.render()
    assert not np.array_equal(first, second)

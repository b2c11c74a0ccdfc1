import os

import gymnasium as gym
from gymnasium.spaces import MultiDiscrete, Box
import numpy as np
import pygame

from bonsai import growth
from bonsai.constants import GAME_CONTRACT, SECONDS_PER_HOUR
from bonsai.encoding import CallPayload, build_send_calls, encode_log_action
from bonsai.errors import BonsaiError
from bonsai.renderer import BonsaiRenderer, RenderParams, breeze_at
from bonsai.signals import activity, richness
from bonsai.store import StateStore

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")


class BonsaiEnv(gym.Env):
    metadata = {"render_modes": ["rgb_array", "human"], "render_fps": 30}

    user_guide = (
        "Controls: P to plant, W to water, R to revive, G to graft a friend's colour. "
        "Space lets a whole day pass."
    )

    game_description = (
        "Grow an ink-wash bonsai. Water it at least daily so it keeps branching; "
        "miss three days and it withers until revived."
    )

    auto_advance = False

    # --- Constants ---
    SCREEN_WIDTH, SCREEN_HEIGHT = 400, 560
    MAX_STEPS = 24 * 60
    HOURS_PER_STEP = 1
    HOURS_PER_SKIP = 24
    START_TIME = 1700000000.0

    # action[0]
    ACTION_NONE = 0
    ACTION_PLANT = 1
    ACTION_WATER = 2
    ACTION_REVIVE = 3
    ACTION_GRAFT = 4
    INTENTS = {1: "plant", 2: "water", 3: "revive", 4: "graft"}

    REWARD_WATER = 1.0
    REWARD_PLANT = 0.5
    REWARD_REVIVE = 0.5
    REWARD_ILLEGAL = -1.0
    PENALTY_WITHERED = -0.1

    # Colors
    COLOR_UI_TEXT = (70, 64, 58)
    COLOR_UI_BG = (255, 255, 255, 110)
    COLOR_UI_LINE = (120, 112, 104)

    def __init__(self, render_mode="rgb_array", store=None):
        super().__init__()

        self.observation_space = Box(
            low=0, high=255, shape=(self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3), dtype=np.uint8
        )
        self.action_space = MultiDiscrete([5, 2])

        pygame.init()
        pygame.font.init()
        self.screen = pygame.Surface((self.SCREEN_WIDTH, self.SCREEN_HEIGHT))
        self.clock = pygame.time.Clock()
        self.font_ui = pygame.font.Font(None, 22)

        self.render_mode = render_mode
        self.window = None
        self.store = store if store is not None else StateStore()
        self.renderer = BonsaiRenderer()

        # Game State (initialized in reset)
        self.account = None
        self.friend = None
        self.balance_wei = None
        self.nonce = None
        self.now = None
        self.frame_ms = None
        self.state = None
        self.friend_hue = None
        self.steps = None
        self.score = None
        self.game_over = None
        self.last_call = None
        self.last_message = None
        self.sketch = None

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)
        options = options or {}

        self.renderer = BonsaiRenderer(texture_seed=int(self.np_random.integers(2**31)))
        self.account = options.get("account") or self._random_address()
        self.friend = options.get("friend") or self._random_address()
        self.balance_wei = int(options.get("balance_wei", int(10 ** self.np_random.uniform(14, 20))))
        self.nonce = int(options.get("nonce", int(10 ** self.np_random.uniform(0, 4))))
        self.now = float(options.get("start_time", self.START_TIME))
        self.frame_ms = 0.0

        self.state = self.store.load_fresh(self.account, self.now)
        self.friend_hue = None
        self.steps = 0
        self.score = 0.0
        self.game_over = False
        self.last_call = None
        self.last_message = growth.status_line(self.state)

        if self.render_mode == "human":
            self._render_frame()

        return self._get_observation(), self._get_info()

    def step(self, action):
        if self.game_over:
            return self._get_observation(), 0.0, True, False, self._get_info()

        choice, skip_day = int(action[0]), action[1] == 1
        reward = 0.0

        if choice != self.ACTION_NONE:
            reward += self._apply(choice)

        # --- Time passes ---
        self.steps += 1
        hours = self.HOURS_PER_SKIP if skip_day else self.HOURS_PER_STEP
        self.now += hours * SECONDS_PER_HOUR
        self.frame_ms += 1000.0 / self.metadata["render_fps"]
        self.state = self.store.load_fresh(self.account, self.now)
        if self.state.withered:
            reward += self.PENALTY_WITHERED

        self.score += reward
        terminated = self.steps >= self.MAX_STEPS
        if terminated:
            self.game_over = True

        if self.render_mode == "human":
            self._render_frame()

        return self._get_observation(), reward, terminated, False, self._get_info()

    def _apply(self, choice):
        """Validate, encode and commit one game action. Returns its reward."""
        intent = self.INTENTS[choice]
        hue = None
        try:
            if choice == self.ACTION_PLANT:
                nxt = growth.plant(self.state, self.now)
            elif choice == self.ACTION_WATER:
                nxt = growth.water(self.state, self.now)
            elif choice == self.ACTION_REVIVE:
                nxt = growth.revive(self.state, self.now)
            else:
                nxt, hue = growth.graft(self.state, self.friend, self.now)
            call = CallPayload(to=GAME_CONTRACT, data=encode_log_action(intent))
        except BonsaiError as e:
            self.last_message = str(e)
            return self.REWARD_ILLEGAL

        # Simulated wallet: every call confirms.
        self.last_call = build_send_calls(self.account, call)
        self.store.save(self.account, nxt)
        self.state = nxt
        if hue is not None:
            self.friend_hue = hue
        self.last_message = growth.status_line(nxt)

        if choice == self.ACTION_WATER:
            return self.REWARD_WATER
        if choice == self.ACTION_PLANT:
            return self.REWARD_PLANT
        if choice == self.ACTION_REVIVE:
            return self.REWARD_REVIVE
        return 0.0

    def _random_address(self):
        return "0x" + bytes(self.np_random.integers(0, 256, size=20, dtype=np.uint8).tolist()).hex()

    def render_params(self):
        planted = self.state.planted
        return RenderParams(
            seed=self.account,
            richness=richness(self.balance_wei),
            activity=activity(self.nonce),
            growth=max(1, self.state.growth) if planted else 0,
            health=self.state.health,
            breeze=breeze_at(self.frame_ms),
            friend_hue=self.friend_hue,
        )

    def _get_observation(self):
        self.sketch = self.renderer.render(self.screen, self.render_params())
        self._render_ui()

        arr = pygame.surfarray.array3d(self.screen)
        return np.transpose(arr, (1, 0, 2)).astype(np.uint8)

    def _get_info(self):
        return {
            "score": self.score,
            "steps": self.steps,
            "growth": self.state.growth,
            "health": self.state.health,
            "missed_streak": self.state.missed_streak,
            "stage": self.state.stage.value,
            "branches": len(self.sketch.branches) if self.sketch else 0,
            "leaves": self.sketch.leaf_count if self.sketch else 0,
            "last_call": self.last_call,
        }

    def _render_ui(self):
        bar = pygame.Surface((self.SCREEN_WIDTH, 30), pygame.SRCALPHA)
        bar.fill(self.COLOR_UI_BG)
        self.screen.blit(bar, (0, 0))
        pygame.draw.line(self.screen, self.COLOR_UI_LINE, (0, 30), (self.SCREEN_WIDTH, 30), 1)

        growth_text = self.font_ui.render(f"Growth: {self.state.growth}", True, self.COLOR_UI_TEXT)
        self.screen.blit(growth_text, (10, 8))
        health_text = self.font_ui.render(f"Health: {growth.health_label(self.state)}", True, self.COLOR_UI_TEXT)
        self.screen.blit(health_text, (self.SCREEN_WIDTH - health_text.get_width() - 10, 8))

        if self.last_message:
            msg_text = self.font_ui.render(self.last_message, True, self.COLOR_UI_TEXT)
            msg_rect = msg_text.get_rect(center=(self.SCREEN_WIDTH / 2, self.SCREEN_HEIGHT - 14))
            self.screen.blit(msg_text, msg_rect)

    def render(self):
        if self.render_mode == "rgb_array":
            return self._get_observation()
        self._render_frame()
        return None

    def _render_frame(self):
        if self.window is None and self.render_mode == "human":
            pygame.display.init()
            self.window = pygame.display.set_mode((self.SCREEN_WIDTH, self.SCREEN_HEIGHT))
            pygame.display.set_caption("Base Bonsai")

        if self.clock is None:
            self.clock = pygame.time.Clock()

        self._get_observation()

        if self.window is not None:
            self.window.blit(self.screen, (0, 0))
            pygame.display.update()
            self.clock.tick(self.metadata["render_fps"])

    def close(self):
        if self.window is not None:
            pygame.display.quit()
            self.window = None
        pygame.quit()


if __name__ == "__main__":
    # This block allows you to play the game manually for testing
    if os.environ.get("SDL_VIDEODRIVER") == "dummy":
        del os.environ["SDL_VIDEODRIVER"]
    env = BonsaiEnv(render_mode="human")
    obs, info = env.reset()
    running = True

    print("\n" + "=" * 30)
    print("Base Bonsai - Manual Test")
    print(env.game_description)
    print(env.user_guide)
    print("=" * 30 + "\n")

    keys = {
        pygame.K_p: BonsaiEnv.ACTION_PLANT,
        pygame.K_w: BonsaiEnv.ACTION_WATER,
        pygame.K_r: BonsaiEnv.ACTION_REVIVE,
        pygame.K_g: BonsaiEnv.ACTION_GRAFT,
    }

    while running:
        action = np.array([0, 0])

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
                break
            if event.type == pygame.KEYDOWN:
                if event.key in keys:
                    action[0] = keys[event.key]
                elif event.key == pygame.K_SPACE:
                    action[1] = 1

        if not running:
            break

        if np.any(action):
            obs, reward, terminated, truncated, info = env.step(action)
            print(
                f"Step: {info['steps']}, Growth: {info['growth']}, Stage: {info['stage']}, "
                f"Reward: {reward:.2f} | {env.last_message}"
            )
            if terminated:
                break
        else:
            # keep the tree swaying between actions
            env.frame_ms = pygame.time.get_ticks()
            env.render()

    print("Game Over!")
    env.close()

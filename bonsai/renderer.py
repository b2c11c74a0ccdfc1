"""Ink-wash bonsai renderer.

Each frame is painted from scratch onto a ``pygame.Surface``: paper, paper
grain, the pot, a stacked-stroke trunk, then two mirrored branch systems
grown from the same freshly reseeded ``Mulberry32`` stream. Because the
stream is restarted before the branches every frame, the tree's structure
(splits, side shoots, leaves, blooms) depends only on the seed, growth and
activity. The breeze moves stroke endpoints and a separate unseeded
generator roughens stroke curvature and paper grain, so the tree sways
without being reshuffled.
"""

import math
from dataclasses import dataclass, field
from collections import namedtuple
from typing import List, Optional

import numpy as np
import pygame
import pygame.gfxdraw

from bonsai.constants import (
    BASE_BRANCH_LENGTH,
    BRANCH_LEAN,
    BRANCH_LENGTH_PER_GROWTH,
    BREEZE_PERIOD_MS,
    FALLING_LEAF_CHANCE,
    INK_BASE,
    INK_WITHER_RANGE,
    MAX_DEPTH,
    MIN_DEPTH,
    PAPER_COLOR,
    PAPER_NOISE,
    SIDE_BRANCH_CHANCE,
    SPLIT_CHANCE,
    SWAY_PIXELS,
    TREE_HEIGHT_RATIO,
    TRUNK_BASE_WIDTH,
    TRUNK_RICHNESS_WIDTH,
    TRUNK_STEPS,
    VIGNETTE_ALPHA,
    VIGNETTE_INNER,
)
from bonsai.rng import Mulberry32, seed_int_from_identifier
from bonsai.signals import clamp


def breeze_at(ms):
    """Breeze phase in [0, 1] for a frame timestamp in milliseconds."""
    return 0.5 + math.sin(ms / BREEZE_PERIOD_MS) * 0.5


def max_depth_for(growth):
    return int(clamp(MIN_DEPTH + math.floor(growth / 1.5), MIN_DEPTH, MAX_DEPTH))


@dataclass(frozen=True)
class RenderParams:
    seed: str
    richness: float = 0.0
    activity: float = 0.0
    growth: int = 0
    health: float = 1.0
    breeze: float = 0.5
    friend_hue: Optional[int] = None


@dataclass
class BranchNode:
    x: float
    y: float
    angle: float
    length: float
    thickness: float
    depth: int


@dataclass
class BranchMark:
    """What one branch stroke turned into, in draw order."""
    depth: int
    start: tuple
    end: tuple
    splits: int = 0
    side_branch: bool = False
    leaves: int = 0
    blooms: int = 0


@dataclass
class TreeSketch:
    max_depth: int
    branches: List[BranchMark] = field(default_factory=list)
    falling_leaves: int = 0

    def topology(self):
        return tuple(
            (b.depth, b.splits, b.side_branch, b.leaves, b.blooms) for b in self.branches
        )

    @property
    def leaf_count(self):
        return sum(b.leaves for b in self.branches)

    @property
    def bloom_count(self):
        return sum(b.blooms for b in self.branches)


# Per-frame drawing inputs shared by every branch.
_Brush = namedtuple("_Brush", "max_depth leafiness bloom_chance bend ink wither hue")


def _over_paper(rgb, alpha):
    return tuple(
        int(clamp(round(p + (c - p) * alpha), 0, 255)) for c, p in zip(rgb, PAPER_COLOR)
    )


def _gray(value):
    g = int(round(value))
    return (g, g, g)


def _ellipse_points(x, y, rx, ry, rotation, steps=14):
    cos_r, sin_r = math.cos(rotation), math.sin(rotation)
    points = []
    for i in range(steps):
        a = 2 * math.pi * i / steps
        ex, ey = rx * math.cos(a), ry * math.sin(a)
        points.append((int(round(x + ex * cos_r - ey * sin_r)), int(round(y + ex * sin_r + ey * cos_r))))
    return points


class BonsaiRenderer:
    def __init__(self, texture_seed=None):
        # Structural randomness: reseeded from the player's address each frame.
        self.rng = Mulberry32()
        # Texture randomness: grain and stroke wobble, never reseeded.
        self.texture_rng = np.random.default_rng(texture_seed)
        self._vignettes = {}

    def render(self, surface, params):
        """Paint one frame and return the ``TreeSketch`` that was drawn."""
        w, h = surface.get_size()
        surface.fill(PAPER_COLOR)
        self._paper_grain(surface)

        wither = 1 - params.health
        ink = INK_BASE + wither * INK_WITHER_RANGE

        pot_w, pot_h = w * 0.52, h * 0.12
        pot_x, pot_y = w * 0.5 - pot_w / 2, h * 0.8
        self._draw_pot(surface, pot_x, pot_y, pot_w, pot_h, ink)

        cx = w * 0.5
        base_y = pot_y + 8
        trunk_base = TRUNK_BASE_WIDTH + params.richness * TRUNK_RICHNESS_WIDTH
        height = h * TREE_HEIGHT_RATIO

        sway = (params.breeze - 0.5) * SWAY_PIXELS
        bend = sway * (0.55 + params.activity * 0.55)
        brush = _Brush(
            max_depth=max_depth_for(params.growth),
            leafiness=clamp(0.1 + params.activity * 0.9, 0, 1),
            bloom_chance=clamp(0.04 + params.activity * 0.18, 0.04, 0.25),
            bend=bend,
            ink=ink,
            wither=wither,
            hue=params.friend_hue,
        )

        for i in range(TRUNK_STEPS):
            f0, f1 = i / TRUNK_STEPS, (i + 1) / TRUNK_STEPS
            self._ink_stroke(
                surface,
                cx + bend * f0 * 0.35, base_y - f0 * height,
                cx + bend * f1 * 0.35, base_y - f1 * height,
                trunk_base * (1 - f0 * 0.75), 0.92, ink,
            )

        start_x = cx + bend * 0.16
        start_y = base_y - height * 0.55
        base_len = BASE_BRANCH_LENGTH + params.growth * BRANCH_LENGTH_PER_GROWTH

        sketch = TreeSketch(max_depth=brush.max_depth)
        self.rng.reseed(seed_int_from_identifier(params.seed))
        left = BranchNode(start_x, start_y, math.pi / 2 - BRANCH_LEAN, base_len, trunk_base * 0.55, 1)
        right = BranchNode(start_x, start_y, math.pi / 2 + BRANCH_LEAN, base_len * 0.96, trunk_base * 0.55, 1)
        self.grow(surface, left, brush, sketch, self.rng)
        self.grow(surface, right, brush, sketch, self.rng)

        rng = self.rng
        for _ in range(3):
            if rng() < FALLING_LEAF_CHANCE:
                fx = w * (0.2 + rng() * 0.6)
                fy = h * (0.25 + rng() * 0.6)
                self._draw_leaf(surface, fx, fy, 2.5 + rng() * 3.5, ink + 20, wither)
                sketch.falling_leaves += 1

        self._vignette(surface, cx, h * 0.35)
        return sketch

    def grow(self, surface, root, brush, sketch, rng):
        """Draw ``root`` and everything that branches from it.

        Depth-first with an explicit stack. Child parameters are drawn from
        ``rng`` only when that child is reached, so the stream is consumed in
        the same order as the plain recursive formulation.
        """
        stack = [("branch", root)]
        while stack:
            kind, item = stack.pop()

            if kind == "branch":
                node = item
                t = node.depth / brush.max_depth
                a = node.angle + (rng() - 0.5) * 0.25
                ex = node.x + math.cos(a) * node.length + brush.bend * t * 0.18
                ey = node.y - math.sin(a) * node.length
                self._ink_stroke(surface, node.x, node.y, ex, ey, node.thickness, 0.88 - t * 0.35, brush.ink)

                mark = BranchMark(depth=node.depth, start=(node.x, node.y), end=(ex, ey))
                sketch.branches.append(mark)

                if node.depth > brush.max_depth - 3 and rng() < brush.leafiness:
                    self._leaf_cluster(surface, ex, ey, brush, mark, rng)

                if node.depth >= brush.max_depth:
                    continue
                splits = 1 if node.depth < 2 else (2 if rng() < SPLIT_CHANCE else 1)
                mark.splits = splits
                stack.append(("side", (node, a, ex, ey, mark)))
                for i in reversed(range(splits)):
                    stack.append(("child", (node, a, ex, ey, t, i)))

            elif kind == "child":
                node, a, ex, ey, t, i = item
                direction = -1 if i == 0 else 1
                angle = a + direction * (0.45 + rng() * 0.35) * (0.85 + t * 0.3)
                length = node.length * (0.74 + rng() * 0.08)
                thickness = max(1.2, node.thickness * (0.7 + rng() * 0.06))
                stack.append(("branch", BranchNode(ex, ey, angle, length, thickness, node.depth + 1)))

            else:
                node, a, ex, ey, mark = item
                if rng() < SIDE_BRANCH_CHANCE:
                    mark.side_branch = True
                    angle = a + (rng() - 0.5) * 0.35
                    length = node.length * (0.55 + rng() * 0.12)
                    thickness = max(1.0, node.thickness * 0.55)
                    stack.append(("branch", BranchNode(ex, ey, angle, length, thickness, node.depth + 1)))

    def _leaf_cluster(self, surface, x, y, brush, mark, rng):
        count = 1 + int(rng() * 3)
        for _ in range(count):
            lx = x + (rng() - 0.5) * 16
            ly = y + (rng() - 0.5) * 16
            self._draw_leaf(surface, lx, ly, 3 + rng() * 5, brush.ink, brush.wither)
            mark.leaves += 1
            if rng() < brush.bloom_chance:
                size = 3 + rng() * 4
                if brush.hue is not None:
                    self._draw_bloom(surface, lx + 2, ly - 2, size, brush.hue)
                    mark.blooms += 1

    # --- Primitives ---

    def _paper_grain(self, surface):
        arr = pygame.surfarray.array3d(surface).astype(np.int16)
        noise = self.texture_rng.integers(0, PAPER_NOISE, size=arr.shape[:2], dtype=np.int16)
        arr += noise[..., None]
        pygame.surfarray.blit_array(surface, np.clip(arr, 0, 255).astype(np.uint8))

    def _vignette(self, surface, cx, cy):
        w, h = surface.get_size()
        key = (w, h, round(cx), round(cy))
        factor = self._vignettes.get(key)
        if factor is None:
            xs = np.arange(w, dtype=np.float32)[:, None]
            ys = np.arange(h, dtype=np.float32)[None, :]
            dist = np.hypot(xs - cx, ys - cy)
            t = np.clip((dist - VIGNETTE_INNER) / max(1.0, h - VIGNETTE_INNER), 0.0, 1.0)
            factor = (1.0 - t * VIGNETTE_ALPHA)[..., None]
            self._vignettes[key] = factor
        arr = pygame.surfarray.array3d(surface).astype(np.float32) * factor
        pygame.surfarray.blit_array(surface, arr.astype(np.uint8))

    def _draw_pot(self, surface, x, y, w, h, ink):
        color = _over_paper(_gray(ink), 0.95)
        pygame.draw.rect(surface, color, pygame.Rect(int(x), int(y), int(w), int(h)), width=6, border_radius=18)
        rim_y = int(y + h * 0.34)
        pygame.draw.line(surface, color, (int(x + 20), rim_y), (int(x + w - 20), rim_y), 4)

    def _ink_stroke(self, surface, x1, y1, x2, y2, width, alpha, gray):
        """A quadratic stroke whose control point wobbles a little each frame."""
        color = _over_paper(_gray(gray), alpha)
        qx = (x1 + x2) / 2 + (self.texture_rng.random() - 0.5) * 6
        qy = (y1 + y2) / 2 + (self.texture_rng.random() - 0.5) * 6

        steps = max(3, int(math.hypot(x2 - x1, y2 - y1) / 4) + 2)
        points = []
        for i in range(steps + 1):
            t = i / steps
            u = 1 - t
            points.append((u * u * x1 + 2 * u * t * qx + t * t * x2, u * u * y1 + 2 * u * t * qy + t * t * y2))

        line_w = max(1, int(round(width)))
        if line_w <= 2:
            pygame.draw.aalines(surface, color, False, points)
            return
        pygame.draw.lines(surface, color, False, points, line_w)
        # round caps and joins
        r = line_w / 2
        for px, py in points:
            pygame.draw.circle(surface, color, (int(round(px)), int(round(py))), max(1, int(r)))

    def _draw_leaf(self, surface, x, y, size, ink, wither):
        alpha = (0.65 - wither * 0.3) * (0.7 - wither * 0.2)
        color = _over_paper(_gray(ink + 12 + wither * 35), alpha)
        rotation = self.texture_rng.random() * math.pi
        points = _ellipse_points(x, y, size * 1.2, size * 0.8, rotation)
        pygame.gfxdraw.filled_polygon(surface, points, color)
        pygame.gfxdraw.aapolygon(surface, points, color)

    def _draw_bloom(self, surface, x, y, size, hue):
        petal = pygame.Color(0, 0, 0)
        petal.hsla = (hue % 360, 60, 52, 100)
        petal_color = _over_paper((petal.r, petal.g, petal.b), 0.81)
        for i in range(5):
            a = i / 5 * math.pi * 2
            points = _ellipse_points(
                x + math.cos(a) * size * 0.9, y + math.sin(a) * size * 0.9, size * 0.9, size * 0.6, a
            )
            pygame.gfxdraw.filled_polygon(surface, points, petal_color)
            pygame.gfxdraw.aapolygon(surface, points, petal_color)
        center = _over_paper((255, 255, 255), 0.585)
        cx, cy, r = int(round(x)), int(round(y)), max(1, int(round(size * 0.45)))
        pygame.gfxdraw.filled_circle(surface, cx, cy, r, center)
        pygame.gfxdraw.aacircle(surface, cx, cy, r, center)

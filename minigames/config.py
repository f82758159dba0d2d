from dataclasses import dataclass


def _check_range(name: str, low: float, high: float) -> None:
    if low > high:
        raise ValueError(f"{name}: min ({low}) must not exceed max ({high})")


def _check_positive(**values: float) -> None:
    for name, value in values.items():
        if value <= 0:
            raise ValueError(f"{name} must be > 0, got {value}")


@dataclass(frozen=True)
class BrickLevel:
    """Layout of one breakout level, in reference (400 px wide) units.

    Attributes
    ----------
    rows, cols : int
        Brick grid size.
    brick_width, brick_height, brick_padding : float
        Brick size and gap, scaled with the viewport.
    brick_offset_top : float
        Distance of the first row from the top edge (not scaled).
    colors : tuple[str, ...]
        Row colours, cycled when there are more rows than colours.
    points : tuple[int, ...]
        Row values, cycled the same way.
    """

    rows: int
    cols: int
    brick_width: float
    brick_height: float
    brick_padding: float
    brick_offset_top: float
    colors: tuple[str, ...]
    points: tuple[int, ...]

    def __post_init__(self):
        _check_positive(rows=self.rows, cols=self.cols, brick_width=self.brick_width, brick_height=self.brick_height)
        if not self.colors or not self.points:
            raise ValueError("a level needs at least one colour and one point value")


BREAKOUT_LEVELS = (
    BrickLevel(3, 5, 75, 20, 10, 50, ("#FF6B6B", "#4ECDC4", "#45B7D1"), (10, 20, 30)),
    BrickLevel(4, 6, 70, 20, 10, 50, ("#FF6B6B", "#FFA07A", "#4ECDC4", "#45B7D1"), (10, 15, 20, 25)),
    BrickLevel(5, 7, 65, 18, 8, 50, ("#FF6B6B", "#FFA07A", "#FFD93D", "#4ECDC4", "#45B7D1"), (10, 15, 20, 25, 30)),
    BrickLevel(
        6, 8, 60, 18, 8, 50,
        ("#FF6B6B", "#FF8E53", "#FFA07A", "#FFD93D", "#4ECDC4", "#45B7D1"),
        (10, 15, 20, 25, 30, 35),
    ),
    BrickLevel(
        7, 9, 55, 16, 7, 50,
        ("#FF6B6B", "#FF8E53", "#FFA07A", "#FFD93D", "#95E1D3", "#4ECDC4", "#45B7D1"),
        (10, 15, 20, 25, 30, 35, 40),
    ),
)


@dataclass(frozen=True)
class BreakoutConfig:
    """Brick breaker parameters.

    Attributes
    ----------
    paddle_width, paddle_height : float
        Paddle size (default: 100 x 10).
    paddle_speed : float
        Paddle step per tick while a move intent is held (default: 5).
    paddle_bottom_offset : float
        Paddle top sits this far above the bottom edge (default: 30).
    ball_radius : float
        Ball radius (default: 8).
    serve_vx, serve_vy : float
        Velocity of a freshly served ball (default: 4, -4).
    serve_bottom_offset : float
        Ball is served this far above the bottom edge, centred (default: 50).
    lives : int
        Balls per run (default: 3).
    levels : tuple[BrickLevel, ...]
        Level table; clearing the last one wins the game.
    reference_width : float
        Viewport width the level table is authored for (default: 400).
    max_scale : float
        Upper bound on brick scaling for wide viewports (default: 1.2).
    max_effect_events : int
        Capacity of the effect queue (default: 256).
    """

    paddle_width: float = 100
    paddle_height: float = 10
    paddle_speed: float = 5
    paddle_bottom_offset: float = 30
    ball_radius: float = 8
    serve_vx: float = 4
    serve_vy: float = -4
    serve_bottom_offset: float = 50
    lives: int = 3
    levels: tuple[BrickLevel, ...] = BREAKOUT_LEVELS
    reference_width: float = 400
    max_scale: float = 1.2
    max_effect_events: int = 256

    def __post_init__(self):
        _check_positive(
            paddle_width=self.paddle_width,
            paddle_height=self.paddle_height,
            ball_radius=self.ball_radius,
            lives=self.lives,
        )
        if not self.levels:
            raise ValueError("breakout needs at least one level")


FRUIT_KINDS = ("apple", "banana", "orange", "strawberry", "grape")


@dataclass(frozen=True)
class CatchingConfig:
    """Fruit catching parameters.

    Attributes
    ----------
    basket_width, basket_height : float
        Basket size (default: 80 x 20).
    basket_speed : float
        Basket step per input tick (default: 5).
    basket_bottom_offset : float
        Basket bottom edge sits this far above the canvas bottom (default: 30).
    fruit_min_size, fruit_max_size : float
        Uniform size range of spawned fruit (default: 20-35).
    fruit_min_speed, fruit_max_speed : float
        Uniform fall speed range, px per tick (default: 2-5).
    spawn_interval : float
        Seconds between spawns (default: 1.5).
    lives : int
        Misses allowed (default: 3).
    points_per_fruit : int
        Score for a catch (default: 10).
    purge_margin : float
        Caught/missed fruit is dropped once its top passes height + margin (default: 50).
    """

    basket_width: float = 80
    basket_height: float = 20
    basket_speed: float = 5
    basket_bottom_offset: float = 30
    fruit_min_size: float = 20
    fruit_max_size: float = 35
    fruit_min_speed: float = 2
    fruit_max_speed: float = 5
    spawn_interval: float = 1.5
    fruit_kinds: tuple[str, ...] = FRUIT_KINDS
    lives: int = 3
    points_per_fruit: int = 10
    purge_margin: float = 50
    max_effect_events: int = 256

    def __post_init__(self):
        _check_positive(basket_width=self.basket_width, spawn_interval=self.spawn_interval, lives=self.lives)
        _check_range("fruit size", self.fruit_min_size, self.fruit_max_size)
        _check_range("fruit speed", self.fruit_min_speed, self.fruit_max_speed)
        if not self.fruit_kinds:
            raise ValueError("fruit_kinds must not be empty")


PLATFORM_COLORS = ("#4ECDC4", "#FF6B6B", "#FFD93D", "#95E1D3", "#FFA07A")


@dataclass(frozen=True)
class JumpingConfig:
    """Endless jumper parameters.

    Distances are pixels, speeds pixels per tick. The generator keeps gaps
    within what a jump at `jump_speed` can clear.
    """

    player_width: float = 30
    player_height: float = 40
    jump_speed: float = -15
    move_speed: float = 5
    gravity: float = 0.8
    max_fall_speed: float = 20
    substep_size: float = 10
    landing_tolerance: float = 20

    platform_min_width: float = 80
    platform_max_width: float = 150
    platform_height: float = 20
    min_gap: float = 60
    max_gap: float = 120
    platform_colors: tuple[str, ...] = PLATFORM_COLORS
    max_jump_distance: float = 200
    overlap_threshold: float = 30
    placement_step: float = 20
    max_generation_attempts: int = 1000

    start_platform_width: float = 150
    start_platform_offset: float = 100
    initial_fill: float = 2000
    refill: float = 800
    refill_when_falling: float = 1200
    safety_factor: float = 1.5
    safety_drop: float = 300
    safety_attempts: int = 20
    keep_range_factor: float = 3

    camera_follow_speed: float = 0.1
    camera_offset_y: float = 0.3

    points_per_platform: int = 10
    meteor_colors: tuple[str, ...] = ("#FFD93D", "#FFA07A")
    encourage_fall_distance: float = 500
    free_chord_duration: float = 1.0
    chord_beats: float = 2
    tick_seconds: float = 1 / 60

    enable_effects: bool = True
    max_effect_events: int = 256

    def __post_init__(self):
        _check_positive(
            player_width=self.player_width,
            player_height=self.player_height,
            gravity=self.gravity,
            max_fall_speed=self.max_fall_speed,
            substep_size=self.substep_size,
            platform_height=self.platform_height,
        )
        _check_range("platform width", self.platform_min_width, self.platform_max_width)
        _check_range("platform gap", self.min_gap, self.max_gap)
        if not self.platform_colors:
            raise ValueError("platform_colors must not be empty")


@dataclass(frozen=True)
class RhythmConfig:
    """Judgement windows in milliseconds, nested narrowest first."""

    perfect_ms: float = 50
    great_ms: float = 100
    good_ms: float = 150
    perfect_points: int = 100
    great_points: int = 50
    good_points: int = 25
    combo_bonus: float = 0.1
    keys: tuple[str, ...] = ("A", "S", "D", "F")
    # (rank, minimum accuracy ratio), strictest first
    ranks: tuple[tuple[str, float], ...] = (("S", 0.95), ("A", 0.85), ("B", 0.70), ("C", 0.50), ("D", 0.0))
    beats_per_bar: int = 4
    max_effect_events: int = 256

    def __post_init__(self):
        if not 0 < self.perfect_ms <= self.great_ms <= self.good_ms:
            raise ValueError("judgement windows must satisfy 0 < perfect <= great <= good")


@dataclass(frozen=True)
class ShootingConfig:
    duration: int = 60
    min_spawn_delay: float = 2.0
    max_spawn_delay: float = 4.0
    min_target_life: float = 2.0
    max_target_life: float = 4.0
    min_target_size: float = 60
    max_target_size: float = 100
    edge_margin: float = 10
    hud_margin: float = 100
    points_per_hit: int = 10
    hit_removal_delay: float = 0.3
    max_targets: int = 8  # action space slots
    max_effect_events: int = 256

    def __post_init__(self):
        _check_positive(duration=self.duration, max_targets=self.max_targets)
        _check_range("spawn delay", self.min_spawn_delay, self.max_spawn_delay)
        _check_range("target life", self.min_target_life, self.max_target_life)
        _check_range("target size", self.min_target_size, self.max_target_size)

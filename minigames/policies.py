"""Scripted policies: `policy(env) -> action` for each game's action space."""


def breakout_policy(env):
    # Strategy: keep the paddle centre under the ball, with a small dead zone to avoid jitter.
    paddle_center = env.paddle_x + env.config.paddle_width / 2
    dx = env.ball_pos.x - paddle_center
    if dx < -5:
        return [3, 0, 0]  # Move left
    if dx > 5:
        return [4, 0, 0]  # Move right
    return [0, 0, 0]


def catching_policy(env):
    # Strategy: chase the live fruit closest to the ground, it is the next one that can be missed.
    live = [f for f in env.fruits if not f.resolved]
    if not live:
        return [0, 0, 0]
    fruit = max(live, key=lambda f: f.y)
    dx = (fruit.x + fruit.size / 2) - (env.basket_x + env.config.basket_width / 2)
    if dx < -env.config.basket_speed:
        return [3, 0, 0]
    if dx > env.config.basket_speed:
        return [4, 0, 0]
    return [0, 0, 0]


def jumping_policy(env):
    # Strategy: jump whenever standing, then steer under the nearest platform above.
    cfg = env.config
    feet = env.player_pos.y + cfg.player_height
    above = [p for p in env.platforms if p.y < feet - 1]
    movement = 0
    if above:
        target = max(above, key=lambda p: p.y)
        dx = target.center_x - (env.player_pos.x + cfg.player_width / 2)
        if dx < -cfg.move_speed:
            movement = 3
        elif dx > cfg.move_speed:
            movement = 4
    # Release the button for a tick after each jump so the latch re-arms
    jump = 1 if env.on_ground and env.can_jump else 0
    return [movement, jump, 0]


def rhythm_policy(env):
    # Strategy: press every key whose next note is inside the perfect window right now.
    now = env.clock.now() - env.start_time
    window = env.config.perfect_ms / 1000
    action = []
    for key in env.config.keys:
        due = any(not n.hit and n.key == key and abs(n.time - now) <= window for n in env.notes)
        action.append(1 if due else 0)
    return action


def shooting_policy(env):
    # Strategy: shoot the visible target that will disappear first.
    visible = env.visible_targets()[: env.config.max_targets]
    if not visible:
        return 0
    slot = min(range(len(visible)), key=lambda i: visible[i].disappear_time)
    return slot + 1

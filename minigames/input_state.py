from dataclasses import dataclass


@dataclass(frozen=True)
class InputState:
    move_left: bool = False
    move_right: bool = False
    jump_held: bool = False  # level, not edge: engines latch the edge themselves

    @property
    def horizontal(self) -> int:
        if self.move_left and not self.move_right:
            return -1
        if self.move_right and not self.move_left:
            return 1
        return 0


NO_INPUT = InputState()


def input_from_action(action) -> InputState:
    """Map the MultiDiscrete([5, 2, 2]) action (movement, space, shift) to intents.

    movement: 0 none, 1 up, 2 down, 3 left, 4 right. Space or up means jump.
    """
    movement, space_held = int(action[0]), int(action[1]) == 1
    return InputState(
        move_left=movement == 3,
        move_right=movement == 4,
        jump_held=space_held or movement == 1,
    )

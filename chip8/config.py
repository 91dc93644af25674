"""Runtime configuration for the interpreter and its front end"""

from dataclasses import dataclass

from .constants import DEFAULT_CYCLES_PER_FRAME, DEFAULT_MAX_FPS


def check_positive(name: str, value: int) -> int:
    """Validate an integer setting that must be >= 1"""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{name} must be an integer >= 1, got {value!r}")
    return value


@dataclass
class Chip8Config:
    """Recognized options.

    shift_swap:   8XY6/8XYE copy VY into VX before shifting
    complex_jump: BNNN jumps to NNN + VX instead of NNN + V0
    max_fps is only consumed by the caller that paces frames.
    """
    cycles_per_frame: int = DEFAULT_CYCLES_PER_FRAME
    shift_swap: bool = False
    complex_jump: bool = False
    max_fps: int = DEFAULT_MAX_FPS

    def __post_init__(self):
        check_positive("cycles_per_frame", self.cycles_per_frame)
        check_positive("max_fps", self.max_fps)

    @classmethod
    def from_args(cls, args) -> "Chip8Config":
        """Build a config from an argparse namespace"""
        return cls(
            cycles_per_frame=args.cpf,
            shift_swap=args.shift_swap,
            complex_jump=args.complex_jump,
            max_fps=args.fps,
        )

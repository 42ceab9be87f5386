"""
Per-process instance identity used to attribute activity records.
"""

import random
from dataclasses import dataclass

from pipeline.constants import INSTANCE_COLORS, INSTANCE_NAME_SPACE, ServiceRole


@dataclass(frozen=True)
class InstanceIdentity:
    """
    Display label for one running process.

    Chosen once at startup. It is an attribution tag only and carries no
    correctness meaning; two processes may draw the same label.
    """

    name: str
    color: str


def create_identity(
    role: ServiceRole,
    rng: random.Random | None = None,
    palette: tuple[str, ...] = INSTANCE_COLORS,
) -> InstanceIdentity:
    """
    Draw a random identity for this process.

    Args:
        role: The service role, used as the name prefix.
        rng: Optional random source, for deterministic tests.
        palette: Colors to choose from.

    Returns:
        InstanceIdentity such as ``receiver-3f2a9c1``.
    """
    rng = rng or random.Random()
    suffix = rng.randrange(INSTANCE_NAME_SPACE)
    return InstanceIdentity(
        name=f"{role.value}-{suffix:x}",
        color=rng.choice(palette),
    )

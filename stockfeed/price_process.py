"""
Mean-reverting price process.

Each step pulls the price a fixed fraction of the way back to the mean and
adds Gaussian noise. The price is clamped to a small positive floor so it
never reaches zero.
"""

import logging
import random
import time
from dataclasses import dataclass, replace
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelParameters:
    """Fixed parameters of the price model."""
    mean_price: float = 100.0
    reversion_rate: float = 0.05
    volatility: float = 5.0
    floor_value: float = 0.01


DEFAULT_PARAMETERS = ModelParameters()


@dataclass
class PriceState:
    """Current price of one simulated symbol. Always > 0 once observed."""
    current: float


def advance(state: PriceState, parameters: ModelParameters, shock: float) -> PriceState:
    """
    Apply one step of the process to ``state`` and return it.

    Args:
        state: State to advance in place
        parameters: Model parameters
        shock: Standard-normal draw for this step

    Returns:
        The same state object, updated
    """
    pull = (parameters.mean_price - state.current) * parameters.reversion_rate
    noise = shock * parameters.volatility

    state.current += pull + noise
    if state.current <= 0:
        state.current = parameters.floor_value

    return state


class PriceProcess:
    """
    Owns one PriceState and advances it on each call to step().

    The random source is seeded once, at construction, from the nanosecond
    clock unless one is supplied.
    """

    def __init__(
        self,
        parameters: ModelParameters = DEFAULT_PARAMETERS,
        state: Optional[PriceState] = None,
        rng: Optional[random.Random] = None
    ):
        self.parameters = parameters
        self.state = state if state is not None else PriceState(parameters.mean_price)

        if rng is None:
            seed = time.time_ns()
            rng = random.Random(seed)
            logger.debug(f"Price process seeded with {seed}")
        self._rng = rng

    def step(self) -> float:
        """Advance the price one tick and return the new value."""
        advance(self.state, self.parameters, self._rng.gauss(0.0, 1.0))
        return self.state.current

    def snapshot(self) -> PriceState:
        """Copy of the current state."""
        return replace(self.state)

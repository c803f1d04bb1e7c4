import contextlib
import time
from typing import Generator

import jax
import termcolor
from loguru import logger


@contextlib.contextmanager
def stopwatch(label: str = "unlabeled block") -> Generator[None, None, None]:
    """Context manager for measuring runtime. Results are logged at the debug
    level."""
    start_time = time.time()
    yield
    elapsed = termcolor.colored(f"{time.time() - start_time:.5f}", attrs=["bold"])
    logger.debug("{} took {} seconds", label, elapsed)


def warn_if_x64_disabled() -> bool:
    """Jacobians are computed by JAX. Without 64-bit mode they come out as float32,
    which is visible in covariance values past ~1e-7. Returns True if enabled."""
    if jax.config.jax_enable_x64:
        return True
    logger.warning(
        "JAX 64-bit mode is disabled; linearization runs in float32. Set "
        "`jax.config.update('jax_enable_x64', True)` for full precision."
    )
    return False

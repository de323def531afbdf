"""Runtime configuration and Taichi initialization.

Taichi has to be initialized before any module that declares fields is
imported, so this module imports only Taichi itself. Typical start-up:

Example:
    >>> from src.gridtracer.config import RenderConfig, init_taichi
    >>> config = RenderConfig(num_threads=4)
    >>> init_taichi(config)
    >>> from src.gridtracer.scene.manager import SceneManager  # now safe
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import taichi as ti

from src.gridtracer.core.tonemap import ToneMapConfig

logger = logging.getLogger(__name__)

# Architectures accepted by RenderConfig.arch
_ARCHES = {
    "cpu": ti.cpu,
    "gpu": ti.gpu,
}


@dataclass
class RenderConfig:
    """Settings that apply to a whole rendering session.

    Attributes:
        arch: Taichi backend, "cpu" or "gpu".
        num_threads: Number of CPU worker threads rendering pixels in
            parallel. None lets Taichi use every core.
        random_seed: Seed passed to ti.init.
        debug: Enable Taichi's bounds-checking debug mode.
        tone_map: Exposure and compression settings for the final image.
    """

    arch: str = "cpu"
    num_threads: int | None = None
    random_seed: int = 0
    debug: bool = False
    tone_map: ToneMapConfig = field(default_factory=ToneMapConfig)

    def __post_init__(self) -> None:
        if self.arch not in _ARCHES:
            raise ValueError(f"Unknown arch '{self.arch}', expected one of {sorted(_ARCHES)}")
        if self.num_threads is not None and self.num_threads < 1:
            raise ValueError(f"Thread count must be at least 1, got {self.num_threads}")


def init_taichi(config: RenderConfig | None = None) -> None:
    """Initialize Taichi for rendering.

    Must be called once, before importing modules that declare fields.

    Args:
        config: Session settings (defaults to RenderConfig()).
    """
    if config is None:
        config = RenderConfig()

    kwargs = {
        "arch": _ARCHES[config.arch],
        "random_seed": config.random_seed,
        "debug": config.debug,
    }
    if config.num_threads is not None:
        kwargs["cpu_max_num_threads"] = config.num_threads

    logger.info(
        "Initializing Taichi (arch=%s, threads=%s)",
        config.arch,
        config.num_threads if config.num_threads is not None else "all",
    )
    ti.init(**kwargs)

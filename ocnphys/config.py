"""
Configuration for the ocean vertical physics

Defaults are kept in conf/config.yaml and composed with Hydra; the composed
DictConfig is read by name into an immutable OceanConfig that the components
own. Nothing here is process-wide state.
"""

import logging
import os
from typing import NamedTuple, Optional, Sequence

from hydra import compose, initialize_config_dir
from hydra.core.global_hydra import GlobalHydra
from omegaconf import DictConfig

from ocnphys.vmix.richardson_types import RichardsonParameters
from ocnphys.shortwave.shortwave_types import ShortWaveParameters, SW_ABSORPTION_NONE

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "conf")


def load_config(overrides: Optional[Sequence[str]] = None) -> DictConfig:
    """
    Compose the default configuration with optional Hydra overrides.

    Example:
        load_config(["vmix.rich.use_rich_visc=false", "time.dt='00:30:00'"])
    """
    global_hydra = GlobalHydra.instance()
    if not global_hydra.is_initialized():
        return _compose(overrides)

    # Inside a Hydra app; the app's Hydra is restored once ours is composed
    app_hydra = global_hydra.hydra
    global_hydra.clear()
    try:
        return _compose(overrides)
    finally:
        GlobalHydra.instance().initialize(app_hydra)


def _compose(overrides):
    with initialize_config_dir(version_base=None, config_dir=CONFIG_DIR):
        cfg = compose(config_name="config", overrides=list(overrides or []))
    logger.debug("Composed configuration with overrides %s", list(overrides or []))
    return cfg


class OceanConfig(NamedTuple):
    """Read-only configuration shared by the mixing and short-wave components"""

    use_rich_visc: bool = True
    use_rich_diff: bool = True
    richardson: RichardsonParameters = RichardsonParameters.default()

    sw_absorption_type: str = SW_ABSORPTION_NONE
    shortwave: ShortWaveParameters = ShortWaveParameters.default()

    use_active_tracers_surface_bulk_forcing: bool = False
    dt: str = "00:10:00"
    do_restart: bool = False

    @classmethod
    def default(cls) -> 'OceanConfig':
        return cls()

    @classmethod
    def from_dictconfig(cls, cfg: DictConfig) -> 'OceanConfig':
        """Read an OceanConfig out of a composed configuration"""
        rich = cfg.vmix.rich
        return cls(
            use_rich_visc=bool(rich.use_rich_visc),
            use_rich_diff=bool(rich.use_rich_diff),
            richardson=RichardsonParameters.default(
                rich_mix=float(rich.rich_mix),
                bkrd_vert_visc=float(rich.bkrd_vert_visc),
                bkrd_vert_diff=float(rich.bkrd_vert_diff),
                convective_visc=float(rich.convective_visc),
                convective_diff=float(rich.convective_diff),
            ),
            sw_absorption_type=str(cfg.shortwave.sw_absorption_type).strip(),
            shortwave=ShortWaveParameters.default(
                surface_buoyancy_depth=float(cfg.shortwave.surface_buoyancy_depth)
            ),
            use_active_tracers_surface_bulk_forcing=bool(cfg.forcing.use_activeTracers_surface_bulk_forcing),
            dt=str(cfg.time.dt),
            do_restart=bool(cfg.time.do_restart),
        )

    @classmethod
    def load(cls, overrides: Optional[Sequence[str]] = None) -> 'OceanConfig':
        return cls.from_dictconfig(load_config(overrides))

    def with_richardson(self, **kwargs) -> 'OceanConfig':
        """Create a new OceanConfig with updated Richardson parameters"""
        richardson = self.richardson.__class__(**{
            **self.richardson.__dict__,
            **kwargs
        })
        return self._replace(richardson=richardson)

    def with_shortwave(self, **kwargs) -> 'OceanConfig':
        """Create a new OceanConfig with updated short-wave parameters"""
        shortwave = self.shortwave.__class__(**{
            **self.shortwave.__dict__,
            **kwargs
        })
        return self._replace(shortwave=shortwave)

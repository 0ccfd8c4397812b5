"""
Data structures for variable short-wave absorption.
"""

from typing import NamedTuple
import jax.numpy as jnp
import tree_math

# Forcing group and field names registered with the forcing provider
FORCING_GROUP = "shortwave_monthly_observations"
CHLOROPHYLL = "chlorophyllData"
CLEAR_SKY_RADIATION = "clearSkyRadiation"
ZENITH_ANGLE = "zenithAngle"

# Values of sw_absorption_type handled here
SW_ABSORPTION_OHLMANN00 = "ohlmann00"
SW_ABSORPTION_NONE = "none"


@tree_math.struct
class ShortWaveParameters:
    """Parameters for short-wave penetration."""

    surface_buoyancy_depth: float  # Depth of the ocean boundary layer flux [m], either sign

    @classmethod
    def default(cls, surface_buoyancy_depth=1.0) -> 'ShortWaveParameters':
        """Return default short-wave parameters"""
        return cls(surface_buoyancy_depth=jnp.array(surface_buoyancy_depth))


class ShortWaveForcing(NamedTuple):
    """Time-interpolated per-cell inputs of the bio-optical model."""

    chlorophyll: jnp.ndarray          # Chlorophyll-a concentration [mg/m³] (nCells,)
    zenith_angle: jnp.ndarray         # Solar zenith angle (nCells,)
    clear_sky_radiation: jnp.ndarray  # Clear-sky short-wave flux (nCells,)

    @classmethod
    def from_provider(cls, provider, group=FORCING_GROUP) -> 'ShortWaveForcing':
        fields = provider.fields(group)
        return cls(
            chlorophyll=jnp.asarray(fields[CHLOROPHYLL]),
            zenith_angle=jnp.asarray(fields[ZENITH_ANGLE]),
            clear_sky_radiation=jnp.asarray(fields[CLEAR_SKY_RADIATION]),
        )

"""
Penetration of short-wave radiation into the water column.

The surface penetrative temperature flux is spread over the column with the
Ohlmann and Siegel (2000) fractions: layer k receives F*(w(k) - w(k+1)),
where w(k) is the fraction left at the top of layer k (w = 1 at the
surface). The flux left at the ocean boundary layer depth is reported
separately.
"""

import logging
from typing import Optional, Tuple

import cftime
import jax
import jax.numpy as jnp

from ocnphys.constants import physical_constants
from ocnphys.errors import ConfigurationError
from ocnphys.forcing import ForcingProvider
from ocnphys.mesh import Mesh, HALO_TIER_2
from ocnphys.timekeeping import parse_time_interval
from .ohlmann import os00_coefficients, variable_sw_fraction
from .shortwave_types import (
    ShortWaveForcing, ShortWaveParameters, FORCING_GROUP,
    CHLOROPHYLL, CLEAR_SKY_RADIATION, ZENITH_ANGLE,
    SW_ABSORPTION_NONE, SW_ABSORPTION_OHLMANN00
)

logger = logging.getLogger(__name__)

PHYS_CONST = physical_constants

# Monthly climatology anchored at the start of year 0
FORCING_START_TIME = "0000-01-01_00:00:00"
FORCING_CYCLE_DURATION = "0001-00-00_00:00:00"
FORCING_REFERENCE_TIME_MONTHLY = "0000-01-01_00:00:00"
FORCING_INTERVAL_MONTHLY = "0000-01-00_00:00:00"


@jax.jit
def cloud_ratio(penetrative_flux: jnp.ndarray, clear_sky_radiation: jnp.ndarray) -> jnp.ndarray:
    """Cloud cover implied by the ratio of actual to clear-sky flux, in [0, 1]"""
    ratio = 1.0 - penetrative_flux / (PHYS_CONST.hflux_factor
                                      * (PHYS_CONST.insolation_floor + clear_sky_radiation))
    return jnp.clip(ratio, 0.0, 1.0)


@jax.jit
def penetration_weights(
    mesh: Mesh,
    layer_thickness: jnp.ndarray,
    a_vals: jnp.ndarray,
    k_vals: jnp.ndarray
) -> jnp.ndarray:
    """
    Fraction of the surface flux left at each layer top.

    Args:
        mesh: Mesh
        layer_thickness: Layer thickness [m] (nlev, nCells)
        a_vals: Spectral partition (nCells, 4)
        k_vals: Extinction coefficients [1/m] (nCells, 4)

    Returns:
        Weights (nlev+1, nCells); row 0 is 1, row k+1 is the fraction at the
        bottom of layer k, zero below the last active layer
    """
    nlev, n_cells = layer_thickness.shape
    active = jnp.arange(nlev)[:, None] < mesh.max_level_cell[None, :]
    depth = jnp.cumsum(jnp.where(active, layer_thickness, 0.0), axis=0)
    fraction = jnp.where(active, variable_sw_fraction(depth, a_vals[None], k_vals[None]), 0.0)
    return jnp.concatenate([jnp.ones((1, n_cells)), fraction], axis=0)


@jax.jit
def boundary_layer_level(
    mesh: Mesh,
    layer_thickness: jnp.ndarray,
    surface_buoyancy_depth: float
) -> jnp.ndarray:
    """
    1-based level index used for the boundary-layer flux.

    The first level whose bottom lies deeper than |surface_buoyancy_depth|,
    or max_level+1 when the column is shallower; replaced by 2 when it is
    the first or the last active level.
    """
    nlev = layer_thickness.shape[0]
    active = jnp.arange(nlev)[:, None] < mesh.max_level_cell[None, :]
    depth = jnp.cumsum(jnp.where(active, layer_thickness, 0.0), axis=0)
    below = active & (depth > jnp.abs(surface_buoyancy_depth))

    level = jnp.where(jnp.any(below, axis=0),
                      jnp.argmax(below, axis=0) + 1,
                      mesh.max_level_cell + 1)
    return jnp.where((level == mesh.max_level_cell) | (level == 1), 2, level)


@jax.jit
def short_wave_tendency(
    mesh: Mesh,
    sw_forcing: ShortWaveForcing,
    layer_thickness: jnp.ndarray,
    penetrative_flux: jnp.ndarray,
    temperature_tend: jnp.ndarray,
    flux_obl: jnp.ndarray,
    params: ShortWaveParameters = ShortWaveParameters.default()
) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Absorb the penetrative temperature flux layer by layer.

    Args:
        mesh: Mesh
        sw_forcing: Chlorophyll, zenith angle and clear-sky radiation (nCells,)
        layer_thickness: Layer thickness [m] (nlev, nCells)
        penetrative_flux: Surface penetrative temperature flux (nCells,)
        temperature_tend: Temperature tendency (nlev, nCells)
        flux_obl: Previous boundary-layer flux, kept outside the range (nCells,)
        params: Short-wave parameters

    Returns:
        Updated temperature tendency (nlev, nCells) and the flux remaining at
        the boundary-layer depth (nCells,), both computed through halo tier 2
    """
    nlev, n_cells = layer_thickness.shape
    in_range = jnp.arange(n_cells) < mesh.n_cells_array[HALO_TIER_2]
    active = jnp.arange(nlev)[:, None] < mesh.max_level_cell[None, :]

    cloud = cloud_ratio(penetrative_flux, sw_forcing.clear_sky_radiation)
    a_vals, k_vals = os00_coefficients(sw_forcing.chlorophyll, sw_forcing.zenith_angle, cloud)

    weights = penetration_weights(mesh, layer_thickness, a_vals, k_vals)
    absorbed = penetrative_flux[None, :] * (weights[:-1] - weights[1:])
    temperature_tend = temperature_tend + jnp.where(active & in_range[None, :], absorbed, 0.0)

    dep_lev = boundary_layer_level(mesh, layer_thickness, params.surface_buoyancy_depth)
    weight_obl = jnp.take_along_axis(weights, (dep_lev - 1)[None, :], axis=0)[0]
    flux_obl = jnp.where(in_range, penetrative_flux * weight_obl, flux_obl)

    return temperature_tend, flux_obl


class ShortWaveAbsorption:
    """
    Variable short-wave absorption driven by monthly chlorophyll, zenith
    angle and clear-sky radiation climatologies.
    """

    def __init__(self, config, forcing: Optional[ForcingProvider] = None):
        self.config = config
        self.forcing = forcing

    @property
    def absorption_type(self) -> str:
        return self.config.sw_absorption_type.strip()

    def init(self) -> int:
        """Register the forcing the selected scheme needs"""
        if self.absorption_type == SW_ABSORPTION_OHLMANN00:
            self._init_forcing_ohlmann()
        elif self.absorption_type == SW_ABSORPTION_NONE:
            logger.info("Variable short-wave absorption disabled")
        else:
            message = (f"Shortwave parameterization type unknown: sw_absorption_type={self.absorption_type}. "
                       f"Options are: {SW_ABSORPTION_OHLMANN00} or {SW_ABSORPTION_NONE}")
            logger.critical(message)
            raise ConfigurationError(message)
        return 0

    def _init_forcing_ohlmann(self):
        # Ohlmann and Siegel (2000) only needs chlorophyll, zenith angle and clear-sky radiation
        if self.forcing is None:
            raise ConfigurationError(f"sw_absorption_type={SW_ABSORPTION_OHLMANN00} needs a forcing provider")

        self.forcing.init_group(FORCING_GROUP, FORCING_START_TIME, FORCING_START_TIME,
                                FORCING_CYCLE_DURATION, self.config.do_restart)
        for field in (CHLOROPHYLL, CLEAR_SKY_RADIATION, ZENITH_ANGLE):
            self.forcing.init_field(FORCING_GROUP, field, "constant",
                                    FORCING_REFERENCE_TIME_MONTHLY, FORCING_INTERVAL_MONTHLY)
        self.forcing.init_field_data(FORCING_GROUP, self.config.do_restart)
        logger.info("Short-wave absorption %s: monthly forcing registered", SW_ABSORPTION_OHLMANN00)

    def acquire_forcing_data(self, clock: Optional[cftime.datetime] = None, first_time_step: bool = False):
        """Refresh the forcing fields to the current simulation time"""
        dt = parse_time_interval(self.config.dt).to_seconds()

        if (self.absorption_type == SW_ABSORPTION_OHLMANN00
                and self.config.use_active_tracers_surface_bulk_forcing):
            self.forcing.get_forcing(FORCING_GROUP, dt, clock)

    def forcing_fields(self) -> ShortWaveForcing:
        return ShortWaveForcing.from_provider(self.forcing, FORCING_GROUP)

    def compute_tendency(
        self,
        mesh: Mesh,
        sw_forcing: ShortWaveForcing,
        index_temperature: int,
        layer_thickness: jnp.ndarray,
        penetrative_flux: jnp.ndarray,
        tend: jnp.ndarray,
        flux_obl: Optional[jnp.ndarray] = None
    ) -> Tuple[jnp.ndarray, jnp.ndarray, int]:
        """
        Add short-wave heating to the temperature tendency.

        Args:
            mesh: Mesh
            sw_forcing: Per-cell forcing fields
            index_temperature: Index of temperature in the tracer tendency
            layer_thickness: Layer thickness [m] (nlev, nCells)
            penetrative_flux: Surface penetrative temperature flux (nCells,)
            tend: Tracer tendency (ntracers, nlev, nCells)
            flux_obl: Boundary-layer flux to update (nCells,), zeros if omitted

        Returns:
            Updated tendency, boundary-layer flux and error code
        """
        if flux_obl is None:
            flux_obl = jnp.zeros_like(penetrative_flux)

        temperature_tend, flux_obl = short_wave_tendency(
            mesh, sw_forcing, layer_thickness, penetrative_flux,
            tend[index_temperature], flux_obl, self.config.shortwave
        )
        return tend.at[index_temperature].set(temperature_tend), flux_obl, 0

    def write_restart(self):
        """Record the forcing time so a restarted run resumes the climatology"""
        if self.absorption_type == SW_ABSORPTION_OHLMANN00:
            return self.forcing.write_restart_times()
        return None

"""
Equation of state interface.

The mixing scheme treats density as a black box: any callable matching
EquationOfState can be handed to RichardsonMixing.build. A linear equation
of state is provided for drivers and tests.
"""

from typing import NamedTuple, Protocol, Tuple

import jax
import jax.numpy as jnp

from ocnphys.vmix.richardson_types import OceanState

REFERENCE_MODES = ("relative", "absolute")


class EquationOfState(Protocol):
    def __call__(self, state: OceanState, displacement_levels: int,
                 reference_mode: str) -> Tuple[jnp.ndarray, int]:
        """
        Return density [kg/m³] (nlev, nCells) and an error code.

        With ``reference_mode='relative'`` layer k is evaluated at the pressure
        of layer k + displacement_levels.
        """
        ...


class LinearEOSParameters(NamedTuple):
    density_ref: float = 1000.0   # [kg/m³]
    alpha: float = 0.2            # Thermal expansion [kg/m³/°C]
    beta: float = 0.8             # Haline contraction [kg/m³/PSU]
    temperature_ref: float = 5.0  # [°C]
    salinity_ref: float = 35.0    # [PSU]


@jax.jit
def linear_density(temperature: jnp.ndarray, salinity: jnp.ndarray,
                   params: LinearEOSParameters = LinearEOSParameters()) -> jnp.ndarray:
    """
    Linear equation of state.

    Args:
        temperature: Potential temperature [°C] (nlev, nCells)
        salinity: Salinity [PSU] (nlev, nCells)
        params: Linear coefficients

    Returns:
        Density [kg/m³] (nlev, nCells)
    """
    return (params.density_ref
            - params.alpha * (temperature - params.temperature_ref)
            + params.beta * (salinity - params.salinity_ref))


class LinearEquationOfState:
    """Linear equation of state; pressure independent, so displacement has no effect."""

    def __init__(self, params: LinearEOSParameters = LinearEOSParameters()):
        self.params = params

    def __call__(self, state: OceanState, displacement_levels: int,
                 reference_mode: str) -> Tuple[jnp.ndarray, int]:
        if reference_mode not in REFERENCE_MODES:
            raise ValueError(f"Invalid reference mode: {reference_mode}. Must be one of: {list(REFERENCE_MODES)}")
        return linear_density(state.temperature, state.salinity, self.params), 0

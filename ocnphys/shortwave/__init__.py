"""
Variable short-wave absorption for the ocean.

Surface short-wave heating is distributed over the water column with the
chlorophyll, cloud and zenith-angle dependent fractions of Ohlmann and
Siegel (2000), fed by monthly climatologies from a forcing provider.
"""

from .shortwave_types import (
    ShortWaveParameters,
    ShortWaveForcing,
    FORCING_GROUP,
    SW_ABSORPTION_OHLMANN00,
    SW_ABSORPTION_NONE
)

from .ohlmann import (
    os00_coefficients,
    variable_sw_fraction
)

from .absorption import (
    cloud_ratio,
    penetration_weights,
    boundary_layer_level,
    short_wave_tendency,
    ShortWaveAbsorption
)

__all__ = [
    # Types
    "ShortWaveParameters",
    "ShortWaveForcing",
    "FORCING_GROUP",
    "SW_ABSORPTION_OHLMANN00",
    "SW_ABSORPTION_NONE",

    # Bio-optical model
    "os00_coefficients",
    "variable_sw_fraction",

    # Tendency
    "cloud_ratio",
    "penetration_weights",
    "boundary_layer_level",
    "short_wave_tendency",

    # Main interface
    "ShortWaveAbsorption"
]

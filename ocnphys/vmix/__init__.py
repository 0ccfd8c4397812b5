"""
Richardson-number vertical mixing for the ocean.

The implementation follows the MPAS-Ocean approach with:
- Density jumps from adiabatically displaced density
- Squared shear on edges, reconstructed onto cells with dual-mesh weights
- Empirical viscosity/diffusivity formulas capped at convective values
"""

from .richardson_types import (
    RichardsonParameters,
    OceanState,
    VmixDiagnostics,
    RichardsonScratch,
    RichardsonNumbers
)

from .richardson_numbers import (
    richardson_scratch,
    reconstruct_edge_to_cell,
    richardson_numbers
)

from .richardson_coefficients import (
    velocity_viscosity,
    tracer_diffusivity
)

from .richardson_mixing import RichardsonMixing

__all__ = [
    # Types
    "RichardsonParameters",
    "OceanState",
    "VmixDiagnostics",
    "RichardsonScratch",
    "RichardsonNumbers",

    # Richardson numbers
    "richardson_scratch",
    "reconstruct_edge_to_cell",
    "richardson_numbers",

    # Coefficients
    "velocity_viscosity",
    "tracer_diffusivity",

    # Main interface
    "RichardsonMixing"
]

"""
Ocean vertical physics for unstructured meshes, in JAX.

- vmix: Richardson-number vertical viscosity and diffusivity
- shortwave: chlorophyll-dependent short-wave penetration
"""

import jax

# Density jumps of 1e-4 kg/m³ on 1027 kg/m³ need double precision
jax.config.update("jax_enable_x64", True)

from ocnphys.mesh import Mesh, mesh_from_dataset
from ocnphys.config import OceanConfig, load_config
from ocnphys.errors import ConfigurationError
from ocnphys.vmix import RichardsonMixing, OceanState, VmixDiagnostics
from ocnphys.shortwave import ShortWaveAbsorption, ShortWaveForcing
from ocnphys.equation_of_state import LinearEquationOfState
from ocnphys.forcing import MonthlyClimatologyForcing

__all__ = [
    'Mesh',
    'mesh_from_dataset',
    'OceanConfig',
    'load_config',
    'ConfigurationError',
    'RichardsonMixing',
    'OceanState',
    'VmixDiagnostics',
    'ShortWaveAbsorption',
    'ShortWaveForcing',
    'LinearEquationOfState',
    'MonthlyClimatologyForcing',
]

"""
Data structures for Richardson-number vertical mixing.

Fields are laid out [level, cell] or [level, edge]; tracers are
[tracer, level, cell].
"""

from typing import NamedTuple
import jax.numpy as jnp
import tree_math


@tree_math.struct
class RichardsonParameters:
    """Parameters for Richardson-number vertical mixing."""

    rich_mix: float         # Richardson mixing coefficient [m²/s]
    bkrd_vert_visc: float   # Background vertical viscosity [m²/s]
    bkrd_vert_diff: float   # Background vertical diffusivity [m²/s]
    convective_visc: float  # Viscosity for unstable columns, also the cap [m²/s]
    convective_diff: float  # Diffusivity for unstable columns, also the cap [m²/s]

    @classmethod
    def default(cls, rich_mix=0.005, bkrd_vert_visc=1.0e-4, bkrd_vert_diff=1.0e-5,
                convective_visc=1.0, convective_diff=1.0) -> 'RichardsonParameters':
        """Return default Richardson mixing parameters"""
        return cls(
            rich_mix=jnp.array(rich_mix),
            bkrd_vert_visc=jnp.array(bkrd_vert_visc),
            bkrd_vert_diff=jnp.array(bkrd_vert_diff),
            convective_visc=jnp.array(convective_visc),
            convective_diff=jnp.array(convective_diff),
        )


class OceanState(NamedTuple):
    """Prognostic ocean state at one time level."""

    normal_velocity: jnp.ndarray   # Normal velocity [m/s] (nlev, nEdges)
    layer_thickness: jnp.ndarray   # Layer thickness [m] (nlev, nCells)
    active_tracers: jnp.ndarray    # Temperature, salinity, ... (ntracers, nlev, nCells)
    index_temperature: int = 0
    index_salinity: int = 1

    @property
    def temperature(self) -> jnp.ndarray:
        return self.active_tracers[self.index_temperature]

    @property
    def salinity(self) -> jnp.ndarray:
        return self.active_tracers[self.index_salinity]


class VmixDiagnostics(NamedTuple):
    """Diagnostic fields read and written by the mixing scheme."""

    density: jnp.ndarray                # [kg/m³] (nlev, nCells)
    displaced_density: jnp.ndarray      # Density displaced one level deeper (nlev, nCells)
    layer_thickness_edge: jnp.ndarray   # [m] (nlev, nEdges)
    ri_top_of_cell: jnp.ndarray         # Richardson number (nlev, nCells)
    ri_top_of_edge: jnp.ndarray         # Richardson number (nlev, nEdges)
    vert_visc_top_of_edge: jnp.ndarray  # Accumulated viscosity [m²/s] (nlev, nEdges)
    vert_diff_top_of_cell: jnp.ndarray  # Accumulated diffusivity [m²/s] (nlev, nCells)

    @classmethod
    def zeros(cls, nlev, n_cells, n_edges, layer_thickness_edge=None) -> 'VmixDiagnostics':
        return cls(
            density=jnp.zeros((nlev, n_cells)),
            displaced_density=jnp.zeros((nlev, n_cells)),
            layer_thickness_edge=layer_thickness_edge if layer_thickness_edge is not None else jnp.zeros((nlev, n_edges)),
            ri_top_of_cell=jnp.zeros((nlev, n_cells)),
            ri_top_of_edge=jnp.zeros((nlev, n_edges)),
            vert_visc_top_of_edge=jnp.zeros((nlev, n_edges)),
            vert_diff_top_of_cell=jnp.zeros((nlev, n_cells)),
        )


class RichardsonScratch(NamedTuple):
    """Working arrays of one Richardson-number evaluation."""

    ddensity_top_of_cell: jnp.ndarray  # (nlev, nCells)
    ddensity_top_of_edge: jnp.ndarray  # (nlev, nEdges)
    du2_top_of_cell: jnp.ndarray       # (nlev, nCells)
    du2_top_of_edge: jnp.ndarray       # (nlev, nEdges)


class RichardsonNumbers(NamedTuple):
    ri_top_of_edge: jnp.ndarray  # (nlev, nEdges)
    ri_top_of_cell: jnp.ndarray  # (nlev, nCells)

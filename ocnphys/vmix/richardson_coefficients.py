"""
Richardson-number vertical viscosity and diffusivity.

Both kernels act on an accumulator that may already hold contributions from
other mixing schemes. On stable interfaces (Ri > 0) this scheme adds its
value and the total is capped at the convective constant; on unstable
interfaces (Ri <= 0) the accumulator is overwritten with the convective
constant. Only owned edges/cells are touched; every other entry is returned
unchanged.
"""

import jax
import jax.numpy as jnp

from ocnphys.mesh import Mesh, OWNED
from .richardson_numbers import interface_mask
from .richardson_types import RichardsonParameters


def stable_viscosity(ri: jnp.ndarray, params: RichardsonParameters) -> jnp.ndarray:
    """bkrd_vert_visc + rich_mix/(1+5Ri)^2"""
    return params.bkrd_vert_visc + params.rich_mix / (1.0 + 5.0 * ri)**2


def stable_diffusivity(ri: jnp.ndarray, params: RichardsonParameters) -> jnp.ndarray:
    """bkrd_vert_diff + (bkrd_vert_visc + rich_mix/(1+5Ri)^2)/(1+5Ri)"""
    return params.bkrd_vert_diff + stable_viscosity(ri, params) / (1.0 + 5.0 * ri)


@jax.jit
def velocity_viscosity(
    mesh: Mesh,
    ri_top_of_edge: jnp.ndarray,
    layer_thickness_edge: jnp.ndarray,
    vert_visc_top_of_edge: jnp.ndarray,
    params: RichardsonParameters = RichardsonParameters.default()
) -> jnp.ndarray:
    """
    Add the Richardson viscosity to vert_visc_top_of_edge.

    Args:
        mesh: Mesh
        ri_top_of_edge: Richardson number at edge tops (nlev, nEdges)
        layer_thickness_edge: Layer thickness at edges [m] (nlev, nEdges)
        vert_visc_top_of_edge: Accumulated viscosity [m²/s] (nlev, nEdges)
        params: Richardson parameters

    Returns:
        Updated viscosity [m²/s] (nlev, nEdges)
    """
    nlev = vert_visc_top_of_edge.shape[0]
    owned = interface_mask(mesh.max_level_edge_top, mesh.n_edges_array[OWNED], nlev)

    stable = jnp.minimum(vert_visc_top_of_edge + stable_viscosity(ri_top_of_edge, params),
                         params.convective_visc)
    updated = jnp.where(ri_top_of_edge > 0.0, stable, params.convective_visc)

    return jnp.where(owned, updated, vert_visc_top_of_edge)


@jax.jit
def tracer_diffusivity(
    mesh: Mesh,
    ri_top_of_cell: jnp.ndarray,
    layer_thickness: jnp.ndarray,
    vert_diff_top_of_cell: jnp.ndarray,
    params: RichardsonParameters = RichardsonParameters.default()
) -> jnp.ndarray:
    """
    Add the Richardson diffusivity to vert_diff_top_of_cell.

    The stable branch carries an extra 1/(1+5Ri) relative to viscosity, so
    diffusivity falls off faster with stratification.

    Args:
        mesh: Mesh
        ri_top_of_cell: Richardson number at cell tops (nlev, nCells)
        layer_thickness: Layer thickness [m] (nlev, nCells)
        vert_diff_top_of_cell: Accumulated diffusivity [m²/s] (nlev, nCells)
        params: Richardson parameters

    Returns:
        Updated diffusivity [m²/s] (nlev, nCells)
    """
    nlev = vert_diff_top_of_cell.shape[0]
    owned = interface_mask(mesh.max_level_cell, mesh.n_cells_array[OWNED], nlev)

    stable = jnp.minimum(vert_diff_top_of_cell + stable_diffusivity(ri_top_of_cell, params),
                         params.convective_diff)
    updated = jnp.where(ri_top_of_cell > 0.0, stable, params.convective_diff)

    return jnp.where(owned, updated, vert_diff_top_of_cell)

"""
Gradient Richardson number at cell tops and edge tops.

The density jump across an interface uses the density of the layer above
displaced adiabatically to the layer below, so only the stable/unstable
part of the stratification enters. Squared shear is formed on edges and
reconstructed onto cells with the dual-mesh area weights dc*dv/2.

Iteration ranges follow the halo layout of the mesh: density jumps and the
edge quantities are formed through halo tier 1 so that every edge of an
owned cell is available to the cell reconstruction, which itself runs on
owned cells only.
"""

import jax
import jax.numpy as jnp

from ocnphys.constants import physical_constants
from ocnphys.mesh import Mesh, OWNED, HALO_TIER_1
from .richardson_types import RichardsonScratch, RichardsonNumbers

PHYS_CONST = physical_constants


def _shift_down(field: jnp.ndarray) -> jnp.ndarray:
    """Row k holds field[k-1]; row 0 is zero."""
    return jnp.concatenate([jnp.zeros_like(field[:1]), field[:-1]], axis=0)


def interface_mask(max_level: jnp.ndarray, n_active: jnp.ndarray, nlev: int) -> jnp.ndarray:
    """
    Interfaces k = 1..max_level-1 of the first n_active columns.

    Args:
        max_level: Number of active layers per column (n,)
        n_active: Number of leading columns in the range
        nlev: Number of vertical levels

    Returns:
        Boolean mask (nlev, n)
    """
    k = jnp.arange(nlev)[:, None]
    column = jnp.arange(max_level.shape[0])[None, :]
    return (k >= 1) & (k < max_level[None, :]) & (column < n_active)


def _gather_cells(field: jnp.ndarray, cells: jnp.ndarray) -> jnp.ndarray:
    # Missing neighbours (-1) read a zero column appended past the last cell
    padded = jnp.pad(field, ((0, 0), (0, 1)))
    return padded[:, jnp.where(cells < 0, field.shape[1], cells)]


@jax.jit
def richardson_scratch(
    mesh: Mesh,
    normal_velocity: jnp.ndarray,
    density: jnp.ndarray,
    displaced_density: jnp.ndarray
) -> RichardsonScratch:
    """
    Density jumps and squared shear at cell and edge tops.

    Args:
        mesh: Mesh
        normal_velocity: Normal velocity [m/s] (nlev, nEdges)
        density: Density [kg/m³] (nlev, nCells)
        displaced_density: Density displaced one level deeper [kg/m³] (nlev, nCells)

    Returns:
        RichardsonScratch, zero outside the computed ranges
    """
    nlev = density.shape[0]
    cell_halo = interface_mask(mesh.max_level_cell, mesh.n_cells_array[HALO_TIER_1], nlev)
    edge_halo = interface_mask(mesh.max_level_edge_top, mesh.n_edges_array[HALO_TIER_1], nlev)

    # ddensity(k) = rho*(k-1) - rho(k), rho* displaced to level k
    ddensity_top_of_cell = jnp.where(cell_halo, _shift_down(displaced_density) - density, 0.0)

    cell1 = mesh.cells_on_edge[:, 0]
    cell2 = mesh.cells_on_edge[:, 1]
    ddensity_top_of_edge = jnp.where(
        edge_halo,
        0.5 * (_gather_cells(ddensity_top_of_cell, cell1) + _gather_cells(ddensity_top_of_cell, cell2)),
        0.0
    )

    # du2(k) = (u(k-1) - u(k))^2
    du2_top_of_edge = jnp.where(edge_halo, (_shift_down(normal_velocity) - normal_velocity)**2, 0.0)

    du2_top_of_cell = reconstruct_edge_to_cell(mesh, du2_top_of_edge)

    return RichardsonScratch(
        ddensity_top_of_cell=ddensity_top_of_cell,
        ddensity_top_of_edge=ddensity_top_of_edge,
        du2_top_of_cell=du2_top_of_cell,
        du2_top_of_edge=du2_top_of_edge,
    )


@jax.jit
def reconstruct_edge_to_cell(mesh: Mesh, field_top_of_edge: jnp.ndarray) -> jnp.ndarray:
    """
    Area-weighted sum of an edge-top field onto owned cells.

    Each edge contributes 0.5*dc_edge*dv_edge/area_cell, the share of the cell
    area associated with that edge, on interfaces 1..max_level_edge_bot-1.

    Args:
        mesh: Mesh
        field_top_of_edge: Field at edge tops (nlev, nEdges)

    Returns:
        Field at cell tops (nlev, nCells), zero outside owned cells
    """
    nlev = field_top_of_edge.shape[0]
    edges = mesh.edges_on_cell
    valid = (jnp.arange(mesh.max_edges)[None, :] < mesh.n_edges_on_cell[:, None]) & (edges >= 0)
    safe_edges = jnp.where(valid, edges, 0)

    weight = jnp.where(valid, 0.5 * mesh.dc_edge[safe_edges] * mesh.dv_edge[safe_edges], 0.0)
    weight = weight / mesh.area_cell[:, None]

    k = jnp.arange(nlev)[:, None, None]
    bottom = jnp.where(valid, mesh.max_level_edge_bot[safe_edges], 0)
    on_level = (k >= 1) & (k < bottom[None, :, :])

    contributions = jnp.where(on_level, field_top_of_edge[:, safe_edges], 0.0) * weight[None, :, :]
    field_top_of_cell = jnp.sum(contributions, axis=2)

    owned = jnp.arange(mesh.n_cells)[None, :] < mesh.n_cells_array[OWNED]
    return jnp.where(owned, field_top_of_cell, 0.0)


@jax.jit
def richardson_numbers(
    mesh: Mesh,
    normal_velocity: jnp.ndarray,
    layer_thickness: jnp.ndarray,
    layer_thickness_edge: jnp.ndarray,
    density: jnp.ndarray,
    displaced_density: jnp.ndarray,
    gravity: float = PHYS_CONST.gravity,
    rho_ref: float = PHYS_CONST.rho_sw
) -> RichardsonNumbers:
    """
    Compute the gradient Richardson number at edge tops and cell tops.

    Ri = -g/rho0/2 * ddensity * (h(k-1) + h(k)) / (du2 + 1e-20)

    The 1e-20 floor keeps Ri finite when the shear vanishes; the sign of Ri is
    kept, Ri <= 0 marks a statically unstable interface.

    Args:
        mesh: Mesh
        normal_velocity: Normal velocity [m/s] (nlev, nEdges)
        layer_thickness: Layer thickness [m] (nlev, nCells)
        layer_thickness_edge: Layer thickness at edges [m] (nlev, nEdges)
        density: Density [kg/m³] (nlev, nCells)
        displaced_density: Density displaced one level deeper [kg/m³] (nlev, nCells)
        gravity: Gravitational acceleration [m/s²]
        rho_ref: Reference density [kg/m³]

    Returns:
        RichardsonNumbers; edge values on owned edges plus halo tier 1,
        cell values on owned cells, zero elsewhere
    """
    nlev = density.shape[0]
    scratch = richardson_scratch(mesh, normal_velocity, density, displaced_density)

    coef = -gravity / rho_ref / 2.0

    edge_halo = interface_mask(mesh.max_level_edge_top, mesh.n_edges_array[HALO_TIER_1], nlev)
    ri_top_of_edge = jnp.where(
        edge_halo,
        coef * scratch.ddensity_top_of_edge
        * (_shift_down(layer_thickness_edge) + layer_thickness_edge)
        / (scratch.du2_top_of_edge + PHYS_CONST.shear_floor),
        0.0
    )

    cell_owned = interface_mask(mesh.max_level_cell, mesh.n_cells_array[OWNED], nlev)
    ri_top_of_cell = jnp.where(
        cell_owned,
        coef * scratch.ddensity_top_of_cell
        * (_shift_down(layer_thickness) + layer_thickness)
        / (scratch.du2_top_of_cell + PHYS_CONST.shear_floor),
        0.0
    )

    return RichardsonNumbers(ri_top_of_edge=ri_top_of_edge, ri_top_of_cell=ri_top_of_cell)

"""
Unstructured horizontal mesh with a vertical level structure.

Connectivity is stored as 0-based index arrays with -1 marking a missing
neighbour. Cells and edges are ordered so that owned entries come first,
followed by successive halo tiers; ``n_cells_array``/``n_edges_array`` hold
the nested active counts (``[0]`` owned, ``[1]`` owned plus halo tier 1,
``[2]`` tier 2, ..., last = every cell/edge).
"""

import jax.numpy as jnp
import numpy as np
import tree_math

# Index into n_cells_array / n_edges_array for each range
OWNED = 0
HALO_TIER_1 = 1
HALO_TIER_2 = 2


@tree_math.struct
class Mesh:
    cells_on_edge: jnp.ndarray      # (nEdges, 2)
    edges_on_cell: jnp.ndarray      # (nCells, maxEdges)
    n_edges_on_cell: jnp.ndarray    # (nCells,)
    edge_sign_on_cell: jnp.ndarray  # (nCells, maxEdges)

    max_level_cell: jnp.ndarray      # (nCells,) number of active layers
    max_level_edge_top: jnp.ndarray  # (nEdges,)
    max_level_edge_bot: jnp.ndarray  # (nEdges,)

    area_cell: jnp.ndarray         # (nCells,) m²
    dc_edge: jnp.ndarray           # (nEdges,) m
    dv_edge: jnp.ndarray           # (nEdges,) m
    ref_bottom_depth: jnp.ndarray  # (nVertLevels,) m

    n_cells_array: jnp.ndarray  # (nHalo+1,)
    n_edges_array: jnp.ndarray  # (nHalo+1,)

    @property
    def n_cells(self):
        return self.area_cell.shape[0]

    @property
    def n_edges(self):
        return self.dc_edge.shape[0]

    @property
    def n_vert_levels(self):
        return self.ref_bottom_depth.shape[0]

    @property
    def max_edges(self):
        return self.edges_on_cell.shape[1]

    @classmethod
    def create(cls, cells_on_edge, edges_on_cell, n_edges_on_cell,
               max_level_cell, max_level_edge_top, max_level_edge_bot,
               area_cell, dc_edge, dv_edge, ref_bottom_depth,
               edge_sign_on_cell=None, n_cells_array=None, n_edges_array=None) -> 'Mesh':
        """
        Validate connectivity and build a Mesh.

        When no active-count arrays are given the mesh is treated as a single
        partition: every cell and edge is owned and the halo tiers are empty.
        """
        cells_on_edge = np.asarray(cells_on_edge, dtype=np.int32)
        edges_on_cell = np.asarray(edges_on_cell, dtype=np.int32)
        n_edges_on_cell = np.asarray(n_edges_on_cell, dtype=np.int32)
        max_level_cell = np.asarray(max_level_cell, dtype=np.int32)
        max_level_edge_top = np.asarray(max_level_edge_top, dtype=np.int32)
        max_level_edge_bot = np.asarray(max_level_edge_bot, dtype=np.int32)
        area_cell = np.asarray(area_cell, dtype=float)
        dc_edge = np.asarray(dc_edge, dtype=float)
        dv_edge = np.asarray(dv_edge, dtype=float)
        ref_bottom_depth = np.asarray(ref_bottom_depth, dtype=float)

        n_cells = area_cell.shape[0]
        n_edges = dc_edge.shape[0]
        n_levels = ref_bottom_depth.shape[0]

        if cells_on_edge.shape != (n_edges, 2):
            raise ValueError(f"cells_on_edge must have shape ({n_edges}, 2), got {cells_on_edge.shape}")
        if edges_on_cell.ndim != 2 or edges_on_cell.shape[0] != n_cells:
            raise ValueError(f"edges_on_cell must have shape ({n_cells}, maxEdges), got {edges_on_cell.shape}")
        max_edges = edges_on_cell.shape[1]
        for name, arr, n in (("n_edges_on_cell", n_edges_on_cell, n_cells),
                             ("max_level_cell", max_level_cell, n_cells),
                             ("max_level_edge_top", max_level_edge_top, n_edges),
                             ("max_level_edge_bot", max_level_edge_bot, n_edges),
                             ("dv_edge", dv_edge, n_edges)):
            if arr.shape != (n,):
                raise ValueError(f"{name} must have shape ({n},), got {arr.shape}")

        if np.any(cells_on_edge < -1) or np.any(cells_on_edge >= n_cells):
            raise ValueError("cells_on_edge references a cell outside the mesh")
        if np.any(n_edges_on_cell < 0) or np.any(n_edges_on_cell > max_edges):
            raise ValueError(f"n_edges_on_cell must lie in [0, {max_edges}]")
        valid = np.arange(max_edges)[None, :] < n_edges_on_cell[:, None]
        if np.any(edges_on_cell[valid] < 0) or np.any(edges_on_cell[valid] >= n_edges):
            raise ValueError("edges_on_cell references an edge outside the mesh")
        edges_on_cell = np.where(valid, edges_on_cell, -1)

        for name, arr in (("max_level_cell", max_level_cell),
                          ("max_level_edge_top", max_level_edge_top),
                          ("max_level_edge_bot", max_level_edge_bot)):
            if np.any(arr < 0) or np.any(arr > n_levels):
                raise ValueError(f"{name} must lie in [0, {n_levels}]")
        if np.any(area_cell <= 0.0):
            raise ValueError("area_cell must be positive")

        if edge_sign_on_cell is None:
            edge_sign_on_cell = _edge_sign_on_cell(cells_on_edge, edges_on_cell)
        edge_sign_on_cell = np.asarray(edge_sign_on_cell, dtype=float)
        if edge_sign_on_cell.shape != edges_on_cell.shape:
            raise ValueError("edge_sign_on_cell must have the shape of edges_on_cell")

        n_cells_array = _active_counts("n_cells_array", n_cells_array, n_cells)
        n_edges_array = _active_counts("n_edges_array", n_edges_array, n_edges)

        return cls(
            cells_on_edge=jnp.asarray(cells_on_edge),
            edges_on_cell=jnp.asarray(edges_on_cell),
            n_edges_on_cell=jnp.asarray(n_edges_on_cell),
            edge_sign_on_cell=jnp.asarray(edge_sign_on_cell),
            max_level_cell=jnp.asarray(max_level_cell),
            max_level_edge_top=jnp.asarray(max_level_edge_top),
            max_level_edge_bot=jnp.asarray(max_level_edge_bot),
            area_cell=jnp.asarray(area_cell),
            dc_edge=jnp.asarray(dc_edge),
            dv_edge=jnp.asarray(dv_edge),
            ref_bottom_depth=jnp.asarray(ref_bottom_depth),
            n_cells_array=jnp.asarray(n_cells_array),
            n_edges_array=jnp.asarray(n_edges_array),
        )


def _active_counts(name, counts, n):
    if counts is None:
        return np.full(3, n, dtype=np.int32)
    counts = np.asarray(counts, dtype=np.int32)
    if counts.ndim != 1 or counts.shape[0] < 3:
        raise ValueError(f"{name} needs at least three nested counts (owned, halo tier 1, halo tier 2)")
    if np.any(np.diff(counts) < 0) or counts[0] < 0:
        raise ValueError(f"{name} must be non-decreasing, got {counts.tolist()}")
    if counts[-1] != n:
        raise ValueError(f"{name} must end at {n}, got {counts[-1]}")
    return counts


def _edge_sign_on_cell(cells_on_edge, edges_on_cell):
    # -1 when the cell is the first cell of the edge, +1 otherwise
    safe = np.where(edges_on_cell >= 0, edges_on_cell, 0)
    first = cells_on_edge[safe, 0]
    cell = np.arange(edges_on_cell.shape[0])[:, None]
    sign = np.where(first == cell, -1.0, 1.0)
    return np.where(edges_on_cell >= 0, sign, 0.0)


def mesh_from_dataset(ds, n_cells_array=None, n_edges_array=None) -> Mesh:
    """
    Build a Mesh from an MPAS mesh held in an xarray Dataset.

    Indices in the dataset are 1-based with 0 marking a missing neighbour.
    maxLevelEdgeTop/maxLevelEdgeBot are derived from the neighbouring cells
    when the dataset does not carry them.

    Args:
        ds: xarray.Dataset with MPAS variable names
        n_cells_array: Nested cell counts (defaults to a single partition)
        n_edges_array: Nested edge counts (defaults to a single partition)
    """
    cells_on_edge = np.asarray(ds["cellsOnEdge"].values, dtype=np.int64) - 1
    edges_on_cell = np.asarray(ds["edgesOnCell"].values, dtype=np.int64) - 1
    max_level_cell = np.asarray(ds["maxLevelCell"].values, dtype=np.int64)

    padded = np.append(max_level_cell, 0)
    neighbour_levels = padded[np.where(cells_on_edge >= 0, cells_on_edge, len(max_level_cell))]
    if "maxLevelEdgeTop" in ds:
        max_level_edge_top = ds["maxLevelEdgeTop"].values
    else:
        max_level_edge_top = neighbour_levels.min(axis=1)
    if "maxLevelEdgeBot" in ds:
        max_level_edge_bot = ds["maxLevelEdgeBot"].values
    else:
        max_level_edge_bot = neighbour_levels.max(axis=1)

    edge_sign_on_cell = ds["edgeSignOnCell"].values if "edgeSignOnCell" in ds else None

    return Mesh.create(
        cells_on_edge=cells_on_edge,
        edges_on_cell=edges_on_cell,
        n_edges_on_cell=ds["nEdgesOnCell"].values,
        max_level_cell=max_level_cell,
        max_level_edge_top=max_level_edge_top,
        max_level_edge_bot=max_level_edge_bot,
        area_cell=ds["areaCell"].values,
        dc_edge=ds["dcEdge"].values,
        dv_edge=ds["dvEdge"].values,
        ref_bottom_depth=ds["refBottomDepth"].values,
        edge_sign_on_cell=edge_sign_on_cell,
        n_cells_array=n_cells_array,
        n_edges_array=n_edges_array,
    )

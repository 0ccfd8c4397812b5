"""
Unit tests for Richardson-number vertical mixing.

Covers the density-jump and shear stencils, halo iteration ranges, the
viscosity/diffusivity formulas and the component gates.
"""

import pathlib
import subprocess
import sys

import jax.numpy as jnp
import pytest

from ocnphys.config import OceanConfig
from ocnphys.constants import PhysicalConstants
from ocnphys.equation_of_state import LinearEquationOfState
from ocnphys.mesh import Mesh
from .richardson_types import RichardsonParameters, OceanState, VmixDiagnostics
from .richardson_numbers import richardson_scratch, reconstruct_edge_to_cell, richardson_numbers
from .richardson_coefficients import velocity_viscosity, tracer_diffusivity
from .richardson_mixing import RichardsonMixing

PHYS_CONST = PhysicalConstants()
COEF = -PHYS_CONST.gravity / PHYS_CONST.rho_sw / 2.0


def create_two_cell_mesh(nlev=3, max_level=(3, 3)):
    """Two cells sharing one edge; the edge carries the whole cell area (0.5*dc*dv/area = 1)"""
    return Mesh.create(
        cells_on_edge=[[0, 1]],
        edges_on_cell=[[0], [0]],
        n_edges_on_cell=[1, 1],
        max_level_cell=list(max_level),
        max_level_edge_top=[min(max_level)],
        max_level_edge_bot=[max(max_level)],
        area_cell=[1.0, 1.0],
        dc_edge=[2.0],
        dv_edge=[1.0],
        ref_bottom_depth=10.0 * jnp.arange(1, nlev + 1),
    )


def create_strip_mesh():
    """
    Three cells in a row: cell 0 owned, cell 1 halo tier 1, cell 2 halo tier 2.

    Edges 0 (cells 0-1) and 1 (cells 1-2) are interior, edge 2 sits on the
    boundary of cell 2.
    """
    return Mesh.create(
        cells_on_edge=[[0, 1], [1, 2], [2, -1]],
        edges_on_cell=[[0, -1], [0, 1], [1, 2]],
        n_edges_on_cell=[1, 2, 2],
        max_level_cell=[3, 3, 3],
        max_level_edge_top=[3, 3, 0],
        max_level_edge_bot=[3, 3, 3],
        area_cell=[1.0, 1.0, 1.0],
        dc_edge=[2.0, 2.0, 2.0],
        dv_edge=[1.0, 1.0, 1.0],
        ref_bottom_depth=[10.0, 20.0, 30.0],
        n_cells_array=[1, 2, 3],
        n_edges_array=[1, 2, 3],
    )


def stable_density(nlev, n_cells):
    """Density increasing by 1 kg/m³ per level"""
    return (1025.0 + jnp.arange(nlev, dtype=float))[:, None] * jnp.ones((nlev, n_cells))


class TestRichardsonScratch:
    """Test density jumps and squared shear"""

    def test_density_jump_uses_displaced_density_above(self):
        mesh = create_two_cell_mesh()
        density = stable_density(3, 2)
        displaced_density = density + 0.25
        velocity = jnp.zeros((3, 1))

        scratch = richardson_scratch(mesh, velocity, density, displaced_density)

        # rho*(k-1) - rho(k) = (1025 + k - 1 + 0.25) - (1025 + k)
        assert jnp.allclose(scratch.ddensity_top_of_cell[1:], -0.75)
        assert jnp.allclose(scratch.ddensity_top_of_cell[0], 0.0)
        assert jnp.allclose(scratch.ddensity_top_of_edge[1:], -0.75)

    def test_edge_shear(self):
        mesh = create_two_cell_mesh()
        velocity = jnp.array([[0.3], [0.1], [0.1]])
        density = stable_density(3, 2)

        scratch = richardson_scratch(mesh, velocity, density, density)

        assert jnp.allclose(scratch.du2_top_of_edge[:, 0], jnp.array([0.0, 0.04, 0.0]))
        # unit reconstruction weight copies the edge value to both cells
        assert jnp.allclose(scratch.du2_top_of_cell[:, 0], jnp.array([0.0, 0.04, 0.0]))
        assert jnp.allclose(scratch.du2_top_of_cell[:, 1], jnp.array([0.0, 0.04, 0.0]))

    def test_halo_ranges(self):
        mesh = create_strip_mesh()
        density = stable_density(3, 3)
        velocity = jnp.array([[0.2, 0.2, 0.2], [0.1, 0.1, 0.1], [0.0, 0.0, 0.0]])

        scratch = richardson_scratch(mesh, velocity, density, density)

        # density jumps through halo tier 1
        assert jnp.allclose(scratch.ddensity_top_of_cell[1:, :2], -1.0)
        assert jnp.allclose(scratch.ddensity_top_of_cell[:, 2], 0.0)

        # edge 1 averages a computed cell and one outside the range
        assert jnp.allclose(scratch.ddensity_top_of_edge[1:, 0], -1.0)
        assert jnp.allclose(scratch.ddensity_top_of_edge[1:, 1], -0.5)
        assert jnp.allclose(scratch.ddensity_top_of_edge[:, 2], 0.0)

        assert jnp.allclose(scratch.du2_top_of_edge[1:, :2], 0.01)
        assert jnp.allclose(scratch.du2_top_of_edge[:, 2], 0.0)

        # reconstruction only on owned cells
        assert jnp.allclose(scratch.du2_top_of_cell[1:, 0], 0.01)
        assert jnp.allclose(scratch.du2_top_of_cell[:, 1:], 0.0)


class TestReconstruction:
    """Test the edge-to-cell reconstruction"""

    def test_area_weights(self):
        mesh = Mesh.create(
            cells_on_edge=[[0, 1]],
            edges_on_cell=[[0], [0]],
            n_edges_on_cell=[1, 1],
            max_level_cell=[2, 2],
            max_level_edge_top=[2],
            max_level_edge_bot=[2],
            area_cell=[4.0, 8.0],
            dc_edge=[2.0],
            dv_edge=[3.0],
            ref_bottom_depth=[10.0, 20.0],
        )
        field = jnp.array([[5.0], [2.0]])

        result = reconstruct_edge_to_cell(mesh, field)

        # 0.5*2*3/area * 2.0 at the single interior interface
        assert jnp.allclose(result[1], jnp.array([1.5, 0.75]))
        assert jnp.allclose(result[0], 0.0)

    def test_stops_at_edge_bottom_level(self):
        mesh = create_two_cell_mesh(nlev=4, max_level=(2, 4))
        field = jnp.ones((4, 1))

        result = reconstruct_edge_to_cell(mesh, field)

        # max_level_edge_bot = 4, so levels 1..3 contribute in both cells
        assert jnp.allclose(result[:, 0], jnp.array([0.0, 1.0, 1.0, 1.0]))
        assert jnp.allclose(result[:, 1], jnp.array([0.0, 1.0, 1.0, 1.0]))


class TestRichardsonNumbers:
    """Test the gradient Richardson number"""

    def test_stable_interface(self):
        mesh = create_strip_mesh()
        density = stable_density(3, 3)
        velocity = jnp.array([[0.2, 0.2, 0.2], [0.1, 0.1, 0.1], [0.0, 0.0, 0.0]])
        thickness = jnp.full((3, 3), 10.0)

        numbers = richardson_numbers(mesh, velocity, thickness, thickness, density, density)

        expected = COEF * (-1.0) * 20.0 / (0.01 + 1.0e-20)
        assert jnp.allclose(numbers.ri_top_of_cell[1:, 0], expected)
        assert jnp.all(numbers.ri_top_of_cell[1:, 0] > 0)
        assert jnp.allclose(numbers.ri_top_of_edge[1:, 0], expected)
        assert jnp.allclose(numbers.ri_top_of_edge[1:, 1], 0.5 * expected)

        # outside the ranges and at the surface
        assert jnp.allclose(numbers.ri_top_of_cell[:, 1:], 0.0)
        assert jnp.allclose(numbers.ri_top_of_edge[:, 2], 0.0)
        assert jnp.allclose(numbers.ri_top_of_cell[0], 0.0)
        assert jnp.allclose(numbers.ri_top_of_edge[0], 0.0)

    def test_unstable_interface_is_negative(self):
        mesh = create_two_cell_mesh()
        density = jnp.flip(stable_density(3, 2), axis=0)
        velocity = jnp.array([[0.2], [0.1], [0.0]])
        thickness = jnp.full((3, 2), 10.0)

        numbers = richardson_numbers(mesh, velocity, thickness, jnp.full((3, 1), 10.0), density, density)

        assert jnp.all(numbers.ri_top_of_cell[1:] < 0)
        assert jnp.all(numbers.ri_top_of_edge[1:] < 0)

    def test_zero_shear_hits_floor(self):
        """Single column, three 10 m layers, no shear at the lower interface"""
        mesh = create_two_cell_mesh()
        # denser water above the lower interface
        density = jnp.array([[1025.0], [1026.0], [1025.5]]) * jnp.ones((3, 2))
        velocity = jnp.array([[0.1], [0.0], [0.0]])
        thickness = jnp.full((3, 2), 10.0)
        thickness_edge = jnp.full((3, 1), 10.0)

        numbers = richardson_numbers(mesh, velocity, thickness, thickness_edge, density, density)

        ri = numbers.ri_top_of_cell[2, 0]
        assert jnp.isfinite(ri)
        assert jnp.allclose(ri, COEF * 0.5 * 20.0 / 1.0e-20)
        assert ri < -1.0e15
        assert jnp.all(jnp.isfinite(numbers.ri_top_of_edge))

        viscosity = velocity_viscosity(mesh, numbers.ri_top_of_edge, thickness_edge, jnp.zeros((3, 1)))
        diffusivity = tracer_diffusivity(mesh, numbers.ri_top_of_cell, thickness, jnp.zeros((3, 2)))
        params = RichardsonParameters.default()
        assert jnp.allclose(viscosity[2, 0], params.convective_visc)
        assert jnp.allclose(diffusivity[2], params.convective_diff)

    def test_inactive_levels_are_zero(self):
        mesh = create_two_cell_mesh(nlev=4, max_level=(2, 4))
        density = stable_density(4, 2)
        velocity = jnp.array([[0.3], [0.2], [0.1], [0.0]])
        thickness = jnp.full((4, 2), 10.0)

        numbers = richardson_numbers(mesh, velocity, thickness, jnp.full((4, 1), 10.0), density, density)

        assert jnp.allclose(numbers.ri_top_of_cell[2:, 0], 0.0)
        assert jnp.all(numbers.ri_top_of_cell[1:, 1] > 0)
        # max_level_edge_top is 2
        assert jnp.allclose(numbers.ri_top_of_edge[2:, 0], 0.0)


class TestDoublePrecision:
    """Realistic deep-ocean density steps are far below float32 resolution near 1027 kg/m³"""

    def test_small_density_step_stays_stable(self):
        mesh = create_two_cell_mesh(nlev=2, max_level=(2, 2))
        density = jnp.array([[1027.0], [1027.00005]]) * jnp.ones((2, 2))
        velocity = jnp.array([[0.1], [0.0]])
        thickness = jnp.full((2, 2), 10.0)
        thickness_edge = jnp.full((2, 1), 10.0)

        numbers = richardson_numbers(mesh, velocity, thickness, thickness_edge, density, density)
        viscosity = velocity_viscosity(mesh, numbers.ri_top_of_edge, thickness_edge, jnp.zeros((2, 1)))

        assert numbers.ri_top_of_cell.dtype == jnp.float64
        assert jnp.allclose(numbers.ri_top_of_cell[1], COEF * -5.0e-5 * 20.0 / 0.01)
        assert jnp.all(numbers.ri_top_of_cell[1] > 0)
        assert viscosity[1, 0] < 1.0e-2

    def test_import_enables_double_precision(self):
        script = (
            "import jax.numpy as jnp\n"
            "import ocnphys\n"
            "step = jnp.asarray(1027.00005) - 1027.0\n"
            "print(step.dtype, float(step))\n"
        )
        root = pathlib.Path(__file__).resolve().parents[2]

        result = subprocess.run([sys.executable, "-c", script], cwd=root,
                                capture_output=True, text=True, check=True)

        dtype, step = result.stdout.split()
        assert dtype == "float64"
        assert abs(float(step) - 5.0e-5) < 1.0e-9


class TestMixingCoefficients:
    """Test the viscosity and diffusivity formulas"""

    def setup_method(self):
        self.nlev = 6
        self.mesh = create_two_cell_mesh(nlev=6, max_level=(6, 6))
        self.params = RichardsonParameters.default()
        self.ri = jnp.array([0.0, 0.01, 0.1, 1.0, 10.0, 100.0])

    def test_viscosity_monotonic_and_bounded(self):
        ri = self.ri[:, None]
        visc = velocity_viscosity(self.mesh, ri, jnp.full((6, 1), 10.0), jnp.zeros((6, 1)), self.params)

        stable = visc[1:, 0]
        assert jnp.all(jnp.diff(stable) <= 0)
        assert jnp.all(stable >= self.params.bkrd_vert_visc)
        assert jnp.all(stable <= self.params.convective_visc)

    def test_diffusivity_monotonic_and_bounded(self):
        ri = self.ri[:, None] * jnp.ones((6, 2))
        diff = tracer_diffusivity(self.mesh, ri, jnp.full((6, 2), 10.0), jnp.zeros((6, 2)), self.params)

        stable = diff[1:, 0]
        assert jnp.all(jnp.diff(stable) <= 0)
        assert jnp.all(stable >= self.params.bkrd_vert_diff)
        assert jnp.all(stable <= self.params.convective_diff)

    def test_stable_formulas(self):
        ri = jnp.full((6, 2), 1.0)
        visc = velocity_viscosity(self.mesh, ri[:, :1], jnp.full((6, 1), 10.0), jnp.zeros((6, 1)), self.params)
        diff = tracer_diffusivity(self.mesh, ri, jnp.full((6, 2), 10.0), jnp.zeros((6, 2)), self.params)

        expected_visc = 1.0e-4 + 0.005 / 36.0
        expected_diff = 1.0e-5 + expected_visc / 6.0
        assert jnp.allclose(visc[1:], expected_visc)
        assert jnp.allclose(diff[1:], expected_diff)

    @pytest.mark.parametrize("ri_value", [0.0, -1.0e-6, -3.0, -1.0e18])
    def test_unstable_equals_convective_cap(self, ri_value):
        ri = jnp.full((6, 2), ri_value)
        prior_visc = jnp.full((6, 1), 0.3)
        prior_diff = jnp.full((6, 2), 0.3)

        visc = velocity_viscosity(self.mesh, ri[:, :1], jnp.full((6, 1), 10.0), prior_visc, self.params)
        diff = tracer_diffusivity(self.mesh, ri, jnp.full((6, 2), 10.0), prior_diff, self.params)

        assert jnp.all(visc[1:] == self.params.convective_visc)
        assert jnp.all(diff[1:] == self.params.convective_diff)

    def test_accumulates_onto_prior_contributions(self):
        ri = jnp.full((6, 1), 1.0)
        prior = jnp.full((6, 1), 2.0e-3)

        visc = velocity_viscosity(self.mesh, ri, jnp.full((6, 1), 10.0), prior, self.params)

        assert jnp.allclose(visc[1:], 2.0e-3 + 1.0e-4 + 0.005 / 36.0)
        # the surface interface is left alone
        assert jnp.allclose(visc[0], 2.0e-3)

    def test_sum_is_capped(self):
        ri = jnp.full((6, 1), 0.01)
        prior = jnp.full((6, 1), 0.999)

        visc = velocity_viscosity(self.mesh, ri, jnp.full((6, 1), 10.0), prior, self.params)

        assert jnp.allclose(visc[1:], self.params.convective_visc)

    def test_only_owned_entries_updated(self):
        mesh = create_strip_mesh()
        ri = jnp.ones((3, 3))
        prior = jnp.full((3, 3), 7.0e-3)

        visc = velocity_viscosity(mesh, ri, jnp.full((3, 3), 10.0), prior, self.params)
        diff = tracer_diffusivity(mesh, ri, jnp.full((3, 3), 10.0), prior, self.params)

        assert jnp.all(visc[1:, 0] > 7.0e-3)
        assert jnp.all(visc[:, 1:] == 7.0e-3)
        assert jnp.all(diff[1:, 0] > 7.0e-3)
        assert jnp.all(diff[:, 1:] == 7.0e-3)


class TestRichardsonMixing:
    """Test the mixing component"""

    def setup_method(self):
        self.mesh = create_two_cell_mesh()
        temperature = jnp.array([[20.0], [15.0], [10.0]]) * jnp.ones((3, 2))
        salinity = jnp.full((3, 2), 35.0)
        self.state = OceanState(
            normal_velocity=jnp.array([[0.2], [0.1], [0.0]]),
            layer_thickness=jnp.full((3, 2), 10.0),
            active_tracers=jnp.stack([temperature, salinity]),
        )
        self.diagnostics = VmixDiagnostics.zeros(3, 2, 1, layer_thickness_edge=jnp.full((3, 1), 10.0))
        self.eos = LinearEquationOfState()

    def test_init_from_config(self):
        config = OceanConfig.default()._replace(use_rich_visc=False)

        mixing, err = RichardsonMixing.init(config)

        assert err == 0
        assert not mixing.visc_on
        assert mixing.diff_on
        assert mixing.enabled

    def test_build(self):
        mixing = RichardsonMixing()

        diagnostics, err = mixing.build(self.mesh, self.state, self.diagnostics, self.eos)

        assert err == 0
        assert jnp.allclose(diagnostics.density, self.eos(self.state, 0, "relative")[0])
        # warm water over cold water is stable
        assert jnp.all(diagnostics.ri_top_of_cell[1:] > 0)
        assert jnp.all(diagnostics.ri_top_of_edge[1:] > 0)
        assert jnp.all(diagnostics.vert_visc_top_of_edge[1:] > 0)
        assert jnp.all(diagnostics.vert_diff_top_of_cell[1:] > 0)
        assert jnp.allclose(diagnostics.vert_visc_top_of_edge[0], 0.0)

    def test_gates_off_leave_diagnostics_untouched(self):
        mixing = RichardsonMixing(visc_on=False, diff_on=False)
        diagnostics = self.diagnostics._replace(vert_visc_top_of_edge=jnp.full((3, 1), 0.5))

        result, err = mixing.build(self.mesh, self.state, diagnostics, self.eos)

        assert err == 0
        assert result is diagnostics
        assert jnp.array_equal(result.vert_visc_top_of_edge, jnp.full((3, 1), 0.5))
        assert jnp.array_equal(result.ri_top_of_cell, jnp.zeros((3, 2)))

    def test_viscosity_gate_off(self):
        mixing = RichardsonMixing(visc_on=False, diff_on=True)

        diagnostics, err = mixing.build(self.mesh, self.state, self.diagnostics, self.eos)

        assert err == 0
        assert jnp.array_equal(diagnostics.vert_visc_top_of_edge, self.diagnostics.vert_visc_top_of_edge)
        assert jnp.all(diagnostics.ri_top_of_cell[1:] > 0)
        assert jnp.all(diagnostics.vert_diff_top_of_cell[1:] > 0)

    def test_diffusivity_gate_off(self):
        mixing = RichardsonMixing(visc_on=True, diff_on=False)

        diagnostics, err = mixing.build(self.mesh, self.state, self.diagnostics, self.eos)

        assert err == 0
        assert jnp.array_equal(diagnostics.vert_diff_top_of_cell, self.diagnostics.vert_diff_top_of_cell)
        assert jnp.all(diagnostics.vert_visc_top_of_edge[1:] > 0)

    def test_error_codes_are_combined(self):
        def failing_eos(state, displacement_levels, reference_mode):
            density, _ = self.eos(state, displacement_levels, reference_mode)
            return density, 2 if displacement_levels == 0 else 4

        mixing = RichardsonMixing()

        _, err = mixing.build(self.mesh, self.state, self.diagnostics, failing_eos)

        assert err == 6

    def test_time_level_selects_state(self):
        sheared = self.state._replace(normal_velocity=jnp.array([[1.0], [0.0], [0.0]]))
        mixing = RichardsonMixing()

        first, _ = mixing.build(self.mesh, (self.state, sheared), self.diagnostics, self.eos)
        second, _ = mixing.build(self.mesh, (self.state, sheared), self.diagnostics, self.eos, time_level=2)
        direct, _ = mixing.build(self.mesh, sheared, self.diagnostics, self.eos)

        assert jnp.allclose(second.ri_top_of_edge, direct.ri_top_of_edge)
        assert not jnp.allclose(first.ri_top_of_edge, second.ri_top_of_edge)

    def test_custom_parameters(self):
        config = OceanConfig.default().with_richardson(convective_visc=jnp.array(0.1))
        mixing, _ = RichardsonMixing.init(config)
        ri = jnp.full((3, 1), -1.0)
        diagnostics = self.diagnostics._replace(ri_top_of_edge=ri)

        diagnostics, err = mixing.compute_velocity_viscosity(self.mesh, diagnostics)

        assert err == 0
        assert jnp.allclose(diagnostics.vert_visc_top_of_edge[1:], 0.1)

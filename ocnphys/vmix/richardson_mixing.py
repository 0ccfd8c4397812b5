"""
Richardson-number vertical mixing component.

RichardsonMixing owns the two gates read from the configuration at init and
drives the jitted kernels. Each operation returns a new VmixDiagnostics
together with an integer error code; a disabled operation returns the
diagnostics object it was given.
"""

import logging
from typing import Optional, Sequence, Tuple, Union

from ocnphys.equation_of_state import EquationOfState
from ocnphys.mesh import Mesh
from .richardson_coefficients import velocity_viscosity, tracer_diffusivity
from .richardson_numbers import richardson_numbers
from .richardson_types import OceanState, RichardsonParameters, VmixDiagnostics

logger = logging.getLogger(__name__)


class RichardsonMixing:
    """
    Vertical viscosity and diffusivity from the gradient Richardson number.

    Viscosity lives at edge tops and diffusivity at cell tops; both are added
    on top of whatever other mixing schemes already accumulated. Calling
    order relative to those schemes matters, since unstable interfaces are
    overwritten with the convective values.
    """

    def __init__(self, visc_on: bool = True, diff_on: bool = True,
                 parameters: Optional[RichardsonParameters] = None):
        self.visc_on = bool(visc_on)
        self.diff_on = bool(diff_on)
        self.parameters = parameters if parameters is not None else RichardsonParameters.default()

    @classmethod
    def init(cls, config) -> Tuple['RichardsonMixing', int]:
        """Build the component from an OceanConfig; always succeeds"""
        mixing = cls(visc_on=config.use_rich_visc, diff_on=config.use_rich_diff,
                     parameters=config.richardson)
        logger.info("Richardson mixing: viscosity %s, diffusivity %s",
                    "on" if mixing.visc_on else "off", "on" if mixing.diff_on else "off")
        return mixing, 0

    @property
    def enabled(self) -> bool:
        return self.visc_on or self.diff_on

    def compute_richardson_numbers(
        self,
        mesh: Mesh,
        state: OceanState,
        diagnostics: VmixDiagnostics
    ) -> Tuple[VmixDiagnostics, int]:
        """
        Overwrite ri_top_of_cell and ri_top_of_edge.

        Tracers and their indices travel with the state for symmetry with the
        density computation; only velocity, thickness and the two densities
        enter the Richardson number.
        """
        if not self.enabled:
            return diagnostics, 0

        numbers = richardson_numbers(
            mesh,
            state.normal_velocity,
            state.layer_thickness,
            diagnostics.layer_thickness_edge,
            diagnostics.density,
            diagnostics.displaced_density,
        )
        return diagnostics._replace(ri_top_of_edge=numbers.ri_top_of_edge,
                                    ri_top_of_cell=numbers.ri_top_of_cell), 0

    def compute_velocity_viscosity(
        self,
        mesh: Mesh,
        diagnostics: VmixDiagnostics
    ) -> Tuple[VmixDiagnostics, int]:
        """Accumulate viscosity at edge tops"""
        if not self.visc_on:
            return diagnostics, 0

        vert_visc = velocity_viscosity(mesh, diagnostics.ri_top_of_edge,
                                       diagnostics.layer_thickness_edge,
                                       diagnostics.vert_visc_top_of_edge, self.parameters)
        return diagnostics._replace(vert_visc_top_of_edge=vert_visc), 0

    def compute_tracer_diffusivity(
        self,
        mesh: Mesh,
        state: OceanState,
        diagnostics: VmixDiagnostics
    ) -> Tuple[VmixDiagnostics, int]:
        """Accumulate diffusivity at cell tops"""
        if not self.diff_on:
            return diagnostics, 0

        vert_diff = tracer_diffusivity(mesh, diagnostics.ri_top_of_cell, state.layer_thickness,
                                       diagnostics.vert_diff_top_of_cell, self.parameters)
        return diagnostics._replace(vert_diff_top_of_cell=vert_diff), 0

    def build(
        self,
        mesh: Mesh,
        states: Union[OceanState, Sequence[OceanState]],
        diagnostics: VmixDiagnostics,
        equation_of_state: EquationOfState,
        time_level: Optional[int] = None
    ) -> Tuple[VmixDiagnostics, int]:
        """
        Compute density, Richardson numbers, viscosity and diffusivity.

        Args:
            mesh: Mesh
            states: OceanState, or one OceanState per time level
            diagnostics: Diagnostics to update
            equation_of_state: Callable (state, displacement_levels, reference_mode) -> (density, err)
            time_level: 1-based time level of the state to use (default 1)

        Returns:
            Updated diagnostics and the OR of all error codes
        """
        if not self.enabled:
            return diagnostics, 0

        if time_level is None:
            time_level = 1
        if isinstance(states, OceanState):
            state = states
        else:
            state = states[time_level - 1]

        density, err_density = equation_of_state(state, 0, "relative")
        # layer k displaced adiabatically to the mid-depth of layer k+1
        displaced_density, err_displaced = equation_of_state(state, 1, "relative")
        diagnostics = diagnostics._replace(density=density, displaced_density=displaced_density)

        diagnostics, err1 = self.compute_richardson_numbers(mesh, state, diagnostics)
        diagnostics, err2 = self.compute_velocity_viscosity(mesh, diagnostics)
        diagnostics, err3 = self.compute_tracer_diffusivity(mesh, state, diagnostics)

        err = err_density | err_displaced | err1 | err2 | err3
        return diagnostics, err

"""
Physical constants for the ocean physics kernels

Values follow the MPAS-Ocean constants modules (mpas_constants and
ocn_constants) so that coefficients computed here match the parent model.
"""

from typing import NamedTuple


class PhysicalConstants(NamedTuple):
    """Physical constants for ocean vertical physics"""

    gravity: float = 9.80616      # Gravitational acceleration (m/s²)
    rho_sw: float = 1026.0        # Reference seawater density (kg/m³)
    cp_sw: float = 3.996e3        # Specific heat of seawater (J/kg/K)

    # Numerical floors
    shear_floor: float = 1e-20     # Added to squared shear before dividing
    insolation_floor: float = 1e-15  # Added to clear-sky radiation before dividing

    @property
    def hflux_factor(self) -> float:
        """Converts a heat flux (W/m²) into a temperature flux (K m/s)"""
        return 1.0 / (self.rho_sw * self.cp_sw)

    @classmethod
    def default(cls) -> 'PhysicalConstants':
        """Return default physical constants"""
        return cls()


physical_constants = PhysicalConstants.default()

gravity = physical_constants.gravity
rho_sw = physical_constants.rho_sw
cp_sw = physical_constants.cp_sw
hflux_factor = physical_constants.hflux_factor
shear_floor = physical_constants.shear_floor
insolation_floor = physical_constants.insolation_floor

"""
Bio-optical short-wave penetration of Ohlmann and Siegel (2000).

The fraction of surface short-wave flux reaching depth z is

    A1*exp(-K1*z) + A2*exp(-K2*z) + A3*exp(-K3*z) + A4*exp(-K4*z)

with A and K affine in chlorophyll and either cloud fraction (cloudy skies)
or zenith angle (clear skies). The infrared part of the spectrum is
decomposed as well, so four terms are used.

References:
    Ohlmann, J.C. and Siegel, D.A., 2000: Ocean radiant heating. Part II:
    Parameterizing solar radiation transmission through the upper ocean.
    J. Phys. Oceanogr., 30, 1849-1865.
"""

import jax
import jax.numpy as jnp
from typing import Tuple

# Below this depth the penetrating flux is set to zero
DEPTH_CUTOFF = -200.0

# Cloud fraction above which the cloudy-sky fit applies
CLOUDY_THRESHOLD = 0.1


@jax.jit
def os00_coefficients(
    chlorophyll: jnp.ndarray,
    zenith_angle: jnp.ndarray,
    cloud_fraction: jnp.ndarray
) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Spectral partition A and extinction coefficients K.

    The two fits are not blended: the result jumps at cloud_fraction = 0.1,
    which belongs to the clear-sky branch.

    Args:
        chlorophyll: Chlorophyll-a concentration [mg/m³]
        zenith_angle: Solar zenith angle
        cloud_fraction: Cloud fraction [-]

    Returns:
        A [-] and K [1/m], each with a trailing axis of length 4
    """
    chl = jnp.asarray(chlorophyll)
    zen = jnp.asarray(zenith_angle)
    cld = jnp.asarray(cloud_fraction)

    # cloudy skies
    a_cloudy = jnp.stack([
        0.026 * chl + 0.112 * cld + 0.366,
        -0.009 * chl + 0.034 * cld + 0.207,
        -0.015 * chl - 0.006 * cld + 0.188,
        -0.003 * chl - 0.131 * cld + 0.169,
    ], axis=-1)
    k_cloudy = jnp.stack([
        0.063 * chl - 0.015 * cld + 0.082,
        0.278 * chl - 0.562 * cld + 1.02,
        3.91 * chl - 12.91 * cld + 16.62,
        16.64 * chl - 478.28 * cld + 736.56,
    ], axis=-1)

    # clear skies
    a_clear = jnp.stack([
        0.033 * chl - 0.025 * zen + 0.419,
        -0.010 * chl - 0.007 * zen + 0.231,
        -0.019 * chl - 0.003 * zen + 0.195,
        -0.006 * chl - 0.004 * zen + 0.154,
    ], axis=-1)
    k_clear = jnp.stack([
        0.066 * chl + 0.006 * zen + 0.066,
        0.396 * chl - 0.027 * zen + 0.866,
        7.68 * chl - 2.49 * zen + 17.81,
        51.27 * chl + 13.14 * zen + 665.19,
    ], axis=-1)

    cloudy = (cld > CLOUDY_THRESHOLD)[..., None]
    return jnp.where(cloudy, a_cloudy, a_clear), jnp.where(cloudy, k_cloudy, k_clear)


@jax.jit
def variable_sw_fraction(
    depth: jnp.ndarray,
    a_vals: jnp.ndarray,
    k_vals: jnp.ndarray
) -> jnp.ndarray:
    """
    Fraction of surface short-wave flux penetrating to depth.

    Zero below 200 m, which also keeps the exponent in range.

    Args:
        depth: Depth of the layer bottom [m], positive downward
        a_vals: Spectral partition (..., 4)
        k_vals: Extinction coefficients [1/m] (..., 4)

    Returns:
        Fraction [-] with the shape of depth broadcast against a_vals[..., 0]
    """
    depth = jnp.asarray(depth)
    weight = jnp.sum(a_vals * jnp.exp(-depth[..., None] * k_vals), axis=-1)
    return jnp.where(-depth < DEPTH_CUTOFF, 0.0, weight)

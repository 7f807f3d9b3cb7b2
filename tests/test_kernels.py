from __future__ import annotations

import numpy as np
import pytest

from resamplr.kernels import Interpolation, LutKernel, lanczos, sinc


def test_sinc_values():
    assert abs(sinc(1.0)) < 1e-12
    assert sinc(0.0) == 1.0
    assert abs(sinc(0.1) - 0.983631643083466) < 1e-12
    # Taylor branch near zero
    assert abs(sinc(1e-6) - 0.9999999999983551) < 1e-12


def test_sinc_vectorized():
    xs = np.array([-2.0, 0.0, 0.5, 1e-4])
    out = sinc(xs)
    assert out.shape == xs.shape
    assert abs(out[0]) < 1e-12
    assert out[1] == 1.0
    assert abs(out[2] - 2.0 / np.pi) < 1e-12


@pytest.mark.parametrize("interp", list(Interpolation))
def test_kernel_peaks_at_zero(interp):
    k = interp.kernel()
    xs = np.linspace(-k.radius, k.radius, 2001)
    assert float(k(0.0)) >= float(np.max(k(xs))) - 1e-9


@pytest.mark.parametrize("interp", list(Interpolation))
def test_kernel_vanishes_beyond_radius(interp):
    k = interp.kernel()
    r = k.radius
    xs = np.array([r, -r, r + 0.5, -r - 1.0, 10.0])
    assert np.all(k(xs) == 0.0)


def test_cubic_values():
    bicubic = Interpolation.BICUBIC.kernel()
    mitchell = Interpolation.MITCHELL_NETRAVALI.kernel()
    assert float(bicubic(0.0)) == pytest.approx(1.0)
    assert float(bicubic(1.0)) == pytest.approx(0.0, abs=1e-12)
    assert float(mitchell(0.0)) == pytest.approx(8.0 / 9.0)
    assert float(mitchell(1.0)) == pytest.approx(1.0 / 18.0)


def test_nearest_is_half_open():
    k = Interpolation.NEAREST_NEIGHBOR.kernel()
    assert float(k(-0.5)) == 1.0
    assert float(k(0.5)) == 0.0


@pytest.mark.parametrize("a", [2, 3])
def test_lut_matches_analytic(a):
    base = lanczos(a)
    lut = LutKernel(base)
    xs = np.linspace(-a - 0.5, a + 0.5, 7001)
    err = np.max(np.abs(lut(xs) - base(xs)))
    assert err < 1e-3
    assert lut.table.shape == (lut.table_size + 1,)


def test_support_is_even_and_covers_kernel():
    for interp in Interpolation:
        k = interp.kernel()
        for factor in (1.0, 1.5, 2.0, 4.27, 10.0):
            s = k.support(factor)
            assert s % 2 == 0
            assert s >= 2 * k.radius * factor
    # Upsampling never shrinks the window
    assert lanczos(3).support(0.25) == 6


def test_lanczos_rejects_bad_a():
    with pytest.raises(ValueError):
        lanczos(0)


def test_from_name():
    assert Interpolation.from_name("Lanczos3") is Interpolation.LANCZOS3
    lut = Interpolation.LANCZOS3_LUT
    assert Interpolation.from_name("lanczos3-lut") is lut
    assert (
        Interpolation.from_name("MITCHELL_NETRAVALI")
        is Interpolation.MITCHELL_NETRAVALI
    )
    with pytest.raises(ValueError):
        Interpolation.from_name("sharpest")

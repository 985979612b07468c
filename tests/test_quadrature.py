import cmath
import math

import mpmath as mp
import numpy as np

from pfquad import pfconfig, quadrature
from pfquad.balls import Cover
from pfquad.contours import ContourSegment, line_segment, trace_sd
from pfquad.pf_exceptions import RootFindFailure
from pfquad.phase import PhasePolynomial, valley_angles, valley_half_width


def test_rules_cached():
    x1, w1 = quadrature.gauss_legendre(12)
    x2, w2 = quadrature.gauss_legendre(12)
    assert x1 is x2
    assert abs(np.sum(w1) - 2) < 1e-14
    try:
        x1[0] = 0
    except ValueError:
        pass
    else:
        assert False

    p, w = quadrature.gauss_laguerre(12)
    assert abs(np.sum(w) - 1) < 1e-14
    assert abs(np.sum(w * p**3) - 6) < 1e-11


def test_direct_quad():
    k = 2.5
    z, w = quadrature.direct_quad(0, 1 + 1j, [1, 0], k, 20)
    exact = (cmath.exp(1j * k * (1 + 1j)) - 1) / (1j * k)
    assert abs(np.sum(w) - exact) < 1e-14


def test_line_quad():
    # same rule as direct_quad, but with the phase evaluated relative to the midpoint
    g = PhasePolynomial([1, -2j, 0.5, 3])
    k = 2
    a, b = -0.3 + 0.1j, 0.4 - 0.2j
    assert quadrature.line_panels(line_segment(a, b), g, k) == 1
    z1, w1 = quadrature.line_quad(line_segment(a, b), g, k, 20)
    z2, w2 = quadrature.direct_quad(a, b, g.coeffs, k, 20)
    assert np.allclose(z1, z2, rtol=1e-14, atol=1e-14)
    assert np.allclose(w1, w2, rtol=1e-12, atol=0)


def test_line_quad_panels():
    g = PhasePolynomial([1, 0, 0])
    k = 200

    # int_{-1}^{1} exp(i k z^2) dz, about 64 oscillations
    seg = line_segment(-1, 1)
    assert quadrature.line_panels(seg, g, k) == 64
    z, w = quadrature.line_quad(seg, g, k, 20)
    assert len(z) == 64 * 20
    ref = complex(
        mp.exp(1j * mp.pi / 4) * mp.sqrt(mp.pi / k) * mp.erf(mp.sqrt(k) * mp.exp(-1j * mp.pi / 4))
    )
    assert abs(np.sum(w) - ref) < 1e-11 * abs(ref)

    # along exp(-i pi / 4) t the integrand is exp(k t^2), no oscillations but a steep hill
    d = cmath.exp(-1j * math.pi / 4)
    seg = line_segment(-d, d)
    assert quadrature.line_panels(seg, g, k) == 64
    z, w = quadrature.line_quad(seg, g, k, 20)
    ref = complex(d * mp.sqrt(mp.pi / k) * mp.erfi(mp.sqrt(k)))
    assert abs(np.sum(w) - ref) < 1e-11 * abs(ref)

    # a cap on the number of panels
    k = 1e7
    assert quadrature.line_panels(line_segment(-1, 1), g, k) == pfconfig.max_line_panels


def test_linear_phase_quad():
    g = PhasePolynomial([2, 1])
    k = 50
    for a, b in [(0, 1), (-1 + 0.5j, 2 + 0.1j)]:
        z, w = quadrature.linear_phase_quad(a, b, (False, False), g, k, 20)
        assert len(z) == 40
        exact = (cmath.exp(1j * k * g(b)) - cmath.exp(1j * k * g(a))) / (1j * k * 2)
        assert abs(np.sum(w) - exact) < 1e-14
        # a smooth amplitude
        f = lambda x: x**2
        F = lambda x: cmath.exp(1j * k * g(x)) * (
            x**2 / (2j * k) + 2 * x / (2 * k) ** 2 + 2 / (2j * k) ** 3
        )
        assert abs(np.sum(f(z) * w) - (F(b) - F(a))) < 1e-13

    z, w = quadrature.linear_phase_quad(0, 3, (True, True), g, k, 20)
    assert len(z) == 0


def test_sd_quad_degraded(monkeypatch):
    g = PhasePolynomial([2, 1])
    k = 5
    seg = trace_sd(
        g, k, 0.3, Cover([], []), valley_angles(g, k), valley_half_width(g), r_far=10, r_star=0.1
    )
    assert seg.infinite
    assert seg.dest == ("valley", 0)

    degraded = []
    z0, w0 = quadrature.sd_quad(seg, k, 20, degraded, 0)
    assert degraded == []
    assert np.allclose(z0, 0.3 + 1j * quadrature.gauss_laguerre(20)[0] / (k * 2))

    def failing_locate(self, p):
        raise RootFindFailure("failed", p=p, estimate=self.start + 1j * p / (k * 2))

    monkeypatch.setattr(ContourSegment, "locate", failing_locate)
    z1, w1 = quadrature.sd_quad(seg, k, 20, degraded, 3)
    assert len(degraded) == 20
    assert all(i == 3 for i, _ in degraded)
    assert np.allclose(z0, z1)
    assert np.allclose(w0, w1, rtol=1e-9, atol=0)

"""
    Nodes and weights on the pieces of the contour

    Straight connectors use composite Gauss-Legendre, with panels short enough that k g changes
    by at most 2 pi num_oscs on each of them. On an SD path h(p) starting at z0,

        int f(z) exp(i k g(z)) dz = exp(i k g(z0)) int f(h(p)) exp(-p) h'(p) dp,   h'(p) = i / (k g'(h(p))),

    which is integrated with Gauss-Laguerre if the path goes to infinity, and with Gauss-Legendre
    on [0, p_end] otherwise. The nodes h(p_j) are found by the Halley iteration.
"""

# python import
import cmath
import functools
import logging
import math

# third party imports
import numpy as np
from numpy.polynomial.laguerre import laggauss
from numpy.polynomial.legendre import leggauss

# pfquad module imports
from . import pfconfig
from .pf_exceptions import RootFindFailure


@functools.lru_cache(maxsize=None)
def gauss_legendre(n):
    x, w = leggauss(n)
    x.setflags(write=False)
    w.setflags(write=False)
    return x, w


@functools.lru_cache(maxsize=None)
def gauss_laguerre(n):
    x, w = laggauss(n)
    x.setflags(write=False)
    w.setflags(write=False)
    return x, w


def _empty():
    return np.zeros(0, dtype=np.complex128), np.zeros(0, dtype=np.complex128)


########################################################################################################################
##    rules without contour deformation
########################################################################################################################


def direct_quad(a, b, coeffs, freq, n):
    """Gauss-Legendre on the straight line from a to b with the oscillatory factor in the weights"""
    x, wl = gauss_legendre(n)
    h = (b - a) / 2
    z = (a + b) / 2 + h * x
    w = h * wl * np.exp(1j * freq * np.polyval(coeffs, z))
    return z.astype(np.complex128), w.astype(np.complex128)


def phase_variation(coeffs, freq, a, b, n=pfconfig.num_var_pts):
    """int_a^b |k g'(z)| |dz| along the straight line, by Gauss-Legendre"""
    x, wl = gauss_legendre(n)
    h = (b - a) / 2
    z = (a + b) / 2 + h * x
    dg = np.polyval(np.polyder(coeffs), z)
    return float(abs(h) * np.sum(wl * np.abs(freq * dg)))


def linear_phase_quad(a, b, inf_contour, phase, freq, n):
    """
    Exact SD paths for g(z) = c1 z + c0: from a finite z0, k g(z0 + i p / (k c1)) = k g(z0) + i p.
    The integral from a to b is the integral from a to infinity minus the one from b.
    """
    c1 = phase.leading
    p, wp = gauss_laguerre(n)
    zs, ws = [], []
    for e, is_inf, sign in ((a, inf_contour[0], 1), (b, inf_contour[1], -1)):
        if is_inf:
            continue
        zs.append(e + 1j * p / (freq * c1))
        ws.append(sign * wp * cmath.exp(1j * freq * complex(phase(e))) * 1j / (freq * c1))
    if not zs:
        return _empty()
    return np.concatenate(zs), np.concatenate(ws)


########################################################################################################################
##    rules on the pieces of the route
########################################################################################################################


def line_panels(seg, phase, freq, num_oscs=pfconfig.num_oscs):
    """
    Number of Gauss-Legendre panels for the straight connector `seg` such that k g changes by at most
    2 pi num_oscs on each panel. This bounds the oscillations of exp(i k g) as well as the change of
    its logarithmic magnitude.
    """
    var = phase_variation(phase.coeffs, freq, seg.start, seg.end)
    m = int(math.ceil(var / (2 * math.pi * num_oscs)))
    if m > pfconfig.max_line_panels:
        logging.warning(
            "phase varies by {:.3e} along {}, use {} panels only".format(
                var, seg, pfconfig.max_line_panels
            )
        )
        m = pfconfig.max_line_panels
    return max(m, 1)


def line_quad(seg, phase, freq, n, num_oscs=pfconfig.num_oscs):
    """
    Composite Gauss-Legendre on a straight connector, see `line_panels`. On each panel the phase
    is evaluated relative to the midpoint of the panel.
    """
    x, wl = gauss_legendre(n)
    num_panels = line_panels(seg, phase, freq, num_oscs)
    h = (seg.end - seg.start) / (2 * num_panels)
    zs, ws = [], []
    for j in range(num_panels):
        m = seg.start + (2 * j + 1) * h
        local = phase.centered(m)
        zs.append(m + h * x)
        ws.append(h * wl * cmath.exp(1j * freq * complex(phase(m))) * np.exp(1j * freq * local(h * x)))
    if num_panels > 1:
        logging.debug("{} split into {} panels".format(seg, num_panels))
    return np.concatenate(zs), np.concatenate(ws)


def sd_quad(seg, freq, n, degraded, seg_index):
    """
    Nodes and weights on the SD segment `seg`. Nodes where the Halley iteration fails are replaced
    by the estimate carried by RootFindFailure, their weight uses the true value of exp(i k g)
    there, and (seg_index, p) is appended to `degraded`.
    """
    if seg.infinite:
        p, base = gauss_laguerre(n)
    else:
        x, wl = gauss_legendre(n)
        p = seg.p_end / 2 * (x + 1)
        base = seg.p_end / 2 * wl * np.exp(-p)

    z = np.empty(n, dtype=np.complex128)
    w = np.empty(n, dtype=np.complex128)
    osc0 = cmath.exp(1j * freq * seg.g0)
    for j, pj in enumerate(p):
        corr = 1
        try:
            z[j] = seg.locate(pj)
        except RootFindFailure as e:
            logging.warning("{}, use estimate {}".format(e, e.estimate))
            z[j] = e.estimate
            degraded.append((seg_index, float(pj)))
            corr = cmath.exp(1j * freq * seg.dphase(z[j]) + pj)
        w[j] = base[j] * osc0 * corr * 1j / (freq * seg.dg(z[j]))
    return z, w


def make_quad(ingredients, phase, freq, n, num_oscs=pfconfig.num_oscs):
    """
    Concatenate the nodes and weights of all pieces of all ingredients (in route order).

    :return: tuple (z, w, degraded)
    """
    zs, ws = [], []
    degraded = []
    seg_index = 0
    for ing in ingredients:
        for seg, rev in ing.pieces:
            if seg.kind == "line":
                z, w = line_quad(seg, phase, freq, n, num_oscs)
            else:
                z, w = sd_quad(seg, freq, n, degraded, seg_index)
            if rev:
                w = -w
            zs.append(z)
            ws.append(w)
            seg_index += 1
    if not zs:
        z, w = _empty()
        return z, w, degraded
    return np.concatenate(zs), np.concatenate(ws), degraded

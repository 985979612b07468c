"""
    Analysis of the polynomial phase g(z) of the integrand f(z) exp(i k g(z))

    Provides the phase itself (evaluation, derivatives, Taylor shifts), its stationary points
    (roots of g'), the valleys (directions at infinity along which exp(i k g) decays) and
    the radius r_star of the region of no return.

    The valleys follow from the leading term alpha_J z^J of g. Along z = R exp(i theta)
    we have Im(k alpha_J z^J) = |k alpha_J| R^J sin(J theta + arg(k alpha_J)), which grows
    fastest for

        theta_m = (pi/2 - arg(k alpha_J) + 2 pi m) / J,    m = 0, ..., J - 1

    and decays along every ray within the open sector |theta - theta_m| < pi / (2 J).
"""

# python import
import cmath
import logging
import math

# third party imports
import mpmath as mp
import numpy as np

# pfquad module imports
from . import pfconfig
from .pf_exceptions import DegenerateInput, DegenerateStationaryPoint, InfiniteIntegral


class PhasePolynomial(object):
    """
    Immutable polynomial phase, coefficients are given with the highest degree first
    (numpy `polyval` convention). Leading zeros are stripped, the remaining degree must be >= 1.
    """

    __slots__ = ("coeffs",)

    def __init__(self, coeffs):
        c = np.atleast_1d(np.asarray(coeffs, dtype=np.complex128)).copy()
        nz = np.flatnonzero(c)
        if len(nz) == 0:
            raise DegenerateInput("the phase is identically zero")
        c = c[nz[0] :]
        if len(c) < 2:
            raise DegenerateInput(
                "the phase is constant (degree 0 after stripping leading zeros)"
            )
        c.setflags(write=False)
        self.coeffs = c

    @property
    def degree(self):
        return len(self.coeffs) - 1

    @property
    def leading(self):
        return complex(self.coeffs[0])

    def __call__(self, z):
        return np.polyval(self.coeffs, z)

    def derivative(self, n=1):
        """coefficients of the n-th derivative"""
        return np.polyder(self.coeffs, n)

    def handles(self):
        """return the callables (g, g', g'')"""
        c0 = self.coeffs
        c1 = self.derivative(1)
        c2 = self.derivative(2)
        return (
            lambda z: np.polyval(c0, z),
            lambda z: np.polyval(c1, z),
            lambda z: np.polyval(c2, z),
        )

    def taylor(self, z0):
        """
        Coefficients of w -> g(z0 + w), highest degree first, by repeated synthetic division.
        The last entry equals g(z0).
        """
        b = self.coeffs.copy()
        n = self.degree
        for i in range(n):
            for j in range(1, n + 1 - i):
                b[j] += z0 * b[j - 1]
        return b

    def centered(self, z0):
        """the phase w -> g(z0 + w) - g(z0), which vanishes at w = 0 without cancellation"""
        b = self.taylor(z0)
        b[-1] = 0
        return PhasePolynomial(b)

    def __repr__(self):
        return "PhasePolynomial({})".format(list(self.coeffs))


class StationaryPoint(object):
    """
    A zero of g'. `order` is the multiplicity as a root of g' (1 for a simple saddle).
    `valleys` are the valley angles reachable from it (the same set for all stationary points).
    """

    __slots__ = ("z", "order", "valleys")

    def __init__(self, z, order=1, valleys=()):
        self.z = complex(z)
        self.order = order
        self.valleys = tuple(valleys)

    def __repr__(self):
        return "StationaryPoint(z={}, order={})".format(self.z, self.order)


########################################################################################################################
##    stationary points
########################################################################################################################


def _polyroots(mp_c, maxsteps, extraprec):
    """mpmath polyroots of the coefficients `mp_c`, highest degree first"""
    try:
        return mp.polyroots(mp_c[::-1], maxsteps=maxsteps, extraprec=extraprec, asc=True)
    except TypeError:
        # mpmath before 1.4 takes the coefficients highest degree first only
        return mp.polyroots(mp_c, maxsteps=maxsteps, extraprec=extraprec)


def _mp_roots(c):
    deg = len(c) - 1
    if deg == 1:
        return [-complex(c[1]) / complex(c[0])]

    mp_c = [mp.mpmathify(complex(ci)) for ci in c]
    for maxsteps, extraprec in ((50, 10 * deg + 20), (400, 60 * deg + 100)):
        try:
            r = _polyroots(mp_c, maxsteps, extraprec)
            return [complex(ri) for ri in r]
        except mp.NoConvergence:
            logging.debug(
                "polyroots: no convergence with maxsteps={} extraprec={}".format(
                    maxsteps, extraprec
                )
            )
    logging.warning("mpmath polyroots did not converge, use numpy.roots instead")
    return [complex(ri) for ri in np.roots(c)]


def poly_roots(c):
    """
    All roots of the polynomial with coefficients `c` (highest degree first).
    Roots at zero (trailing zero coefficients) are split off exactly, the remaining ones
    are found by `mpmath.polyroots` using extra precision, which copes with clustered roots.
    """
    c = list(np.trim_zeros(np.asarray(c, dtype=np.complex128), "f"))
    roots = []
    while len(c) > 1 and c[-1] == 0:
        c.pop()
        roots.append(0j)
    if len(c) > 1:
        roots += _mp_roots(c)
    return roots


def group_roots(roots, tol):
    """
    Group roots closer than `tol (1 + |z|)`.
    Raise `DegenerateStationaryPoint` holding the groups if any two roots coincide.
    """
    groups = []
    for i, z in enumerate(roots):
        for grp in groups:
            if abs(z - roots[grp[0]]) < tol * (1 + abs(z)):
                grp.append(i)
                break
        else:
            groups.append([i])
    if len(groups) < len(roots):
        raise DegenerateStationaryPoint(
            "coincident stationary points found ({} roots of g' but {} distinct)".format(
                len(roots), len(groups)
            ),
            groups=groups,
        )
    return groups


def find_stationary_points(phase, freq, tol=pfconfig.sp_tol, merge=True):
    """
    Locate the stationary points of the phase.

    :param phase: a PhasePolynomial
    :param freq: the frequency k (needed for the valleys attached to each point)
    :param tol: relative distance below which roots of g' are taken as one point
    :param merge: if False, raise DegenerateStationaryPoint for coincident roots,
                  else merge them into a single point of higher order
    :return: list of StationaryPoint
    """
    roots = poly_roots(phase.derivative())
    try:
        groups = group_roots(roots, tol)
    except DegenerateStationaryPoint as e:
        if not merge:
            raise
        logging.debug("merge coincident stationary points: {}".format(e.groups))
        groups = e.groups

    valleys = valley_angles(phase, freq)
    sps = []
    for grp in groups:
        z = sum(roots[i] for i in grp) / len(grp)
        sps.append(StationaryPoint(z, order=len(grp), valleys=valleys))
    logging.debug("stationary points: {}".format(sps))
    return sps


########################################################################################################################
##    valleys, region of no return
########################################################################################################################


def wrap_angle(theta):
    """map angles to (-pi, pi]"""
    return np.angle(np.exp(1j * np.asarray(theta)))


def valley_angles(phase, freq):
    """the J angles of the valleys of exp(i k g), wrapped to (-pi, pi]"""
    J = phase.degree
    arg = cmath.phase(freq * phase.leading)
    m = np.arange(J)
    return wrap_angle((math.pi / 2 - arg + 2 * math.pi * m) / J)


def valley_half_width(phase):
    return math.pi / (2 * phase.degree)


def r_star(phase, freq, stationary_points=()):
    """
    Radius of the region of no return: for |z| > r_star the leading term of g' dominates
    the remaining terms by a factor of two, so steepest descent paths which have left
    this disk head monotonically into a valley.
    """
    J = phase.degree
    a = phase.coeffs[::-1]
    lead = J * abs(a[J])
    r = abs(freq * a[J]) ** (-1.0 / J)
    for j in range(1, J):
        if a[j] != 0:
            r = max(r, (2 * (J - 1) * j * abs(a[j]) / lead) ** (1.0 / (J - j)))
    for sp in stationary_points:
        r = max(r, abs(sp.z))
    return r


def valley_index(theta, valleys, half_width):
    """
    Index of the valley whose (open) sector contains the direction `theta`.
    Directions outside every sector do not yield a convergent integral.
    """
    d = np.abs(wrap_angle(theta - np.asarray(valleys)))
    m = int(np.argmin(d))
    if not d[m] < half_width * (1 - 1e-10):
        raise InfiniteIntegral(
            "the direction {:.6f} is not within a valley (nearest valley {:.6f}, "
            "sector half width {:.6f}), the integral does not converge".format(
                theta, valleys[m], half_width
            )
        )
    return m


def jordan_rotate(a, b, inf_contour, valleys, half_width):
    """
    Replace infinite endpoints (given by an angle) by the index of their valley.
    By Jordan's lemma any direction within the sector of a valley yields the same integral,
    so the contour may end along the central valley direction instead.
    """
    ends = []
    for e, is_inf in zip((a, b), inf_contour):
        if is_inf:
            m = valley_index(float(np.real(e)), valleys, half_width)
            logging.debug("infinite endpoint {} rotated to valley {} ({})".format(e, m, valleys[m]))
            ends.append(m)
        else:
            ends.append(complex(e))
    return ends[0], ends[1]

"""
    Cover the stationary points of the phase by balls

    Around a stationary point xi the integrand exp(i k g) oscillates slowly and steepest descent
    paths are ill-conditioned. A ball B(xi, r) bounds the region where

        |k (g(z) - g(xi))| < C = 2 pi num_oscs ,

    i.e., inside the ball exp(i k g) performs at most `num_oscs` oscillations relative to its
    value at xi, so straight lines through the ball can be integrated with a fixed number of
    Gauss-Legendre points.

    Along a ray z = xi + t exp(i theta), q(t) = k (g(z) - g(xi)) is a polynomial in t with q(0) = 0,
    so the exit radius of that ray is the smallest positive real root of |q(t)|^2 - C^2.
    Two implementations of this ray search exist, both with the same numeric contract:
    `ScalarRaySearch` treats one ray at a time, `VectorizedRaySearch` solves the companion
    eigenvalue problems of all rays in a single batched call.
"""

# python import
import cmath
import logging
import math

# third party imports
import numpy as np

# pfquad module imports
from . import pfconfig

# smallest radius of a ball relative to the scale of its center
_r_min_rel = 1e-12


class Ball(object):
    """disk with `center` and `radius` covering the stationary points with indices `points`"""

    __slots__ = ("center", "radius", "points")

    def __init__(self, center, radius, points=()):
        if not radius > 0:
            raise ValueError("ball radius must be positive (got {})".format(radius))
        self.center = complex(center)
        self.radius = float(radius)
        self.points = tuple(points)

    def contains(self, z):
        return abs(z - self.center) < self.radius

    def distance(self, z):
        """distance of z to the boundary, negative inside"""
        return abs(z - self.center) - self.radius

    def __repr__(self):
        return "Ball(center={}, radius={:.6e}, points={})".format(
            self.center, self.radius, self.points
        )


class Cover(object):
    """the final (merged) balls and the map stationary point index -> ball index"""

    __slots__ = ("balls", "owner")

    def __init__(self, balls, owner):
        self.balls = tuple(balls)
        self.owner = tuple(owner)

    def find(self, z, exclude=None):
        """index of the first ball containing z (ignoring ball `exclude`), None if there is none"""
        for i, b in enumerate(self.balls):
            if i != exclude and b.contains(z):
                return i
        return None

    def __len__(self):
        return len(self.balls)


########################################################################################################################
##    ray search
########################################################################################################################


def _cauchy_bound(P):
    """all roots t of the polynomial P fulfill |t| < 1 + max_j |P_j / P_0|"""
    return 1 + np.max(np.abs(P[..., 1:] / P[..., :1]), axis=-1)


class ScalarRaySearch(object):
    """portable implementation, loops over the rays"""

    def __call__(
        self, coeffs, C, num_rays, take_max, imag_thresh, interior=False, r_max=math.inf
    ):
        """
        :param coeffs: coefficients of t -> k (g(xi + t) - g(xi)), highest degree first
        :param C: oscillation bound
        :param num_rays: number of equally spaced rays
        :param take_max: if True return the maximum over the rays, else the mean
        :param imag_thresh: roots t with |Im t| <= imag_thresh (1 + |t|) count as real
        :param interior: if True use the last crossing within `r_max` instead of the first
        :param r_max: radius of the region of no return
        :return: the radius of the ball
        """
        J = len(coeffs) - 1
        radii = []
        for n in range(num_rays):
            theta = 2 * math.pi * n / num_rays
            q = [coeffs[i] * cmath.exp(1j * (J - i) * theta) for i in range(J + 1)]
            P = np.polymul(q, np.conj(q)).real
            P[-1] -= C**2

            real_roots = []
            for t in np.roots(P):
                if abs(t.imag) <= imag_thresh * (1 + abs(t)) and t.real > 0:
                    real_roots.append(t.real)

            if len(real_roots) == 0:
                r = _cauchy_bound(P)
                logging.debug(
                    "ray {} (theta={:.4f}): no crossing found, use fallback radius {:.4e}".format(
                        n, theta, r
                    )
                )
            elif interior:
                inner = [t for t in real_roots if t <= r_max]
                r = max(inner) if inner else min(real_roots)
            else:
                r = min(real_roots)
            radii.append(r)

        if take_max:
            return max(radii)
        return sum(radii) / len(radii)


class VectorizedRaySearch(object):
    """accelerated implementation, all rays in one batched eigenvalue problem"""

    def __call__(
        self, coeffs, C, num_rays, take_max, imag_thresh, interior=False, r_max=math.inf
    ):
        coeffs = np.asarray(coeffs, dtype=np.complex128)
        J = len(coeffs) - 1
        theta = 2 * np.pi * np.arange(num_rays) / num_rays
        Q = coeffs[None, :] * np.exp(1j * np.outer(theta, np.arange(J, -1, -1)))

        # coefficients of |q(t)|^2 - C^2 for each ray
        P = np.zeros((num_rays, 2 * J + 1))
        for i in range(J + 1):
            for j in range(J + 1):
                P[:, i + j] += (Q[:, i] * np.conj(Q[:, j])).real
        P[:, -1] -= C**2

        # companion matrices, same layout as numpy.roots
        n = 2 * J
        A = np.zeros((num_rays, n, n))
        A[:, 0, :] = -P[:, 1:] / P[:, :1]
        A[:, np.arange(1, n), np.arange(n - 1)] = 1
        roots = np.linalg.eigvals(A)

        ok = (np.abs(roots.imag) <= imag_thresh * (1 + np.abs(roots))) & (roots.real > 0)
        r = np.where(ok, roots.real, np.inf).min(axis=1)
        if interior:
            r_in = np.where(ok & (roots.real <= r_max), roots.real, -np.inf).max(axis=1)
            r = np.where(np.isfinite(r_in), r_in, r)

        missing = ~np.isfinite(r)
        if np.any(missing):
            logging.debug(
                "{} rays without crossing, use fallback radius".format(np.sum(missing))
            )
            r[missing] = _cauchy_bound(P[missing])

        if take_max:
            return float(np.max(r))
        return float(np.mean(r))


def get_ray_search(use_accelerated):
    if use_accelerated:
        return VectorizedRaySearch()
    return ScalarRaySearch()


########################################################################################################################
##    ball construction and merging
########################################################################################################################


def _enclosing_ball(b1, b2):
    """smallest disk containing the disks b1 and b2"""
    points = tuple(sorted(b1.points + b2.points))
    d = abs(b2.center - b1.center)
    if d + b2.radius <= b1.radius:
        return Ball(b1.center, b1.radius, points)
    if d + b1.radius <= b2.radius:
        return Ball(b2.center, b2.radius, points)
    R = (d + b1.radius + b2.radius) / 2
    c = b1.center + (R - b1.radius) * (b2.center - b1.center) / d
    return Ball(c, R, points)


def _overlap(b1, b2, thresh):
    return abs(b1.center - b2.center) < (1 + thresh) * (b1.radius + b2.radius)


def merge_balls(balls, thresh):
    """
    Replace overlapping balls (after inflating the radii by the factor 1 + thresh) by the smallest
    ball containing both, until no two balls overlap.
    """
    balls = list(balls)
    merged = True
    while merged:
        merged = False
        for i in range(len(balls)):
            for j in range(i + 1, len(balls)):
                if _overlap(balls[i], balls[j], thresh):
                    logging.debug("merge {} and {}".format(balls[i], balls[j]))
                    balls[i] = _enclosing_ball(balls[i], balls[j])
                    del balls[j]
                    merged = True
                    break
            if merged:
                break
    return balls


def cover_stationary_points(
    phase,
    freq,
    stationary_points,
    num_oscs=pfconfig.num_oscs,
    num_rays=pfconfig.num_rays,
    ball_merge_thresh=pfconfig.ball_merge_thresh,
    imag_thresh=pfconfig.imag_thresh,
    use_accelerated=pfconfig.use_accelerated,
    take_max=pfconfig.take_max,
    interior_balls=pfconfig.interior_balls,
    r_max=math.inf,
):
    """
    Construct a ball around each stationary point and merge overlapping balls.

    :return: a Cover holding the balls and the owning ball of each stationary point
    """
    C = 2 * math.pi * num_oscs
    search = get_ray_search(use_accelerated)

    balls = []
    for i, sp in enumerate(stationary_points):
        coeffs = freq * phase.centered(sp.z).coeffs
        r = search(coeffs, C, num_rays, take_max, imag_thresh, interior_balls, r_max)
        r = max(r, _r_min_rel * (1 + abs(sp.z)))
        logging.debug("ball around {}: radius {:.6e}".format(sp, r))
        balls.append(Ball(sp.z, r, (i,)))

    balls = merge_balls(balls, ball_merge_thresh)

    owner = [None] * len(stationary_points)
    for bi, b in enumerate(balls):
        for i in b.points:
            owner[i] = bi
    return Cover(balls, owner)

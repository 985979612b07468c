"""
    Quadrature for Oscillatory Integrals by Numerical Steepest Descent

    This is the main module. It returns nodes z_j and weights w_j such that

        int_a^b f(z) exp(i k g(z)) dz  ~  sum_j f(z_j) w_j

    for a polynomial phase g and any sufficiently smooth amplitude f, by deforming the contour
    from a to b onto steepest descent paths of the phase.
"""

# python import
import logging
import math
import time
import typing

# third party imports
import numpy as np

# pfquad module imports
from . import pfconfig
from .balls import cover_stationary_points
from .contours import build_contours
from .graph import build_graph, build_route, shortest_path
from .path_filter import filter_ingredients
from .pf_exceptions import DegenerateInput
from .phase import (
    PhasePolynomial,
    find_stationary_points,
    jordan_rotate,
    r_star,
    valley_angles,
    valley_half_width,
)
from .quadrature import direct_quad, linear_phase_quad, make_quad, phase_variation

########################################################################################################################
##    typedefs
########################################################################################################################
numeric = typing.Union[int, float, complex]


class PFRes(object):
    """
    Result of the PathFinder quadrature.

    `z`, `w`: nodes and weights, `method`: "trivial", "direct", "linear" or "steepest_descent",
    `degraded`: list of (segment index, p) of nodes where the Halley iteration failed,
    `max_val`: largest integrand magnitude on the route, `flags`: names of issued warnings,
    `timings`: list of (stage, seconds) if logging was requested.
    The remaining members hold the intermediate objects of the full pipeline (or None).
    """

    __slots__ = (
        "z",
        "w",
        "method",
        "degraded",
        "max_val",
        "flags",
        "timings",
        "stationary_points",
        "balls",
        "contours",
        "graph",
        "route",
    )

    def __init__(self, z, w, method, max_val=math.inf, timings=None):
        self.z = z
        self.w = w
        self.method = method
        self.degraded = []
        self.max_val = max_val
        self.flags = set()
        self.timings = timings
        self.stationary_points = None
        self.balls = None
        self.contours = None
        self.graph = None
        self.route = None

    def integrate(self, f):
        """sum_j f(z_j) w_j, f must accept a numpy array"""
        return np.sum(f(self.z) * self.w)

    def __len__(self):
        return len(self.z)

    def __str__(self):
        return "PFRes(method={}, num_nodes={}, degraded={}, flags={})".format(
            self.method, len(self.z), len(self.degraded), self.flags
        )

    def __repr__(self):
        return self.__str__()


class PathFinderQuad(object):
    """
    Nodes and weights for int_a^b f(z) exp(i freq g(z)) dz with polynomial g.

    :param phase: coefficients of g, highest degree first (leading zeros are ignored)
    :param freq: the frequency k (real or complex)
    :param n_pts: number of nodes per segment of the contour
    :param num_oscs: number of oscillations bounded by each ball
    :param num_rays: number of rays used to estimate the radius of a ball
    :param ball_merge_thresh: balls closer than (1 + ball_merge_thresh) (r1 + r2) are merged
    :param interior_balls: if True, balls also bound interior non-oscillatory pockets (within r_star)
    :param imag_thresh: relative imaginary part below which a root of the ray polynomial counts as real
    :param use_accelerated: use the vectorized ray search (else the ray by ray loop, same results)
    :param take_max: ball radius is the maximum over the rays (else the mean)
    :param contour_start_thresh: relative magnitude below which contour pieces are dropped,
                                 0 disables filtering and the magnitude checks
    :param sd_tol: relative residual tolerance of the Halley iteration
    :param max_sd_steps: maximum number of steps when tracing a steepest descent path
    :param sp_tol: relative distance below which roots of g' are merged
    :param fast_paths: if False, always run the full steepest descent pipeline
    :param plot: accepted for compatibility, no effect (plotting is done by the caller from PFRes)
    :param plot_graph: accepted for compatibility, no effect
    :param log: if True, collect the duration of each stage in PFRes.timings
    :param other: copy all options from another PathFinderQuad instance
    """

    def __init__(
        self,
        phase,
        freq: numeric,
        n_pts: int,
        num_oscs=pfconfig.num_oscs,
        num_rays=pfconfig.num_rays,
        ball_merge_thresh=pfconfig.ball_merge_thresh,
        interior_balls=pfconfig.interior_balls,
        imag_thresh=pfconfig.imag_thresh,
        use_accelerated=pfconfig.use_accelerated,
        take_max=pfconfig.take_max,
        contour_start_thresh=pfconfig.contour_start_thresh,
        sd_tol=pfconfig.sd_tol,
        max_sd_steps=pfconfig.max_sd_steps,
        sp_tol=pfconfig.sp_tol,
        fast_paths=True,
        plot=False,
        plot_graph=False,
        log=False,
        other=None,
    ):
        self.coeffs = np.trim_zeros(np.atleast_1d(np.asarray(phase, dtype=np.complex128)), "f")
        self.freq = freq
        self.n_pts = n_pts
        if other is None:
            self.num_oscs = num_oscs
            self.num_rays = num_rays
            self.ball_merge_thresh = ball_merge_thresh
            self.interior_balls = interior_balls
            self.imag_thresh = imag_thresh
            self.use_accelerated = use_accelerated
            self.take_max = take_max
            self.contour_start_thresh = contour_start_thresh
            self.sd_tol = sd_tol
            self.max_sd_steps = max_sd_steps
            self.sp_tol = sp_tol
            self.fast_paths = fast_paths
            self.plot = plot
            self.plot_graph = plot_graph
            self.log = log
        else:
            self.num_oscs = other.num_oscs
            self.num_rays = other.num_rays
            self.ball_merge_thresh = other.ball_merge_thresh
            self.interior_balls = other.interior_balls
            self.imag_thresh = other.imag_thresh
            self.use_accelerated = other.use_accelerated
            self.take_max = other.take_max
            self.contour_start_thresh = other.contour_start_thresh
            self.sd_tol = other.sd_tol
            self.max_sd_steps = other.max_sd_steps
            self.sp_tol = other.sp_tol
            self.fast_paths = other.fast_paths
            self.plot = other.plot
            self.plot_graph = other.plot_graph
            self.log = other.log

        # process data
        if int(self.n_pts) != self.n_pts or self.n_pts < 1:
            raise ValueError("n_pts must be a positive integer (got {})".format(n_pts))
        self.n_pts = int(self.n_pts)
        if self.num_rays < 1:
            raise ValueError("num_rays must be positive (got {})".format(self.num_rays))
        if not self.num_oscs > 0:
            raise ValueError("num_oscs must be positive (got {})".format(self.num_oscs))
        if self.contour_start_thresh < 0:
            raise ValueError(
                "contour_start_thresh must not be negative (got {})".format(
                    self.contour_start_thresh
                )
            )
        if self.plot or self.plot_graph:
            logging.info(
                "plot / plot_graph have no effect, draw PFRes.balls, PFRes.contours and PFRes.graph instead"
            )

    def _stage(self, timings, name, t0):
        dt = time.perf_counter() - t0
        logging.debug("{}: {:.4f}s".format(name, dt))
        if self.log:
            timings.append((name, dt))
        return time.perf_counter()

    ####################################################################################################################
    ##  checks for the fast paths
    ####################################################################################################################

    def _phase_variation(self, a, b):
        """int_a^b |k g'(z)| |dz| along the straight line, by Gauss-Legendre"""
        return phase_variation(self.coeffs, self.freq, a, b)

    def _needs_no_deformation(self, a, b):
        return self._phase_variation(a, b) <= 2 * math.pi * self.num_oscs

    ####################################################################################################################
    ##  high level functions
    ####################################################################################################################

    def quad(self, a, b, inf_contour=(False, False)) -> PFRes:
        """
        Nodes and weights for the integral from a to b.

        :param a: lower endpoint, or the angle of its valley if inf_contour[0] is True
        :param b: upper endpoint, or the angle of its valley if inf_contour[1] is True
        :param inf_contour: flags which endpoints are at infinity
        :return: the result as PFRes
        """
        inf_contour = (bool(inf_contour[0]), bool(inf_contour[1]))
        timings = []
        t0 = time.perf_counter()

        if len(self.coeffs) <= 1 or self.freq == 0:
            if any(inf_contour):
                raise DegenerateInput(
                    "the phase is constant, the integral to infinity does not converge"
                )
            z, w = direct_quad(a, b, self.coeffs, self.freq, self.n_pts)
            self._stage(timings, "direct quadrature", t0)
            return PFRes(z, w, "direct", timings=timings)

        phase = PhasePolynomial(self.coeffs)
        valleys = valley_angles(phase, self.freq)
        half_width = valley_half_width(phase)
        a, b = jordan_rotate(a, b, inf_contour, valleys, half_width)

        if inf_contour[0] == inf_contour[1] and a == b:
            logging.debug("a == b, return empty rule")
            return PFRes(
                np.zeros(0, dtype=np.complex128), np.zeros(0, dtype=np.complex128), "trivial",
                timings=timings,
            )

        if self.fast_paths:
            if phase.degree == 1:
                z, w = linear_phase_quad(a, b, inf_contour, phase, self.freq, self.n_pts)
                self._stage(timings, "linear phase", t0)
                return PFRes(z, w, "linear", timings=timings)
            if not any(inf_contour) and self._needs_no_deformation(a, b):
                z, w = direct_quad(a, b, self.coeffs, self.freq, self.n_pts)
                self._stage(timings, "direct quadrature", t0)
                return PFRes(z, w, "direct", timings=timings)

        return self._steepest_descent(phase, a, b, inf_contour, valleys, half_width, timings, t0)

    def _steepest_descent(self, phase, a, b, inf_contour, valleys, half_width, timings, t0):
        k = self.freq

        sps = find_stationary_points(phase, k, tol=self.sp_tol)
        rs = r_star(phase, k, sps)
        t0 = self._stage(timings, "stationary points", t0)

        cover = cover_stationary_points(
            phase,
            k,
            sps,
            num_oscs=self.num_oscs,
            num_rays=self.num_rays,
            ball_merge_thresh=self.ball_merge_thresh,
            imag_thresh=self.imag_thresh,
            use_accelerated=self.use_accelerated,
            take_max=self.take_max,
            interior_balls=self.interior_balls,
            r_max=rs,
        )
        t0 = self._stage(timings, "ball construction", t0)

        finite_ends = {e: z for e, z in enumerate((a, b)) if not inf_contour[e]}
        segments, end_balls = build_contours(
            phase,
            k,
            cover,
            valleys,
            half_width,
            finite_ends,
            rs,
            num_rays=self.num_rays,
            tol=self.sd_tol,
            max_steps=self.max_sd_steps,
        )
        t0 = self._stage(timings, "contour coarse construction", t0)

        graph, source, target = build_graph(
            cover, segments, end_balls, (a, b), inf_contour, len(valleys), rs
        )
        edges, cost = shortest_path(graph, source, target)
        route = build_route(graph, edges, None if inf_contour[0] else a)
        logging.debug("shortest path: {} edges, cost {:.4f}".format(len(edges), cost))
        t0 = self._stage(timings, "Dijkstra shortest path", t0)

        kept, max_val, flags = filter_ingredients(route, phase, k, self.contour_start_thresh)
        z, w, degraded = make_quad(kept, phase, k, self.n_pts, self.num_oscs)
        self._stage(timings, "quadrature allocation", t0)

        if degraded:
            flags.add("RootFindFailure")
            logging.warning(
                "{} nodes placed with reduced accuracy (Halley iteration failed)".format(
                    len(degraded)
                )
            )

        res = PFRes(z, w, "steepest_descent", max_val=max_val, timings=timings)
        res.degraded = degraded
        res.flags = flags
        res.stationary_points = sps
        res.balls = cover.balls
        res.contours = segments
        res.graph = graph
        res.route = kept
        return res


def pathfinder_quad(a, b, phase, freq, n_pts, inf_contour=(False, False), **kwargs):
    """
    Convenient function returning the nodes and weights only, see `PathFinderQuad` for the
    keyword arguments.

    :return: tuple (z, w)
    """
    res = PathFinderQuad(phase, freq, n_pts, **kwargs).quad(a, b, inf_contour=inf_contour)
    return res.z, res.w

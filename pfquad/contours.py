"""
    Coarse construction of the steepest descent (SD) contours

    SD paths leave each ball at its "exits", the local maxima of Im(k g) on the boundary circle
    (there the integrand is smallest and Im(k g) keeps growing outwards). Finite endpoints outside
    of all balls are the start of a single SD path. Each path is traced in the parameter p of

        k g(h(p)) - k g(h(0)) = i p ,

    by an Euler predictor for dh/dp = i / (k g'(h)) and a Halley corrector, until it enters
    another ball (finite segment) or leaves the disk of radius R_far heading into a valley
    (infinite segment). The coarse samples (p, h(p)) are stored with the segment such that
    quadrature nodes can be placed later without repeating the trace.
"""

# python import
import cmath
import logging
import math

# third party imports
import numpy as np

# pfquad module imports
from . import pfconfig
from .halley import halley_sd
from .pf_exceptions import RootFindFailure
from .phase import wrap_angle

# ternary / golden section steps to refine the location of an exit
_n_golden = 40
_inv_phi = (math.sqrt(5) - 1) / 2


class ContourSegment(object):
    """
    Directed piece of the contour.

    kind "line": straight connector from `start` to `end` (inside a ball).
    kind "sd": steepest descent path starting at `start`, ending at `end` (`None` if the path goes
    to infinity within valley `valley`), with `p_end` the parameter at the end (inf at infinity).
    `origin` and `dest` are tuples ("ball", i), ("end", i) or ("valley", m).
    """

    __slots__ = (
        "kind",
        "start",
        "end",
        "p_end",
        "p_samples",
        "z_samples",
        "origin",
        "dest",
        "valley",
        "arc_length",
        "g0",
        "_G",
        "_freq",
        "_tol",
        "_r_star",
    )

    def __init__(
        self,
        kind,
        start,
        end,
        origin=None,
        dest=None,
        valley=None,
        p_samples=None,
        z_samples=None,
        arc_length=None,
        g0=None,
        local_phase=None,
        freq=None,
        tol=pfconfig.sd_tol,
        r_star=1.0,
    ):
        self.kind = kind
        self.start = complex(start)
        self.end = None if end is None else complex(end)
        self.origin = origin
        self.dest = dest
        self.valley = valley
        self.p_samples = None if p_samples is None else np.asarray(p_samples, dtype=float)
        self.z_samples = None if z_samples is None else np.asarray(z_samples, dtype=complex)
        if kind == "line":
            self.p_end = None
            self.arc_length = abs(self.end - self.start)
        else:
            self.p_end = math.inf if end is None else float(self.p_samples[-1])
            self.arc_length = arc_length
        self.g0 = g0
        self._G = None if local_phase is None else local_phase.handles()
        self._freq = freq
        self._tol = tol
        self._r_star = r_star

    @property
    def infinite(self):
        return self.end is None

    def dg(self, z):
        """g'(z) evaluated in the coordinates local to the start of the segment"""
        return complex(self._G[1](z - self.start))

    def dphase(self, z):
        """g(z) - g(start) without cancellation"""
        return complex(self._G[0](z - self.start))

    def locate(self, p):
        """
        The point h(p) on the SD path. March from the closest coarse sample below p.
        Raise RootFindFailure (carrying an Euler estimate) if the Halley corrector fails.
        """
        i = max(int(np.searchsorted(self.p_samples, p, side="right")) - 1, 0)
        q = float(self.p_samples[i])
        w = complex(self.z_samples[i]) - self.start
        if q == p:
            return self.start + w

        h = p - q
        while q < p:
            dG = self._freq * complex(self._G[1](w))
            dp = min(h, p - q, max(q, pfconfig.sd_step_0), _dp_cap(self.start + w, dG, self._r_star))
            ok, w_new = _sd_step(self._G, self._freq, w, q, dp, self._tol)
            if ok:
                w = w_new
                q = p if dp == p - q else q + dp
                h = 2 * dp
            else:
                h = dp / 2
                if h < pfconfig.sd_step_min * (1 + q):
                    # Euler step from the last converged point
                    estimate = self.start + w
                    if dG != 0:
                        estimate += 1j * (p - q) / dG
                    raise RootFindFailure(
                        "Halley iteration failed at p={:.8e} on SD path from {}".format(
                            q + dp, self.start
                        ),
                        p=p,
                        estimate=estimate,
                    )
        return self.start + w

    def __repr__(self):
        if self.kind == "line":
            return "ContourSegment(line, {} -> {})".format(self.start, self.end)
        return "ContourSegment(sd, {} -> {}, {} -> {}, p_end={:.4e})".format(
            self.start, self.end, self.origin, self.dest, self.p_end
        )


def line_segment(z0, z1):
    return ContourSegment("line", z0, z1)


########################################################################################################################
##    single steps along a steepest descent path
########################################################################################################################


def _dp_cap(z, dG, r_star):
    """largest step in p which moves the point by about half its distance to the origin (plus r_star)"""
    return 0.5 * (abs(z) + r_star) * abs(dG)


def _sd_step(G, freq, w, p, dp, tol):
    """
    One predictor / corrector step from (p, w) to p + dp in local coordinates (G(0) = 0).
    :return: (success, new point)
    """
    try:
        w_pred = w + 1j * dp / (freq * complex(G[1](w)))
    except ZeroDivisionError:
        return False, None
    p_new = p + dp
    ok, w_new = halley_sd(w_pred, G, p_new, 1, 0, freq, tol * max(1, p_new))
    return ok, w_new


def trace_sd(
    phase,
    freq,
    z0,
    cover,
    valleys,
    half_width,
    r_far,
    r_star,
    exclude=None,
    origin=None,
    tol=pfconfig.sd_tol,
    max_steps=pfconfig.max_sd_steps,
):
    """
    Trace the SD path starting at z0 until it enters a ball (other than `exclude`)
    or escapes into a valley.

    :return: ContourSegment, or None if the trace failed
    """
    local = phase.centered(z0)
    G = local.handles()
    balls = [b for i, b in enumerate(cover.balls) if i != exclude]

    w = 0j
    p = 0.0
    ps = [0.0]
    zs = [complex(z0)]
    length = 0.0
    dp = pfconfig.sd_step_0

    for _ in range(max_steps):
        z = z0 + w
        dG = freq * complex(G[1](w))
        if dG == 0:
            logging.warning("SD path from {} hit a stationary point at {}".format(z0, z))
            return None

        cap = _dp_cap(z, dG, r_star)
        if balls:
            dist = [b.distance(z) for b in balls]
            i_near = int(np.argmin(dist))
            cap = min(
                cap, max(0.5 * dist[i_near], 0.05 * balls[i_near].radius) * abs(dG)
            )
        dp = min(dp, cap)

        ok, w_new = _sd_step(G, freq, w, p, dp, tol)
        if not ok:
            dp /= 2
            if dp < pfconfig.sd_step_min * (1 + p):
                logging.warning(
                    "SD path from {} discarded, step size underflow at p={:.4e}".format(z0, p)
                )
                return None
            continue

        length += abs(w_new - w)
        z_old = z
        w = w_new
        p += dp
        z = z0 + w
        ps.append(p)
        zs.append(z)

        j = cover.find(z, exclude=exclude)
        if j is not None:
            return ContourSegment(
                "sd", z0, z, origin=origin, dest=("ball", j),
                p_samples=ps, z_samples=zs, arc_length=length,
                g0=complex(phase(z0)), local_phase=local, freq=freq, tol=tol, r_star=r_star,
            )

        if abs(z) > r_far and (z.conjugate() * (z - z_old)).real > 0:
            d = np.abs(wrap_angle(cmath.phase(z) - np.asarray(valleys)))
            m = int(np.argmin(d))
            if d[m] < half_width:
                return ContourSegment(
                    "sd", z0, None, origin=origin, dest=("valley", m), valley=m,
                    p_samples=ps, z_samples=zs, arc_length=length,
                    g0=complex(phase(z0)), local_phase=local, freq=freq, tol=tol, r_star=r_star,
                )

        dp *= 2

    logging.warning(
        "SD path from {} discarded, no termination after {} steps".format(z0, max_steps)
    )
    return None


########################################################################################################################
##    exits of a ball
########################################################################################################################


def _golden_max(f, lo, hi):
    """maximize the unimodal function f on [lo, hi]"""
    x1 = hi - _inv_phi * (hi - lo)
    x2 = lo + _inv_phi * (hi - lo)
    f1, f2 = f(x1), f(x2)
    for _ in range(_n_golden):
        if f1 < f2:
            lo, x1, f1 = x1, x2, f2
            x2 = lo + _inv_phi * (hi - lo)
            f2 = f(x2)
        else:
            hi, x2, f2 = x2, x1, f1
            x1 = hi - _inv_phi * (hi - lo)
            f1 = f(x1)
    return (lo + hi) / 2


def ball_exits(phase, freq, ball, num_samples):
    """
    Points on the boundary of `ball` where SD paths leave the ball:
    local maxima of Im(k g) along the circle where i / (k g') points outwards.
    """
    local = phase.centered(ball.center)
    c, r = ball.center, ball.radius

    def im_kg(phi):
        return (freq * complex(local(r * cmath.exp(1j * phi)))).imag

    phi = 2 * np.pi * np.arange(num_samples) / num_samples
    v = (freq * local(r * np.exp(1j * phi))).imag
    dphi = 2 * np.pi / num_samples

    exits = []
    for i in range(num_samples):
        if v[i] > v[i - 1] and v[i] >= v[(i + 1) % num_samples]:
            phi_e = _golden_max(im_kg, phi[i] - dphi, phi[i] + dphi)
            z_e = c + r * cmath.exp(1j * phi_e)
            dG = freq * complex(np.polyval(phase.derivative(), z_e))
            if dG == 0:
                continue
            if ((z_e - c).conjugate() * 1j / dG).real > 0:
                exits.append(z_e)
    logging.debug("exits of {}: {}".format(ball, exits))
    return exits


########################################################################################################################
##    all coarse contours
########################################################################################################################


def far_radius(r_star, cover, endpoints):
    """radius beyond which SD paths are considered to have arrived in their valley"""
    r = r_star
    for b in cover.balls:
        r = max(r, abs(b.center) + b.radius)
    for e in endpoints:
        r = max(r, abs(e))
    return 2 * r


def build_contours(
    phase,
    freq,
    cover,
    valleys,
    half_width,
    finite_ends,
    r_star,
    num_rays=pfconfig.num_rays,
    tol=pfconfig.sd_tol,
    max_steps=pfconfig.max_sd_steps,
):
    """
    Construct the SD segments leaving every ball, and the SD segments starting at
    finite endpoints which lie outside of all balls.

    :param finite_ends: dict endpoint index (0 for a, 1 for b) -> finite endpoint location
    :return: tuple (segments, end_balls) where end_balls maps a finite endpoint index to the ball
             containing it (None if it lies outside all balls)
    """
    r_far = far_radius(r_star, cover, finite_ends.values())
    num_samples = max(num_rays, 8 * phase.degree)
    kwargs = dict(
        valleys=valleys,
        half_width=half_width,
        r_far=r_far,
        r_star=r_star,
        tol=tol,
        max_steps=max_steps,
    )

    segments = []
    for i, ball in enumerate(cover.balls):
        for z_e in ball_exits(phase, freq, ball, num_samples):
            seg = trace_sd(phase, freq, z_e, cover, exclude=i, origin=("ball", i), **kwargs)
            if seg is not None:
                segments.append(seg)

    end_balls = {}
    for e, z in finite_ends.items():
        j = cover.find(z)
        end_balls[e] = j
        if j is None:
            seg = trace_sd(phase, freq, z, cover, origin=("end", e), **kwargs)
            if seg is not None:
                segments.append(seg)

    logging.debug("{} SD segments constructed".format(len(segments)))
    return segments, end_balls

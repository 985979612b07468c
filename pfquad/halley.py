"""
    Halley iteration for the steepest descent parametrization

    A steepest descent path h(p) starting at xi is implicitly defined by

        k G(h(p)) - k G(xi) = i p^r ,

    such that exp(i k G(h(p))) = exp(i k G(xi)) exp(-p^r) decays monotonically in p.
    The equation is solved for a single p by Halley's third order update, which uses
    the first and the second derivative of G.
"""

# python import
import cmath

MAX_ITS = 30


def halley_sd(x_n, G, p, r, xi, freq, thresh):
    """
    Solve k G(x) - k G(xi) = i p^r for x, starting from x_n.

    :param x_n: initial guess
    :param G: tuple of callables (G, G', G'')
    :param p: real path parameter (p >= 0)
    :param r: exponent (1 for a path starting at a regular point, m+1 at a stationary point of order m)
    :param xi: start of the steepest descent path
    :param freq: the frequency k
    :param thresh: absolute tolerance for the residual |k G(xi) + i p^r - k G(x)|
    :return: tuple (success, x), x is None if not successful
    """
    x_n = complex(x_n)
    target = freq * complex(G[0](xi)) + 1j * p**r
    for n in range(MAX_ITS):
        R = freq * complex(G[0](x_n)) - target
        dG = freq * complex(G[1](x_n))
        ddG = freq * complex(G[2](x_n))
        try:
            x_n = x_n - 2 * R * dG / (2 * dG**2 - R * ddG)
        except ZeroDivisionError:
            return False, None
        if not (cmath.isfinite(x_n)):
            return False, None

        err = abs(target - freq * complex(G[0](x_n)))
        if err < thresh:
            return True, x_n
    return False, None

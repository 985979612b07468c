"""
    Drop contour pieces whose contribution is negligible

    Along an SD path |exp(i k g)| decays, so the largest value of the integrand (for f = 1) on a
    piece of the route is attained at one of its ends. Pieces whose largest value is below
    `thresh` times the largest value on the whole route are removed.
"""

# python import
import logging
import math
import warnings

# pfquad module imports
from . import pfconfig
from .pf_exceptions import InfiniteIntegral, MagnitudeOutOfRange


def osc_magnitude(phase, freq, z):
    """|exp(i k g(z))| = exp(-Im(k g(z))), inf on overflow"""
    try:
        return math.exp(-(freq * complex(phase(z))).imag)
    except OverflowError:
        return math.inf


def ingredient_magnitude(ingredient, phase, freq):
    pts = []
    for seg, _ in ingredient.pieces:
        pts.append(seg.start)
        if seg.end is not None:
            pts.append(seg.end)
        if seg.kind == "line":
            pts.append((seg.start + seg.end) / 2)
    return max(osc_magnitude(phase, freq, z) for z in pts)


def filter_ingredients(ingredients, phase, freq, thresh):
    """
    :return: tuple (kept ingredients, largest magnitude, set of warning flags)
    """
    for ing in ingredients:
        ing.magnitude = ingredient_magnitude(ing, phase, freq)

    if thresh == 0:
        # no filtering, no sanity checks
        return list(ingredients), math.inf, set()

    if len(ingredients) == 0:
        return [], 0.0, set()

    max_val = max(ing.magnitude for ing in ingredients)
    flags = set()
    if math.isinf(max_val):
        raise InfiniteIntegral(
            "the integrand overflows on the steepest descent contour, the integral is infinite"
        )
    if max_val > pfconfig.max_val_upper or max_val < pfconfig.max_val_lower:
        msg = "largest integrand value on the contour is {:.3e}, expect loss of precision".format(
            max_val
        )
        logging.warning(msg)
        warnings.warn(msg, MagnitudeOutOfRange)
        flags.add("MagnitudeOutOfRange")

    kept = [ing for ing in ingredients if ing.magnitude >= thresh * max_val]
    if len(kept) == 0:
        raise InfiniteIntegral("all contour pieces were pruned (thresh={})".format(thresh))
    if len(kept) < len(ingredients):
        logging.debug(
            "filter: dropped {} of {} ingredients".format(
                len(ingredients) - len(kept), len(ingredients)
            )
        )
    return kept, max_val, flags

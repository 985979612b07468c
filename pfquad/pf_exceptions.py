"""
    module specific exceptions of the PathFinder quadrature
"""


class DegenerateInput(Exception):
    pass


class DegenerateStationaryPoint(DegenerateInput):
    """
    Two (or more) roots of the derivative of the phase coincide within the tolerance.

    `groups` holds the lists of indices (into the raw roots) which belong together,
    such that the caller can treat each group as a single stationary point.
    """

    def __init__(self, msg, groups=None):
        super().__init__(msg)
        self.groups = groups


class RootFindFailure(Exception):
    """
    The steepest descent parametrization failed at parameter `p`.

    `estimate` holds a lower-accuracy location (predictor only) which may be used instead.
    """

    def __init__(self, msg, p=None, estimate=None):
        super().__init__(msg)
        self.p = p
        self.estimate = estimate


class NoPath(Exception):
    pass


class InfiniteIntegral(Exception):
    pass


class MagnitudeOutOfRange(UserWarning):
    pass

import math

import numpy as np

from pfquad import balls
from pfquad.phase import PhasePolynomial, find_stationary_points, r_star


def test_ball():
    b = balls.Ball(1j, 0.5, (0,))
    assert b.contains(1j + 0.4)
    assert not b.contains(1j + 0.6)
    assert abs(b.distance(1j + 2) - 1.5) < 1e-14
    for r in [0, -1]:
        try:
            balls.Ball(0, r)
        except ValueError:
            pass
        else:
            assert False


def test_quadratic_radius():
    # |k z^2| = 2 pi on every ray
    k = 100
    coeffs = k * PhasePolynomial([1, 0, 0]).centered(0).coeffs
    r_exact = math.sqrt(2 * math.pi / k)
    for search in [balls.ScalarRaySearch(), balls.VectorizedRaySearch()]:
        for take_max in [True, False]:
            r = search(coeffs, 2 * math.pi, 16, take_max, 1e-6)
            assert abs(r - r_exact) < 1e-12


def test_scalar_vs_vectorized():
    g = PhasePolynomial([1 / 3, 0.2j, -1, 0.5])
    k = 50
    for sp in find_stationary_points(g, k):
        coeffs = k * g.centered(sp.z).coeffs
        for take_max in [True, False]:
            for interior in [True, False]:
                r1 = balls.ScalarRaySearch()(coeffs, 2 * math.pi, 16, take_max, 1e-6, interior, 3)
                r2 = balls.VectorizedRaySearch()(
                    coeffs, 2 * math.pi, 16, take_max, 1e-6, interior, 3
                )
                assert abs(r1 - r2) < 1e-8 * r1


def test_ray_bound():
    # on each ray the oscillation bound is reached at the radius of that ray
    g = PhasePolynomial([1 / 3, 0, -1, 0])
    k = 30
    coeffs = k * g.centered(1).coeffs
    num_rays = 8
    C = 2 * math.pi
    for n in range(num_rays):
        theta = 2 * math.pi * n / num_rays
        # a single ray, rotated onto the real axis
        rot = coeffs * np.exp(1j * theta * np.arange(3, -1, -1))
        r = balls.ScalarRaySearch()(rot, C, 1, True, 1e-6)
        assert abs(abs(np.polyval(coeffs, r * np.exp(1j * theta))) - C) < 1e-8
        for t in np.linspace(0, r, 20, endpoint=False):
            assert abs(np.polyval(coeffs, t * np.exp(1j * theta))) < C


def test_interior_radius():
    g = PhasePolynomial([1, 0, -3, 0, 0.1])
    k = 2
    sps = find_stationary_points(g, k)
    rs = r_star(g, k, sps)
    for sp in sps:
        coeffs = k * g.centered(sp.z).coeffs
        r0 = balls.ScalarRaySearch()(coeffs, 2 * math.pi, 16, True, 1e-6, False, rs)
        r1 = balls.ScalarRaySearch()(coeffs, 2 * math.pi, 16, True, 1e-6, True, rs)
        assert r1 >= r0


def test_merge_balls():
    b1 = balls.Ball(0, 1, (0,))
    b2 = balls.Ball(1.5, 1, (1,))
    merged = balls.merge_balls([b1, b2], 0)
    assert len(merged) == 1
    assert abs(merged[0].center - 0.75) < 1e-14
    assert abs(merged[0].radius - 1.75) < 1e-14
    assert merged[0].points == (0, 1)

    b2 = balls.Ball(3, 1, (1,))
    assert len(balls.merge_balls([b1, b2], 0.1)) == 2
    assert len(balls.merge_balls([b1, b2], 0.6)) == 1

    # a ball inside another one
    b2 = balls.Ball(0.2, 0.1, (1,))
    merged = balls.merge_balls([b1, b2], 0)
    assert len(merged) == 1
    assert merged[0].center == 0
    assert merged[0].radius == 1

    # merging may cascade
    bs = [balls.Ball(x, 0.6, (i,)) for i, x in enumerate([0, 1, 2, 3])]
    merged = balls.merge_balls(bs, 0)
    assert len(merged) == 1
    assert merged[0].points == (0, 1, 2, 3)
    for b in bs:
        assert abs(b.center - merged[0].center) + b.radius <= merged[0].radius + 1e-14


def test_cover_separated():
    g = PhasePolynomial([1 / 3, 0, -1, 0])
    k = 100
    sps = find_stationary_points(g, k)
    cover = balls.cover_stationary_points(g, k, sps)
    assert len(cover) == 2
    for i, sp in enumerate(sps):
        b = cover.balls[cover.owner[i]]
        assert b.contains(sp.z)
        assert b.radius > 0
        assert b.radius < 1
    assert cover.find(5) is None
    assert cover.find(sps[0].z) == cover.owner[0]
    assert cover.find(sps[0].z, exclude=cover.owner[0]) is None


def test_cover_merged():
    # two stationary points at +-0.1, their balls overlap
    eps = 0.1
    g = PhasePolynomial([1 / 3, 0, -(eps**2), 0])
    k = 10
    sps = find_stationary_points(g, k)
    for use_accelerated in [True, False]:
        cover = balls.cover_stationary_points(g, k, sps, use_accelerated=use_accelerated)
        assert len(cover) == 1
        assert cover.owner == (0, 0)
        for sp in sps:
            assert cover.balls[0].contains(sp.z)


def test_cauchy_bound():
    P = np.array([2.0, -3, 0, 1])
    bound = balls._cauchy_bound(P)
    assert bound == 2.5
    assert np.all(np.abs(np.roots(P)) < bound)

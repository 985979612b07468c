"""
These parameters control the construction of the steepest descent contours and
serve as defaults for the keyword arguments of `PathFinderQuad`.
"""

# number of oscillations of exp(i k g) a ball around a stationary point bounds,
# i.e., on the boundary |k (g(z) - g(xi))| = 2 pi num_oscs
num_oscs = 1.0

# number of rays cast from each stationary point to estimate the ball radius
num_rays = 16

# balls with |c1 - c2| < (1 + ball_merge_thresh) (r1 + r2) are merged
ball_merge_thresh = 0.1

# if True, re-entries into the non-oscillatory region along a ray (within r_star) enlarge the ball
interior_balls = False

# a root t of the ray polynomial counts as real if |Im t| <= imag_thresh (1 + |t|)
imag_thresh = 1e-6

# use the batched (vectorized) ray search instead of the ray by ray loop
use_accelerated = True

# take the maximum over all rays as ball radius (else the mean)
take_max = True

# relative threshold below which a contour piece is dropped (0 disables filtering)
contour_start_thresh = 1e-16

# relative residual tolerance of the Halley iteration: |k G(x) - k G(xi) - i p^r| < sd_tol max(1, p^r)
sd_tol = 1e-11

# maximum number of steps when tracing a single steepest descent path
max_sd_steps = 400

# initial step (in the parameter p) when tracing a steepest descent path
sd_step_0 = 0.25

# smallest step before the trace of a steepest descent path is given up
sd_step_min = 1e-12

# roots of g' closer than sp_tol (1 + |z|) are considered as a single stationary point
sp_tol = 1e-8

# number of Gauss-Legendre points used to estimate the phase variation along [a, b]
num_var_pts = 32

# largest number of Gauss-Legendre panels on a single straight connector
max_line_panels = 1000

# bounds of the largest integrand magnitude outside of which a warning is issued
max_val_upper = 1e16
max_val_lower = 1e-16

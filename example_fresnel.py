import matplotlib
import matplotlib.pyplot as plt
import mpmath as mp
import numpy as np

from pfquad import pfquad_py


def fresnel_ref(k):
    r = mp.exp(1j * mp.pi / 4) * mp.sqrt(mp.pi / k) * mp.erf(mp.sqrt(k) * mp.exp(-1j * mp.pi / 4))
    return complex(r)


def example_contour():
    k = 50
    g = [1, 0, -0.5, 0]
    res = pfquad_py.PathFinderQuad(g, k, 20).quad(-1, 1)

    fig, ax = plt.subplots(figsize=(6, 6))
    for b in res.balls:
        ax.add_patch(plt.Circle((b.center.real, b.center.imag), b.radius, fill=False, color="k"))
    for seg in res.contours:
        ax.plot(seg.z_samples.real, seg.z_samples.imag, color="0.7", lw=1)
    for ing in res.route:
        for seg, _ in ing.pieces:
            if seg.kind == "line":
                ax.plot([seg.start.real, seg.end.real], [seg.start.imag, seg.end.imag], color="C1")
            else:
                ax.plot(seg.z_samples.real, seg.z_samples.imag, color="C1")
    ax.plot(res.z.real, res.z.imag, ls="", marker=".", color="C0", label="nodes")
    sp = np.asarray([s.z for s in res.stationary_points])
    ax.plot(sp.real, sp.imag, ls="", marker="x", color="k", label="stationary points")

    R = 2
    ax.set_xlim([-R, R])
    ax.set_ylim([-R, R])
    ax.set_aspect("equal")
    ax.legend()
    ax.set_xlabel("Re z")
    ax.set_ylabel("Im z")
    fig.suptitle("steepest descent contour for g(z) = z^3 - z / 2, k = {}".format(k))
    fig.savefig("example_contour.pdf")


def example_fresnel_error():
    ks = np.logspace(0, 5, 26)

    fig, ax = plt.subplots(ncols=2, figsize=(10, 5))
    for n_pts in [5, 10, 20]:
        err = []
        num_nodes = []
        for k in ks:
            res = pfquad_py.PathFinderQuad([1, 0, 0], k, n_pts).quad(-1, 1)
            ref = fresnel_ref(k)
            err.append(abs(res.integrate(np.ones_like) - ref) / abs(ref))
            num_nodes.append(len(res))
        ax[0].plot(ks, err, ls="", marker=".", label="N={}".format(n_pts))
        ax[1].plot(ks, num_nodes, ls="", marker=".", label="N={}".format(n_pts))

    ax[0].set_xscale("log")
    ax[0].set_yscale("log")
    ax[0].legend()
    ax[0].set_xlabel("frequency k")
    ax[0].set_ylabel("rel error")

    ax[1].set_xscale("log")
    ax[1].legend()
    ax[1].set_xlabel("frequency k")
    ax[1].set_ylabel("number of nodes")

    fig.suptitle(
        "int_(-1)^1 exp(i k z^2) dz, the cost does not grow with k\n"
        + "(direct Gauss-Legendre as long as exp(i k g) oscillates less than once)"
    )
    fig.savefig("example_fresnel_error.pdf")


if __name__ == "__main__":
    # example_contour()
    example_fresnel_error()

from .pfquad_py import PathFinderQuad, PFRes, pathfinder_quad
from .pf_exceptions import *

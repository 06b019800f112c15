from .base import BUILDERS, NeighborList

"""
A module for the geometry of areal units.
"""

from .areas import *
from .sphere import *

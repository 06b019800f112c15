from .spatial_lag import lag_spatial
from .weights import CODINGS, SpatialWeights, build_weights

"""Price oracle and external price sources."""
from .price_oracle import PriceOracle
from .pyth import PythPriceSource

__all__ = ["PriceOracle", "PythPriceSource"]

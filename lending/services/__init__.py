"""Service modules"""
from .deployment import Deployment, deploy
from .price_feeder import PriceFeeder

__all__ = ["Deployment", "PriceFeeder", "deploy"]

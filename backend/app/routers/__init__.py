# API Routers

from . import cryptos, health, market

__all__ = ["cryptos", "health", "market"]

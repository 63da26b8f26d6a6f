"""Monte-Carlo path generation for a stochastic-volatility stock model."""

__version__ = "0.1.0"

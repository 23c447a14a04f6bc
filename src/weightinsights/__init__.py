"""Weight trend, energy expenditure and phase analytics for daily health logs."""

__version__ = "0.1.0"

"""FiggyTales: user stories from UI design screenshots."""

__version__ = "1.0.0"

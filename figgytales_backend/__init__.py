"""FiggyTales backend service."""

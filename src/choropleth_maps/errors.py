"""Exceptions raised by the choropleth pipeline."""


class ConfigurationError(ValueError):
    """A caller-supplied key, CRS identifier or dataset parameter is invalid."""

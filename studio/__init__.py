"""OGraf template studio: template model, artifact generator and preview runtime."""

__version__ = "0.1.0"

"""rfleet: administer a fleet of git repositories from one workspace."""

__version__ = "0.1.0"

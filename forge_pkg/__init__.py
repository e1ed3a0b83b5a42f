"""forge-pkg -- interactive scaffolding for npm packages."""

__version__ = "0.1.0"

"""Map Veto - team formation and map ban/pick drafting for match rooms."""

__version__ = "0.1.0"

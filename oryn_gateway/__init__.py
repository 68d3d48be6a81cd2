"""
Oryn Auth Gateway
=================

Stateless GitHub OAuth gateway for the Oryn web console.
"""

__version__ = "1.0.0"

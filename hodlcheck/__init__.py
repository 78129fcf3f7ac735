"""hodlcheck — how long has a Bitcoin wallet held without selling?"""

__version__ = "0.1.0"

"""
qfsettle: quadratic-funding matching settlement
"""

__version__ = "0.1.0"

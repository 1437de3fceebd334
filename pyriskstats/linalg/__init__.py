"""
Dense linear algebra on accelerators.

Public API:
    MatrixComposer.multiply(transpose_left, transpose_right, alpha, a, b, beta, c)
"""

from pyriskstats.linalg.composer import MatrixComposer, as_matrix

__all__ = [
    "MatrixComposer",
    "as_matrix",
]

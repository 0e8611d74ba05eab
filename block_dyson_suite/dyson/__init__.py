"""
Dyson series and information-geometric quantities from block exponentials.

Theory
------
For constant generators A and B the exponential of a sum expands as

    exp(A + B) = sum_k int_{simplex} e^{u_0 A} B e^{u_1 A} B ... B e^{u_k A}

The k-th term is the causal k-th order block generating function with
every perturbation equal to B. With A = -iHt and B = -iVt this is the
Dyson series of the time-evolution operator; the first and second terms
with distinct perturbations give the gradient and Fisher information of a
log-partition function.

References
----------
- Dyson, F. J. (1949). "The radiation theories of Tomonaga, Schwinger,
  and Feynman." Phys. Rev. 75, 486.
- Najfeld & Havel (1995). "Derivatives of the matrix exponential and their
  computation." Adv. Appl. Math. 16, 321-375.
"""

from .series import (
    dyson_terms,
    dyson_term,
    dyson_series,
)

from .fisher import (
    log_partition,
    log_partition_gradient,
    fisher_information,
)

__all__ = [
    'dyson_terms',
    'dyson_term',
    'dyson_series',
    'log_partition',
    'log_partition_gradient',
    'fisher_information',
]

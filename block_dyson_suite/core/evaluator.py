"""
Dense matrix exponential with an explicit precision contract.

The exponential itself is delegated to scipy.linalg.expm (scaling and
squaring with Padé approximation). This module documents and checks what
the block-exponential method relies on:

- the input is well enough scaled that expm can meet its tolerance
- the result is finite
- for a block upper-triangular input with identical diagonal blocks H,
  every diagonal block of exp(M) equals exp(H) and every strictly-lower
  block vanishes, to within tolerance

A failed check is reported as a NumericalInstability warning carrying the
attempted result; with strict=True the warning is raised instead.
"""

import logging
import warnings
from typing import Optional

import numpy as np
from scipy.linalg import expm

from ..config import EvaluatorConfig
from .errors import NumericalInstability

log = logging.getLogger(__name__)


def _report(message: str, result: np.ndarray, strict: bool) -> None:
    log.debug("expm precision check failed: %s", message)
    instability = NumericalInstability(message, result=result)
    if strict:
        raise instability
    warnings.warn(instability, stacklevel=3)


def check_block_structure(expM: np.ndarray, n: int,
                          config: Optional[EvaluatorConfig] = None) -> Optional[str]:
    """
    Check the block-triangular structure of exp(M).

    Parameters
    ----------
    expM : np.ndarray
        Exponential of a block upper-triangular matrix with identical
        diagonal blocks of size n
    n : int
        Block size

    Returns
    -------
    str or None
        Description of the first failed check, or None if all pass
    """
    if config is None:
        config = EvaluatorConfig()

    N = expM.shape[0] // n
    blocks = expM.reshape(N, n, N, n).swapaxes(1, 2)
    scale = max(1.0, float(np.max(np.abs(expM))))

    lower = np.tril_indices(N, k=-1)
    if len(lower[0]):
        lower_max = float(np.max(np.abs(blocks[lower])))
        if lower_max > config.atol * scale:
            return (f"strictly-lower blocks of exp(M) reach {lower_max:.3e}, "
                    f"tolerance {config.atol * scale:.3e}")

    # All diagonal blocks equal exp(H); block (0, 0) is the reference.
    ref = blocks[0, 0]
    ref_scale = max(1.0, float(np.max(np.abs(ref))))
    for b in range(1, N):
        dev = float(np.max(np.abs(blocks[b, b] - ref)))
        if dev > config.rtol * ref_scale:
            return (f"diagonal block {b} of exp(M) deviates from block 0 by "
                    f"{dev:.3e}, tolerance {config.rtol * ref_scale:.3e}")
    return None


def evaluate_exponential(M, block_size: Optional[int] = None,
                         config: Optional[EvaluatorConfig] = None,
                         strict: bool = False,
                         H: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Compute exp(M) and check the precision contract.

    Parameters
    ----------
    M : array_like
        Square matrix
    block_size : int, optional
        Diagonal block size n. When given (and config.check_structure is
        set), the block-triangular structure of the result is verified.
    config : EvaluatorConfig, optional
        Tolerances; defaults to EvaluatorConfig()
    strict : bool
        Raise NumericalInstability instead of warning
    H : np.ndarray, optional
        Base operator. When given together with block_size, block (0, 0) of
        the result is additionally compared with an independent expm(H).

    Returns
    -------
    np.ndarray
        exp(M). Returned even when a check failed (unless strict).

    Raises
    ------
    NumericalInstability
        Only when strict=True and a check fails
    """
    if config is None:
        config = EvaluatorConfig()

    M = np.asarray(M)
    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {M.shape}")

    norm = float(np.linalg.norm(M, 1)) if M.size else 0.0
    if not np.isfinite(norm):
        result = np.full(M.shape, np.nan, dtype=np.result_type(M, float))
        _report("input contains non-finite entries", result, strict)
        return result

    if block_size is not None and (block_size < 1 or M.shape[0] % block_size != 0):
        raise ValueError(f"Matrix of size {M.shape[0]} does not split into blocks of size {block_size}")

    result = expm(M)
    log.debug("expm of %d x %d matrix, ||M||_1 = %.3e", M.shape[0], M.shape[1], norm)

    if norm > config.max_norm:
        _report(f"||M||_1 = {norm:.3e} exceeds max_norm = {config.max_norm:.3e}; "
                "rescale the operators or use higher precision", result, strict)
        return result

    if not np.all(np.isfinite(result)):
        _report("exp(M) contains non-finite entries", result, strict)
        return result

    if block_size is not None and config.check_structure:
        problem = check_block_structure(result, block_size, config)
        if problem is None and H is not None:
            n = block_size
            expH = expm(np.asarray(H))
            dev = float(np.max(np.abs(result[:n, :n] - expH)))
            tol = config.rtol * max(1.0, float(np.max(np.abs(expH))))
            if dev > tol:
                problem = (f"diagonal block of exp(M) deviates from exp(H) by "
                           f"{dev:.3e}, tolerance {tol:.3e}")
        if problem is not None:
            _report(problem, result, strict)

    return result

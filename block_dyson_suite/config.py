"""Numerical tolerances and benchmark settings, all frozen and slotted."""

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from dacite import Config as DaciteConfig
from dacite import from_dict


@dataclass(frozen=True, slots=True)
class EvaluatorConfig:
    """Precision contract checked around scipy.linalg.expm."""

    max_norm: float = 1.0e3  # 1-norm above which scaling is considered excessive
    rtol: float = 1.0e-8  # diagonal blocks vs expm(H)
    atol: float = 1.0e-10  # strictly-lower blocks, relative to ||exp(M)||
    check_structure: bool = True

    def __post_init__(self) -> None:
        if self.max_norm <= 0:
            raise ValueError(f"max_norm must be positive, got {self.max_norm}")
        if self.rtol < 0 or self.atol < 0:
            raise ValueError("rtol and atol must be non-negative")


@dataclass(frozen=True, slots=True)
class QuadratureConfig:
    """Gauss-Legendre simplex quadrature reference."""

    n_points: int = 16
    refine: bool = True  # re-evaluate at 2 * n_points for an error estimate
    threshold: float = 1.0e-8

    def __post_init__(self) -> None:
        if self.n_points < 1:
            raise ValueError(f"n_points must be at least 1, got {self.n_points}")


@dataclass(frozen=True, slots=True)
class FiniteDifferenceConfig:
    """Central-difference Fréchet derivative reference."""

    step: float = 1.0e-3
    richardson: bool = True
    threshold: float = 1.0e-4

    def __post_init__(self) -> None:
        if self.step <= 0:
            raise ValueError(f"step must be positive, got {self.step}")


@dataclass(frozen=True, slots=True)
class BenchmarkConfig:
    """Random-sample benchmark sweep."""

    sizes: tuple[int, ...] = (4, 8)
    n_trials: int = 10
    norm: float = 1.0  # spectral norm of sampled H and perturbations
    seed: int = 42
    stability_jitter: float = 1.0e-10
    stability_repeats: int = 3
    stability_tolerance: float = 1.0e-6
    time_budget: float | None = None  # seconds per sample, enforced by the harness
    max_workers: int = 1
    evaluator: EvaluatorConfig = field(default_factory=EvaluatorConfig)
    quadrature: QuadratureConfig = field(default_factory=QuadratureConfig)
    finite_difference: FiniteDifferenceConfig = field(default_factory=FiniteDifferenceConfig)

    def __post_init__(self) -> None:
        if self.n_trials < 1:
            raise ValueError(f"n_trials must be at least 1, got {self.n_trials}")
        if any(n < 1 for n in self.sizes):
            raise ValueError(f"sizes must be positive, got {self.sizes}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.time_budget is not None and self.time_budget < 0:
            raise ValueError(f"time_budget must be non-negative, got {self.time_budget}")


_DACITE = DaciteConfig(cast=[tuple], check_types=True, strict=True)


def config_to_dict(config) -> dict[str, Any]:
    """Convert any of the config dataclasses to a plain dictionary."""
    return asdict(config)


def config_from_dict(data_class, d: dict[str, Any]):
    """Rebuild a config dataclass, rejecting unknown keys."""
    return from_dict(data_class=data_class, data=d, config=_DACITE)


def config_to_json(config) -> str:
    return json.dumps(config_to_dict(config), indent=2, sort_keys=True)


def config_from_json(data_class, json_str: str):
    return config_from_dict(data_class, json.loads(json_str))

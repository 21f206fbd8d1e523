"""
GLM family and link function specifications.

Each Family defines:
- A variance function V(μ)
- A default link function g(μ)
- Unit deviance d(y, μ), from which total deviance and deviance
  residuals are derived
- A log-likelihood for AIC
- Starting values for IRLS

Each Link defines g(μ) → η, g⁻¹(η) → μ, and dμ/dη for IRLS weights.

The families cover the models fit in the retail workflow: Gaussian
(linear regression), Binomial (logistic regression on a binary outcome)
and Poisson (counts such as Quantity).

References:
    McCullagh, P., & Nelder, J. A. (1989). Generalized Linear Models (2nd ed.)
    R Core Team. stats::family, stats::make.link
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import numpy as np
from numpy.typing import NDArray
from scipy.special import expit, gammaln, xlogy

_EPS = 1e-10


# =====================================================================
# Link functions
# =====================================================================

class Link(ABC):
    """Link function g(μ) mapping mean to linear predictor."""

    name: str = ''

    @abstractmethod
    def link(self, mu: NDArray) -> NDArray:
        """g(μ) → η."""
        ...

    @abstractmethod
    def linkinv(self, eta: NDArray) -> NDArray:
        """g⁻¹(η) → μ."""
        ...

    @abstractmethod
    def mu_eta(self, eta: NDArray) -> NDArray:
        """dμ/dη."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class IdentityLink(Link):
    name = 'identity'

    def link(self, mu: NDArray) -> NDArray:
        return np.array(mu, dtype=np.float64)

    def linkinv(self, eta: NDArray) -> NDArray:
        return np.array(eta, dtype=np.float64)

    def mu_eta(self, eta: NDArray) -> NDArray:
        return np.ones_like(eta, dtype=np.float64)


class LogitLink(Link):
    name = 'logit'

    def link(self, mu: NDArray) -> NDArray:
        mu = np.clip(mu, _EPS, 1 - _EPS)
        return np.log(mu / (1 - mu))

    def linkinv(self, eta: NDArray) -> NDArray:
        return expit(eta)

    def mu_eta(self, eta: NDArray) -> NDArray:
        p = expit(eta)
        return np.maximum(p * (1.0 - p), _EPS)


class LogLink(Link):
    name = 'log'

    def link(self, mu: NDArray) -> NDArray:
        return np.log(np.maximum(mu, _EPS))

    def linkinv(self, eta: NDArray) -> NDArray:
        return np.exp(np.clip(eta, -500, 500))

    def mu_eta(self, eta: NDArray) -> NDArray:
        return np.maximum(np.exp(np.clip(eta, -500, 500)), _EPS)


_LINKS: dict[str, type[Link]] = {
    'identity': IdentityLink,
    'logit': LogitLink,
    'log': LogLink,
}


def _resolve_link(link: str | Link | None, default: Link) -> Link:
    if link is None:
        return default
    if isinstance(link, Link):
        return link
    if isinstance(link, str):
        cls = _LINKS.get(link.lower())
        if cls is None:
            valid = ', '.join(sorted(_LINKS))
            raise ValueError(f"Unknown link: {link!r}. Valid links: {valid}")
        return cls()
    raise TypeError(f"link must be str or Link, got {type(link).__name__}")


# =====================================================================
# Families
# =====================================================================

class Family(ABC):
    """
    GLM family: mean-variance relationship plus a link function.

    Subclasses set ``name``, ``response_kind`` (how Design encodes y)
    and ``dispersion_is_fixed``.
    """

    name: str = ''
    response_kind: str = 'numeric'
    dispersion_is_fixed: bool = False

    def __init__(self, link: str | Link | None = None):
        self._link = _resolve_link(link, self._default_link())

    @abstractmethod
    def _default_link(self) -> Link:
        ...

    @property
    def link(self) -> Link:
        return self._link

    @abstractmethod
    def variance(self, mu: NDArray) -> NDArray:
        """V(μ)."""
        ...

    @abstractmethod
    def unit_deviance(self, y: NDArray, mu: NDArray) -> NDArray:
        """Per-observation deviance d(y_i, μ_i) >= 0."""
        ...

    @abstractmethod
    def initialize(self, y: NDArray) -> NDArray:
        """Starting μ for IRLS, inside the link's domain."""
        ...

    @abstractmethod
    def log_likelihood(self, y: NDArray, mu: NDArray, dispersion: float) -> float:
        ...

    def check_response(self, y: NDArray) -> None:
        """Raise ValueError if y is outside the family's support."""

    def deviance(self, y: NDArray, mu: NDArray) -> float:
        return float(np.sum(self.unit_deviance(y, mu)))

    def deviance_residuals(self, y: NDArray, mu: NDArray) -> NDArray:
        d = np.maximum(self.unit_deviance(y, mu), 0.0)
        return np.sign(y - mu) * np.sqrt(d)

    def aic(self, y: NDArray, mu: NDArray, rank: int, dispersion: float) -> float:
        return -2.0 * self.log_likelihood(y, mu, dispersion) + 2.0 * rank

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(link={self._link.name!r})"


class Gaussian(Family):
    """Normal errors. V(μ) = 1, d = (y - μ)²."""

    name = 'gaussian'

    def _default_link(self) -> Link:
        return IdentityLink()

    def variance(self, mu: NDArray) -> NDArray:
        return np.ones_like(mu, dtype=np.float64)

    def unit_deviance(self, y: NDArray, mu: NDArray) -> NDArray:
        return (y - mu) ** 2

    def initialize(self, y: NDArray) -> NDArray:
        return np.array(y, dtype=np.float64)

    def log_likelihood(self, y: NDArray, mu: NDArray, dispersion: float) -> float:
        n = y.shape[0]
        rss = float(np.sum((y - mu) ** 2))
        return -0.5 * (rss / dispersion + n * np.log(2 * np.pi * dispersion))

    def aic(self, y: NDArray, mu: NDArray, rank: int, dispersion: float) -> float:
        # R uses the MLE dispersion rss/n and counts σ² as a parameter
        n = y.shape[0]
        sigma2 = float(np.sum((y - mu) ** 2)) / n
        ll = self.log_likelihood(y, mu, sigma2)
        return -2.0 * ll + 2.0 * (rank + 1)


class Binomial(Family):
    """Binary outcomes. V(μ) = μ(1 - μ)."""

    name = 'binomial'
    response_kind = 'binary'
    dispersion_is_fixed = True

    def _default_link(self) -> Link:
        return LogitLink()

    def variance(self, mu: NDArray) -> NDArray:
        mu = np.clip(mu, _EPS, 1 - _EPS)
        return mu * (1.0 - mu)

    def unit_deviance(self, y: NDArray, mu: NDArray) -> NDArray:
        mu = np.clip(mu, _EPS, 1 - _EPS)
        return 2.0 * (xlogy(y, y / mu) + xlogy(1 - y, (1 - y) / (1 - mu)))

    def initialize(self, y: NDArray) -> NDArray:
        return (y + 0.5) / 2.0

    def log_likelihood(self, y: NDArray, mu: NDArray, dispersion: float) -> float:
        mu = np.clip(mu, _EPS, 1 - _EPS)
        return float(np.sum(xlogy(y, mu) + xlogy(1 - y, 1 - mu)))

    def check_response(self, y: NDArray) -> None:
        if np.any((y < 0) | (y > 1)):
            raise ValueError("binomial response must lie in [0, 1]")


class Poisson(Family):
    """Counts. V(μ) = μ."""

    name = 'poisson'
    dispersion_is_fixed = True

    def _default_link(self) -> Link:
        return LogLink()

    def variance(self, mu: NDArray) -> NDArray:
        return np.maximum(mu, _EPS)

    def unit_deviance(self, y: NDArray, mu: NDArray) -> NDArray:
        mu = np.maximum(mu, _EPS)
        return 2.0 * (xlogy(y, y / mu) - (y - mu))

    def initialize(self, y: NDArray) -> NDArray:
        return y + 0.1

    def log_likelihood(self, y: NDArray, mu: NDArray, dispersion: float) -> float:
        mu = np.maximum(mu, _EPS)
        return float(np.sum(xlogy(y, mu) - mu - gammaln(y + 1)))

    def check_response(self, y: NDArray) -> None:
        if np.any(y < 0):
            raise ValueError("poisson response must be non-negative")


_FAMILIES: dict[str, type[Family]] = {
    'gaussian': Gaussian,
    'normal': Gaussian,
    'binomial': Binomial,
    'logistic': Binomial,
    'poisson': Poisson,
}


def resolve_family(family: str | Family) -> Family:
    """
    Resolve a family argument to a Family instance.

    Args:
        family: 'gaussian', 'binomial', 'poisson' (aliases 'normal',
            'logistic'), or a Family instance passed through.

    Raises:
        ValueError: If the name is not recognized
        TypeError: If the argument is neither str nor Family
    """
    if isinstance(family, Family):
        return family
    if isinstance(family, str):
        cls = _FAMILIES.get(family.lower())
        if cls is None:
            valid = ', '.join(sorted(_FAMILIES))
            raise ValueError(f"Unknown family: {family!r}. Valid families: {valid}")
        return cls()
    raise TypeError(f"family must be str or Family, got {type(family).__name__}")

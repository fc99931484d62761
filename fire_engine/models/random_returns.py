"""
Random annual returns for Monte Carlo trials.

Returns are drawn per asset class from a normal or lognormal distribution,
optionally correlated across assets through the Cholesky factor of the
covariance matrix. Randomness always comes from an injected
``numpy.random.Generator`` so every draw is reproducible from a seed.
"""

from typing import List, Literal, Optional, Sequence

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Distribution = Literal["normal", "lognormal"]

# Normal draws below -99% would wipe out more than the whole balance
MIN_ANNUAL_RETURN = -0.99


class AssetClass(BaseModel):
    """An asset class held in the simulated portfolio."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Name of the asset class")
    expected_return: float = Field(
        ..., ge=-0.5, le=0.5, description="Expected annual return (decimal)"
    )
    volatility: float = Field(..., ge=0, le=1, description="Annual volatility")
    weight: float = Field(..., ge=0, le=1, description="Portfolio weight (0-1)")


def validate_correlation_matrix(
    matrix: Sequence[Sequence[float]], num_assets: int
) -> NDArray[np.float64]:
    """
    Check that a correlation matrix is usable for Cholesky sampling.

    Args:
        matrix: Square matrix of pairwise correlations
        num_assets: Expected dimension

    Returns:
        The matrix as a float array

    Raises:
        ValueError: If the matrix is malformed or not positive definite
    """
    v = np.asarray(matrix, dtype=np.float64)

    if v.shape != (num_assets, num_assets):
        raise ValueError(
            f"Correlation matrix must be {num_assets}x{num_assets}, got {v.shape}"
        )

    if not np.all(np.isfinite(v)):
        raise ValueError("Correlation matrix must contain finite values")

    if not np.all((v >= -1.0) & (v <= 1.0)):
        raise ValueError("All correlation values must be between -1 and 1")

    if not np.allclose(v, v.T, atol=1e-10):
        raise ValueError("Correlation matrix must be symmetric")

    if not np.allclose(np.diag(v), 1.0, atol=1e-10):
        raise ValueError("Correlation matrix diagonal elements must be 1.0")

    try:
        np.linalg.cholesky(v)
    except np.linalg.LinAlgError:
        raise ValueError("Correlation matrix must be positive definite")

    return v


class ReturnsConfig(BaseModel):
    """Configuration for random returns generation."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    asset_classes: List[AssetClass] = Field(
        ..., min_length=1, description="Asset classes in portfolio"
    )
    distribution: Distribution = Field(
        default="lognormal", description="Distribution family for annual returns"
    )
    correlation_matrix: Optional[NDArray[np.float64]] = Field(
        default=None, description="Correlation matrix between asset classes"
    )

    @field_validator("asset_classes")
    @classmethod
    def validate_weights(cls, v: List[AssetClass]) -> List[AssetClass]:
        """Validate that portfolio weights sum to approximately 1.0."""
        total_weight = sum(asset.weight for asset in v)
        if not np.isclose(total_weight, 1.0, atol=1e-6):
            raise ValueError(f"Portfolio weights must sum to 1.0, got {total_weight}")
        return v

    @field_validator("correlation_matrix", mode="before")
    @classmethod
    def coerce_correlation_matrix(cls, v):
        if v is None:
            return v
        return np.asarray(v, dtype=np.float64)

    @model_validator(mode="after")
    def check_correlation_matrix(self) -> "ReturnsConfig":
        if self.correlation_matrix is not None:
            validate_correlation_matrix(
                self.correlation_matrix, len(self.asset_classes)
            )
        return self


class RandomReturnsGenerator:
    """Generates random annual returns for Monte Carlo simulation."""

    def __init__(self, config: ReturnsConfig):
        self.config = config

    def generate_returns(
        self, years: int, num_paths: int, rng: np.random.Generator
    ) -> NDArray[np.float64]:
        """
        Generate random returns for all asset classes.

        Args:
            years: Number of years per path
            num_paths: Number of simulated paths
            rng: Seeded generator supplying all randomness

        Returns:
            Array of shape (num_assets, years, num_paths) containing returns
        """
        if years <= 0:
            raise ValueError("Number of years must be positive")
        if num_paths <= 0:
            raise ValueError("Number of paths must be positive")

        num_assets = len(self.config.asset_classes)
        shocks = rng.standard_normal((num_assets, years, num_paths))

        if self.config.correlation_matrix is not None:
            # Rows of L mix the independent shocks into correlated ones
            scaled = np.einsum("ij,jtp->itp", self._cholesky_factor(), shocks)
        else:
            scaled = shocks * self.get_volatilities()[:, np.newaxis, np.newaxis]

        return self._to_returns(scaled)

    def _cholesky_factor(self) -> NDArray[np.float64]:
        """
        Factor L with L @ L.T = Cov, where Cov[i,j] = Corr[i,j] * Vol[i] * Vol[j].

        Scaling the rows of the correlation factor by volatility gives the
        covariance factor and stays valid when a volatility is zero.
        """
        volatilities = self.get_volatilities()
        corr_factor = np.linalg.cholesky(self.config.correlation_matrix)
        return volatilities[:, np.newaxis] * corr_factor

    def _to_returns(self, scaled: NDArray[np.float64]) -> NDArray[np.float64]:
        """Turn volatility-scaled shocks into simple annual returns."""
        expected = self.get_expected_returns()[:, np.newaxis, np.newaxis]

        if self.config.distribution == "normal":
            return np.maximum(expected + scaled, MIN_ANNUAL_RETURN)

        if self.config.distribution == "lognormal":
            # log(1 + R) ~ N(log(1 + mu) - sigma^2 / 2, sigma)
            volatilities = self.get_volatilities()[:, np.newaxis, np.newaxis]
            mu = np.log1p(expected) - 0.5 * volatilities**2
            return np.expm1(mu + scaled)

        raise ValueError(f"Unsupported distribution: {self.config.distribution}")

    def get_asset_weights(self) -> NDArray[np.float64]:
        return np.array([asset.weight for asset in self.config.asset_classes])

    def get_expected_returns(self) -> NDArray[np.float64]:
        return np.array([asset.expected_return for asset in self.config.asset_classes])

    def get_volatilities(self) -> NDArray[np.float64]:
        return np.array([asset.volatility for asset in self.config.asset_classes])


def calculate_portfolio_returns(
    asset_returns: NDArray[np.float64], weights: NDArray[np.float64]
) -> NDArray[np.float64]:
    """
    Calculate portfolio returns from individual asset returns.

    Args:
        asset_returns: Returns array (num_assets, years, num_paths)
        weights: Portfolio weights (num_assets,)

    Returns:
        Portfolio returns array (years, num_paths)
    """
    if asset_returns.shape[0] != len(weights):
        raise ValueError("Number of assets must match number of weights")

    portfolio_returns: NDArray[np.float64] = np.sum(
        asset_returns * weights[:, np.newaxis, np.newaxis], axis=0
    )
    return portfolio_returns

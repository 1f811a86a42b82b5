"""Model serving: auth tokens."""

from .client import ModelServingClient
from .token import ModelServingTokenDataSource, ModelServingTokenResource

__all__ = ["ModelServingClient", "ModelServingTokenResource", "ModelServingTokenDataSource"]

"""Fungible asset collaborators used by the allocation engine."""

from .token import ZERO_ADDRESS, FungibleAsset, InMemoryToken, NativeToken

__all__ = ["ZERO_ADDRESS", "FungibleAsset", "InMemoryToken", "NativeToken"]

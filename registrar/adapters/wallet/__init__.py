"""Wallet adapters - Signing capabilities."""

from .keypair import KeypairWallet, WalletRejection

__all__ = ["KeypairWallet", "WalletRejection"]

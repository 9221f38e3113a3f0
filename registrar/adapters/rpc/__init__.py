"""RPC adapters - Blockchain endpoint clients."""

from .solana import RpcError, SolanaRpcClient, rpc_client_factory

__all__ = ["RpcError", "SolanaRpcClient", "rpc_client_factory"]

# layer_indexer/clients/__init__.py

from .rpc import RpcClient

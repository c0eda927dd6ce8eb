# layer_indexer/decode/__init__.py

from .log_decoder import LogDecoder
